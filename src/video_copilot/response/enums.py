"""Synonym tables mapping model-invented enum values onto canonical ones."""

from __future__ import annotations

from types import MappingProxyType

from video_copilot.constants import ALL_CATEGORIES

_CATEGORY_SUBTOPICS = {
    "core_concepts": ("pattern_interrupts", "dopamine_engagement", "retention_psychology"),
    "scripting": ("narrative_techniques", "visual_cues", "av_format"),
    "visual_editing": ("kinetic_typography", "pacing_rhythm", "spatial_dynamics", "transitions"),
    "audio_design": ("mixing_techniques", "music_stems", "sound_layers"),
    "seo_metadata": (
        "title_optimization",
        "description_engineering",
        "technical_metadata",
        "compliance_guidelines",
    ),
    "style_guides": ("hormozi_style", "lemmino_style", "high_energy_style", "vox_style"),
    "tools_workflows": ("workflow_templates", "software_comparison"),
    "checklists": ("retention_checklist", "seo_checklist"),
}


def _spellings(name: str) -> tuple[str, ...]:
    return (name, name.replace("_", " "), name.replace("_", "-"))


CATEGORY_SYNONYMS = MappingProxyType(
    {
        spelling: canonical
        for canonical, subtopics in _CATEGORY_SUBTOPICS.items()
        for name in (canonical, *subtopics)
        for spelling in _spellings(name)
    }
)

SEVERITY_SYNONYMS = MappingProxyType(
    {
        "high": "critical",
        "urgent": "critical",
        "severe": "critical",
        "critical": "critical",
        "medium": "major",
        "moderate": "major",
        "important": "major",
        "major": "major",
        "low": "minor",
        "minor": "minor",
        "info": "suggestion",
        "informational": "suggestion",
        "optional": "suggestion",
        "suggestion": "suggestion",
    }
)

# Audio issue ``type``; pacing violation types have no synonyms and pass through
TYPE_SYNONYMS = MappingProxyType(
    {
        "sfx": "missing_sfx",
        "sound effects": "missing_sfx",
        "missing sfx": "missing_sfx",
        "missing_sfx": "missing_sfx",
        "silence": "silence",
        "dead air": "silence",
        "pause": "silence",
        "imbalance": "imbalance",
        "mix balance": "imbalance",
        "audio balance": "imbalance",
        "music timing": "music_timing",
        "music_timing": "music_timing",
        "music": "music_timing",
        "background music": "music_timing",
    }
)

ENUM_FIELDS = MappingProxyType(
    {
        "category": CATEGORY_SYNONYMS,
        "severity": SEVERITY_SYNONYMS,
        "type": TYPE_SYNONYMS,
    }
)


def normalize_enum_value(field: str, value: object) -> object:
    """Canonical value for ``field``; unknown values are returned unchanged."""
    table = ENUM_FIELDS.get(field)
    if table is None or not isinstance(value, str):
        return value
    key = value.strip().lower()
    if key in table:
        return table[key]
    if field == "category":
        snake = key.replace(" ", "_").replace("-", "_")
        if snake in ALL_CATEGORIES:
            return snake
    return value
