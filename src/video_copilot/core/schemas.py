"""Structured-output schemas for the eight analysis categories.

Field names are snake_case in Python and camelCase on the wire; every model
accepts either form and ignores unknown keys. The same classes are handed to
the provider as ``response_schema`` and used to validate normalized output.
"""

from __future__ import annotations

from types import MappingProxyType
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

Category = Literal[
    "core_concepts",
    "scripting",
    "visual_editing",
    "audio_design",
    "seo_metadata",
    "style_guides",
    "tools_workflows",
    "checklists",
]
Severity = Literal["critical", "major", "minor", "suggestion"]
UnitScore = float


class _WireModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
    )


class TimeRange(_WireModel):
    start: float
    end: float


class Issue(_WireModel):
    """A single actionable finding anchored to a time range."""

    id: str
    timestamp: TimeRange
    category: Category
    severity: Severity
    title: str
    description: str
    issue: str
    recommendation: str
    confidence: UnitScore = Field(ge=0, le=1)
    related_technique: str | None = None


class BaseAnalysis(_WireModel):
    """Fields shared by every category response."""

    category: Category
    summary: str
    overall_score: UnitScore = Field(ge=0, le=1)
    issues: list[Issue]
    strengths: list[str]
    priority_actions: list[str] = Field(max_length=3)
    processing_time_ms: int | None = None


# --- 01 core concepts ---


class RetentionMetrics(_WireModel):
    predicted_retention_rate: UnitScore = Field(ge=0, le=1)
    dopamine_loop_count: int
    pattern_interrupt_count: int
    cognitive_load_balance: Literal["under", "optimal", "over"]


class DropoffPoint(_WireModel):
    timestamp: float
    reason: str
    suggested_fix: str


class CoreConceptsAnalysis(BaseAnalysis):
    category: Literal["core_concepts"]
    retention_metrics: RetentionMetrics | None = None
    critical_dropoff_points: list[DropoffPoint] | None = None


# --- 02 scripting ---


class ScriptMetrics(_WireModel):
    hook_strength: UnitScore = Field(ge=0, le=1)
    narrative_clarity: UnitScore = Field(ge=0, le=1)
    visual_cue_integration: UnitScore = Field(ge=0, le=1)
    open_loop_count: int


class VisualGap(_WireModel):
    timestamp: TimeRange
    duration: float
    suggested_b_roll: str


class ScriptingAnalysis(BaseAnalysis):
    category: Literal["scripting"]
    script_metrics: ScriptMetrics | None = None
    visual_gaps: list[VisualGap] | None = None


# --- 03 visual editing ---


class PacingMetrics(_WireModel):
    average_cut_length: float
    visual_change_frequency: float
    dynamic_zoom_usage: bool
    transition_variety: UnitScore = Field(ge=0, le=1)


class PacingViolation(_WireModel):
    timestamp: TimeRange
    type: Literal["too_static", "too_fast", "monotonous"]
    suggestion: str


class VisualEditingAnalysis(BaseAnalysis):
    category: Literal["visual_editing"]
    pacing_metrics: PacingMetrics | None = None
    pacing_violations: list[PacingViolation] | None = None


# --- 04 audio design ---


class AudioMetrics(_WireModel):
    layer_count: int
    music_timing: UnitScore = Field(ge=0, le=1)
    mix_balance: UnitScore = Field(ge=0, le=1)
    silence_gaps: int


class AudioIssue(_WireModel):
    timestamp: TimeRange
    type: Literal["silence", "imbalance", "missing_sfx", "music_timing"]
    suggestion: str


class AudioDesignAnalysis(BaseAnalysis):
    category: Literal["audio_design"]
    audio_metrics: AudioMetrics | None = None
    audio_issues: list[AudioIssue] | None = None


# --- 05 seo metadata ---


class SEOMetrics(_WireModel):
    title_score: UnitScore = Field(ge=0, le=1)
    description_score: UnitScore = Field(ge=0, le=1)
    tag_relevance: UnitScore = Field(ge=0, le=1)
    compliance_status: Literal["compliant", "warning", "violation"]


class SEOSuggestions(_WireModel):
    titles: list[str] = Field(max_length=3)
    description: str | None = None
    tags: list[str] = Field(max_length=10)


class SEOMetadataAnalysis(BaseAnalysis):
    category: Literal["seo_metadata"]
    seo_metrics: SEOMetrics
    suggestions: SEOSuggestions


# --- 06 style guides ---


class StyleMetrics(_WireModel):
    detected_style: Literal[
        "high_energy", "vox", "lemmino", "hormozi", "mixed", "custom"
    ]
    style_consistency: UnitScore = Field(ge=0, le=1)
    recommended_style: str


class StyleRecommendation(_WireModel):
    aspect: str
    current_approach: str
    suggested_approach: str
    style_reference: str


class StyleGuidesAnalysis(BaseAnalysis):
    category: Literal["style_guides"]
    style_metrics: StyleMetrics | None = None
    style_recommendations: list[StyleRecommendation] | None = None


# --- 07 tools and workflows ---


class WorkflowMetrics(_WireModel):
    efficiency_score: UnitScore = Field(ge=0, le=1)
    automation_potential: UnitScore = Field(ge=0, le=1)


class ToolRecommendation(_WireModel):
    task: str
    current_tool: str | None = None
    recommended_tool: str
    benefit: str


class ToolsWorkflowsAnalysis(BaseAnalysis):
    category: Literal["tools_workflows"]
    workflow_metrics: WorkflowMetrics | None = None
    tool_recommendations: list[ToolRecommendation] | None = None


# --- 08 checklists ---


class ChecklistTally(_WireModel):
    passed: int
    failed: int
    total: int


class ChecklistResults(_WireModel):
    retention_checklist: ChecklistTally
    seo_checklist: ChecklistTally


class FailedChecklistItem(_WireModel):
    checklist: Literal["retention", "seo"]
    item: str
    status: Literal["failed", "partial"]
    remediation: str


class ChecklistsAnalysis(BaseAnalysis):
    category: Literal["checklists"]
    checklist_results: ChecklistResults | None = None
    failed_items: list[FailedChecklistItem] | None = None


CATEGORY_SCHEMA_REGISTRY: MappingProxyType[str, type[BaseAnalysis]] = MappingProxyType(
    {
        "core_concepts": CoreConceptsAnalysis,
        "scripting": ScriptingAnalysis,
        "visual_editing": VisualEditingAnalysis,
        "audio_design": AudioDesignAnalysis,
        "seo_metadata": SEOMetadataAnalysis,
        "style_guides": StyleGuidesAnalysis,
        "tools_workflows": ToolsWorkflowsAnalysis,
        "checklists": ChecklistsAnalysis,
    }
)


def get_category_schema(category: str) -> type[BaseAnalysis]:
    """Return the schema class for ``category``.

    Raises:
        KeyError: If the category is not one of the eight known categories.
    """
    try:
        return CATEGORY_SCHEMA_REGISTRY[category]
    except KeyError:
        raise KeyError(f"Unknown analysis category: {category!r}") from None
