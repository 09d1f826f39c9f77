"""Shape normalization for parsed model output.

Three pure passes run in a fixed order before schema validation:

1. ``normalize_response`` repairs structure (stringified objects, sentinel
   values, flattened key/value arrays, enum synonyms, mistyped fields).
2. ``enforce_array_sizes`` caps lists the schema bounds.
3. ``add_required_defaults`` fills required fields the model left out.

Every pass is total and idempotent; none of them raises.
"""

from __future__ import annotations

import json
import logging
from typing import Any

from video_copilot.constants import ALL_CATEGORIES
from video_copilot.response.enums import ENUM_FIELDS, normalize_enum_value

log = logging.getLogger(__name__)

OBJECT_ARRAY_FIELDS = frozenset(
    {
        "issues",
        "criticalDropoffPoints",
        "visualGaps",
        "pacingViolations",
        "audioIssues",
        "styleRecommendations",
        "toolRecommendations",
        "failedItems",
    }
)

# Fields that hold a single object, never a list or a string
OBJECT_FIELDS = frozenset(
    {
        "retentionMetrics",
        "scriptMetrics",
        "pacingMetrics",
        "audioMetrics",
        "seoMetrics",
        "styleMetrics",
        "workflowMetrics",
        "checklistResults",
        "suggestions",
    }
)

LINE_LIST_FIELDS = frozenset({"strengths", "priorityActions"})

FLAT_ARRAY_KEYS = frozenset(
    {
        "id",
        "timestamp",
        "category",
        "severity",
        "title",
        "description",
        "issue",
        "recommendation",
        "confidence",
        "start",
        "end",
    }
)
_FLAT_VALUE_KEYS = FLAT_ARRAY_KEYS - {"start", "end"}
_FLAT_BOUNDARY_KEY = "id"

ARRAY_LIMITS = {
    "priorityActions": 3,
    "strengths": 5,
    "topInsights": 3,
    "titles": 3,
    "tags": 10,
}

_MISSING_SENTINEL = -1

# --- Defaults ---


def _default_checklist_results() -> dict[str, Any]:
    return {
        "retentionChecklist": {"passed": 0, "failed": 0, "total": 8},
        "seoChecklist": {"passed": 0, "failed": 0, "total": 6},
    }


def _default_script_metrics() -> dict[str, Any]:
    return {
        "hookStrength": 0.7,
        "narrativeClarity": 0.7,
        "visualCueIntegration": 0.7,
        "openLoopCount": 0,
    }


def _default_seo_metrics() -> dict[str, Any]:
    return {
        "titleScore": 0.5,
        "descriptionScore": 0.5,
        "tagRelevance": 0.5,
        "complianceStatus": "warning",
    }


def _default_suggestions() -> dict[str, Any]:
    return {"titles": [], "description": "", "tags": []}


# Replacement when an object field arrives as a list; absent means None
_ARRAY_REPLACEMENTS = {
    "checklistResults": _default_checklist_results,
    "scriptMetrics": _default_script_metrics,
    "seoMetrics": _default_seo_metrics,
    "suggestions": _default_suggestions,
}

# category -> (metrics field, list field); metrics default to None
_CATEGORY_FIELDS = {
    "core_concepts": ("retentionMetrics", "criticalDropoffPoints"),
    "scripting": ("scriptMetrics", "visualGaps"),
    "visual_editing": ("pacingMetrics", "pacingViolations"),
    "audio_design": ("audioMetrics", "audioIssues"),
    "style_guides": ("styleMetrics", "styleRecommendations"),
    "tools_workflows": ("workflowMetrics", "toolRecommendations"),
    "checklists": ("checklistResults", "failedItems"),
}

# category -> required object fields and their defaults
_REQUIRED_OBJECTS = {
    "checklists": {"checklistResults": _default_checklist_results},
    "seo_metadata": {
        "seoMetrics": _default_seo_metrics,
        "suggestions": _default_suggestions,
    },
}


def _issue_defaults(index: int) -> dict[str, Any]:
    return {
        "id": f"issue-{index}",
        "timestamp": {"start": 0, "end": 0},
        "category": "core_concepts",
        "severity": "major",
        "title": "Issue",
        "description": "",
        "issue": "",
        "recommendation": "",
        "confidence": 0.7,
    }


def _missing_value_for(key: str) -> Any:
    if key == "confidence":
        return 0.7
    if key == "timestamp":
        return {"start": 0, "end": 0}
    if key in ("start", "end"):
        return 0
    return ""


# --- Flattened key/value arrays ---


def is_flat_key_value_array(items: list[Any]) -> bool:
    """Whether ``items`` looks like objects serialized as alternating keys and values."""
    if len(items) < 2:
        return False
    first = items[0]
    if not isinstance(first, str) or first.lower() not in FLAT_ARRAY_KEYS:
        return False
    return not any(isinstance(item, dict | list) for item in items)


def reconstruct_flat_objects(items: list[Any], field: str) -> list[dict[str, Any]]:
    """Rebuild objects from ``["id", "a", "timestamp", "start", 1, "end", 2, ...]``.

    A new object starts at each ``id`` key. Keys whose value is missing get a
    type-appropriate default, and rebuilt ``issues`` get the full issue
    default set.
    """
    objects: list[dict[str, Any]] = []
    current: dict[str, Any] = {}
    i = 0
    n = len(items)
    while i < n:
        raw_key = items[i]
        if not isinstance(raw_key, str):
            i += 1
            continue
        lowered = raw_key.lower()
        key = lowered if lowered in FLAT_ARRAY_KEYS else raw_key

        if key == _FLAT_BOUNDARY_KEY and current:
            objects.append(current)
            current = {}

        if key == "timestamp" and i + 1 < n and items[i + 1] in ("start", "end"):
            timestamp = {"start": 0, "end": 0}
            j = i + 1
            while j + 1 < n and items[j] in ("start", "end"):
                value = items[j + 1]
                if isinstance(value, int | float) and not isinstance(value, bool):
                    timestamp[items[j]] = value
                j += 2
            current["timestamp"] = timestamp
            i = j
            continue

        if i + 1 >= n:
            current[key] = _missing_value_for(key)
            i += 1
            continue

        value = items[i + 1]
        if isinstance(value, str) and value.lower() in _FLAT_VALUE_KEYS:
            # next element is another key: this one has no value
            current[key] = _missing_value_for(key)
            i += 1
        else:
            current[key] = value
            i += 2

    if current:
        objects.append(current)

    if field == "issues":
        objects = [
            {**_issue_defaults(index), **{k: v for k, v in obj.items() if v not in (None, "")}}
            for index, obj in enumerate(objects, start=1)
        ]
    log.debug("Reconstructed %d object(s) from flat %r array", len(objects), field)
    return objects


# --- Normalization ---


def _decode_json(value: str) -> Any:
    try:
        return json.loads(value)
    except ValueError:
        return None


def _is_sentinel(item: Any) -> bool:
    return (
        isinstance(item, int | float)
        and not isinstance(item, bool)
        and item == _MISSING_SENTINEL
    )


def _normalize_object_array(field: str, items: list[Any]) -> list[dict[str, Any]]:
    if is_flat_key_value_array(items):
        return [normalize_response(obj) for obj in reconstruct_flat_objects(items, field)]

    result = []
    for item in items:
        if isinstance(item, str):
            item = _decode_json(item)
        if isinstance(item, dict):
            result.append(normalize_response(item))
    return result


def _normalize_generic_array(items: list[Any]) -> list[Any]:
    result = []
    for item in items:
        if isinstance(item, str):
            decoded = _decode_json(item)
            if isinstance(decoded, dict | list):
                item = decoded
        if item is None or isinstance(item, bool) or _is_sentinel(item):
            continue
        result.append(normalize_response(item))
    return result


def _normalize_object_field(field: str, value: Any) -> Any:
    if isinstance(value, str):
        decoded = _decode_json(value)
        if isinstance(decoded, dict):
            log.debug("Parsed %s from string", field)
            return normalize_response(decoded)
        log.debug("Replacing unparseable %s string with null", field)
        return None
    if isinstance(value, list):
        factory = _ARRAY_REPLACEMENTS.get(field)
        log.debug("Replacing %s array with %s", field, "default" if factory else "null")
        return factory() if factory else None
    return normalize_response(value)


def normalize_response(doc: Any) -> Any:
    """Structurally normalize a parsed document. Pure and idempotent."""
    if isinstance(doc, list):
        return _normalize_generic_array(doc)
    if not isinstance(doc, dict):
        return doc

    result: dict[str, Any] = {}
    for key, value in doc.items():
        if key in OBJECT_FIELDS:
            result[key] = _normalize_object_field(key, value)
        elif key in OBJECT_ARRAY_FIELDS and isinstance(value, list):
            result[key] = _normalize_object_array(key, value)
        elif key in OBJECT_ARRAY_FIELDS and isinstance(value, str):
            # "No issues identified" and friends mean an empty list
            decoded = _decode_json(value)
            result[key] = (
                _normalize_object_array(key, decoded) if isinstance(decoded, list) else []
            )
        elif key in LINE_LIST_FIELDS and isinstance(value, str):
            result[key] = [line.strip() for line in value.split("\n") if line.strip()]
        elif key in ENUM_FIELDS and isinstance(value, str):
            result[key] = normalize_enum_value(key, value)
        else:
            result[key] = normalize_response(value)
    return result


def enforce_array_sizes(doc: Any) -> Any:
    """Truncate bounded lists to their limits, at any depth."""
    if isinstance(doc, list):
        return [enforce_array_sizes(item) for item in doc]
    if not isinstance(doc, dict):
        return doc

    result: dict[str, Any] = {}
    for key, value in doc.items():
        limit = ARRAY_LIMITS.get(key)
        if isinstance(value, list) and limit is not None and len(value) > limit:
            log.debug("Truncating %r from %d to %d", key, len(value), limit)
            value = value[:limit]
        result[key] = enforce_array_sizes(value)
    return result


def add_required_defaults(doc: Any, category: str | None = None) -> Any:
    """Fill required root fields and the category's own defaults.

    ``category`` is the caller's hint, used when the document does not name
    a known category itself.
    """
    if not isinstance(doc, dict):
        return doc

    result = dict(doc)
    if result.get("category") not in ALL_CATEGORIES and category is not None:
        result["category"] = category

    for field in ("strengths", "priorityActions", "issues"):
        if result.get(field) is None:
            result[field] = []
    if result.get("overallScore") is None:
        result["overallScore"] = 0.5

    resolved = result.get("category")
    fields = _CATEGORY_FIELDS.get(resolved)
    if fields is not None:
        metrics_field, list_field = fields
        result.setdefault(metrics_field, None)
        if result.get(list_field) is None:
            result[list_field] = []

    for field, factory in _REQUIRED_OBJECTS.get(resolved, {}).items():
        if not isinstance(result.get(field), dict):
            log.debug("Adding default %s", field)
            result[field] = factory()
    return result


def normalize_document(doc: Any, category: str | None = None) -> Any:
    """Run all three passes in their required order."""
    return add_required_defaults(
        enforce_array_sizes(normalize_response(doc)), category
    )
