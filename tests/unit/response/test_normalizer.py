"""Shape normalization, array caps and default filling."""

import json

import pytest

from video_copilot.response.normalizer import (
    add_required_defaults,
    enforce_array_sizes,
    is_flat_key_value_array,
    normalize_document,
    normalize_response,
    reconstruct_flat_objects,
)

pytestmark = pytest.mark.unit


def test_stringified_objects_sentinels_and_newline_lists():
    raw = '{"issues": ["{\\"id\\":\\"x\\"}", -1, null], "strengths": "a\\nb"}'

    normalized = normalize_response(json.loads(raw))

    assert normalized == {"issues": [{"id": "x"}], "strengths": ["a", "b"]}


def test_document_pass_defaults_the_rest():
    raw = '{"issues": ["{\\"id\\":\\"x\\"}", -1, null], "strengths": "a\\nb"}'

    doc = normalize_document(json.loads(raw), "core_concepts")

    assert doc["issues"] == [{"id": "x"}]
    assert doc["strengths"] == ["a", "b"]
    assert doc["priorityActions"] == []
    assert doc["overallScore"] == 0.5
    assert doc["category"] == "core_concepts"
    assert doc["retentionMetrics"] is None
    assert doc["criticalDropoffPoints"] == []


def test_enum_synonyms_are_canonicalized():
    normalized = normalize_response({"category": "visual editing", "severity": "high"})
    assert normalized == {"category": "visual_editing", "severity": "critical"}


def test_enums_inside_issues_are_canonicalized():
    doc = {
        "issues": [{"severity": "Medium", "category": "pattern interrupts"}],
        "audioIssues": [{"type": "dead air"}],
    }

    normalized = normalize_response(doc)

    assert normalized["issues"] == [{"severity": "major", "category": "core_concepts"}]
    assert normalized["audioIssues"] == [{"type": "silence"}]


def test_issue_array_given_as_prose_becomes_empty():
    assert normalize_response({"issues": "No issues identified"}) == {"issues": []}


def test_generic_arrays_drop_booleans_nulls_and_sentinels():
    normalized = normalize_response({"tags": [True, "a", False, None, -1, 0, 2.5]})
    assert normalized == {"tags": ["a", 0, 2.5]}


def test_object_fields_with_wrong_json_type():
    doc = {
        "checklistResults": [{"passed": 3}],
        "retentionMetrics": ["0.7", "3"],
        "scriptMetrics": '{"hookStrength": 0.9, "narrativeClarity": 0.8, '
        '"visualCueIntegration": 0.6, "openLoopCount": 2}',
        "pacingMetrics": "not an object",
    }

    normalized = normalize_response(doc)

    assert normalized["checklistResults"]["retentionChecklist"]["total"] == 8
    assert normalized["retentionMetrics"] is None
    assert normalized["scriptMetrics"]["hookStrength"] == 0.9
    assert normalized["pacingMetrics"] is None


def test_flat_key_value_issues_are_rebuilt():
    items = [
        "id", "a",
        "timestamp", "start", 12, "end", 18,
        "severity", "high",
        "id", "b",
        "title", "Weak hook",
        "recommendation",
    ]  # fmt: skip

    assert is_flat_key_value_array(items)
    normalized = normalize_response({"issues": items})["issues"]

    assert [i["id"] for i in normalized] == ["a", "b"]
    assert normalized[0]["timestamp"] == {"start": 12, "end": 18}
    assert normalized[0]["severity"] == "critical"
    assert normalized[1]["title"] == "Weak hook"
    assert normalized[1]["severity"] == "major"
    assert normalized[1]["confidence"] == 0.7


def test_flat_detection_rejects_real_objects_and_unknown_keys():
    assert not is_flat_key_value_array([{"id": "a"}, "id"])
    assert not is_flat_key_value_array(["hello", "world"])
    assert not is_flat_key_value_array(["id"])


def test_reconstruct_gives_missing_values_typed_defaults():
    objects = reconstruct_flat_objects(["id", "x", "confidence", "timestamp"], "visualGaps")
    assert objects == [{"id": "x", "confidence": 0.7, "timestamp": {"start": 0, "end": 0}}]


def test_array_caps_apply_at_any_depth():
    doc = {
        "priorityActions": ["1", "2", "3", "4", "5"],
        "strengths": list("abcdefg"),
        "suggestions": {"titles": ["t1", "t2", "t3", "t4"], "tags": list("abcdefghijkl")},
    }

    capped = enforce_array_sizes(doc)

    assert capped["priorityActions"] == ["1", "2", "3"]
    assert len(capped["strengths"]) == 5
    assert capped["suggestions"]["titles"] == ["t1", "t2", "t3"]
    assert len(capped["suggestions"]["tags"]) == 10


def test_required_objects_for_seo_and_checklists():
    seo = add_required_defaults({}, "seo_metadata")
    assert seo["seoMetrics"]["complianceStatus"] == "warning"
    assert seo["suggestions"] == {"titles": [], "description": "", "tags": []}

    checklists = add_required_defaults({"category": "checklists", "checklistResults": None})
    assert checklists["checklistResults"]["seoChecklist"]["total"] == 6
    assert checklists["failedItems"] == []


def test_document_category_wins_over_hint_when_canonical():
    doc = add_required_defaults({"category": "scripting"}, "checklists")
    assert doc["category"] == "scripting"
    assert doc["scriptMetrics"] is None
    assert doc["visualGaps"] == []


def test_defaults_do_not_overwrite_present_values():
    doc = add_required_defaults(
        {"overallScore": 0.0, "strengths": ["kept"], "issues": []}, "audio_design"
    )
    assert doc["overallScore"] == 0.0
    assert doc["strengths"] == ["kept"]


@pytest.mark.parametrize(
    "doc",
    [
        {"issues": ['{"id": "x"}', -1], "strengths": "a\nb", "severity": "low"},
        {"category": "SEO metadata", "seoMetrics": [], "priorityActions": list("abcdef")},
        {"issues": ["id", "a", "timestamp", "start", 1, "end", 2]},
        {"checklistResults": "{\"retentionChecklist\": {}}", "overallScore": 0.3},
        [1, None, "[1, 2]", {"nested": {"severity": "urgent"}}],
    ],
)
def test_normalization_is_idempotent(doc):
    once = normalize_document(doc, "checklists")
    assert normalize_document(once, "checklists") == once


def test_non_container_values_pass_through():
    assert normalize_response("plain") == "plain"
    assert normalize_response(3) == 3
    assert add_required_defaults(["x"]) == ["x"]
