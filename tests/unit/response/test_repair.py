"""Textual repair of malformed model JSON."""

import json

import pytest

from video_copilot.response.repair import (
    close_truncated,
    find_value_end,
    insert_missing_commas,
    normalize_quotes,
    remove_duplicate_keys,
    repair_json,
    strip_code_fence,
)

pytestmark = pytest.mark.unit


def test_truncated_array_inside_object_is_closed_array_first():
    raw = '{"category": "scripting", "issues": [{"id": "a", "title": "t"}'

    repaired = repair_json(raw)

    assert repaired.endswith("]}")
    assert json.loads(repaired)["issues"] == [{"id": "a", "title": "t"}]


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        # open string value is closed and kept
        ('{"summary": "The hook is str', {"summary": "The hook is str"}),
        # dangling key string is dropped with its comma
        ('{"summary": "ok", "strengths', {"summary": "ok"}),
        # complete key without a value
        ('{"summary": "ok", "overallScore":', {"summary": "ok", "overallScore": None}),
        # partial literal after the colon
        ('{"overallScore": 0.8, "flag": tr', {"overallScore": 0.8, "flag": None}),
        # trailing comma before truncation point
        ('{"strengths": ["a", "b",', {"strengths": ["a", "b"]}),
    ],
)
def test_truncation_variants_parse_after_repair(raw, expected):
    assert json.loads(repair_json(raw)) == expected


def test_balanced_text_is_left_alone_by_truncation_step():
    text = '{"a": [1, 2]}'
    assert close_truncated(text) == text


def test_duplicate_issues_key_keeps_first_occurrence():
    raw = (
        '{"issues": [{"id": "a"}], "summary": "s", '
        '"issues": [{"id": "b", "note": "has ] and } inside"}]}'
    )

    repaired = repair_json(raw)

    assert json.loads(repaired) == {"issues": [{"id": "a"}], "summary": "s"}


def test_duplicate_key_is_removed_with_its_leading_comma():
    raw = '{"strengths": ["a"], "strengths": ["b"]}'
    assert json.loads(remove_duplicate_keys(raw, "strengths")) == {"strengths": ["a"]}


def test_duplicates_in_different_objects_are_not_collapsed():
    raw = '{"a": {"issues": [1]}, "b": {"issues": [2]}}'
    assert remove_duplicate_keys(raw, "issues") == raw


def test_single_quoted_strings_become_double_quoted():
    raw = "{'summary': 'good \"pacing\"', 'strengths': ['a', 'b']}"

    parsed = json.loads(repair_json(raw))

    assert parsed == {"summary": 'good "pacing"', "strengths": ["a", "b"]}


def test_apostrophes_inside_double_quoted_strings_survive():
    text = '{"summary": "it\'s a strong hook"}'
    assert normalize_quotes(text) == text


def test_trailing_commas_are_removed_outside_strings():
    raw = '{"strengths": ["a", "b",], "summary": "x,]", }'
    assert json.loads(repair_json(raw)) == {"strengths": ["a", "b"], "summary": "x,]"}


def test_bare_keys_are_quoted():
    raw = '{summary: "x", overallScore: 0.5}'
    assert json.loads(repair_json(raw)) == {"summary": "x", "overallScore": 0.5}


def test_missing_commas_between_adjacent_values():
    assert insert_missing_commas('[{"id": "a"} {"id": "b"}]') == (
        '[{"id": "a"}, {"id": "b"}]'
    )
    assert json.loads(repair_json('{"strengths": ["a" "b"]}')) == {
        "strengths": ["a", "b"]
    }


def test_code_fence_is_stripped():
    raw = '```json\n{"summary": "x"}\n```'
    assert strip_code_fence(raw) == '{"summary": "x"}'
    assert json.loads(repair_json(raw)) == {"summary": "x"}


def test_find_value_end_honours_strings_and_escapes():
    text = '{"k": "a \\" } b", "n": [1, [2]]} tail'
    assert find_value_end(text, 0) == text.index(" tail")
    assert find_value_end(text, text.index("[")) == text.index("]]") + 2
    assert find_value_end("12, 3", 0) == 2


@pytest.mark.parametrize("garbage", ["", "not json at all", "}}]]", "{[{[", '"'])
def test_repair_never_raises(garbage):
    assert isinstance(repair_json(garbage), str)
