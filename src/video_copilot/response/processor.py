"""Raw model text to validated category result.

The pipeline is parse, repair on failure, normalize, cap, default, validate.
Parse and schema failures are terminal and are raised as ``ParseError`` and
``SchemaViolationError``.
"""

from __future__ import annotations

import json
import logging
from typing import Any

from pydantic import BaseModel

from video_copilot.constants import RAW_PREVIEW_CHARS
from video_copilot.core.types import Failure
from video_copilot.exceptions import ParseError
from video_copilot.response.normalizer import normalize_document
from video_copilot.response.repair import DUPLICATE_KEYS, repair_json, strip_code_fence
from video_copilot.response.validation import validate_document

log = logging.getLogger(__name__)


def _first_wins_pairs(pairs: list[tuple[str, Any]]) -> dict[str, Any]:
    """Object hook keeping the first value of stuttered keys, the last otherwise."""
    result: dict[str, Any] = {}
    for key, value in pairs:
        if key in result and key in DUPLICATE_KEYS:
            continue
        result[key] = value
    return result


def _loads(text: str) -> Any:
    return json.loads(text, object_pairs_hook=_first_wins_pairs)


def parse_model_json(text: str) -> Any:
    """Decode model output, repairing it if the first attempt fails.

    Raises:
        ParseError: If the repaired text still does not decode.
    """
    try:
        return _loads(strip_code_fence(text))
    except json.JSONDecodeError as first_error:
        log.warning(
            "JSON parsing failed (%s), attempting repair on %d chars",
            first_error,
            len(text),
        )
        repaired = repair_json(text)
        try:
            parsed = _loads(repaired)
        except json.JSONDecodeError as e:
            log.error("JSON repair failed: %s; repaired preview: %.500s", e, repaired)
            raise ParseError(
                f"Failed to parse JSON response: {first_error}",
                raw_preview=text[:RAW_PREVIEW_CHARS],
            ) from e
        log.info("JSON parsing succeeded after repair")
        return parsed


def parse_and_validate_response[M: BaseModel](
    text: str, schema: type[M], category: str | None = None
) -> M:
    """Run the full pipeline and return the validated model.

    Raises:
        ParseError: Unrecoverable JSON.
        SchemaViolationError: Normalized document does not match ``schema``.
    """
    parsed = parse_model_json(text)
    normalized = normalize_document(parsed, category)
    result = validate_document(normalized, schema)
    if isinstance(result, Failure):
        log.error(
            "Response validation failed for %s: %s",
            schema.__name__,
            result.error.summary,
        )
        raise result.error
    return result.value
