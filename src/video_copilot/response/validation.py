"""Schema validation of normalized documents."""

from __future__ import annotations

import dataclasses
import logging
from typing import Any

from pydantic import BaseModel, ValidationError

from video_copilot.core.types import Failure, Result, Success
from video_copilot.exceptions import SchemaViolationError

log = logging.getLogger(__name__)

ROOT_PATH = "(root)"


@dataclasses.dataclass(frozen=True, slots=True)
class Violation:
    """A single schema violation: dotted path, message and error code."""

    path: str
    message: str
    code: str


def violations_from_error(error: ValidationError) -> tuple[Violation, ...]:
    return tuple(
        Violation(
            path=".".join(str(part) for part in detail["loc"]) or ROOT_PATH,
            message=detail["msg"],
            code=detail["type"],
        )
        for detail in error.errors()
    )


def format_violations(violations: tuple[Violation, ...]) -> str:
    return "; ".join(f"{v.path}: {v.message}" for v in violations)


def validate_document[M: BaseModel](
    doc: Any, schema: type[M]
) -> Result[M, SchemaViolationError]:
    """Validate ``doc`` against ``schema`` without raising."""
    try:
        return Success(schema.model_validate(doc))
    except ValidationError as e:
        violations = violations_from_error(e)
        log.debug(
            "%s validation failed with %d violation(s): %s",
            schema.__name__,
            len(violations),
            format_violations(violations),
        )
        return Failure(SchemaViolationError(violations))
