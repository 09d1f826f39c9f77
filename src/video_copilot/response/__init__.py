"""
Response handling: repair malformed JSON, normalize its shape and validate it
against the category schemas.
"""  # noqa: D212

from .enums import normalize_enum_value
from .normalizer import (
    add_required_defaults,
    enforce_array_sizes,
    normalize_document,
    normalize_response,
)
from .processor import parse_and_validate_response, parse_model_json
from .repair import find_value_end, repair_json
from .validation import Violation, validate_document

__all__ = [  # noqa: RUF022
    # Repair
    "repair_json",
    "find_value_end",
    # Normalization
    "normalize_response",
    "enforce_array_sizes",
    "add_required_defaults",
    "normalize_document",
    "normalize_enum_value",
    # Validation
    "Violation",
    "validate_document",
    # Pipeline
    "parse_model_json",
    "parse_and_validate_response",
]
