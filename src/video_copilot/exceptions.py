"""Exceptions raised by the video analysis copilot.

Every error that leaves the package derives from ``VideoCopilotError``.
Provider failures carry an ``ErrorKind`` so callers can branch on the
user-facing taxonomy without string matching.
"""

from __future__ import annotations

from enum import Enum
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from video_copilot.response.validation import Violation


class ErrorKind(str, Enum):
    """User-facing error taxonomy."""

    API_KEY_INVALID = "api_key_invalid"
    RATE_LIMITED = "rate_limited"
    TIMEOUT = "timeout"
    ANALYSIS_FAILED = "analysis_failed"
    CANCELLED = "cancelled"
    INVALID_INPUT = "invalid_input"
    PARSE_ERROR = "parse_error"
    SCHEMA_VIOLATION = "schema_violation"


class VideoCopilotError(Exception):
    """Base exception for all video copilot errors."""

    kind: ErrorKind = ErrorKind.ANALYSIS_FAILED


class ConfigurationError(VideoCopilotError):
    """Raised when settings cannot be resolved into a usable configuration."""


class InvalidInputError(VideoCopilotError):
    """Raised when analysis input fails validation."""

    kind = ErrorKind.INVALID_INPUT

    def __init__(self, errors: list[str] | tuple[str, ...]):
        self.errors = tuple(errors)
        super().__init__(f"Invalid input: {'; '.join(self.errors)}")


class OperationCancelledError(VideoCopilotError):
    """Raised when the caller's cancellation signal fires."""

    kind = ErrorKind.CANCELLED

    def __init__(self, message: str = "Operation cancelled"):
        super().__init__(message)


class ProviderError(VideoCopilotError):
    """A classified failure of the model provider."""

    def __init__(
        self,
        message: str,
        *,
        kind: ErrorKind = ErrorKind.ANALYSIS_FAILED,
        original: BaseException | None = None,
    ):
        super().__init__(message)
        self.kind = kind
        self.original = original


class RetryableError(ProviderError):
    """Provider failure that may succeed on a later attempt."""


class NonRetryableError(ProviderError):
    """Provider failure that will not succeed by retrying."""


class ParseError(VideoCopilotError):
    """Model output could not be turned into JSON, even after repair."""

    kind = ErrorKind.PARSE_ERROR

    def __init__(self, message: str, *, raw_preview: str = ""):
        super().__init__(message)
        self.raw_preview = raw_preview


class SchemaViolationError(VideoCopilotError):
    """Normalized output does not match the category schema."""

    kind = ErrorKind.SCHEMA_VIOLATION

    def __init__(self, violations: tuple[Violation, ...]):
        self.violations = violations
        super().__init__(f"Schema validation failed: {self.summary}")

    @property
    def summary(self) -> str:
        """Violations rendered as ``path: message`` joined by ``; ``."""
        return "; ".join(f"{v.path}: {v.message}" for v in self.violations)
