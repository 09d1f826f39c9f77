"""Classification of provider errors into retry decisions and user-facing kinds.

All matching is case-insensitive substring or regex search over the error
text, so the rules work for SDK exceptions, HTTP errors and plain strings
alike. Pattern tables live at module scope to keep them reviewable as data.
"""

from __future__ import annotations

from enum import Enum
import math
import re

from video_copilot.exceptions import (
    ErrorKind,
    NonRetryableError,
    OperationCancelledError,
    ParseError,
    ProviderError,
    RetryableError,
    SchemaViolationError,
    VideoCopilotError,
)

# Transient provider conditions worth another attempt
RETRYABLE_PATTERNS: tuple[str, ...] = (
    "resource_exhausted",
    "unavailable",
    "deadline_exceeded",
    "internal",
    "rate limit",
    "quota exceeded",
    "503",
    "429",
    "timeout",
)

_API_KEY_PATTERNS = ("api key", "unauthorized", "403")
_RATE_LIMIT_PATTERNS = ("rate limit", "quota", "429")
_TIMEOUT_PATTERNS = ("timeout", "deadline")

# Provider rejects the model itself (unknown, retired, not enabled)
_MODEL_FAULT_PATTERNS = ("model",)

_SUGGESTED_DELAY_PATTERNS: tuple[re.Pattern[str], ...] = (
    re.compile(r"Please retry in (\d+(?:\.\d+)?)\s*s", re.IGNORECASE),
    re.compile(r"retryDelay\W*(\d+(?:\.\d+)?)s\b", re.IGNORECASE),
    re.compile(
        r"retry\w*\s+(?:in|after)\s+(\d+(?:\.\d+)?)\s*(?:seconds?|s)\b", re.IGNORECASE
    ),
)

_KIND_MESSAGES = {
    ErrorKind.API_KEY_INVALID: "Invalid or missing Gemini API key.",
    ErrorKind.RATE_LIMITED: "API rate limit exceeded. Please try again later.",
    ErrorKind.TIMEOUT: "Analysis request timed out. Try with shorter content.",
}

# Errors that describe the response or the caller, never the provider
_TERMINAL_TYPES = (
    ParseError,
    SchemaViolationError,
    OperationCancelledError,
    NonRetryableError,
)


class RetryReason(str, Enum):
    QUOTA = "quota"
    RATE_LIMIT = "rate_limit"
    TIMEOUT = "timeout"
    SERVER_ERROR = "server_error"
    UNKNOWN = "unknown"


def _error_text(error: BaseException | str) -> str:
    """Lower-cased text used for matching, including SDK status fields."""
    if isinstance(error, str):
        return error.lower()
    parts = [str(error)]
    # google-genai APIError exposes code/status alongside the message
    for attr in ("code", "status"):
        value = getattr(error, attr, None)
        if value is not None:
            parts.append(str(value))
    return " ".join(parts).lower()


def is_retryable(error: BaseException | str) -> bool:
    """Whether another attempt could plausibly succeed."""
    if isinstance(error, _TERMINAL_TYPES):
        return False
    if isinstance(error, RetryableError):
        return True
    text = _error_text(error)
    return any(pattern in text for pattern in RETRYABLE_PATTERNS)


def classify_kind(error: BaseException | str) -> ErrorKind:
    """Map an error onto the user-facing taxonomy."""
    if isinstance(error, VideoCopilotError):
        return error.kind
    text = _error_text(error)
    if any(p in text for p in _API_KEY_PATTERNS):
        return ErrorKind.API_KEY_INVALID
    if any(p in text for p in _RATE_LIMIT_PATTERNS):
        return ErrorKind.RATE_LIMITED
    if any(p in text for p in _TIMEOUT_PATTERNS):
        return ErrorKind.TIMEOUT
    return ErrorKind.ANALYSIS_FAILED


def classify_error(error: BaseException | str) -> VideoCopilotError:
    """Wrap an arbitrary error into the package hierarchy.

    Already-classified errors pass through unchanged. The returned error keeps
    the original on ``.original`` and should be raised ``from`` it.
    """
    if isinstance(error, VideoCopilotError):
        return error
    kind = classify_kind(error)
    message = _KIND_MESSAGES.get(kind) or str(error) or "Analysis failed after maximum retries."
    original = error if isinstance(error, BaseException) else None
    cls: type[ProviderError] = (
        RetryableError if is_retryable(error) else NonRetryableError
    )
    return cls(message, kind=kind, original=original)


def extract_suggested_delay_ms(error: BaseException | str) -> int | None:
    """Provider-suggested wait in milliseconds, plus one second of headroom."""
    message = str(error)
    for pattern in _SUGGESTED_DELAY_PATTERNS:
        match = pattern.search(message)
        if not match:
            continue
        seconds = float(match.group(1))
        if seconds > 0:
            return math.ceil((seconds + 1) * 1000)
    return None


def retry_reason(error: BaseException | str) -> RetryReason:
    text = _error_text(error)
    if "quota" in text or "resource_exhausted" in text:
        return RetryReason.QUOTA
    if "rate limit" in text or "429" in text:
        return RetryReason.RATE_LIMIT
    if "timeout" in text or "deadline" in text:
        return RetryReason.TIMEOUT
    if "503" in text or "unavailable" in text or "internal" in text:
        return RetryReason.SERVER_ERROR
    return RetryReason.UNKNOWN


def is_model_fault(error: BaseException | str) -> bool:
    """Whether the failure points at the selected model rather than the request.

    Only the classified message is inspected: rate-limit and quota errors are
    rewritten to a fixed message, so a quota payload that merely names the
    model does not trigger a re-probe.
    """
    if isinstance(error, ParseError | SchemaViolationError | OperationCancelledError):
        return False
    text = str(error).lower()
    return any(p in text for p in _MODEL_FAULT_PATTERNS)
