"""Error classification: retry decisions, user-facing kinds and delay hints."""

import pytest

from video_copilot.client.error_handler import (
    RetryReason,
    classify_error,
    classify_kind,
    extract_suggested_delay_ms,
    is_model_fault,
    is_retryable,
    retry_reason,
)
from video_copilot.exceptions import (
    ErrorKind,
    NonRetryableError,
    OperationCancelledError,
    ParseError,
    RetryableError,
    SchemaViolationError,
)

pytestmark = pytest.mark.unit


class FakeAPIError(Exception):
    """Mimics an SDK error that keeps its status outside the message."""

    def __init__(self, message: str, code: int, status: str):
        super().__init__(message)
        self.code = code
        self.status = status


@pytest.mark.parametrize(
    "message",
    [
        "429 Too Many Requests",
        "RESOURCE_EXHAUSTED: quota exceeded for metric",
        "503 Service Unavailable",
        "DEADLINE_EXCEEDED",
        "Internal error encountered",
        "Rate limit reached",
        "Request timeout after 120s",
    ],
)
def test_transient_errors_are_retryable(message):
    assert is_retryable(RuntimeError(message))
    assert is_retryable(message)


@pytest.mark.parametrize(
    "error",
    [
        RuntimeError("400 INVALID_ARGUMENT: bad request"),
        RuntimeError("API key not valid. Please pass a valid API key."),
        ParseError("Failed to parse JSON response: timeout in text"),
        SchemaViolationError(()),
        OperationCancelledError(),
        NonRetryableError("503 but already classified"),
    ],
)
def test_terminal_errors_are_not_retryable(error):
    assert not is_retryable(error)


def test_status_attributes_are_considered():
    error = FakeAPIError("Something went wrong", 429, "RESOURCE_EXHAUSTED")
    assert is_retryable(error)
    assert classify_kind(error) is ErrorKind.RATE_LIMITED


@pytest.mark.parametrize(
    ("message", "kind"),
    [
        ("API key not valid", ErrorKind.API_KEY_INVALID),
        ("403 PERMISSION_DENIED", ErrorKind.API_KEY_INVALID),
        ("429 quota exceeded", ErrorKind.RATE_LIMITED),
        ("deadline exceeded", ErrorKind.TIMEOUT),
        ("something odd", ErrorKind.ANALYSIS_FAILED),
    ],
)
def test_classify_kind(message, kind):
    assert classify_kind(RuntimeError(message)) is kind


def test_classify_error_wraps_with_kind_message_and_original():
    original = RuntimeError("429 Too Many Requests")

    classified = classify_error(original)

    assert isinstance(classified, RetryableError)
    assert classified.kind is ErrorKind.RATE_LIMITED
    assert str(classified) == "API rate limit exceeded. Please try again later."
    assert classified.original is original


def test_classify_error_keeps_unmapped_message_and_passes_package_errors():
    classified = classify_error(ValueError("400 malformed request"))
    assert isinstance(classified, NonRetryableError)
    assert str(classified) == "400 malformed request"

    parse_error = ParseError("bad json")
    assert classify_error(parse_error) is parse_error


@pytest.mark.parametrize(
    ("message", "expected_ms"),
    [
        ("429 Quota exceeded. Please retry in 12.5s.", 13_500),
        ('{"error": {"details": [{"retryDelay": "59s"}]}}', 60_000),
        ("Retry after 3 seconds", 4_000),
        ("429 Too Many Requests", None),
        ("Please retry in 0s", None),
        ("Retrying request after 503 Service Unavailable", None),
        ("retry 3 times, status 500 server error", None),
        ("Retry after 2 seconds", 3_000),
    ],
)
def test_extract_suggested_delay_ms(message, expected_ms):
    assert extract_suggested_delay_ms(RuntimeError(message)) == expected_ms


@pytest.mark.parametrize(
    ("message", "reason"),
    [
        ("RESOURCE_EXHAUSTED", RetryReason.QUOTA),
        ("429 Too Many Requests", RetryReason.RATE_LIMIT),
        ("timeout", RetryReason.TIMEOUT),
        ("503 UNAVAILABLE", RetryReason.SERVER_ERROR),
        ("connection reset", RetryReason.UNKNOWN),
    ],
)
def test_retry_reason(message, reason):
    assert retry_reason(message) is reason


def test_model_fault_detection_uses_classified_message():
    assert is_model_fault(RuntimeError("404 models/gemini-old is not found"))
    assert is_model_fault(classify_error(RuntimeError("models/gemini-old not found")))
    # rate-limit payloads that merely mention the model are rewritten first
    assert not is_model_fault(
        classify_error(RuntimeError("429 quota exceeded for model gemini-2.5-pro"))
    )
    assert not is_model_fault(ParseError("model output was not JSON"))
