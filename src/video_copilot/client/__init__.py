"""
Provider-facing components: error classification, retry, rate limiting and
the model provider adapter.
"""  # noqa: D212

from .error_handler import (
    RetryReason,
    classify_error,
    classify_kind,
    extract_suggested_delay_ms,
    is_model_fault,
    is_retryable,
)
from .model_state import WorkingModelState
from .provider import GenerationRequest, GoogleGenAIProvider, InlinePart, ModelProvider
from .rate_limiter import RateLimiter
from .retry import RetryInfo, RetryPolicy, compute_backoff_delay_ms, with_retry

__all__ = [  # noqa: RUF022
    # Classification
    "RetryReason",
    "classify_error",
    "classify_kind",
    "extract_suggested_delay_ms",
    "is_model_fault",
    "is_retryable",
    # Retry and pacing
    "RetryInfo",
    "RetryPolicy",
    "compute_backoff_delay_ms",
    "with_retry",
    "RateLimiter",
    # Provider
    "GenerationRequest",
    "GoogleGenAIProvider",
    "InlinePart",
    "ModelProvider",
    "WorkingModelState",
]
