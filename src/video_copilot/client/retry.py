"""Retry with exponential backoff, provider delay hints and cancellation.

Delays are expressed in milliseconds throughout and converted to seconds
only at the sleep boundary.
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
import dataclasses
import logging
import random
from typing import Any

from video_copilot.client.error_handler import (
    RetryReason,
    classify_error,
    extract_suggested_delay_ms,
    is_retryable,
    retry_reason,
)
from video_copilot.constants import (
    MAX_RETRIES,
    RETRY_BASE_DELAY_MS,
    RETRY_JITTER_RATIO,
    RETRY_MAX_DELAY_MS,
)
from video_copilot.core.types import RetryState
from video_copilot.exceptions import OperationCancelledError

log = logging.getLogger(__name__)

SleepFn = Callable[[float], Awaitable[Any]]


@dataclasses.dataclass(frozen=True, slots=True)
class RetryPolicy:
    max_retries: int = MAX_RETRIES
    base_delay_ms: int = RETRY_BASE_DELAY_MS
    max_delay_ms: int = RETRY_MAX_DELAY_MS

    def __post_init__(self) -> None:
        if self.max_retries < 0:
            raise ValueError("max_retries must be >= 0")
        if self.base_delay_ms < 0 or self.max_delay_ms < 0:
            raise ValueError("retry delays must be >= 0")


@dataclasses.dataclass(frozen=True, slots=True)
class RetryInfo:
    """What the caller is told before each backoff sleep."""

    reason: RetryReason
    attempt: int  # 1-indexed attempt that just failed
    max_retries: int
    delay_ms: int
    message: str


_RETRY_MESSAGES = {
    RetryReason.QUOTA: "API quota exceeded. Waiting {s}s before retry ({left} attempts left)...",
    RetryReason.RATE_LIMIT: "Rate limited by API. Waiting {s}s before retry ({left} attempts left)...",
    RetryReason.TIMEOUT: "Request timed out. Retrying in {s}s ({left} attempts left)...",
    RetryReason.SERVER_ERROR: "Server temporarily unavailable. Retrying in {s}s ({left} attempts left)...",
    RetryReason.UNKNOWN: "Temporary error. Retrying in {s}s ({left} attempts left)...",
}


def retry_message(
    reason: RetryReason, delay_ms: int, attempt: int, max_retries: int
) -> str:
    """Human-readable retry notice; ``attempt`` is the 0-indexed failed attempt."""
    seconds = -(-delay_ms // 1000)
    return _RETRY_MESSAGES[reason].format(s=seconds, left=max_retries - attempt)


def compute_backoff_delay_ms(
    attempt: int,
    policy: RetryPolicy,
    error: BaseException | None = None,
    *,
    random_fn: Callable[[], float] = random.random,
) -> int:
    """Delay before the next attempt, always within ``[0, max_delay_ms]``.

    A provider-suggested delay wins over the exponential schedule and is not
    jittered. Otherwise ``base * 2**attempt`` is spread by +/-25%.
    """
    if error is not None:
        suggested = extract_suggested_delay_ms(error)
        if suggested is not None:
            return min(suggested, policy.max_delay_ms)

    exponential = policy.base_delay_ms * (2**attempt)
    jitter = exponential * RETRY_JITTER_RATIO * (random_fn() * 2 - 1)
    return int(max(0, min(exponential + jitter, policy.max_delay_ms)))


async def cancellable_sleep(
    delay_ms: int,
    cancel_event: asyncio.Event | None = None,
    *,
    sleep: SleepFn = asyncio.sleep,
) -> None:
    """Sleep for ``delay_ms``, raising as soon as ``cancel_event`` is set."""
    if cancel_event is None:
        await sleep(delay_ms / 1000)
        return
    if cancel_event.is_set():
        raise OperationCancelledError()

    sleeper = asyncio.ensure_future(sleep(delay_ms / 1000))
    waiter = asyncio.ensure_future(cancel_event.wait())
    try:
        await asyncio.wait({sleeper, waiter}, return_when=asyncio.FIRST_COMPLETED)
    finally:
        for fut in (sleeper, waiter):
            if not fut.done():
                fut.cancel()
    if cancel_event.is_set():
        raise OperationCancelledError()


def _classified(error: Exception) -> Exception:
    """Classify ``error``, chaining it as the cause when it was wrapped."""
    classified = classify_error(error)
    if classified is not error:
        classified.__cause__ = error
    return classified

async def with_retry[T](
    operation: Callable[[], Awaitable[T]],
    *,
    policy: RetryPolicy | None = None,
    cancel_event: asyncio.Event | None = None,
    on_retry: Callable[[RetryInfo], None] | None = None,
    context: dict[str, Any] | None = None,
    sleep: SleepFn = asyncio.sleep,
    random_fn: Callable[[], float] = random.random,
) -> T:
    """Run ``operation`` until it succeeds, fails terminally, or retries run out.

    The operation is invoked at most ``policy.max_retries + 1`` times.
    Non-retryable and exhausted errors are classified and raised with the
    original attached as ``__cause__``.

    Raises:
        OperationCancelledError: When ``cancel_event`` fires before an attempt
            or during a backoff sleep.
        VideoCopilotError: The classified terminal error.
    """
    policy = policy or RetryPolicy()
    ctx = context or {}
    state = RetryState()

    for attempt in range(policy.max_retries + 1):
        state.attempt = attempt
        if cancel_event is not None and cancel_event.is_set():
            raise OperationCancelledError()
        try:
            return await operation()
        except OperationCancelledError:
            raise
        except Exception as e:
            state.last_error = e
            if not is_retryable(e):
                raise _classified(e)
            if attempt >= policy.max_retries:
                log.error(
                    "Max retries exceeded after %d attempts (%s): %s",
                    attempt + 1,
                    ctx,
                    e,
                )
                raise _classified(e)

            delay_ms = compute_backoff_delay_ms(
                attempt, policy, e, random_fn=random_fn
            )
            state.next_delay_ms = delay_ms
            reason = retry_reason(e)
            log.warning(
                "Retrying after %s error (attempt %d/%d, delay %dms, %s): %s",
                reason.value,
                attempt + 1,
                policy.max_retries,
                delay_ms,
                ctx,
                e,
            )
            if on_retry is not None:
                on_retry(
                    RetryInfo(
                        reason=reason,
                        attempt=attempt + 1,
                        max_retries=policy.max_retries,
                        delay_ms=delay_ms,
                        message=retry_message(
                            reason, delay_ms, attempt, policy.max_retries
                        ),
                    )
                )
            await cancellable_sleep(delay_ms, cancel_event, sleep=sleep)

    # Unreachable: the loop either returns or raises
    raise classify_error(state.last_error or RuntimeError("retry loop exited"))
