"""Retry loop, backoff schedule and cancellable sleeps."""

import asyncio

import pytest

from video_copilot.client.error_handler import RetryReason
from video_copilot.client.retry import (
    RetryPolicy,
    cancellable_sleep,
    compute_backoff_delay_ms,
    retry_message,
    with_retry,
)
from video_copilot.exceptions import (
    ErrorKind,
    NonRetryableError,
    OperationCancelledError,
    ParseError,
    RetryableError,
)

pytestmark = pytest.mark.unit


class FlakyOperation:
    """Fails with the given errors in order, then returns ``result``."""

    def __init__(self, *errors: BaseException, result: str = "done"):
        self.errors = list(errors)
        self.result = result
        self.calls = 0

    async def __call__(self) -> str:
        self.calls += 1
        if self.errors:
            raise self.errors.pop(0)
        return self.result


def test_policy_rejects_negative_values():
    with pytest.raises(ValueError, match="max_retries"):
        RetryPolicy(max_retries=-1)
    with pytest.raises(ValueError, match="delays"):
        RetryPolicy(base_delay_ms=-5)


@pytest.mark.parametrize(
    ("attempt", "random_value", "expected"),
    [
        (0, 0.5, 2000),
        (1, 0.5, 4000),
        (0, 0.0, 1500),
        (0, 1.0, 2500),
        (10, 0.5, 65000),
    ],
)
def test_exponential_backoff_with_jitter(attempt, random_value, expected):
    policy = RetryPolicy()
    assert (
        compute_backoff_delay_ms(attempt, policy, random_fn=lambda: random_value)
        == expected
    )


def test_suggested_delay_wins_and_is_not_jittered():
    policy = RetryPolicy()
    error = RuntimeError("429 quota. Please retry in 12.5s")

    assert compute_backoff_delay_ms(0, policy, error, random_fn=lambda: 0.0) == 13_500


def test_suggested_delay_is_clamped_to_max():
    policy = RetryPolicy(max_delay_ms=10_000)
    error = RuntimeError("Please retry in 59s")
    assert compute_backoff_delay_ms(0, policy, error) == 10_000


def test_retry_message_counts_remaining_attempts():
    message = retry_message(RetryReason.RATE_LIMIT, 1500, attempt=1, max_retries=5)
    assert message == "Rate limited by API. Waiting 2s before retry (4 attempts left)..."


@pytest.mark.asyncio
async def test_success_after_transient_failures(recording_sleep):
    op = FlakyOperation(RuntimeError("503 unavailable"), RuntimeError("503 unavailable"))
    infos = []

    result = await with_retry(
        op,
        policy=RetryPolicy(max_retries=3, base_delay_ms=100, max_delay_ms=1000),
        on_retry=infos.append,
        sleep=recording_sleep,
        random_fn=lambda: 0.5,
    )

    assert result == "done"
    assert op.calls == 3
    assert recording_sleep.calls == [0.1, 0.2]
    assert [i.attempt for i in infos] == [1, 2]
    assert infos[0].reason is RetryReason.SERVER_ERROR
    assert infos[0].max_retries == 3


@pytest.mark.asyncio
async def test_exhaustion_makes_max_retries_plus_one_calls(recording_sleep):
    policy = RetryPolicy(max_retries=4, base_delay_ms=1000, max_delay_ms=3000)
    op = FlakyOperation(*[RuntimeError("429 Too Many Requests")] * 10)

    with pytest.raises(RetryableError) as exc_info:
        await with_retry(op, policy=policy, sleep=recording_sleep)

    assert op.calls == 5
    assert len(recording_sleep.calls) == 4
    assert all(0 <= s <= 3.0 for s in recording_sleep.calls)
    assert exc_info.value.kind is ErrorKind.RATE_LIMITED
    assert isinstance(exc_info.value.__cause__, RuntimeError)


@pytest.mark.asyncio
async def test_non_retryable_error_is_raised_immediately(recording_sleep):
    op = FlakyOperation(RuntimeError("API key not valid"))

    with pytest.raises(NonRetryableError) as exc_info:
        await with_retry(op, sleep=recording_sleep)

    assert op.calls == 1
    assert recording_sleep.calls == []
    assert exc_info.value.kind is ErrorKind.API_KEY_INVALID


@pytest.mark.asyncio
async def test_package_errors_propagate_unchanged(recording_sleep):
    parse_error = ParseError("bad json")
    op = FlakyOperation(parse_error)

    with pytest.raises(ParseError) as exc_info:
        await with_retry(op, sleep=recording_sleep)

    assert exc_info.value is parse_error
    assert op.calls == 1


@pytest.mark.asyncio
async def test_provider_hint_drives_the_sleep(recording_sleep):
    op = FlakyOperation(RuntimeError("429 quota exceeded. Please retry in 12.5s"))
    infos = []

    await with_retry(op, on_retry=infos.append, sleep=recording_sleep)

    assert infos[0].delay_ms == 13_500
    assert recording_sleep.calls == [13.5]


@pytest.mark.asyncio
async def test_cancelled_before_first_attempt():
    cancel = asyncio.Event()
    cancel.set()
    op = FlakyOperation()

    with pytest.raises(OperationCancelledError):
        await with_retry(op, cancel_event=cancel)

    assert op.calls == 0


@pytest.mark.asyncio
async def test_cancellation_interrupts_a_pending_sleep():
    cancel = asyncio.Event()

    async def cancel_soon():
        await asyncio.sleep(0)
        cancel.set()

    canceller = asyncio.ensure_future(cancel_soon())
    with pytest.raises(OperationCancelledError):
        # Would block for an hour without the cancellation signal
        await asyncio.wait_for(cancellable_sleep(3_600_000, cancel), timeout=5)
    await canceller


@pytest.mark.asyncio
async def test_cancellable_sleep_completes_without_signal(recording_sleep):
    await cancellable_sleep(250, asyncio.Event(), sleep=recording_sleep)
    assert recording_sleep.calls == [0.25]


@pytest.mark.asyncio
async def test_package_error_is_not_chained_to_itself(recording_sleep):
    exhausted = RetryableError("still busy", kind=ErrorKind.RATE_LIMITED)
    op = FlakyOperation(*[exhausted] * 3)

    with pytest.raises(RetryableError) as exc_info:
        await with_retry(
            op,
            policy=RetryPolicy(max_retries=2, base_delay_ms=10, max_delay_ms=100),
            sleep=recording_sleep,
        )

    assert exc_info.value is exhausted
    assert exc_info.value.__cause__ is not exhausted
