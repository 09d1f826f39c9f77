"""Minimum-spacing rate limiting for provider requests."""

from __future__ import annotations

import asyncio
from collections.abc import Callable
import logging
import math
import time

from video_copilot.client.retry import SleepFn, cancellable_sleep
from video_copilot.constants import API_TIERS, RATE_LIMIT_DELAY_MS

log = logging.getLogger(__name__)


class RateLimiter:
    """Ensures successive ``acquire()`` calls resolve at least ``min_delay_ms`` apart.

    One instance is shared by every request against a provider. The clock
    returns seconds and is injectable for tests, as is the sleep function.
    """

    def __init__(
        self,
        min_delay_ms: int = RATE_LIMIT_DELAY_MS,
        *,
        clock: Callable[[], float] = time.monotonic,
        sleep: SleepFn = asyncio.sleep,
    ):
        if min_delay_ms < 0:
            raise ValueError("min_delay_ms must be >= 0")
        self.min_delay_ms = min_delay_ms
        self._clock = clock
        self._sleep = sleep
        self._last_acquired: float | None = None
        self._lock = asyncio.Lock()

    @classmethod
    def for_tier(cls, tier: str, **kwargs) -> "RateLimiter":
        """Build a limiter using the spacing of a known API tier."""
        try:
            _rpm, delay_ms, _parallel = API_TIERS[tier]
        except KeyError:
            raise ValueError(f"Unknown API tier: {tier!r}") from None
        return cls(delay_ms, **kwargs)

    async def acquire(self, cancel_event: asyncio.Event | None = None) -> None:
        """Wait until a request may be sent, then claim the slot."""
        async with self._lock:
            if self._last_acquired is not None:
                elapsed_ms = (self._clock() - self._last_acquired) * 1000
                wait_ms = self.min_delay_ms - elapsed_ms
                if wait_ms > 0:
                    log.debug("Rate limiting: waiting %.0fms", wait_ms)
                    await cancellable_sleep(
                        math.ceil(wait_ms), cancel_event, sleep=self._sleep
                    )
            self._last_acquired = self._clock()

    def reset(self) -> None:
        """Forget the previous request so the next acquire is immediate."""
        self._last_acquired = None
