"""Request budget shared by every call to the graph API."""

from __future__ import annotations

import asyncio
import time
from typing import Awaitable, Callable


class RateLimiter:
    """Hands out request slots at most ``max_per_second`` apart.

    ``throttle()`` reserves the next free slot before sleeping, so concurrent
    callers queue up on distinct, increasing slots instead of all reading the
    same timestamp and firing together. The reservation happens between two
    suspension points, which makes it atomic on the event loop.
    """

    def __init__(
        self,
        max_per_second: float,
        *,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        if max_per_second <= 0:
            raise ValueError("max_per_second must be positive")
        self.interval = 1.0 / max_per_second
        self._clock = clock
        self._sleep = sleep
        self._next_slot = 0.0

    async def throttle(self) -> float:
        """Wait for this caller's slot; returns the slot start time."""
        now = self._clock()
        slot = max(now, self._next_slot)
        self._next_slot = slot + self.interval
        wait = slot - now
        if wait > 0:
            await self._sleep(wait)
        return slot
