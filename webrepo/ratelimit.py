"""Spacing of forum write calls."""

from __future__ import annotations

import asyncio
import logging
import time
from typing import Awaitable, Callable, Optional

logger = logging.getLogger("webrepo.ratelimit")

Clock = Callable[[], float]
Sleeper = Callable[[float], Awaitable[None]]


class ForumRateLimiter:
    """Keep successive forum writes at least ``interval`` seconds apart.

    One instance is shared by every caller in the process. Waiters are not
    served in FIFO order; whichever waiter re-checks first after the interval
    has passed proceeds.
    """

    def __init__(
        self,
        interval: float = 5.0,
        *,
        clock: Clock = time.monotonic,
        sleep: Sleeper = asyncio.sleep,
    ):
        self.interval = interval
        self._clock = clock
        self._sleep = sleep
        self._last_call: Optional[float] = None

    @property
    def last_call(self) -> Optional[float]:
        return self._last_call

    async def acquire(self) -> None:
        while True:
            now = self._clock()
            if self._last_call is None or now - self._last_call >= self.interval:
                self._last_call = now
                return
            wait = self.interval - (now - self._last_call)
            logger.debug("Forum write throttled for %.2fs", wait)
            await self._sleep(wait)


__all__ = ["ForumRateLimiter"]
