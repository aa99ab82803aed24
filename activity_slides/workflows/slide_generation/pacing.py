"""Admission pacing for the document host's page-append primitive.

The host admits roughly 3 appends per rolling 10 seconds. FixedIntervalPacer
approximates that with a flat delay between units (4s keeps well under the
limit but wastes the burst allowance). SlidingWindowPacer enforces the window
exactly.
"""

from __future__ import annotations

import asyncio
import time
from collections import deque
from typing import Awaitable, Callable, Deque, Optional, Protocol

import structlog

from activity_slides.core.settings import Settings, settings as default_settings

logger = structlog.get_logger(__name__)

Sleep = Callable[[float], Awaitable[None]]


class InsertionPacer(Protocol):
    async def before_insert(self, index: int) -> None: ...


class FixedIntervalPacer:
    def __init__(self, delay_seconds: float, sleep: Optional[Sleep] = None):
        self.delay_seconds = max(0.0, float(delay_seconds))
        self._sleep = sleep or asyncio.sleep

    async def before_insert(self, index: int) -> None:
        if index <= 0 or self.delay_seconds <= 0:
            return
        logger.debug("insertion_pacing_wait", index=index, wait_seconds=self.delay_seconds)
        await self._sleep(self.delay_seconds)


class SlidingWindowPacer:
    def __init__(
        self,
        max_calls: int,
        window_seconds: float,
        sleep: Optional[Sleep] = None,
        clock: Optional[Callable[[], float]] = None,
    ):
        if max_calls < 1:
            raise ValueError("max_calls must be at least 1")
        if window_seconds <= 0:
            raise ValueError("window_seconds must be positive")
        self.max_calls = int(max_calls)
        self.window_seconds = float(window_seconds)
        self._sleep = sleep or asyncio.sleep
        self._clock = clock or time.monotonic
        self._admitted: Deque[float] = deque()

    def _evict(self, now: float) -> None:
        while self._admitted and now - self._admitted[0] >= self.window_seconds:
            self._admitted.popleft()

    async def before_insert(self, index: int) -> None:
        now = self._clock()
        self._evict(now)
        while len(self._admitted) >= self.max_calls:
            wait = self._admitted[0] + self.window_seconds - now
            if wait > 0:
                logger.debug("insertion_pacing_wait", index=index, wait_seconds=round(wait, 3))
                await self._sleep(wait)
            now = self._clock()
            self._evict(now)
        self._admitted.append(now)


def build_pacer(config: Optional[Settings] = None, sleep: Optional[Sleep] = None) -> InsertionPacer:
    config = config or default_settings
    if config.INSERTION_PACING_MODE == "window":
        return SlidingWindowPacer(
            max_calls=config.INSERTION_WINDOW_MAX_CALLS,
            window_seconds=config.INSERTION_WINDOW_SECONDS,
            sleep=sleep,
        )
    return FixedIntervalPacer(config.INSERTION_DELAY_SECONDS, sleep=sleep)
