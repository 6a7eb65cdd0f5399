"""
Bounded polling and cooperative run control.

Every wait against the target application goes through RetryPolicy: readiness
polls, fixed pacing delays and cancellation/pause checkpoints. Nothing in the
engine calls asyncio.sleep directly.
"""

import asyncio
import inspect
import logging
from typing import Awaitable, Callable, Optional, Union

from .errors import RunCancelled, SurfaceNotReady

logger = logging.getLogger(__name__)

Predicate = Callable[[], Union[bool, Awaitable[bool]]]
SleepFunc = Callable[[float], Awaitable[None]]


class RunToken:
    """
    Shared cancellation and pause state for one run.

    Cancellation is one-way. Pause blocks checkpoints on an event instead of
    spinning, and a cancel releases any paused waiter immediately.
    """

    def __init__(self):
        self._cancelled = asyncio.Event()
        self._resumed = asyncio.Event()
        self._resumed.set()

    @property
    def cancelled(self) -> bool:
        return self._cancelled.is_set()

    @property
    def paused(self) -> bool:
        return not self._resumed.is_set()

    def cancel(self):
        self._cancelled.set()
        self._resumed.set()

    def pause(self):
        if not self.cancelled:
            self._resumed.clear()

    def resume(self):
        self._resumed.set()

    def raise_if_cancelled(self):
        if self.cancelled:
            raise RunCancelled()

    async def checkpoint(self):
        """Raise if cancelled; block while paused."""
        self.raise_if_cancelled()
        if self.paused:
            logger.info("Run paused, waiting for resume...")
            await self._resumed.wait()
            self.raise_if_cancelled()
            logger.info("Run resumed")


class RetryPolicy:
    """
    Bounded poll helper.

    Usage:
        retry = RetryPolicy()
        ready = await retry.poll_until_ready(
            lambda: target.is_surface_ready(Surface.SELL_DIALOG), 30, 60
        )

    Intervals are in milliseconds. The sleep function is injectable so tests
    can run the whole engine without wall-clock waits.
    """

    def __init__(self, sleep: Optional[SleepFunc] = None):
        self._sleep = sleep or asyncio.sleep

    async def poll_until_ready(
        self,
        predicate: Predicate,
        max_attempts: int,
        interval: int,
        token: Optional[RunToken] = None,
    ) -> bool:
        """Call predicate up to max_attempts times, interval ms apart."""
        for attempt in range(1, max_attempts + 1):
            if token:
                await token.checkpoint()
            try:
                result = predicate()
                if inspect.isawaitable(result):
                    result = await result
                if result:
                    return True
            except RunCancelled:
                raise
            except Exception as e:
                logger.debug(f"Poll attempt {attempt}/{max_attempts} raised: {e}")
            if attempt < max_attempts:
                await self._sleep(interval / 1000)
        return False

    async def require(
        self,
        predicate: Predicate,
        max_attempts: int,
        interval: int,
        surface: str,
        token: Optional[RunToken] = None,
    ):
        """Like poll_until_ready, but raise SurfaceNotReady on exhaustion."""
        if not await self.poll_until_ready(predicate, max_attempts, interval, token):
            raise SurfaceNotReady(surface, max_attempts)

    async def delay(self, ms: int, token: Optional[RunToken] = None):
        """Paced wait with checkpoints on both sides."""
        if token:
            await token.checkpoint()
        if ms > 0:
            await self._sleep(ms / 1000)
        if token:
            await token.checkpoint()
