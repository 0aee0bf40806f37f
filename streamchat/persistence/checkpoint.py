"""Periodic checkpointing of an in-progress transcript.

Streaming produces many content deltas per second. Writing on every
delta would dominate I/O, so the scheduler writes a lightweight
snapshot at most once per interval, in the background, and never starts
a write while the previous one is still running.
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Awaitable, Callable

from streamchat.schemas.transcript import Transcript

logger = logging.getLogger(__name__)

# Persists one snapshot; the scheduler ignores the return value
Persist = Callable[[Transcript], Awaitable[object]]


class CheckpointScheduler:
    """Decides when a streaming transcript is flushed to storage.

    Args:
        persist: Coroutine function performing a lightweight save.
        interval: Minimum seconds between checkpoints.
        clock: Monotonic clock, injectable for tests.
    """

    def __init__(
        self,
        persist: Persist,
        *,
        interval: float = 3.0,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._persist = persist
        self._interval = interval
        self._clock = clock
        self._last = clock()
        self._task: asyncio.Task[None] | None = None
        self.checkpoints = 0
        self.failures = 0

    @property
    def interval(self) -> float:
        return self._interval

    @property
    def in_flight(self) -> bool:
        """Whether a checkpoint write is still running."""
        return self._task is not None and not self._task.done()

    def maybe_checkpoint(self, transcript: Transcript) -> bool:
        """Start a checkpoint if the interval has elapsed.

        Returns True when a write was started. A decision that arrives
        while a write is in flight is skipped, not queued.
        """
        now = self._clock()
        if now - self._last <= self._interval:
            return False
        if self.in_flight:
            logger.debug("Checkpoint skipped, previous write still in flight")
            return False

        snapshot = transcript.model_copy(deep=True)
        self._last = now
        self.checkpoints += 1
        self._task = asyncio.create_task(self._run(snapshot))
        return True

    async def _run(self, snapshot: Transcript) -> None:
        try:
            await self._persist(snapshot)
        except Exception as e:
            self.failures += 1
            logger.warning("Checkpoint failed, stream continues: %s", e)
        else:
            logger.debug("Checkpoint %d written", self.checkpoints)

    async def drain(self) -> None:
        """Wait for the in-flight checkpoint, if any, to finish."""
        task, self._task = self._task, None
        if task is not None:
            await task
