"""Polling observer for external transcript changes.

Watches a single transcript file and emits TRANSCRIPT_CHANGED with the
new document text whenever its modification time or size changes. It
shares nothing with the session write path: it only reads, and the
store's atomic replace guarantees it never sees half a document.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
from pathlib import Path

from streamchat.notifications import NotificationEmitter, NotificationType

logger = logging.getLogger(__name__)


class TranscriptWatcher:
    """Polls one transcript file from a background task."""

    def __init__(
        self,
        identifier: str,
        emitter: NotificationEmitter,
        *,
        poll_interval: float = 0.5,
    ) -> None:
        self._path = Path(identifier)
        self._emitter = emitter
        self._poll_interval = poll_interval
        self._signature: tuple[int, int] | None = None
        self._task: asyncio.Task[None] | None = None

    @property
    def identifier(self) -> str:
        return str(self._path)

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        """Start polling. The current file state is the baseline."""
        if self.running:
            return
        self._signature = self._stat()
        self._task = asyncio.create_task(self._loop())

    async def stop(self) -> None:
        """Stop polling and wait for the task to exit."""
        task, self._task = self._task, None
        if task is not None:
            task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await task

    def watch(self, identifier: str) -> None:
        """Point the watcher at another transcript (e.g. after a fork)."""
        self._path = Path(identifier)
        self._signature = self._stat()

    def _stat(self) -> tuple[int, int] | None:
        try:
            stat = self._path.stat()
        except OSError:
            return None
        return stat.st_mtime_ns, stat.st_size

    async def poll(self) -> bool:
        """Check the file once; emit and return True if it changed."""
        signature = self._stat()
        if signature == self._signature:
            return False
        self._signature = signature
        if signature is None:
            logger.debug("Watched transcript disappeared: %s", self._path)
            return False

        try:
            data = await asyncio.to_thread(self._path.read_text, encoding="utf-8")
        except OSError as e:
            logger.warning("Failed to read updated transcript %s: %s", self._path, e)
            return False

        await self._emitter.emit(
            NotificationType.TRANSCRIPT_CHANGED,
            identifier=str(self._path),
            filename=self._path.stem,
            data=data,
        )
        return True

    async def _loop(self) -> None:
        while True:
            await asyncio.sleep(self._poll_interval)
            await self.poll()
