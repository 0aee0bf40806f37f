"""Notification emitter for presentation-layer updates.

Emits structured notifications while a session streams (placeholder,
progress, final) and while transcripts change on disk (loaded, list
changed, deleted, changed). A front end subscribes by adding listeners.
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Callable
from enum import StrEnum
from typing import Any

from pydantic import BaseModel, Field

logger = logging.getLogger(__name__)


class NotificationType(StrEnum):
    """Types of notifications pushed to the presentation layer."""

    PLACEHOLDER_CREATED = "placeholder_created"
    PROGRESS = "progress"
    FINAL = "final"
    TOOL_RESULT = "tool_result"
    TRANSCRIPT_LOADED = "transcript_loaded"
    TRANSCRIPT_LIST_CHANGED = "transcript_list_changed"
    TRANSCRIPT_DELETED = "transcript_deleted"
    TRANSCRIPT_CHANGED = "transcript_changed"


class Notification(BaseModel):
    """A single notification for presentation-layer consumption."""

    type: NotificationType = Field(description="Notification type")
    timestamp: float = Field(
        default_factory=time.time,
        description="Unix timestamp when the notification was emitted",
    )
    data: dict[str, Any] = Field(
        default_factory=dict,
        description="Payload, varies by notification type",
    )


# Type alias for listener callbacks
Listener = Callable[[Notification], Any]


class NotificationEmitter:
    """Broadcasts notifications to registered listeners.

    Listeners can be sync or async callables and are called in
    registration order; async listeners are awaited before the next one
    runs, so delivery order always matches emission order.
    """

    def __init__(self, *, keep_history: bool = False) -> None:
        self._listeners: list[Listener] = []
        self._history: list[Notification] = []
        self._keep_history = keep_history

    @property
    def history(self) -> list[Notification]:
        """All notifications emitted so far (for late listeners)."""
        return list(self._history)

    def add_listener(self, listener: Listener) -> None:
        """Register a listener to receive notifications."""
        self._listeners.append(listener)

    def remove_listener(self, listener: Listener) -> None:
        """Remove a previously registered listener."""
        self._listeners = [ln for ln in self._listeners if ln is not listener]

    async def emit(self, notification_type: NotificationType, **data: Any) -> None:
        """Emit a notification to all registered listeners.

        Listener exceptions are logged but never propagate.
        """
        notification = Notification(type=notification_type, data=data)
        if self._keep_history:
            self._history.append(notification)

        for listener in self._listeners:
            try:
                result = listener(notification)
                if asyncio.iscoroutine(result):
                    await result
            except Exception:
                logger.exception("Notification listener error for %s", notification_type)
