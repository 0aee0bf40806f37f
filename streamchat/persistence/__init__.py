"""streamchat transcript persistence layer.

Provides the file-backed TranscriptStore, the CheckpointScheduler used
while streaming, and a polling TranscriptWatcher for external changes.
"""

from streamchat.persistence.checkpoint import CheckpointScheduler
from streamchat.persistence.store import (
    DEFAULT_TEMPLATE_NAME,
    TranscriptStore,
    error_transcript,
)
from streamchat.persistence.watcher import TranscriptWatcher

__all__ = [
    "DEFAULT_TEMPLATE_NAME",
    "CheckpointScheduler",
    "TranscriptStore",
    "TranscriptWatcher",
    "error_transcript",
]
