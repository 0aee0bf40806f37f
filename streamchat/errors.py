"""Exception hierarchy for streamchat.

Every error raised by the core derives from StreamchatError and also from
the closest built-in exception, so callers can catch either form.
"""

from __future__ import annotations


class StreamchatError(Exception):
    """Base exception for all application-specific errors."""


class TranscriptNotFoundError(StreamchatError, FileNotFoundError):
    """Raised when a transcript document does not exist."""

    def __init__(self, identifier: str) -> None:
        super().__init__(f"Transcript not found: {identifier}")
        self.identifier = identifier


class CorruptTranscriptError(StreamchatError, ValueError):
    """Raised when a transcript document cannot be parsed or validated."""

    def __init__(self, identifier: str, reason: str) -> None:
        super().__init__(f"Corrupt transcript {identifier}: {reason}")
        self.identifier = identifier
        self.reason = reason


class AdapterError(StreamchatError, RuntimeError):
    """Raised when the completion API fails to open or mid-stream.

    Covers authentication, rate limiting, connection faults, and malformed
    chunks as a single class. ``reason`` is a short, user-facing label.
    """

    def __init__(self, message: str, reason: str = "") -> None:
        super().__init__(message)
        self.reason = reason


class UnknownToolError(StreamchatError, LookupError):
    """Raised when a tool name has no registered handler."""

    def __init__(self, name: str) -> None:
        super().__init__(f"Unknown tool '{name}'")
        self.name = name


class ToolArgumentError(StreamchatError, ValueError):
    """Raised when a tool call's argument string is not a JSON object."""


class SessionBusyError(StreamchatError, RuntimeError):
    """Raised when a session is started while another one is active."""


class PersistError(StreamchatError, OSError):
    """Raised when a transcript cannot be written to storage."""
