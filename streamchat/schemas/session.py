"""Session lifecycle schemas.

Defines the SessionState machine labels, the per-call ToolResult record,
and the SessionResult returned by SessionManager.start_session().
"""

from __future__ import annotations

from enum import StrEnum
from typing import Any

from pydantic import BaseModel, Field


class SessionState(StrEnum):
    """Lifecycle state of a streaming session."""

    IDLE = "idle"
    INITIATED = "initiated"
    STREAMING = "streaming"
    FINALIZING = "finalizing"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"

    @property
    def is_terminal(self) -> bool:
        return self in (SessionState.COMPLETED, SessionState.FAILED, SessionState.CANCELLED)


class ToolResult(BaseModel):
    """Outcome of dispatching one tool call through the registry."""

    call_id: str = Field(description="Call identifier the result answers")
    name: str = Field(description="Tool name as requested by the model")
    arguments: dict[str, Any] = Field(
        default_factory=dict, description="Parsed arguments (empty when unparsable)",
    )
    output: str = Field(description="Serialized handler output or error text")
    is_error: bool = Field(default=False, description="True when dispatch failed")


class SessionResult(BaseModel):
    """Terminal result of a streaming session."""

    success: bool = Field(description="Whether the stream completed without error")
    state: SessionState = Field(description="Terminal session state")
    identifier: str = Field(description="Transcript identifier after the session")
    new_identifier: str | None = Field(
        default=None, description="Set when a default-template save forked the transcript",
    )
    message_index: int | None = Field(
        default=None, description="Index of the last assistant message written",
    )
    content: str = Field(default="", description="Final content of that message")
    error: str | None = Field(default=None, description="Error description on failure")
    error_type: str | None = Field(default=None, description="Exception class name on failure")
    persist_error: str | None = Field(
        default=None, description="Final persist failure, reported separately",
    )
    tool_results: list[ToolResult] = Field(
        default_factory=list, description="Tool calls dispatched during the session",
    )
    rounds: int = Field(default=0, ge=0, description="Model requests made")
