"""Transcript document schemas.

Defines the on-disk chat transcript (Transcript), its ordered messages
(Message), the tool calls an assistant message may carry (ToolCall), and
the lightweight listing entry (TranscriptSummary).
"""

from __future__ import annotations

from datetime import datetime
from enum import StrEnum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator


class Role(StrEnum):
    """Author of a transcript message."""

    SYSTEM = "system"
    USER = "user"
    ASSISTANT = "assistant"
    TOOL = "tool"


class FunctionCall(BaseModel):
    """Function name and JSON-encoded arguments requested by the model."""

    name: str = Field(default="", description="Function name")
    arguments: str = Field(default="", description="JSON-encoded argument object")


class ToolCall(BaseModel):
    """A tool invocation attached to an assistant message."""

    id: str = Field(default="", description="Call identifier assigned by the API")
    type: str = Field(default="function", description="Tool type (always 'function')")
    function: FunctionCall = Field(default_factory=FunctionCall)


class Message(BaseModel):
    """A single transcript message.

    Unknown keys found on disk are kept and written back unchanged.
    """

    model_config = ConfigDict(extra="allow")

    role: Role = Field(description="Message author")
    content: str = Field(default="", description="Message text")
    tool_calls: list[ToolCall] | None = Field(
        default=None, description="Tool calls requested by an assistant message",
    )
    tool_call_id: str | None = Field(
        default=None, description="Call this tool-result message answers",
    )

    @field_validator("content", mode="before")
    @classmethod
    def _null_content(cls, value: Any) -> Any:
        return "" if value is None else value

    def to_api(self) -> dict[str, Any]:
        """Return the message in chat-completions request format."""
        payload: dict[str, Any] = {"role": self.role.value, "content": self.content}
        if self.tool_calls:
            payload["tool_calls"] = [call.model_dump() for call in self.tool_calls]
        if self.tool_call_id is not None:
            payload["tool_call_id"] = self.tool_call_id
        return payload


class Transcript(BaseModel):
    """An ordered chat transcript with optional title."""

    model_config = ConfigDict(extra="allow")

    title: str | None = Field(default=None, description="Display title")
    messages: list[Message] = Field(
        default_factory=list, description="Messages in conversation order",
    )

    def to_document(self) -> dict[str, Any]:
        """Return the JSON-ready document, omitting absent optional keys."""
        return self.model_dump(mode="json", exclude_none=True)


class TranscriptSummary(BaseModel):
    """Lightweight transcript entry for listing."""

    identifier: str = Field(description="Storage path of the transcript")
    filename: str = Field(description="File name including extension")
    display_title: str = Field(description="Title, or file stem when untitled")
    modified_at: datetime = Field(description="Last modification time")
