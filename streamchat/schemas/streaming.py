"""Streaming schemas for real-time token delivery.

Defines the StreamEvent variants yielded by a CompletionProvider and the
PendingToolCall accumulator the session uses to rebuild tool calls from
their fragments.
"""

from __future__ import annotations

from typing import Annotated, Literal

from pydantic import BaseModel, Field

from streamchat.schemas.transcript import FunctionCall, ToolCall


class ContentDelta(BaseModel):
    """A fragment of assistant text."""

    kind: Literal["content"] = "content"
    text: str = Field(description="New text in this chunk")


class ToolCallDelta(BaseModel):
    """A fragment of a tool call, addressed by its index in the response."""

    kind: Literal["tool_call"] = "tool_call"
    index: int = Field(ge=0, description="Tool call slot this fragment belongs to")
    id: str | None = Field(default=None, description="Call id (first fragment only)")
    name: str | None = Field(default=None, description="Function name (first fragment only)")
    arguments: str = Field(default="", description="Argument string fragment")


class StreamDone(BaseModel):
    """End of the stream."""

    kind: Literal["done"] = "done"
    finish_reason: str | None = Field(default=None, description="API finish reason")


StreamEvent = Annotated[
    ContentDelta | ToolCallDelta | StreamDone,
    Field(discriminator="kind"),
]


class PendingToolCall(BaseModel):
    """A tool call being assembled from streamed fragments."""

    index: int = Field(ge=0, description="Tool call slot in the response")
    call_id: str = Field(default="", description="Call identifier")
    name: str = Field(default="", description="Function name")
    arguments: str = Field(default="", description="Concatenated argument fragments")

    def absorb(self, delta: ToolCallDelta) -> None:
        """Append a fragment; id and name are taken from the first carrier."""
        if delta.id and not self.call_id:
            self.call_id = delta.id
        if delta.name and not self.name:
            self.name = delta.name
        self.arguments += delta.arguments

    def to_tool_call(self) -> ToolCall:
        return ToolCall(
            id=self.call_id,
            function=FunctionCall(name=self.name, arguments=self.arguments),
        )
