"""Tool declaration schema.

Each tool is offered to the model with a name, a description, and a JSON
schema describing its named arguments.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field


def _empty_object_schema() -> dict[str, Any]:
    return {"type": "object", "properties": {}}


class ToolSpec(BaseModel):
    """Declaration of a callable tool."""

    name: str = Field(min_length=1, description="Function name the model calls")
    description: str = Field(default="", description="What the tool does")
    parameters: dict[str, Any] = Field(
        default_factory=_empty_object_schema,
        description="JSON schema of accepted arguments (types, required subset)",
    )

    def to_openai(self) -> dict[str, Any]:
        """Return the chat-completions ``tools`` entry for this spec."""
        return {
            "type": "function",
            "function": {
                "name": self.name,
                "description": self.description,
                "parameters": self.parameters,
            },
        }
