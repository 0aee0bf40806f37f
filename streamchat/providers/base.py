"""Abstract base class for completion stream providers.

Defines the CompletionProvider interface that every model adapter must
implement. The session manager consumes providers exclusively through
this interface; it never calls provider SDKs directly.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import AsyncIterator
from typing import Any

from streamchat.schemas.config import ModelConfig
from streamchat.schemas.streaming import StreamEvent
from streamchat.schemas.tools import ToolSpec


class CompletionProvider(ABC):
    """Abstract interface for a streaming chat-completion API."""

    def __init__(self, config: ModelConfig) -> None:
        self._config = config

    @property
    def model_id(self) -> str:
        """LiteLLM model identifier used for routing."""
        return self._config.model

    @property
    def display_name(self) -> str:
        """Human-friendly model name for CLI output."""
        return self._config.display_name

    @property
    def config(self) -> ModelConfig:
        return self._config

    @abstractmethod
    def stream(
        self,
        messages: list[dict[str, Any]],
        tools: list[ToolSpec] | None = None,
    ) -> AsyncIterator[StreamEvent]:
        """Open a streaming completion and yield its events in arrival order.

        Implementations are async generators. The sequence is finite,
        forward-only, and not restartable; it ends with one StreamDone.

        Args:
            messages: Conversation history in chat-completions format.
            tools: Tools offered to the model with automatic selection.

        Raises:
            AdapterError: If the request fails to open or fails mid-stream.
                A failure is never reported as a shorter stream.
        """
