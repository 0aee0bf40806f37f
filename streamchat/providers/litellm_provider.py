"""LiteLLM adapter implementing the CompletionProvider interface.

Routes streaming chat completions to any LLM provider via LiteLLM's
unified API and translates each chunk into StreamEvents. Failures are
raised as AdapterError; nothing is retried here.
"""

from __future__ import annotations

import logging
import os
from collections.abc import AsyncIterator
from typing import Any

import litellm

# Suppress LiteLLM's "Give Feedback / Get Help" and "Provider List" banners
litellm.suppress_debug_info = True

from streamchat.errors import AdapterError
from streamchat.providers.base import CompletionProvider
from streamchat.schemas.config import ModelConfig
from streamchat.schemas.streaming import (
    ContentDelta,
    StreamDone,
    StreamEvent,
    ToolCallDelta,
)
from streamchat.schemas.tools import ToolSpec

logger = logging.getLogger(__name__)


def _short_error_reason(error: Exception) -> str:
    """Extract a short, user-friendly reason from a LiteLLM error.

    Maps error types and status codes to concise descriptions instead
    of dumping full JSON error payloads.
    """
    error_str = str(error).lower()
    if "rate" in error_str or "429" in error_str:
        return "rate limit"
    if "overloaded" in error_str or "529" in error_str:
        return "overloaded"
    if "timeout" in error_str or "timed out" in error_str or isinstance(error, TimeoutError):
        return "timeout"
    if "503" in error_str or "unavailable" in error_str:
        return "service unavailable"
    if "500" in error_str or "internal" in error_str:
        return "server error"
    if "connection" in error_str:
        return "connection error"
    # Fallback: first 80 chars of the error
    return str(error)[:80] or type(error).__name__


def _tool_call_delta(call: Any) -> ToolCallDelta:
    """Convert one entry of ``delta.tool_calls`` into a ToolCallDelta."""
    function = getattr(call, "function", None)
    name = getattr(function, "name", None)
    arguments = getattr(function, "arguments", None)
    call_id = getattr(call, "id", None)
    return ToolCallDelta(
        index=getattr(call, "index", None) or 0,
        id=call_id if isinstance(call_id, str) else None,
        name=name if isinstance(name, str) else None,
        arguments=arguments if isinstance(arguments, str) else "",
    )


class LiteLLMProvider(CompletionProvider):
    """Streaming chat adapter powered by LiteLLM.

    Calls litellm.acompletion(stream=True). This is the only place the
    model API is called.
    """

    def __init__(self, config: ModelConfig) -> None:
        super().__init__(config)
        # Resolve API key from environment
        self._api_key = os.environ.get(config.api_key_env, "")

    async def stream(
        self,
        messages: list[dict[str, Any]],
        tools: list[ToolSpec] | None = None,
    ) -> AsyncIterator[StreamEvent]:
        """Stream a chat completion as ContentDelta / ToolCallDelta events.

        Yields exactly one StreamDone after the last chunk.

        Raises:
            AdapterError: On authentication, request, network, or chunk errors.
        """
        kwargs = self._build_completion_kwargs(messages, tools)
        response = await self._open_stream(kwargs)

        finish_reason: str | None = None
        chunk_count = 0
        try:
            async for chunk in response:
                chunk_count += 1
                if not chunk.choices:
                    continue
                choice = chunk.choices[0]

                reason = getattr(choice, "finish_reason", None)
                if isinstance(reason, str):
                    finish_reason = reason

                delta = getattr(choice, "delta", None)
                if delta is None:
                    continue

                text = getattr(delta, "content", None)
                if isinstance(text, str) and text:
                    yield ContentDelta(text=text)

                for call in getattr(delta, "tool_calls", None) or []:
                    yield _tool_call_delta(call)
        except Exception as e:
            reason = _short_error_reason(e)
            logger.warning("Stream from %s failed after %d chunks (%s)",
                           self._config.display_name, chunk_count, reason)
            raise AdapterError(
                f"Streaming call to {self._config.model} failed: {reason}", reason,
            ) from e

        logger.debug("Stream from %s finished after %d chunks (%s)",
                     self._config.display_name, chunk_count, finish_reason)
        yield StreamDone(finish_reason=finish_reason)

    async def _open_stream(self, kwargs: dict) -> Any:
        """Call litellm.acompletion with stream=True, mapping errors."""
        try:
            return await litellm.acompletion(**kwargs)
        except litellm.AuthenticationError:
            raise AdapterError(
                f"Authentication failed for {self._config.model}. "
                f"Check that {self._config.api_key_env} is set correctly.",
                "authentication",
            ) from None
        except litellm.BadRequestError as e:
            raise AdapterError(
                f"Bad request to {self._config.model}: {e}", "bad request",
            ) from e
        except Exception as e:
            reason = _short_error_reason(e)
            raise AdapterError(
                f"Streaming call to {self._config.model} failed: {reason}", reason,
            ) from e

    def _build_completion_kwargs(
        self,
        messages: list[dict[str, Any]],
        tools: list[ToolSpec] | None,
    ) -> dict:
        """Build the kwargs dict for litellm.acompletion."""
        kwargs: dict = {
            "model": self._config.model,
            "messages": messages,
            "stream": True,
            "temperature": self._config.temperature,
            "timeout": float(self._config.timeout),
        }

        # Set API key if available
        if self._api_key:
            kwargs["api_key"] = self._api_key

        # Set custom API base if configured
        if self._config.api_base:
            kwargs["api_base"] = self._config.api_base

        if tools:
            kwargs["tools"] = [spec.to_openai() for spec in tools]
            kwargs["tool_choice"] = "auto"

        return kwargs
