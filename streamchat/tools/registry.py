"""Tool invocation registry.

Maps tool names to synchronous handlers and their declarations. The
session manager offers the declared specs to the model and dispatches
completed tool calls back through invoke().
"""

from __future__ import annotations

import json
import logging
from collections.abc import Callable
from typing import Any

from streamchat.errors import ToolArgumentError, UnknownToolError
from streamchat.schemas.tools import ToolSpec

logger = logging.getLogger(__name__)

Handler = Callable[..., Any]


def parse_arguments(arguments: str) -> dict[str, Any]:
    """Decode a tool call's argument string into a keyword dict.

    An empty string means no arguments.

    Raises:
        ToolArgumentError: If the string is not a JSON object.
    """
    if not arguments.strip():
        return {}
    try:
        parsed = json.loads(arguments)
    except json.JSONDecodeError as e:
        raise ToolArgumentError(f"Invalid JSON arguments: {e.msg}") from e
    if not isinstance(parsed, dict):
        raise ToolArgumentError(
            f"Arguments must be a JSON object, got {type(parsed).__name__}"
        )
    return parsed


def serialize_result(result: Any) -> str:
    """Serialize a handler's return value for a tool-result message."""
    if isinstance(result, str):
        return result
    if result is None:
        return ""
    return json.dumps(result, ensure_ascii=False, default=str)


class ToolRegistry:
    """Registry of callable tools keyed by name."""

    def __init__(self) -> None:
        self._specs: dict[str, ToolSpec] = {}
        self._handlers: dict[str, Handler] = {}

    def __contains__(self, name: object) -> bool:
        return name in self._handlers

    def __len__(self) -> int:
        return len(self._handlers)

    def register(
        self,
        name: str,
        handler: Handler,
        *,
        description: str = "",
        parameters: dict[str, Any] | None = None,
    ) -> ToolSpec:
        """Register a handler under a name, replacing any previous one."""
        spec = ToolSpec(name=name, description=description)
        if parameters is not None:
            spec.parameters = parameters
        if name in self._handlers:
            logger.debug("Replacing tool handler for %s", name)
        self._specs[name] = spec
        self._handlers[name] = handler
        return spec

    def tool(
        self,
        name: str | None = None,
        *,
        description: str = "",
        parameters: dict[str, Any] | None = None,
    ) -> Callable[[Handler], Handler]:
        """Decorator form of register(); defaults to the function's name and docstring."""

        def decorator(func: Handler) -> Handler:
            self.register(
                name or func.__name__,
                func,
                description=description or (func.__doc__ or "").strip(),
                parameters=parameters,
            )
            return func

        return decorator

    def specs(self) -> list[ToolSpec]:
        """Declared tools in registration order."""
        return list(self._specs.values())

    def invoke(self, name: str, arguments: str) -> str:
        """Run a tool with its JSON argument string and return its output.

        Raises:
            UnknownToolError: If no handler is registered under ``name``.
            ToolArgumentError: If ``arguments`` is not a JSON object.
            Exception: Whatever the handler itself raises.
        """
        handler = self._handlers.get(name)
        if handler is None:
            raise UnknownToolError(name)
        kwargs = parse_arguments(arguments)
        logger.debug("Invoking tool %s with %s", name, sorted(kwargs))
        return serialize_result(handler(**kwargs))
