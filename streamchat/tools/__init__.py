"""streamchat tool layer: registry and built-in tools."""

from streamchat.tools.builtin import get_weather, register_builtin_tools
from streamchat.tools.registry import ToolRegistry, parse_arguments, serialize_result

__all__ = [
    "ToolRegistry",
    "get_weather",
    "parse_arguments",
    "register_builtin_tools",
    "serialize_result",
]
