"""Built-in demonstration tools offered to the model."""

from __future__ import annotations

from streamchat.tools.registry import ToolRegistry

WEATHER_PARAMETERS = {
    "type": "object",
    "properties": {
        "location": {
            "type": "string",
            "description": "City and country to get the weather for",
        },
    },
    "required": ["location"],
}


def get_weather(location: str) -> str:
    # Canned forecast; there is no weather backend.
    return f"Tornado watch! ({location})"


def register_builtin_tools(registry: ToolRegistry) -> ToolRegistry:
    """Register every built-in tool on the registry and return it."""
    registry.register(
        "get_weather",
        get_weather,
        description="Gets the weather for a location",
        parameters=WEATHER_PARAMETERS,
    )
    return registry
