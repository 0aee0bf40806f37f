"""Configuration schemas.

Loaded from defaults.toml and the optional user config.toml. Controls
which model is called, where transcripts live, and how sessions
checkpoint and handle tool calls.
"""

from __future__ import annotations

from pathlib import Path

from pydantic import BaseModel, Field


class ModelConfig(BaseModel):
    """LiteLLM routing information for the chat model."""

    model: str = Field(default="gpt-4", description="LiteLLM model identifier")
    display_name: str = Field(default="GPT-4", description="Human-friendly model name")
    api_key_env: str = Field(
        default="OPENAI_API_KEY", description="Environment variable holding the API key",
    )
    api_base: str = Field(default="", description="Custom API base URL (empty = provider default)")
    temperature: float = Field(default=0.7, ge=0.0, le=2.0, description="Sampling temperature")
    timeout: int = Field(default=120, gt=0, description="Request timeout in seconds")


class StorageConfig(BaseModel):
    """Transcript storage locations."""

    chats_dir: Path = Field(description="Directory holding chat transcripts")
    default_template: Path = Field(description="Reserved default-template path")
    default_title: str = Field(default="New Chat", description="Title of a fresh template")
    default_system_prompt: str = Field(
        default="You are a helpful assistant.",
        description="System message of a fresh template",
    )


class SessionConfig(BaseModel):
    """Streaming session behaviour."""

    checkpoint_interval_ms: int = Field(
        default=3000, gt=0, description="Minimum time between checkpoint writes",
    )
    feed_tool_results: bool = Field(
        default=False, description="Send tool results back to the model for a follow-up turn",
    )
    max_tool_rounds: int = Field(
        default=5, ge=1, le=20, description="Model requests allowed per session",
    )


class AppConfig(BaseModel):
    """Top-level application configuration."""

    home: Path = Field(description="Application home directory")
    model: ModelConfig = Field(default_factory=ModelConfig)
    storage: StorageConfig
    session: SessionConfig = Field(default_factory=SessionConfig)
