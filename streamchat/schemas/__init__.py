"""streamchat schema definitions.

All Pydantic v2 models used by the store, the providers, and the session
manager.
"""

from streamchat.schemas.config import AppConfig, ModelConfig, SessionConfig, StorageConfig
from streamchat.schemas.session import SessionResult, SessionState, ToolResult
from streamchat.schemas.streaming import (
    ContentDelta,
    PendingToolCall,
    StreamDone,
    StreamEvent,
    ToolCallDelta,
)
from streamchat.schemas.tools import ToolSpec
from streamchat.schemas.transcript import (
    FunctionCall,
    Message,
    Role,
    ToolCall,
    Transcript,
    TranscriptSummary,
)

__all__ = [
    "AppConfig",
    "ContentDelta",
    "FunctionCall",
    "Message",
    "ModelConfig",
    "PendingToolCall",
    "Role",
    "SessionConfig",
    "SessionResult",
    "SessionState",
    "StorageConfig",
    "StreamDone",
    "StreamEvent",
    "ToolCall",
    "ToolCallDelta",
    "ToolResult",
    "ToolSpec",
    "Transcript",
    "TranscriptSummary",
]
