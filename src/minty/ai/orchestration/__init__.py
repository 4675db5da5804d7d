"""Conversation orchestration: transcript types, pipeline stages and the runner."""

from .runner import ConversationResult, ConversationRunner, ToolCallback
from .types import (
    ContentPart,
    ConversationConfig,
    Message,
    MessageContent,
    ModelResponse,
    ParsedToolCall,
    Transcript,
)

__all__ = [
    "ContentPart",
    "ConversationConfig",
    "ConversationResult",
    "ConversationRunner",
    "Message",
    "MessageContent",
    "ModelResponse",
    "ParsedToolCall",
    "ToolCallback",
    "Transcript",
]
