"""Canonical message schema and request model."""

from chatwire.core.interface.models import (
    AudioContent,
    CacheControl,
    CanonicalMessage,
    ContentPart,
    ImageContent,
    PromptNames,
    ReasoningEffort,
    TextContent,
    ToolCall,
    ToolResultContent,
    ToolUseContent,
    VideoContent,
)
from chatwire.core.interface.request import ChatRequest, JsonSchema, PromptProcessingType

__all__ = [
    "AudioContent",
    "CacheControl",
    "CanonicalMessage",
    "ChatRequest",
    "ContentPart",
    "ImageContent",
    "JsonSchema",
    "PromptNames",
    "PromptProcessingType",
    "ReasoningEffort",
    "TextContent",
    "ToolCall",
    "ToolResultContent",
    "ToolUseContent",
    "VideoContent",
]
