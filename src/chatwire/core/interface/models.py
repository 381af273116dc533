"""Canonical Message Schema (CMS) — the provider-agnostic input of every compiler.

The CMS is a superset of what the supported dialects can express. Compilers
read CMS messages and emit dialect-specific payloads; they never touch each
other's formats. Messages travel in the OpenAI chat shape at the edges, so the
schema carries a codec for that shape (:meth:`CanonicalMessage.from_openai` /
:meth:`CanonicalMessage.to_openai`).
"""

from __future__ import annotations

import json
import logging
from collections.abc import Mapping
from enum import Enum
from typing import Any, Literal
from uuid import uuid4

from pydantic import BaseModel, Field

from chatwire.errors import InvalidMessagesError

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Content parts
# ---------------------------------------------------------------------------


class TextContent(BaseModel):
    """Plain text content part."""

    type: Literal["text"] = "text"
    text: str = ""


class ImageContent(BaseModel):
    """Image content part: an ``https://`` URL or a ``data:`` URI."""

    type: Literal["image"] = "image"
    url: str
    detail: str | None = None


class VideoContent(BaseModel):
    """Video content part: an ``https://`` URL or a ``data:`` URI."""

    type: Literal["video"] = "video"
    url: str
    detail: str | None = None


class AudioContent(BaseModel):
    """Audio content part: an ``https://`` URL or a ``data:`` URI."""

    type: Literal["audio"] = "audio"
    url: str


class ToolUseContent(BaseModel):
    """An inline tool invocation (Claude-style ``tool_use`` block)."""

    type: Literal["tool_use"] = "tool_use"
    id: str
    name: str
    input: Any = Field(default_factory=dict)


class ToolResultContent(BaseModel):
    """An inline tool result (Claude-style ``tool_result`` block)."""

    type: Literal["tool_result"] = "tool_result"
    tool_call_id: str
    content: str = ""


MediaContent = ImageContent | VideoContent | AudioContent
ContentPart = TextContent | ImageContent | VideoContent | AudioContent | ToolUseContent | ToolResultContent

MEDIA_TYPES = (ImageContent, VideoContent, AudioContent)


# ---------------------------------------------------------------------------
# Tool calls
# ---------------------------------------------------------------------------


class ToolCall(BaseModel):
    """A tool invocation emitted by an assistant message.

    ``arguments`` is kept as JSON text, exactly as the model produced it.
    ``signature`` is an opaque reasoning signature some providers require to
    be echoed back on the next request.
    """

    id: str = Field(default_factory=lambda: uuid4().hex[:12])
    name: str
    arguments: str = "{}"
    signature: str | None = None

    def parsed_arguments(self) -> Any:
        """Return the decoded arguments, or the raw text when it is not JSON."""
        try:
            return json.loads(self.arguments)
        except (json.JSONDecodeError, TypeError):
            return self.arguments

    @classmethod
    def from_openai(cls, data: Mapping[str, Any]) -> ToolCall:
        function = data.get("function") or {}
        arguments = function.get("arguments", "{}")
        if not isinstance(arguments, str):
            arguments = json.dumps(arguments)
        return cls(
            id=str(data.get("id") or uuid4().hex[:12]),
            name=str(function.get("name") or ""),
            arguments=arguments,
            signature=data.get("signature") or None,
        )

    def to_openai(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "type": "function",
            "function": {"name": self.name, "arguments": self.arguments},
        }


# ---------------------------------------------------------------------------
# Canonical message
# ---------------------------------------------------------------------------

Role = Literal["system", "user", "assistant", "tool"]


class CanonicalMessage(BaseModel):
    """A single message in the canonical format.

    Roles:
    - system: instruction/context messages
    - user: human input
    - assistant: model-generated messages (may include tool_calls)
    - tool: tool execution results (carry tool_call_id)

    ``name`` is the optional speaker label. The reserved names
    ``example_user`` and ``example_assistant`` mark exemplar dialogue.
    """

    role: Role
    content: str | list[ContentPart] = ""
    name: str | None = None
    tool_calls: list[ToolCall] | None = None
    tool_call_id: str | None = None
    signature: str | None = None

    @property
    def text(self) -> str:
        """Text of the message; text parts are joined by a blank line."""
        if isinstance(self.content, str):
            return self.content
        return "\n\n".join(part.text for part in self.content if isinstance(part, TextContent))

    @property
    def has_media(self) -> bool:
        return isinstance(self.content, list) and any(isinstance(part, MEDIA_TYPES) for part in self.content)

    def content_parts(self) -> list[ContentPart]:
        """Return the content as a part list (string content becomes one text part)."""
        if isinstance(self.content, str):
            return [TextContent(text=self.content)]
        return list(self.content)

    def with_appended(self, other: CanonicalMessage, separator: str = "\n\n") -> CanonicalMessage:
        """Return a copy whose content is this message's content followed by *other*'s."""
        if isinstance(self.content, str) and isinstance(other.content, str):
            content: str | list[ContentPart] = f"{self.content}{separator}{other.content}"
        else:
            content = [*self.content_parts(), *other.content_parts()]
        return self.model_copy(update={"content": content})

    @classmethod
    def system(cls, text: str, name: str | None = None) -> CanonicalMessage:
        """Create a system message."""
        return cls(role="system", content=text, name=name)

    @classmethod
    def user(cls, text: str, name: str | None = None) -> CanonicalMessage:
        """Create a user message."""
        return cls(role="user", content=text, name=name)

    @classmethod
    def assistant(
        cls,
        text: str = "",
        tool_calls: list[ToolCall] | None = None,
        name: str | None = None,
    ) -> CanonicalMessage:
        """Create an assistant message."""
        return cls(role="assistant", content=text, tool_calls=tool_calls, name=name)

    @classmethod
    def tool(cls, tool_call_id: str, text: str) -> CanonicalMessage:
        """Create a tool-result message."""
        return cls(role="tool", content=text, tool_call_id=tool_call_id)

    # -- OpenAI chat-format codec ------------------------------------------

    @classmethod
    def from_openai(cls, data: Mapping[str, Any]) -> CanonicalMessage:
        """Build a message from an OpenAI chat-format dict."""
        raw = data.get("content")
        content: str | list[ContentPart]
        if isinstance(raw, list):
            content = [_part_from_openai(part) for part in raw]
        elif raw is None:
            content = ""
        else:
            content = str(raw)

        raw_calls = data.get("tool_calls")
        tool_calls = [ToolCall.from_openai(call) for call in raw_calls] if isinstance(raw_calls, list) else None

        return cls(
            role=data.get("role", "user"),
            content=content,
            name=data.get("name") or None,
            tool_calls=tool_calls or None,
            tool_call_id=data.get("tool_call_id") or None,
            signature=data.get("signature") or None,
        )

    def to_openai(self) -> dict[str, Any]:
        """Serialize to an OpenAI chat-format dict."""
        result: dict[str, Any] = {"role": self.role}
        if isinstance(self.content, str):
            result["content"] = self.content
        else:
            result["content"] = [_part_to_openai(part) for part in self.content]
        if self.name:
            result["name"] = self.name
        if self.tool_calls:
            result["tool_calls"] = [call.to_openai() for call in self.tool_calls]
        if self.tool_call_id:
            result["tool_call_id"] = self.tool_call_id
        return result


def _media_url(entry: Any) -> tuple[str, str | None]:
    if isinstance(entry, Mapping):
        return str(entry.get("url") or ""), entry.get("detail")
    return str(entry or ""), None


def _part_from_openai(part: Any) -> ContentPart:
    if not isinstance(part, Mapping):
        return TextContent()

    part_type = part.get("type")
    if part_type == "text":
        return TextContent(text=str(part.get("text") or ""))
    if part_type == "image_url":
        url, detail = _media_url(part.get("image_url"))
        return ImageContent(url=url, detail=detail)
    if part_type == "video_url":
        url, detail = _media_url(part.get("video_url"))
        return VideoContent(url=url, detail=detail)
    if part_type == "audio_url":
        url, _ = _media_url(part.get("audio_url"))
        return AudioContent(url=url)
    if part_type == "tool_use":
        return ToolUseContent(id=str(part.get("id") or ""), name=str(part.get("name") or ""), input=part.get("input") or {})
    if part_type == "tool_result":
        result = part.get("content")
        return ToolResultContent(
            tool_call_id=str(part.get("tool_use_id") or part.get("tool_call_id") or ""),
            content=result if isinstance(result, str) else json.dumps(result),
        )

    logger.debug("Dropping unsupported content part type %r", part_type)
    return TextContent()


def _part_to_openai(part: ContentPart) -> dict[str, Any]:
    if isinstance(part, TextContent):
        return {"type": "text", "text": part.text}
    if isinstance(part, ImageContent):
        image: dict[str, Any] = {"url": part.url}
        if part.detail:
            image["detail"] = part.detail
        return {"type": "image_url", "image_url": image}
    if isinstance(part, VideoContent):
        video: dict[str, Any] = {"url": part.url}
        if part.detail:
            video["detail"] = part.detail
        return {"type": "video_url", "video_url": video}
    if isinstance(part, AudioContent):
        return {"type": "audio_url", "audio_url": {"url": part.url}}
    if isinstance(part, ToolUseContent):
        return {"type": "tool_use", "id": part.id, "name": part.name, "input": part.input}
    return {"type": "tool_result", "tool_use_id": part.tool_call_id, "content": part.content}


def coerce_messages(messages: Any, func: str) -> list[CanonicalMessage]:
    """Return an owned deep copy of *messages* as canonical messages.

    Accepts canonical messages or OpenAI chat-format dicts.

    Raises:
        InvalidMessagesError: If *messages* is not a list, or holds something
            that is neither a message nor a mapping.
    """
    if not isinstance(messages, (list, tuple)):
        raise InvalidMessagesError(func, messages)

    result: list[CanonicalMessage] = []
    for item in messages:
        if isinstance(item, CanonicalMessage):
            result.append(item.model_copy(deep=True))
        elif isinstance(item, Mapping):
            result.append(CanonicalMessage.from_openai(item))
        else:
            raise InvalidMessagesError(func, item)
    return result


# ---------------------------------------------------------------------------
# Persona names, reasoning effort and cache markers
# ---------------------------------------------------------------------------


class PromptNames(BaseModel):
    """Persona names used to attribute speaker labels in flattened prompts."""

    char_name: str = ""
    user_name: str = ""
    group_names: list[str] = []

    def starts_with_group_name(self, text: str) -> bool:
        """Return True when *text* already opens with a ``"<group member>: "`` label."""
        return any(text.startswith(f"{name}: ") for name in self.group_names)

    @classmethod
    def from_request(cls, body: Mapping[str, Any]) -> PromptNames:
        group = body.get("group_names")
        return cls(
            char_name=str(body.get("char_name") or ""),
            user_name=str(body.get("user_name") or ""),
            group_names=[str(name) for name in group] if isinstance(group, list) else [],
        )


class ReasoningEffort(str, Enum):
    AUTO = "auto"
    MIN = "min"
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    MAX = "max"

    @classmethod
    def parse(cls, value: Any) -> ReasoningEffort:
        """Map *value* to an effort level; unknown or missing values become ``AUTO``."""
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            return cls.AUTO


class CacheControl(BaseModel):
    """Prompt-cache marker attached to a wire content part as ``cache_control``."""

    type: Literal["ephemeral"] = "ephemeral"
    ttl: str | None = None

    def to_wire(self) -> dict[str, Any]:
        return self.model_dump(exclude_none=True)
