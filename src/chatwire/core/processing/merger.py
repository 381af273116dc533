"""Role normalizer — squashes a message list into dialect-safe turns.

Many backends reject consecutive same-role turns, system messages after the
first, or a conversation that does not open with a user turn. The merger
rewrites a message list to satisfy those rules while keeping every piece of
text and media in order.

Message content is flattened to an ordered list of *segments*: text strings
and media parts. Squashing concatenates segment lists, and restoring joins
adjacent text segments with a blank line. A message comes back as a part list
only when it carries media, so media positions survive the merge without ever
being encoded into the text.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

from pydantic import BaseModel, ConfigDict

from chatwire.config import DEFAULT_PROMPT_PLACEHOLDER
from chatwire.core.interface.models import (
    MEDIA_TYPES,
    CanonicalMessage,
    ContentPart,
    MediaContent,
    PromptNames,
    Role,
    TextContent,
    ToolCall,
    coerce_messages,
)
from chatwire.core.interface.request import PromptProcessingType
from chatwire.core.processing.naming import prefix_char_name, prefix_speaker, prefix_user_name
from chatwire.errors import UnknownProcessingTypeError

logger = logging.getLogger(__name__)

_SEPARATOR = "\n\n"

Segment = str | MediaContent


class MergeOptions(BaseModel):
    """Flag set consumed by :func:`merge_messages`."""

    model_config = ConfigDict(frozen=True)

    strict: bool = False
    placeholders: bool = False
    single: bool = False
    tools: bool = False


PROCESSING_OPTIONS: dict[PromptProcessingType, MergeOptions] = {
    PromptProcessingType.CLAUDE: MergeOptions(),
    PromptProcessingType.MERGE: MergeOptions(),
    PromptProcessingType.MERGE_TOOLS: MergeOptions(tools=True),
    PromptProcessingType.SEMI: MergeOptions(strict=True),
    PromptProcessingType.SEMI_TOOLS: MergeOptions(strict=True, tools=True),
    PromptProcessingType.STRICT: MergeOptions(strict=True, placeholders=True),
    PromptProcessingType.STRICT_TOOLS: MergeOptions(strict=True, placeholders=True, tools=True),
    PromptProcessingType.SINGLE: MergeOptions(strict=True, single=True),
}


@dataclass
class _Turn:
    role: Role
    segments: list[Segment]
    tool_calls: list[ToolCall] | None = None
    tool_call_id: str | None = None
    signature: str | None = None

    @property
    def is_empty(self) -> bool:
        return all(isinstance(segment, str) and not segment for segment in self.segments)


def merge_messages(
    messages: Any,
    names: PromptNames,
    *,
    strict: bool = False,
    placeholders: bool = False,
    single: bool = False,
    tools: bool = False,
    placeholder: str = DEFAULT_PROMPT_PLACEHOLDER,
) -> list[CanonicalMessage]:
    """Squash *messages* into alternating turns.

    Args:
        messages: Canonical messages or OpenAI-format dicts.
        names: Persona names used for speaker labels.
        strict: Only the first message may be a system message.
        placeholders: With *strict*, guarantee a user turn right after the
            leading system message (or at the start).
        single: Collapse the whole conversation into one user turn.
        tools: Keep ``tool`` roles and tool-call fields.
        placeholder: Text of inserted user turns.

    Raises:
        InvalidMessagesError: If *messages* is not a list.
    """
    source = coerce_messages(messages, "merge_messages")
    if single and _is_transcript(source):
        # A lone unnamed user turn is already a collapsed transcript.
        single = False
    turns = [_prepare(message, names, single=single, tools=tools) for message in source]
    merged = _squash(turns)
    if not merged:
        merged.append(_Turn(role="user", segments=[placeholder]))
    result = [_restore(turn) for turn in merged]

    if strict:
        result = _enforce_strict(result, placeholders=placeholders, placeholder=placeholder)
        # One more pass squashes turns that became adjacent same-role pairs.
        return merge_messages(result, names, tools=tools, placeholder=placeholder)
    return result


def post_process_prompt(
    messages: Any,
    processing_type: PromptProcessingType | str,
    names: PromptNames,
    *,
    placeholder: str = DEFAULT_PROMPT_PLACEHOLDER,
) -> list[CanonicalMessage]:
    """Apply a named post-processing type; ``""`` returns an unmerged copy.

    Raises:
        UnknownProcessingTypeError: If *processing_type* is not recognised.
        InvalidMessagesError: If *messages* is not a list.
    """
    try:
        kind = PromptProcessingType(processing_type)
    except ValueError as exc:
        raise UnknownProcessingTypeError(str(processing_type)) from exc

    options = PROCESSING_OPTIONS.get(kind)
    if options is None:
        return coerce_messages(messages, "post_process_prompt")

    logger.debug("Applying prompt post-processing %r", kind.value)
    return merge_messages(messages, names, **options.model_dump(), placeholder=placeholder)


def add_assistant_prefix(messages: list[dict[str, Any]], tools: list[Any] | None, prop: str) -> list[dict[str, Any]]:
    """Mark a trailing assistant wire message as a prefill to be continued.

    Backends that support continuation read ``prop`` (``prefix`` or
    ``partial``) on the last message. Nothing is marked when tools are in
    play. Returns a new list; the input is left untouched.
    """
    result = [dict(message) for message in messages]
    if result and result[-1].get("role") == "assistant" and not tools:
        result[-1][prop] = True
    return result


# ---------------------------------------------------------------------------
# Internals
# ---------------------------------------------------------------------------


def _flatten(content: str | list[ContentPart]) -> list[Segment]:
    if isinstance(content, str):
        return [content]
    segments: list[Segment] = []
    for part in content:
        if isinstance(part, TextContent):
            segments.append(part.text)
        elif isinstance(part, MEDIA_TYPES):
            segments.append(part)
        else:
            logger.debug("Dropping %s part while merging", part.type)
            segments.append("")
    return segments


def _is_transcript(messages: list[CanonicalMessage]) -> bool:
    return len(messages) == 1 and messages[0].role == "user" and not messages[0].name


def _prefix_segments(segments: list[Segment], label: Callable[[str], str]) -> list[Segment]:
    """Apply *label* to the leading text, adding a text segment before leading media."""
    if not segments:
        return [label("")]
    if isinstance(segments[0], str):
        return [label(segments[0]), *segments[1:]]
    heading = label("").rstrip()
    return [heading, *segments] if heading else segments


def _prepare(message: CanonicalMessage, names: PromptNames, *, single: bool, tools: bool) -> _Turn:
    segments = _flatten(message.content)
    if message.name:
        name = message.name
        segments = _prefix_segments(segments, lambda text: prefix_speaker(text, name, names))

    role: Role = message.role
    if role == "tool" and not tools:
        role = "user"

    if single:
        if role == "assistant":
            segments = _prefix_segments(segments, lambda text: prefix_char_name(text, names))
        elif role == "user":
            segments = _prefix_segments(segments, lambda text: prefix_user_name(text, names))
        role = "user"

    return _Turn(
        role=role,
        segments=segments,
        tool_calls=list(message.tool_calls) if tools and message.tool_calls else None,
        tool_call_id=message.tool_call_id if tools else None,
        signature=message.signature,
    )


def _squash(turns: list[_Turn]) -> list[_Turn]:
    merged: list[_Turn] = []
    for turn in turns:
        previous = merged[-1] if merged else None
        if previous is None or previous.role != turn.role or turn.role == "tool":
            merged.append(turn)
            continue

        if not turn.is_empty:
            previous.segments = list(turn.segments) if previous.is_empty else [*previous.segments, *turn.segments]
        if turn.tool_calls:
            previous.tool_calls = [*(previous.tool_calls or []), *turn.tool_calls]
        if previous.signature is None:
            previous.signature = turn.signature
    return merged


def _restore(turn: _Turn) -> CanonicalMessage:
    content: str | list[ContentPart]
    if any(not isinstance(segment, str) for segment in turn.segments):
        parts: list[ContentPart] = []
        for segment in turn.segments:
            if not isinstance(segment, str):
                parts.append(segment.model_copy(deep=True))
            elif parts and isinstance(parts[-1], TextContent):
                parts[-1] = TextContent(text=f"{parts[-1].text}{_SEPARATOR}{segment}")
            else:
                parts.append(TextContent(text=segment))
        content = parts
    else:
        content = _SEPARATOR.join(segment for segment in turn.segments if isinstance(segment, str))

    return CanonicalMessage(
        role=turn.role,
        content=content,
        tool_calls=turn.tool_calls,
        tool_call_id=turn.tool_call_id,
        signature=turn.signature,
    )


def _enforce_strict(
    messages: list[CanonicalMessage],
    *,
    placeholders: bool,
    placeholder: str,
) -> list[CanonicalMessage]:
    result = [
        message.model_copy(update={"role": "user"}) if index > 0 and message.role == "system" else message
        for index, message in enumerate(messages)
    ]
    if placeholders and result:
        first = result[0]
        if first.role == "system" and (len(result) == 1 or result[1].role != "user"):
            result.insert(1, CanonicalMessage.user(placeholder))
        elif first.role not in ("system", "user"):
            result.insert(0, CanonicalMessage.user(placeholder))
    return result
