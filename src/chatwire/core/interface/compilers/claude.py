"""Claude compiler — Anthropic Messages API.

Key differences from CMS:
- The leading system messages become a separate ``system`` block list.
- Messages must alternate between user and assistant; same-role turns merge.
- Assistant turns may not carry images; they move to the next user turn.
- Tool calls are ``tool_use`` blocks; tool results are user ``tool_result`` blocks.
- Extended thinking is requested with a token budget and excludes sampling knobs.
"""

from __future__ import annotations

import logging
from typing import Any

from pydantic import BaseModel

from chatwire.config import DEFAULT_PROMPT_PLACEHOLDER, ConverterSettings
from chatwire.core.capabilities.capabilities import resolve_capabilities
from chatwire.core.interface.compiler import BaseCompiler, Dialect, drop_none
from chatwire.core.interface.models import (
    AudioContent,
    CanonicalMessage,
    ImageContent,
    PromptNames,
    TextContent,
    ToolResultContent,
    ToolUseContent,
    VideoContent,
    coerce_messages,
)
from chatwire.core.interface.request import ChatRequest
from chatwire.core.processing.caching import cache_at_depth, cache_control
from chatwire.core.processing.media import to_claude_image_source
from chatwire.core.processing.naming import prefix_exemplar, prefix_speaker
from chatwire.core.processing.reasoning import calculate_claude_budget_tokens
from chatwire.core.processing.tools import (
    JSON_TOOL_DESCRIPTION,
    claude_tool_choice,
    claude_tool_definitions,
    to_claude_tool_result,
    to_claude_tool_use,
    tool_part_as_text,
)

logger = logging.getLogger(__name__)

MIN_THINKING_TOKENS = 1024
_ZERO_WIDTH_SPACE = "\u200b"

WEB_SEARCH_TOOL = {"type": "web_search_20250305", "name": "web_search"}

BASE_BETA_HEADERS = ("output-128k-2025-02-19", "context-1m-2025-08-07")
TOOLS_BETA_HEADER = "tools-2024-05-16"
CACHING_BETA_HEADERS = ("prompt-caching-2024-07-31", "extended-cache-ttl-2025-04-11")
EFFORT_BETA_HEADER = "effort-2025-11-24"


class ClaudePrompt(BaseModel):
    """Converted Claude prompt: the message turns and the extracted system blocks."""

    messages: list[dict[str, Any]]
    system: list[dict[str, Any]] = []


def convert_claude_messages(
    messages: Any,
    prefill: str,
    use_sys_prompt: bool,
    use_tools: bool,
    names: PromptNames,
    *,
    placeholder: str = DEFAULT_PROMPT_PLACEHOLDER,
) -> ClaudePrompt:
    """Convert canonical messages into Claude message turns.

    Args:
        messages: Canonical messages or OpenAI-format dicts.
        prefill: Assistant prefill text appended as a final assistant turn.
        use_sys_prompt: Extract the leading system messages into ``system``.
        use_tools: Keep tool blocks; otherwise they are rendered as text.
        names: Persona names for exemplar and speaker labels.

    Raises:
        InvalidMessagesError: If *messages* is not a list.
    """
    source = coerce_messages(messages, "convert_claude_messages")

    system: list[dict[str, Any]] = []
    if use_sys_prompt:
        index = 0
        while index < len(source) and source[index].role == "system":
            message = source[index]
            if message.has_media:
                logger.debug("Claude system blocks are text only; dropping media of system message %d", index)
            system.append({"type": "text", "text": prefix_exemplar(message.text, message.name, names)})
            index += 1
        source = source[index:]
        if not source:
            source = [CanonicalMessage.user(placeholder)]

    turns = _relocate_assistant_images([_to_claude_turn(message, names) for message in source])

    if prefill:
        turns.append({"role": "assistant", "content": [{"type": "text", "text": prefill.rstrip()}]})

    merged = _merge_consecutive_roles(turns)

    if not use_tools:
        for turn in merged:
            turn["content"] = [tool_part_as_text(part) for part in turn["content"]]

    return ClaudePrompt(messages=merged, system=system)


def _to_claude_turn(message: CanonicalMessage, names: PromptNames) -> dict[str, Any]:
    """Convert a single CMS message to a Claude turn."""
    if message.role == "tool":
        return {"role": "user", "content": [to_claude_tool_result(message.tool_call_id or "", message.text)]}

    # Non-leading system messages are spoken by the user.
    role = "user" if message.role == "system" else message.role

    blocks: list[dict[str, Any]] = []
    for part in message.content_parts():
        if isinstance(part, TextContent):
            if not part.text and message.tool_calls:
                continue
            blocks.append({"type": "text", "text": _label(message, part.text, names) or _ZERO_WIDTH_SPACE})
        elif isinstance(part, ImageContent):
            blocks.append({"type": "image", "source": to_claude_image_source(part.url)})
        elif isinstance(part, ToolUseContent):
            blocks.append({"type": "tool_use", "id": part.id, "name": part.name, "input": part.input})
        elif isinstance(part, ToolResultContent):
            blocks.append(to_claude_tool_result(part.tool_call_id, part.content))
        elif isinstance(part, (VideoContent, AudioContent)):
            logger.debug("Claude does not accept %s parts; dropping", part.type)

    if message.role == "assistant" and message.tool_calls:
        blocks.extend(to_claude_tool_use(call) for call in message.tool_calls)

    return {"role": role, "content": blocks}


def _label(message: CanonicalMessage, text: str, names: PromptNames) -> str:
    if message.role == "system":
        return prefix_exemplar(text, message.name, names)
    return prefix_speaker(text, message.name, names)


def _relocate_assistant_images(turns: list[dict[str, Any]]) -> list[dict[str, Any]]:
    """Move images out of assistant turns into the next user turn."""
    index = 0
    while index < len(turns):
        turn = turns[index]
        images = [block for block in turn["content"] if block.get("type") == "image"]
        if turn["role"] == "assistant" and images:
            target = next((j for j in range(index + 1, len(turns)) if turns[j]["role"] == "user"), None)
            if target is None:
                turns.insert(index + 1, {"role": "user", "content": []})
                target = index + 1
            turns[target]["content"].extend(images)
            turn["content"] = [block for block in turn["content"] if block.get("type") != "image"]
        index += 1
    return turns


def _merge_consecutive_roles(turns: list[dict[str, Any]]) -> list[dict[str, Any]]:
    """Merge consecutive turns with the same role by concatenating their blocks."""
    merged: list[dict[str, Any]] = []
    for turn in turns:
        if merged and merged[-1]["role"] == turn["role"]:
            merged[-1]["content"].extend(turn["content"])
        else:
            merged.append(turn)
    return merged


def anthropic_beta_headers(request: ChatRequest, settings: ConverterSettings | None = None) -> list[str]:
    """``anthropic-beta`` header values the compiled request relies on."""
    settings = settings if settings is not None else ConverterSettings()
    capabilities = resolve_capabilities(request.model)

    headers = list(BASE_BETA_HEADERS)
    if request.has_tools:
        headers.append(TOOLS_BETA_HEADER)
    if settings.claude.enable_system_prompt_cache or settings.resolve_caching_depth(request.caching_at_depth) >= 0:
        headers.extend(CACHING_BETA_HEADERS)
    if capabilities.claude_verbosity and request.verbosity:
        headers.append(EFFORT_BETA_HEADER)
    return headers


class ClaudeCompiler(BaseCompiler):
    """Compiles a :class:`ChatRequest` into an Anthropic Messages API body."""

    dialect = Dialect.CLAUDE

    def build(
        self,
        request: ChatRequest,
        messages: list[CanonicalMessage],
        names: PromptNames,
        settings: ConverterSettings,
    ) -> dict[str, Any]:
        capabilities = resolve_capabilities(request.model)
        use_tools = request.has_tools
        ttl = settings.resolve_cache_ttl(request.cache_ttl)
        depth = settings.resolve_caching_depth(request.caching_at_depth)
        system_cache = settings.claude.enable_system_prompt_cache

        prompt = convert_claude_messages(
            messages,
            request.assistant_prefill,
            request.use_sysprompt,
            use_tools,
            names,
            placeholder=settings.prompt_placeholder,
        )

        body: dict[str, Any] = {
            "messages": prompt.messages,
            "model": request.model,
            "max_tokens": request.max_tokens,
            "stop_sequences": request.stop_sequences,
            "temperature": request.temperature,
            "top_p": request.top_p,
            "top_k": request.top_k,
            "stream": request.stream,
        }

        if request.use_sysprompt:
            if system_cache and prompt.system:
                prompt.system[-1]["cache_control"] = cache_control(ttl)
            body["system"] = prompt.system

        if use_tools:
            tools = claude_tool_definitions(request.tools)
            if system_cache and tools:
                tools[-1]["cache_control"] = cache_control(ttl)
            body["tools"] = tools
            body["tool_choice"] = claude_tool_choice(request.tool_choice)

        # Structured output is a forced tool call.
        if request.json_schema is not None:
            schema = request.json_schema
            json_tool = {
                "name": schema.name,
                "description": schema.description or JSON_TOOL_DESCRIPTION,
                "input_schema": schema.value,
            }
            body["tools"] = [*body.get("tools", []), json_tool]
            body["tool_choice"] = {"type": "tool", "name": schema.name}

        if capabilities.claude_web_search and request.enable_web_search:
            body["tools"] = [dict(WEB_SEARCH_TOOL), *body.get("tools", [])]

        if depth >= 0:
            body["messages"] = cache_at_depth(body["messages"], depth, ttl)

        if capabilities.claude_limited_sampling:
            if request.top_p is not None and request.top_p < 1:
                body.pop("temperature", None)
            else:
                body.pop("top_p", None)

        fix_prefill = capabilities.claude_forbids_prefill
        budget = calculate_claude_budget_tokens(request.max_tokens, request.effort, request.stream)
        if capabilities.claude_thinking and budget is not None:
            fix_prefill = True
            max_tokens = body["max_tokens"] or 0
            if max_tokens <= MIN_THINKING_TOKENS:
                body["max_tokens"] = max_tokens + MIN_THINKING_TOKENS
                logger.warning(
                    "Claude thinking requires a minimum of %d response tokens; increasing response length to %d",
                    MIN_THINKING_TOKENS,
                    body["max_tokens"],
                )
            body["thinking"] = {"type": "enabled", "budget_tokens": budget}
            for key in ("temperature", "top_p", "top_k"):
                body.pop(key, None)

        if fix_prefill and body["messages"] and body["messages"][-1]["role"] == "assistant":
            body["messages"][-1]["role"] = "user"

        if capabilities.claude_verbosity and request.verbosity:
            body["output_config"] = {"effort": request.verbosity}

        return drop_none(body)
