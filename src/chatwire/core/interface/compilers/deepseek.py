"""DeepSeek compiler — DeepSeek chat completions.

DeepSeek wants strictly alternating turns, so the prompt is always merged
with the ``semi_tools`` options. A trailing assistant turn becomes a prefix
continuation, and the reasoner models require ``reasoning_content`` on every
tool-calling turn.
"""

from __future__ import annotations

from typing import Any

from chatwire.config import ConverterSettings
from chatwire.core.capabilities.capabilities import resolve_capabilities
from chatwire.core.interface.compiler import BaseCompiler, Dialect, drop_none
from chatwire.core.interface.compilers._common import logprob_params
from chatwire.core.interface.models import CanonicalMessage, PromptNames
from chatwire.core.interface.request import ChatRequest
from chatwire.core.processing.merger import add_assistant_prefix, merge_messages
from chatwire.core.processing.tools import drop_empty_required, pad_reasoning_content


class DeepSeekCompiler(BaseCompiler):
    dialect = Dialect.DEEPSEEK

    def build(
        self,
        request: ChatRequest,
        messages: list[CanonicalMessage],
        names: PromptNames,
        settings: ConverterSettings,
    ) -> dict[str, Any]:
        extra: dict[str, Any] = {}
        tools = drop_empty_required(request.tools) if request.has_tools else None
        if tools:
            extra["tools"] = tools
            extra["tool_choice"] = request.tool_choice

        if request.json_schema is not None:
            extra["response_format"] = {"type": "json_object"}
            messages = [*messages, CanonicalMessage.user(request.json_schema.as_prompt())]

        merged = merge_messages(messages, names, strict=True, tools=True, placeholder=settings.prompt_placeholder)
        wire = add_assistant_prefix([message.to_openai() for message in merged], tools, "prefix")
        if resolve_capabilities(request.model).deepseek_reasoner:
            wire = pad_reasoning_content(wire)

        body: dict[str, Any] = {
            "messages": wire,
            "model": request.model,
            "temperature": request.temperature,
            "max_tokens": request.max_tokens,
            "stream": request.stream,
            "presence_penalty": request.presence_penalty,
            "frequency_penalty": request.frequency_penalty,
            "top_p": request.top_p,
            "stop": request.stop,
            "seed": request.seed,
            **logprob_params(request),
            **extra,
        }
        return drop_none(body)
