"""AI21 compiler — Jamba chat completions.

The leading system messages are squashed into one, names are folded into the
text and consecutive same-role turns are merged. Structured output is
requested as ``json_object`` with the schema spelled out in a user turn.
"""

from __future__ import annotations

from typing import Any

from chatwire.config import DEFAULT_PROMPT_PLACEHOLDER, ConverterSettings
from chatwire.core.interface.compiler import BaseCompiler, Dialect, drop_none
from chatwire.core.interface.models import CanonicalMessage, PromptNames, coerce_messages
from chatwire.core.interface.request import ChatRequest
from chatwire.core.processing.naming import label_message, prefix_exemplar


def convert_ai21_messages(
    messages: Any,
    names: PromptNames,
    *,
    placeholder: str = DEFAULT_PROMPT_PLACEHOLDER,
) -> list[dict[str, Any]]:
    """Convert canonical messages into AI21 chat messages; non-list input yields ``[]``."""
    if not isinstance(messages, list):
        return []
    source = coerce_messages(messages, "convert_ai21_messages")

    index = 0
    system_prompt = ""
    while index < len(source) and source[index].role == "system":
        message = source[index]
        system_prompt += prefix_exemplar(message.text, message.name, names) + "\n\n"
        index += 1

    rest = source[index:] or [CanonicalMessage.user(placeholder)]
    if system_prompt:
        rest.insert(0, CanonicalMessage.system(system_prompt.strip()))

    merged: list[dict[str, Any]] = []
    for message in rest:
        labeled = label_message(message, names)
        wire = labeled.to_openai()
        wire["content"] = labeled.text
        if merged and merged[-1]["role"] == wire["role"] and wire["role"] != "tool":
            merged[-1]["content"] = f"{merged[-1]['content']}\n\n{wire['content']}"
        else:
            merged.append(wire)
    return merged


class AI21Compiler(BaseCompiler):
    dialect = Dialect.AI21

    def build(
        self,
        request: ChatRequest,
        messages: list[CanonicalMessage],
        names: PromptNames,
        settings: ConverterSettings,
    ) -> dict[str, Any]:
        extra: dict[str, Any] = {}
        if request.json_schema is not None:
            extra["response_format"] = {"type": "json_object"}
            messages = [*messages, CanonicalMessage.user(request.json_schema.as_prompt())]

        body: dict[str, Any] = {
            "messages": convert_ai21_messages(messages, names, placeholder=settings.prompt_placeholder),
            "model": request.model,
            "max_tokens": request.max_tokens,
            "temperature": request.temperature,
            "top_p": request.top_p,
            "stop": request.stop,
            "stream": request.stream,
            "tools": request.tools,
            **extra,
        }
        return drop_none(body)
