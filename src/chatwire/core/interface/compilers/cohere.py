"""Cohere compiler — Chat API v2.

Cohere has no per-message names, and a tool-calling assistant turn must carry
text of its own. The preceding assistant message is folded into the tool-call
turn, or a short primer is generated.
"""

from __future__ import annotations

from typing import Any

from chatwire.config import DEFAULT_PROMPT_PLACEHOLDER, ConverterSettings
from chatwire.core.capabilities.capabilities import resolve_capabilities
from chatwire.core.interface.compiler import BaseCompiler, Dialect, drop_none
from chatwire.core.interface.models import CanonicalMessage, PromptNames, coerce_messages
from chatwire.core.interface.request import ChatRequest
from chatwire.core.processing.naming import label_message
from chatwire.core.processing.tools import cohere_tool_primer, strip_schema_keys


def convert_cohere_messages(
    messages: Any,
    names: PromptNames,
    *,
    placeholder: str = DEFAULT_PROMPT_PLACEHOLDER,
) -> list[dict[str, Any]]:
    """Convert canonical messages into Cohere chat messages.

    Raises:
        InvalidMessagesError: If *messages* is not a list.
    """
    source = coerce_messages(messages, "convert_cohere_messages")
    if not source:
        source = [CanonicalMessage.user(placeholder)]

    history: list[CanonicalMessage] = []
    for message in source:
        if message.tool_calls:
            if history and history[-1].role == "assistant" and not history[-1].tool_calls:
                primer = history.pop()
                message = message.model_copy(update={"content": primer.content})
            else:
                message = message.model_copy(update={"content": cohere_tool_primer(message.tool_calls)})
        history.append(label_message(message, names))

    return [message.to_openai() for message in history]


class CohereCompiler(BaseCompiler):
    dialect = Dialect.COHERE

    def build(
        self,
        request: ChatRequest,
        messages: list[CanonicalMessage],
        names: PromptNames,
        settings: ConverterSettings,
    ) -> dict[str, Any]:
        body: dict[str, Any] = {
            "stream": request.stream,
            "model": request.model,
            "messages": convert_cohere_messages(messages, names, placeholder=settings.prompt_placeholder),
            "temperature": request.temperature,
            "max_tokens": request.max_tokens,
            "k": request.top_k,
            "p": request.top_p,
            "seed": request.seed,
            "stop_sequences": request.stop,
            "frequency_penalty": request.frequency_penalty,
            "presence_penalty": request.presence_penalty,
            "documents": [],
            "tools": strip_schema_keys(request.tools),
        }

        if resolve_capabilities(request.model).cohere_safety_mode:
            body["safety_mode"] = "OFF"

        if request.json_schema is not None:
            body["response_format"] = {"type": "json_schema", "schema": request.json_schema.value}

        return drop_none(body)
