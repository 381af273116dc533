"""xAI compiler — Grok chat completions.

Grok ignores the ``name`` field on every turn except user turns, so speakers
are folded into the text of assistant and exemplar system turns.
"""

from __future__ import annotations

import copy
from typing import Any

from chatwire.config import ConverterSettings
from chatwire.core.interface.compiler import BaseCompiler, Dialect, drop_none
from chatwire.core.interface.compilers._common import logprob_params, stop_params, tool_params
from chatwire.core.interface.models import CanonicalMessage, PromptNames, ReasoningEffort
from chatwire.core.interface.request import ChatRequest
from chatwire.core.processing.naming import EXAMPLE_ASSISTANT, EXAMPLE_USER, map_text, prefix_char_name, prefix_user_name

_HIGH_EFFORTS = frozenset({ReasoningEffort.HIGH, ReasoningEffort.MAX})

SEARCH_PARAMETERS = {
    "mode": "on",
    "sources": [
        {"type": "web", "safe_search": False},
        {"type": "news", "safe_search": False},
        {"type": "x"},
    ],
}


def convert_xai_messages(messages: Any, names: PromptNames) -> list[dict[str, Any]]:
    """Convert canonical messages into xAI chat messages; non-list input yields ``[]``."""
    if not isinstance(messages, list):
        return []

    result: list[dict[str, Any]] = []
    for item in messages:
        message = item if isinstance(item, CanonicalMessage) else CanonicalMessage.from_openai(item)
        if message.name and message.role != "user":
            if message.role == "assistant" or (message.role == "system" and message.name == EXAMPLE_ASSISTANT):
                message = map_text(message, lambda text: prefix_char_name(text, names))
            elif message.role == "system" and message.name == EXAMPLE_USER:
                message = map_text(message, lambda text: prefix_user_name(text, names))
            message = message.model_copy(update={"name": None})
        result.append(message.to_openai())
    return result


def xai_reasoning_effort(effort: ReasoningEffort) -> str | None:
    """Grok accepts only ``low`` and ``high``; ``auto`` omits the field."""
    if effort == ReasoningEffort.AUTO:
        return None
    return "high" if effort in _HIGH_EFFORTS else "low"


class XAICompiler(BaseCompiler):
    dialect = Dialect.XAI

    def build(
        self,
        request: ChatRequest,
        messages: list[CanonicalMessage],
        names: PromptNames,
        settings: ConverterSettings,
    ) -> dict[str, Any]:
        body: dict[str, Any] = {
            "messages": convert_xai_messages(messages, names),
            "model": request.model,
            "temperature": request.temperature,
            "max_tokens": request.max_tokens,
            "max_completion_tokens": request.max_completion_tokens,
            "stream": request.stream,
            "presence_penalty": request.presence_penalty,
            "frequency_penalty": request.frequency_penalty,
            "top_p": request.top_p,
            "seed": request.seed,
            "n": request.n,
            "reasoning_effort": xai_reasoning_effort(request.effort),
            **logprob_params(request),
            **tool_params(request),
            **stop_params(request),
        }

        if request.enable_web_search:
            body["search_parameters"] = copy.deepcopy(SEARCH_PARAMETERS)

        if request.json_schema is not None:
            body["response_format"] = request.json_schema.to_response_format()

        return drop_none(body)
