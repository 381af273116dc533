"""Mistral compiler — La Plateforme chat completions.

Mistral rejects tool call ids that are not nine alphanumeric characters, a
user turn directly after a tool result, and a system turn directly after an
assistant turn. The converter rewrites the history around all three.
"""

from __future__ import annotations

from typing import Any

from chatwire.config import ConverterSettings
from chatwire.core.interface.compiler import BaseCompiler, Dialect, drop_none
from chatwire.core.interface.compilers._common import stop_params, tool_params
from chatwire.core.interface.models import CanonicalMessage, PromptNames
from chatwire.core.interface.request import ChatRequest
from chatwire.core.processing.naming import label_message
from chatwire.core.processing.tools import sanitize_mistral_tool_id


def convert_mistral_messages(
    messages: Any,
    names: PromptNames,
    *,
    enable_prefix: bool = False,
) -> list[dict[str, Any]]:
    """Convert canonical messages into Mistral chat messages; non-list input yields ``[]``.

    With *enable_prefix*, a trailing assistant message is flagged as a prefix
    for the model to continue.
    """
    if not isinstance(messages, list):
        return []

    history: list[CanonicalMessage] = []
    for item in messages:
        message = item if isinstance(item, CanonicalMessage) else CanonicalMessage.from_openai(item)
        history.append(_sanitize(message, names))

    _fold_users_after_tools(history)

    wire = [message.to_openai() for message in history]
    for index in range(1, len(wire)):
        if wire[index]["role"] == "system" and wire[index - 1]["role"] == "assistant":
            wire[index]["role"] = "user"

    if enable_prefix and wire and wire[-1]["role"] == "assistant":
        wire[-1]["prefix"] = True
    return wire


def _sanitize(message: CanonicalMessage, names: PromptNames) -> CanonicalMessage:
    update: dict[str, Any] = {}
    if message.tool_calls:
        update["tool_calls"] = [
            call.model_copy(update={"id": sanitize_mistral_tool_id(call.id)}) for call in message.tool_calls
        ]
    if message.role == "tool" and message.tool_call_id:
        update["tool_call_id"] = sanitize_mistral_tool_id(message.tool_call_id)
    return label_message(message.model_copy(update=update, deep=True), names)


def _fold_users_after_tools(history: list[CanonicalMessage]) -> None:
    """Move a user turn that follows a tool result into the previous user turn."""
    changed = True
    while changed:
        changed = False
        for index in range(1, len(history)):
            if history[index].role != "user" or history[index - 1].role != "tool":
                continue
            target = next(
                (j for j in range(index - 2, -1, -1) if history[j].role == "user" and history[j].content),
                None,
            )
            if target is None:
                continue
            history[target] = history[target].with_appended(history[index])
            del history[index]
            changed = True
            break


class MistralCompiler(BaseCompiler):
    dialect = Dialect.MISTRALAI

    def build(
        self,
        request: ChatRequest,
        messages: list[CanonicalMessage],
        names: PromptNames,
        settings: ConverterSettings,
    ) -> dict[str, Any]:
        body: dict[str, Any] = {
            "model": request.model,
            "messages": convert_mistral_messages(messages, names, enable_prefix=settings.mistral.enable_prefix),
            "temperature": request.temperature,
            "top_p": request.top_p,
            "frequency_penalty": request.frequency_penalty,
            "presence_penalty": request.presence_penalty,
            "max_tokens": request.max_tokens,
            "stream": request.stream,
            "safe_prompt": request.safe_prompt,
            "random_seed": None if request.seed == -1 else request.seed,
            **stop_params(request),
            **tool_params(request),
        }

        if request.json_schema is not None:
            body["response_format"] = request.json_schema.to_response_format(include_description=True)

        return drop_none(body)
