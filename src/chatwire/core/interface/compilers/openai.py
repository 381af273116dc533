"""OpenAI-compatible compilers — OpenAI, custom endpoints and Perplexity.

These backends take the canonical wire shape almost unchanged. They differ
only in the merge applied beforehand (Perplexity needs strict alternation)
and in whether data-URI audio is embedded inline (custom endpoints).
"""

from __future__ import annotations

from typing import Any

from chatwire.config import ConverterSettings
from chatwire.core.capabilities.capabilities import resolve_capabilities
from chatwire.core.interface.compiler import BaseCompiler, Dialect, drop_none
from chatwire.core.interface.compilers._common import logprob_params, openai_body
from chatwire.core.interface.models import CanonicalMessage, PromptNames, ReasoningEffort
from chatwire.core.interface.request import ChatRequest, PromptProcessingType
from chatwire.core.processing.media import embed_media
from chatwire.core.processing.merger import post_process_prompt

# OpenAI names the lowest level "minimal" and has nothing above "high".
_EFFORT_NAMES = {ReasoningEffort.MIN: "minimal", ReasoningEffort.MAX: "high"}


def openai_reasoning_effort(effort: ReasoningEffort, model: str | None) -> str | None:
    """Return the ``reasoning_effort`` value for *model*, or ``None`` to omit it.

    Only OpenAI reasoning models accept the field; ``auto`` always omits it.
    """
    if effort == ReasoningEffort.AUTO or not resolve_capabilities(model).openai_reasoning_effort:
        return None
    return _EFFORT_NAMES.get(effort, effort.value)


class OpenAICompatibleCompiler(BaseCompiler):
    """Compiles a :class:`ChatRequest` into an OpenAI chat completions body.

    *processing* is a post-processing type always applied after the request's
    own; *embed_audio* inlines data-URI audio as ``input_audio`` parts.
    """

    def __init__(
        self,
        dialect: Dialect = Dialect.OPENAI,
        *,
        processing: PromptProcessingType = PromptProcessingType.NONE,
        embed_audio: bool = False,
    ) -> None:
        self.dialect = dialect
        self.processing = processing
        self.embed_audio = embed_audio

    def build(
        self,
        request: ChatRequest,
        messages: list[CanonicalMessage],
        names: PromptNames,
        settings: ConverterSettings,
    ) -> dict[str, Any]:
        if self.processing != PromptProcessingType.NONE:
            messages = post_process_prompt(messages, self.processing, names, placeholder=settings.prompt_placeholder)

        wire = [message.to_openai() for message in messages]
        if self.embed_audio:
            wire = embed_media(wire, audio=True, video=False)

        body = openai_body(request, wire)
        body.update(logprob_params(request))

        body["reasoning_effort"] = openai_reasoning_effort(request.effort, request.model)
        if request.verbosity and resolve_capabilities(request.model).openai_verbosity:
            body["verbosity"] = request.verbosity

        if request.json_schema is not None:
            if self.dialect == Dialect.PERPLEXITY:
                body["response_format"] = {"type": "json_schema", "json_schema": {"schema": request.json_schema.value}}
            else:
                body["response_format"] = request.json_schema.to_response_format()

        return drop_none(body)
