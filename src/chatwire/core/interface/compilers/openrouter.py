"""OpenRouter compiler — OpenAI-compatible body with OpenRouter extensions.

Messages keep the OpenAI shape. Data-URI audio and video are embedded inline,
stored signatures travel as ``reasoning_details``, and prompt-cache markers
are added for Claude models (and for Gemini models known to accept cache
writes).
"""

from __future__ import annotations

from typing import Any

from chatwire.config import ConverterSettings
from chatwire.core.capabilities.capabilities import (
    CacheableModelRegistry,
    default_cacheable_models,
    resolve_capabilities,
)
from chatwire.core.interface.compiler import BaseCompiler, Dialect, drop_none
from chatwire.core.interface.compilers._common import openai_body
from chatwire.core.interface.compilers.gemini import GEMINI_SAFETY
from chatwire.core.interface.models import CanonicalMessage, PromptNames, ReasoningEffort
from chatwire.core.interface.request import ChatRequest
from chatwire.core.processing.caching import cache_at_depth, cache_system_prompt
from chatwire.core.processing.media import embed_media
from chatwire.core.processing.tools import openrouter_reasoning_details

MIDDLE_OUT = "middle-out"
WEB_PLUGIN = {"id": "web"}


def openrouter_transforms(middleout: str | None) -> list[str] | None:
    """``transforms`` for the ``middleout`` setting; ``auto`` leaves the choice to OpenRouter."""
    if middleout == "on":
        return [MIDDLE_OUT]
    if middleout == "off":
        return []
    return None


def convert_openrouter_messages(messages: list[CanonicalMessage], model: str) -> list[dict[str, Any]]:
    """Serialize *messages* with inline media and ``reasoning_details`` attached."""
    wire = embed_media([message.to_openai() for message in messages], audio=True, video=True)
    for message, entry in zip(messages, wire):
        details = openrouter_reasoning_details(message, model)
        if details:
            entry["reasoning_details"] = details
    return wire


class OpenRouterCompiler(BaseCompiler):
    """Compiles a :class:`ChatRequest` into an OpenRouter chat completions body.

    *cacheable_models* decides which Gemini models may get a system-prompt
    cache marker; it defaults to the process-wide registry.
    """

    dialect = Dialect.OPENROUTER

    def __init__(self, cacheable_models: CacheableModelRegistry | None = None) -> None:
        self.cacheable_models = cacheable_models if cacheable_models is not None else default_cacheable_models()

    def build(
        self,
        request: ChatRequest,
        messages: list[CanonicalMessage],
        names: PromptNames,
        settings: ConverterSettings,
    ) -> dict[str, Any]:
        capabilities = resolve_capabilities(request.model)
        wire = convert_openrouter_messages(messages, request.model)

        if capabilities.openrouter_claude:
            ttl = settings.resolve_cache_ttl(request.cache_ttl)
            if settings.claude.enable_system_prompt_cache:
                wire = cache_system_prompt(wire, ttl)
            depth = settings.resolve_caching_depth(request.caching_at_depth)
            if depth >= 0:
                wire = cache_at_depth(wire, depth, ttl)

        if (
            capabilities.openrouter_gemini
            and settings.gemini.enable_system_prompt_cache
            and self.cacheable_models.is_cacheable(request.model)
        ):
            wire = cache_system_prompt(wire)

        body = openai_body(request, wire)
        body["transforms"] = openrouter_transforms(request.middleout)
        body["include_reasoning"] = request.include_reasoning

        if request.enable_web_search:
            body["plugins"] = [dict(WEB_PLUGIN)]
        if request.effort != ReasoningEffort.AUTO:
            body["reasoning"] = {"effort": request.effort.value}
        if request.verbosity:
            body["verbosity"] = request.verbosity
        if request.json_schema is not None:
            body["response_format"] = request.json_schema.to_response_format()
        if capabilities.openrouter_gemini:
            body["safety_settings"] = [dict(setting) for setting in GEMINI_SAFETY]

        return drop_none(body)
