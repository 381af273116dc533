"""Compiler protocol — turns a canonical request into one dialect's request body.

Each dialect (Claude, Gemini, Cohere, ...) has a concrete compiler. A compiler
is stateless: it owns a deep copy of the request's messages, runs the shared
processing services in the order its backend needs, and returns a plain
``dict`` ready to be serialized as JSON.
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import Any, Protocol

from chatwire.config import ConverterSettings
from chatwire.core.interface.models import CanonicalMessage, PromptNames, coerce_messages
from chatwire.core.interface.request import ChatRequest, PromptProcessingType
from chatwire.core.processing.merger import post_process_prompt
from chatwire.errors import UnknownDialectError
from chatwire.utils.telemetry import (
    ATTR_COMPILED_MESSAGES,
    ATTR_MESSAGES,
    ATTR_POST_PROCESSING,
    ATTR_REASONING_EFFORT,
    compile_span,
    get_tracer,
)

logger = logging.getLogger(__name__)

_tracer = get_tracer(__name__)


class Dialect(str, Enum):
    """Target wire formats."""

    CLAUDE = "claude"
    MAKERSUITE = "makersuite"
    VERTEXAI = "vertexai"
    COHERE = "cohere"
    AI21 = "ai21"
    MISTRALAI = "mistralai"
    XAI = "xai"
    DEEPSEEK = "deepseek"
    OPENROUTER = "openrouter"
    OPENAI = "openai"
    CUSTOM = "custom"
    PERPLEXITY = "perplexity"


class DialectCompiler(Protocol):
    """Protocol for dialect-specific request compilers."""

    dialect: Dialect

    def compile(
        self,
        request: ChatRequest,
        names: PromptNames | None = None,
        settings: ConverterSettings | None = None,
    ) -> dict[str, Any]:
        """Compile *request* into the dialect's request body.

        *names* defaults to the persona names carried by the request and
        *settings* to :class:`ConverterSettings` defaults.
        """
        ...


class BaseCompiler:
    """Shared compile pipeline: tracing, post-processing, then :meth:`build`."""

    dialect: Dialect

    def compile(
        self,
        request: ChatRequest,
        names: PromptNames | None = None,
        settings: ConverterSettings | None = None,
    ) -> dict[str, Any]:
        resolved_names = names if names is not None else request.prompt_names
        resolved_settings = settings if settings is not None else ConverterSettings()

        with compile_span(_tracer, self.dialect.value, request.model) as span:
            span.set_attribute(ATTR_MESSAGES, len(request.messages))
            span.set_attribute(ATTR_REASONING_EFFORT, request.effort.value)

            messages = self.prepare_messages(request, resolved_names, resolved_settings)
            span.set_attribute(ATTR_POST_PROCESSING, request.custom_prompt_post_processing.value)

            body = self.build(request, messages, resolved_names, resolved_settings)
            compiled = body.get("messages") or body.get("contents")
            if isinstance(compiled, list):
                span.set_attribute(ATTR_COMPILED_MESSAGES, len(compiled))

        logger.debug("%s request: %s", self.dialect.value, body)
        return body

    def prepare_messages(
        self,
        request: ChatRequest,
        names: PromptNames,
        settings: ConverterSettings,
    ) -> list[CanonicalMessage]:
        """Apply the request's custom post-processing, or copy the messages."""
        if request.custom_prompt_post_processing == PromptProcessingType.NONE:
            return coerce_messages(request.messages, "compile")
        logger.info("Applying custom prompt post-processing of type %s", request.custom_prompt_post_processing.value)
        return post_process_prompt(
            request.messages,
            request.custom_prompt_post_processing,
            names,
            placeholder=settings.prompt_placeholder,
        )

    def build(
        self,
        request: ChatRequest,
        messages: list[CanonicalMessage],
        names: PromptNames,
        settings: ConverterSettings,
    ) -> dict[str, Any]:
        raise NotImplementedError


def drop_none(body: dict[str, Any]) -> dict[str, Any]:
    """Return *body* without top-level ``None`` values."""
    return {key: value for key, value in body.items() if value is not None}


def get_compiler(dialect: Dialect | str) -> DialectCompiler:
    """Return the compiler registered for *dialect*.

    Raises:
        UnknownDialectError: If no compiler handles *dialect*.
    """
    from chatwire.core.interface.compilers import build_compilers

    try:
        key = Dialect(dialect)
    except ValueError as exc:
        raise UnknownDialectError(str(dialect)) from exc
    return build_compilers()[key]
