"""Tests for the compiler protocol, the shared pipeline and dialect lookup."""

from __future__ import annotations

from typing import Any
from unittest.mock import MagicMock, patch

import pytest

from chatwire.config import ConverterSettings
from chatwire.core.interface.compiler import BaseCompiler, Dialect, DialectCompiler, drop_none, get_compiler
from chatwire.core.interface.compilers import (
    ClaudeCompiler,
    GeminiCompiler,
    OpenAICompatibleCompiler,
    OpenRouterCompiler,
    build_compilers,
)
from chatwire.core.interface.models import CanonicalMessage, PromptNames
from chatwire.core.interface.request import ChatRequest, PromptProcessingType
from chatwire.errors import UnknownDialectError

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


class _EchoCompiler(BaseCompiler):
    dialect = Dialect.OPENAI

    def build(
        self,
        request: ChatRequest,
        messages: list[CanonicalMessage],
        names: PromptNames,
        settings: ConverterSettings,
    ) -> dict[str, Any]:
        return {"messages": [m.to_openai() for m in messages], "names": names, "settings": settings}


def _request(**kwargs: Any) -> ChatRequest:
    return ChatRequest(
        model="gpt-4o",
        messages=[
            CanonicalMessage.system("Setting"),
            CanonicalMessage.user("Hi"),
            CanonicalMessage.user("there"),
        ],
        **kwargs,
    )


class TestGetCompiler:
    def test_every_dialect_has_a_compiler(self) -> None:
        compilers = build_compilers()
        assert set(compilers) == set(Dialect)
        for dialect, compiler in compilers.items():
            assert compiler.dialect == dialect

    def test_lookup_by_string(self) -> None:
        assert isinstance(get_compiler("claude"), ClaudeCompiler)
        assert isinstance(get_compiler(Dialect.OPENROUTER), OpenRouterCompiler)

    def test_gemini_variants(self) -> None:
        vertex = get_compiler("vertexai")
        studio = get_compiler("makersuite")
        assert isinstance(vertex, GeminiCompiler) and vertex.vertex is True
        assert isinstance(studio, GeminiCompiler) and studio.vertex is False

    def test_perplexity_is_strict(self) -> None:
        compiler = get_compiler("perplexity")
        assert isinstance(compiler, OpenAICompatibleCompiler)
        assert compiler.processing == PromptProcessingType.STRICT

    def test_unknown_dialect(self) -> None:
        with pytest.raises(UnknownDialectError, match="Unknown dialect: palm"):
            get_compiler("palm")

    def test_protocol_conformance(self) -> None:
        compiler: DialectCompiler = get_compiler("openai")
        assert callable(compiler.compile)


class TestBaseCompiler:
    def setup_method(self) -> None:
        self.compiler = _EchoCompiler()

    def test_no_post_processing(self) -> None:
        body = self.compiler.compile(_request())
        assert [m["content"] for m in body["messages"]] == ["Setting", "Hi", "there"]

    def test_applies_custom_post_processing(self) -> None:
        body = self.compiler.compile(_request(custom_prompt_post_processing="merge"))
        assert body["messages"] == [
            {"role": "system", "content": "Setting"},
            {"role": "user", "content": "Hi\n\nthere"},
        ]

    def test_defaults_names_and_settings(self) -> None:
        body = self.compiler.compile(_request(char_name="Alice"))
        assert body["names"].char_name == "Alice"
        assert body["settings"] == ConverterSettings()

    def test_explicit_names_win(self) -> None:
        names = PromptNames(char_name="Bob")
        body = self.compiler.compile(_request(char_name="Alice"), names=names)
        assert body["names"] is names

    def test_request_is_not_mutated(self) -> None:
        request = _request(custom_prompt_post_processing="single")
        before = request.model_dump()
        self.compiler.compile(request)
        assert request.model_dump() == before

    def test_build_not_implemented(self) -> None:
        with pytest.raises(NotImplementedError):
            BaseCompiler().build(_request(), [], PromptNames(), ConverterSettings())

    def test_records_span_attributes(self) -> None:
        span = MagicMock()
        tracer = MagicMock()
        tracer.start_as_current_span.return_value.__enter__.return_value = span

        with patch("chatwire.core.interface.compiler._tracer", tracer):
            self.compiler.compile(_request())

        tracer.start_as_current_span.assert_called_once_with("chatwire.compile")
        span.set_attribute.assert_any_call("chatwire.dialect", "openai")
        span.set_attribute.assert_any_call("chatwire.model", "gpt-4o")
        span.set_attribute.assert_any_call("chatwire.messages", 3)
        span.set_attribute.assert_any_call("chatwire.compiled_messages", 3)


class TestDropNone:
    def test_drops_top_level_none_only(self) -> None:
        assert drop_none({"a": None, "b": 0, "c": {"d": None}, "e": []}) == {"b": 0, "c": {"d": None}, "e": []}
