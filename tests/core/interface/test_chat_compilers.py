"""Tests for the Cohere, AI21, Mistral, xAI and DeepSeek compilers."""

from __future__ import annotations

from typing import Any

import pytest

from chatwire.config import ConverterSettings
from chatwire.core.interface.compilers.ai21 import AI21Compiler, convert_ai21_messages
from chatwire.core.interface.compilers.cohere import CohereCompiler, convert_cohere_messages
from chatwire.core.interface.compilers.deepseek import DeepSeekCompiler
from chatwire.core.interface.compilers.mistral import MistralCompiler, convert_mistral_messages
from chatwire.core.interface.compilers.xai import XAICompiler, convert_xai_messages, xai_reasoning_effort
from chatwire.core.interface.models import CanonicalMessage, PromptNames, ReasoningEffort, ToolCall
from chatwire.core.interface.request import ChatRequest, JsonSchema
from chatwire.core.processing.tools import sanitize_mistral_tool_id
from chatwire.errors import InvalidMessagesError

_NAMES = PromptNames(char_name="Alice", user_name="Bob")

_TOOL = {
    "type": "function",
    "function": {
        "name": "lookup",
        "parameters": {
            "$schema": "http://json-schema.org/draft-07/schema#",
            "type": "object",
            "properties": {},
            "required": [],
        },
    },
}

# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


def _call(call_id: str = "call-1") -> ToolCall:
    return ToolCall(id=call_id, name="lookup", arguments='{"q": "tides"}')


def _request(model: str, **kwargs: Any) -> ChatRequest:
    defaults: dict[str, Any] = {
        "model": model,
        "max_tokens": 500,
        "temperature": 0.8,
        "messages": [CanonicalMessage.system("Be brief."), CanonicalMessage.user("Hello")],
    }
    defaults.update(kwargs)
    return ChatRequest(**defaults)


# ---------------------------------------------------------------------------
# Cohere
# ---------------------------------------------------------------------------


class TestCohere:
    def test_rejects_non_list(self) -> None:
        with pytest.raises(InvalidMessagesError):
            convert_cohere_messages({"role": "user"}, _NAMES)

    def test_empty_gets_placeholder(self) -> None:
        assert convert_cohere_messages([], _NAMES) == [{"role": "user", "content": "Let's get started."}]

    def test_tool_call_absorbs_previous_assistant(self) -> None:
        messages = [
            CanonicalMessage.user("Tide?"),
            CanonicalMessage.assistant("Let me check."),
            CanonicalMessage.assistant("", tool_calls=[_call()]),
        ]
        result = convert_cohere_messages(messages, _NAMES)
        assert len(result) == 2
        assert result[1]["content"] == "Let me check."
        assert result[1]["tool_calls"][0]["id"] == "call-1"

    def test_tool_call_primer(self) -> None:
        result = convert_cohere_messages([CanonicalMessage.assistant("", tool_calls=[_call()])], _NAMES)
        assert result[0]["content"] == "I'm going to call a tool for that: lookup"

    def test_names_folded_into_text(self) -> None:
        messages = [
            CanonicalMessage.system("Hi", name="example_user"),
            CanonicalMessage.system("Rules", name="narrator"),
            CanonicalMessage.user("Hey", name="Carol"),
        ]
        result = convert_cohere_messages(messages, _NAMES)
        assert result == [
            {"role": "system", "content": "Bob: Hi"},
            {"role": "system", "content": "Rules"},
            {"role": "user", "content": "Carol: Hey"},
        ]

    def test_body(self) -> None:
        request = _request(
            "command-r-08-2024",
            top_k=40,
            top_p=0.9,
            stop=["END"],
            tools=[_TOOL],
            json_schema=JsonSchema(value={"type": "object"}),
        )
        body = CohereCompiler().compile(request)
        assert body["k"] == 40
        assert body["p"] == 0.9
        assert body["stop_sequences"] == ["END"]
        assert body["documents"] == []
        assert body["safety_mode"] == "OFF"
        assert "$schema" not in body["tools"][0]["function"]["parameters"]
        assert body["response_format"] == {"type": "json_schema", "schema": {"type": "object"}}
        assert "seed" not in body

    def test_no_safety_mode_for_other_models(self) -> None:
        assert "safety_mode" not in CohereCompiler().compile(_request("command-a-03-2025"))


# ---------------------------------------------------------------------------
# AI21
# ---------------------------------------------------------------------------


class TestAI21:
    def test_non_list_yields_empty(self) -> None:
        assert convert_ai21_messages("hello", _NAMES) == []

    def test_squashes_leading_system(self) -> None:
        messages = [
            CanonicalMessage.system("A"),
            CanonicalMessage.system("B", name="example_user"),
            CanonicalMessage.user("hi"),
        ]
        assert convert_ai21_messages(messages, _NAMES) == [
            {"role": "system", "content": "A\n\nBob: B"},
            {"role": "user", "content": "hi"},
        ]

    def test_placeholder_after_system(self) -> None:
        result = convert_ai21_messages([CanonicalMessage.system("A")], _NAMES)
        assert result == [{"role": "system", "content": "A"}, {"role": "user", "content": "Let's get started."}]

    def test_merges_same_role(self) -> None:
        messages = [
            CanonicalMessage.user("a"),
            CanonicalMessage.user("b", name="Carol"),
            CanonicalMessage.assistant("c"),
        ]
        assert convert_ai21_messages(messages, _NAMES) == [
            {"role": "user", "content": "a\n\nCarol: b"},
            {"role": "assistant", "content": "c"},
        ]

    def test_json_schema_as_prompt(self) -> None:
        schema = JsonSchema(value={"type": "object"})
        body = AI21Compiler().compile(_request("jamba-large", json_schema=schema))
        assert body["response_format"] == {"type": "json_object"}
        assert body["messages"][-1]["role"] == "user"
        assert body["messages"][-1]["content"].endswith(schema.as_prompt())

    def test_request_not_mutated(self) -> None:
        request = _request("jamba-large", json_schema=JsonSchema(value={}))
        AI21Compiler().compile(request)
        assert len(request.messages) == 2


# ---------------------------------------------------------------------------
# Mistral
# ---------------------------------------------------------------------------


class TestMistral:
    def test_non_list_yields_empty(self) -> None:
        assert convert_mistral_messages(None, _NAMES) == []

    def test_sanitizes_tool_ids(self) -> None:
        messages = [
            CanonicalMessage.user("Tide?"),
            CanonicalMessage.assistant("", tool_calls=[_call("call_abc-123")]),
            CanonicalMessage.tool("call_abc-123", "noon"),
        ]
        result = convert_mistral_messages(messages, _NAMES)
        expected = sanitize_mistral_tool_id("call_abc-123")
        assert len(expected) == 9
        assert result[1]["tool_calls"][0]["id"] == expected
        assert result[2]["tool_call_id"] == expected

    def test_user_after_tool_folds_into_previous_user(self) -> None:
        messages = [
            CanonicalMessage.user("Tide?"),
            CanonicalMessage.assistant("", tool_calls=[_call()]),
            CanonicalMessage.tool("call-1", "noon"),
            CanonicalMessage.user("And tomorrow?"),
        ]
        result = convert_mistral_messages(messages, _NAMES)
        assert [m["role"] for m in result] == ["user", "assistant", "tool"]
        assert result[0]["content"] == "Tide?\n\nAnd tomorrow?"

    def test_system_after_assistant_becomes_user(self) -> None:
        messages = [CanonicalMessage.user("a"), CanonicalMessage.assistant("b"), CanonicalMessage.system("c")]
        assert convert_mistral_messages(messages, _NAMES)[2]["role"] == "user"

    def test_prefix_flag(self) -> None:
        messages = [CanonicalMessage.user("a"), CanonicalMessage.assistant("Once")]
        assert convert_mistral_messages(messages, _NAMES, enable_prefix=True)[-1]["prefix"] is True
        assert "prefix" not in convert_mistral_messages(messages, _NAMES)[-1]

    def test_input_not_mutated(self) -> None:
        call = _call("call_abc-123")
        convert_mistral_messages([CanonicalMessage.assistant("", tool_calls=[call])], _NAMES)
        assert call.id == "call_abc-123"

    def test_body(self) -> None:
        settings = ConverterSettings.model_validate({"mistral": {"enable_prefix": True}})
        request = _request(
            "mistral-large-latest",
            seed=-1,
            safe_prompt=False,
            json_schema=JsonSchema(name="answer", description="An answer", value={"type": "object"}),
        )
        body = MistralCompiler().compile(request, settings=settings)
        assert "random_seed" not in body
        assert "stop" not in body
        assert body["safe_prompt"] is False
        assert body["response_format"]["json_schema"] == {
            "name": "answer",
            "description": "An answer",
            "strict": True,
            "schema": {"type": "object"},
        }

    def test_random_seed(self) -> None:
        assert MistralCompiler().compile(_request("mistral-small", seed=7))["random_seed"] == 7


# ---------------------------------------------------------------------------
# xAI
# ---------------------------------------------------------------------------


class TestXAI:
    def test_non_list_yields_empty(self) -> None:
        assert convert_xai_messages(42, _NAMES) == []

    def test_names(self) -> None:
        messages = [
            CanonicalMessage.system("Hi", name="example_user"),
            CanonicalMessage.system("Hello", name="example_assistant"),
            CanonicalMessage.user("Hey", name="Bob"),
            CanonicalMessage.assistant("Yo", name="Alice"),
        ]
        result = convert_xai_messages(messages, _NAMES)
        assert result == [
            {"role": "system", "content": "Bob: Hi"},
            {"role": "system", "content": "Alice: Hello"},
            {"role": "user", "content": "Hey", "name": "Bob"},
            {"role": "assistant", "content": "Alice: Yo"},
        ]

    @pytest.mark.parametrize(
        ("effort", "expected"),
        [
            (ReasoningEffort.AUTO, None),
            (ReasoningEffort.MIN, "low"),
            (ReasoningEffort.MEDIUM, "low"),
            (ReasoningEffort.HIGH, "high"),
            (ReasoningEffort.MAX, "high"),
        ],
    )
    def test_reasoning_effort(self, effort: ReasoningEffort, expected: str | None) -> None:
        assert xai_reasoning_effort(effort) == expected

    def test_body(self) -> None:
        request = _request(
            "grok-3-mini",
            logprobs=5,
            reasoning_effort="max",
            enable_web_search=True,
            tools=[_TOOL],
            tool_choice="auto",
            stop=[],
        )
        body = XAICompiler().compile(request)
        assert body["logprobs"] is True
        assert body["top_logprobs"] == 5
        assert body["reasoning_effort"] == "high"
        assert body["search_parameters"]["mode"] == "on"
        assert {"type": "x"} in body["search_parameters"]["sources"]
        assert body["tool_choice"] == "auto"
        assert "stop" not in body

    def test_auto_effort_omitted(self) -> None:
        assert "reasoning_effort" not in XAICompiler().compile(_request("grok-4"))


# ---------------------------------------------------------------------------
# DeepSeek
# ---------------------------------------------------------------------------


class TestDeepSeek:
    def setup_method(self) -> None:
        self.compiler = DeepSeekCompiler()

    def test_merges_and_marks_prefix(self) -> None:
        request = _request(
            "deepseek-chat",
            messages=[
                CanonicalMessage.system("S"),
                CanonicalMessage.user("a"),
                CanonicalMessage.user("b"),
                CanonicalMessage.assistant("c"),
            ],
        )
        body = self.compiler.compile(request)
        assert body["messages"] == [
            {"role": "system", "content": "S"},
            {"role": "user", "content": "a\n\nb"},
            {"role": "assistant", "content": "c", "prefix": True},
        ]

    def test_no_prefix_with_tools(self) -> None:
        request = _request(
            "deepseek-chat",
            messages=[CanonicalMessage.user("a"), CanonicalMessage.assistant("c")],
            tools=[_TOOL],
        )
        body = self.compiler.compile(request)
        assert "prefix" not in body["messages"][-1]
        assert "required" not in body["tools"][0]["function"]["parameters"]

    def test_reasoner_pads_reasoning_content(self) -> None:
        request = _request(
            "deepseek-reasoner",
            messages=[
                CanonicalMessage.user("Tide?"),
                CanonicalMessage.assistant("", tool_calls=[_call()]),
                CanonicalMessage.tool("call-1", "noon"),
            ],
        )
        body = self.compiler.compile(request)
        assert body["messages"][1]["reasoning_content"] == ""
        assert body["messages"][2]["role"] == "tool"

    def test_json_object(self) -> None:
        schema = JsonSchema(value={"type": "object"})
        body = self.compiler.compile(_request("deepseek-chat", json_schema=schema))
        assert body["response_format"] == {"type": "json_object"}
        assert body["messages"][-1]["content"].endswith(schema.as_prompt())
