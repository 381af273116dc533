"""Tests for the Gemini (AI Studio / Vertex AI) compiler."""

from __future__ import annotations

from typing import Any

from chatwire.config import ConverterSettings
from chatwire.core.interface.compilers.gemini import (
    GEMINI_SAFETY,
    VERTEX_SAFETY,
    GeminiCompiler,
    convert_gemini_prompt,
)
from chatwire.core.interface.models import (
    CanonicalMessage,
    ImageContent,
    PromptNames,
    TextContent,
    ToolCall,
    VideoContent,
)
from chatwire.core.interface.request import ChatRequest, JsonSchema
from chatwire.core.processing.tools import SKIP_THOUGHT_SIGNATURE

_NAMES = PromptNames(char_name="Alice", user_name="Bob")

_TOOL = {
    "type": "function",
    "function": {
        "name": "lookup",
        "description": "Look something up",
        "parameters": {"type": "object", "properties": {"q": {"type": "string"}}},
    },
}


def _tool_history(signature: str | None = None) -> list[CanonicalMessage]:
    call = ToolCall(id="call-1", name="lookup", arguments='{"q": "tides"}', signature=signature)
    return [
        CanonicalMessage.user("When is high tide?"),
        CanonicalMessage.assistant("", tool_calls=[call]),
        CanonicalMessage.tool("call-1", "at noon"),
    ]


def _request(**kwargs: Any) -> ChatRequest:
    defaults: dict[str, Any] = {
        "model": "gemini-2.0-flash",
        "max_tokens": 10000,
        "messages": [CanonicalMessage.system("Be brief."), CanonicalMessage.user("Hello")],
        "use_sysprompt": True,
    }
    defaults.update(kwargs)
    return ChatRequest(**defaults)


class TestConvertGeminiPrompt:
    def test_system_instruction(self) -> None:
        messages = [CanonicalMessage.system("A"), CanonicalMessage.user("Hi")]
        prompt = convert_gemini_prompt(messages, "gemini-2.0-flash", True, _NAMES)
        assert prompt.system_instruction == {"parts": [{"text": "A"}]}
        assert prompt.contents == [{"role": "user", "parts": [{"text": "Hi"}]}]

    def test_keeps_one_message_in_contents(self) -> None:
        prompt = convert_gemini_prompt([CanonicalMessage.system("A")], "gemini-2.0-flash", True, _NAMES)
        assert prompt.system_instruction == {"parts": []}
        assert prompt.contents == [{"role": "user", "parts": [{"text": "A"}]}]

    def test_roles_and_merging(self) -> None:
        messages = [
            CanonicalMessage.user("a"),
            CanonicalMessage.system("b"),
            CanonicalMessage.assistant("c"),
            CanonicalMessage.assistant("d"),
        ]
        prompt = convert_gemini_prompt(messages, "gemini-2.0-flash", False, _NAMES)
        assert prompt.contents == [
            {"role": "user", "parts": [{"text": "a\n\nb"}]},
            {"role": "model", "parts": [{"text": "c\n\nd"}]},
        ]

    def test_named_and_exemplar_text(self) -> None:
        messages = [
            CanonicalMessage.system("Hello", name="example_assistant"),
            CanonicalMessage.user("Hey", name="Carol"),
        ]
        prompt = convert_gemini_prompt(messages, "gemini-2.0-flash", False, _NAMES)
        assert prompt.contents[0]["parts"][0]["text"] == "Alice: Hello\n\nCarol: Hey"

    def test_function_call_and_response(self) -> None:
        prompt = convert_gemini_prompt(_tool_history(), "gemini-2.0-flash", False, _NAMES)
        assert prompt.contents[1] == {
            "role": "model",
            "parts": [{"functionCall": {"name": "lookup", "args": {"q": "tides"}}}],
        }
        assert prompt.contents[2] == {
            "role": "user",
            "parts": [{"functionResponse": {"name": "lookup", "response": {"name": "lookup", "content": "at noon"}}}],
        }

    def test_unknown_tool_result(self) -> None:
        prompt = convert_gemini_prompt([CanonicalMessage.tool("ghost", "x")], "gemini-2.0-flash", False, _NAMES)
        assert prompt.contents[0]["parts"][0]["functionResponse"]["name"] == "unknown"

    def test_inline_media(self) -> None:
        message = CanonicalMessage(
            role="user",
            content=[
                TextContent(text="look"),
                ImageContent(url="data:image/jpeg;base64,AAAA"),
                ImageContent(url="https://example.com/remote.png"),
            ],
        )
        prompt = convert_gemini_prompt([message], "gemini-2.0-flash", False, _NAMES)
        assert prompt.contents[0]["parts"] == [
            {"text": "look"},
            {"inlineData": {"mimeType": "image/jpeg", "data": "AAAA"}},
        ]

    def test_media_resolution_on_gemini_3(self) -> None:
        message = CanonicalMessage(role="user", content=[VideoContent(url="data:video/mp4;base64,BBBB", detail="low")])
        prompt = convert_gemini_prompt([message], "gemini-3-pro-preview", False, _NAMES)
        assert prompt.contents[0]["parts"][0]["mediaResolution"] == {"level": "media_resolution_low"}

    def test_text_signature(self) -> None:
        message = CanonicalMessage(role="assistant", content="thought through", signature="sig-1")
        prompt = convert_gemini_prompt([message], "gemini-2.5-pro", False, _NAMES)
        assert prompt.contents[0]["parts"][0]["thoughtSignature"] == "sig-1"

    def test_signatures_disabled(self) -> None:
        message = CanonicalMessage(role="assistant", content="thought through", signature="sig-1")
        prompt = convert_gemini_prompt([message], "gemini-2.5-pro", False, _NAMES, thought_signatures=False)
        assert "thoughtSignature" not in prompt.contents[0]["parts"][0]

    def test_signature_bypass_on_gemini_3(self) -> None:
        prompt = convert_gemini_prompt(_tool_history(), "gemini-3-pro-preview", False, _NAMES)
        call_part = prompt.contents[1]["parts"][0]
        assert call_part["thoughtSignature"] == SKIP_THOUGHT_SIGNATURE

    def test_stored_call_signature_kept(self) -> None:
        prompt = convert_gemini_prompt(_tool_history("real-sig"), "gemini-3-pro-preview", False, _NAMES)
        assert prompt.contents[1]["parts"][0]["thoughtSignature"] == "real-sig"


class TestGeminiCompiler:
    def setup_method(self) -> None:
        self.compiler = GeminiCompiler()

    def test_basic_body(self) -> None:
        body = self.compiler.compile(_request(temperature=0.5, top_k=0, stop=["END"]))
        assert body["systemInstruction"] == {"parts": [{"text": "Be brief."}]}
        assert body["contents"] == [{"role": "user", "parts": [{"text": "Hello"}]}]
        assert body["safetySettings"] == GEMINI_SAFETY
        assert body["generationConfig"] == {
            "stopSequences": ["END"],
            "candidateCount": 1,
            "maxOutputTokens": 10000,
            "temperature": 0.5,
        }

    def test_vertex_safety(self) -> None:
        body = GeminiCompiler(vertex=True).compile(_request())
        assert body["safetySettings"] == [*GEMINI_SAFETY, *VERTEX_SAFETY]

    def test_json_schema(self) -> None:
        body = self.compiler.compile(_request(json_schema=JsonSchema(value={"type": "object"})))
        assert body["generationConfig"]["responseMimeType"] == "application/json"
        assert body["generationConfig"]["responseSchema"] == {"type": "object"}

    def test_tools_and_tool_config(self) -> None:
        body = self.compiler.compile(_request(tools=[_TOOL], tool_choice="required", enable_web_search=True))
        assert body["tools"] == [{"function_declarations": [_TOOL["function"]]}]
        assert body["toolConfig"] == {"functionCallingConfig": {"mode": "ANY"}}

    def test_web_search_without_functions(self) -> None:
        body = self.compiler.compile(_request(enable_web_search=True))
        assert body["tools"] == [{"google_search": {}}]

    def test_gemma_has_no_system_instruction(self) -> None:
        body = self.compiler.compile(_request(model="gemma-3-27b-it", tools=[_TOOL]))
        assert "systemInstruction" not in body
        assert "tools" not in body
        assert body["contents"][0]["parts"][0]["text"] == "Be brief.\n\nHello"

    def test_thinking_budget(self) -> None:
        body = self.compiler.compile(_request(model="gemini-2.5-flash", reasoning_effort="low"))
        assert body["generationConfig"]["thinkingConfig"] == {"includeThoughts": False, "thinkingBudget": 1000}

    def test_thinking_auto(self) -> None:
        body = self.compiler.compile(_request(model="gemini-2.5-pro", include_reasoning=True))
        assert body["generationConfig"]["thinkingConfig"] == {"includeThoughts": True}

    def test_thinking_level_gemini_3(self) -> None:
        body = self.compiler.compile(_request(model="gemini-3-pro-preview", reasoning_effort="medium"))
        assert body["generationConfig"]["thinkingConfig"]["thinkingLevel"] == "low"

    def test_vertex_disables_thoughts_without_budget(self) -> None:
        body = GeminiCompiler(vertex=True).compile(
            _request(model="gemini-2.5-flash", reasoning_effort="min", include_reasoning=True)
        )
        assert body["generationConfig"]["thinkingConfig"] == {"includeThoughts": False, "thinkingBudget": 0}

    def test_no_thinking_config_for_image_models(self) -> None:
        body = self.compiler.compile(_request(model="gemini-2.5-flash-image", reasoning_effort="high"))
        assert "thinkingConfig" not in body["generationConfig"]

    def test_image_generation(self) -> None:
        body = self.compiler.compile(
            _request(model="gemini-3-pro-image-preview", request_images=True, request_image_aspect_ratio="16:9")
        )
        assert body["generationConfig"]["responseModalities"] == ["text", "image"]
        assert body["generationConfig"]["imageConfig"] == {"aspectRatio": "16:9"}
        assert "systemInstruction" not in body

    def test_thought_signatures_setting(self) -> None:
        settings = ConverterSettings.model_validate({"gemini": {"thought_signatures": False}})
        request = _request(
            model="gemini-2.5-pro",
            messages=[CanonicalMessage.user("q"), CanonicalMessage(role="assistant", content="a", signature="s")],
        )
        body = self.compiler.compile(request, settings=settings)
        assert "thoughtSignature" not in body["contents"][1]["parts"][0]
