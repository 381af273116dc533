"""Gemini compiler — Google AI Studio (``makersuite``) and Vertex AI.

Key differences from CMS:
- Leading system messages become ``systemInstruction`` parts.
- Roles are ``user`` and ``model``; system and tool turns are spoken by the user.
- Tool calls are ``functionCall`` parts; results are ``functionResponse`` parts
  matched by function name rather than call id.
- Only inline (data URI) media is accepted.
- Gemini 2.5/3 models echo opaque ``thoughtSignature`` values back on parts.
"""

from __future__ import annotations

import logging
from typing import Any

from pydantic import BaseModel

from chatwire.config import ConverterSettings
from chatwire.core.capabilities.capabilities import ModelCapabilities, resolve_capabilities
from chatwire.core.interface.compiler import BaseCompiler, Dialect, drop_none
from chatwire.core.interface.models import (
    AudioContent,
    CanonicalMessage,
    ImageContent,
    PromptNames,
    TextContent,
    ToolResultContent,
    ToolUseContent,
    VideoContent,
    coerce_messages,
)
from chatwire.core.interface.request import ChatRequest
from chatwire.core.processing.media import to_gemini_inline_data
from chatwire.core.processing.naming import prefix_exemplar, prefix_speaker
from chatwire.core.processing.reasoning import calculate_gemini_budget_tokens
from chatwire.core.processing.tools import (
    SKIP_THOUGHT_SIGNATURE,
    ToolNameRegistry,
    gemini_tool_config,
    gemini_tools,
    to_gemini_function_call,
    to_gemini_function_response,
)

logger = logging.getLogger(__name__)

_HARM_CATEGORIES = (
    "HARM_CATEGORY_HARASSMENT",
    "HARM_CATEGORY_HATE_SPEECH",
    "HARM_CATEGORY_SEXUALLY_EXPLICIT",
    "HARM_CATEGORY_DANGEROUS_CONTENT",
    "HARM_CATEGORY_CIVIC_INTEGRITY",
)
_VERTEX_HARM_CATEGORIES = (
    "HARM_CATEGORY_IMAGE_HATE",
    "HARM_CATEGORY_IMAGE_DANGEROUS_CONTENT",
    "HARM_CATEGORY_IMAGE_HARASSMENT",
    "HARM_CATEGORY_IMAGE_SEXUALLY_EXPLICIT",
    "HARM_CATEGORY_JAILBREAK",
)

GEMINI_SAFETY = [{"category": category, "threshold": "OFF"} for category in _HARM_CATEGORIES]
VERTEX_SAFETY = [{"category": category, "threshold": "OFF"} for category in _VERTEX_HARM_CATEGORIES]


class GeminiPrompt(BaseModel):
    """Converted Gemini prompt: ``contents`` plus the ``system_instruction`` block."""

    contents: list[dict[str, Any]]
    system_instruction: dict[str, Any] = {"parts": []}


def convert_gemini_prompt(
    messages: Any,
    model: str,
    use_sys_prompt: bool,
    names: PromptNames,
    *,
    thought_signatures: bool = True,
) -> GeminiPrompt:
    """Convert canonical messages into Gemini ``contents``.

    With *use_sys_prompt*, leading system messages move to the system
    instruction, but at least one message always stays in ``contents``.
    *thought_signatures* controls whether stored message signatures are sent
    back on text parts.

    Raises:
        InvalidMessagesError: If *messages* is not a list.
    """
    source = coerce_messages(messages, "convert_gemini_prompt")
    capabilities = resolve_capabilities(model)

    system_parts: list[dict[str, Any]] = []
    if use_sys_prompt:
        while len(source) > 1 and source[0].role == "system":
            message = source.pop(0)
            system_parts.append({"text": prefix_exemplar(message.text, message.name, names)})

    tool_names = ToolNameRegistry()
    contents: list[dict[str, Any]] = []
    for message in source:
        role = "model" if message.role == "assistant" else "user"
        parts = _message_parts(message, names, tool_names, capabilities)
        _apply_signatures(parts, message, role, capabilities, enabled=thought_signatures)

        if contents and contents[-1]["role"] == role:
            _merge_parts(contents[-1]["parts"], parts)
        else:
            contents.append({"role": role, "parts": parts})

    return GeminiPrompt(contents=contents, system_instruction={"parts": system_parts})


def _message_parts(
    message: CanonicalMessage,
    names: PromptNames,
    tool_names: ToolNameRegistry,
    capabilities: ModelCapabilities,
) -> list[dict[str, Any]]:
    parts: list[dict[str, Any]] = []

    def text_part(text: str) -> dict[str, Any]:
        return {"text": prefix_speaker(text, message.name, names) if message.name else text}

    if isinstance(message.content, str):
        if message.tool_calls:
            if message.content:
                parts.append(text_part(message.content))
            for call in message.tool_calls:
                parts.append(to_gemini_function_call(call))
                tool_names.record(call.id, call.name)
        elif message.tool_call_id:
            parts.append(to_gemini_function_response(tool_names.resolve(message.tool_call_id), message.content))
        else:
            parts.append(text_part(message.content))
        return parts

    for part in message.content:
        if isinstance(part, TextContent):
            parts.append(text_part(part.text))
        elif isinstance(part, (ImageContent, VideoContent)):
            default_mime = "image/png" if isinstance(part, ImageContent) else "video/mp4"
            detail = part.detail if capabilities.gemini_media_resolution else None
            inline = to_gemini_inline_data(part.url, default_mime, detail)
            if inline is not None:
                parts.append(inline)
        elif isinstance(part, AudioContent):
            inline = to_gemini_inline_data(part.url, "audio/mpeg")
            if inline is not None:
                parts.append(inline)
        elif isinstance(part, ToolUseContent):
            parts.append({"functionCall": {"name": part.name, "args": part.input}})
            tool_names.record(part.id, part.name)
        elif isinstance(part, ToolResultContent):
            parts.append(to_gemini_function_response(tool_names.resolve(part.tool_call_id), part.content))

    for call in message.tool_calls or []:
        parts.append(to_gemini_function_call(call))
        tool_names.record(call.id, call.name)
    return parts


def _apply_signatures(
    parts: list[dict[str, Any]],
    message: CanonicalMessage,
    role: str,
    capabilities: ModelCapabilities,
    *,
    enabled: bool,
) -> None:
    """Attach stored thought signatures, or the bypass value Gemini 3 requires."""
    if not capabilities.gemini_thought_signatures:
        return
    for part in parts:
        if enabled and message.signature and "text" in part:
            part["thoughtSignature"] = message.signature
        elif capabilities.gemini_signature_bypass:
            if "functionCall" in part and "thoughtSignature" not in part:
                part["thoughtSignature"] = SKIP_THOUGHT_SIGNATURE
            if capabilities.gemini_image_output and role == "model" and ("text" in part or "inlineData" in part):
                part["thoughtSignature"] = SKIP_THOUGHT_SIGNATURE


def _merge_parts(existing: list[dict[str, Any]], new: list[dict[str, Any]]) -> None:
    """Merge *new* parts into a same-role turn.

    Plain text joins the first text part with a blank line; every other part
    is appended.
    """
    for part in new:
        if set(part) != {"text"}:
            existing.append(part)
            continue
        if not part["text"]:
            continue
        target = next((p for p in existing if isinstance(p.get("text"), str)), None)
        if target is None:
            existing.append(part)
        else:
            target["text"] += "\n\n" + part["text"]


class GeminiCompiler(BaseCompiler):
    """Compiles a :class:`ChatRequest` into a ``generateContent`` body."""

    def __init__(self, vertex: bool = False) -> None:
        self.vertex = vertex
        self.dialect = Dialect.VERTEXAI if vertex else Dialect.MAKERSUITE

    def build(
        self,
        request: ChatRequest,
        messages: list[CanonicalMessage],
        names: PromptNames,
        settings: ConverterSettings,
    ) -> dict[str, Any]:
        model = request.model
        capabilities = resolve_capabilities(model)

        generation_config: dict[str, Any] = {
            "stopSequences": request.stop_sequences or None,
            "candidateCount": 1,
            "maxOutputTokens": request.max_tokens,
            "temperature": request.temperature,
            "topP": request.top_p,
            "topK": request.top_k or None,
            "responseMimeType": "application/json" if request.json_schema is not None else None,
            "responseSchema": request.json_schema.value if request.json_schema is not None else None,
            "seed": request.seed,
        }

        image_modality = request.request_images and capabilities.gemini_image_generation
        if image_modality:
            generation_config["responseModalities"] = ["text", "image"]
            image_config: dict[str, Any] = {}
            if request.request_image_resolution and capabilities.gemini_image_size:
                image_config["imageSize"] = request.request_image_resolution
            if request.request_image_aspect_ratio:
                image_config["aspectRatio"] = request.request_image_aspect_ratio
            if image_config:
                generation_config["imageConfig"] = image_config

        use_system_prompt = not image_modality and not capabilities.gemma and request.use_sysprompt
        prompt = convert_gemini_prompt(
            messages,
            model,
            use_system_prompt,
            names,
            thought_signatures=settings.gemini.thought_signatures,
        )

        tools: list[dict[str, Any]] = []
        if request.has_tools and not image_modality and not capabilities.gemma:
            tools = gemini_tools(request.tools)

        search_allowed = not (
            image_modality or capabilities.gemma or capabilities.learnlm or capabilities.gemini_no_search
        )
        # Search cannot be combined with function calling.
        if request.enable_web_search and search_allowed and not any("function_declarations" in t for t in tools):
            tools.append({"google_search": {}})

        if capabilities.gemini_thinking_config:
            generation_config["thinkingConfig"] = self._thinking_config(request)

        body: dict[str, Any] = {
            "contents": prompt.contents,
            "safetySettings": [*GEMINI_SAFETY, *(VERTEX_SAFETY if self.vertex else [])],
            "generationConfig": drop_none(generation_config),
        }

        if use_system_prompt and prompt.system_instruction.get("parts"):
            body["systemInstruction"] = prompt.system_instruction

        if tools:
            body["tools"] = tools
            function_calling = gemini_tool_config(request.tool_choice)
            if function_calling is not None:
                body["toolConfig"] = {"functionCallingConfig": function_calling}

        return body

    def _thinking_config(self, request: ChatRequest) -> dict[str, Any]:
        config: dict[str, Any] = {"includeThoughts": request.include_reasoning}
        budget = calculate_gemini_budget_tokens(request.max_tokens, request.effort, request.model)
        if isinstance(budget, int):
            config["thinkingBudget"] = budget
        elif isinstance(budget, str) and budget:
            config["thinkingLevel"] = budget

        # Vertex rejects includeThoughts together with disabled thinking.
        if self.vertex and budget == 0 and config["includeThoughts"]:
            logger.info("Thinking budget is 0, but includeThoughts is true; thoughts will not be included")
            config["includeThoughts"] = False
        return config
