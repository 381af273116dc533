"""Tool-call mapper — canonical tool calls and definitions in each dialect's encoding.

Assistant tool calls and tool results are expressed differently by every
provider: Claude uses ``tool_use``/``tool_result`` content blocks, Gemini uses
``functionCall``/``functionResponse`` parts keyed by function *name*, and the
OpenAI-style backends keep ``tool_calls`` on the message. Tool definitions
arrive in the OpenAI ``{"type": "function", "function": {...}}`` shape.
"""

from __future__ import annotations

import copy
import hashlib
import json
import logging
from typing import Any

from chatwire.core.capabilities.capabilities import openrouter_signature_format
from chatwire.core.interface.models import CanonicalMessage, ToolCall

logger = logging.getLogger(__name__)

UNKNOWN_FUNCTION_NAME = "unknown"
SKIP_THOUGHT_SIGNATURE = "skip_thought_signature_validator"
JSON_TOOL_DESCRIPTION = "Well-formed JSON object"


class ToolNameRegistry:
    """Remembers ``tool_call_id -> function name`` across one conversation.

    Gemini function responses are matched by name, so results must be
    resolved against the calls seen earlier in the same prompt.
    """

    def __init__(self) -> None:
        self._names: dict[str, str] = {}

    def record(self, call_id: str, name: str) -> None:
        self._names[call_id] = name

    def resolve(self, call_id: str | None) -> str:
        """Return the function name for *call_id*, or ``"unknown"``."""
        return self._names.get(call_id or "", UNKNOWN_FUNCTION_NAME)


def _compact_json(value: Any) -> str:
    return json.dumps(value, separators=(",", ":"), ensure_ascii=False)


# ---------------------------------------------------------------------------
# Claude
# ---------------------------------------------------------------------------


def to_claude_tool_use(call: ToolCall) -> dict[str, Any]:
    arguments = call.parsed_arguments()
    if not isinstance(arguments, dict):
        arguments = {"raw": arguments}
    return {"type": "tool_use", "id": call.id, "name": call.name, "input": arguments}


def to_claude_tool_result(tool_call_id: str, content: Any) -> dict[str, Any]:
    return {"type": "tool_result", "tool_use_id": tool_call_id, "content": content}


def tool_part_as_text(part: dict[str, Any]) -> dict[str, Any]:
    """Render a ``tool_use``/``tool_result`` block as plain text for tool-less requests."""
    if part.get("type") == "tool_use":
        return {"type": "text", "text": _compact_json(part.get("input"))}
    if part.get("type") == "tool_result":
        content = part.get("content")
        return {"type": "text", "text": content if isinstance(content, str) else _compact_json(content)}
    return part


def flatten_schema(schema: Any) -> Any:
    """Inline ``#/$defs/...`` references of a JSON schema and drop ``$schema``.

    Recursive references resolve to ``{}``, as do references to missing
    definitions.
    """
    if not isinstance(schema, dict):
        return schema
    schema = copy.deepcopy(schema)
    definitions = schema.pop("$defs", None) or {}

    def resolve(node: Any, parents: tuple[str, ...]) -> Any:
        if isinstance(node, list):
            return [resolve(item, parents) for item in node]
        if not isinstance(node, dict):
            return node
        ref = node.get("$ref")
        if isinstance(ref, str) and ref.startswith("#/$defs/"):
            name = ref.rsplit("/", 1)[-1]
            if name in parents or name not in definitions:
                return {}
            return resolve(copy.deepcopy(definitions[name]), (*parents, name))
        return {key: resolve(value, parents) for key, value in node.items()}

    flattened = resolve(schema, ())
    flattened.pop("$schema", None)
    return flattened


def claude_tool_definitions(tools: list[dict[str, Any]] | None) -> list[dict[str, Any]]:
    """Convert OpenAI function tools into Claude ``{name, description, input_schema}`` tools."""
    result: list[dict[str, Any]] = []
    for tool in tools or []:
        if tool.get("type") != "function":
            continue
        function = tool.get("function") or {}
        result.append(
            {
                "name": function.get("name"),
                "description": function.get("description"),
                "input_schema": flatten_schema(function.get("parameters")),
            }
        )
    return result


def claude_tool_choice(tool_choice: str | dict[str, Any] | None) -> dict[str, Any]:
    """Translate an OpenAI ``tool_choice`` into Claude's ``{type: ...}`` form."""
    if isinstance(tool_choice, dict):
        name = (tool_choice.get("function") or {}).get("name")
        if name:
            return {"type": "tool", "name": name}
        return {"type": "auto"}
    if tool_choice == "required":
        return {"type": "any"}
    return {"type": tool_choice or "auto"}


# ---------------------------------------------------------------------------
# Gemini
# ---------------------------------------------------------------------------


def to_gemini_function_call(call: ToolCall) -> dict[str, Any]:
    part: dict[str, Any] = {"functionCall": {"name": call.name, "args": call.parsed_arguments()}}
    if call.signature:
        part["thoughtSignature"] = call.signature
    return part


def to_gemini_function_response(name: str, content: Any) -> dict[str, Any]:
    return {"functionResponse": {"name": name, "response": {"name": name, "content": content}}}


def gemini_tools(tools: list[dict[str, Any]] | None) -> list[dict[str, Any]]:
    """Build the Gemini ``tools`` list.

    Function tools are gathered into one ``function_declarations`` entry.
    Other tool types are passed through only when no functions are declared.
    """
    declarations: list[dict[str, Any]] = []
    custom: list[dict[str, Any]] = []
    for tool in tools or []:
        tool_type = tool.get("type")
        if tool_type == "function":
            function = copy.deepcopy(tool.get("function") or {})
            parameters = function.get("parameters")
            if isinstance(parameters, dict):
                parameters.pop("$schema", None)
                if "properties" in parameters and not parameters["properties"]:
                    del function["parameters"]
            declarations.append(function)
        elif tool_type and tool.get(tool_type):
            custom.append({tool_type: copy.deepcopy(tool[tool_type])})

    if declarations:
        return [{"function_declarations": declarations}]
    return custom


def gemini_tool_config(tool_choice: str | dict[str, Any] | None) -> dict[str, Any] | None:
    """Translate an OpenAI ``tool_choice`` into a Gemini ``functionCallingConfig``."""
    if isinstance(tool_choice, str):
        mode = {"none": "NONE", "required": "ANY", "auto": "AUTO"}.get(tool_choice)
        return {"mode": mode} if mode else None
    if isinstance(tool_choice, dict):
        name = (tool_choice.get("function") or {}).get("name")
        if name:
            return {"mode": "ANY", "allowedFunctionNames": [name]}
    return None


# ---------------------------------------------------------------------------
# OpenAI-style dialects
# ---------------------------------------------------------------------------


def cohere_tool_primer(calls: list[ToolCall]) -> str:
    """Assistant text Cohere requires alongside a tool call."""
    return "I'm going to call a tool for that: " + ", ".join(call.name for call in calls)


def sanitize_mistral_tool_id(call_id: str) -> str:
    """Mistral accepts only 9-character alphanumeric tool call ids."""
    return hashlib.sha512(call_id.encode("utf-8")).hexdigest()[:9]


def strip_schema_keys(tools: list[dict[str, Any]] | None) -> list[dict[str, Any]]:
    """Copy *tools* without ``$schema`` in function parameters."""
    result = copy.deepcopy(tools or [])
    for tool in result:
        parameters = (tool.get("function") or {}).get("parameters")
        if isinstance(parameters, dict):
            parameters.pop("$schema", None)
    return result


def drop_empty_required(tools: list[dict[str, Any]] | None) -> list[dict[str, Any]]:
    """Copy *tools* without empty ``required`` arrays in function parameters."""
    result = copy.deepcopy(tools or [])
    for tool in result:
        parameters = (tool.get("function") or {}).get("parameters")
        if isinstance(parameters, dict) and parameters.get("required") == []:
            del parameters["required"]
    return result


def pad_reasoning_content(messages: list[dict[str, Any]]) -> list[dict[str, Any]]:
    """Give every tool-calling message an empty ``reasoning_content`` when it has none."""
    result = [dict(message) for message in messages]
    for message in result:
        if isinstance(message.get("tool_calls"), list) and "reasoning_content" not in message:
            message["reasoning_content"] = ""
    return result


def openrouter_reasoning_details(message: CanonicalMessage, model: str) -> list[dict[str, Any]]:
    """Encode message and tool-call signatures as OpenRouter ``reasoning_details``."""
    fmt = openrouter_signature_format(model)
    details: list[dict[str, Any]] = []

    def add(data: str | None, detail_id: str | None = None) -> None:
        if not data:
            return
        details.append(
            {
                "index": len(details),
                "id": detail_id or f"signature-{len(details)}",
                "type": "reasoning.encrypted",
                "data": data,
                "format": fmt,
            }
        )

    add(message.signature)
    for call in message.tool_calls or []:
        add(call.signature, call.id)
    return details
