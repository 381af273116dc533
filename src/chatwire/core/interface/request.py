"""Canonical chat request — the generation parameters shared by all dialects."""

from __future__ import annotations

import json
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

from chatwire.core.interface.models import CanonicalMessage, PromptNames, ReasoningEffort


class PromptProcessingType(str, Enum):
    """Named merge option sets applied before a dialect compiles the prompt."""

    NONE = ""
    CLAUDE = "claude"
    MERGE = "merge"
    MERGE_TOOLS = "merge_tools"
    SEMI = "semi"
    SEMI_TOOLS = "semi_tools"
    STRICT = "strict"
    STRICT_TOOLS = "strict_tools"
    SINGLE = "single"


class JsonSchema(BaseModel):
    """A structured-output request: the model must answer with JSON matching *value*."""

    name: str = "response"
    description: str | None = None
    value: dict[str, Any] = Field(default_factory=dict)
    strict: bool | None = None

    def to_response_format(self, *, include_description: bool = False) -> dict[str, Any]:
        """OpenAI-style ``response_format`` payload."""
        schema: dict[str, Any] = {"name": self.name}
        if include_description and self.description:
            schema["description"] = self.description
        schema["strict"] = True if self.strict is None else self.strict
        schema["schema"] = self.value
        return {"type": "json_schema", "json_schema": schema}

    def as_prompt(self) -> str:
        """The schema spelled out for dialects that only support ``json_object``."""
        return "JSON schema for the response:\n" + json.dumps(self.value, indent=4)


class ChatRequest(BaseModel):
    """A chat-completion request in canonical form.

    ``messages`` accepts :class:`CanonicalMessage` instances or OpenAI-format
    dicts. Unknown fields are ignored so front-end payloads can be passed as-is.
    """

    model_config = ConfigDict(extra="ignore")

    messages: list[CanonicalMessage] = []
    model: str = ""
    max_tokens: int | None = None
    max_completion_tokens: int | None = None
    temperature: float | None = None
    top_p: float | None = None
    top_k: int | None = None
    frequency_penalty: float | None = None
    presence_penalty: float | None = None
    seed: int | None = None
    n: int | None = None
    logprobs: int | None = None
    stream: bool = False
    stop: list[str] | None = None

    tools: list[dict[str, Any]] | None = None
    tool_choice: str | dict[str, Any] | None = None
    json_schema: JsonSchema | None = None

    reasoning_effort: str | None = None
    include_reasoning: bool = False
    verbosity: str | None = None
    use_sysprompt: bool = False
    assistant_prefill: str = ""
    enable_web_search: bool = False
    middleout: str | None = None
    safe_prompt: bool | None = None

    request_images: bool = False
    request_image_aspect_ratio: str | None = None
    request_image_resolution: str | None = None

    custom_prompt_post_processing: PromptProcessingType = PromptProcessingType.NONE
    cache_ttl: str | None = None
    caching_at_depth: int | None = None

    char_name: str = ""
    user_name: str = ""
    group_names: list[str] = []

    @field_validator("messages", mode="before")
    @classmethod
    def _parse_messages(cls, value: Any) -> Any:
        if value is None:
            return []
        if isinstance(value, list):
            return [CanonicalMessage.from_openai(item) if isinstance(item, dict) else item for item in value]
        return value

    @field_validator("stop", mode="before")
    @classmethod
    def _parse_stop(cls, value: Any) -> Any:
        if isinstance(value, str):
            return [value]
        return value

    @field_validator("custom_prompt_post_processing", mode="before")
    @classmethod
    def _parse_processing(cls, value: Any) -> Any:
        return "" if value is None else value

    @property
    def prompt_names(self) -> PromptNames:
        return PromptNames(char_name=self.char_name, user_name=self.user_name, group_names=list(self.group_names))

    @property
    def effort(self) -> ReasoningEffort:
        return ReasoningEffort.parse(self.reasoning_effort)

    @property
    def has_tools(self) -> bool:
        return bool(self.tools)

    @property
    def stop_sequences(self) -> list[str]:
        return list(self.stop or [])
