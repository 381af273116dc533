"""Body fragments shared by the OpenAI-style compilers."""

from __future__ import annotations

import copy
from typing import Any

from chatwire.core.interface.request import ChatRequest


def tool_params(request: ChatRequest) -> dict[str, Any]:
    """``tools``/``tool_choice`` when the request declares tools."""
    if not request.has_tools:
        return {}
    return {"tools": copy.deepcopy(request.tools), "tool_choice": request.tool_choice}


def logprob_params(request: ChatRequest) -> dict[str, Any]:
    """``logprobs``/``top_logprobs`` when the request asks for token log-probabilities."""
    if not request.logprobs or request.logprobs <= 0:
        return {}
    return {"top_logprobs": request.logprobs, "logprobs": True}


def stop_params(request: ChatRequest) -> dict[str, Any]:
    """``stop`` only when there is at least one stop sequence."""
    return {"stop": request.stop_sequences} if request.stop_sequences else {}


def openai_body(request: ChatRequest, messages: list[dict[str, Any]]) -> dict[str, Any]:
    """Sampling fields every OpenAI-compatible chat completions body carries."""
    return {
        "messages": messages,
        "model": request.model,
        "temperature": request.temperature,
        "max_tokens": request.max_tokens,
        "max_completion_tokens": request.max_completion_tokens,
        "stream": request.stream,
        "presence_penalty": request.presence_penalty,
        "frequency_penalty": request.frequency_penalty,
        "top_p": request.top_p,
        "top_k": request.top_k,
        "seed": request.seed,
        "n": request.n,
        **stop_params(request),
        **tool_params(request),
    }
