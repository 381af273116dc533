"""Prompt processing services shared by the dialect compilers."""

from chatwire.core.processing.caching import cache_at_depth, cache_control, cache_system_prompt
from chatwire.core.processing.media import embed_media, parse_data_uri
from chatwire.core.processing.merger import (
    MergeOptions,
    add_assistant_prefix,
    merge_messages,
    post_process_prompt,
)
from chatwire.core.processing.reasoning import (
    calculate_budget,
    calculate_claude_budget_tokens,
    calculate_gemini_budget_tokens,
)
from chatwire.core.processing.tools import ToolNameRegistry

__all__ = [
    "MergeOptions",
    "ToolNameRegistry",
    "add_assistant_prefix",
    "cache_at_depth",
    "cache_control",
    "cache_system_prompt",
    "calculate_budget",
    "calculate_claude_budget_tokens",
    "calculate_gemini_budget_tokens",
    "embed_media",
    "merge_messages",
    "parse_data_uri",
    "post_process_prompt",
]
