"""Cache annotation inserter.

Places ``cache_control`` markers on wire messages so providers that support
prompt caching can reuse a stable prefix. All functions return new lists and
leave their input untouched; applying them twice gives the same result.
"""

from __future__ import annotations

import copy
import logging
from typing import Any

from chatwire.core.interface.models import CacheControl

logger = logging.getLogger(__name__)


def cache_control(ttl: str | None = None) -> dict[str, Any]:
    """The wire form of an ephemeral cache marker."""
    return CacheControl(ttl=ttl).to_wire()


def cache_system_prompt(messages: list[dict[str, Any]], ttl: str | None = None) -> list[dict[str, Any]]:
    """Mark the last text part of the first system message.

    String content is promoted to a one-part list. Messages that already
    carry a marker are left alone.
    """
    if not isinstance(messages, list):
        return []
    result = copy.deepcopy(messages)

    system = next((message for message in result if message.get("role") == "system"), None)
    if system is None or "cache_control" in system:
        return result

    content = system.get("content")
    if isinstance(content, str):
        system["content"] = [{"type": "text", "text": content, "cache_control": cache_control(ttl)}]
    elif isinstance(content, list):
        text_parts = [part for part in content if isinstance(part, dict) and part.get("type") == "text"]
        if text_parts and not any("cache_control" in part for part in content if isinstance(part, dict)):
            text_parts[-1]["cache_control"] = cache_control(ttl)
    return result


def cache_at_depth(messages: list[dict[str, Any]], depth: int, ttl: str | None = None) -> list[dict[str, Any]]:
    """Mark the conversation at *depth* and *depth* + 2 role switches from the end.

    A trailing assistant prefill is skipped. The marker goes on the last part
    of the last message of each targeted role group; string content is
    promoted to a one-part list. A negative *depth* disables caching.
    """
    if not isinstance(messages, list):
        return []
    result = copy.deepcopy(messages)
    if depth < 0:
        return result

    passed_prefill = False
    current_depth = 0
    previous_role: str | None = None

    for message in reversed(result):
        role = message.get("role")
        if not passed_prefill and role == "assistant":
            continue
        passed_prefill = True

        if role == previous_role:
            continue
        if current_depth in (depth, depth + 2):
            _mark_last_part(message, ttl)
        if current_depth == depth + 2:
            break
        current_depth += 1
        previous_role = role

    return result


def _mark_last_part(message: dict[str, Any], ttl: str | None) -> None:
    content = message.get("content")
    if isinstance(content, str):
        message["content"] = [{"type": "text", "text": content, "cache_control": cache_control(ttl)}]
    elif isinstance(content, list) and content and isinstance(content[-1], dict):
        content[-1].setdefault("cache_control", cache_control(ttl))
    else:
        logger.debug("No content part to attach a cache marker to on %s message", message.get("role"))
