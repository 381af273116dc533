"""Tests for the cache annotation inserter."""

from __future__ import annotations

from typing import Any

from chatwire.core.processing.caching import cache_at_depth, cache_control, cache_system_prompt

_MARK = {"type": "ephemeral", "ttl": "5m"}


def _conversation(roles: list[str]) -> list[dict[str, Any]]:
    return [{"role": role, "content": f"m{index}"} for index, role in enumerate(roles)]


def _marked(messages: list[dict[str, Any]]) -> list[int]:
    return [
        index
        for index, message in enumerate(messages)
        if isinstance(message["content"], list) and "cache_control" in message["content"][-1]
    ]


class TestCacheControl:
    def test_without_ttl(self) -> None:
        assert cache_control() == {"type": "ephemeral"}

    def test_with_ttl(self) -> None:
        assert cache_control("1h") == {"type": "ephemeral", "ttl": "1h"}


class TestCacheAtDepth:
    def test_marks_groups_zero_and_two(self) -> None:
        messages = _conversation(["assistant", "user", "assistant", "user", "assistant", "user"])
        result = cache_at_depth(messages, 0, "5m")
        assert _marked(result) == [3, 5]
        assert result[5]["content"] == [{"type": "text", "text": "m5", "cache_control": _MARK}]

    def test_skips_trailing_prefill(self) -> None:
        messages = _conversation(["user", "assistant", "user", "assistant"])
        assert _marked(cache_at_depth(messages, 0, "5m")) == [0, 2]

    def test_groups_by_role_switch(self) -> None:
        messages = _conversation(["user", "user", "assistant", "user"])
        assert _marked(cache_at_depth(messages, 0)) == [1, 3]

    def test_deeper_start(self) -> None:
        messages = _conversation(["user", "assistant", "user", "assistant", "user"])
        assert _marked(cache_at_depth(messages, 1)) == [1, 3]

    def test_negative_depth_disables(self) -> None:
        messages = _conversation(["user", "assistant", "user"])
        assert cache_at_depth(messages, -1) == messages

    def test_marks_last_part_of_list_content(self) -> None:
        messages = [
            {
                "role": "user",
                "content": [{"type": "text", "text": "a"}, {"type": "image_url", "image_url": {"url": "x"}}],
            }
        ]
        result = cache_at_depth(messages, 0)
        assert "cache_control" not in result[0]["content"][0]
        assert result[0]["content"][1]["cache_control"] == {"type": "ephemeral"}

    def test_input_is_not_mutated(self) -> None:
        messages = _conversation(["user", "assistant", "user"])
        cache_at_depth(messages, 0, "5m")
        assert messages == _conversation(["user", "assistant", "user"])

    def test_idempotent(self) -> None:
        messages = _conversation(["assistant", "user", "assistant", "user"])
        once = cache_at_depth(messages, 0, "5m")
        assert cache_at_depth(once, 0, "5m") == once

    def test_non_list(self) -> None:
        assert cache_at_depth("nope", 0) == []  # type: ignore[arg-type]


class TestCacheSystemPrompt:
    def test_promotes_string_content(self) -> None:
        messages = [{"role": "system", "content": "S"}, {"role": "user", "content": "U"}]
        result = cache_system_prompt(messages, "1h")
        assert result[0]["content"] == [
            {"type": "text", "text": "S", "cache_control": {"type": "ephemeral", "ttl": "1h"}}
        ]
        assert result[1] == messages[1]
        assert messages[0]["content"] == "S"

    def test_marks_last_text_part(self) -> None:
        messages = [
            {
                "role": "system",
                "content": [
                    {"type": "text", "text": "a"},
                    {"type": "text", "text": "b"},
                    {"type": "image_url", "image_url": {"url": "x"}},
                ],
            }
        ]
        result = cache_system_prompt(messages)
        assert "cache_control" not in result[0]["content"][0]
        assert result[0]["content"][1]["cache_control"] == {"type": "ephemeral"}
        assert "cache_control" not in result[0]["content"][2]

    def test_only_first_system_message(self) -> None:
        messages = [{"role": "system", "content": "a"}, {"role": "system", "content": "b"}]
        result = cache_system_prompt(messages)
        assert result[1]["content"] == "b"

    def test_without_system_message(self) -> None:
        messages = [{"role": "user", "content": "U"}]
        assert cache_system_prompt(messages) == messages

    def test_idempotent(self) -> None:
        once = cache_system_prompt([{"role": "system", "content": "S"}])
        assert cache_system_prompt(once) == once
