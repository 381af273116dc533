"""Tests for the media embedder."""

from __future__ import annotations

from typing import Any

from chatwire.core.processing.media import (
    embed_media,
    parse_data_uri,
    to_claude_image_source,
    to_gemini_inline_data,
)


def _message(*parts: dict[str, Any]) -> dict[str, Any]:
    return {"role": "user", "content": [{"type": "text", "text": "see"}, *parts]}


class TestParseDataUri:
    def test_data_uri(self) -> None:
        assert parse_data_uri("data:image/png;base64,AAAA") == ("image/png", "AAAA")

    def test_missing_mime_uses_default(self) -> None:
        assert parse_data_uri("data:;base64,AAAA", "audio/mpeg") == ("audio/mpeg", "AAAA")

    def test_remote_url(self) -> None:
        assert parse_data_uri("https://example.com/a.png") is None
        assert parse_data_uri(None) is None


class TestEmbedMedia:
    def test_audio_formats(self) -> None:
        messages = [
            _message(
                {"type": "audio_url", "audio_url": {"url": "data:audio/wav;base64,WAV"}},
                {"type": "audio_url", "audio_url": {"url": "data:audio/mpeg;base64,MP3"}},
                {"type": "audio_url", "audio_url": {"url": "data:audio/ogg;base64,OGG"}},
            )
        ]
        content = embed_media(messages)[0]["content"]
        assert content[1] == {"type": "input_audio", "input_audio": {"format": "wav", "data": "WAV"}}
        assert content[2]["input_audio"]["format"] == "mp3"
        assert content[3] == {"type": "input_audio", "input_audio": {"format": "mp3", "data": "OGG"}}

    def test_video(self) -> None:
        part = {"type": "video_url", "video_url": {"url": "data:video/mp4;base64,VID"}}
        content = embed_media([_message(part)])[0]["content"]
        assert content[1] == {"type": "input_video", "video_url": {"url": "data:video/mp4;base64,VID"}}

    def test_remote_media_untouched(self) -> None:
        messages = [
            _message(
                {"type": "audio_url", "audio_url": {"url": "https://example.com/a.wav"}},
                {"type": "video_url", "video_url": {"url": "https://example.com/v.mp4"}},
            )
        ]
        assert embed_media(messages) == messages

    def test_kinds_can_be_disabled(self) -> None:
        messages = [
            _message(
                {"type": "audio_url", "audio_url": {"url": "data:audio/wav;base64,WAV"}},
                {"type": "video_url", "video_url": {"url": "data:video/mp4;base64,VID"}},
            )
        ]
        content = embed_media(messages, audio=False, video=True)[0]["content"]
        assert content[1]["type"] == "audio_url"
        assert content[2]["type"] == "input_video"

    def test_input_is_not_mutated(self) -> None:
        messages = [_message({"type": "video_url", "video_url": {"url": "data:video/mp4;base64,VID"}})]
        embed_media(messages)
        assert messages[0]["content"][1]["type"] == "video_url"

    def test_string_content_and_non_list(self) -> None:
        messages = [{"role": "user", "content": "plain"}]
        assert embed_media(messages) == messages
        assert embed_media(None) == []


class TestDialectMediaShapes:
    def test_claude_base64_source(self) -> None:
        assert to_claude_image_source("data:image/jpeg;base64,AAAA") == {
            "type": "base64",
            "media_type": "image/jpeg",
            "data": "AAAA",
        }

    def test_claude_url_source(self) -> None:
        assert to_claude_image_source("https://example.com/a.png") == {
            "type": "url",
            "url": "https://example.com/a.png",
        }

    def test_gemini_inline_data(self) -> None:
        part = to_gemini_inline_data("data:video/mp4;base64,VID", "video/mp4", "high")
        assert part == {
            "inlineData": {"mimeType": "video/mp4", "data": "VID"},
            "mediaResolution": {"level": "media_resolution_high"},
        }

    def test_gemini_ignores_unknown_detail(self) -> None:
        part = to_gemini_inline_data("data:image/png;base64,AAAA", "image/png", "auto")
        assert part == {"inlineData": {"mimeType": "image/png", "data": "AAAA"}}

    def test_gemini_remote_url(self) -> None:
        assert to_gemini_inline_data("https://example.com/a.png", "image/png") is None
