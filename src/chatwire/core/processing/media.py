"""Media embedder — inline data-URI media in the shapes each dialect expects."""

from __future__ import annotations

import copy
import re
from typing import Any

AUDIO_FORMATS = {
    "audio/mpeg": "mp3",
    "audio/wav": "wav",
}
DEFAULT_AUDIO_FORMAT = "mp3"

GEMINI_MEDIA_RESOLUTION = {
    "low": "media_resolution_low",
    "high": "media_resolution_high",
}

_MIME = re.compile(r"^data:([^;,]+)")


def parse_data_uri(url: str | None, default_mime: str = "application/octet-stream") -> tuple[str, str] | None:
    """Split a ``data:`` URI into ``(mime_type, payload)``; ``None`` for other URLs."""
    if not url or not url.startswith("data:"):
        return None
    header, _, payload = url.partition(",")
    match = _MIME.match(header)
    return (match.group(1) if match else default_mime), payload


def embed_media(messages: Any, *, audio: bool = True, video: bool = True) -> list[dict[str, Any]]:
    """Rewrite data-URI media parts of OpenAI-format messages for inline upload.

    ``video_url`` parts become ``input_video``; ``audio_url`` parts become
    ``input_audio`` with a ``{format, data}`` payload. Remote URLs are left
    as they are. Non-list input yields ``[]``.
    """
    if not isinstance(messages, list):
        return []
    result = copy.deepcopy(messages)
    for message in result:
        content = message.get("content") if isinstance(message, dict) else None
        if not isinstance(content, list):
            continue
        for index, part in enumerate(content):
            if not isinstance(part, dict):
                continue
            if video and part.get("type") == "video_url":
                if _media_url(part, "video_url").startswith("data:"):
                    part["type"] = "input_video"
            elif audio and part.get("type") == "audio_url":
                parsed = parse_data_uri(_media_url(part, "audio_url"), "audio/mpeg")
                if parsed is not None:
                    mime, data = parsed
                    content[index] = {
                        "type": "input_audio",
                        "input_audio": {"format": AUDIO_FORMATS.get(mime, DEFAULT_AUDIO_FORMAT), "data": data},
                    }
    return result


def _media_url(part: dict[str, Any], key: str) -> str:
    entry = part.get(key)
    if isinstance(entry, dict):
        return str(entry.get("url") or "")
    return str(entry or "")


def to_claude_image_source(url: str) -> dict[str, Any]:
    """Claude image ``source`` block: base64 for data URIs, a URL reference otherwise."""
    parsed = parse_data_uri(url, "image/png")
    if parsed is None:
        return {"type": "url", "url": url}
    mime, data = parsed
    return {"type": "base64", "media_type": mime, "data": data}


def to_gemini_inline_data(url: str, default_mime: str, detail: str | None = None) -> dict[str, Any] | None:
    """Gemini ``inlineData`` part for a data URI; ``None`` for remote URLs.

    *detail* (``low``/``high``) adds a ``mediaResolution`` hint; pass it only
    for models that accept one.
    """
    parsed = parse_data_uri(url, default_mime)
    if parsed is None:
        return None
    mime, data = parsed
    part: dict[str, Any] = {"inlineData": {"mimeType": mime, "data": data}}
    resolution = GEMINI_MEDIA_RESOLUTION.get(detail or "")
    if resolution:
        part["mediaResolution"] = {"level": resolution}
    return part
