"""Converter settings — the knobs that sit outside a single request.

Settings are read from a YAML file (environment variables in the form
``${VAR}`` or ``$VAR`` are expanded before parsing). When no path is given,
the ``CHATWIRE_CONFIG`` environment variable names the file; without either,
the defaults below apply.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field, ValidationError

from chatwire.errors import SettingsError

logger = logging.getLogger(__name__)

CONFIG_ENV_VAR = "CHATWIRE_CONFIG"
DEFAULT_PROMPT_PLACEHOLDER = "Let's get started."

_SHORT_TTL = "5m"
_EXTENDED_TTL = "1h"


class ClaudeSettings(BaseModel):
    """Prompt caching options for Anthropic models."""

    enable_system_prompt_cache: bool = False
    caching_at_depth: int = -1
    extended_ttl: bool = False


class GeminiSettings(BaseModel):
    thought_signatures: bool = True
    enable_system_prompt_cache: bool = False


class MistralSettings(BaseModel):
    enable_prefix: bool = False


class ConverterSettings(BaseModel):
    """Top-level converter settings."""

    prompt_placeholder: str = DEFAULT_PROMPT_PLACEHOLDER
    claude: ClaudeSettings = Field(default_factory=ClaudeSettings)
    gemini: GeminiSettings = Field(default_factory=GeminiSettings)
    mistral: MistralSettings = Field(default_factory=MistralSettings)

    @property
    def cache_ttl(self) -> str:
        """Cache lifetime attached to Claude cache markers."""
        return _EXTENDED_TTL if self.claude.extended_ttl else _SHORT_TTL

    def resolve_cache_ttl(self, override: str | None = None) -> str:
        return override or self.cache_ttl

    def resolve_caching_depth(self, override: int | None = None) -> int:
        """Return the effective caching depth; any negative value means disabled."""
        depth = self.claude.caching_at_depth if override is None else override
        return depth if depth >= 0 else -1


def load_settings(path: Path | str | None = None) -> ConverterSettings:
    """Load :class:`ConverterSettings` from *path*, the environment, or defaults.

    Raises:
        SettingsError: On unreadable files, YAML parse errors or schema
            validation failures.
    """
    if path is None:
        env_path = os.environ.get(CONFIG_ENV_VAR)
        if not env_path:
            return ConverterSettings()
        path = env_path

    settings_path = Path(path)
    try:
        raw = settings_path.read_text(encoding="utf-8")
    except OSError as exc:
        raise SettingsError(f"Cannot read {settings_path}: {exc}") from exc

    expanded = os.path.expandvars(raw)

    try:
        data: Any = yaml.safe_load(expanded)
    except yaml.YAMLError as exc:
        raise SettingsError(f"YAML parse error: {exc}") from exc

    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise SettingsError("Settings YAML must be a mapping")

    try:
        settings = ConverterSettings.model_validate(data)
    except ValidationError as exc:
        raise SettingsError(str(exc)) from exc

    logger.debug("Loaded converter settings from %s", settings_path)
    return settings
