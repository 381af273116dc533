"""Capability detection for target models.

Provides a structured profile of what a model identifier supports and a
registry that maps identifiers to profiles through pattern rules. Compilers
consult the profile instead of matching model names themselves.
"""

from __future__ import annotations

import logging
import re
import threading
from collections.abc import Iterable, Mapping
from enum import Enum
from typing import Any

from pydantic import BaseModel

logger = logging.getLogger(__name__)


class ReasoningFamily(str, Enum):
    """Budget table families used by the reasoning budget calculator."""

    CLAUDE = "claude"
    GEMINI_FLASH_LITE = "gemini-flash-lite"
    GEMINI_FLASH = "gemini-flash"
    GEMINI_PRO = "gemini-pro"
    GEMINI_3_FLASH = "gemini-3-flash"
    GEMINI_3_PRO = "gemini-3-pro"


class ModelCapabilities(BaseModel):
    """Structured representation of a model's capabilities."""

    # Anthropic
    claude_thinking: bool = False
    claude_web_search: bool = False
    claude_limited_sampling: bool = False
    claude_verbosity: bool = False
    claude_forbids_prefill: bool = False

    # Google
    gemini_thinking_config: bool = False
    gemini_thought_signatures: bool = False
    gemini_signature_bypass: bool = False
    gemini_image_output: bool = False
    gemini_media_resolution: bool = False
    gemini_image_size: bool = False
    gemini_image_generation: bool = False
    gemini_no_search: bool = False
    gemma: bool = False
    learnlm: bool = False

    # OpenAI
    openai_reasoning_effort: bool = False
    openai_verbosity: bool = False

    # Others
    deepseek_reasoner: bool = False
    cohere_safety_mode: bool = False
    openrouter_claude: bool = False
    openrouter_gemini: bool = False


class CapabilityRule(BaseModel):
    """Sets *flag* on every model whose identifier matches *pattern* (``re.search``)."""

    flag: str
    pattern: str

    def matches(self, model: str) -> bool:
        return re.search(self.pattern, model) is not None


class CapabilityRegistry:
    """Maps model identifiers to capability profiles through pattern rules.

    Resolved profiles are memoized per identifier.
    """

    def __init__(self, rules: Iterable[CapabilityRule] = ()) -> None:
        self._rules: list[CapabilityRule] = []
        self._resolved: dict[str, ModelCapabilities] = {}
        for rule in rules:
            self.register(rule)

    def register(self, rule: CapabilityRule) -> None:
        """Register *rule*; unknown flags are rejected."""
        if rule.flag not in ModelCapabilities.model_fields:
            raise ValueError(f"Unknown capability flag: {rule.flag}")
        self._rules.append(rule)
        self._resolved.clear()

    def resolve(self, model: str) -> ModelCapabilities:
        """Return the capability profile for *model*."""
        cached = self._resolved.get(model)
        if cached is not None:
            return cached
        flags = {rule.flag: True for rule in self._rules if rule.matches(model)}
        profile = ModelCapabilities(**flags)
        self._resolved[model] = profile
        return profile


_default_registry: CapabilityRegistry | None = None


def _get_default_registry() -> CapabilityRegistry:
    """Lazily create the module-level default registry."""
    global _default_registry
    if _default_registry is None:
        from chatwire.core.capabilities.registry_data import build_default_registry

        _default_registry = build_default_registry()
    return _default_registry


def resolve_capabilities(model: str | None) -> ModelCapabilities:
    """Look up the capability profile of *model* in the default registry."""
    return _get_default_registry().resolve(model or "")


def reasoning_family(model: str | None) -> ReasoningFamily | None:
    """Return the reasoning budget family of *model*, or ``None`` when it has none."""
    from chatwire.core.capabilities.registry_data import REASONING_FAMILIES

    for pattern, family in REASONING_FAMILIES:
        if re.search(pattern, model or ""):
            return family
    return None


def openrouter_signature_format(model: str | None) -> str:
    """Return the OpenRouter ``reasoning_details`` format for *model*."""
    from chatwire.core.capabilities.registry_data import SIGNATURE_FORMATS, UNKNOWN_SIGNATURE_FORMAT

    for pattern, fmt in SIGNATURE_FORMATS:
        if re.search(pattern, model or ""):
            return fmt
    return UNKNOWN_SIGNATURE_FORMAT


# ---------------------------------------------------------------------------
# Prompt-cache eligibility
# ---------------------------------------------------------------------------


class CacheableModelRegistry:
    """Append-only set of model identifiers known to accept prompt-cache writes.

    Populated out of band (for example from a provider's model catalog); the
    compilers only read it. Concurrent duplicate inserts are harmless.
    """

    def __init__(self, model_ids: Iterable[str] = ()) -> None:
        self._models: set[str] = set(model_ids)
        self._lock = threading.Lock()

    def register(self, model_id: str) -> None:
        with self._lock:
            self._models.add(model_id)

    def is_cacheable(self, model_id: str | None) -> bool:
        return bool(model_id) and model_id in self._models

    def register_catalog(self, payload: Any) -> int:
        """Register every model of a catalog payload that prices cache writes.

        *payload* is the decoded body of a model listing in the shape
        ``{"data": [{"id": ..., "pricing": {"input_cache_write": ...}}]}``.
        Returns the number of newly registered models.
        """
        data = payload.get("data") if isinstance(payload, Mapping) else None
        if not isinstance(data, list):
            logger.warning("Model catalog payload has no data list; nothing registered")
            return 0

        added = 0
        for entry in data:
            if not isinstance(entry, Mapping):
                continue
            model_id = entry.get("id")
            pricing = entry.get("pricing")
            if not model_id or not isinstance(pricing, Mapping) or pricing.get("input_cache_write") is None:
                continue
            if model_id not in self._models:
                self.register(str(model_id))
                added += 1
        logger.debug("Registered %d cacheable models from catalog", added)
        return added

    def __contains__(self, model_id: object) -> bool:
        return model_id in self._models

    def __len__(self) -> int:
        return len(self._models)


_default_cacheable_models = CacheableModelRegistry()


def default_cacheable_models() -> CacheableModelRegistry:
    """The process-wide cacheable model registry used by the OpenRouter compiler."""
    return _default_cacheable_models
