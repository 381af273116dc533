"""Model capability lookup and prompt-cache eligibility."""

from chatwire.core.capabilities.capabilities import (
    CacheableModelRegistry,
    CapabilityRegistry,
    CapabilityRule,
    ModelCapabilities,
    ReasoningFamily,
    default_cacheable_models,
    openrouter_signature_format,
    reasoning_family,
    resolve_capabilities,
)
from chatwire.core.capabilities.registry_data import build_default_registry

__all__ = [
    "CacheableModelRegistry",
    "CapabilityRegistry",
    "CapabilityRule",
    "ModelCapabilities",
    "ReasoningFamily",
    "build_default_registry",
    "default_cacheable_models",
    "openrouter_signature_format",
    "reasoning_family",
    "resolve_capabilities",
]
