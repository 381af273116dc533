"""Static model capability data.

Contains the model-name pattern tables and a helper to build a pre-loaded
``CapabilityRegistry``. Patterns are matched with ``re.search``; anchor them
where a prefix match is intended.
"""

import re

from chatwire.core.capabilities.capabilities import CapabilityRegistry, CapabilityRule, ReasoningFamily


def _exact(*model_ids: str) -> str:
    return "^(" + "|".join(re.escape(model_id) for model_id in model_ids) + ")$"


# ---------------------------------------------------------------------------
# Capability rules
# ---------------------------------------------------------------------------

KNOWN_RULES: list[CapabilityRule] = [
    # Anthropic
    CapabilityRule(flag="claude_thinking", pattern=r"^claude-(3-7|opus-4|sonnet-4|haiku-4-5|opus-4-5|opus-4-6)"),
    CapabilityRule(flag="claude_web_search", pattern=r"^claude-(3-5|3-7|opus-4|sonnet-4|haiku-4-5|opus-4-5|opus-4-6)"),
    CapabilityRule(flag="claude_limited_sampling", pattern=r"^claude-(opus-4-1|sonnet-4-5|haiku-4-5|opus-4-5|opus-4-6)"),
    CapabilityRule(flag="claude_verbosity", pattern=r"^claude-(opus-4-5|opus-4-6)"),
    CapabilityRule(flag="claude_forbids_prefill", pattern=r"^claude-(opus-4-6)"),
    # Google
    CapabilityRule(
        flag="gemini_thinking_config",
        pattern=r"^gemini-2\.5-(flash|pro)(?!.*-image(-preview)?$)|^gemini-3-(flash|pro)",
    ),
    CapabilityRule(flag="gemini_thought_signatures", pattern=r"gemini-3|gemini-2\.5"),
    CapabilityRule(flag="gemini_signature_bypass", pattern=r"gemini-3"),
    CapabilityRule(flag="gemini_image_output", pattern=r"-image"),
    CapabilityRule(flag="gemini_media_resolution", pattern=r"gemini-3"),
    CapabilityRule(flag="gemini_image_size", pattern=r"^gemini-3"),
    CapabilityRule(
        flag="gemini_image_generation",
        pattern=_exact(
            "gemini-2.0-flash-exp",
            "gemini-2.0-flash-exp-image-generation",
            "gemini-2.0-flash-preview-image-generation",
            "gemini-2.5-flash-image-preview",
            "gemini-2.5-flash-image",
            "gemini-3-pro-image-preview",
        ),
    ),
    CapabilityRule(
        flag="gemini_no_search",
        pattern=_exact(
            "gemini-2.0-flash-lite",
            "gemini-2.0-flash-lite-001",
            "gemini-2.0-flash-lite-preview-02-05",
            "gemini-robotics-er-1.5-preview",
        ),
    ),
    CapabilityRule(flag="gemma", pattern=r"gemma"),
    CapabilityRule(flag="learnlm", pattern=r"learnlm"),
    # OpenAI
    CapabilityRule(
        flag="openai_reasoning_effort",
        pattern=_exact(
            "o1",
            "o3-mini",
            "o3-mini-2025-01-31",
            "o4-mini",
            "o4-mini-2025-04-16",
            "o3",
            "o3-2025-04-16",
            "gpt-5",
            "gpt-5-2025-08-07",
            "gpt-5-mini",
            "gpt-5-mini-2025-08-07",
            "gpt-5-nano",
            "gpt-5-nano-2025-08-07",
            "gpt-5.1",
            "gpt-5.1-2025-11-13",
            "gpt-5.1-chat-latest",
            "gpt-5.2",
            "gpt-5.2-2025-12-11",
            "gpt-5.2-chat-latest",
        ),
    ),
    CapabilityRule(flag="openai_verbosity", pattern=r"^gpt-5"),
    # Others
    CapabilityRule(flag="deepseek_reasoner", pattern=r"-reasoner"),
    CapabilityRule(flag="cohere_safety_mode", pattern=r"08-2024$"),
    CapabilityRule(flag="openrouter_claude", pattern=r"^anthropic/claude"),
    CapabilityRule(flag="openrouter_gemini", pattern=r"google/gemini"),
]

# ---------------------------------------------------------------------------
# Reasoning budget families, first match wins
# ---------------------------------------------------------------------------

REASONING_FAMILIES: list[tuple[str, ReasoningFamily]] = [
    (r"claude", ReasoningFamily.CLAUDE),
    (r"gemini-3-pro", ReasoningFamily.GEMINI_3_PRO),
    (r"gemini-3-flash", ReasoningFamily.GEMINI_3_FLASH),
    (r"flash-lite", ReasoningFamily.GEMINI_FLASH_LITE),
    (r"flash", ReasoningFamily.GEMINI_FLASH),
    (r"pro", ReasoningFamily.GEMINI_PRO),
]

# ---------------------------------------------------------------------------
# OpenRouter reasoning signature formats
# ---------------------------------------------------------------------------

SIGNATURE_FORMATS: list[tuple[str, str]] = [
    (r"google/gemini", "google-gemini-v1"),
    (r"anthropic/claude", "anthropic-claude-v1"),
    (r"openai/gpt", "openai-responses-v1"),
    (r"x-ai/grok", "xai-responses-v1"),
]

UNKNOWN_SIGNATURE_FORMAT = "unknown"


def build_default_registry() -> CapabilityRegistry:
    """Return a ``CapabilityRegistry`` pre-loaded with the known rules."""
    return CapabilityRegistry(KNOWN_RULES)
