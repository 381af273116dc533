"""Speaker-name prefixing shared by the merger and the compilers.

Dialects without a per-message ``name`` field get the speaker folded into the
text as ``"Name: text"``. Exemplar turns (``example_user`` /
``example_assistant``) are attributed to the persona names instead of the
reserved labels.
"""

from __future__ import annotations

from collections.abc import Callable

from chatwire.core.interface.models import CanonicalMessage, PromptNames, TextContent

EXAMPLE_USER = "example_user"
EXAMPLE_ASSISTANT = "example_assistant"
EXEMPLAR_NAMES = frozenset({EXAMPLE_USER, EXAMPLE_ASSISTANT})


def add_prefix(text: str, prefix: str | None) -> str:
    """Return *text* opened by ``"prefix: "`` unless it already is."""
    if not prefix or text.startswith(f"{prefix}: "):
        return text
    return f"{prefix}: {text}"


def prefix_char_name(text: str, names: PromptNames) -> str:
    """Attribute *text* to the character, unless a group member already speaks."""
    if names.starts_with_group_name(text):
        return text
    return add_prefix(text, names.char_name)


def prefix_user_name(text: str, names: PromptNames) -> str:
    return add_prefix(text, names.user_name)


def prefix_exemplar(text: str, name: str | None, names: PromptNames) -> str:
    """Prefix exemplar text with the persona it stands for; other names are left alone."""
    if name == EXAMPLE_USER:
        return prefix_user_name(text, names)
    if name == EXAMPLE_ASSISTANT:
        return prefix_char_name(text, names)
    return text


def prefix_speaker(text: str, name: str | None, names: PromptNames) -> str:
    """Prefix *text* with its speaker: persona names for exemplars, *name* otherwise."""
    if name in EXEMPLAR_NAMES:
        return prefix_exemplar(text, name, names)
    return add_prefix(text, name)


def map_text(message: CanonicalMessage, func: Callable[[str], str]) -> CanonicalMessage:
    """Return a copy of *message* with *func* applied to its text.

    String content is transformed as a whole; in part lists every text part is
    transformed and other parts are kept as they are.
    """
    if isinstance(message.content, str):
        return message.model_copy(update={"content": func(message.content)})
    parts = [TextContent(text=func(part.text)) if isinstance(part, TextContent) else part for part in message.content]
    return message.model_copy(update={"content": parts})


def label_message(message: CanonicalMessage, names: PromptNames) -> CanonicalMessage:
    """Fold the speaker into the text and clear ``name``.

    System messages only take exemplar attribution; every other role is
    prefixed with its own name.
    """
    if not message.name:
        return message
    name = message.name
    if message.role == "system":
        labeled = map_text(message, lambda text: prefix_exemplar(text, name, names))
    else:
        labeled = map_text(message, lambda text: add_prefix(text, name))
    return labeled.model_copy(update={"name": None})
