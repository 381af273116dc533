"""chatwire — compiles canonical chat requests into provider wire formats."""

from __future__ import annotations

from typing import TYPE_CHECKING

__version__ = "0.1.0"

if TYPE_CHECKING:
    from chatwire.core.interface.compiler import get_compiler as get_compiler
    from chatwire.core.interface.models import CanonicalMessage as CanonicalMessage
    from chatwire.core.interface.request import ChatRequest as ChatRequest

_LAZY_EXPORTS = {
    "get_compiler": "chatwire.core.interface.compiler",
    "CanonicalMessage": "chatwire.core.interface.models",
    "ChatRequest": "chatwire.core.interface.request",
}


def __getattr__(name: str) -> object:
    module_path = _LAZY_EXPORTS.get(name)
    if module_path is not None:
        import importlib

        mod = importlib.import_module(module_path)
        return getattr(mod, name)
    raise AttributeError(f"module 'chatwire' has no attribute {name!r}")
