"""Dialect-specific compiler implementations."""

from __future__ import annotations

from chatwire.core.interface.compiler import Dialect, DialectCompiler
from chatwire.core.interface.compilers.ai21 import AI21Compiler
from chatwire.core.interface.compilers.claude import ClaudeCompiler
from chatwire.core.interface.compilers.cohere import CohereCompiler
from chatwire.core.interface.compilers.deepseek import DeepSeekCompiler
from chatwire.core.interface.compilers.gemini import GeminiCompiler
from chatwire.core.interface.compilers.mistral import MistralCompiler
from chatwire.core.interface.compilers.openai import OpenAICompatibleCompiler
from chatwire.core.interface.compilers.openrouter import OpenRouterCompiler
from chatwire.core.interface.compilers.xai import XAICompiler
from chatwire.core.interface.request import PromptProcessingType


def build_compilers() -> dict[Dialect, DialectCompiler]:
    """One compiler instance per supported dialect."""
    return {
        Dialect.CLAUDE: ClaudeCompiler(),
        Dialect.MAKERSUITE: GeminiCompiler(),
        Dialect.VERTEXAI: GeminiCompiler(vertex=True),
        Dialect.COHERE: CohereCompiler(),
        Dialect.AI21: AI21Compiler(),
        Dialect.MISTRALAI: MistralCompiler(),
        Dialect.XAI: XAICompiler(),
        Dialect.DEEPSEEK: DeepSeekCompiler(),
        Dialect.OPENROUTER: OpenRouterCompiler(),
        Dialect.OPENAI: OpenAICompatibleCompiler(Dialect.OPENAI),
        Dialect.CUSTOM: OpenAICompatibleCompiler(Dialect.CUSTOM, embed_audio=True),
        Dialect.PERPLEXITY: OpenAICompatibleCompiler(Dialect.PERPLEXITY, processing=PromptProcessingType.STRICT),
    }


__all__ = [
    "AI21Compiler",
    "ClaudeCompiler",
    "CohereCompiler",
    "DeepSeekCompiler",
    "GeminiCompiler",
    "MistralCompiler",
    "OpenAICompatibleCompiler",
    "OpenRouterCompiler",
    "XAICompiler",
    "build_compilers",
]
