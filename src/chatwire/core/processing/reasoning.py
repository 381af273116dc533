"""Reasoning budget calculator.

Maps a symbolic effort level onto what each model family accepts: a token
budget derived from ``max_tokens`` (Claude, Gemini 2.5) or a named thinking
level (Gemini 3). ``None`` means "omit the field and let the provider decide".
"""

from __future__ import annotations

import math

from pydantic import BaseModel, ConfigDict

from chatwire.core.capabilities.capabilities import ReasoningFamily, reasoning_family
from chatwire.core.interface.models import ReasoningEffort

Budget = int | str | None


class BudgetTable(BaseModel):
    """Token budget rule for one family.

    ``fixed`` efforts return their value as-is. Fractional efforts take a
    share of ``max_tokens`` which is then clamped to ``[floor, ceiling]``;
    ``unstreamed_ceiling`` further caps non-streaming requests.
    """

    model_config = ConfigDict(frozen=True)

    fixed: dict[ReasoningEffort, int] = {}
    fractions: dict[ReasoningEffort, float] = {}
    floor: int = 0
    ceiling: int | None = None
    unstreamed_ceiling: int | None = None

    def compute(self, max_tokens: int, effort: ReasoningEffort, stream: bool = False) -> int | None:
        if effort in self.fixed:
            return self.fixed[effort]
        fraction = self.fractions.get(effort)
        if fraction is None:
            return None
        budget = math.floor(max_tokens * fraction)
        if self.ceiling is not None:
            budget = min(budget, self.ceiling)
        budget = max(budget, self.floor)
        if not stream and self.unstreamed_ceiling is not None:
            budget = min(budget, self.unstreamed_ceiling)
        return budget


_GEMINI_FRACTIONS = {
    ReasoningEffort.LOW: 0.1,
    ReasoningEffort.MEDIUM: 0.25,
    ReasoningEffort.HIGH: 0.5,
    ReasoningEffort.MAX: 1.0,
}

BUDGET_TABLES: dict[ReasoningFamily, BudgetTable] = {
    ReasoningFamily.CLAUDE: BudgetTable(
        fixed={ReasoningEffort.MIN: 1024},
        fractions={
            ReasoningEffort.LOW: 0.1,
            ReasoningEffort.MEDIUM: 0.25,
            ReasoningEffort.HIGH: 0.5,
            ReasoningEffort.MAX: 0.95,
        },
        floor=1024,
        # Non-streaming requests over ~21k budget tokens are rejected as too slow.
        unstreamed_ceiling=21333,
    ),
    ReasoningFamily.GEMINI_FLASH_LITE: BudgetTable(
        fixed={ReasoningEffort.MIN: 0},
        fractions=_GEMINI_FRACTIONS,
        floor=512,
        ceiling=24576,
    ),
    ReasoningFamily.GEMINI_FLASH: BudgetTable(
        fixed={ReasoningEffort.MIN: 0},
        fractions=_GEMINI_FRACTIONS,
        ceiling=24576,
    ),
    ReasoningFamily.GEMINI_PRO: BudgetTable(
        fixed={ReasoningEffort.MIN: 128},
        fractions=_GEMINI_FRACTIONS,
        floor=128,
        ceiling=32768,
    ),
}

THINKING_LEVELS: dict[ReasoningFamily, dict[ReasoningEffort, str]] = {
    ReasoningFamily.GEMINI_3_PRO: {
        ReasoningEffort.MIN: "low",
        ReasoningEffort.LOW: "low",
        ReasoningEffort.MEDIUM: "low",
        ReasoningEffort.HIGH: "high",
        ReasoningEffort.MAX: "high",
    },
    ReasoningFamily.GEMINI_3_FLASH: {
        ReasoningEffort.MIN: "minimal",
        ReasoningEffort.LOW: "low",
        ReasoningEffort.MEDIUM: "medium",
        ReasoningEffort.HIGH: "high",
        ReasoningEffort.MAX: "high",
    },
}


def calculate_budget(
    max_tokens: int | None,
    effort: ReasoningEffort | str | None,
    model: str | None,
    stream: bool = False,
) -> Budget:
    """Return the thinking budget of *model* for *effort*.

    Returns an ``int`` token budget, a ``str`` thinking level, or ``None``
    when the field should be omitted (``auto``, unknown efforts, or models
    outside every family).
    """
    family = reasoning_family(model)
    if family is None:
        return None

    level = ReasoningEffort.parse(effort)
    if family in THINKING_LEVELS:
        return THINKING_LEVELS[family].get(level)
    return BUDGET_TABLES[family].compute(max_tokens or 0, level, stream)


def calculate_claude_budget_tokens(
    max_tokens: int | None,
    effort: ReasoningEffort | str | None,
    stream: bool = False,
) -> int | None:
    """Token budget for Claude extended thinking."""
    return BUDGET_TABLES[ReasoningFamily.CLAUDE].compute(max_tokens or 0, ReasoningEffort.parse(effort), stream)


def calculate_gemini_budget_tokens(
    max_tokens: int | None,
    effort: ReasoningEffort | str | None,
    model: str | None,
) -> Budget:
    """Thinking budget or level for Gemini models; ``None`` for other models."""
    if reasoning_family(model) == ReasoningFamily.CLAUDE:
        return None
    return calculate_budget(max_tokens, effort, model)
