"""Utilities for XP level calculations and presentation."""

from __future__ import annotations

import math
from dataclasses import dataclass
from enum import Enum

from app.core.xp_rules import XPActionType

XP_PER_LEVEL = 100


class LevelFormula(str, Enum):
    """Supported level curves.

    ``linear`` is ``floor(total / 100) + 1``; ``sqrt`` is
    ``floor(sqrt(total / 100)) + 1``. They agree below 200 XP only.
    """

    LINEAR = "linear"
    SQRT = "sqrt"


@dataclass(frozen=True)
class XPProgress:
    """Represents progress within the current XP level."""

    level: int
    xp_into_level: int
    xp_to_next_level: int
    progress_percent: int


XP_REASON_LABELS: dict[str, str] = {
    XPActionType.POST_CREATE.value: "Created a post",
    XPActionType.COMMENT_CREATE.value: "Left a comment",
    XPActionType.LEARN_READ.value: "Read an article",
    XPActionType.GAME_PLAY_30M.value: "Played for 30 minutes",
    XPActionType.POT_LINK.value: "Linked a pot",
    XPActionType.ADMIN_ADJUST.value: "Adjustment",
}


def _coerce_formula(formula: LevelFormula | str) -> LevelFormula:
    return formula if isinstance(formula, LevelFormula) else LevelFormula(formula)


def level_start_xp(level: int, formula: LevelFormula | str = LevelFormula.LINEAR) -> int:
    """Return the total XP at which ``level`` begins."""

    formula = _coerce_formula(formula)
    steps = max(0, level - 1)
    if formula == LevelFormula.SQRT:
        return steps * steps * XP_PER_LEVEL
    return steps * XP_PER_LEVEL


def calculate_level(total_xp: int, formula: LevelFormula | str = LevelFormula.LINEAR) -> int:
    """Return the level for ``total_xp``; every user starts at level 1."""

    formula = _coerce_formula(formula)
    if total_xp <= 0:
        return 1
    if formula == LevelFormula.SQRT:
        # Integer square root avoids float rounding right at band edges.
        return math.isqrt(total_xp // XP_PER_LEVEL) + 1
    return total_xp // XP_PER_LEVEL + 1


def progress_for_total_xp(
    total_xp: int, formula: LevelFormula | str = LevelFormula.LINEAR
) -> XPProgress:
    """Return level and intra-level progress metrics for ``total_xp``."""

    total_xp = max(0, total_xp)
    level = calculate_level(total_xp, formula)
    level_start = level_start_xp(level, formula)
    level_span = level_start_xp(level + 1, formula) - level_start
    xp_into_level = total_xp - level_start
    xp_to_next_level = level_span - xp_into_level
    progress_percent = (
        0 if xp_into_level <= 0 else min(100, round((xp_into_level / level_span) * 100))
    )

    return XPProgress(
        level=level,
        xp_into_level=xp_into_level,
        xp_to_next_level=xp_to_next_level,
        progress_percent=progress_percent,
    )


def reason_label(action_type: str) -> str:
    """Return a human-friendly label for an XP ``action_type`` string."""

    return XP_REASON_LABELS.get(
        action_type, action_type.replace("_", " ").replace(".", " ").title()
    )
