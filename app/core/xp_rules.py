"""Static XP rule table: base amounts, daily caps and cooldowns per action."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from enum import Enum
from types import MappingProxyType


class XPActionType(str, Enum):
    """Closed set of user actions that can earn XP."""

    POST_CREATE = "post_create"
    COMMENT_CREATE = "comment_create"
    LEARN_READ = "learn_read"
    GAME_PLAY_30M = "game_play_30m"
    POT_LINK = "pot_link"
    ADMIN_ADJUST = "admin_adjust"


class Cooldown(str, Enum):
    """Repeat-award policies a rule may declare."""

    ONCE_PER_REFERENCE_PER_DAY = "once_per_reference_per_day"


@dataclass(frozen=True)
class Rule:
    """Award policy for a single action type.

    ``base`` of ``None`` means the caller supplies the amount (admin
    adjustments only). ``daily_cap`` of ``None`` means unlimited occurrences.
    """

    base: int | None
    daily_cap: int | None = None
    cooldown: Cooldown | None = None


# Shown to users in the XP guide; keep in sync with product copy.
DAILY_TOTAL_CAP = 100

DEFAULT_RULES: Mapping[XPActionType, Rule] = MappingProxyType(
    {
        XPActionType.POST_CREATE: Rule(base=3, daily_cap=5),
        XPActionType.COMMENT_CREATE: Rule(base=2, daily_cap=20),
        XPActionType.LEARN_READ: Rule(
            base=1, daily_cap=5, cooldown=Cooldown.ONCE_PER_REFERENCE_PER_DAY
        ),
        XPActionType.GAME_PLAY_30M: Rule(base=2, daily_cap=6),
        XPActionType.POT_LINK: Rule(base=50),
        XPActionType.ADMIN_ADJUST: Rule(base=None),
    }
)


def parse_action_type(value: str | XPActionType | None) -> XPActionType | None:
    """Return the matching ``XPActionType`` or ``None`` for unknown values."""

    if isinstance(value, XPActionType):
        return value
    if value is None:
        return None
    try:
        return XPActionType(value)
    except ValueError:
        return None


def validate_rules(rules: Mapping[XPActionType, Rule]) -> Mapping[XPActionType, Rule]:
    """Ensure ``rules`` defines exactly one rule per action type."""

    missing = [action.value for action in XPActionType if action not in rules]
    if missing:
        raise ValueError(f"Missing XP rules for: {', '.join(sorted(missing))}")

    for action, rule in rules.items():
        if rule.base is None and action != XPActionType.ADMIN_ADJUST:
            raise ValueError(f"Rule for {action.value} must define a base amount.")
        if rule.daily_cap is not None and rule.daily_cap < 0:
            raise ValueError(f"Rule for {action.value} has a negative daily cap.")

    return MappingProxyType(dict(rules))


__all__ = [
    "Cooldown",
    "DAILY_TOTAL_CAP",
    "DEFAULT_RULES",
    "Rule",
    "XPActionType",
    "parse_action_type",
    "validate_rules",
]
