"""Eligibility evaluation and awarding of XP for user actions.

:class:`XPAwarder` decides whether an action earns XP today and, when it does,
asks the ledger to persist the award. Checks run in a fixed order and stop at
the first failure:

1. the action type must have a rule;
2. the per-action daily cap must not be reached;
3. reference-scoped cooldowns (reading the same article twice in a day);
4. the global daily total cap, which rejects an award outright rather than
   granting part of it.

The evaluator holds no locks. Each award re-reads the day's events together
with the balance version and retries when the ledger reports a concurrent
write, so caps hold under concurrent requests for the same user.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable, Mapping, Sequence
from dataclasses import dataclass
from datetime import datetime, time, timezone
from enum import Enum
from zoneinfo import ZoneInfo

from sqlalchemy.exc import SQLAlchemyError

from app.core.logging import get_logger
from app.core.xp_ledger import DaySnapshot, StaleBalanceError, XPLedger
from app.core.xp_rules import (
    DAILY_TOTAL_CAP,
    DEFAULT_RULES,
    Cooldown,
    Rule,
    XPActionType,
    parse_action_type,
    validate_rules,
)
from app.models.xp import XPEvent

logger = get_logger(__name__)


class RejectionReason(str, Enum):
    """Why an award was not granted."""

    INVALID_ACTION = "InvalidAction"
    DAILY_ACTION_CAP_REACHED = "DailyActionCapReached"
    DAILY_TOTAL_CAP_REACHED = "DailyTotalCapReached"
    ALREADY_COMPLETED_TODAY = "AlreadyCompletedToday"
    STORE_ERROR = "StoreError"


REJECTION_MESSAGES: dict[RejectionReason, str] = {
    RejectionReason.INVALID_ACTION: "That action doesn't earn XP.",
    RejectionReason.DAILY_ACTION_CAP_REACHED: (
        "You've already earned the maximum XP for this today."
    ),
    RejectionReason.DAILY_TOTAL_CAP_REACHED: (
        "You've reached today's XP limit. Come back tomorrow!"
    ),
    RejectionReason.ALREADY_COMPLETED_TODAY: "You've already earned XP for this today.",
    RejectionReason.STORE_ERROR: "We couldn't update your XP right now. Please try again later.",
}


@dataclass(frozen=True)
class AwardResult:
    """Outcome of an award attempt."""

    success: bool
    xp_awarded: int = 0
    new_total: int | None = None
    reason: RejectionReason | None = None

    @property
    def message(self) -> str | None:
        if self.reason is None:
            return None
        return REJECTION_MESSAGES[self.reason]

    @classmethod
    def rejected(cls, reason: RejectionReason) -> "AwardResult":
        return cls(success=False, reason=reason)


@dataclass(frozen=True)
class Decision:
    """Pure evaluation result for one snapshot: an amount or a rejection."""

    amount: int = 0
    reason: RejectionReason | None = None

    @property
    def allowed(self) -> bool:
        return self.reason is None


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def start_of_day(now: datetime, tz: ZoneInfo) -> datetime:
    """Return midnight of ``now``'s calendar day in ``tz`` as naive UTC.

    Naive ``now`` values are treated as UTC, matching stored timestamps.
    """

    if now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)
    local_midnight = datetime.combine(now.astimezone(tz).date(), time.min, tzinfo=tz)
    return local_midnight.astimezone(timezone.utc).replace(tzinfo=None)


def daily_total(events: Iterable[XPEvent]) -> int:
    """Sum the amounts of ``events``."""

    return sum(event.amount or 0 for event in events)


class XPAwarder:
    """Apply the XP rule table to user actions and persist approved awards."""

    def __init__(
        self,
        ledger: XPLedger,
        rules: Mapping[XPActionType, Rule] = DEFAULT_RULES,
        *,
        daily_total_cap: int = DAILY_TOTAL_CAP,
        day_timezone: str = "UTC",
        clock: Callable[[], datetime] = _utcnow,
        max_attempts: int = 10,
    ) -> None:
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        self.ledger = ledger
        self.rules = validate_rules(rules)
        self.daily_total_cap = daily_total_cap
        self.day_timezone = ZoneInfo(day_timezone)
        self.clock = clock
        self.max_attempts = max_attempts

    def now(self) -> datetime:
        """Return the current instant as naive UTC, the form timestamps are stored in."""

        now = self.clock()
        return (now.astimezone(timezone.utc) if now.tzinfo else now).replace(tzinfo=None)

    def today_start(self) -> datetime:
        """Return the naive-UTC start of the current award day."""

        return start_of_day(self.clock(), self.day_timezone)

    def remaining_today(self, events: Sequence[XPEvent]) -> int:
        """Return how much XP can still be earned today given ``events``."""

        return max(0, self.daily_total_cap - daily_total(events))

    def evaluate(
        self,
        action: XPActionType,
        events: Sequence[XPEvent],
        *,
        amount: int | None = None,
        reference_id: str | None = None,
    ) -> Decision:
        """Decide whether ``action`` may be awarded given today's ``events``."""

        rule = self.rules.get(action)
        if rule is None:
            return Decision(reason=RejectionReason.INVALID_ACTION)

        if rule.daily_cap is not None:
            action_count = sum(1 for event in events if event.action_type == action.value)
            if action_count >= rule.daily_cap:
                return Decision(reason=RejectionReason.DAILY_ACTION_CAP_REACHED)

        if rule.cooldown == Cooldown.ONCE_PER_REFERENCE_PER_DAY and reference_id:
            if any(
                event.action_type == action.value and event.reference_id == reference_id
                for event in events
            ):
                return Decision(reason=RejectionReason.ALREADY_COMPLETED_TODAY)

        if rule.base is None:
            if amount is None:
                raise ValueError(f"An explicit amount is required for {action.value}.")
            award_amount = amount
        else:
            award_amount = rule.base

        today_total = daily_total(events)
        if today_total >= self.daily_total_cap or (
            award_amount > 0 and today_total + award_amount > self.daily_total_cap
        ):
            return Decision(reason=RejectionReason.DAILY_TOTAL_CAP_REACHED)

        return Decision(amount=award_amount)

    def evaluate_and_award(
        self,
        user_id: int,
        action_type: XPActionType | str,
        *,
        amount: int | None = None,
        reference_id: str | None = None,
        description: str | None = None,
    ) -> AwardResult:
        """Evaluate ``action_type`` for ``user_id`` and persist the award if allowed.

        Raises ``ValueError`` when an admin adjustment omits ``amount``.
        """

        action = parse_action_type(action_type)
        if action is None or action not in self.rules:
            logger.info(
                "xp.award_rejected",
                user_id=user_id,
                action=str(action_type),
                reason=RejectionReason.INVALID_ACTION.value,
            )
            return AwardResult.rejected(RejectionReason.INVALID_ACTION)

        created_at = self.now()
        since = start_of_day(created_at, self.day_timezone)

        try:
            for attempt in range(1, self.max_attempts + 1):
                snapshot: DaySnapshot = self.ledger.load_day(user_id, since)
                decision = self.evaluate(
                    action, snapshot.events, amount=amount, reference_id=reference_id
                )
                if not decision.allowed:
                    logger.debug(
                        "xp.award_rejected",
                        user_id=user_id,
                        action=action.value,
                        reason=decision.reason.value,
                    )
                    return AwardResult.rejected(decision.reason)

                try:
                    new_total = self.ledger.commit_award(
                        user_id,
                        action,
                        decision.amount,
                        expected_version=snapshot.version,
                        reference_id=reference_id,
                        description=description,
                        created_at=created_at,
                    )
                except StaleBalanceError:
                    logger.debug(
                        "xp.award_conflict", user_id=user_id, action=action.value, attempt=attempt
                    )
                    continue

                logger.info(
                    "xp.awarded",
                    user_id=user_id,
                    action=action.value,
                    amount=decision.amount,
                    new_total=new_total,
                    reference_id=reference_id,
                )
                return AwardResult(success=True, xp_awarded=decision.amount, new_total=new_total)
        except SQLAlchemyError:
            logger.exception("xp.store_error", user_id=user_id, action=action.value)
            return AwardResult.rejected(RejectionReason.STORE_ERROR)

        logger.error(
            "xp.store_error",
            user_id=user_id,
            action=action.value,
            error="retries_exhausted",
            attempts=self.max_attempts,
        )
        return AwardResult.rejected(RejectionReason.STORE_ERROR)


__all__ = [
    "AwardResult",
    "Decision",
    "REJECTION_MESSAGES",
    "RejectionReason",
    "XPAwarder",
    "daily_total",
    "start_of_day",
]
