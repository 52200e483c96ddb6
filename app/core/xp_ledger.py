"""Persistence for the XP ledger and the per-user balance projection.

Awards are written with optimistic concurrency: the balance row carries a
``version`` that every write bumps, and :meth:`SqlXPLedger.commit_award` only
succeeds when the version still matches the one observed when the caller read
the day's events. A lost race surfaces as :class:`StaleBalanceError` so the
caller can re-read and re-evaluate.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, field
from datetime import datetime
from typing import Protocol

from sqlalchemy import func, update
from sqlalchemy.engine import Engine
from sqlalchemy.exc import IntegrityError
from sqlmodel import Session, select

from app.core.logging import get_logger
from app.core.xp_rules import XPActionType
from app.models.xp import XPBalance, XPEvent

logger = get_logger(__name__)


class StaleBalanceError(Exception):
    """Raised when a concurrent award changed the balance since it was read."""


@dataclass(frozen=True)
class DaySnapshot:
    """A user's balance version and the events recorded since ``since``.

    ``version`` is ``None`` when the user has never been awarded XP.
    """

    version: int | None
    events: Sequence[XPEvent] = field(default_factory=tuple)


class XPLedger(Protocol):
    """Storage contract the award evaluator depends on."""

    def load_day(self, user_id: int, since: datetime) -> DaySnapshot: ...

    def commit_award(
        self,
        user_id: int,
        action_type: XPActionType,
        amount: int,
        *,
        expected_version: int | None,
        reference_id: str | None = None,
        description: str | None = None,
        created_at: datetime | None = None,
    ) -> int: ...


class SqlXPLedger:
    """``XPLedger`` backed by the ``xpevent`` and ``xpbalance`` tables."""

    def __init__(self, engine: Engine) -> None:
        self._engine = engine

    def load_day(self, user_id: int, since: datetime) -> DaySnapshot:
        """Return the balance version and ``user_id``'s events since ``since``."""

        with Session(self._engine) as session:
            # Version is read before the events; any award committed after this
            # point bumps the version and fails the later compare-and-swap.
            balance = session.get(XPBalance, user_id)
            version = balance.version if balance is not None else None
            events = session.exec(
                select(XPEvent)
                .where(XPEvent.user_id == user_id)
                .where(XPEvent.created_at >= since)
                .order_by(XPEvent.created_at)
            ).all()
        return DaySnapshot(version=version, events=tuple(events))

    def commit_award(
        self,
        user_id: int,
        action_type: XPActionType,
        amount: int,
        *,
        expected_version: int | None,
        reference_id: str | None = None,
        description: str | None = None,
        created_at: datetime | None = None,
    ) -> int:
        """Append an event and add ``amount`` to the balance in one transaction.

        Returns the new total. Raises :class:`StaleBalanceError` when the
        balance moved past ``expected_version``.
        """

        now = created_at or datetime.utcnow()
        with Session(self._engine) as session:
            try:
                if expected_version is None:
                    session.add(
                        XPBalance(user_id=user_id, total_xp=amount, version=1, updated_at=now)
                    )
                    session.flush()
                else:
                    result = session.connection().execute(
                        update(XPBalance)
                        .where(XPBalance.user_id == user_id)
                        .where(XPBalance.version == expected_version)
                        .values(
                            total_xp=XPBalance.total_xp + amount,
                            version=expected_version + 1,
                            updated_at=now,
                        )
                    )
                    if result.rowcount != 1:
                        session.rollback()
                        raise StaleBalanceError(
                            f"Balance for user {user_id} changed since version {expected_version}."
                        )

                session.add(
                    XPEvent(
                        user_id=user_id,
                        action_type=action_type.value,
                        amount=amount,
                        reference_id=reference_id,
                        description=description,
                        created_at=now,
                    )
                )
                session.flush()
                new_total = session.exec(
                    select(XPBalance.total_xp).where(XPBalance.user_id == user_id)
                ).one()
                session.commit()
            except IntegrityError as exc:
                session.rollback()
                # Another award created the balance row first.
                raise StaleBalanceError(
                    f"Balance for user {user_id} was created concurrently."
                ) from exc

        return new_total

    def get_balance(self, user_id: int) -> int:
        """Return the stored total for ``user_id`` (0 before the first award)."""

        with Session(self._engine) as session:
            balance = session.get(XPBalance, user_id)
            return balance.total_xp if balance is not None else 0

    def history(self, user_id: int, limit: int = 50) -> list[XPEvent]:
        """Return the most recent events for ``user_id``, newest first."""

        with Session(self._engine) as session:
            return list(
                session.exec(
                    select(XPEvent)
                    .where(XPEvent.user_id == user_id)
                    .order_by(XPEvent.created_at.desc(), XPEvent.id.desc())
                    .limit(limit)
                ).all()
            )

    def recompute_balance(self, user_id: int) -> int:
        """Rebuild ``user_id``'s balance from the event log and return it."""

        with Session(self._engine) as session:
            total = session.exec(
                select(func.coalesce(func.sum(XPEvent.amount), 0)).where(
                    XPEvent.user_id == user_id
                )
            ).one()
            balance = session.get(XPBalance, user_id)
            if balance is None:
                balance = XPBalance(user_id=user_id, total_xp=total)
            else:
                balance.total_xp = total
                balance.version += 1
            balance.updated_at = datetime.utcnow()
            session.add(balance)
            session.commit()

        logger.info("xp.balance_recomputed", user_id=user_id, total_xp=total)
        return total


__all__ = ["DaySnapshot", "SqlXPLedger", "StaleBalanceError", "XPLedger"]
