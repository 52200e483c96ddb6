"""Audit trail for pot claims and XP adjustments."""

from __future__ import annotations

from collections.abc import Mapping
from typing import TYPE_CHECKING, Any

from sqlmodel import Session, select

from app.core.logging import get_logger
from app.models.activity import ActivityLog

if TYPE_CHECKING:  # pragma: no cover - only imported for typing
    from app.models.users import User

logger = get_logger(__name__)


def log_activity(
    session: Session,
    *,
    action: str,
    entity_type: str,
    entity_id: int | str,
    metadata: Mapping[str, Any] | None = None,
    user: "User | None" = None,
    user_id: int | None = None,
    commit: bool = False,
) -> ActivityLog:
    """Add an audit row for ``action`` on ``entity_type``/``entity_id``.

    The actor is ``user_id`` when given, otherwise ``user.id``. ``metadata`` is
    copied before it is stored. Nothing is committed unless ``commit`` is set,
    so the row lands in the same transaction as the change it describes.
    """

    actor_id = user_id if user_id is not None else getattr(user, "id", None)
    entry = ActivityLog(
        action=action,
        entity_type=entity_type,
        entity_id=str(entity_id),
        metadata_payload=dict(metadata) if metadata else None,
        user_id=actor_id,
    )
    session.add(entry)
    if commit:
        session.commit()

    logger.debug(
        "activity.recorded",
        action=action,
        entity_type=entity_type,
        entity_id=str(entity_id),
        actor_id=actor_id,
    )
    return entry


def recent_activity(
    session: Session, *, entity_type: str, entity_id: int | str, limit: int = 20
) -> list[ActivityLog]:
    """Return the newest audit rows for one entity."""

    return list(
        session.exec(
            select(ActivityLog)
            .where(ActivityLog.entity_type == entity_type)
            .where(ActivityLog.entity_id == str(entity_id))
            .order_by(ActivityLog.timestamp.desc(), ActivityLog.id.desc())
            .limit(limit)
        ).all()
    )


__all__ = ["log_activity", "recent_activity"]
