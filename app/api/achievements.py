"""Achievement listing and unlocking endpoints."""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends
from sqlmodel import Session

from app.core.achievements import (
    AchievementProgress,
    achievement_progress,
    check_achievements,
    group_by_category,
    user_stats,
)
from app.core.auth import current_user
from app.core.db import get_session
from app.core.services import get_xp_ledger
from app.core.xp_ledger import SqlXPLedger
from app.models.achievements import Achievement
from app.models.users import User

router = APIRouter(prefix="/api/achievements")


def _serialize_achievement(achievement: Achievement) -> dict[str, Any]:
    return {
        "id": achievement.id,
        "key": achievement.key,
        "name": achievement.name,
        "description": achievement.description,
        "icon": achievement.icon,
        "category": achievement.category,
        "requirement_type": achievement.requirement_type,
        "requirement_value": achievement.requirement_value,
    }


def _serialize_progress(row: AchievementProgress) -> dict[str, Any]:
    return {
        **_serialize_achievement(row.achievement),
        "earned": row.earned,
        "earned_at": row.earned_at.isoformat() if row.earned_at else None,
        "current_value": row.current_value,
        "progress": row.progress,
    }


@router.get("")
def list_achievements(
    session: Session = Depends(get_session),
    user: User = Depends(current_user),
    ledger: SqlXPLedger = Depends(get_xp_ledger),
):
    """Return every achievement with the caller's progress, grouped by category."""

    stats = user_stats(session, user.id, ledger.get_balance(user.id))
    rows = achievement_progress(session, user.id, stats)

    return {
        "ok": True,
        "achievements": [_serialize_progress(row) for row in rows],
        "grouped": {
            category: [_serialize_progress(row) for row in members]
            for category, members in group_by_category(rows).items()
        },
        "stats": {
            "total": len(rows),
            "earned": sum(1 for row in rows if row.earned),
            "total_xp": stats.total_xp,
            "level": stats.level,
            "posts": stats.posts,
            "comments": stats.comments,
            "articles": stats.articles,
        },
    }


@router.post("/check")
def check(
    session: Session = Depends(get_session),
    user: User = Depends(current_user),
    ledger: SqlXPLedger = Depends(get_xp_ledger),
):
    """Unlock any achievements the caller now qualifies for."""

    stats = user_stats(session, user.id, ledger.get_balance(user.id))
    unlocked = check_achievements(session, user.id, stats)

    return {
        "ok": True,
        "newly_earned": [_serialize_achievement(achievement) for achievement in unlocked],
    }
