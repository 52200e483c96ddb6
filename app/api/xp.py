"""XP award, status and history endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query, status
from pydantic import BaseModel, Field
from sqlmodel import Session

from app.core.activity_log import log_activity
from app.core.auth import current_user, require_admin
from app.core.config import settings
from app.core.db import get_session
from app.core.errors import ApiError, ErrorCode, rejection_error
from app.core.services import get_xp_awarder, get_xp_ledger
from app.core.xp import progress_for_total_xp, reason_label
from app.core.xp_engine import XPAwarder, daily_total
from app.core.xp_ledger import SqlXPLedger
from app.core.xp_rules import XPActionType, parse_action_type
from app.models.users import User

router = APIRouter(prefix="/api/xp")


class AwardRequest(BaseModel):
    user_id: int
    action_type: str = Field(min_length=1, max_length=50)
    amount: int | None = None
    description: str | None = Field(default=None, max_length=500)
    reference_id: str | None = Field(default=None, max_length=100)


@router.post("/award")
def award_xp(
    payload: AwardRequest,
    session: Session = Depends(get_session),
    admin: User = Depends(require_admin),
    awarder: XPAwarder = Depends(get_xp_awarder),
):
    """Award XP on behalf of the server or apply an admin adjustment."""

    target = session.get(User, payload.user_id)
    if target is None:
        raise ApiError(
            ErrorCode.NOT_FOUND, "User not found", status_code=status.HTTP_404_NOT_FOUND
        ).to_http()

    action = parse_action_type(payload.action_type)
    if action == XPActionType.ADMIN_ADJUST and payload.amount is None:
        raise ApiError(
            ErrorCode.VALIDATION_ERROR, "An amount is required for admin adjustments."
        ).to_http()

    result = awarder.evaluate_and_award(
        target.id,
        action or payload.action_type,
        amount=payload.amount,
        reference_id=payload.reference_id,
        description=payload.description,
    )
    if not result.success:
        raise rejection_error(result.reason, result.message).to_http()

    if action == XPActionType.ADMIN_ADJUST:
        log_activity(
            session,
            action="xp.adjusted",
            entity_type="user",
            entity_id=target.id,
            metadata={
                "amount": result.xp_awarded,
                "new_total": result.new_total,
                "description": payload.description,
            },
            user=admin,
            commit=True,
        )

    return {
        "ok": True,
        "user_id": target.id,
        "xp_awarded": result.xp_awarded,
        "new_total": result.new_total,
    }


@router.post("/recompute/{user_id}")
def recompute_xp(
    user_id: int,
    session: Session = Depends(get_session),
    admin: User = Depends(require_admin),
    ledger: SqlXPLedger = Depends(get_xp_ledger),
):
    """Rebuild a user's balance from their XP events."""

    target = session.get(User, user_id)
    if target is None:
        raise ApiError(
            ErrorCode.NOT_FOUND, "User not found", status_code=status.HTTP_404_NOT_FOUND
        ).to_http()

    previous = ledger.get_balance(target.id)
    total_xp = ledger.recompute_balance(target.id)
    log_activity(
        session,
        action="xp.recomputed",
        entity_type="user",
        entity_id=target.id,
        metadata={"previous_total": previous, "total_xp": total_xp},
        user=admin,
        commit=True,
    )

    return {"ok": True, "user_id": target.id, "previous_total": previous, "total_xp": total_xp}


@router.get("/me")
def my_xp(
    user: User = Depends(current_user),
    awarder: XPAwarder = Depends(get_xp_awarder),
    ledger: SqlXPLedger = Depends(get_xp_ledger),
):
    total_xp = ledger.get_balance(user.id)
    progress = progress_for_total_xp(total_xp, settings.level_formula)
    today_events = ledger.load_day(user.id, awarder.today_start()).events

    return {
        "ok": True,
        "total_xp": total_xp,
        "level": progress.level,
        "xp_into_level": progress.xp_into_level,
        "xp_to_next_level": progress.xp_to_next_level,
        "progress_percent": progress.progress_percent,
        "today_xp": daily_total(today_events),
        "remaining_today": awarder.remaining_today(today_events),
    }


@router.get("/history")
def my_history(
    limit: int = Query(default=50, ge=1, le=200),
    user: User = Depends(current_user),
    ledger: SqlXPLedger = Depends(get_xp_ledger),
):
    """Return the caller's XP events, newest first."""

    events = ledger.history(user.id, limit=limit)

    return {
        "ok": True,
        "events": [
            {
                "id": event.id,
                "action_type": event.action_type,
                "label": reason_label(event.action_type),
                "amount": event.amount,
                "reference_id": event.reference_id,
                "description": event.description,
                "created_at": event.created_at.isoformat(),
            }
            for event in events
        ],
    }
