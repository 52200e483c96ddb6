"""Game session endpoints."""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field
from sqlmodel import Session

from app.core.auth import current_user
from app.core.db import get_session
from app.core.errors import ApiError
from app.core.games import MAX_SESSION_MINUTES, active_session, end_session, start_session
from app.core.services import get_xp_awarder
from app.core.xp_engine import XPAwarder
from app.models.games import GameSession
from app.models.users import User

router = APIRouter(prefix="/api/games/session")


class EndSessionRequest(BaseModel):
    duration_minutes: int = Field(ge=0, le=MAX_SESSION_MINUTES)


def _serialize_session(game_session: GameSession | None) -> dict[str, Any] | None:
    if game_session is None:
        return None
    return {
        "id": game_session.id,
        "user_id": game_session.user_id,
        "status": game_session.status.value,
        "started_at": game_session.started_at.isoformat(),
        "ended_at": game_session.ended_at.isoformat() if game_session.ended_at else None,
        "duration_minutes": game_session.duration_minutes,
        "xp_earned": game_session.xp_earned,
    }


@router.get("")
def current_session(
    session: Session = Depends(get_session),
    user: User = Depends(current_user),
):
    return {"ok": True, "session": _serialize_session(active_session(session, user.id))}


@router.post("/start")
def start(
    session: Session = Depends(get_session),
    user: User = Depends(current_user),
    awarder: XPAwarder = Depends(get_xp_awarder),
):
    """Open a game session, reusing the caller's open one if present."""

    game_session, created = start_session(session, user.id, awarder)
    return {"ok": True, "created": created, "session": _serialize_session(game_session)}


@router.post("/{session_id}/end")
def end(
    session_id: int,
    payload: EndSessionRequest,
    session: Session = Depends(get_session),
    user: User = Depends(current_user),
    awarder: XPAwarder = Depends(get_xp_awarder),
):
    """Close a game session and award play-time XP."""

    try:
        outcome = end_session(session, user.id, session_id, payload.duration_minutes, awarder)
    except ApiError as exc:
        raise exc.to_http() from exc

    return {
        "ok": True,
        "session": _serialize_session(outcome.game_session),
        "blocks": outcome.blocks,
        "xp_awarded": outcome.xp_awarded,
        "xp_message": outcome.rejection.message if outcome.rejection else None,
    }
