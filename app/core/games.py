"""Game session tracking and play-time XP."""

from __future__ import annotations

from dataclasses import dataclass

from fastapi import status
from sqlalchemy import update
from sqlmodel import Session, select

from app.core.errors import ApiError, ErrorCode
from app.core.logging import get_logger
from app.core.xp_engine import AwardResult, XPAwarder
from app.core.xp_rules import XPActionType
from app.models.games import GameSession, GameSessionStatus

logger = get_logger(__name__)

XP_BLOCK_MINUTES = 30
MAX_SESSION_MINUTES = 1440


@dataclass(frozen=True)
class SessionOutcome:
    """A closed session and the play-time XP granted for it."""

    game_session: GameSession
    blocks: int
    xp_awarded: int
    rejection: AwardResult | None = None


def active_session(session: Session, user_id: int) -> GameSession | None:
    """Return ``user_id``'s open session, if any."""

    return session.exec(
        select(GameSession)
        .where(GameSession.user_id == user_id)
        .where(GameSession.status == GameSessionStatus.ACTIVE)
        .order_by(GameSession.started_at.desc(), GameSession.id.desc())
        .limit(1)
    ).one_or_none()


def start_session(
    session: Session, user_id: int, awarder: XPAwarder
) -> tuple[GameSession, bool]:
    """Open a session for ``user_id``, or return the one already open.

    The second element is ``True`` when a new session was created.
    """

    existing = active_session(session, user_id)
    if existing is not None:
        return existing, False

    game_session = GameSession(user_id=user_id, started_at=awarder.now())
    session.add(game_session)
    session.commit()
    session.refresh(game_session)
    logger.info("game.session_started", user_id=user_id, session_id=game_session.id)
    return game_session, True


def end_session(
    session: Session,
    user_id: int,
    session_id: int,
    duration_minutes: int,
    awarder: XPAwarder,
) -> SessionOutcome:
    """Close an open session and award GAME_PLAY_30M once per full 30 minutes.

    The reported duration is clamped to the time elapsed since the session
    started. Awards stop at the first rejection; the session is closed either
    way. Raises :class:`ApiError` (404) when the session is not open or belongs
    to someone else.
    """

    game_session = session.get(GameSession, session_id)
    if (
        game_session is None
        or game_session.user_id != user_id
        or game_session.status != GameSessionStatus.ACTIVE
    ):
        raise ApiError(
            ErrorCode.NOT_FOUND,
            "Session not found or already ended",
            status_code=status.HTTP_404_NOT_FOUND,
        )

    ended_at = awarder.now()
    elapsed = max(0, int((ended_at - game_session.started_at).total_seconds() // 60))
    duration = min(duration_minutes, elapsed, MAX_SESSION_MINUTES)

    # Only the request that flips the row out of ACTIVE goes on to award XP.
    result = session.connection().execute(
        update(GameSession)
        .where(GameSession.id == session_id)
        .where(GameSession.status == GameSessionStatus.ACTIVE)
        .values(
            status=GameSessionStatus.COMPLETED,
            ended_at=ended_at,
            duration_minutes=duration,
        )
    )
    if result.rowcount != 1:
        session.rollback()
        raise ApiError(
            ErrorCode.NOT_FOUND,
            "Session not found or already ended",
            status_code=status.HTTP_404_NOT_FOUND,
        )
    session.commit()

    blocks = duration // XP_BLOCK_MINUTES
    xp_awarded = 0
    rejection: AwardResult | None = None
    for block in range(blocks):
        award = awarder.evaluate_and_award(
            user_id,
            XPActionType.GAME_PLAY_30M,
            reference_id=f"{session_id}:{block}",
            description=f"Game session {session_id} ({duration} min)",
        )
        if not award.success:
            rejection = award
            break
        xp_awarded += award.xp_awarded

    session.refresh(game_session)
    game_session.xp_earned = xp_awarded
    session.add(game_session)
    session.commit()
    session.refresh(game_session)

    logger.info(
        "game.session_ended",
        user_id=user_id,
        session_id=session_id,
        duration_minutes=duration,
        blocks=blocks,
        xp_awarded=xp_awarded,
        xp_reason=rejection.reason.value if rejection else None,
    )
    return SessionOutcome(
        game_session=game_session, blocks=blocks, xp_awarded=xp_awarded, rejection=rejection
    )


__all__ = [
    "MAX_SESSION_MINUTES",
    "SessionOutcome",
    "XP_BLOCK_MINUTES",
    "active_session",
    "end_session",
    "start_session",
]
