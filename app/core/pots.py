"""Linking physical pots to user accounts."""

from __future__ import annotations

from dataclasses import dataclass

from fastapi import status
from sqlalchemy.exc import IntegrityError
from sqlmodel import Session, select

from app.core.activity_log import log_activity
from app.core.claim_tokens import generate_claim_token
from app.core.errors import ApiError, ErrorCode
from app.core.logging import get_logger
from app.core.xp_engine import AwardResult, XPAwarder
from app.core.xp_rules import XPActionType
from app.models.pots import Pot, PotClaim
from app.models.users import User

logger = get_logger(__name__)


@dataclass(frozen=True)
class ClaimOutcome:
    """Result of a successful claim, including the XP granted for it."""

    pot: Pot
    claim: PotClaim
    award: AwardResult


def find_pot(session: Session, pot_code: str) -> Pot | None:
    """Return the pot printed with ``pot_code``."""

    return session.exec(select(Pot).where(Pot.code == pot_code.strip())).one_or_none()


def _require_pot(session: Session, pot_code: str) -> Pot:
    pot = find_pot(session, pot_code)
    if pot is None:
        raise ApiError(
            ErrorCode.NOT_FOUND,
            "Pot not found. Please check the code and try again.",
            status_code=status.HTTP_404_NOT_FOUND,
        )
    return pot


def issue_claim_token(session: Session, pot_code: str) -> str:
    """Return a claim token for an existing pot."""

    pot = _require_pot(session, pot_code)
    return generate_claim_token(pot.code)


def _already_claimed(claim: PotClaim, user: User) -> ApiError:
    if claim.user_id == user.id:
        message = "You have already claimed this pot."
    else:
        message = "This pot has already been claimed by another user."
    return ApiError(ErrorCode.POT_ALREADY_CLAIMED, message, status_code=status.HTTP_409_CONFLICT)


def claim_pot(session: Session, user: User, pot_code: str, awarder: XPAwarder) -> ClaimOutcome:
    """Bind the pot to ``user`` and award the pot-link XP.

    The claim is committed before XP is evaluated; an XP rejection never
    undoes a claim.
    """

    pot = _require_pot(session, pot_code)

    existing = session.exec(select(PotClaim).where(PotClaim.pot_id == pot.id)).one_or_none()
    if existing is not None:
        raise _already_claimed(existing, user)

    claim = PotClaim(pot_id=pot.id, user_id=user.id)
    session.add(claim)
    try:
        session.flush()
    except IntegrityError as exc:
        session.rollback()
        winner = session.exec(select(PotClaim).where(PotClaim.pot_id == pot.id)).one_or_none()
        if winner is None:
            raise
        raise _already_claimed(winner, user) from exc

    log_activity(
        session,
        action="pot.claimed",
        entity_type="pot",
        entity_id=pot.id,
        metadata={"pot_code": pot.code, "claim_id": claim.id},
        user=user,
    )
    session.commit()
    session.refresh(claim)

    award = awarder.evaluate_and_award(
        user.id,
        XPActionType.POT_LINK,
        reference_id=pot.code,
        description=f"Linked pot {pot.code}",
    )
    logger.info(
        "pot.claimed",
        pot_id=pot.id,
        user_id=user.id,
        xp_awarded=award.xp_awarded,
        xp_reason=award.reason.value if award.reason else None,
    )

    return ClaimOutcome(pot=pot, claim=claim, award=award)


def claimed_pots(session: Session, user: User) -> list[tuple[Pot, PotClaim]]:
    """Return ``user``'s pots with their claims, most recent first."""

    rows = session.exec(
        select(Pot, PotClaim)
        .where(PotClaim.pot_id == Pot.id)
        .where(PotClaim.user_id == user.id)
        .order_by(PotClaim.claimed_at.desc())
    ).all()
    return [(pot, claim) for pot, claim in rows]


__all__ = ["ClaimOutcome", "claim_pot", "claimed_pots", "find_pot", "issue_claim_token"]
