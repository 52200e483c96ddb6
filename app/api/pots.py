"""QR claim endpoints for linking purchased pots to accounts."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Request, status
from pydantic import BaseModel, Field
from sqlmodel import Session

from app.core.auth import current_user
from app.core.claim_tokens import verify_claim_token
from app.core.config import settings
from app.core.db import get_session
from app.core.errors import ApiError, ErrorCode
from app.core.pots import claim_pot, claimed_pots, issue_claim_token
from app.core.rate_limit import RateLimiter, RateLimits, enforce, get_rate_limiter
from app.core.services import get_xp_awarder
from app.core.xp_engine import XPAwarder
from app.models.users import User

router = APIRouter(prefix="/api")


class ClaimTokenRequest(BaseModel):
    pot_code: str = Field(min_length=1, max_length=20)


class PotClaimRequest(BaseModel):
    token: str = Field(min_length=1)


def client_ip(request: Request) -> str:
    """Return the best-effort client address for rate limiting."""

    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        return forwarded.split(",")[0].strip()
    real_ip = request.headers.get("x-real-ip")
    if real_ip:
        return real_ip.strip()
    if request.client is not None:
        return request.client.host
    return "unknown"


@router.post("/pots/claim-token")
def create_claim_token(
    payload: ClaimTokenRequest,
    request: Request,
    session: Session = Depends(get_session),
    limiter: RateLimiter = Depends(get_rate_limiter),
):
    """Exchange a printed pot code for a short-lived claim token."""

    try:
        enforce(RateLimits.CLAIM_TOKEN, client_ip(request), limiter)
        token = issue_claim_token(session, payload.pot_code)
    except ApiError as exc:
        raise exc.to_http() from exc

    return {"ok": True, "token": token, "expires_in": settings.claim_token_ttl_seconds}


@router.post("/pots/claim")
def claim(
    payload: PotClaimRequest,
    session: Session = Depends(get_session),
    user: User = Depends(current_user),
    limiter: RateLimiter = Depends(get_rate_limiter),
    awarder: XPAwarder = Depends(get_xp_awarder),
):
    """Claim the pot named by a valid claim token."""

    claims = verify_claim_token(payload.token)
    if claims is None:
        raise ApiError(
            ErrorCode.INVALID_CLAIM_TOKEN,
            "Invalid or expired claim token.",
            status_code=status.HTTP_401_UNAUTHORIZED,
        ).to_http()

    try:
        enforce(RateLimits.CLAIM_EXECUTION, str(user.id), limiter)
        outcome = claim_pot(session, user, claims["pot_code"], awarder)
    except ApiError as exc:
        raise exc.to_http() from exc

    return {
        "ok": True,
        "pot_id": outcome.pot.id,
        "pot_code": outcome.pot.code,
        "xp_awarded": outcome.award.xp_awarded,
    }


@router.get("/my-plants")
def my_plants(session: Session = Depends(get_session), user: User = Depends(current_user)):
    """List the pots the signed-in user has claimed."""

    return {
        "ok": True,
        "pots": [
            {
                "pot_id": pot.id,
                "pot_code": pot.code,
                "name": pot.name,
                "claimed_at": claim.claimed_at.isoformat(),
            }
            for pot, claim in claimed_pots(session, user)
        ],
    }
