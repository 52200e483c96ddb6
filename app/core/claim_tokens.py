"""Signed, short-lived tokens binding a pot code to a claim attempt."""

from __future__ import annotations

import time
from typing import Any

import jwt
from jwt import InvalidTokenError

from app.core.config import settings

ALGORITHM = "HS256"


def generate_claim_token(
    pot_code: str,
    *,
    secret: str | None = None,
    ttl_seconds: int | None = None,
    now: int | None = None,
) -> str:
    """Return a JWT carrying ``pot_code`` that expires after the claim TTL."""

    issued_at = int(now if now is not None else time.time())
    ttl = settings.claim_token_ttl_seconds if ttl_seconds is None else ttl_seconds
    payload = {"pot_code": pot_code, "iat": issued_at, "exp": issued_at + ttl}
    return jwt.encode(payload, secret or settings.claim_token_secret, algorithm=ALGORITHM)


def verify_claim_token(token: str, *, secret: str | None = None) -> dict[str, Any] | None:
    """Return the verified payload, or ``None`` for any invalid token.

    Bad signatures, expired tokens, malformed strings and payloads without a
    ``pot_code`` all yield ``None``; this function never raises.
    """

    if not isinstance(token, str) or not token:
        return None
    try:
        payload = jwt.decode(
            token,
            secret or settings.claim_token_secret,
            algorithms=[ALGORITHM],
            options={"require": ["exp", "iat"]},
        )
    except InvalidTokenError:
        return None

    if not isinstance(payload.get("pot_code"), str) or not payload["pot_code"]:
        return None
    return payload


def decode_claim_token(token: str) -> dict[str, Any] | None:
    """Decode ``token`` without verifying it. For debugging only."""

    if not isinstance(token, str) or not token:
        return None
    try:
        return jwt.decode(token, options={"verify_signature": False})
    except InvalidTokenError:
        return None


__all__ = ["decode_claim_token", "generate_claim_token", "verify_claim_token"]
