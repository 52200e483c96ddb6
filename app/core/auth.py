"""Request actor resolution.

Sign-in is handled upstream; by the time a request reaches the portal the
session cookie carries the signed-in ``user_id``.
"""

from __future__ import annotations

from fastapi import Depends, Request, status
from sqlmodel import Session

from app.core.db import get_session
from app.core.errors import ApiError, ErrorCode
from app.models.users import User

SESSION_USER_KEY = "user_id"


def _session_user_id(request: Request) -> int | None:
    raw = request.session.get(SESSION_USER_KEY) if "session" in request.scope else None
    try:
        return int(raw) if raw is not None else None
    except (TypeError, ValueError):
        return None


def current_user(request: Request, session: Session = Depends(get_session)) -> User:
    """Return the signed-in, active user or fail with 401."""

    user_id = _session_user_id(request)
    user = session.get(User, user_id) if user_id is not None else None
    if user is None or not user.is_active:
        raise ApiError(
            ErrorCode.UNAUTHORIZED,
            "You must be logged in to do that.",
            status_code=status.HTTP_401_UNAUTHORIZED,
        ).to_http()

    request.state.user = user
    return user


def require_admin(user: User = Depends(current_user)) -> User:
    """Return the signed-in user when they are an administrator."""

    if not user.is_admin:
        raise ApiError(
            ErrorCode.FORBIDDEN,
            "Administrator access is required.",
            status_code=status.HTTP_403_FORBIDDEN,
        ).to_http()
    return user
