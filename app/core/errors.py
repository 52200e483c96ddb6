"""API error codes and helpers for translating domain failures."""

from __future__ import annotations

from enum import Enum
from typing import TYPE_CHECKING

from fastapi import HTTPException, status

if TYPE_CHECKING:  # pragma: no cover - only imported for typing
    from app.core.xp_engine import RejectionReason


class ErrorCode(str, Enum):
    """Stable, machine-readable error codes returned to clients."""

    UNAUTHORIZED = "UNAUTHORIZED"
    FORBIDDEN = "FORBIDDEN"
    NOT_FOUND = "NOT_FOUND"
    VALIDATION_ERROR = "VALIDATION_ERROR"
    ALREADY_EXISTS = "ALREADY_EXISTS"
    RATE_LIMIT = "RATE_LIMIT"
    INTERNAL_ERROR = "INTERNAL_ERROR"
    POT_ALREADY_CLAIMED = "POT_ALREADY_CLAIMED"
    INVALID_CLAIM_TOKEN = "INVALID_CLAIM_TOKEN"
    XP_DAILY_CAP_REACHED = "XP_DAILY_CAP_REACHED"


class ApiError(Exception):
    """Raised by domain helpers when a request cannot be fulfilled."""

    def __init__(self, code: ErrorCode, message: str, *, status_code: int = 400) -> None:
        super().__init__(message)
        self.code = code
        self.status_code = status_code
        self.detail = {"code": code.value, "message": message}

    def to_http(self) -> HTTPException:
        """Return an equivalent ``HTTPException`` for FastAPI routes."""

        return HTTPException(status_code=self.status_code, detail=self.detail)


def required_text(value: str, field: str) -> str:
    """Return ``value`` stripped, rejecting strings that are only whitespace."""

    stripped = value.strip()
    if not stripped:
        raise ApiError(ErrorCode.VALIDATION_ERROR, f"{field} must not be blank.")
    return stripped


def rejection_error(reason: "RejectionReason", message: str) -> ApiError:
    """Map a typed XP rejection onto an API error."""

    from app.core.xp_engine import RejectionReason

    if reason in (
        RejectionReason.DAILY_ACTION_CAP_REACHED,
        RejectionReason.DAILY_TOTAL_CAP_REACHED,
    ):
        return ApiError(ErrorCode.XP_DAILY_CAP_REACHED, message)
    if reason == RejectionReason.ALREADY_COMPLETED_TODAY:
        return ApiError(ErrorCode.ALREADY_EXISTS, message)
    if reason == RejectionReason.INVALID_ACTION:
        return ApiError(ErrorCode.VALIDATION_ERROR, message)
    return ApiError(
        ErrorCode.INTERNAL_ERROR,
        "We couldn't update your XP right now. Please try again later.",
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
    )


__all__ = ["ApiError", "ErrorCode", "rejection_error", "required_text"]
