"""Learning content endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field

from app.core.auth import current_user
from app.core.errors import ApiError, rejection_error, required_text
from app.core.services import get_xp_awarder
from app.core.xp_engine import XPAwarder
from app.core.xp_rules import XPActionType
from app.models.users import User

router = APIRouter(prefix="/api/learn")


class MarkReadRequest(BaseModel):
    article_id: str = Field(min_length=1, max_length=100)


@router.post("/mark-read")
def mark_read(
    payload: MarkReadRequest,
    user: User = Depends(current_user),
    awarder: XPAwarder = Depends(get_xp_awarder),
):
    try:
        article_id = required_text(payload.article_id, "article_id")
    except ApiError as exc:
        raise exc.to_http() from exc

    result = awarder.evaluate_and_award(
        user.id,
        XPActionType.LEARN_READ,
        reference_id=article_id,
        description=f"Read article {article_id}",
    )
    if not result.success:
        raise rejection_error(result.reason, result.message).to_http()

    return {"ok": True, "xp_awarded": result.xp_awarded, "new_total": result.new_total}
