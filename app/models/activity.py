"""SQLModel declaration for the audit trail."""

from datetime import datetime
from typing import Any

from sqlalchemy import JSON, Column, ForeignKey, Index, Integer
from sqlmodel import Field

from .base import BaseModel


class ActivityLog(BaseModel, table=True):
    """One audited change. ``entity_id`` is text so pot codes fit as well as ids."""

    __table_args__ = (Index("ix_activitylog_entity", "entity_type", "entity_id"),)

    id: int | None = Field(default=None, primary_key=True)
    timestamp: datetime = Field(
        default_factory=datetime.utcnow, sa_column_kwargs={"nullable": False}
    )
    user_id: int | None = Field(
        default=None,
        sa_column=Column(Integer, ForeignKey("user.id", ondelete="SET NULL"), nullable=True),
    )
    action: str = Field(max_length=200, index=True)
    entity_type: str = Field(max_length=100)
    entity_id: str = Field(max_length=100)
    metadata_payload: dict[str, Any] | None = Field(
        default=None, sa_column=Column("metadata", JSON, nullable=True)
    )
