"""SQLModel declaration for tracked game sessions."""

from datetime import datetime
from enum import Enum

from sqlalchemy import Column, ForeignKey, Integer
from sqlmodel import Field

from .base import BaseModel


class GameSessionStatus(str, Enum):
    ACTIVE = "active"
    COMPLETED = "completed"


class GameSession(BaseModel, table=True):
    """A stretch of play. XP is granted when the session is ended."""

    id: int | None = Field(default=None, primary_key=True)
    user_id: int = Field(
        sa_column=Column(
            Integer, ForeignKey("user.id", ondelete="CASCADE"), nullable=False, index=True
        )
    )
    status: GameSessionStatus = Field(
        default=GameSessionStatus.ACTIVE, index=True, sa_column_kwargs={"nullable": False}
    )
    started_at: datetime = Field(
        default_factory=datetime.utcnow, sa_column_kwargs={"nullable": False}
    )
    ended_at: datetime | None = None
    duration_minutes: int | None = None
    xp_earned: int = Field(default=0, sa_column_kwargs={"nullable": False})
