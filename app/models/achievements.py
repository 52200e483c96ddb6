"""SQLModel declarations for achievements and the users who earned them."""

from datetime import datetime

from sqlalchemy import Column, ForeignKey, Integer, UniqueConstraint
from sqlmodel import Field

from .base import BaseModel


class Achievement(BaseModel, table=True):
    """A milestone a member unlocks once a counter reaches ``requirement_value``."""

    id: int | None = Field(default=None, primary_key=True)
    key: str = Field(max_length=50, unique=True, index=True)
    name: str = Field(max_length=100)
    description: str = Field(max_length=500)
    icon: str = Field(default="leaf", max_length=50)
    category: str = Field(default="general", max_length=50)
    requirement_type: str = Field(max_length=50)
    requirement_value: int = Field(sa_column_kwargs={"nullable": False})


class UserAchievement(BaseModel, table=True):
    __table_args__ = (
        UniqueConstraint("user_id", "achievement_id", name="uq_userachievement_user_achievement"),
    )

    id: int | None = Field(default=None, primary_key=True)
    user_id: int = Field(
        sa_column=Column(
            Integer, ForeignKey("user.id", ondelete="CASCADE"), nullable=False, index=True
        )
    )
    achievement_id: int = Field(
        sa_column=Column(
            Integer, ForeignKey("achievement.id", ondelete="CASCADE"), nullable=False
        )
    )
    earned_at: datetime = Field(
        default_factory=datetime.utcnow, sa_column_kwargs={"nullable": False}
    )
