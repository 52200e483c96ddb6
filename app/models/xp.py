"""SQLModel declarations for the XP ledger and per-user balances."""

from datetime import datetime

from sqlalchemy import Column, ForeignKey, Integer
from sqlmodel import Field

from .base import BaseModel


class XPEvent(BaseModel, table=True):
    """Append-only record of XP granted to a user."""

    id: int | None = Field(default=None, primary_key=True)
    user_id: int = Field(
        sa_column=Column(
            Integer, ForeignKey("user.id", ondelete="CASCADE"), nullable=False, index=True
        )
    )
    action_type: str = Field(max_length=50, sa_column_kwargs={"nullable": False})
    amount: int = Field(sa_column_kwargs={"nullable": False})
    reference_id: str | None = Field(default=None, max_length=100)
    description: str | None = Field(default=None, max_length=500)
    created_at: datetime = Field(
        default_factory=datetime.utcnow,
        index=True,
        sa_column_kwargs={"nullable": False},
    )


class XPBalance(BaseModel, table=True):
    """Running XP total per user, projected from ``XPEvent`` rows.

    ``version`` is bumped on every write and guards concurrent awards.
    """

    user_id: int = Field(
        sa_column=Column(
            Integer, ForeignKey("user.id", ondelete="CASCADE"), primary_key=True
        )
    )
    total_xp: int = Field(default=0, sa_column_kwargs={"nullable": False})
    version: int = Field(default=1, sa_column_kwargs={"nullable": False})
    updated_at: datetime = Field(
        default_factory=datetime.utcnow, sa_column_kwargs={"nullable": False}
    )
