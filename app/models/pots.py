"""SQLModel declarations for physical pots and their ownership claims."""

from datetime import datetime

from sqlalchemy import Column, ForeignKey, Integer
from sqlmodel import Field

from .base import BaseModel


class Pot(BaseModel, table=True):
    """A physical pot carrying a printed QR code."""

    id: int | None = Field(default=None, primary_key=True)
    code: str = Field(max_length=20, unique=True, index=True)
    name: str | None = Field(default=None, max_length=200)
    created_at: datetime = Field(
        default_factory=datetime.utcnow, sa_column_kwargs={"nullable": False}
    )


class PotClaim(BaseModel, table=True):
    """Links a pot to the user who claimed it. A pot has at most one claim."""

    id: int | None = Field(default=None, primary_key=True)
    pot_id: int = Field(
        sa_column=Column(
            Integer,
            ForeignKey("pot.id", ondelete="CASCADE"),
            nullable=False,
            unique=True,
        )
    )
    user_id: int = Field(
        sa_column=Column(
            Integer, ForeignKey("user.id", ondelete="CASCADE"), nullable=False, index=True
        )
    )
    claimed_at: datetime = Field(
        default_factory=datetime.utcnow, sa_column_kwargs={"nullable": False}
    )
