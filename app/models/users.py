"""SQLModel declaration for application users."""

from datetime import datetime
from enum import Enum

from sqlmodel import Field

from .base import BaseModel


class UserRole(str, Enum):
    """Enumerates the supported user roles."""

    ADMIN = "admin"
    USER = "user"


class User(BaseModel, table=True):
    """Represents a community member's profile."""

    id: int | None = Field(default=None, primary_key=True)
    username: str = Field(max_length=50, unique=True, index=True)
    display_name: str = Field(max_length=200)
    role: UserRole = Field(default=UserRole.USER, sa_column_kwargs={"nullable": False})
    is_active: bool = Field(default=True, sa_column_kwargs={"nullable": False})
    created_at: datetime = Field(
        default_factory=datetime.utcnow, sa_column_kwargs={"nullable": False}
    )
    updated_at: datetime = Field(
        default_factory=datetime.utcnow, sa_column_kwargs={"nullable": False}
    )

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN
