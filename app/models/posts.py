"""SQLModel declarations for the community feed."""

from datetime import datetime

from sqlalchemy import Column, ForeignKey, Integer, UniqueConstraint
from sqlmodel import Field

from .base import BaseModel


class Post(BaseModel, table=True):
    """A post published to a hobby group."""

    id: int | None = Field(default=None, primary_key=True)
    author_id: int = Field(
        sa_column=Column(
            Integer, ForeignKey("user.id", ondelete="CASCADE"), nullable=False, index=True
        )
    )
    group_slug: str = Field(max_length=50, index=True)
    content: str = Field(max_length=5000)
    image_url: str | None = Field(default=None, max_length=500)
    hidden: bool = Field(default=False, sa_column_kwargs={"nullable": False})
    created_at: datetime = Field(
        default_factory=datetime.utcnow, sa_column_kwargs={"nullable": False}
    )


class Comment(BaseModel, table=True):
    """A comment left on a post."""

    id: int | None = Field(default=None, primary_key=True)
    post_id: int = Field(
        sa_column=Column(
            Integer, ForeignKey("post.id", ondelete="CASCADE"), nullable=False, index=True
        )
    )
    author_id: int = Field(
        sa_column=Column(
            Integer, ForeignKey("user.id", ondelete="CASCADE"), nullable=False
        )
    )
    content: str = Field(max_length=2000)
    hidden: bool = Field(default=False, sa_column_kwargs={"nullable": False})
    created_at: datetime = Field(
        default_factory=datetime.utcnow, sa_column_kwargs={"nullable": False}
    )


class PostLike(BaseModel, table=True):
    """A single user's like on a post."""

    __table_args__ = (UniqueConstraint("post_id", "user_id", name="uq_postlike_post_user"),)

    id: int | None = Field(default=None, primary_key=True)
    post_id: int = Field(
        sa_column=Column(
            Integer, ForeignKey("post.id", ondelete="CASCADE"), nullable=False, index=True
        )
    )
    user_id: int = Field(
        sa_column=Column(
            Integer, ForeignKey("user.id", ondelete="CASCADE"), nullable=False
        )
    )
    created_at: datetime = Field(
        default_factory=datetime.utcnow, sa_column_kwargs={"nullable": False}
    )
