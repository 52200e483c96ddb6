"""Community feed endpoints: posts, comments and likes."""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends, Query, status
from pydantic import BaseModel, Field
from sqlalchemy import func
from sqlmodel import Session, select

from app.core.auth import current_user
from app.core.db import get_session
from app.core.errors import ApiError, ErrorCode, required_text
from app.core.rate_limit import RateLimiter, RateLimits, enforce, get_rate_limiter
from app.core.services import get_xp_awarder
from app.core.xp_engine import AwardResult, XPAwarder
from app.core.xp_rules import XPActionType
from app.models.posts import Comment, Post, PostLike
from app.models.users import User

router = APIRouter(prefix="/api/posts")


class CreatePostRequest(BaseModel):
    group_slug: str = Field(min_length=1, max_length=50)
    content: str = Field(min_length=1, max_length=5000)
    image_url: str | None = Field(default=None, max_length=500)


class CreateCommentRequest(BaseModel):
    content: str = Field(min_length=1, max_length=2000)


def _serialize_post(post: Post, *, like_count: int = 0, comment_count: int = 0) -> dict[str, Any]:
    return {
        "id": post.id,
        "author_id": post.author_id,
        "group_slug": post.group_slug,
        "content": post.content,
        "image_url": post.image_url,
        "created_at": post.created_at.isoformat(),
        "like_count": like_count,
        "comment_count": comment_count,
    }


def _xp_payload(award: AwardResult) -> dict[str, Any]:
    return {
        "xp_awarded": award.xp_awarded,
        "xp_message": award.message,
    }


def _visible_post(session: Session, post_id: int) -> Post:
    post = session.get(Post, post_id)
    if post is None or post.hidden:
        raise ApiError(
            ErrorCode.NOT_FOUND, "Post not found", status_code=status.HTTP_404_NOT_FOUND
        ).to_http()
    return post


def _like_count(session: Session, post_id: int) -> int:
    return session.exec(
        select(func.count()).select_from(PostLike).where(PostLike.post_id == post_id)
    ).one()


@router.get("")
def list_posts(
    group_slug: str | None = None,
    limit: int = Query(default=20, ge=1, le=100),
    session: Session = Depends(get_session),
):
    """Return visible posts, newest first, with engagement counts."""

    stmt = select(Post).where(Post.hidden.is_(False)).order_by(Post.created_at.desc(), Post.id.desc())
    if group_slug:
        stmt = stmt.where(Post.group_slug == group_slug)
    posts = session.exec(stmt.limit(limit)).all()

    post_ids = [post.id for post in posts]
    like_counts: dict[int, int] = {}
    comment_counts: dict[int, int] = {}
    if post_ids:
        like_counts = dict(
            session.exec(
                select(PostLike.post_id, func.count())
                .where(PostLike.post_id.in_(post_ids))
                .group_by(PostLike.post_id)
            ).all()
        )
        comment_counts = dict(
            session.exec(
                select(Comment.post_id, func.count())
                .where(Comment.post_id.in_(post_ids))
                .where(Comment.hidden.is_(False))
                .group_by(Comment.post_id)
            ).all()
        )

    return {
        "ok": True,
        "posts": [
            _serialize_post(
                post,
                like_count=like_counts.get(post.id, 0),
                comment_count=comment_counts.get(post.id, 0),
            )
            for post in posts
        ],
    }


@router.post("", status_code=status.HTTP_201_CREATED)
def create_post(
    payload: CreatePostRequest,
    session: Session = Depends(get_session),
    user: User = Depends(current_user),
    limiter: RateLimiter = Depends(get_rate_limiter),
    awarder: XPAwarder = Depends(get_xp_awarder),
):
    """Publish a post and award XP for it."""

    try:
        group_slug = required_text(payload.group_slug, "group_slug")
        content = required_text(payload.content, "content")
        enforce(RateLimits.POST_CREATE, str(user.id), limiter)
    except ApiError as exc:
        raise exc.to_http() from exc

    post = Post(
        author_id=user.id,
        group_slug=group_slug,
        content=content,
        image_url=payload.image_url,
    )
    session.add(post)
    session.commit()
    session.refresh(post)

    award = awarder.evaluate_and_award(
        user.id, XPActionType.POST_CREATE, reference_id=str(post.id)
    )

    return {"ok": True, "post": _serialize_post(post), **_xp_payload(award)}


@router.post("/{post_id}/comments", status_code=status.HTTP_201_CREATED)
def create_comment(
    post_id: int,
    payload: CreateCommentRequest,
    session: Session = Depends(get_session),
    user: User = Depends(current_user),
    limiter: RateLimiter = Depends(get_rate_limiter),
    awarder: XPAwarder = Depends(get_xp_awarder),
):
    """Comment on a post and award XP for it."""

    try:
        content = required_text(payload.content, "content")
        enforce(RateLimits.COMMENT_CREATE, str(user.id), limiter)
    except ApiError as exc:
        raise exc.to_http() from exc

    post = _visible_post(session, post_id)

    comment = Comment(post_id=post.id, author_id=user.id, content=content)
    session.add(comment)
    session.commit()
    session.refresh(comment)

    award = awarder.evaluate_and_award(
        user.id, XPActionType.COMMENT_CREATE, reference_id=str(comment.id)
    )

    return {
        "ok": True,
        "comment": {
            "id": comment.id,
            "post_id": comment.post_id,
            "author_id": comment.author_id,
            "content": comment.content,
            "created_at": comment.created_at.isoformat(),
        },
        **_xp_payload(award),
    }


@router.post("/{post_id}/like")
def toggle_like(
    post_id: int,
    session: Session = Depends(get_session),
    user: User = Depends(current_user),
):
    """Like the post, or remove the like if it was already liked."""

    post = _visible_post(session, post_id)

    existing = session.exec(
        select(PostLike).where(PostLike.post_id == post.id).where(PostLike.user_id == user.id)
    ).one_or_none()
    if existing is None:
        session.add(PostLike(post_id=post.id, user_id=user.id))
        liked = True
    else:
        session.delete(existing)
        liked = False
    session.commit()

    return {"ok": True, "liked": liked, "like_count": _like_count(session, post.id)}
