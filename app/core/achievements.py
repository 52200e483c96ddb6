"""Achievement catalogue, progress and unlocking.

Progress is derived from counters the portal already keeps: the XP balance,
authored posts and comments, and articles read for XP. Unlocking an
achievement records a ``UserAchievement`` row and grants no XP of its own.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from datetime import datetime
from enum import Enum

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlmodel import Session, select

from app.core.config import settings
from app.core.logging import get_logger
from app.core.xp import calculate_level
from app.core.xp_rules import XPActionType
from app.models.achievements import Achievement, UserAchievement
from app.models.posts import Comment, Post
from app.models.xp import XPEvent

logger = get_logger(__name__)


class RequirementType(str, Enum):
    """Counters an achievement can be unlocked by."""

    XP_TOTAL = "xp_total"
    POSTS_COUNT = "posts_count"
    COMMENTS_COUNT = "comments_count"
    ARTICLES_READ = "articles_read"
    LEVEL = "level"


DEFAULT_ACHIEVEMENTS: tuple[dict[str, object], ...] = (
    {
        "key": "first_sprout",
        "name": "First Sprout",
        "description": "Publish your first post.",
        "icon": "sprout",
        "category": "community",
        "requirement_type": RequirementType.POSTS_COUNT.value,
        "requirement_value": 1,
    },
    {
        "key": "first_reply",
        "name": "Friendly Neighbour",
        "description": "Leave your first comment.",
        "icon": "speech",
        "category": "community",
        "requirement_type": RequirementType.COMMENTS_COUNT.value,
        "requirement_value": 1,
    },
    {
        "key": "green_thumb",
        "name": "Green Thumb",
        "description": "Publish 10 posts.",
        "icon": "thumb",
        "category": "community",
        "requirement_type": RequirementType.POSTS_COUNT.value,
        "requirement_value": 10,
    },
    {
        "key": "chatterbox",
        "name": "Chatterbox",
        "description": "Leave 25 comments.",
        "icon": "chat",
        "category": "community",
        "requirement_type": RequirementType.COMMENTS_COUNT.value,
        "requirement_value": 25,
    },
    {
        "key": "curious_mind",
        "name": "Curious Mind",
        "description": "Read 5 articles.",
        "icon": "book",
        "category": "learning",
        "requirement_type": RequirementType.ARTICLES_READ.value,
        "requirement_value": 5,
    },
    {
        "key": "botanist",
        "name": "Botanist",
        "description": "Read 25 articles.",
        "icon": "microscope",
        "category": "learning",
        "requirement_type": RequirementType.ARTICLES_READ.value,
        "requirement_value": 25,
    },
    {
        "key": "seedling",
        "name": "Seedling",
        "description": "Earn 100 XP.",
        "icon": "seedling",
        "category": "progress",
        "requirement_type": RequirementType.XP_TOTAL.value,
        "requirement_value": 100,
    },
    {
        "key": "in_bloom",
        "name": "In Bloom",
        "description": "Earn 1000 XP.",
        "icon": "flower",
        "category": "progress",
        "requirement_type": RequirementType.XP_TOTAL.value,
        "requirement_value": 1000,
    },
    {
        "key": "level_five",
        "name": "Deep Roots",
        "description": "Reach level 5.",
        "icon": "tree",
        "category": "progress",
        "requirement_type": RequirementType.LEVEL.value,
        "requirement_value": 5,
    },
)


@dataclass(frozen=True)
class UserStats:
    """Counter values achievements are measured against."""

    total_xp: int = 0
    level: int = 1
    posts: int = 0
    comments: int = 0
    articles: int = 0

    def value_for(self, requirement_type: str) -> int:
        """Return the counter backing ``requirement_type``; unknown types read as 0."""

        values = {
            RequirementType.XP_TOTAL.value: self.total_xp,
            RequirementType.POSTS_COUNT.value: self.posts,
            RequirementType.COMMENTS_COUNT.value: self.comments,
            RequirementType.ARTICLES_READ.value: self.articles,
            RequirementType.LEVEL.value: self.level,
        }
        return values.get(requirement_type, 0)


@dataclass(frozen=True)
class AchievementProgress:
    achievement: Achievement
    current_value: int
    progress: int
    earned_at: datetime | None = None

    @property
    def earned(self) -> bool:
        return self.earned_at is not None


def progress_percent(current_value: int, requirement_value: int) -> int:
    """Return progress toward ``requirement_value`` as a whole percentage capped at 100."""

    if requirement_value <= 0:
        return 100
    return max(0, min(100, round(current_value / requirement_value * 100)))


def seed_default_achievements(session: Session) -> int:
    """Insert any default achievements missing from the catalogue.

    Returns how many rows were added. Existing rows are left untouched.
    """

    existing = set(session.exec(select(Achievement.key)).all())
    added = 0
    for values in DEFAULT_ACHIEVEMENTS:
        if values["key"] in existing:
            continue
        session.add(Achievement(**values))
        added += 1
    if added:
        session.commit()
        logger.info("achievements.seeded", added=added)
    return added


def _count(session: Session, statement) -> int:
    return session.exec(statement).one() or 0


def user_stats(session: Session, user_id: int, total_xp: int) -> UserStats:
    """Gather ``user_id``'s counters. ``total_xp`` comes from the XP ledger."""

    posts = _count(
        session,
        select(func.count())
        .select_from(Post)
        .where(Post.author_id == user_id)
        .where(Post.hidden.is_(False)),
    )
    comments = _count(
        session,
        select(func.count())
        .select_from(Comment)
        .where(Comment.author_id == user_id)
        .where(Comment.hidden.is_(False)),
    )
    articles = _count(
        session,
        select(func.count(func.distinct(XPEvent.reference_id)))
        .where(XPEvent.user_id == user_id)
        .where(XPEvent.action_type == XPActionType.LEARN_READ.value),
    )
    return UserStats(
        total_xp=total_xp,
        level=calculate_level(total_xp, settings.level_formula),
        posts=posts,
        comments=comments,
        articles=articles,
    )


def _earned_map(session: Session, user_id: int) -> dict[int, datetime]:
    rows = session.exec(
        select(UserAchievement.achievement_id, UserAchievement.earned_at).where(
            UserAchievement.user_id == user_id
        )
    ).all()
    return dict(rows)


def _catalogue(session: Session) -> list[Achievement]:
    return list(
        session.exec(
            select(Achievement).order_by(Achievement.requirement_value, Achievement.id)
        ).all()
    )


def achievement_progress(
    session: Session, user_id: int, stats: UserStats
) -> list[AchievementProgress]:
    """Return every achievement with ``user_id``'s earned status and progress."""

    earned = _earned_map(session, user_id)
    rows = []
    for achievement in _catalogue(session):
        current = stats.value_for(achievement.requirement_type)
        rows.append(
            AchievementProgress(
                achievement=achievement,
                current_value=current,
                progress=progress_percent(current, achievement.requirement_value),
                earned_at=earned.get(achievement.id),
            )
        )
    return rows


def group_by_category(rows: Iterable[AchievementProgress]) -> dict[str, list[AchievementProgress]]:
    grouped: dict[str, list[AchievementProgress]] = {}
    for row in rows:
        grouped.setdefault(row.achievement.category or "general", []).append(row)
    return grouped


def check_achievements(session: Session, user_id: int, stats: UserStats) -> list[Achievement]:
    """Unlock every achievement ``stats`` now satisfies and return the new ones."""

    earned = _earned_map(session, user_id)
    unlocked = [
        achievement
        for achievement in _catalogue(session)
        if achievement.id not in earned
        and stats.value_for(achievement.requirement_type) >= achievement.requirement_value
    ]
    if not unlocked:
        return []

    for achievement in unlocked:
        session.add(UserAchievement(user_id=user_id, achievement_id=achievement.id))
    try:
        session.commit()
    except IntegrityError:
        # A concurrent check recorded some of them first; report only what is still new.
        session.rollback()
        logger.info("achievements.check_conflict", user_id=user_id)
        return check_achievements(session, user_id, stats)

    logger.info(
        "achievements.unlocked",
        user_id=user_id,
        keys=[achievement.key for achievement in unlocked],
    )
    return unlocked


__all__ = [
    "AchievementProgress",
    "DEFAULT_ACHIEVEMENTS",
    "RequirementType",
    "UserStats",
    "achievement_progress",
    "check_achievements",
    "group_by_category",
    "progress_percent",
    "seed_default_achievements",
    "user_stats",
]
