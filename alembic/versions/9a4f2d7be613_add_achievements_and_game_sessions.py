"""add achievements and game sessions

Revision ID: 9a4f2d7be613
Revises: 5c1e8a93d0f2
Create Date: 2026-10-19 14:41:27.503118

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

from app.core.achievements import DEFAULT_ACHIEVEMENTS


# revision identifiers, used by Alembic.
revision: str = '9a4f2d7be613'
down_revision: Union[str, Sequence[str], None] = '5c1e8a93d0f2'
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None
game_session_status_enum = sa.Enum(
    "active", "completed", name="gamesessionstatus", native_enum=False
)


def upgrade() -> None:
    """Upgrade schema."""

    achievement = op.create_table(
        "achievement",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("key", sa.String(length=50), nullable=False),
        sa.Column("name", sa.String(length=100), nullable=False),
        sa.Column("description", sa.String(length=500), nullable=False),
        sa.Column("icon", sa.String(length=50), nullable=False, server_default="leaf"),
        sa.Column("category", sa.String(length=50), nullable=False, server_default="general"),
        sa.Column("requirement_type", sa.String(length=50), nullable=False),
        sa.Column("requirement_value", sa.Integer(), nullable=False),
    )
    op.create_index("ix_achievement_key", "achievement", ["key"], unique=True)

    op.create_table(
        "userachievement",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("user_id", sa.Integer(), nullable=False),
        sa.Column("achievement_id", sa.Integer(), nullable=False),
        sa.Column(
            "earned_at", sa.DateTime(), nullable=False, server_default=sa.func.now()
        ),
        sa.ForeignKeyConstraint(["user_id"], ["user.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["achievement_id"], ["achievement.id"], ondelete="CASCADE"),
        sa.UniqueConstraint(
            "user_id", "achievement_id", name="uq_userachievement_user_achievement"
        ),
    )
    op.create_index(
        "ix_userachievement_user_id", "userachievement", ["user_id"], unique=False
    )

    op.create_table(
        "gamesession",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("user_id", sa.Integer(), nullable=False),
        sa.Column(
            "status", game_session_status_enum, nullable=False, server_default="active"
        ),
        sa.Column(
            "started_at", sa.DateTime(), nullable=False, server_default=sa.func.now()
        ),
        sa.Column("ended_at", sa.DateTime(), nullable=True),
        sa.Column("duration_minutes", sa.Integer(), nullable=True),
        sa.Column("xp_earned", sa.Integer(), nullable=False, server_default="0"),
        sa.ForeignKeyConstraint(["user_id"], ["user.id"], ondelete="CASCADE"),
    )
    op.create_index("ix_gamesession_user_id", "gamesession", ["user_id"], unique=False)
    op.create_index("ix_gamesession_status", "gamesession", ["status"], unique=False)

    op.bulk_insert(achievement, [dict(values) for values in DEFAULT_ACHIEVEMENTS])


def downgrade() -> None:
    """Downgrade schema."""

    op.drop_index("ix_gamesession_status", table_name="gamesession")
    op.drop_index("ix_gamesession_user_id", table_name="gamesession")
    op.drop_table("gamesession")
    op.drop_index("ix_userachievement_user_id", table_name="userachievement")
    op.drop_table("userachievement")
    op.drop_index("ix_achievement_key", table_name="achievement")
    op.drop_table("achievement")
