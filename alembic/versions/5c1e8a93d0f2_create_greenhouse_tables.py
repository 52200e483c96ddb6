"""create greenhouse tables

Revision ID: 5c1e8a93d0f2
Revises:
Create Date: 2026-10-19 09:12:04.118203

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '5c1e8a93d0f2'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None
user_role_enum = sa.Enum("admin", "user", name="userrole", native_enum=False)


def upgrade() -> None:
    """Upgrade schema."""

    op.create_table(
        "user",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("username", sa.String(length=50), nullable=False),
        sa.Column("display_name", sa.String(length=200), nullable=False),
        sa.Column("role", user_role_enum, nullable=False, server_default="user"),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.text("1")),
        sa.Column(
            "created_at", sa.DateTime(), nullable=False, server_default=sa.func.now()
        ),
        sa.Column(
            "updated_at", sa.DateTime(), nullable=False, server_default=sa.func.now()
        ),
    )
    op.create_index("ix_user_username", "user", ["username"], unique=True)

    op.create_table(
        "xpevent",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("user_id", sa.Integer(), nullable=False),
        sa.Column("action_type", sa.String(length=50), nullable=False),
        sa.Column("amount", sa.Integer(), nullable=False),
        sa.Column("reference_id", sa.String(length=100), nullable=True),
        sa.Column("description", sa.String(length=500), nullable=True),
        sa.Column(
            "created_at", sa.DateTime(), nullable=False, server_default=sa.func.now()
        ),
        sa.ForeignKeyConstraint(["user_id"], ["user.id"], ondelete="CASCADE"),
    )
    op.create_index("ix_xpevent_user_id", "xpevent", ["user_id"], unique=False)
    op.create_index("ix_xpevent_created_at", "xpevent", ["created_at"], unique=False)

    op.create_table(
        "xpbalance",
        sa.Column("user_id", sa.Integer(), primary_key=True),
        sa.Column("total_xp", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("version", sa.Integer(), nullable=False, server_default="1"),
        sa.Column(
            "updated_at", sa.DateTime(), nullable=False, server_default=sa.func.now()
        ),
        sa.ForeignKeyConstraint(["user_id"], ["user.id"], ondelete="CASCADE"),
    )

    op.create_table(
        "pot",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("code", sa.String(length=20), nullable=False),
        sa.Column("name", sa.String(length=200), nullable=True),
        sa.Column(
            "created_at", sa.DateTime(), nullable=False, server_default=sa.func.now()
        ),
    )
    op.create_index("ix_pot_code", "pot", ["code"], unique=True)

    op.create_table(
        "potclaim",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("pot_id", sa.Integer(), nullable=False),
        sa.Column("user_id", sa.Integer(), nullable=False),
        sa.Column(
            "claimed_at", sa.DateTime(), nullable=False, server_default=sa.func.now()
        ),
        sa.ForeignKeyConstraint(["pot_id"], ["pot.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["user_id"], ["user.id"], ondelete="CASCADE"),
        sa.UniqueConstraint("pot_id"),
    )
    op.create_index("ix_potclaim_user_id", "potclaim", ["user_id"], unique=False)

    op.create_table(
        "post",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("author_id", sa.Integer(), nullable=False),
        sa.Column("group_slug", sa.String(length=50), nullable=False),
        sa.Column("content", sa.String(length=5000), nullable=False),
        sa.Column("image_url", sa.String(length=500), nullable=True),
        sa.Column("hidden", sa.Boolean(), nullable=False, server_default=sa.text("0")),
        sa.Column(
            "created_at", sa.DateTime(), nullable=False, server_default=sa.func.now()
        ),
        sa.ForeignKeyConstraint(["author_id"], ["user.id"], ondelete="CASCADE"),
    )
    op.create_index("ix_post_author_id", "post", ["author_id"], unique=False)
    op.create_index("ix_post_group_slug", "post", ["group_slug"], unique=False)

    op.create_table(
        "comment",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("post_id", sa.Integer(), nullable=False),
        sa.Column("author_id", sa.Integer(), nullable=False),
        sa.Column("content", sa.String(length=2000), nullable=False),
        sa.Column("hidden", sa.Boolean(), nullable=False, server_default=sa.text("0")),
        sa.Column(
            "created_at", sa.DateTime(), nullable=False, server_default=sa.func.now()
        ),
        sa.ForeignKeyConstraint(["post_id"], ["post.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["author_id"], ["user.id"], ondelete="CASCADE"),
    )
    op.create_index("ix_comment_post_id", "comment", ["post_id"], unique=False)

    op.create_table(
        "postlike",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("post_id", sa.Integer(), nullable=False),
        sa.Column("user_id", sa.Integer(), nullable=False),
        sa.Column(
            "created_at", sa.DateTime(), nullable=False, server_default=sa.func.now()
        ),
        sa.ForeignKeyConstraint(["post_id"], ["post.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["user_id"], ["user.id"], ondelete="CASCADE"),
        sa.UniqueConstraint("post_id", "user_id", name="uq_postlike_post_user"),
    )
    op.create_index("ix_postlike_post_id", "postlike", ["post_id"], unique=False)

    op.create_table(
        "activitylog",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column(
            "timestamp", sa.DateTime(), nullable=False, server_default=sa.func.now()
        ),
        sa.Column("user_id", sa.Integer(), nullable=True),
        sa.Column("action", sa.String(length=200), nullable=False),
        sa.Column("entity_type", sa.String(length=100), nullable=False),
        sa.Column("entity_id", sa.String(length=100), nullable=False),
        sa.Column("metadata", sa.JSON(), nullable=True),
        sa.ForeignKeyConstraint(["user_id"], ["user.id"], ondelete="SET NULL"),
    )
    op.create_index("ix_activitylog_action", "activitylog", ["action"], unique=False)
    op.create_index(
        "ix_activitylog_entity", "activitylog", ["entity_type", "entity_id"], unique=False
    )


def downgrade() -> None:
    """Downgrade schema."""

    op.drop_index("ix_activitylog_entity", table_name="activitylog")
    op.drop_index("ix_activitylog_action", table_name="activitylog")
    op.drop_table("activitylog")
    op.drop_index("ix_postlike_post_id", table_name="postlike")
    op.drop_table("postlike")
    op.drop_index("ix_comment_post_id", table_name="comment")
    op.drop_table("comment")
    op.drop_index("ix_post_group_slug", table_name="post")
    op.drop_index("ix_post_author_id", table_name="post")
    op.drop_table("post")
    op.drop_index("ix_potclaim_user_id", table_name="potclaim")
    op.drop_table("potclaim")
    op.drop_index("ix_pot_code", table_name="pot")
    op.drop_table("pot")
    op.drop_table("xpbalance")
    op.drop_index("ix_xpevent_created_at", table_name="xpevent")
    op.drop_index("ix_xpevent_user_id", table_name="xpevent")
    op.drop_table("xpevent")
    op.drop_index("ix_user_username", table_name="user")
    op.drop_table("user")
