"""create social tables

Revision ID: 20261019_01
Revises:
Create Date: 2026-10-19 00:00:00.000000
"""

from __future__ import annotations

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import mysql


# revision identifiers, used by Alembic.
revision = "20261019_01"
down_revision = None
branch_labels = None
depends_on = None


TIMESTAMP = sa.DateTime(timezone=True).with_variant(mysql.DATETIME(fsp=6), "mysql")

GENDER = sa.Enum("male", "female", "other", name="gender")
AGE_GROUP = sa.Enum("13-17", "18-100", name="age_group")
FRIENDSHIP_STATUS = sa.Enum("pending", "accepted", name="friendship_status")
MESSAGE_TYPE = sa.Enum("text", "image", "gif", name="message_type")
NOTIFICATION_TYPE = sa.Enum(
    "friend_request_sent",
    "friend_request_accepted",
    "friend_request_rejected",
    "friend_removed",
    "conversation_deleted",
    "user_blocked",
    "post_reaction",
    "post_commented",
    "comment_replied",
    name="notification_type",
)


def _user_fk(column: str) -> sa.Column:
    return sa.Column(
        column,
        sa.Integer(),
        sa.ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
    )


def _created_at(name: str = "created_at") -> sa.Column:
    return sa.Column(name, TIMESTAMP, nullable=False)


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("id", sa.Integer(), primary_key=True, nullable=False),
        sa.Column("login", sa.String(length=64), nullable=False, unique=True),
        sa.Column("hashed_password", sa.String(length=255), nullable=False),
        sa.Column("user_name", sa.String(length=64), nullable=True, unique=True),
        sa.Column("name", sa.String(length=128), nullable=False, server_default=""),
        sa.Column("profile_picture", sa.String(length=512), nullable=False, server_default=""),
        sa.Column("gender", GENDER, nullable=False, server_default="other"),
        sa.Column("birth_date", sa.Date(), nullable=True),
        sa.Column("country", sa.String(length=8), nullable=False, server_default=""),
        sa.Column("is_premium", sa.Boolean(), nullable=False, server_default=sa.false()),
        _created_at(),
        _created_at("updated_at"),
        mysql_charset="utf8mb4",
    )

    op.create_table(
        "profiles",
        sa.Column("id", sa.Integer(), primary_key=True, nullable=False),
        sa.Column(
            "user_id",
            sa.Integer(),
            sa.ForeignKey("users.id", ondelete="CASCADE"),
            nullable=False,
            unique=True,
        ),
        sa.Column("about_me", sa.Text(), nullable=False),
        sa.Column("spoken_languages", sa.JSON(), nullable=False),
        sa.Column("learning_languages", sa.JSON(), nullable=False),
        sa.Column("hobbies", sa.JSON(), nullable=False),
        mysql_charset="utf8mb4",
    )

    op.create_table(
        "user_settings",
        sa.Column("id", sa.Integer(), primary_key=True, nullable=False),
        sa.Column(
            "user_id",
            sa.Integer(),
            sa.ForeignKey("users.id", ondelete="CASCADE"),
            nullable=False,
            unique=True,
        ),
        sa.Column("gender_preference", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("age_group", AGE_GROUP, nullable=False),
        _created_at("last_active_at"),
        mysql_charset="utf8mb4",
    )

    op.create_table(
        "blocked_users",
        sa.Column("id", sa.Integer(), primary_key=True, nullable=False),
        _user_fk("blocker_id"),
        _user_fk("blocked_id"),
        _created_at(),
        sa.UniqueConstraint("blocker_id", "blocked_id", name="uq_blocked_pair"),
        mysql_charset="utf8mb4",
    )
    op.create_index("ix_blocked_blocked", "blocked_users", ["blocked_id"])

    op.create_table(
        "friendships",
        sa.Column("id", sa.Integer(), primary_key=True, nullable=False),
        _user_fk("user_a_id"),
        _user_fk("user_b_id"),
        _user_fk("sender_id"),
        sa.Column("status", FRIENDSHIP_STATUS, nullable=False, server_default="pending"),
        _created_at(),
        sa.UniqueConstraint("user_a_id", "user_b_id", name="uq_friendship_pair"),
        sa.CheckConstraint("user_a_id < user_b_id", name="ck_friendship_canonical_pair"),
        mysql_charset="utf8mb4",
    )
    op.create_index(
        "ix_friendships_user_a_status", "friendships", ["user_a_id", "status", "created_at"]
    )
    op.create_index(
        "ix_friendships_user_b_status", "friendships", ["user_b_id", "status", "created_at"]
    )

    op.create_table(
        "letters",
        sa.Column("id", sa.Integer(), primary_key=True, nullable=False),
        _user_fk("sender_id"),
        _user_fk("recipient_id"),
        sa.Column("content", sa.Text(), nullable=False),
        _created_at(),
        mysql_charset="utf8mb4",
    )
    op.create_index("ix_letters_sender_recipient", "letters", ["sender_id", "recipient_id"])

    op.create_table(
        "groups",
        sa.Column("id", sa.Integer(), primary_key=True, nullable=False),
        sa.Column("title", sa.String(length=128), nullable=False),
        sa.Column("description", sa.Text(), nullable=False),
        sa.Column("banner", sa.String(length=512), nullable=True),
        sa.Column("members_count", sa.Integer(), nullable=False, server_default="0"),
        _user_fk("creator_id"),
        _created_at(),
        mysql_charset="utf8mb4",
    )
    op.create_index("ix_groups_creator", "groups", ["creator_id"])

    op.create_table(
        "group_members",
        sa.Column("id", sa.Integer(), primary_key=True, nullable=False),
        sa.Column(
            "group_id",
            sa.Integer(),
            sa.ForeignKey("groups.id", ondelete="CASCADE"),
            nullable=False,
        ),
        _user_fk("user_id"),
        sa.Column("last_read_at", TIMESTAMP, nullable=True),
        _created_at("joined_at"),
        sa.UniqueConstraint("group_id", "user_id", name="uq_group_member"),
        mysql_charset="utf8mb4",
    )
    op.create_index("ix_group_members_user", "group_members", ["user_id"])

    op.create_table(
        "messages",
        sa.Column("id", sa.Integer(), primary_key=True, nullable=False),
        sa.Column("conversation_id", sa.String(length=64), nullable=True),
        sa.Column(
            "group_id",
            sa.Integer(),
            sa.ForeignKey("groups.id", ondelete="CASCADE"),
            nullable=True,
        ),
        _user_fk("sender_id"),
        sa.Column("type", MESSAGE_TYPE, nullable=False),
        sa.Column("content", sa.Text(), nullable=True),
        sa.Column("attachment", sa.String(length=1024), nullable=True),
        sa.Column(
            "reply_parent_id",
            sa.Integer(),
            sa.ForeignKey("messages.id", ondelete="SET NULL"),
            nullable=True,
        ),
        sa.Column("correction", sa.Text(), nullable=True),
        _created_at(),
        sa.CheckConstraint(
            "(conversation_id IS NULL) <> (group_id IS NULL)",
            name="ck_messages_single_thread",
        ),
        mysql_charset="utf8mb4",
    )
    op.create_index(
        "ix_messages_conversation_created_at", "messages", ["conversation_id", "created_at"]
    )
    op.create_index("ix_messages_group_created_at", "messages", ["group_id", "created_at"])

    op.create_table(
        "conversations",
        sa.Column("id", sa.Integer(), primary_key=True, nullable=False),
        sa.Column("conversation_id", sa.String(length=64), nullable=False),
        _user_fk("user_id"),
        _user_fk("other_user_id"),
        sa.Column(
            "last_message_id",
            sa.Integer(),
            sa.ForeignKey("messages.id", ondelete="SET NULL"),
            nullable=True,
        ),
        _created_at("last_message_time"),
        sa.Column("has_unread_messages", sa.Boolean(), nullable=False, server_default=sa.false()),
        _created_at(),
        sa.UniqueConstraint("user_id", "other_user_id", name="uq_conversation_owner_pair"),
        mysql_charset="utf8mb4",
    )
    op.create_index(
        "ix_conversations_user_last_message", "conversations", ["user_id", "last_message_time"]
    )
    op.create_index("ix_conversations_conversation_id", "conversations", ["conversation_id"])

    op.create_table(
        "collections",
        sa.Column("id", sa.Integer(), primary_key=True, nullable=False),
        _user_fk("user_id"),
        sa.Column("title", sa.String(length=128), nullable=False),
        sa.Column("posts_count", sa.Integer(), nullable=False, server_default="0"),
        _created_at(),
        mysql_charset="utf8mb4",
    )
    op.create_index("ix_collections_user_id", "collections", ["user_id"])

    op.create_table(
        "posts",
        sa.Column("id", sa.Integer(), primary_key=True, nullable=False),
        _user_fk("user_id"),
        sa.Column(
            "collection_id",
            sa.Integer(),
            sa.ForeignKey("collections.id", ondelete="SET NULL"),
            nullable=True,
        ),
        sa.Column("content", sa.Text(), nullable=False),
        sa.Column("attachments", sa.JSON(), nullable=True),
        sa.Column("reactions_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("comments_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("is_pinned", sa.Boolean(), nullable=False, server_default=sa.false()),
        _created_at(),
        mysql_charset="utf8mb4",
    )
    op.create_index(
        "ix_posts_user_pinned_created_at", "posts", ["user_id", "is_pinned", "created_at"]
    )
    op.create_index("ix_posts_created_at", "posts", ["created_at"])
    op.create_index("ix_posts_collection", "posts", ["collection_id"])

    op.create_table(
        "comments",
        sa.Column("id", sa.Integer(), primary_key=True, nullable=False),
        _user_fk("user_id"),
        sa.Column(
            "post_id",
            sa.Integer(),
            sa.ForeignKey("posts.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column(
            "reply_parent_id",
            sa.Integer(),
            sa.ForeignKey("comments.id", ondelete="CASCADE"),
            nullable=True,
        ),
        sa.Column("content", sa.Text(), nullable=False),
        sa.Column("attachment", sa.String(length=1024), nullable=True),
        sa.Column("replies_count", sa.Integer(), nullable=False, server_default="0"),
        _created_at(),
        mysql_charset="utf8mb4",
    )
    op.create_index(
        "ix_comments_post_parent_created_at",
        "comments",
        ["post_id", "reply_parent_id", "created_at"],
    )
    op.create_index("ix_comments_reply_parent", "comments", ["reply_parent_id"])

    op.create_table(
        "reactions",
        sa.Column("id", sa.Integer(), primary_key=True, nullable=False),
        _user_fk("user_id"),
        sa.Column(
            "post_id",
            sa.Integer(),
            sa.ForeignKey("posts.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("emoji", sa.String(length=32), nullable=False),
        _created_at(),
        sa.UniqueConstraint("user_id", "post_id", name="uq_reaction_user_post"),
        mysql_charset="utf8mb4",
    )
    op.create_index("ix_reactions_post_created_at", "reactions", ["post_id", "created_at"])

    op.create_table(
        "notifications",
        sa.Column("id", sa.Integer(), primary_key=True, nullable=False),
        _user_fk("recipient_id"),
        _user_fk("sender_id"),
        sa.Column("type", NOTIFICATION_TYPE, nullable=False),
        sa.Column("has_unread", sa.Boolean(), nullable=False, server_default=sa.true()),
        _created_at(),
        mysql_charset="utf8mb4",
    )
    op.create_index(
        "ix_notifications_recipient_created_at", "notifications", ["recipient_id", "created_at"]
    )
    op.create_index(
        "ix_notifications_recipient_unread", "notifications", ["recipient_id", "has_unread"]
    )


def downgrade() -> None:
    op.drop_table("notifications")
    op.drop_table("reactions")
    op.drop_table("comments")
    op.drop_table("posts")
    op.drop_table("collections")
    op.drop_table("conversations")
    op.drop_table("messages")
    op.drop_table("group_members")
    op.drop_table("groups")
    op.drop_table("letters")
    op.drop_table("friendships")
    op.drop_table("blocked_users")
    op.drop_table("user_settings")
    op.drop_table("profiles")
    op.drop_table("users")

    bind = op.get_bind()
    for enum in (NOTIFICATION_TYPE, MESSAGE_TYPE, FRIENDSHIP_STATUS, AGE_GROUP, GENDER):
        enum.drop(bind, checkfirst=True)
