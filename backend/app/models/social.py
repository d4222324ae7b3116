from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from typing import Union

from sqlalchemy import (
    JSON,
    Boolean,
    CheckConstraint,
    Date,
    Enum as SAEnum,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.models.base import Base, Timestamp, utcnow
from app.models.enums import (
    AgeGroup,
    FriendshipStatus,
    Gender,
    MessageType,
    NotificationType,
)


def _enum(enum_cls, name: str) -> SAEnum:
    return SAEnum(
        enum_cls,
        name=name,
        values_callable=lambda members: [member.value for member in members],
    )


class User(Base):
    """Application user."""

    __tablename__ = "users"

    id: Mapped[int] = mapped_column(primary_key=True)
    login: Mapped[str] = mapped_column(String(64), unique=True, nullable=False)
    hashed_password: Mapped[str] = mapped_column(String(255), nullable=False)
    user_name: Mapped[str | None] = mapped_column(String(64), unique=True)
    name: Mapped[str] = mapped_column(String(128), default="", nullable=False)
    profile_picture: Mapped[str] = mapped_column(String(512), default="", nullable=False)
    gender: Mapped[Gender] = mapped_column(
        _enum(Gender, "gender"), default=Gender.OTHER, nullable=False
    )
    birth_date: Mapped[date | None] = mapped_column(Date)
    country: Mapped[str] = mapped_column(String(8), default="", nullable=False)
    is_premium: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    created_at: Mapped[datetime] = mapped_column(Timestamp, default=utcnow, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        Timestamp, default=utcnow, onupdate=utcnow, nullable=False
    )

    profile: Mapped["Profile | None"] = relationship(back_populates="user", uselist=False)
    settings: Mapped["UserSettings | None"] = relationship(back_populates="user", uselist=False)


class Profile(Base):
    """Free-form profile details shown on the profile screen."""

    __tablename__ = "profiles"

    id: Mapped[int] = mapped_column(primary_key=True)
    user_id: Mapped[int] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"), unique=True, nullable=False
    )
    about_me: Mapped[str] = mapped_column(Text, default="", nullable=False)
    spoken_languages: Mapped[list[str]] = mapped_column(JSON, default=list, nullable=False)
    learning_languages: Mapped[list[str]] = mapped_column(JSON, default=list, nullable=False)
    hobbies: Mapped[list[str]] = mapped_column(JSON, default=list, nullable=False)

    user: Mapped[User] = relationship(back_populates="profile")


class UserSettings(Base):
    """Privacy settings consulted by the privacy gate."""

    __tablename__ = "user_settings"

    id: Mapped[int] = mapped_column(primary_key=True)
    user_id: Mapped[int] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"), unique=True, nullable=False
    )
    gender_preference: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    age_group: Mapped[AgeGroup] = mapped_column(_enum(AgeGroup, "age_group"), nullable=False)
    last_active_at: Mapped[datetime] = mapped_column(Timestamp, default=utcnow, nullable=False)

    user: Mapped[User] = relationship(back_populates="settings")


class BlockedUser(Base):
    """One-directional block record."""

    __tablename__ = "blocked_users"
    __table_args__ = (
        UniqueConstraint("blocker_id", "blocked_id", name="uq_blocked_pair"),
        Index("ix_blocked_blocked", "blocked_id"),
    )

    id: Mapped[int] = mapped_column(primary_key=True)
    blocker_id: Mapped[int] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    blocked_id: Mapped[int] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    created_at: Mapped[datetime] = mapped_column(Timestamp, default=utcnow, nullable=False)


class Friendship(Base):
    """Undirected friendship stored once per canonically ordered pair."""

    __tablename__ = "friendships"
    __table_args__ = (
        UniqueConstraint("user_a_id", "user_b_id", name="uq_friendship_pair"),
        CheckConstraint("user_a_id < user_b_id", name="ck_friendship_canonical_pair"),
        Index("ix_friendships_user_a_status", "user_a_id", "status", "created_at"),
        Index("ix_friendships_user_b_status", "user_b_id", "status", "created_at"),
    )

    id: Mapped[int] = mapped_column(primary_key=True)
    user_a_id: Mapped[int] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    user_b_id: Mapped[int] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    sender_id: Mapped[int] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    status: Mapped[FriendshipStatus] = mapped_column(
        _enum(FriendshipStatus, "friendship_status"),
        default=FriendshipStatus.PENDING,
        nullable=False,
    )
    created_at: Mapped[datetime] = mapped_column(Timestamp, default=utcnow, nullable=False)

    def other_user_id(self, user_id: int) -> int:
        return self.user_b_id if self.user_a_id == user_id else self.user_a_id

    def involves(self, user_id: int) -> bool:
        return user_id in (self.user_a_id, self.user_b_id)


class Letter(Base):
    """Slow-mail letter exchanged between two users."""

    __tablename__ = "letters"
    __table_args__ = (Index("ix_letters_sender_recipient", "sender_id", "recipient_id"),)

    id: Mapped[int] = mapped_column(primary_key=True)
    sender_id: Mapped[int] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    recipient_id: Mapped[int] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    content: Mapped[str] = mapped_column(Text, nullable=False)
    created_at: Mapped[datetime] = mapped_column(Timestamp, default=utcnow, nullable=False)


@dataclass(frozen=True, slots=True)
class DirectThread:
    """A 1:1 conversation identified by its shared conversation id."""

    conversation_id: str


@dataclass(frozen=True, slots=True)
class GroupThread:
    """A group chat."""

    group_id: int


Thread = Union[DirectThread, GroupThread]


class Conversation(Base):
    """Per-participant view of a 1:1 conversation.

    Every conversation is stored as two rows sharing ``conversation_id``; each
    row is owned by one participant and carries that participant's unread flag.
    """

    __tablename__ = "conversations"
    __table_args__ = (
        UniqueConstraint("user_id", "other_user_id", name="uq_conversation_owner_pair"),
        Index("ix_conversations_user_last_message", "user_id", "last_message_time"),
        Index("ix_conversations_conversation_id", "conversation_id"),
    )

    id: Mapped[int] = mapped_column(primary_key=True)
    conversation_id: Mapped[str] = mapped_column(String(64), nullable=False)
    user_id: Mapped[int] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    other_user_id: Mapped[int] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    last_message_id: Mapped[int | None] = mapped_column(
        ForeignKey("messages.id", ondelete="SET NULL")
    )
    last_message_time: Mapped[datetime] = mapped_column(Timestamp, default=utcnow, nullable=False)
    has_unread_messages: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    created_at: Mapped[datetime] = mapped_column(Timestamp, default=utcnow, nullable=False)


class Group(Base):
    """Shared group chat."""

    __tablename__ = "groups"
    __table_args__ = (Index("ix_groups_creator", "creator_id"),)

    id: Mapped[int] = mapped_column(primary_key=True)
    title: Mapped[str] = mapped_column(String(128), nullable=False)
    description: Mapped[str] = mapped_column(Text, default="", nullable=False)
    banner: Mapped[str | None] = mapped_column(String(512))
    members_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    creator_id: Mapped[int] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    created_at: Mapped[datetime] = mapped_column(Timestamp, default=utcnow, nullable=False)


class GroupMember(Base):
    """Membership row for a group chat."""

    __tablename__ = "group_members"
    __table_args__ = (
        UniqueConstraint("group_id", "user_id", name="uq_group_member"),
        Index("ix_group_members_user", "user_id"),
    )

    id: Mapped[int] = mapped_column(primary_key=True)
    group_id: Mapped[int] = mapped_column(
        ForeignKey("groups.id", ondelete="CASCADE"), nullable=False
    )
    user_id: Mapped[int] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    last_read_at: Mapped[datetime | None] = mapped_column(Timestamp)
    joined_at: Mapped[datetime] = mapped_column(Timestamp, default=utcnow, nullable=False)


class Message(Base):
    """Chat message in either a 1:1 conversation or a group."""

    __tablename__ = "messages"
    __table_args__ = (
        CheckConstraint(
            "(conversation_id IS NULL) <> (group_id IS NULL)",
            name="ck_messages_single_thread",
        ),
        Index("ix_messages_conversation_created_at", "conversation_id", "created_at"),
        Index("ix_messages_group_created_at", "group_id", "created_at"),
    )

    id: Mapped[int] = mapped_column(primary_key=True)
    conversation_id: Mapped[str | None] = mapped_column(String(64))
    group_id: Mapped[int | None] = mapped_column(ForeignKey("groups.id", ondelete="CASCADE"))
    sender_id: Mapped[int] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    type: Mapped[MessageType] = mapped_column(_enum(MessageType, "message_type"), nullable=False)
    content: Mapped[str | None] = mapped_column(Text)
    attachment: Mapped[str | None] = mapped_column(String(1024))
    reply_parent_id: Mapped[int | None] = mapped_column(
        ForeignKey("messages.id", ondelete="SET NULL")
    )
    correction: Mapped[str | None] = mapped_column(Text)
    created_at: Mapped[datetime] = mapped_column(Timestamp, default=utcnow, nullable=False)

    sender: Mapped[User] = relationship(foreign_keys=[sender_id])

    @property
    def thread(self) -> Thread:
        if self.group_id is not None:
            return GroupThread(self.group_id)
        return DirectThread(self.conversation_id or "")

    @thread.setter
    def thread(self, value: Thread) -> None:
        if isinstance(value, GroupThread):
            self.group_id = value.group_id
            self.conversation_id = None
        else:
            self.conversation_id = value.conversation_id
            self.group_id = None


class Collection(Base):
    """Named collection of a user's posts."""

    __tablename__ = "collections"

    id: Mapped[int] = mapped_column(primary_key=True)
    user_id: Mapped[int] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    title: Mapped[str] = mapped_column(String(128), nullable=False)
    posts_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    created_at: Mapped[datetime] = mapped_column(Timestamp, default=utcnow, nullable=False)


class Post(Base):
    """Feed post with denormalized interaction counters."""

    __tablename__ = "posts"
    __table_args__ = (
        Index("ix_posts_user_pinned_created_at", "user_id", "is_pinned", "created_at"),
        Index("ix_posts_created_at", "created_at"),
        Index("ix_posts_collection", "collection_id"),
    )

    id: Mapped[int] = mapped_column(primary_key=True)
    user_id: Mapped[int] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    collection_id: Mapped[int | None] = mapped_column(
        ForeignKey("collections.id", ondelete="SET NULL")
    )
    content: Mapped[str] = mapped_column(Text, nullable=False)
    attachments: Mapped[list[dict] | None] = mapped_column(JSON(none_as_null=True))
    reactions_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    comments_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    is_pinned: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    created_at: Mapped[datetime] = mapped_column(Timestamp, default=utcnow, nullable=False)

    author: Mapped[User] = relationship(foreign_keys=[user_id])


class Comment(Base):
    """Comment on a post, optionally replying to another comment."""

    __tablename__ = "comments"
    __table_args__ = (
        Index("ix_comments_post_parent_created_at", "post_id", "reply_parent_id", "created_at"),
        Index("ix_comments_reply_parent", "reply_parent_id"),
    )

    id: Mapped[int] = mapped_column(primary_key=True)
    user_id: Mapped[int] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    post_id: Mapped[int] = mapped_column(
        ForeignKey("posts.id", ondelete="CASCADE"), nullable=False
    )
    reply_parent_id: Mapped[int | None] = mapped_column(
        ForeignKey("comments.id", ondelete="CASCADE")
    )
    content: Mapped[str] = mapped_column(Text, nullable=False)
    attachment: Mapped[str | None] = mapped_column(String(1024))
    replies_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    created_at: Mapped[datetime] = mapped_column(Timestamp, default=utcnow, nullable=False)

    author: Mapped[User] = relationship(foreign_keys=[user_id])


class Reaction(Base):
    """Single emoji reaction of a user on a post."""

    __tablename__ = "reactions"
    __table_args__ = (
        UniqueConstraint("user_id", "post_id", name="uq_reaction_user_post"),
        Index("ix_reactions_post_created_at", "post_id", "created_at"),
    )

    id: Mapped[int] = mapped_column(primary_key=True)
    user_id: Mapped[int] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    post_id: Mapped[int] = mapped_column(
        ForeignKey("posts.id", ondelete="CASCADE"), nullable=False
    )
    emoji: Mapped[str] = mapped_column(String(32), nullable=False)
    created_at: Mapped[datetime] = mapped_column(Timestamp, default=utcnow, nullable=False)

    user: Mapped[User] = relationship(foreign_keys=[user_id])


class Notification(Base):
    """Append-only notification addressed to a single user."""

    __tablename__ = "notifications"
    __table_args__ = (
        Index("ix_notifications_recipient_created_at", "recipient_id", "created_at"),
        Index("ix_notifications_recipient_unread", "recipient_id", "has_unread"),
    )

    id: Mapped[int] = mapped_column(primary_key=True)
    recipient_id: Mapped[int] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    sender_id: Mapped[int] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    type: Mapped[NotificationType] = mapped_column(
        _enum(NotificationType, "notification_type"), nullable=False
    )
    has_unread: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    created_at: Mapped[datetime] = mapped_column(Timestamp, default=utcnow, nullable=False)

    sender: Mapped[User] = relationship(foreign_keys=[sender_id])
