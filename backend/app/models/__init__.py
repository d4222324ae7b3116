"""Database models package."""

from .base import Base
from .enums import AgeGroup, AttachmentType, FriendshipStatus, Gender, MessageType, NotificationType
from .social import (
    BlockedUser,
    Collection,
    Comment,
    Conversation,
    DirectThread,
    Friendship,
    Group,
    GroupMember,
    GroupThread,
    Letter,
    Message,
    Notification,
    Post,
    Profile,
    Reaction,
    Thread,
    User,
    UserSettings,
)

__all__ = [
    "Base",
    "User",
    "Profile",
    "UserSettings",
    "BlockedUser",
    "Friendship",
    "Letter",
    "Conversation",
    "Group",
    "GroupMember",
    "Message",
    "DirectThread",
    "GroupThread",
    "Thread",
    "Collection",
    "Post",
    "Comment",
    "Reaction",
    "Notification",
    "AgeGroup",
    "AttachmentType",
    "FriendshipStatus",
    "Gender",
    "MessageType",
    "NotificationType",
]
