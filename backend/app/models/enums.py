from __future__ import annotations

from enum import Enum


class Gender(str, Enum):
    """Gender declared on the user profile."""

    MALE = "male"
    FEMALE = "female"
    OTHER = "other"


class AgeGroup(str, Enum):
    """Age buckets used by the privacy gate."""

    TEEN = "13-17"
    ADULT = "18-100"


class FriendshipStatus(str, Enum):
    """Lifecycle states for friend relationships."""

    PENDING = "pending"
    ACCEPTED = "accepted"


class MessageType(str, Enum):
    """Kinds of chat messages."""

    TEXT = "text"
    IMAGE = "image"
    GIF = "gif"


class AttachmentType(str, Enum):
    """Kinds of post attachments."""

    IMAGE = "image"
    GIF = "gif"


class NotificationType(str, Enum):
    """Social actions that produce a notification."""

    FRIEND_REQUEST_SENT = "friend_request_sent"
    FRIEND_REQUEST_ACCEPTED = "friend_request_accepted"
    FRIEND_REQUEST_REJECTED = "friend_request_rejected"
    FRIEND_REMOVED = "friend_removed"
    CONVERSATION_DELETED = "conversation_deleted"
    USER_BLOCKED = "user_blocked"
    POST_REACTION = "post_reaction"
    POST_COMMENTED = "post_commented"
    COMMENT_REPLIED = "comment_replied"
