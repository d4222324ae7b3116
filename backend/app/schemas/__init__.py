"""Pydantic schemas for API payloads."""

from .auth import LoginRequest, Token, UserCreate, UserRead
from .common import PageRead, SuccessResponse, UserSummary
from .friendships import FriendEntry, FriendRequestCreate, FriendshipRead
from .messages import (
    ConversationCreate,
    ConversationCreated,
    ConversationInfo,
    ConversationItem,
    GroupCreate,
    GroupCreated,
    GroupInfo,
    GroupListItem,
    GroupMemberRead,
    MessageCorrection,
    MessageCreate,
    MessageCreated,
    MessageRead,
    UnreadState,
)
from .notifications import NotificationRead, NotificationsMarked
from .posts import (
    CollectionCreate,
    CollectionRead,
    CommentCreate,
    CommentCreated,
    CommentDeleted,
    CommentRead,
    PinState,
    PostAttachment,
    PostAttachmentsUpdate,
    PostCreate,
    PostCreated,
    PostRead,
    ReactionCreate,
    ReactionRead,
    ReactionResult,
    UploadRead,
)
from .users import (
    BlockRead,
    CurrentProfileRead,
    DiscoverUserCard,
    ProfileCreate,
    SenderCountry,
    UsernameAvailability,
    UserProfileRead,
    UserProfileResult,
)

__all__ = [
    "LoginRequest",
    "Token",
    "UserCreate",
    "UserRead",
    "PageRead",
    "SuccessResponse",
    "UserSummary",
    "FriendEntry",
    "FriendRequestCreate",
    "FriendshipRead",
    "ConversationCreate",
    "ConversationCreated",
    "ConversationInfo",
    "ConversationItem",
    "GroupCreate",
    "GroupCreated",
    "GroupInfo",
    "GroupListItem",
    "GroupMemberRead",
    "MessageCorrection",
    "MessageCreate",
    "MessageCreated",
    "MessageRead",
    "UnreadState",
    "NotificationRead",
    "NotificationsMarked",
    "CollectionCreate",
    "CollectionRead",
    "CommentCreate",
    "CommentCreated",
    "CommentDeleted",
    "CommentRead",
    "PinState",
    "PostAttachment",
    "PostAttachmentsUpdate",
    "PostCreate",
    "PostCreated",
    "PostRead",
    "ReactionCreate",
    "ReactionRead",
    "ReactionResult",
    "UploadRead",
    "BlockRead",
    "CurrentProfileRead",
    "DiscoverUserCard",
    "SenderCountry",
    "ProfileCreate",
    "UsernameAvailability",
    "UserProfileRead",
    "UserProfileResult",
]
