"""Schemas for 1:1 conversations, group chats and their messages."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field, constr, model_validator

from app.models.enums import MessageType
from app.schemas.common import UserSummary


class ConversationCreate(BaseModel):
    other_user_id: int = Field(..., ge=1)


class ConversationCreated(BaseModel):
    conversation_id: str


class MessageCreate(BaseModel):
    """Payload for sending a message; the thread comes from the URL."""

    type: MessageType = MessageType.TEXT
    content: str | None = Field(default=None, description="Required for text messages")
    attachment: str | None = Field(
        default=None,
        description="Storage key for images, external URL for gifs",
    )
    reply_parent_id: int | None = Field(default=None, ge=1)


class MessageCreated(BaseModel):
    message_id: int


class MessageCorrection(BaseModel):
    correction: constr(strip_whitespace=True, min_length=1)


class ReplyParentPreview(BaseModel):
    message_id: int
    content: str | None = None
    type: MessageType
    sender_name: str


class MessageSender(BaseModel):
    sender_id: int
    sender_name: str
    profile_picture: str | None = None


class MessageRead(BaseModel):
    """Serialized chat message as shown in a thread."""

    message_id: int
    conversation_id: str | None = None
    group_id: int | None = None
    created_at: datetime
    content: str | None = None
    type: MessageType
    attachment_url: str | None = None
    is_owner: bool
    reply_parent_id: int | None = None
    reply_parent: ReplyParentPreview | None = None
    correction: str | None = None
    sender: MessageSender


class LastMessagePreview(BaseModel):
    message_id: int
    content: str | None = None
    type: MessageType
    sender_id: int
    sender_name: str
    created_at: datetime
    is_owner: bool


class ConversationOtherUser(UserSummary):
    country: str = ""


class ConversationItem(BaseModel):
    """One row of the caller's conversation list."""

    conversation_id: str
    created_at: datetime
    last_message_id: int | None = None
    last_message_time: str = Field(..., description="Locale-aware relative time")
    has_unread_messages: bool
    last_message: LastMessagePreview | None = None
    other_user: ConversationOtherUser


class ConversationInfo(BaseModel):
    conversation_id: str
    other_user: UserSummary


class UnreadState(BaseModel):
    has_unread: bool


class GroupCreate(BaseModel):
    title: constr(strip_whitespace=True, min_length=1, max_length=128)
    description: constr(max_length=1000) = ""
    banner: str | None = Field(default=None, description="Storage key of the banner image")
    member_ids: list[int] = Field(default_factory=list)

    @model_validator(mode="after")
    def _dedupe_members(self) -> "GroupCreate":
        self.member_ids = list(dict.fromkeys(self.member_ids))
        return self


class GroupCreated(BaseModel):
    group_id: int


class GroupListItem(BaseModel):
    group_id: int
    group_photo: str | None = None
    group_title: str
    last_message: LastMessagePreview | None = None
    unread_count: int
    is_group_admin: bool


class GroupInfo(BaseModel):
    group_id: int
    title: str
    description: str
    banner: str | None = None
    members_count: int
    created_at: datetime
    member_ids: list[int]
    is_admin: bool


class GroupMemberRead(BaseModel):
    user_id: int
    name: str
    profile_picture: str | None = None
    country: str
