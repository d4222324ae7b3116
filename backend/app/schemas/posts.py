"""Schemas for posts, reactions and comments."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field, constr

from app.models.enums import AttachmentType
from app.schemas.common import UserSummary


class PostAttachment(BaseModel):
    """Attachment reference: a storage key for images, an external URL for gifs."""

    type: AttachmentType
    url: constr(min_length=1, max_length=1024)


class CollectionCreate(BaseModel):
    title: constr(strip_whitespace=True, min_length=1, max_length=128)


class CollectionRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    user_id: int
    title: str
    posts_count: int
    created_at: datetime


class PostCreate(BaseModel):
    content: str
    attachments: list[PostAttachment] | None = None
    collection_id: int | None = Field(default=None, ge=1)


class PostCreated(BaseModel):
    post_id: int


class PostAttachmentsUpdate(BaseModel):
    attachments: list[PostAttachment]


class UploadRead(BaseModel):
    """Result of uploading a post attachment in the second phase of post creation."""

    key: str
    url: str | None = None
    content_type: str | None = None
    file_size: int


class PinState(BaseModel):
    is_pinned: bool


class PostRead(BaseModel):
    """Post as rendered in the feed or on a profile."""

    post_id: int
    user_id: int
    content: str
    post_attachments: list[PostAttachment] = Field(default_factory=list)
    reactions_count: int
    comments_count: int
    created_at: datetime
    relative_time: str | None = None
    has_reacted: bool
    user_reaction: str | None = None
    is_owner: bool
    is_pinned: bool
    post_author: UserSummary


class ReactionCreate(BaseModel):
    emoji: str = Field(..., description="Emoji used for the reaction")


class ReactionResult(BaseModel):
    has_reacted: bool
    user_reaction: str | None = None


class ReactionRead(BaseModel):
    reaction_id: int
    emoji: str
    user_id: int
    name: str
    profile_picture: str | None = None
    country: str
    is_premium: bool


class CommentCreate(BaseModel):
    content: str = ""
    reply_parent_id: int | None = Field(default=None, ge=1)
    attachment: str | None = None


class CommentCreated(BaseModel):
    comment_id: int


class CommentDeleted(BaseModel):
    deleted_count: int = Field(..., description="Number of comments removed, including replies")


class CommentRead(BaseModel):
    comment_id: int
    created_at: datetime
    user_id: int
    post_id: int
    content: str
    attachment: str | None = None
    replies_count: int
    reply_parent_id: int | None = None
    is_owner: bool
    comment_author: UserSummary
