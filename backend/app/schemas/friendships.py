"""Schemas for the friendship graph."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from app.models.enums import FriendshipStatus


class FriendRequestCreate(BaseModel):
    """Payload for sending a friend request."""

    receiver_id: int = Field(..., ge=1, description="Identifier of the user to befriend")


class FriendshipRead(BaseModel):
    """Stored friendship row."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    user_a_id: int
    user_b_id: int
    sender_id: int
    status: FriendshipStatus
    created_at: datetime


class FriendEntry(BaseModel):
    """Friend or pending request enriched with the other user's card."""

    friendship_id: int
    user_id: int
    name: str
    profile_picture: str | None = None
    country: str
    status: FriendshipStatus
    sender_id: int
    created_at: datetime
