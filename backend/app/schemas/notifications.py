"""Schemas for notifications."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict

from app.models.enums import NotificationType


class NotificationRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    recipient_id: int
    sender_id: int
    type: NotificationType
    has_unread: bool
    created_at: datetime


class NotificationsMarked(BaseModel):
    updated: int
