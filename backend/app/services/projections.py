"""Helpers shaping ORM rows into API payloads."""

from __future__ import annotations

from typing import Iterable

from sqlalchemy import select
from sqlalchemy.orm import Session

from app.core.storage import get_public_url, get_url
from app.models import AttachmentType, MessageType, User
from app.schemas.common import UserSummary
from app.schemas.posts import PostAttachment


def load_users(db: Session, user_ids: Iterable[int]) -> dict[int, User]:
    """Fetch users by id in one query."""

    ids = set(user_ids)
    if not ids:
        return {}
    users = db.scalars(select(User).where(User.id.in_(ids))).all()
    return {user.id: user for user in users}


def user_summary(user: User, *, public: bool = True) -> UserSummary:
    resolve = get_public_url if public else get_url
    return UserSummary(
        user_id=user.id,
        name=user.name,
        profile_picture=resolve(user.profile_picture),
        is_premium=user.is_premium,
    )


def message_attachment_url(message_type: MessageType, attachment: str | None) -> str | None:
    """Images live in our storage; gifs are external URLs stored verbatim."""

    if not attachment:
        return None
    if message_type == MessageType.IMAGE:
        return get_public_url(attachment)
    if message_type == MessageType.GIF:
        return attachment
    return None


def comment_attachment_url(attachment: str | None) -> str | None:
    if not attachment:
        return None
    if attachment.startswith("http"):
        return attachment
    return get_url(attachment)


def post_attachment_urls(attachments: list[dict] | None, *, public: bool = True) -> list[PostAttachment]:
    resolve = get_public_url if public else get_url
    resolved: list[PostAttachment] = []
    for item in attachments or []:
        kind = AttachmentType(item["type"])
        url = resolve(item["url"]) if kind == AttachmentType.IMAGE else item["url"]
        resolved.append(PostAttachment(type=kind, url=url))
    return resolved
