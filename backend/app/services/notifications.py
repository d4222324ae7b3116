"""Notification fan-out.

Notifications are appended to the caller's session and committed together
with the mutation that produced them.
"""

from __future__ import annotations

import logging

from sqlalchemy import exists, select, update
from sqlalchemy.orm import Session

from app.models import Notification, NotificationType, User
from app.services.pagination import Page, paginate

logger = logging.getLogger(__name__)


def create_notification(
    db: Session,
    *,
    recipient_id: int,
    sender_id: int,
    type: NotificationType,
) -> Notification:
    """Queue a notification for ``recipient_id`` in the current transaction."""

    notification = Notification(
        recipient_id=recipient_id,
        sender_id=sender_id,
        type=type,
        has_unread=True,
    )
    db.add(notification)
    logger.debug("Queued %s notification for user %s", type.value, recipient_id)
    return notification


def list_notifications(
    db: Session, user: User, *, cursor: str | None, num_items: int
) -> Page[Notification]:
    stmt = select(Notification).where(Notification.recipient_id == user.id)
    return paginate(
        db,
        stmt,
        time_column=Notification.created_at,
        id_column=Notification.id,
        cursor=cursor,
        num_items=num_items,
    )


def has_unread_notifications(db: Session, user: User) -> bool:
    stmt = select(
        exists().where(
            Notification.recipient_id == user.id,
            Notification.has_unread.is_(True),
        )
    )
    return bool(db.scalar(stmt))


def mark_notifications_read(db: Session, user: User) -> int:
    """Clear the unread flag on every notification of ``user``."""

    result = db.execute(
        update(Notification)
        .where(Notification.recipient_id == user.id, Notification.has_unread.is_(True))
        .values(has_unread=False)
        .execution_options(synchronize_session="fetch")
    )
    db.commit()
    return result.rowcount or 0
