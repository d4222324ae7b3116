"""1:1 conversations.

Each conversation is stored as two rows sharing one ``conversation_id``, one
row owned by each participant. Both rows are always written together.
"""

from __future__ import annotations

import logging

from sqlalchemy import delete, exists, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.core.errors import InvalidArgument, NotAuthorized, NotFound
from app.core.locale import get_country_flag, get_relative_time
from app.models import Conversation, Message, NotificationType, User
from app.models.base import utcnow
from app.schemas.messages import (
    ConversationInfo,
    ConversationItem,
    ConversationOtherUser,
    LastMessagePreview,
)
from app.services.friendships import are_friends
from app.services.messages import conversation_id_for, get_conversation_row
from app.services.notifications import create_notification
from app.services.pagination import Page, paginate
from app.services.projections import load_users, user_summary

logger = logging.getLogger(__name__)


def _row_for_pair(db: Session, user_id: int, other_user_id: int) -> Conversation | None:
    return db.execute(
        select(Conversation).where(
            Conversation.user_id == user_id,
            Conversation.other_user_id == other_user_id,
        )
    ).scalar_one_or_none()


def create_conversation(db: Session, user: User, other_user_id: int) -> str:
    """Return the conversation id shared with ``other_user_id``, creating it if needed."""

    if other_user_id == user.id:
        raise InvalidArgument("Cannot create conversation with yourself")

    existing = _row_for_pair(db, user.id, other_user_id)
    if existing is not None:
        return existing.conversation_id

    if not are_friends(db, user.id, other_user_id):
        raise NotAuthorized("You can only create conversations with friends")

    conversation_id = conversation_id_for(user.id, other_user_id)
    now = utcnow()
    db.add_all(
        [
            Conversation(
                conversation_id=conversation_id,
                user_id=user.id,
                other_user_id=other_user_id,
                last_message_time=now,
                has_unread_messages=False,
            ),
            Conversation(
                conversation_id=conversation_id,
                user_id=other_user_id,
                other_user_id=user.id,
                last_message_time=now,
                has_unread_messages=False,
            ),
        ]
    )
    try:
        db.commit()
    except IntegrityError:
        # A concurrent call created the pair first.
        db.rollback()
        existing = _row_for_pair(db, user.id, other_user_id)
        if existing is None:
            raise
        return existing.conversation_id
    logger.info("Conversation %s created by user %s", conversation_id, user.id)
    return conversation_id


def delete_conversation(db: Session, user: User, conversation_id: str) -> int:
    """Delete both rows and every message. Returns the other participant's id."""

    row = get_conversation_row(db, user.id, conversation_id)
    if row is None:
        raise NotAuthorized("Not authorized to delete this conversation")
    other_user_id = row.other_user_id

    db.execute(delete(Message).where(Message.conversation_id == conversation_id))
    db.execute(delete(Conversation).where(Conversation.conversation_id == conversation_id))
    create_notification(
        db,
        recipient_id=other_user_id,
        sender_id=user.id,
        type=NotificationType.CONVERSATION_DELETED,
    )
    db.commit()
    logger.info("Conversation %s deleted by user %s", conversation_id, user.id)
    return other_user_id


def list_conversations(
    db: Session,
    user: User,
    *,
    locale: str | None,
    cursor: str | None,
    num_items: int,
) -> Page[ConversationItem]:
    """The caller's conversations, most recently active first."""

    page = paginate(
        db,
        select(Conversation).where(Conversation.user_id == user.id),
        time_column=Conversation.last_message_time,
        id_column=Conversation.id,
        cursor=cursor,
        num_items=num_items,
    )

    last_ids = {row.last_message_id for row in page.page if row.last_message_id is not None}
    last_messages = (
        {m.id: m for m in db.scalars(select(Message).where(Message.id.in_(last_ids))).all()}
        if last_ids
        else {}
    )
    users = load_users(
        db,
        {row.other_user_id for row in page.page} | {m.sender_id for m in last_messages.values()},
    )

    items: list[ConversationItem] = []
    for row in page.page:
        other = users.get(row.other_user_id)
        if other is None:
            continue
        last_message = None
        message = last_messages.get(row.last_message_id) if row.last_message_id else None
        if message is not None:
            sender = users.get(message.sender_id)
            last_message = LastMessagePreview(
                message_id=message.id,
                content=message.content,
                type=message.type,
                sender_id=message.sender_id,
                sender_name=sender.name if sender is not None else "",
                created_at=message.created_at,
                is_owner=message.sender_id == user.id,
            )
        summary = user_summary(other)
        items.append(
            ConversationItem(
                conversation_id=row.conversation_id,
                created_at=row.created_at,
                last_message_id=row.last_message_id,
                last_message_time=get_relative_time(row.last_message_time, locale),
                has_unread_messages=row.has_unread_messages,
                last_message=last_message,
                other_user=ConversationOtherUser(
                    **summary.model_dump(), country=get_country_flag(other.country)
                ),
            )
        )
    return Page(page=items, is_done=page.is_done, continue_cursor=page.continue_cursor)


def get_conversation_info(db: Session, user: User, conversation_id: str) -> ConversationInfo:
    row = get_conversation_row(db, user.id, conversation_id)
    if row is None:
        raise NotAuthorized("Not authorized to view this conversation")
    other = db.get(User, row.other_user_id)
    if other is None:
        raise NotFound("Other user not found")
    return ConversationInfo(conversation_id=conversation_id, other_user=user_summary(other))


def has_unread_conversations(db: Session, user: User) -> bool:
    stmt = select(
        exists().where(
            Conversation.user_id == user.id,
            Conversation.has_unread_messages.is_(True),
        )
    )
    return bool(db.scalar(stmt))
