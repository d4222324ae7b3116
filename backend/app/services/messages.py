"""Message rules shared by 1:1 conversations and group chats.

A message belongs to exactly one thread, modelled as
:class:`~app.models.DirectThread` or :class:`~app.models.GroupThread`.
"""

from __future__ import annotations

import logging

from sqlalchemy import case, select, update
from sqlalchemy.orm import Session

from app.config import get_settings
from app.core.errors import InvalidArgument, NotAuthorized, NotFound
from app.core.storage import get_public_url
from app.models import (
    Conversation,
    DirectThread,
    GroupMember,
    GroupThread,
    Message,
    MessageType,
    Thread,
    User,
)
from app.models.base import utcnow
from app.schemas.messages import MessageRead, MessageSender, ReplyParentPreview
from app.services.friendships import canonical_pair
from app.services.pagination import Page, paginate
from app.services.projections import load_users, message_attachment_url

logger = logging.getLogger(__name__)
settings = get_settings()


def conversation_id_for(first_id: int, second_id: int) -> str:
    """Shared identifier of the conversation between two users."""

    low, high = canonical_pair(first_id, second_id)
    return f"{low}-{high}"


def resolve_thread(conversation_id: str | None = None, group_id: int | None = None) -> Thread:
    """Build a thread from loose identifiers, requiring exactly one of them."""

    if (conversation_id is None) == (group_id is None):
        raise InvalidArgument("Exactly one of conversation_id or group_id must be set")
    if group_id is not None:
        return GroupThread(group_id)
    return DirectThread(conversation_id)


def get_conversation_row(db: Session, user_id: int, conversation_id: str) -> Conversation | None:
    """Return the caller-owned row of a conversation."""

    return db.execute(
        select(Conversation).where(
            Conversation.conversation_id == conversation_id,
            Conversation.user_id == user_id,
        )
    ).scalar_one_or_none()


def get_group_membership(db: Session, user_id: int, group_id: int) -> GroupMember | None:
    return db.execute(
        select(GroupMember).where(
            GroupMember.group_id == group_id,
            GroupMember.user_id == user_id,
        )
    ).scalar_one_or_none()


def ensure_participant(db: Session, user_id: int, thread: Thread) -> Conversation | GroupMember:
    """Return the caller's conversation row or membership, or raise NotAuthorized."""

    if isinstance(thread, GroupThread):
        membership = get_group_membership(db, user_id, thread.group_id)
        if membership is None:
            raise NotAuthorized("Not a member of this group")
        return membership
    row = get_conversation_row(db, user_id, thread.conversation_id)
    if row is None:
        raise NotAuthorized("Not a participant of this conversation")
    return row


def _validate_body(
    message_type: MessageType, content: str | None, attachment: str | None
) -> tuple[str | None, str | None]:
    text = content.strip() if content else None
    if message_type == MessageType.TEXT and not text:
        raise InvalidArgument("Text messages must have content")
    if message_type in (MessageType.IMAGE, MessageType.GIF) and not attachment:
        raise InvalidArgument("Image and GIF messages must have an attachment")
    if text and len(text) > settings.message_max_length:
        raise InvalidArgument(
            f"Message too long (max {settings.message_max_length} characters)"
        )
    return text or None, attachment or None


def send_message(
    db: Session,
    user: User,
    thread: Thread,
    *,
    message_type: MessageType,
    content: str | None = None,
    attachment: str | None = None,
    reply_parent_id: int | None = None,
) -> Message:
    """Append a message to ``thread``.

    For a 1:1 conversation both participant rows are repointed at the new
    message in one statement; the sender's unread flag is cleared and the
    receiver's is set. Group unread state is derived on read.
    """

    ensure_participant(db, user.id, thread)
    text, attachment = _validate_body(message_type, content, attachment)

    if reply_parent_id is not None:
        parent = db.get(Message, reply_parent_id)
        if parent is None:
            raise NotFound("Parent message not found")
        if parent.thread != thread:
            raise InvalidArgument("Parent message does not belong to this thread")

    now = utcnow()
    message = Message(
        sender_id=user.id,
        type=message_type,
        content=text,
        attachment=attachment,
        reply_parent_id=reply_parent_id,
        created_at=now,
    )
    message.thread = thread
    db.add(message)
    db.flush()

    if isinstance(thread, DirectThread):
        db.execute(
            update(Conversation)
            .where(Conversation.conversation_id == thread.conversation_id)
            .values(
                last_message_id=message.id,
                last_message_time=now,
                has_unread_messages=case((Conversation.user_id == user.id, False), else_=True),
            )
            .execution_options(synchronize_session="fetch")
        )

    db.commit()
    db.refresh(message)
    return message


def delete_message(db: Session, user: User, message_id: int) -> Thread:
    """Delete a message sent by ``user`` and return the thread it belonged to."""

    message = db.get(Message, message_id)
    if message is None:
        raise NotFound("Message not found")
    if message.sender_id != user.id:
        raise NotAuthorized("Not authorized to delete this message")

    thread = message.thread
    affected: list[Conversation] = []
    if isinstance(thread, DirectThread):
        affected = list(
            db.scalars(
                select(Conversation).where(
                    Conversation.conversation_id == thread.conversation_id,
                    Conversation.last_message_id == message.id,
                )
            ).all()
        )

    db.delete(message)
    db.flush()

    if affected:
        newest = db.execute(
            select(Message)
            .where(Message.conversation_id == thread.conversation_id)
            .order_by(Message.created_at.desc(), Message.id.desc())
            .limit(1)
        ).scalar_one_or_none()
        for row in affected:
            row.last_message_id = newest.id if newest is not None else None
            if newest is not None:
                row.last_message_time = newest.created_at

    db.commit()
    return thread


def correct_message(db: Session, user: User, message_id: int, correction: str) -> Message:
    """Attach a correction written by another participant to a text message."""

    message = db.get(Message, message_id)
    if message is None:
        raise NotFound("Message not found")
    if message.type != MessageType.TEXT:
        raise InvalidArgument("Can only correct text messages")
    ensure_participant(db, user.id, message.thread)
    if message.sender_id == user.id:
        raise InvalidArgument("Cannot correct your own messages")

    text = correction.strip()
    if not text:
        raise InvalidArgument("Correction cannot be empty")
    if len(text) > settings.message_max_length:
        raise InvalidArgument(
            f"Correction too long (max {settings.message_max_length} characters)"
        )

    message.correction = text
    db.commit()
    db.refresh(message)
    return message


def mark_read(db: Session, user: User, thread: Thread) -> None:
    participation = ensure_participant(db, user.id, thread)
    if isinstance(participation, GroupMember):
        participation.last_read_at = utcnow()
    else:
        participation.has_unread_messages = False
    db.commit()


def get_messages(
    db: Session,
    user: User,
    thread: Thread,
    *,
    cursor: str | None,
    num_items: int,
) -> Page[MessageRead]:
    """Messages of a thread, newest first."""

    ensure_participant(db, user.id, thread)

    stmt = select(Message)
    if isinstance(thread, GroupThread):
        stmt = stmt.where(Message.group_id == thread.group_id)
    else:
        stmt = stmt.where(Message.conversation_id == thread.conversation_id)
    page = paginate(
        db,
        stmt,
        time_column=Message.created_at,
        id_column=Message.id,
        cursor=cursor,
        num_items=num_items,
    )

    parent_ids = {m.reply_parent_id for m in page.page if m.reply_parent_id is not None}
    parents = (
        {m.id: m for m in db.scalars(select(Message).where(Message.id.in_(parent_ids))).all()}
        if parent_ids
        else {}
    )
    users = load_users(
        db,
        {m.sender_id for m in page.page} | {p.sender_id for p in parents.values()},
    )

    items: list[MessageRead] = []
    for message in page.page:
        sender = users.get(message.sender_id)
        if sender is None:
            continue
        reply_parent = None
        parent = parents.get(message.reply_parent_id) if message.reply_parent_id else None
        if parent is not None and parent.sender_id in users:
            reply_parent = ReplyParentPreview(
                message_id=parent.id,
                content=parent.content,
                type=parent.type,
                sender_name=users[parent.sender_id].name,
            )
        items.append(
            MessageRead(
                message_id=message.id,
                conversation_id=message.conversation_id,
                group_id=message.group_id,
                created_at=message.created_at,
                content=message.content,
                type=message.type,
                attachment_url=message_attachment_url(message.type, message.attachment),
                is_owner=message.sender_id == user.id,
                reply_parent_id=message.reply_parent_id,
                reply_parent=reply_parent,
                correction=message.correction,
                sender=MessageSender(
                    sender_id=sender.id,
                    sender_name=sender.name,
                    profile_picture=get_public_url(sender.profile_picture),
                ),
            )
        )
    return Page(page=items, is_done=page.is_done, continue_cursor=page.continue_cursor)


def participant_ids(db: Session, thread: Thread) -> list[int]:
    """Users who currently take part in ``thread``."""

    if isinstance(thread, GroupThread):
        stmt = select(GroupMember.user_id).where(GroupMember.group_id == thread.group_id)
    else:
        stmt = select(Conversation.user_id).where(
            Conversation.conversation_id == thread.conversation_id
        )
    return list(db.scalars(stmt).all())
