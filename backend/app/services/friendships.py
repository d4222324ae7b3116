"""Friendship graph.

A friendship between two users is stored once, on the canonically ordered
pair ``(user_a_id, user_b_id)`` with ``user_a_id < user_b_id``. Listing a
user's friends therefore has to read both sides of the pair and merge them.
"""

from __future__ import annotations

import logging

from sqlalchemy import delete, or_, and_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.core.errors import ConflictState, InvalidArgument, NotAuthorized, NotFound
from app.core.locale import format_country
from app.core.storage import get_public_url
from app.models import (
    Conversation,
    Friendship,
    FriendshipStatus,
    Letter,
    Message,
    NotificationType,
    User,
)
from app.schemas.friendships import FriendEntry
from app.services.notifications import create_notification
from app.services.pagination import Page, merge_paginate
from app.services.privacy import are_blocked, are_privacy_compatible
from app.services.projections import load_users

logger = logging.getLogger(__name__)


def canonical_pair(first_id: int, second_id: int) -> tuple[int, int]:
    if first_id < second_id:
        return first_id, second_id
    return second_id, first_id


def get_friendship(
    db: Session,
    first_id: int,
    second_id: int,
    status: FriendshipStatus | None = None,
) -> Friendship | None:
    user_a_id, user_b_id = canonical_pair(first_id, second_id)
    stmt = select(Friendship).where(
        Friendship.user_a_id == user_a_id,
        Friendship.user_b_id == user_b_id,
    )
    if status is not None:
        stmt = stmt.where(Friendship.status == status)
    return db.execute(stmt).scalar_one_or_none()


def are_friends(db: Session, first_id: int, second_id: int) -> bool:
    if first_id == second_id:
        return False
    return get_friendship(db, first_id, second_id, FriendshipStatus.ACCEPTED) is not None


def has_pending_request(db: Session, first_id: int, second_id: int) -> bool:
    return get_friendship(db, first_id, second_id, FriendshipStatus.PENDING) is not None


def get_friend_ids(db: Session, user_id: int) -> list[int]:
    rows = db.execute(
        select(Friendship.user_a_id, Friendship.user_b_id).where(
            Friendship.status == FriendshipStatus.ACCEPTED,
            or_(Friendship.user_a_id == user_id, Friendship.user_b_id == user_id),
        )
    ).all()
    return [user_b if user_a == user_id else user_a for user_a, user_b in rows]


def send_request(db: Session, user: User, receiver_id: int) -> Friendship:
    """Create a pending friendship initiated by ``user``."""

    if receiver_id == user.id:
        raise InvalidArgument("Cannot send friend request to yourself")

    existing = get_friendship(db, user.id, receiver_id)
    if existing is not None:
        if existing.status == FriendshipStatus.ACCEPTED:
            raise ConflictState("You are already friends with this user")
        raise ConflictState("A friend request already exists")

    if db.get(User, receiver_id) is None:
        raise NotFound("User not found")
    if are_blocked(db, user.id, receiver_id):
        raise NotAuthorized("Cannot send friend request to this user")
    if not are_privacy_compatible(db, user.id, receiver_id):
        raise NotAuthorized("Cannot send friend request due to privacy restrictions")

    user_a_id, user_b_id = canonical_pair(user.id, receiver_id)
    friendship = Friendship(
        user_a_id=user_a_id,
        user_b_id=user_b_id,
        sender_id=user.id,
        status=FriendshipStatus.PENDING,
    )
    db.add(friendship)
    create_notification(
        db,
        recipient_id=receiver_id,
        sender_id=user.id,
        type=NotificationType.FRIEND_REQUEST_SENT,
    )
    try:
        db.commit()
    except IntegrityError as exc:
        db.rollback()
        raise ConflictState("A friend request already exists") from exc
    db.refresh(friendship)
    logger.info("User %s sent a friend request to user %s", user.id, receiver_id)
    return friendship


def _pending_for_party(db: Session, user: User, friendship_id: int) -> Friendship:
    friendship = db.get(Friendship, friendship_id)
    if friendship is None:
        raise NotFound("Friend request not found")
    if not friendship.involves(user.id):
        raise NotAuthorized("You are not part of this friend request")
    if friendship.status != FriendshipStatus.PENDING:
        raise ConflictState("This request has already been processed")
    return friendship


def accept_request(db: Session, user: User, friendship_id: int) -> Friendship:
    friendship = _pending_for_party(db, user, friendship_id)
    if friendship.sender_id == user.id:
        raise NotAuthorized("You can only accept requests sent to you")

    other_id = friendship.other_user_id(user.id)
    # Settings may have changed since the request was sent.
    if not are_privacy_compatible(db, user.id, other_id):
        raise NotAuthorized("Cannot accept friend request due to privacy restrictions")

    friendship.status = FriendshipStatus.ACCEPTED
    create_notification(
        db,
        recipient_id=other_id,
        sender_id=user.id,
        type=NotificationType.FRIEND_REQUEST_ACCEPTED,
    )
    db.commit()
    db.refresh(friendship)
    logger.info("User %s accepted friendship %s", user.id, friendship.id)
    return friendship


def reject_request(db: Session, user: User, friendship_id: int) -> int:
    """Delete a pending request. Returns the id of the other party."""

    friendship = _pending_for_party(db, user, friendship_id)
    other_id = friendship.other_user_id(user.id)
    db.delete(friendship)
    create_notification(
        db,
        recipient_id=other_id,
        sender_id=user.id,
        type=NotificationType.FRIEND_REQUEST_REJECTED,
    )
    db.commit()
    logger.info("User %s rejected friendship %s", user.id, friendship_id)
    return other_id


def remove_friend(db: Session, user: User, friend_id: int) -> None:
    """End a friendship together with the pair's conversation and letters."""

    if friend_id == user.id:
        raise InvalidArgument("Cannot remove yourself as friend")

    friendship = get_friendship(db, user.id, friend_id, FriendshipStatus.ACCEPTED)
    if friendship is None:
        raise NotAuthorized("You are not friends with this user")

    db.delete(friendship)

    conversation_ids = set(
        db.scalars(
            select(Conversation.conversation_id).where(
                or_(
                    and_(Conversation.user_id == user.id, Conversation.other_user_id == friend_id),
                    and_(Conversation.user_id == friend_id, Conversation.other_user_id == user.id),
                )
            )
        ).all()
    )
    if conversation_ids:
        # Attachment blobs are left in storage.
        db.execute(delete(Message).where(Message.conversation_id.in_(conversation_ids)))
        db.execute(delete(Conversation).where(Conversation.conversation_id.in_(conversation_ids)))

    db.execute(
        delete(Letter).where(
            or_(
                and_(Letter.sender_id == user.id, Letter.recipient_id == friend_id),
                and_(Letter.sender_id == friend_id, Letter.recipient_id == user.id),
            )
        )
    )
    create_notification(
        db,
        recipient_id=friend_id,
        sender_id=user.id,
        type=NotificationType.FRIEND_REMOVED,
    )
    db.commit()
    logger.info("User %s removed friend %s", user.id, friend_id)


def _list_by_status(
    db: Session,
    user: User,
    status: FriendshipStatus,
    *,
    locale: str | None,
    cursor: str | None,
    num_items: int,
) -> Page[FriendEntry]:
    as_a = select(Friendship).where(Friendship.user_a_id == user.id, Friendship.status == status)
    as_b = select(Friendship).where(Friendship.user_b_id == user.id, Friendship.status == status)
    page = merge_paginate(
        db,
        [as_a, as_b],
        time_column=Friendship.created_at,
        id_column=Friendship.id,
        cursor=cursor,
        num_items=num_items,
    )

    users = load_users(db, (item.other_user_id(user.id) for item in page.page))
    entries: list[FriendEntry] = []
    for friendship in page.page:
        friend = users.get(friendship.other_user_id(user.id))
        if friend is None:
            continue
        entries.append(
            FriendEntry(
                friendship_id=friendship.id,
                user_id=friend.id,
                name=friend.name,
                profile_picture=get_public_url(friend.profile_picture),
                country=format_country(friend.country, locale),
                status=friendship.status,
                sender_id=friendship.sender_id,
                created_at=friendship.created_at,
            )
        )
    return Page(page=entries, is_done=page.is_done, continue_cursor=page.continue_cursor)


def list_friends(
    db: Session, user: User, *, locale: str | None, cursor: str | None, num_items: int
) -> Page[FriendEntry]:
    return _list_by_status(
        db, user, FriendshipStatus.ACCEPTED, locale=locale, cursor=cursor, num_items=num_items
    )


def list_pending_requests(
    db: Session, user: User, *, locale: str | None, cursor: str | None, num_items: int
) -> Page[FriendEntry]:
    return _list_by_status(
        db, user, FriendshipStatus.PENDING, locale=locale, cursor=cursor, num_items=num_items
    )
