"""Pairwise visibility rules: blocking and privacy compatibility."""

from __future__ import annotations

import logging

from sqlalchemy import and_, exists, or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.core.errors import ConflictState, InvalidArgument, NotFound
from app.models import BlockedUser, NotificationType, User, UserSettings
from app.services.notifications import create_notification

logger = logging.getLogger(__name__)


def _settings_for(db: Session, user_id: int) -> UserSettings | None:
    return db.execute(
        select(UserSettings).where(UserSettings.user_id == user_id)
    ).scalar_one_or_none()


def are_privacy_compatible(db: Session, first_id: int, second_id: int) -> bool:
    """Return True when neither user's privacy settings exclude the other.

    Missing users or settings deny. Age groups must match, and a gender
    preference enabled on either side requires both genders to be equal.
    """

    first = db.get(User, first_id)
    second = db.get(User, second_id)
    first_settings = _settings_for(db, first_id)
    second_settings = _settings_for(db, second_id)
    if first is None or second is None or first_settings is None or second_settings is None:
        return False
    if first_settings.age_group != second_settings.age_group:
        return False
    if first_settings.gender_preference and first.gender != second.gender:
        return False
    if second_settings.gender_preference and second.gender != first.gender:
        return False
    return True


def are_blocked(db: Session, first_id: int, second_id: int) -> bool:
    """True when a block exists in either direction."""

    stmt = select(
        exists().where(
            or_(
                and_(BlockedUser.blocker_id == first_id, BlockedUser.blocked_id == second_id),
                and_(BlockedUser.blocker_id == second_id, BlockedUser.blocked_id == first_id),
            )
        )
    )
    return bool(db.scalar(stmt))


def block_user(db: Session, user: User, target_id: int) -> BlockedUser:
    if target_id == user.id:
        raise InvalidArgument("Cannot block yourself")
    if db.get(User, target_id) is None:
        raise NotFound("User not found")

    existing = db.execute(
        select(BlockedUser).where(
            BlockedUser.blocker_id == user.id, BlockedUser.blocked_id == target_id
        )
    ).scalar_one_or_none()
    if existing is not None:
        raise ConflictState("User is already blocked")

    block = BlockedUser(blocker_id=user.id, blocked_id=target_id)
    db.add(block)
    create_notification(
        db,
        recipient_id=target_id,
        sender_id=user.id,
        type=NotificationType.USER_BLOCKED,
    )
    try:
        db.commit()
    except IntegrityError as exc:
        db.rollback()
        raise ConflictState("User is already blocked") from exc
    db.refresh(block)
    logger.info("User %s blocked user %s", user.id, target_id)
    return block


def unblock_user(db: Session, user: User, target_id: int) -> None:
    block = db.execute(
        select(BlockedUser).where(
            BlockedUser.blocker_id == user.id, BlockedUser.blocked_id == target_id
        )
    ).scalar_one_or_none()
    if block is None:
        raise NotFound("Block not found")
    db.delete(block)
    db.commit()
    logger.info("User %s unblocked user %s", user.id, target_id)
