"""Group chat lifecycle and queries."""

from __future__ import annotations

import logging

from sqlalchemy import delete, func, select
from sqlalchemy.orm import Session

from app.core.errors import ConflictState, InvalidArgument, NotAuthorized, NotFound
from app.core.storage import get_public_url, get_url
from app.models import Group, GroupMember, Message, User
from app.schemas.messages import GroupInfo, GroupListItem, GroupMemberRead, LastMessagePreview
from app.services.counters import bump
from app.services.friendships import are_friends
from app.services.messages import get_group_membership
from app.services.pagination import Page, paginate
from app.services.projections import load_users

logger = logging.getLogger(__name__)


def _get_group(db: Session, group_id: int) -> Group:
    group = db.get(Group, group_id)
    if group is None:
        raise NotFound("Group not found")
    return group


def create_group(
    db: Session,
    user: User,
    *,
    title: str,
    description: str = "",
    banner: str | None = None,
    member_ids: list[int] | None = None,
) -> Group:
    """Create a group administered by ``user`` with the given friends as members."""

    title = title.strip()
    if not title:
        raise InvalidArgument("Group title cannot be empty")

    members = [member_id for member_id in dict.fromkeys(member_ids or []) if member_id != user.id]
    found = load_users(db, members)
    for member_id in members:
        if member_id not in found:
            raise NotFound(f"User {member_id} not found")
        if not are_friends(db, user.id, member_id):
            raise NotAuthorized("You can only add friends to a group")

    group = Group(
        title=title,
        description=description,
        banner=banner,
        members_count=len(members) + 1,
        creator_id=user.id,
    )
    db.add(group)
    db.flush()
    db.add_all(
        [GroupMember(group_id=group.id, user_id=member_id) for member_id in [user.id, *members]]
    )
    db.commit()
    db.refresh(group)
    logger.info("Group %s created by user %s with %s members", group.id, user.id, group.members_count)
    return group


def leave_group(db: Session, user: User, group_id: int) -> None:
    group = _get_group(db, group_id)
    if group.creator_id == user.id:
        raise ConflictState("Admin cannot leave group. Delete the group instead.")

    membership = get_group_membership(db, user.id, group_id)
    if membership is None:
        raise NotAuthorized("Not a member")

    db.delete(membership)
    bump(db, Group.members_count, group_id, -1)
    db.commit()
    logger.info("User %s left group %s", user.id, group_id)


def delete_group(db: Session, user: User, group_id: int) -> list[int]:
    """Delete a group with its messages and memberships. Returns former member ids."""

    group = _get_group(db, group_id)
    if group.creator_id != user.id:
        raise NotAuthorized("Only admin can delete group")

    member_ids = list(
        db.scalars(select(GroupMember.user_id).where(GroupMember.group_id == group_id)).all()
    )
    db.execute(delete(Message).where(Message.group_id == group_id))
    db.execute(delete(GroupMember).where(GroupMember.group_id == group_id))
    db.delete(group)
    db.commit()
    logger.info("Group %s deleted by user %s", group_id, user.id)
    return member_ids


def member_ids_of(db: Session, group_id: int) -> list[int]:
    return list(
        db.scalars(select(GroupMember.user_id).where(GroupMember.group_id == group_id)).all()
    )


def count_unread(db: Session, membership: GroupMember) -> int:
    """Messages from other members newer than the member's last read time."""

    stmt = select(func.count(Message.id)).where(
        Message.group_id == membership.group_id,
        Message.sender_id != membership.user_id,
    )
    if membership.last_read_at is not None:
        stmt = stmt.where(Message.created_at > membership.last_read_at)
    return db.scalar(stmt) or 0


def _last_message(db: Session, group_id: int) -> Message | None:
    return db.execute(
        select(Message)
        .where(Message.group_id == group_id)
        .order_by(Message.created_at.desc(), Message.id.desc())
        .limit(1)
    ).scalar_one_or_none()


def list_my_groups(
    db: Session, user: User, *, cursor: str | None, num_items: int
) -> Page[GroupListItem]:
    page = paginate(
        db,
        select(GroupMember).where(GroupMember.user_id == user.id),
        time_column=GroupMember.joined_at,
        id_column=GroupMember.id,
        cursor=cursor,
        num_items=num_items,
    )

    items: list[GroupListItem] = []
    for membership in page.page:
        group = db.get(Group, membership.group_id)
        if group is None:
            continue
        last_message = _last_message(db, group.id)
        preview = None
        if last_message is not None:
            sender = db.get(User, last_message.sender_id)
            preview = LastMessagePreview(
                message_id=last_message.id,
                content=last_message.content,
                type=last_message.type,
                sender_id=last_message.sender_id,
                sender_name=sender.name if sender is not None else "Unknown",
                created_at=last_message.created_at,
                is_owner=last_message.sender_id == user.id,
            )
        items.append(
            GroupListItem(
                group_id=group.id,
                group_photo=get_url(group.banner),
                group_title=group.title,
                last_message=preview,
                unread_count=count_unread(db, membership),
                is_group_admin=group.creator_id == user.id,
            )
        )
    return Page(page=items, is_done=page.is_done, continue_cursor=page.continue_cursor)


def get_group_info(db: Session, user: User, group_id: int) -> GroupInfo:
    group = _get_group(db, group_id)
    if get_group_membership(db, user.id, group_id) is None:
        raise NotAuthorized("Not authorized")
    return GroupInfo(
        group_id=group.id,
        title=group.title,
        description=group.description,
        banner=get_url(group.banner),
        members_count=group.members_count,
        created_at=group.created_at,
        member_ids=member_ids_of(db, group_id),
        is_admin=group.creator_id == user.id,
    )


def list_group_members(
    db: Session, user: User, group_id: int, *, cursor: str | None, num_items: int
) -> Page[GroupMemberRead]:
    if get_group_membership(db, user.id, group_id) is None:
        raise NotAuthorized("Not authorized")

    page = paginate(
        db,
        select(GroupMember).where(GroupMember.group_id == group_id),
        time_column=GroupMember.joined_at,
        id_column=GroupMember.id,
        cursor=cursor,
        num_items=num_items,
        descending=False,
    )
    users = load_users(db, (m.user_id for m in page.page))
    members = [
        GroupMemberRead(
            user_id=member.id,
            name=member.name,
            profile_picture=get_public_url(member.profile_picture),
            country=member.country,
        )
        for member in (users.get(m.user_id) for m in page.page)
        if member is not None
    ]
    return Page(page=members, is_done=page.is_done, continue_cursor=page.continue_cursor)
