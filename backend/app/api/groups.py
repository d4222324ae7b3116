"""Group chat API endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from app.api.deps import PageParams, get_current_user, get_optional_user, get_page_params
from app.database import get_db
from app.models import User
from app.schemas import (
    GroupCreate,
    GroupCreated,
    GroupInfo,
    GroupListItem,
    GroupMemberRead,
    PageRead,
    SuccessResponse,
)
from app.services import Page, event_hub
from app.services import groups as group_service

router = APIRouter(prefix="/groups", tags=["groups"])


@router.get("", response_model=PageRead[GroupListItem])
def list_my_groups(
    params: PageParams = Depends(get_page_params),
    db: Session = Depends(get_db),
    current_user: User | None = Depends(get_optional_user),
) -> Page[GroupListItem]:
    if current_user is None:
        return Page.empty()
    return group_service.list_my_groups(
        db, current_user, cursor=params.cursor, num_items=params.num_items
    )


@router.post("", response_model=GroupCreated, status_code=status.HTTP_201_CREATED)
async def create_group(
    payload: GroupCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> GroupCreated:
    group = group_service.create_group(
        db,
        current_user,
        title=payload.title,
        description=payload.description,
        banner=payload.banner,
        member_ids=payload.member_ids,
    )
    await event_hub.publish(
        group_service.member_ids_of(db, group.id), {"type": "groups_changed", "group_id": group.id}
    )
    return GroupCreated(group_id=group.id)


@router.get("/{group_id}", response_model=GroupInfo)
def read_group(
    group_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> GroupInfo:
    return group_service.get_group_info(db, current_user, group_id)


@router.get("/{group_id}/members", response_model=PageRead[GroupMemberRead])
def list_group_members(
    group_id: int,
    params: PageParams = Depends(get_page_params),
    db: Session = Depends(get_db),
    current_user: User | None = Depends(get_optional_user),
) -> Page[GroupMemberRead]:
    if current_user is None:
        return Page.empty()
    return group_service.list_group_members(
        db, current_user, group_id, cursor=params.cursor, num_items=params.num_items
    )


@router.post("/{group_id}/leave", response_model=SuccessResponse)
async def leave_group(
    group_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> SuccessResponse:
    group_service.leave_group(db, current_user, group_id)
    remaining = group_service.member_ids_of(db, group_id)
    await event_hub.publish(
        [current_user.id, *remaining], {"type": "groups_changed", "group_id": group_id}
    )
    return SuccessResponse()


@router.delete("/{group_id}", response_model=SuccessResponse)
async def delete_group(
    group_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> SuccessResponse:
    """Delete a group; only its creator may do so."""

    former_members = group_service.delete_group(db, current_user, group_id)
    await event_hub.publish(former_members, {"type": "groups_changed", "group_id": group_id})
    return SuccessResponse()
