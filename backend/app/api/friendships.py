"""Friendship graph API endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from app.api.deps import PageParams, get_current_user, get_locale_param, get_optional_user, get_page_params
from app.database import get_db
from app.models import User
from app.schemas import FriendEntry, FriendRequestCreate, FriendshipRead, PageRead, SuccessResponse
from app.services import Page, event_hub
from app.services import friendships as friendship_service

router = APIRouter(prefix="/friends", tags=["friends"])


async def _notify_graph_change(*user_ids: int) -> None:
    await event_hub.publish(user_ids, {"type": "friends_changed"})


@router.get("", response_model=PageRead[FriendEntry])
def list_friends(
    locale: str | None = Depends(get_locale_param),
    params: PageParams = Depends(get_page_params),
    db: Session = Depends(get_db),
    current_user: User | None = Depends(get_optional_user),
) -> Page[FriendEntry]:
    if current_user is None:
        return Page.empty()
    return friendship_service.list_friends(
        db, current_user, locale=locale, cursor=params.cursor, num_items=params.num_items
    )


@router.get("/requests", response_model=PageRead[FriendEntry])
def list_pending_requests(
    locale: str | None = Depends(get_locale_param),
    params: PageParams = Depends(get_page_params),
    db: Session = Depends(get_db),
    current_user: User | None = Depends(get_optional_user),
) -> Page[FriendEntry]:
    """Pending requests the caller sent or received."""

    if current_user is None:
        return Page.empty()
    return friendship_service.list_pending_requests(
        db, current_user, locale=locale, cursor=params.cursor, num_items=params.num_items
    )


@router.post("/requests", response_model=FriendshipRead, status_code=status.HTTP_201_CREATED)
async def send_friend_request(
    payload: FriendRequestCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> FriendshipRead:
    friendship = friendship_service.send_request(db, current_user, payload.receiver_id)
    await _notify_graph_change(current_user.id, payload.receiver_id)
    return FriendshipRead.model_validate(friendship)


@router.post("/requests/{friendship_id}/accept", response_model=FriendshipRead)
async def accept_friend_request(
    friendship_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> FriendshipRead:
    friendship = friendship_service.accept_request(db, current_user, friendship_id)
    await _notify_graph_change(friendship.user_a_id, friendship.user_b_id)
    return FriendshipRead.model_validate(friendship)


@router.post("/requests/{friendship_id}/reject", response_model=SuccessResponse)
async def reject_friend_request(
    friendship_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> SuccessResponse:
    other_id = friendship_service.reject_request(db, current_user, friendship_id)
    await _notify_graph_change(current_user.id, other_id)
    return SuccessResponse()


@router.delete("/{friend_id}", response_model=SuccessResponse)
async def remove_friend(
    friend_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> SuccessResponse:
    """End a friendship; the pair's conversation and letters are removed too."""

    friendship_service.remove_friend(db, current_user, friend_id)
    await _notify_graph_change(current_user.id, friend_id)
    await event_hub.publish([current_user.id, friend_id], {"type": "conversations_changed"})
    return SuccessResponse()
