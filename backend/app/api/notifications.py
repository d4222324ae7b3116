"""Notification API endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.api.deps import PageParams, get_current_user, get_optional_user, get_page_params
from app.database import get_db
from app.models import User
from app.schemas import NotificationRead, NotificationsMarked, PageRead, UnreadState
from app.services import Page
from app.services import notifications as notification_service

router = APIRouter(prefix="/notifications", tags=["notifications"])


@router.get("", response_model=PageRead[NotificationRead])
def list_notifications(
    params: PageParams = Depends(get_page_params),
    db: Session = Depends(get_db),
    current_user: User | None = Depends(get_optional_user),
) -> Page[NotificationRead]:
    if current_user is None:
        return Page.empty()
    page = notification_service.list_notifications(
        db, current_user, cursor=params.cursor, num_items=params.num_items
    )
    return page.map(NotificationRead.model_validate)


@router.get("/unread", response_model=UnreadState)
def read_unread_state(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> UnreadState:
    return UnreadState(has_unread=notification_service.has_unread_notifications(db, current_user))


@router.post("/read", response_model=NotificationsMarked)
def mark_all_read(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> NotificationsMarked:
    return NotificationsMarked(updated=notification_service.mark_notifications_read(db, current_user))
