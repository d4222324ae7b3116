"""HTTP endpoints for messages in 1:1 conversations and group chats.

Every endpoint addresses its thread through exactly one of the
``conversation_id`` and ``group_id`` query parameters.
"""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from app.api.deps import PageParams, get_current_user, get_optional_user, get_page_params
from app.database import get_db
from app.models import GroupThread, Thread, User
from app.schemas import (
    MessageCorrection,
    MessageCreate,
    MessageCreated,
    MessageRead,
    PageRead,
    SuccessResponse,
)
from app.services import Page, event_hub
from app.services import messages as message_service

router = APIRouter(prefix="/messages", tags=["messages"])


def get_thread(
    conversation_id: str | None = Query(default=None, max_length=64),
    group_id: int | None = Query(default=None, ge=1),
) -> Thread:
    return message_service.resolve_thread(conversation_id, group_id)


def _thread_payload(thread: Thread) -> dict[str, Any]:
    if isinstance(thread, GroupThread):
        return {"group_id": thread.group_id}
    return {"conversation_id": thread.conversation_id}


async def _publish_thread_change(db: Session, thread: Thread) -> None:
    recipients = message_service.participant_ids(db, thread)
    await event_hub.publish(recipients, {"type": "messages_changed", **_thread_payload(thread)})


@router.get("", response_model=PageRead[MessageRead])
def list_messages(
    thread: Thread = Depends(get_thread),
    params: PageParams = Depends(get_page_params),
    db: Session = Depends(get_db),
    current_user: User | None = Depends(get_optional_user),
) -> Page[MessageRead]:
    """Messages of a thread, newest first."""

    if current_user is None:
        return Page.empty()
    return message_service.get_messages(
        db, current_user, thread, cursor=params.cursor, num_items=params.num_items
    )


@router.post("", response_model=MessageCreated, status_code=status.HTTP_201_CREATED)
async def send_message(
    payload: MessageCreate,
    thread: Thread = Depends(get_thread),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> MessageCreated:
    message = message_service.send_message(
        db,
        current_user,
        thread,
        message_type=payload.type,
        content=payload.content,
        attachment=payload.attachment,
        reply_parent_id=payload.reply_parent_id,
    )
    await _publish_thread_change(db, thread)
    return MessageCreated(message_id=message.id)


@router.post("/read", response_model=SuccessResponse)
def mark_thread_read(
    thread: Thread = Depends(get_thread),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> SuccessResponse:
    message_service.mark_read(db, current_user, thread)
    return SuccessResponse()


@router.delete("/{message_id}", response_model=SuccessResponse)
async def delete_message(
    message_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> SuccessResponse:
    thread = message_service.delete_message(db, current_user, message_id)
    await _publish_thread_change(db, thread)
    return SuccessResponse()


@router.post("/{message_id}/correction", response_model=SuccessResponse)
async def correct_message(
    message_id: int,
    payload: MessageCorrection,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> SuccessResponse:
    """Attach a correction to another participant's text message."""

    message = message_service.correct_message(db, current_user, message_id, payload.correction)
    await _publish_thread_change(db, message.thread)
    return SuccessResponse()
