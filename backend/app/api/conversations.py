"""1:1 conversation API endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from app.api.deps import (
    PageParams,
    get_current_user,
    get_locale_param,
    get_optional_user,
    get_page_params,
)
from app.database import get_db
from app.models import User
from app.schemas import (
    ConversationCreate,
    ConversationCreated,
    ConversationInfo,
    ConversationItem,
    PageRead,
    SuccessResponse,
    UnreadState,
)
from app.services import Page, event_hub
from app.services import conversations as conversation_service

router = APIRouter(prefix="/conversations", tags=["conversations"])


@router.get("", response_model=PageRead[ConversationItem])
def list_conversations(
    locale: str | None = Depends(get_locale_param),
    params: PageParams = Depends(get_page_params),
    db: Session = Depends(get_db),
    current_user: User | None = Depends(get_optional_user),
) -> Page[ConversationItem]:
    if current_user is None:
        return Page.empty()
    return conversation_service.list_conversations(
        db, current_user, locale=locale, cursor=params.cursor, num_items=params.num_items
    )


@router.post("", response_model=ConversationCreated, status_code=status.HTTP_201_CREATED)
async def create_conversation(
    payload: ConversationCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> ConversationCreated:
    """Open (or return the existing) conversation with a friend."""

    conversation_id = conversation_service.create_conversation(db, current_user, payload.other_user_id)
    await event_hub.publish(
        [current_user.id, payload.other_user_id], {"type": "conversations_changed"}
    )
    return ConversationCreated(conversation_id=conversation_id)


@router.get("/unread", response_model=UnreadState)
def read_unread_state(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> UnreadState:
    return UnreadState(has_unread=conversation_service.has_unread_conversations(db, current_user))


@router.get("/{conversation_id}", response_model=ConversationInfo)
def read_conversation(
    conversation_id: str,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> ConversationInfo:
    return conversation_service.get_conversation_info(db, current_user, conversation_id)


@router.delete("/{conversation_id}", response_model=SuccessResponse)
async def delete_conversation(
    conversation_id: str,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> SuccessResponse:
    other_user_id = conversation_service.delete_conversation(db, current_user, conversation_id)
    await event_hub.publish([current_user.id, other_user_id], {"type": "conversations_changed"})
    return SuccessResponse()
