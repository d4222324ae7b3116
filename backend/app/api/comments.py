"""Comment thread API endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.api.deps import PageParams, get_current_user, get_optional_user, get_page_params
from app.database import get_db
from app.models import User
from app.schemas import CommentDeleted, CommentRead, PageRead
from app.services import Page
from app.services import interactions as interaction_service

router = APIRouter(prefix="/comments", tags=["comments"])


@router.get("/{comment_id}", response_model=CommentRead)
def read_comment(
    comment_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> CommentRead:
    return interaction_service.get_comment(db, current_user, comment_id)


@router.get("/{comment_id}/replies", response_model=PageRead[CommentRead])
def list_replies(
    comment_id: int,
    params: PageParams = Depends(get_page_params),
    db: Session = Depends(get_db),
    current_user: User | None = Depends(get_optional_user),
) -> Page[CommentRead]:
    if current_user is None:
        return Page.empty()
    return interaction_service.get_comment_replies(
        db, current_user, comment_id, cursor=params.cursor, num_items=params.num_items
    )


@router.delete("/{comment_id}", response_model=CommentDeleted)
def delete_comment(
    comment_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> CommentDeleted:
    """Delete a comment together with every reply beneath it."""

    return CommentDeleted(deleted_count=interaction_service.delete_comment(db, current_user, comment_id))
