"""Feed, post and reaction API endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends, File, UploadFile, status
from sqlalchemy.orm import Session

from app.api.deps import (
    PageParams,
    get_current_user,
    get_locale_param,
    get_optional_user,
    get_page_params,
)
from app.core.storage import get_url, store_post_attachment
from app.database import get_db
from app.models import User
from app.schemas import (
    CollectionCreate,
    CollectionRead,
    CommentCreate,
    CommentCreated,
    CommentRead,
    PageRead,
    PinState,
    PostAttachmentsUpdate,
    PostCreate,
    PostCreated,
    PostRead,
    ReactionCreate,
    ReactionRead,
    ReactionResult,
    SuccessResponse,
    UploadRead,
)
from app.services import Page, event_hub
from app.services import interactions as interaction_service
from app.services import posts as post_service

router = APIRouter(prefix="/posts", tags=["posts"])


async def _notify_post_owner(owner_id: int, actor_id: int) -> None:
    if owner_id != actor_id:
        await event_hub.publish([owner_id], {"type": "notifications_changed"})


@router.get("/feed", response_model=PageRead[PostRead])
def read_feed(
    locale: str | None = Depends(get_locale_param),
    params: PageParams = Depends(get_page_params),
    db: Session = Depends(get_db),
    current_user: User | None = Depends(get_optional_user),
) -> Page[PostRead]:
    """Posts by the caller and the caller's friends, newest first."""

    if current_user is None:
        return Page.empty()
    return post_service.get_feed_posts(
        db, current_user, locale=locale, cursor=params.cursor, num_items=params.num_items
    )


@router.post("/collections", response_model=CollectionRead, status_code=status.HTTP_201_CREATED)
def create_collection(
    payload: CollectionCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> CollectionRead:
    collection = post_service.create_collection(db, current_user, payload.title)
    return CollectionRead.model_validate(collection)


@router.get("/users/{user_id}", response_model=PageRead[PostRead])
def read_user_posts(
    user_id: int,
    locale: str | None = Depends(get_locale_param),
    params: PageParams = Depends(get_page_params),
    db: Session = Depends(get_db),
    current_user: User | None = Depends(get_optional_user),
) -> Page[PostRead]:
    """A user's posts; pinned posts lead the first page."""

    if current_user is None:
        return Page.empty()
    return post_service.get_user_posts(
        db, current_user, user_id, locale=locale, cursor=params.cursor, num_items=params.num_items
    )


@router.get("/users/{user_id}/photos", response_model=PageRead[str])
def read_user_photos(
    user_id: int,
    params: PageParams = Depends(get_page_params),
    db: Session = Depends(get_db),
    current_user: User | None = Depends(get_optional_user),
) -> Page[str]:
    if current_user is None:
        return Page.empty()
    return post_service.get_user_photos(
        db, current_user, user_id, cursor=params.cursor, num_items=params.num_items
    )


@router.post("", response_model=PostCreated, status_code=status.HTTP_201_CREATED)
def create_post(
    payload: PostCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> PostCreated:
    post = post_service.create_post(
        db,
        current_user,
        payload.content,
        attachments=payload.attachments,
        collection_id=payload.collection_id,
    )
    return PostCreated(post_id=post.id)


@router.get("/{post_id}", response_model=PostRead)
def read_post(
    post_id: int,
    locale: str | None = Depends(get_locale_param),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> PostRead:
    return post_service.get_post_details(db, current_user, post_id, locale=locale)


@router.delete("/{post_id}", response_model=SuccessResponse)
def delete_post(
    post_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> SuccessResponse:
    post_service.delete_post(db, current_user, post_id)
    return SuccessResponse()


@router.post("/{post_id}/uploads", response_model=UploadRead, status_code=status.HTTP_201_CREATED)
async def upload_post_attachment(
    post_id: int,
    file: UploadFile = File(...),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> UploadRead:
    """Store one image for a post; its key is then passed to the attachments update."""

    post_service.get_owned_post(db, current_user, post_id)
    stored = await store_post_attachment(post_id, file)
    return UploadRead(
        key=stored.key,
        url=get_url(stored.key),
        content_type=stored.content_type,
        file_size=stored.file_size,
    )


@router.put("/{post_id}/attachments", response_model=PostRead)
def update_post_attachments(
    post_id: int,
    payload: PostAttachmentsUpdate,
    locale: str | None = Depends(get_locale_param),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> PostRead:
    post_service.update_post_attachments(db, current_user, post_id, payload.attachments)
    return post_service.get_post_details(db, current_user, post_id, locale=locale)


@router.post("/{post_id}/pin", response_model=PinState)
def toggle_pin(
    post_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> PinState:
    return PinState(is_pinned=post_service.toggle_pin_post(db, current_user, post_id))


@router.post("/{post_id}/reactions", response_model=ReactionResult)
async def react_to_post(
    post_id: int,
    payload: ReactionCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> ReactionResult:
    """Add, replace or (with the same emoji) remove the caller's reaction."""

    outcome = interaction_service.add_post_reaction(db, current_user, post_id, payload.emoji)
    if outcome.has_reacted:
        post = post_service.get_post(db, post_id)
        await _notify_post_owner(post.user_id, current_user.id)
    return ReactionResult(has_reacted=outcome.has_reacted, user_reaction=outcome.user_reaction)


@router.get("/{post_id}/reactions", response_model=PageRead[ReactionRead])
def list_post_reactions(
    post_id: int,
    locale: str | None = Depends(get_locale_param),
    params: PageParams = Depends(get_page_params),
    db: Session = Depends(get_db),
    current_user: User | None = Depends(get_optional_user),
) -> Page[ReactionRead]:
    if current_user is None:
        return Page.empty()
    return interaction_service.get_post_reactions(
        db, current_user, post_id, locale=locale, cursor=params.cursor, num_items=params.num_items
    )


@router.get("/{post_id}/comments", response_model=PageRead[CommentRead])
def list_post_comments(
    post_id: int,
    params: PageParams = Depends(get_page_params),
    db: Session = Depends(get_db),
    current_user: User | None = Depends(get_optional_user),
) -> Page[CommentRead]:
    """Top-level comments; replies are fetched per comment."""

    if current_user is None:
        return Page.empty()
    return interaction_service.get_comments(
        db, current_user, post_id, cursor=params.cursor, num_items=params.num_items
    )


@router.post("/{post_id}/comments", response_model=CommentCreated, status_code=status.HTTP_201_CREATED)
async def comment_on_post(
    post_id: int,
    payload: CommentCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> CommentCreated:
    comment = interaction_service.comment_post(
        db,
        current_user,
        post_id,
        payload.content,
        reply_parent_id=payload.reply_parent_id,
        attachment=payload.attachment,
    )
    post = post_service.get_post(db, post_id)
    await _notify_post_owner(post.user_id, current_user.id)
    return CommentCreated(comment_id=comment.id)
