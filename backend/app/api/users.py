"""Profile, privacy and blocking API endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends, File, Query, UploadFile, status
from sqlalchemy.orm import Session

from app.api.deps import PageParams, get_current_user, get_locale_param, get_optional_user, get_page_params
from app.core.storage import store_profile_picture
from app.database import get_db
from app.models import User
from app.schemas import (
    BlockRead,
    CurrentProfileRead,
    DiscoverUserCard,
    PageRead,
    ProfileCreate,
    SenderCountry,
    SuccessResponse,
    UsernameAvailability,
    UserProfileResult,
)
from app.services import Page, event_hub
from app.services import privacy as privacy_service
from app.services import users as users_service

router = APIRouter(prefix="/users", tags=["users"])


@router.post("/me/profile", response_model=CurrentProfileRead, status_code=status.HTTP_201_CREATED)
def create_profile(
    payload: ProfileCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> CurrentProfileRead:
    """Complete the account with profile details and privacy settings."""

    users_service.create_profile(db, current_user, payload)
    return users_service.get_current_profile(db, current_user)


@router.get("/me", response_model=CurrentProfileRead)
def read_current_profile(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> CurrentProfileRead:
    return users_service.get_current_profile(db, current_user)


@router.post("/me/picture", response_model=CurrentProfileRead)
async def upload_profile_picture(
    picture: UploadFile = File(...),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> CurrentProfileRead:
    """Store a new profile picture for the user."""

    stored = await store_profile_picture(current_user.id, picture)
    users_service.update_profile_picture(db, current_user, stored.key)
    return users_service.get_current_profile(db, current_user)


@router.get("/me/country", response_model=SenderCountry)
def read_sender_country(current_user: User | None = Depends(get_optional_user)) -> SenderCountry:
    return SenderCountry(country=users_service.get_sender_country(current_user))


@router.get("/discover", response_model=PageRead[DiscoverUserCard])
def discover_users(
    country: str | None = Query(default=None, min_length=2, max_length=8),
    spoken_language: str | None = Query(default=None, min_length=2, max_length=16),
    learning_language: str | None = Query(default=None, min_length=2, max_length=16),
    locale: str | None = Depends(get_locale_param),
    params: PageParams = Depends(get_page_params),
    db: Session = Depends(get_db),
    current_user: User | None = Depends(get_optional_user),
) -> Page[DiscoverUserCard]:
    """Potential penpals, optionally narrowed by country and languages."""

    if current_user is None:
        return Page.empty()
    return users_service.discover_users(
        db,
        current_user,
        country=country,
        spoken_language=spoken_language,
        learning_language=learning_language,
        locale=locale,
        cursor=params.cursor,
        num_items=params.num_items,
    )


@router.get("/username-availability", response_model=UsernameAvailability)
def check_username(
    user_name: str = Query(..., min_length=1, max_length=32),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> UsernameAvailability:
    available = users_service.check_username_availability(db, user_name)
    return UsernameAvailability(user_name=user_name.strip(), available=available)


@router.get("/{user_id}/profile", response_model=UserProfileResult)
def read_user_profile(
    user_id: int,
    locale: str | None = Depends(get_locale_param),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> UserProfileResult:
    return users_service.get_user_profile(db, current_user, user_id, locale=locale)


@router.post("/{user_id}/block", response_model=BlockRead, status_code=status.HTTP_201_CREATED)
async def block_user(
    user_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> BlockRead:
    block = privacy_service.block_user(db, current_user, user_id)
    await event_hub.publish([user_id], {"type": "notifications_changed"})
    return BlockRead.model_validate(block)


@router.delete("/{user_id}/block", response_model=SuccessResponse)
def unblock_user(
    user_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> SuccessResponse:
    privacy_service.unblock_user(db, current_user, user_id)
    return SuccessResponse()
