"""User profile creation and lookup."""

from __future__ import annotations

import logging
from datetime import date

from sqlalchemy import and_, exists, or_, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.core.errors import ConflictState, InvalidArgument, NotAuthorized, NotFound
from app.core.locale import calculate_age, format_country, get_language_name
from app.core.storage import get_public_url, get_url
from app.models import (
    AgeGroup,
    BlockedUser,
    Friendship,
    FriendshipStatus,
    Profile,
    User,
    UserSettings,
)
from app.models.base import utcnow
from app.schemas.users import (
    CurrentProfileRead,
    DiscoverUserCard,
    ProfileCreate,
    UserProfileRead,
    UserProfileResult,
)
from app.services.friendships import are_friends, has_pending_request
from app.services.pagination import Page, paginate
from app.services.privacy import are_blocked, are_privacy_compatible
from app.services.projections import load_users

logger = logging.getLogger(__name__)

OWN_PROFILE = "OWN_PROFILE"
PRIVACY_RESTRICTION = "PRIVACY_RESTRICTION"

_MINIMUM_AGE = 13
_ADULT_AGE = 18


def age_group_for(birth_date: date, today: date | None = None) -> AgeGroup:
    age = calculate_age(birth_date, today)
    if age < _MINIMUM_AGE:
        raise InvalidArgument(f"Users must be at least {_MINIMUM_AGE} years old")
    return AgeGroup.TEEN if age < _ADULT_AGE else AgeGroup.ADULT


def _user_name_taken(db: Session, user_name: str, exclude_user_id: int | None = None) -> bool:
    condition = User.user_name == user_name
    if exclude_user_id is not None:
        condition = condition & (User.id != exclude_user_id)
    return bool(db.scalar(select(exists().where(condition))))


def create_profile(db: Session, user: User, payload: ProfileCreate) -> User:
    """Complete the caller's account with profile details and privacy settings."""

    if db.scalar(select(exists().where(Profile.user_id == user.id))):
        raise ConflictState("Profile already exists")
    if _user_name_taken(db, payload.user_name, exclude_user_id=user.id):
        raise ConflictState("Username is already taken")
    age_group = age_group_for(payload.birth_date)

    user.user_name = payload.user_name
    user.name = payload.name
    user.gender = payload.gender
    user.birth_date = payload.birth_date
    user.country = payload.country.upper()
    if payload.profile_picture:
        user.profile_picture = payload.profile_picture

    db.add(
        Profile(
            user_id=user.id,
            about_me=payload.about_me,
            spoken_languages=list(payload.spoken_languages),
            learning_languages=list(payload.learning_languages),
            hobbies=list(payload.hobbies),
        )
    )
    db.add(
        UserSettings(
            user_id=user.id,
            gender_preference=payload.gender_preference,
            age_group=age_group,
        )
    )
    try:
        db.commit()
    except IntegrityError as exc:
        db.rollback()
        raise ConflictState("Profile already exists or username is taken") from exc
    db.refresh(user)
    logger.info("User %s completed profile as %s", user.id, user.user_name)
    return user


def update_profile_picture(db: Session, user: User, key: str) -> User:
    user.profile_picture = key
    db.commit()
    db.refresh(user)
    return user


def _profile_and_settings(db: Session, user_id: int) -> tuple[Profile, UserSettings]:
    profile = db.execute(select(Profile).where(Profile.user_id == user_id)).scalar_one_or_none()
    user_settings = db.execute(
        select(UserSettings).where(UserSettings.user_id == user_id)
    ).scalar_one_or_none()
    if profile is None or user_settings is None:
        raise NotFound("Profile not found")
    return profile, user_settings


def get_current_profile(db: Session, user: User) -> CurrentProfileRead:
    profile, user_settings = _profile_and_settings(db, user.id)
    return CurrentProfileRead(
        id=user.id,
        login=user.login,
        user_name=user.user_name,
        name=user.name,
        profile_picture=get_url(user.profile_picture),
        gender=user.gender,
        birth_date=user.birth_date,
        age=calculate_age(user.birth_date),
        age_group=user_settings.age_group,
        country=user.country,
        is_premium=user.is_premium,
        about_me=profile.about_me,
        spoken_languages=profile.spoken_languages,
        learning_languages=profile.learning_languages,
        hobbies=profile.hobbies,
        gender_preference=user_settings.gender_preference,
    )


def get_user_profile(
    db: Session, user: User, target_id: int, *, locale: str | None = None
) -> UserProfileResult:
    """Look up another user's profile as seen by ``user``.

    Blocks in either direction are an authorization failure; viewing yourself
    or a privacy-incompatible user yields a result with an error code instead
    of a profile.
    """

    target = db.get(User, target_id)
    if target is None:
        raise NotFound("User not found")
    if target.id == user.id:
        return UserProfileResult(ok=False, error=OWN_PROFILE)
    if are_blocked(db, user.id, target.id):
        raise NotAuthorized("Profile is not available")
    if not are_privacy_compatible(db, user.id, target.id):
        return UserProfileResult(ok=False, error=PRIVACY_RESTRICTION)

    profile, _ = _profile_and_settings(db, target.id)
    return UserProfileResult(
        ok=True,
        profile=UserProfileRead(
            user_id=target.id,
            profile_picture=get_url(target.profile_picture),
            name=target.name,
            user_name=target.user_name,
            gender=target.gender,
            age=calculate_age(target.birth_date) if target.birth_date else None,
            is_premium=target.is_premium,
            country=format_country(target.country, locale),
            about_me=profile.about_me,
            spoken_languages=[get_language_name(code, locale) for code in profile.spoken_languages],
            learning_languages=[get_language_name(code, locale) for code in profile.learning_languages],
            hobbies=profile.hobbies,
            is_friend=are_friends(db, user.id, target.id),
            has_pending_request=has_pending_request(db, user.id, target.id),
        ),
    )


def check_username_availability(db: Session, user_name: str) -> bool:
    user_name = user_name.strip()
    if not user_name:
        raise InvalidArgument("Username cannot be empty")
    return not _user_name_taken(db, user_name)


def touch_last_active(db: Session, user_id: int) -> None:
    db.execute(
        update(UserSettings).where(UserSettings.user_id == user_id).values(last_active_at=utcnow())
    )
    db.commit()


def get_sender_country(user: User | None) -> str | None:
    return user.country if user is not None else None


def _discovery_statement(user: User, user_settings: UserSettings, *, country: str | None):
    """Candidates in the caller's age group that both sides' preferences allow."""

    blocked = exists().where(
        or_(
            and_(BlockedUser.blocker_id == user.id, BlockedUser.blocked_id == UserSettings.user_id),
            and_(BlockedUser.blocker_id == UserSettings.user_id, BlockedUser.blocked_id == user.id),
        )
    )
    befriended = exists().where(
        Friendship.status == FriendshipStatus.ACCEPTED,
        or_(
            and_(Friendship.user_a_id == user.id, Friendship.user_b_id == UserSettings.user_id),
            and_(Friendship.user_a_id == UserSettings.user_id, Friendship.user_b_id == user.id),
        ),
    )
    stmt = (
        select(UserSettings)
        .join(User, User.id == UserSettings.user_id)
        .where(
            UserSettings.age_group == user_settings.age_group,
            UserSettings.user_id != user.id,
            or_(UserSettings.gender_preference.is_(False), User.gender == user.gender),
            ~blocked,
            ~befriended,
        )
    )
    if user_settings.gender_preference:
        stmt = stmt.where(User.gender == user.gender)
    if country:
        stmt = stmt.where(User.country == country.upper())
    return stmt


def discover_users(
    db: Session,
    user: User,
    *,
    country: str | None = None,
    spoken_language: str | None = None,
    learning_language: str | None = None,
    locale: str | None = None,
    cursor: str | None,
    num_items: int,
) -> Page[DiscoverUserCard]:
    """Page through potential penpals, most recently active first.

    Self, friends, blocked users in either direction and privacy-incompatible
    users never appear. Language filters apply to the scanned page, so a page
    may hold fewer than ``num_items`` cards while ``is_done`` is still false.
    """

    user_settings = db.execute(
        select(UserSettings).where(UserSettings.user_id == user.id)
    ).scalar_one_or_none()
    if user_settings is None:
        raise NotFound("Profile not found")

    scanned = paginate(
        db,
        _discovery_statement(user, user_settings, country=country),
        time_column=UserSettings.last_active_at,
        id_column=UserSettings.id,
        cursor=cursor,
        num_items=num_items,
    )
    candidate_ids = [row.user_id for row in scanned.page]
    users = load_users(db, candidate_ids)
    profiles = {
        profile.user_id: profile
        for profile in db.scalars(select(Profile).where(Profile.user_id.in_(candidate_ids))).all()
    }

    cards: list[DiscoverUserCard] = []
    for candidate_id in candidate_ids:
        candidate, profile = users.get(candidate_id), profiles.get(candidate_id)
        if candidate is None or profile is None:
            continue
        if spoken_language and spoken_language not in profile.spoken_languages:
            continue
        if learning_language and learning_language not in profile.learning_languages:
            continue
        cards.append(
            DiscoverUserCard(
                user_id=candidate.id,
                profile_picture=get_public_url(candidate.profile_picture),
                name=candidate.name,
                gender=candidate.gender,
                age=calculate_age(candidate.birth_date) if candidate.birth_date else None,
                country=format_country(candidate.country, locale),
                spoken_languages=profile.spoken_languages,
                learning_languages=profile.learning_languages,
            )
        )
    return Page(page=cards, is_done=scanned.is_done, continue_cursor=scanned.continue_cursor)
