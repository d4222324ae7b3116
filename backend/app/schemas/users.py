"""Schemas related to user profiles, privacy and blocking."""

from datetime import date, datetime

from pydantic import BaseModel, ConfigDict, Field, constr

from app.models.enums import AgeGroup, Gender


class ProfileCreate(BaseModel):
    """Payload submitted once after signup to complete the profile."""

    user_name: constr(strip_whitespace=True, min_length=3, max_length=32, pattern=r"^[A-Za-z0-9_.]+$")
    name: constr(strip_whitespace=True, min_length=1, max_length=128)
    gender: Gender
    birth_date: date
    country: constr(strip_whitespace=True, min_length=2, max_length=8) = Field(
        ..., description="ISO-2 country code or OTHER"
    )
    profile_picture: str | None = Field(default=None, description="Storage key of an uploaded picture")
    about_me: constr(max_length=1000) = ""
    spoken_languages: list[str] = Field(default_factory=list)
    learning_languages: list[str] = Field(default_factory=list)
    hobbies: list[str] = Field(default_factory=list)
    gender_preference: bool = Field(
        default=False, description="Only interact with users of the same gender"
    )


class CurrentProfileRead(BaseModel):
    """Full profile of the authenticated user."""

    id: int
    login: str
    user_name: str | None = None
    name: str
    profile_picture: str | None = None
    gender: Gender
    birth_date: date
    age: int
    age_group: AgeGroup
    country: str
    is_premium: bool
    about_me: str
    spoken_languages: list[str]
    learning_languages: list[str]
    hobbies: list[str]
    gender_preference: bool


class UserProfileRead(BaseModel):
    """Another user's profile as shown on their profile screen."""

    user_id: int
    profile_picture: str | None = None
    name: str
    user_name: str | None = None
    gender: Gender
    age: int | None = None
    is_premium: bool
    country: str
    about_me: str
    spoken_languages: list[str]
    learning_languages: list[str]
    hobbies: list[str]
    is_friend: bool
    has_pending_request: bool


class UserProfileResult(BaseModel):
    """Outcome of a profile lookup; ``error`` explains a refusal."""

    ok: bool
    error: str | None = None
    profile: UserProfileRead | None = None


class UsernameAvailability(BaseModel):
    user_name: str
    available: bool


class BlockRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    blocker_id: int
    blocked_id: int
    created_at: datetime


class DiscoverUserCard(BaseModel):
    """A candidate penpal on the discovery screen."""

    user_id: int
    profile_picture: str | None = None
    name: str
    gender: Gender
    age: int | None = None
    country: str
    spoken_languages: list[str]
    learning_languages: list[str]


class SenderCountry(BaseModel):
    country: str | None = None
