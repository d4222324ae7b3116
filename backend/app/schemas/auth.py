"""Schemas for authentication endpoints."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field, constr


class UserCreate(BaseModel):
    """Payload for creating a new account via registration."""

    login: constr(min_length=3, max_length=64) = Field(
        ..., description="Unique user login consisting of 3-64 characters"
    )
    password: constr(min_length=8, max_length=128) = Field(
        ..., description="Plain text password that will be hashed before storing"
    )


class UserRead(BaseModel):
    """Representation of an account returned from the API."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    login: str
    user_name: str | None = None
    name: str = ""
    created_at: datetime


class LoginRequest(BaseModel):
    """Payload for user login."""

    login: constr(min_length=3, max_length=64) = Field(..., description="User login")
    password: constr(min_length=8, max_length=128) = Field(..., description="User password")


class Token(BaseModel):
    """Access token returned after successful authentication."""

    access_token: str = Field(..., description="JWT access token")
    token_type: str = Field(default="bearer", description="Token type, always 'bearer'")
    expires_in: int | None = Field(
        default=None,
        description="Number of seconds until the access token expires",
    )
