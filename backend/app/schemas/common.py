"""Shared response envelopes."""

from __future__ import annotations

from typing import Generic, TypeVar

from pydantic import BaseModel, ConfigDict, Field

T = TypeVar("T")


class PageRead(BaseModel, Generic[T]):
    """One page of a cursor-paginated list."""

    model_config = ConfigDict(from_attributes=True)

    page: list[T] = Field(default_factory=list)
    is_done: bool = Field(default=True, description="True when no further pages exist")
    continue_cursor: str = Field(
        default="",
        description="Opaque cursor to pass back as ``cursor`` for the next page",
    )


class UserSummary(BaseModel):
    """Compact user card embedded in other payloads."""

    user_id: int
    name: str
    profile_picture: str | None = None
    is_premium: bool = False


class SuccessResponse(BaseModel):
    success: bool = True
