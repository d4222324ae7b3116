"""Unit tests validating Pydantic schema constraints."""

from __future__ import annotations

from datetime import date

import pytest
from pydantic import ValidationError

from app.models import AttachmentType, MessageType
from app.schemas import (
    CollectionCreate,
    GroupCreate,
    MessageCorrection,
    MessageCreate,
    PostCreate,
    ProfileCreate,
    UserCreate,
)


def test_group_create_strips_whitespace():
    group = GroupCreate(title="  Study Buddies  ")
    assert group.title == "Study Buddies"
    assert group.member_ids == []


def test_collection_create_requires_non_empty_title():
    with pytest.raises(ValidationError):
        CollectionCreate(title="   ")


def test_user_create_enforces_password_length():
    with pytest.raises(ValidationError):
        UserCreate(login="bob", password="short")


def test_profile_user_name_pattern():
    base = {"name": "Bob", "gender": "male", "birth_date": date(1990, 1, 1), "country": "DE"}

    assert ProfileCreate(user_name=" bob_01 ", **base).user_name == "bob_01"
    with pytest.raises(ValidationError):
        ProfileCreate(user_name="bob smith", **base)
    with pytest.raises(ValidationError):
        ProfileCreate(user_name="bo", **base)


def test_message_create_defaults_to_text():
    message = MessageCreate(content="hi")

    assert message.type == MessageType.TEXT
    with pytest.raises(ValidationError):
        MessageCreate(type="video", content="hi")
    with pytest.raises(ValidationError):
        MessageCorrection(correction="  ")


def test_post_create_parses_attachments():
    post = PostCreate(content="trip", attachments=[{"type": "gif", "url": "https://gifs/1"}])

    assert post.attachments[0].type == AttachmentType.GIF
    with pytest.raises(ValidationError):
        PostCreate(content="trip", attachments=[{"type": "audio", "url": "x"}])
