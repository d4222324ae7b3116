"""Shared pytest fixtures for backend tests."""

from __future__ import annotations

import sys
from contextlib import contextmanager
from datetime import date
from pathlib import Path
from typing import Callable, Iterator

import pytest
from fastapi.testclient import TestClient
from passlib.context import CryptContext
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

ROOT_DIR = Path(__file__).resolve().parents[1]
if str(ROOT_DIR) not in sys.path:
    sys.path.insert(0, str(ROOT_DIR))

from app.api import ws as ws_module
from app.config import get_settings
from app.core import security
from app.database import get_db
from app.main import app
from app.models import (
    Base,
    Friendship,
    FriendshipStatus,
    Gender,
    Profile,
    User,
    UserSettings,
)
from app.services.friendships import canonical_pair
from app.services.users import age_group_for

security.pwd_context = CryptContext(schemes=["pbkdf2_sha256"], deprecated="auto")

ADULT_BIRTH_DATE = date(1990, 5, 17)
TEEN_BIRTH_DATE = date(date.today().year - 15, 1, 1)


@pytest.fixture()
def test_engine() -> Iterator[Engine]:
    """Provide an in-memory SQLite engine for isolated tests."""

    engine = create_engine(
        "sqlite+pysqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
        future=True,
    )
    Base.metadata.create_all(engine)
    try:
        yield engine
    finally:
        Base.metadata.drop_all(engine)
        engine.dispose()


@pytest.fixture()
def session_factory(test_engine) -> sessionmaker[Session]:
    """Return a session factory bound to the test engine."""

    return sessionmaker(bind=test_engine, future=True)


@pytest.fixture()
def db_session(session_factory) -> Iterator[Session]:
    """Yield a SQLAlchemy session for unit tests."""

    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture()
def client(session_factory, monkeypatch) -> Iterator[TestClient]:
    """Yield a FastAPI TestClient with the database dependency overridden."""

    def override_get_db() -> Iterator[Session]:
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    @contextmanager
    def override_db_session() -> Iterator[Session]:
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    monkeypatch.setattr(ws_module, "get_db_session", override_db_session)
    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture()
def settings():
    return get_settings()


@pytest.fixture()
def media_root(tmp_path, monkeypatch, settings) -> Path:
    """Point blob storage at a temporary directory."""

    monkeypatch.setattr(settings, "media_root", tmp_path)
    return tmp_path


@pytest.fixture()
def make_user(db_session) -> Callable[..., User]:
    """Create a user with a completed profile and privacy settings."""

    counter = {"value": 0}

    def factory(
        name: str | None = None,
        *,
        gender: Gender = Gender.FEMALE,
        birth_date: date = ADULT_BIRTH_DATE,
        country: str = "DE",
        gender_preference: bool = False,
        with_settings: bool = True,
    ) -> User:
        counter["value"] += 1
        name = name or f"user{counter['value']}"
        user = User(
            login=name,
            hashed_password="hashed",
            user_name=name,
            name=name.title(),
            gender=gender,
            birth_date=birth_date,
            country=country,
        )
        db_session.add(user)
        db_session.flush()
        db_session.add(Profile(user_id=user.id, about_me="", spoken_languages=["en"]))
        if with_settings:
            age_group = age_group_for(birth_date)
            db_session.add(
                UserSettings(
                    user_id=user.id,
                    gender_preference=gender_preference,
                    age_group=age_group,
                )
            )
        db_session.commit()
        return user

    return factory


@pytest.fixture()
def befriend(db_session) -> Callable[[User, User], Friendship]:
    """Insert an accepted friendship between two users."""

    def factory(first: User, second: User) -> Friendship:
        user_a_id, user_b_id = canonical_pair(first.id, second.id)
        friendship = Friendship(
            user_a_id=user_a_id,
            user_b_id=user_b_id,
            sender_id=first.id,
            status=FriendshipStatus.ACCEPTED,
        )
        db_session.add(friendship)
        db_session.commit()
        return friendship

    return factory
