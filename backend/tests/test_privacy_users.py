"""Privacy gate, blocking and profile lookups."""

from __future__ import annotations

from datetime import date, datetime, timedelta, timezone

import pytest
from sqlalchemy import select, update

from app.core.errors import ConflictState, InvalidArgument, NotAuthorized, NotFound
from app.models import AgeGroup, Gender, Notification, NotificationType, Profile, User, UserSettings
from app.schemas import ProfileCreate
from app.services import friendships as friendship_service
from app.services import privacy as privacy_service
from app.services import users as users_service
from conftest import TEEN_BIRTH_DATE


@pytest.mark.parametrize(
    ("first", "second", "expected"),
    [
        ({}, {}, True),
        ({"gender": Gender.MALE}, {"gender": Gender.FEMALE}, True),
        ({"birth_date": TEEN_BIRTH_DATE}, {}, False),
        ({"gender_preference": True, "gender": Gender.MALE}, {"gender": Gender.FEMALE}, False),
        ({"gender": Gender.MALE}, {"gender_preference": True, "gender": Gender.FEMALE}, False),
        ({"gender_preference": True}, {"gender_preference": True}, True),
        ({"with_settings": False}, {}, False),
    ],
)
def test_privacy_compatibility_matrix(db_session, make_user, first, second, expected):
    one = make_user(**first)
    two = make_user(**second)

    assert privacy_service.are_privacy_compatible(db_session, one.id, two.id) is expected
    assert privacy_service.are_privacy_compatible(db_session, two.id, one.id) is expected


def test_missing_user_is_incompatible(db_session, make_user):
    user = make_user()

    assert privacy_service.are_privacy_compatible(db_session, user.id, 9999) is False


def test_block_is_symmetric_and_notifies(db_session, make_user):
    alice = make_user("alice")
    bob = make_user("bob")

    privacy_service.block_user(db_session, alice, bob.id)

    assert privacy_service.are_blocked(db_session, alice.id, bob.id)
    assert privacy_service.are_blocked(db_session, bob.id, alice.id)
    notification = db_session.scalars(
        select(Notification).where(Notification.recipient_id == bob.id)
    ).one()
    assert notification.type == NotificationType.USER_BLOCKED


def test_block_rules(db_session, make_user):
    alice = make_user("alice")
    bob = make_user("bob")

    with pytest.raises(InvalidArgument):
        privacy_service.block_user(db_session, alice, alice.id)
    with pytest.raises(NotFound):
        privacy_service.block_user(db_session, alice, 9999)

    privacy_service.block_user(db_session, alice, bob.id)
    with pytest.raises(ConflictState):
        privacy_service.block_user(db_session, alice, bob.id)

    privacy_service.unblock_user(db_session, alice, bob.id)
    assert not privacy_service.are_blocked(db_session, alice.id, bob.id)
    with pytest.raises(NotFound):
        privacy_service.unblock_user(db_session, alice, bob.id)


def test_blocked_users_cannot_send_friend_requests(db_session, make_user):
    alice = make_user("alice")
    bob = make_user("bob")
    privacy_service.block_user(db_session, bob, alice.id)

    with pytest.raises(NotAuthorized):
        friendship_service.send_request(db_session, alice, bob.id)


def test_get_user_profile_outcomes(db_session, make_user, befriend):
    alice = make_user("alice", country="FR")
    bob = make_user("bob")
    teen = make_user("teen", birth_date=TEEN_BIRTH_DATE)
    befriend(alice, bob)

    own = users_service.get_user_profile(db_session, alice, alice.id)
    assert own.ok is False and own.error == users_service.OWN_PROFILE

    restricted = users_service.get_user_profile(db_session, alice, teen.id)
    assert restricted.ok is False and restricted.error == users_service.PRIVACY_RESTRICTION

    result = users_service.get_user_profile(db_session, bob, alice.id, locale="en")
    assert result.ok is True
    assert result.profile.is_friend is True
    assert result.profile.has_pending_request is False
    assert result.profile.country == "\U0001F1EB\U0001F1F7 France"
    assert result.profile.spoken_languages == ["English"]

    with pytest.raises(NotFound):
        users_service.get_user_profile(db_session, alice, 9999)


def test_blocked_profile_is_not_authorized(db_session, make_user):
    alice = make_user("alice")
    bob = make_user("bob")
    privacy_service.block_user(db_session, alice, bob.id)

    with pytest.raises(NotAuthorized):
        users_service.get_user_profile(db_session, bob, alice.id)
    with pytest.raises(NotAuthorized):
        users_service.get_user_profile(db_session, alice, bob.id)


def _profile_payload(**overrides) -> ProfileCreate:
    data = {
        "user_name": "new_user",
        "name": "New User",
        "gender": "male",
        "birth_date": date(2000, 2, 2),
        "country": "jp",
        "spoken_languages": ["ja"],
    }
    data.update(overrides)
    return ProfileCreate(**data)


def test_create_profile_derives_age_group(db_session):
    user = User(login="fresh", hashed_password="hashed")
    db_session.add(user)
    db_session.commit()

    users_service.create_profile(db_session, user, _profile_payload(birth_date=TEEN_BIRTH_DATE))

    settings_row = db_session.scalars(
        select(UserSettings).where(UserSettings.user_id == user.id)
    ).one()
    assert settings_row.age_group == AgeGroup.TEEN
    assert user.country == "JP"

    current = users_service.get_current_profile(db_session, user)
    assert current.user_name == "new_user"
    assert current.age == 15

    with pytest.raises(ConflictState):
        users_service.create_profile(db_session, user, _profile_payload())


def test_create_profile_rejects_taken_username(db_session, make_user):
    make_user("taken_name")
    user = User(login="fresh", hashed_password="hashed")
    db_session.add(user)
    db_session.commit()

    with pytest.raises(ConflictState):
        users_service.create_profile(db_session, user, _profile_payload(user_name="taken_name"))
    assert users_service.check_username_availability(db_session, "taken_name") is False
    assert users_service.check_username_availability(db_session, "free_name") is True


def test_age_group_requires_minimum_age():
    with pytest.raises(InvalidArgument):
        users_service.age_group_for(date(2020, 1, 1), today=date(2026, 1, 1))
    assert users_service.age_group_for(date(2008, 1, 1), today=date(2026, 1, 1)) == AgeGroup.ADULT
    assert users_service.age_group_for(date(2010, 1, 1), today=date(2026, 1, 1)) == AgeGroup.TEEN


def _active(db_session, user, when: datetime) -> None:
    db_session.execute(
        update(UserSettings).where(UserSettings.user_id == user.id).values(last_active_at=when)
    )
    db_session.commit()


def _discover(db_session, user, **kwargs):
    kwargs.setdefault("cursor", None)
    kwargs.setdefault("num_items", 20)
    return users_service.discover_users(db_session, user, **kwargs)


def test_discover_users_skips_self_friends_blocks_and_incompatible(db_session, make_user, befriend):
    me = make_user("me")
    friend = make_user("friend")
    blocker = make_user("blocker")
    teen = make_user("teen", birth_date=TEEN_BIRTH_DATE)
    picky = make_user("picky", gender=Gender.MALE, gender_preference=True)
    open_minded = make_user("open", gender=Gender.MALE)
    pending = make_user("pending")
    newest = make_user("newest")
    befriend(me, friend)
    privacy_service.block_user(db_session, blocker, me.id)
    friendship_service.send_request(db_session, me, pending.id)

    base = datetime(2024, 6, 1, tzinfo=timezone.utc)
    for offset, user in enumerate([me, friend, blocker, teen, picky, open_minded, pending, newest]):
        _active(db_session, user, base + timedelta(minutes=offset))

    page = _discover(db_session, me, locale="en")

    assert [card.user_id for card in page.page] == [newest.id, pending.id, open_minded.id]
    assert page.is_done is True
    card = page.page[0]
    assert card.name == "Newest"
    assert card.country.endswith("Germany")
    assert card.spoken_languages == ["en"]
    assert card.age is not None


def test_discover_users_with_gender_preference_sees_same_gender_only(db_session, make_user):
    me = make_user("me", gender=Gender.MALE, gender_preference=True)
    same = make_user("same", gender=Gender.MALE)
    make_user("different", gender=Gender.FEMALE)

    assert [card.user_id for card in _discover(db_session, me).page] == [same.id]


def test_discover_users_pages_by_last_activity(db_session, make_user):
    me = make_user("me")
    others = [make_user(f"penpal{n}") for n in range(3)]
    base = datetime(2024, 6, 1, tzinfo=timezone.utc)
    for offset, user in enumerate(others):
        _active(db_session, user, base + timedelta(minutes=offset))
    users_service.touch_last_active(db_session, others[0].id)

    first = _discover(db_session, me, num_items=2)
    second = _discover(db_session, me, num_items=2, cursor=first.continue_cursor)

    assert [card.user_id for card in first.page] == [others[0].id, others[2].id]
    assert first.is_done is False
    assert [card.user_id for card in second.page] == [others[1].id]
    assert second.is_done is True


def test_discover_users_filters(db_session, make_user):
    me = make_user("me")
    french = make_user("french", country="FR")
    learner = make_user("learner")
    make_user("plain")
    for user, spoken, learning in ((french, ["fr"], []), (learner, ["en"], ["ja"])):
        profile = db_session.execute(select(Profile).where(Profile.user_id == user.id)).scalar_one()
        profile.spoken_languages = spoken
        profile.learning_languages = learning
    db_session.commit()

    def ids(**filters):
        return [card.user_id for card in _discover(db_session, me, **filters).page]

    assert ids(country="fr") == [french.id]
    assert ids(spoken_language="fr") == [french.id]
    assert ids(learning_language="ja") == [learner.id]
    assert ids(country="DE", learning_language="ja") == [learner.id]
    assert ids(country="JP") == []


def test_discover_users_requires_settings_and_reports_country(db_session, make_user):
    unfinished = make_user("unfinished", with_settings=False)

    with pytest.raises(NotFound):
        _discover(db_session, unfinished)
    assert users_service.get_sender_country(unfinished) == "DE"
    assert users_service.get_sender_country(None) is None
