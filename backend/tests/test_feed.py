"""Posts, feed visibility, reactions and comment threads."""

from __future__ import annotations

import pytest
from sqlalchemy import func, select

from app.core.errors import InvalidArgument, NotAuthorized, NotFound
from app.core.storage import delete_object
from app.models import (
    Collection,
    Comment,
    Notification,
    NotificationType,
    Post,
    Reaction,
)
from app.services import interactions as interaction_service
from app.services import posts as post_service


def _notifications(db_session, recipient_id: int) -> list[NotificationType]:
    return list(
        db_session.scalars(
            select(Notification.type)
            .where(Notification.recipient_id == recipient_id)
            .order_by(Notification.id)
        ).all()
    )


def _reload(db_session, model, row_id):
    db_session.expire_all()
    return db_session.get(model, row_id)


@pytest.fixture()
def friends(make_user, befriend):
    alice = make_user("alice")
    bob = make_user("bob")
    befriend(alice, bob)
    return alice, bob


def test_create_post_validation(db_session, make_user, settings):
    alice = make_user("alice")
    bob = make_user("bob")

    with pytest.raises(InvalidArgument):
        post_service.create_post(db_session, alice, "   ")
    with pytest.raises(InvalidArgument):
        post_service.create_post(db_session, alice, "x" * (settings.post_max_length + 1))
    too_many = [{"type": "gif", "url": f"https://gifs/{n}"} for n in range(settings.post_max_attachments + 1)]
    with pytest.raises(InvalidArgument):
        post_service.create_post(db_session, alice, "gifs", attachments=too_many)
    with pytest.raises(NotFound):
        post_service.create_post(db_session, alice, "hello", collection_id=9999)

    collection = post_service.create_collection(db_session, bob, "Travel")
    with pytest.raises(NotAuthorized):
        post_service.create_post(db_session, alice, "hello", collection_id=collection.id)

    post = post_service.create_post(db_session, bob, "Lisbon", collection_id=collection.id)
    assert post.reactions_count == 0 and post.comments_count == 0 and post.is_pinned is False
    assert _reload(db_session, Collection, collection.id).posts_count == 1


def test_feed_shows_friends_and_self_only(db_session, make_user, befriend, settings, monkeypatch):
    alice = make_user("alice")
    bob = make_user("bob")
    stranger = make_user("stranger")
    befriend(alice, bob)
    monkeypatch.setattr(settings, "feed_trusted_author_ids", [stranger.id])

    own = post_service.create_post(db_session, alice, "mine")
    friend_post = post_service.create_post(db_session, bob, "from bob")
    post_service.create_post(db_session, stranger, "from a stranger")

    page = post_service.get_feed_posts(db_session, alice, locale="en", cursor=None, num_items=10)

    assert [item.post_id for item in page.page] == [friend_post.id, own.id]
    assert page.page[0].is_owner is False
    assert page.page[1].is_owner is True
    assert page.page[0].post_author.user_id == bob.id
    assert page.is_done is True


def test_trusted_author_posts_are_reachable_without_friendship(
    db_session, make_user, settings, monkeypatch
):
    reader = make_user("reader")
    star = make_user("star")
    other = make_user("other")
    star_post = post_service.create_post(db_session, star, "announcement")
    other_post = post_service.create_post(db_session, other, "private")

    with pytest.raises(NotAuthorized):
        post_service.get_post_details(db_session, reader, star_post.id)

    monkeypatch.setattr(settings, "feed_trusted_author_ids", [star.id])

    details = post_service.get_post_details(db_session, reader, star_post.id)
    assert details.content == "announcement"
    interaction_service.add_post_reaction(db_session, reader, star_post.id, "\U0001F44D")
    assert post_service.get_user_posts(
        db_session, reader, star.id, locale=None, cursor=None, num_items=5
    ).page[0].post_id == star_post.id

    with pytest.raises(NotAuthorized):
        interaction_service.add_post_reaction(db_session, reader, other_post.id, "\U0001F44D")
    with pytest.raises(NotAuthorized):
        post_service.get_user_posts(db_session, reader, other.id, locale=None, cursor=None, num_items=5)


def test_pinned_posts_lead_the_first_page_only(db_session, friends):
    alice, bob = friends
    first = post_service.create_post(db_session, alice, "first")
    second = post_service.create_post(db_session, alice, "second")
    third = post_service.create_post(db_session, alice, "third")

    with pytest.raises(NotAuthorized):
        post_service.toggle_pin_post(db_session, bob, first.id)
    assert post_service.toggle_pin_post(db_session, alice, first.id) is True

    page_one = post_service.get_user_posts(
        db_session, bob, alice.id, locale=None, cursor=None, num_items=1
    )
    assert [item.post_id for item in page_one.page] == [first.id, third.id]
    assert page_one.page[0].is_pinned is True

    page_two = post_service.get_user_posts(
        db_session, bob, alice.id, locale=None, cursor=page_one.continue_cursor, num_items=1
    )
    assert [item.post_id for item in page_two.page] == [second.id]
    assert page_two.is_done is True

    assert post_service.toggle_pin_post(db_session, alice, first.id) is False


def test_reaction_toggle_replace_and_counts(db_session, friends):
    alice, bob = friends
    post = post_service.create_post(db_session, alice, "react to me")

    outcome = interaction_service.add_post_reaction(db_session, bob, post.id, "❤️")
    assert outcome.has_reacted is True
    assert _reload(db_session, Post, post.id).reactions_count == 1
    assert _notifications(db_session, alice.id) == [NotificationType.POST_REACTION]

    outcome = interaction_service.add_post_reaction(db_session, bob, post.id, "\U0001F602")
    assert outcome.user_reaction == "\U0001F602"
    assert _reload(db_session, Post, post.id).reactions_count == 1

    details = post_service.get_post_details(db_session, bob, post.id)
    assert details.has_reacted is True
    assert details.user_reaction == "\U0001F602"

    reactions = interaction_service.get_post_reactions(
        db_session, alice, post.id, locale="en", cursor=None, num_items=10
    )
    assert [(item.user_id, item.emoji) for item in reactions.page] == [(bob.id, "\U0001F602")]
    assert reactions.page[0].country == "\U0001F1E9\U0001F1EA Germany"

    outcome = interaction_service.add_post_reaction(db_session, bob, post.id, "\U0001F602")
    assert outcome.has_reacted is False and outcome.user_reaction is None
    assert _reload(db_session, Post, post.id).reactions_count == 0
    assert db_session.scalar(select(func.count()).select_from(Reaction)) == 0
    assert _notifications(db_session, alice.id) == [NotificationType.POST_REACTION]

    with pytest.raises(InvalidArgument):
        interaction_service.add_post_reaction(db_session, bob, post.id, "")


def test_own_reaction_does_not_notify(db_session, make_user):
    alice = make_user("alice")
    post = post_service.create_post(db_session, alice, "self love")

    interaction_service.add_post_reaction(db_session, alice, post.id, "\U0001F44D")

    assert _notifications(db_session, alice.id) == []


def test_comments_replies_and_notifications(db_session, make_user, befriend):
    alice = make_user("alice")
    bob = make_user("bob")
    carol = make_user("carol")
    befriend(alice, bob)
    befriend(alice, carol)
    post = post_service.create_post(db_session, alice, "discuss")

    with pytest.raises(InvalidArgument):
        interaction_service.comment_post(db_session, bob, post.id, "  ")
    with pytest.raises(NotFound):
        interaction_service.comment_post(db_session, bob, post.id, "hi", reply_parent_id=9999)

    top = interaction_service.comment_post(db_session, bob, post.id, " nice post ")
    assert top.content == "nice post"
    assert _notifications(db_session, alice.id) == [NotificationType.POST_COMMENTED]

    reply = interaction_service.comment_post(
        db_session, carol, post.id, "agreed", reply_parent_id=top.id
    )
    assert _notifications(db_session, bob.id) == [NotificationType.COMMENT_REPLIED]
    assert _notifications(db_session, alice.id) == [
        NotificationType.POST_COMMENTED,
        NotificationType.COMMENT_REPLIED,
    ]

    assert _reload(db_session, Post, post.id).comments_count == 2
    assert _reload(db_session, Comment, top.id).replies_count == 1

    top_level = interaction_service.get_comments(db_session, alice, post.id, cursor=None, num_items=10)
    assert [item.comment_id for item in top_level.page] == [top.id]
    assert top_level.page[0].replies_count == 1

    replies = interaction_service.get_comment_replies(db_session, alice, top.id, cursor=None, num_items=10)
    assert [item.comment_id for item in replies.page] == [reply.id]
    assert replies.page[0].is_owner is False

    single = interaction_service.get_comment(db_session, carol, reply.id)
    assert single.is_owner is True
    assert single.reply_parent_id == top.id

    other_post = post_service.create_post(db_session, alice, "elsewhere")
    with pytest.raises(InvalidArgument):
        interaction_service.comment_post(
            db_session, bob, other_post.id, "misplaced", reply_parent_id=top.id
        )


def test_delete_comment_removes_subtree(db_session, friends):
    alice, bob = friends
    post = post_service.create_post(db_session, alice, "thread")
    root = interaction_service.comment_post(db_session, bob, post.id, "root")
    child = interaction_service.comment_post(db_session, alice, post.id, "child", reply_parent_id=root.id)
    grandchild = interaction_service.comment_post(
        db_session, bob, post.id, "grandchild", reply_parent_id=child.id
    )
    interaction_service.comment_post(db_session, alice, post.id, "leaf", reply_parent_id=grandchild.id)
    sibling = interaction_service.comment_post(db_session, alice, post.id, "sibling")

    assert _reload(db_session, Post, post.id).comments_count == 5

    with pytest.raises(NotAuthorized):
        interaction_service.delete_comment(db_session, bob, child.id)

    removed = interaction_service.delete_comment(db_session, alice, child.id)

    assert removed == 3
    assert _reload(db_session, Post, post.id).comments_count == 2
    assert _reload(db_session, Comment, root.id).replies_count == 0
    remaining = set(db_session.scalars(select(Comment.id)).all())
    assert remaining == {root.id, sibling.id}

    with pytest.raises(NotFound):
        interaction_service.delete_comment(db_session, alice, child.id)


def _store(media_root, key: str) -> None:
    path = media_root / key
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(b"\x89PNG")


def _with_images(db_session, user, content: str, *names: str, gifs: tuple[str, ...] = ()):
    post = post_service.create_post(db_session, user, content)
    attachments = [{"type": "image", "url": f"posts/{post.id}/{name}"} for name in names]
    attachments += [{"type": "gif", "url": url} for url in gifs]
    return post_service.update_post_attachments(db_session, user, post.id, attachments)


def test_delete_post_cleans_up_rows_and_images(db_session, friends, media_root):
    alice, bob = friends
    post = post_service.create_post(db_session, alice, "holiday")
    image_key = f"posts/{post.id}/photo.png"
    _store(media_root, image_key)
    post_service.update_post_attachments(
        db_session,
        alice,
        post.id,
        [
            {"type": "image", "url": image_key},
            {"type": "gif", "url": "https://gifs/party"},
        ],
    )
    interaction_service.add_post_reaction(db_session, bob, post.id, "\U0001F44D")
    interaction_service.comment_post(db_session, bob, post.id, "wow")

    with pytest.raises(NotAuthorized):
        post_service.delete_post(db_session, bob, post.id)

    post_service.delete_post(db_session, alice, post.id)

    assert _reload(db_session, Post, post.id) is None
    assert db_session.scalar(select(func.count()).select_from(Comment)) == 0
    assert db_session.scalar(select(func.count()).select_from(Reaction)) == 0
    assert not (media_root / image_key).exists()


def test_image_attachments_must_come_from_the_posts_own_uploads(db_session, friends, media_root):
    alice, bob = friends
    avatar_key = f"avatars/{alice.id}/face.png"
    _store(media_root, avatar_key)
    alice_post = _with_images(db_session, alice, "mine", "beach.png")
    _store(media_root, f"posts/{alice_post.id}/beach.png")
    bob_post = post_service.create_post(db_session, bob, "borrowing")

    with pytest.raises(InvalidArgument):
        post_service.create_post(
            db_session, bob, "eager", attachments=[{"type": "image", "url": avatar_key}]
        )
    for key in (
        avatar_key,
        f"posts/{alice_post.id}/beach.png",
        f"posts/{bob_post.id}/../{alice_post.id}/beach.png",
        f"posts/{bob_post.id}",
    ):
        with pytest.raises(NotAuthorized):
            post_service.update_post_attachments(
                db_session, bob, bob_post.id, [{"type": "image", "url": key}]
            )

    post_service.delete_post(db_session, bob, bob_post.id)

    assert (media_root / avatar_key).exists()
    assert (media_root / f"posts/{alice_post.id}/beach.png").exists()


def test_delete_object_stays_inside_media_root(media_root):
    sibling = media_root.parent / f"{media_root.name}_old"
    sibling.mkdir()
    victim = sibling / "x.png"
    victim.write_bytes(b"\x89PNG")

    with pytest.raises(ValueError):
        delete_object(f"../{sibling.name}/x.png")

    assert victim.exists()


def test_replacing_attachments_deletes_dropped_images(db_session, friends, media_root):
    alice, _ = friends
    post = _with_images(db_session, alice, "album", "one.png", "two.png")
    for name in ("one.png", "two.png"):
        _store(media_root, f"posts/{post.id}/{name}")

    updated = post_service.update_post_attachments(
        db_session,
        alice,
        post.id,
        [
            {"type": "image", "url": f"posts/{post.id}/two.png"},
            {"type": "gif", "url": "https://gifs/wave"},
        ],
    )

    assert [item["type"] for item in updated.attachments] == ["image", "gif"]
    assert not (media_root / f"posts/{post.id}/one.png").exists()
    assert (media_root / f"posts/{post.id}/two.png").exists()


def test_user_photos_lists_image_urls(db_session, friends, settings):
    alice, bob = friends
    post = _with_images(db_session, alice, "two photos", "a.png", "b.png", gifs=("https://gifs/skip",))
    post_service.create_post(db_session, alice, "no photos")

    page = post_service.get_user_photos(db_session, bob, alice.id, cursor=None, num_items=10)

    base = settings.media_base_url.rstrip("/")
    assert page.page == [f"{base}/posts/{post.id}/a.png", f"{base}/posts/{post.id}/b.png"]


def test_update_post_attachments_is_owner_only(db_session, friends):
    alice, bob = friends
    post = post_service.create_post(db_session, alice, "uploading")
    key = f"posts/{post.id}/x.png"

    with pytest.raises(NotAuthorized):
        post_service.update_post_attachments(db_session, bob, post.id, [{"type": "image", "url": key}])

    updated = post_service.update_post_attachments(
        db_session, alice, post.id, [{"type": "image", "url": key}]
    )
    assert updated.attachments == [{"type": "image", "url": key}]
