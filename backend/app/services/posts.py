"""Posts, collections and feed queries."""

from __future__ import annotations

import logging
from pathlib import PurePosixPath
from typing import Iterable, Sequence

from sqlalchemy import delete, select
from sqlalchemy.orm import Session

from app.config import get_settings
from app.core.errors import InvalidArgument, NotAuthorized, NotFound
from app.core.locale import get_relative_time
from app.core.storage import delete_object, get_url
from app.models import AttachmentType, Collection, Comment, Post, Reaction, User
from app.schemas.posts import PostRead
from app.services.counters import bump
from app.services.friendships import are_friends, get_friend_ids
from app.services.pagination import Page, paginate
from app.services.projections import load_users, post_attachment_urls, user_summary

logger = logging.getLogger(__name__)
settings = get_settings()


def is_trusted_author(user_id: int) -> bool:
    return user_id in settings.feed_trusted_author_ids


def can_access_post(db: Session, user_id: int, post: Post) -> bool:
    """Owners, friends of the owner and trusted authors' audiences may interact."""

    if post.user_id == user_id or is_trusted_author(post.user_id):
        return True
    return are_friends(db, user_id, post.user_id)


def get_post(db: Session, post_id: int) -> Post:
    post = db.get(Post, post_id)
    if post is None:
        raise NotFound("Post not found")
    return post


def get_accessible_post(db: Session, user: User, post_id: int) -> Post:
    post = get_post(db, post_id)
    if not can_access_post(db, user.id, post):
        raise NotAuthorized("You can only interact with posts from friends")
    return post


def _ensure_can_view_user(db: Session, user: User, target_id: int) -> User:
    target = db.get(User, target_id)
    if target is None:
        raise NotFound("User not found")
    if target_id != user.id and not is_trusted_author(target_id) and not are_friends(db, user.id, target_id):
        raise NotAuthorized("You can only view posts from friends")
    return target


def is_post_image_key(post_id: int, key: str) -> bool:
    """True when ``key`` names an object stored under the post's own upload prefix."""

    parts = PurePosixPath(key).parts
    return (
        len(parts) == 3
        and parts[:2] == ("posts", str(post_id))
        and parts[2] not in ("", ".", "..")
    )


def _image_keys(attachments: list[dict] | None) -> set[str]:
    return {
        item["url"]
        for item in attachments or []
        if item.get("type") == AttachmentType.IMAGE.value
    }


def _normalize_attachments(attachments: Iterable | None, post_id: int | None = None) -> list[dict] | None:
    """Validate attachments; image keys must belong to ``post_id``.

    Without a post id (at creation time) only gif attachments are accepted,
    images are uploaded against the existing post and attached afterwards.
    """

    if attachments is None:
        return None
    normalized = []
    for item in attachments:
        data = item if isinstance(item, dict) else item.model_dump()
        kind = AttachmentType(data["type"])
        url = str(data["url"])
        if kind is AttachmentType.IMAGE:
            if post_id is None:
                raise InvalidArgument("Upload images after the post has been created")
            if not is_post_image_key(post_id, url):
                raise NotAuthorized("Image attachments must be uploaded for this post")
        normalized.append({"type": kind.value, "url": url})
    if len(normalized) > settings.post_max_attachments:
        raise InvalidArgument(
            f"Maximum {settings.post_max_attachments} attachments allowed per post"
        )
    return normalized


def _delete_images(keys: Iterable[str], post_id: int) -> None:
    # Gifs are external URLs and are never deleted.
    for key in keys:
        if not is_post_image_key(post_id, key):
            logger.warning("Not deleting %s: outside the uploads of post %s", key, post_id)
            continue
        try:
            delete_object(key)
        except (OSError, ValueError):
            logger.warning("Failed to delete attachment %s of post %s", key, post_id, exc_info=True)


def create_collection(db: Session, user: User, title: str) -> Collection:
    title = title.strip()
    if not title:
        raise InvalidArgument("Collection title cannot be empty")
    collection = Collection(user_id=user.id, title=title, posts_count=0)
    db.add(collection)
    db.commit()
    db.refresh(collection)
    return collection


def create_post(
    db: Session,
    user: User,
    content: str,
    *,
    attachments: Iterable | None = None,
    collection_id: int | None = None,
) -> Post:
    """Create a post. Only gifs may be attached here, images follow their upload."""

    if not content or not content.strip():
        raise InvalidArgument("Post content cannot be empty")
    if len(content) > settings.post_max_length:
        raise InvalidArgument(f"Post too long (max {settings.post_max_length} characters)")
    normalized = _normalize_attachments(attachments)

    if collection_id is not None:
        collection = db.get(Collection, collection_id)
        if collection is None:
            raise NotFound("Collection not found")
        if collection.user_id != user.id:
            raise NotAuthorized("You can only add posts to your own collections")

    post = Post(
        user_id=user.id,
        content=content,
        attachments=normalized,
        collection_id=collection_id,
        reactions_count=0,
        comments_count=0,
        is_pinned=False,
    )
    db.add(post)
    if collection_id is not None:
        bump(db, Collection.posts_count, collection_id, 1)
    db.commit()
    db.refresh(post)
    logger.info("User %s created post %s", user.id, post.id)
    return post


def get_owned_post(db: Session, user: User, post_id: int) -> Post:
    post = get_post(db, post_id)
    if post.user_id != user.id:
        raise NotAuthorized("You can only update your own posts")
    return post


def update_post_attachments(db: Session, user: User, post_id: int, attachments: Iterable) -> Post:
    """Second phase of post creation: attach the keys of the uploaded files.

    Images dropped by the update are removed from storage once committed.
    """

    post = get_owned_post(db, user, post_id)
    normalized = _normalize_attachments(attachments, post.id) or []
    removed = _image_keys(post.attachments) - _image_keys(normalized)
    post.attachments = normalized
    db.commit()
    db.refresh(post)
    _delete_images(sorted(removed), post.id)
    return post


def delete_post(db: Session, user: User, post_id: int) -> None:
    """Delete a post with its comments and reactions, then its stored images."""

    post = get_post(db, post_id)
    if post.user_id != user.id:
        raise NotAuthorized("You can only delete your own posts")

    image_keys = sorted(_image_keys(post.attachments))
    if post.collection_id is not None:
        bump(db, Collection.posts_count, post.collection_id, -1)
    db.execute(delete(Comment).where(Comment.post_id == post_id))
    db.execute(delete(Reaction).where(Reaction.post_id == post_id))
    db.delete(post)
    db.commit()
    logger.info("User %s deleted post %s", user.id, post_id)
    _delete_images(image_keys, post_id)


def toggle_pin_post(db: Session, user: User, post_id: int) -> bool:
    post = get_post(db, post_id)
    if post.user_id != user.id:
        raise NotAuthorized("You can only pin your own posts")
    post.is_pinned = not post.is_pinned
    db.commit()
    return post.is_pinned


def serialize_posts(
    db: Session,
    user: User,
    posts: Sequence[Post],
    *,
    locale: str | None = None,
    public: bool = True,
) -> list[PostRead]:
    """Enrich posts with their author and the caller's own reaction."""

    if not posts:
        return []
    authors = load_users(db, (post.user_id for post in posts))
    reactions = {
        reaction.post_id: reaction.emoji
        for reaction in db.scalars(
            select(Reaction).where(
                Reaction.user_id == user.id,
                Reaction.post_id.in_([post.id for post in posts]),
            )
        ).all()
    }

    items: list[PostRead] = []
    for post in posts:
        author = authors.get(post.user_id)
        if author is None:
            continue
        emoji = reactions.get(post.id)
        items.append(
            PostRead(
                post_id=post.id,
                user_id=post.user_id,
                content=post.content,
                post_attachments=post_attachment_urls(post.attachments, public=public),
                reactions_count=post.reactions_count,
                comments_count=post.comments_count,
                created_at=post.created_at,
                relative_time=get_relative_time(post.created_at, locale),
                has_reacted=emoji is not None,
                user_reaction=emoji,
                is_owner=post.user_id == user.id,
                is_pinned=post.is_pinned,
                post_author=user_summary(author, public=public),
            )
        )
    return items


def get_feed_posts(
    db: Session, user: User, *, locale: str | None, cursor: str | None, num_items: int
) -> Page[PostRead]:
    """Posts by the caller and the caller's friends, newest first."""

    visible_ids = {user.id, *get_friend_ids(db, user.id)}
    page = paginate(
        db,
        select(Post).where(Post.user_id.in_(visible_ids)),
        time_column=Post.created_at,
        id_column=Post.id,
        cursor=cursor,
        num_items=num_items,
    )
    return Page(
        page=serialize_posts(db, user, page.page, locale=locale),
        is_done=page.is_done,
        continue_cursor=page.continue_cursor,
    )


def get_user_posts(
    db: Session,
    user: User,
    target_id: int,
    *,
    locale: str | None,
    cursor: str | None,
    num_items: int,
) -> Page[PostRead]:
    """A user's posts: every pin on the first page, then unpinned posts paginated."""

    _ensure_can_view_user(db, user, target_id)

    pinned: list[Post] = []
    if not cursor:
        pinned = list(
            db.scalars(
                select(Post)
                .where(Post.user_id == target_id, Post.is_pinned.is_(True))
                .order_by(Post.created_at.desc(), Post.id.desc())
            ).all()
        )
    page = paginate(
        db,
        select(Post).where(Post.user_id == target_id, Post.is_pinned.is_(False)),
        time_column=Post.created_at,
        id_column=Post.id,
        cursor=cursor,
        num_items=num_items,
    )
    return Page(
        page=serialize_posts(db, user, [*pinned, *page.page], locale=locale, public=False),
        is_done=page.is_done,
        continue_cursor=page.continue_cursor,
    )


def get_post_details(db: Session, user: User, post_id: int, *, locale: str | None = None) -> PostRead:
    post = get_post(db, post_id)
    if not can_access_post(db, user.id, post):
        raise NotAuthorized("You can only view posts from friends")
    items = serialize_posts(db, user, [post], locale=locale, public=False)
    if not items:
        raise NotFound("User not found for post author")
    return items[0]


def get_user_photos(
    db: Session, user: User, target_id: int, *, cursor: str | None, num_items: int
) -> Page[str]:
    """Image URLs from a user's posts, newest post first."""

    _ensure_can_view_user(db, user, target_id)
    page = paginate(
        db,
        select(Post).where(Post.user_id == target_id, Post.attachments.is_not(None)),
        time_column=Post.created_at,
        id_column=Post.id,
        cursor=cursor,
        num_items=num_items,
    )
    urls: list[str] = []
    for post in page.page:
        for item in post.attachments or []:
            if item.get("type") == AttachmentType.IMAGE.value:
                url = get_url(item["url"])
                if url:
                    urls.append(url)
    return Page(page=urls, is_done=page.is_done, continue_cursor=page.continue_cursor)
