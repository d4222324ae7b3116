"""Reactions and threaded comments on posts.

Every change to a reaction or comment row adjusts the denormalized counters
on the post (and on the parent comment) inside the same transaction.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from sqlalchemy import delete, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.config import get_settings
from app.core.errors import ConflictState, InvalidArgument, NotAuthorized, NotFound
from app.core.locale import format_country
from app.core.storage import get_url
from app.models import Comment, NotificationType, Post, Reaction, User
from app.schemas.posts import CommentRead, ReactionRead
from app.services.counters import bump
from app.services.notifications import create_notification
from app.services.pagination import Page, paginate
from app.services.posts import can_access_post, get_accessible_post
from app.services.projections import comment_attachment_url, load_users, user_summary

logger = logging.getLogger(__name__)
settings = get_settings()

_MAX_EMOJI_LENGTH = 32


@dataclass(slots=True)
class ReactionOutcome:
    has_reacted: bool
    user_reaction: str | None


def add_post_reaction(db: Session, user: User, post_id: int, emoji: str) -> ReactionOutcome:
    """Toggle or replace the caller's reaction on a post.

    The same emoji again removes the reaction, a different emoji replaces it
    in place, and a first reaction inserts a row. Only insert and removal
    move ``reactions_count``.
    """

    if not emoji or len(emoji) > _MAX_EMOJI_LENGTH:
        raise InvalidArgument("Invalid emoji")

    post = get_accessible_post(db, user, post_id)
    existing = db.execute(
        select(Reaction).where(Reaction.user_id == user.id, Reaction.post_id == post_id)
    ).scalar_one_or_none()

    if existing is not None:
        if existing.emoji == emoji:
            db.delete(existing)
            bump(db, Post.reactions_count, post_id, -1)
            db.commit()
            return ReactionOutcome(has_reacted=False, user_reaction=None)
        existing.emoji = emoji
        db.commit()
        return ReactionOutcome(has_reacted=True, user_reaction=emoji)

    db.add(Reaction(user_id=user.id, post_id=post_id, emoji=emoji))
    bump(db, Post.reactions_count, post_id, 1)
    if post.user_id != user.id:
        create_notification(
            db,
            recipient_id=post.user_id,
            sender_id=user.id,
            type=NotificationType.POST_REACTION,
        )
    try:
        db.commit()
    except IntegrityError as exc:
        db.rollback()
        raise ConflictState("Reaction was changed concurrently, retry") from exc
    logger.info("User %s reacted to post %s", user.id, post_id)
    return ReactionOutcome(has_reacted=True, user_reaction=emoji)


def get_post_reactions(
    db: Session,
    user: User,
    post_id: int,
    *,
    locale: str | None,
    cursor: str | None,
    num_items: int,
) -> Page[ReactionRead]:
    get_accessible_post(db, user, post_id)
    page = paginate(
        db,
        select(Reaction).where(Reaction.post_id == post_id),
        time_column=Reaction.created_at,
        id_column=Reaction.id,
        cursor=cursor,
        num_items=num_items,
    )
    users = load_users(db, (reaction.user_id for reaction in page.page))
    items = [
        ReactionRead(
            reaction_id=reaction.id,
            emoji=reaction.emoji,
            user_id=reactor.id,
            name=reactor.name,
            profile_picture=get_url(reactor.profile_picture),
            country=format_country(reactor.country, locale),
            is_premium=reactor.is_premium,
        )
        for reaction, reactor in ((r, users.get(r.user_id)) for r in page.page)
        if reactor is not None
    ]
    return Page(page=items, is_done=page.is_done, continue_cursor=page.continue_cursor)


def comment_post(
    db: Session,
    user: User,
    post_id: int,
    content: str,
    *,
    reply_parent_id: int | None = None,
    attachment: str | None = None,
) -> Comment:
    """Add a comment or a reply at any depth."""

    content = content or ""
    if not content.strip() and not attachment:
        raise InvalidArgument("Comment must have content or attachment")
    if len(content) > settings.comment_max_length:
        raise InvalidArgument(
            f"Comment too long (max {settings.comment_max_length} characters)"
        )

    post = get_accessible_post(db, user, post_id)

    parent: Comment | None = None
    if reply_parent_id is not None:
        parent = db.get(Comment, reply_parent_id)
        if parent is None:
            raise NotFound("Parent comment not found")
        if parent.post_id != post_id:
            raise InvalidArgument("Parent comment does not belong to this post")

    comment = Comment(
        user_id=user.id,
        post_id=post_id,
        reply_parent_id=reply_parent_id,
        content=content.strip(),
        attachment=attachment,
        replies_count=0,
    )
    db.add(comment)
    bump(db, Post.comments_count, post_id, 1)

    if parent is not None:
        bump(db, Comment.replies_count, parent.id, 1)
        if parent.user_id != user.id:
            create_notification(
                db,
                recipient_id=parent.user_id,
                sender_id=user.id,
                type=NotificationType.COMMENT_REPLIED,
            )
        if post.user_id not in (user.id, parent.user_id):
            create_notification(
                db,
                recipient_id=post.user_id,
                sender_id=user.id,
                type=NotificationType.COMMENT_REPLIED,
            )
    elif post.user_id != user.id:
        create_notification(
            db,
            recipient_id=post.user_id,
            sender_id=user.id,
            type=NotificationType.POST_COMMENTED,
        )

    db.commit()
    db.refresh(comment)
    logger.info("User %s commented on post %s", user.id, post_id)
    return comment


def _collect_subtree(db: Session, root_id: int) -> list[int]:
    """Ids of a comment and all its descendants, walked with an explicit stack."""

    collected: list[int] = []
    pending = [root_id]
    while pending:
        current = pending.pop()
        collected.append(current)
        pending.extend(
            db.scalars(select(Comment.id).where(Comment.reply_parent_id == current)).all()
        )
    return collected


def delete_comment(db: Session, user: User, comment_id: int) -> int:
    """Delete a comment and its whole reply subtree. Returns how many rows went.

    The post's ``comments_count`` and the immediate parent's ``replies_count``
    drop by that total; ancestors above the parent are left unchanged.
    """

    comment = db.get(Comment, comment_id)
    if comment is None:
        raise NotFound("Comment not found")
    if comment.user_id != user.id:
        raise NotAuthorized("You can only delete your own comments")
    if db.get(Post, comment.post_id) is None:
        raise NotFound("Post not found")

    post_id = comment.post_id
    parent_id = comment.reply_parent_id
    subtree = _collect_subtree(db, comment.id)
    total = len(subtree)

    db.execute(delete(Comment).where(Comment.id.in_(subtree)))
    bump(db, Post.comments_count, post_id, -total)
    if parent_id is not None:
        bump(db, Comment.replies_count, parent_id, -total)
    db.commit()
    logger.info("User %s deleted comment %s (%s rows)", user.id, comment_id, total)
    return total


def _serialize_comments(db: Session, user: User, comments: list[Comment]) -> list[CommentRead]:
    authors = load_users(db, (comment.user_id for comment in comments))
    items: list[CommentRead] = []
    for comment in comments:
        author = authors.get(comment.user_id)
        if author is None:
            continue
        items.append(
            CommentRead(
                comment_id=comment.id,
                created_at=comment.created_at,
                user_id=comment.user_id,
                post_id=comment.post_id,
                content=comment.content,
                attachment=comment_attachment_url(comment.attachment),
                replies_count=comment.replies_count,
                reply_parent_id=comment.reply_parent_id,
                is_owner=comment.user_id == user.id,
                comment_author=user_summary(author, public=False),
            )
        )
    return items


def get_comments(
    db: Session, user: User, post_id: int, *, cursor: str | None, num_items: int
) -> Page[CommentRead]:
    """Top-level comments of a post, newest first."""

    get_accessible_post(db, user, post_id)
    page = paginate(
        db,
        select(Comment).where(Comment.post_id == post_id, Comment.reply_parent_id.is_(None)),
        time_column=Comment.created_at,
        id_column=Comment.id,
        cursor=cursor,
        num_items=num_items,
    )
    return Page(
        page=_serialize_comments(db, user, list(page.page)),
        is_done=page.is_done,
        continue_cursor=page.continue_cursor,
    )


def _accessible_comment(db: Session, user: User, comment_id: int) -> Comment:
    comment = db.get(Comment, comment_id)
    if comment is None:
        raise NotFound("Comment not found")
    post = db.get(Post, comment.post_id)
    if post is None:
        raise NotFound("Post not found")
    if not can_access_post(db, user.id, post):
        raise NotAuthorized("You can only view comments on posts from friends")
    return comment


def get_comment(db: Session, user: User, comment_id: int) -> CommentRead:
    comment = _accessible_comment(db, user, comment_id)
    items = _serialize_comments(db, user, [comment])
    if not items:
        raise NotFound("User not found")
    return items[0]


def get_comment_replies(
    db: Session, user: User, comment_id: int, *, cursor: str | None, num_items: int
) -> Page[CommentRead]:
    parent = _accessible_comment(db, user, comment_id)
    page = paginate(
        db,
        select(Comment).where(Comment.reply_parent_id == parent.id),
        time_column=Comment.created_at,
        id_column=Comment.id,
        cursor=cursor,
        num_items=num_items,
    )
    return Page(
        page=_serialize_comments(db, user, list(page.page)),
        is_done=page.is_done,
        continue_cursor=page.continue_cursor,
    )
