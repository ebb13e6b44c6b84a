"""Post business logic.

A post is stored as one aggregate: the row carries its likes and comments as
embedded arrays. Every mutation reads the whole post, changes it in memory and
writes it back in a single transaction. Writes are guarded by the post's
``version`` column; when another request committed first, the write fails
with ``StaleDataError`` and the change is re-applied to a fresh copy, so the
duplicate-like and ownership guards always run against current state.
"""
import logging
import uuid
from collections.abc import Awaitable, Callable
from datetime import datetime
from uuid import UUID

from sqlalchemy import desc, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm.exc import StaleDataError

from app.core.config import settings
from app.core.errors import (
    AlreadyLiked,
    CommentNotFound,
    NotAuthorized,
    NotFound,
    NotLiked,
    WriteConflict,
)
from app.db.session import storage_errors
from app.models.post import Post
from app.schemas.comment import CommentResponse
from app.schemas.post import LikeResponse, PostResponse
from app.schemas.user import CallerIdentity

logger = logging.getLogger(__name__)

PostChange = Callable[[AsyncSession, Post], Awaitable[None]]


def _as_uuid(value: UUID | str) -> UUID | None:
    """Parse an id from the path; anything that is not a UUID matches nothing."""
    if isinstance(value, UUID):
        return value
    try:
        return UUID(value)
    except (TypeError, ValueError):
        return None


async def _load_post(db: AsyncSession, post_id: UUID | str) -> Post:
    pk = _as_uuid(post_id)
    if pk is None:
        raise NotFound()
    # Refresh identity-map copies so the guards see what is stored now
    result = await db.execute(
        select(Post).where(Post.id == pk).execution_options(populate_existing=True)
    )
    post = result.scalar_one_or_none()
    if not post:
        raise NotFound()
    return post


async def _write_post(db: AsyncSession, post_id: UUID | str, change: PostChange, operation: str) -> Post:
    """Load the post, apply ``change`` and commit, retrying on version conflicts.

    ``change`` raises domain errors before touching the post. Retrying rolls
    back the whole session, so callers must not have other pending work in it.
    """
    attempts = max(1, settings.POST_WRITE_ATTEMPTS)
    with storage_errors(operation):
        for attempt in range(1, attempts + 1):
            try:
                post = await _load_post(db, post_id)
                await change(db, post)
                await db.commit()
            except StaleDataError:
                await db.rollback()
                logger.warning(
                    "Concurrent update on post %s during %s (attempt %d/%d)",
                    post_id, operation, attempt, attempts,
                    extra={"post_id": post_id, "attempt": attempt},
                )
                continue
            return post
    raise WriteConflict()


def _has_liked(post: Post, user_id: UUID) -> bool:
    return any(like["user_id"] == str(user_id) for like in post.likes or [])


async def create_post(db: AsyncSession, caller: CallerIdentity, text: str) -> Post:
    post = Post(
        user_id=caller.id,
        text=text,
        name=caller.name,
        avatar=caller.avatar,
        likes=[],
        comments=[],
    )
    with storage_errors("create_post"):
        db.add(post)
        await db.commit()
        await db.refresh(post)
    return post


async def list_posts(db: AsyncSession, skip: int = 0, limit: int | None = None) -> list[Post]:
    """All posts, newest first. An empty store gives an empty list."""
    q = select(Post).order_by(desc(Post.created_at)).offset(skip)
    if limit is not None:
        q = q.limit(limit)
    with storage_errors("list_posts"):
        result = await db.execute(q)
        return list(result.scalars().all())


async def get_post(db: AsyncSession, post_id: UUID | str) -> Post:
    with storage_errors("get_post"):
        return await _load_post(db, post_id)


async def delete_post(db: AsyncSession, caller: CallerIdentity, post_id: UUID | str) -> None:
    """Delete a post with its likes and comments. Only the owner may do this."""

    async def change(db: AsyncSession, post: Post) -> None:
        if post.user_id != caller.id:
            logger.info(
                "User %s tried to delete post %s owned by %s", caller.id, post.id, post.user_id,
                extra={"post_id": post.id, "user_id": caller.id},
            )
            raise NotAuthorized()
        await db.delete(post)

    await _write_post(db, post_id, change, "delete_post")
    logger.info("Post %s deleted by owner", post_id, extra={"post_id": post_id, "user_id": caller.id})


async def like_post(db: AsyncSession, caller: CallerIdentity, post_id: UUID | str) -> Post:
    async def change(db: AsyncSession, post: Post) -> None:
        if _has_liked(post, caller.id):
            raise AlreadyLiked()
        like = {"id": str(uuid.uuid4()), "user_id": str(caller.id)}
        post.likes = [like, *(post.likes or [])]

    return await _write_post(db, post_id, change, "like_post")


async def unlike_post(db: AsyncSession, caller: CallerIdentity, post_id: UUID | str) -> Post:
    async def change(db: AsyncSession, post: Post) -> None:
        likes = list(post.likes or [])
        user_ids = [like["user_id"] for like in likes]
        if str(caller.id) not in user_ids:
            raise NotLiked()
        del likes[user_ids.index(str(caller.id))]
        post.likes = likes

    return await _write_post(db, post_id, change, "unlike_post")


async def add_comment(db: AsyncSession, caller: CallerIdentity, post_id: UUID | str, text: str) -> Post:
    async def change(db: AsyncSession, post: Post) -> None:
        comment = {
            "id": str(uuid.uuid4()),
            "user_id": str(caller.id),
            "text": text,
            "name": caller.name,
            "avatar": caller.avatar,
            "created_at": datetime.utcnow().isoformat(),
        }
        post.comments = [comment, *(post.comments or [])]

    return await _write_post(db, post_id, change, "add_comment")


async def remove_comment(db: AsyncSession, caller: CallerIdentity, post_id: UUID | str, comment_id: UUID | str) -> Post:
    """Remove a comment by id.

    Any authenticated caller may remove any comment; ``caller`` is recorded in
    the log but not compared with the comment's author.
    """

    async def change(db: AsyncSession, post: Post) -> None:
        comments = list(post.comments or [])
        comment_ids = [c["id"] for c in comments]
        if str(comment_id) not in comment_ids:
            raise CommentNotFound()
        removed = comments.pop(comment_ids.index(str(comment_id)))
        if removed["user_id"] != str(caller.id):
            logger.info(
                "User %s removed comment %s written by %s", caller.id, comment_id, removed["user_id"],
                extra={"post_id": post.id, "user_id": caller.id},
            )
        post.comments = comments

    return await _write_post(db, post_id, change, "remove_comment")


def post_to_response(post: Post) -> PostResponse:
    return PostResponse(
        id=post.id,
        user_id=post.user_id,
        text=post.text,
        name=post.name,
        avatar=post.avatar,
        likes=[LikeResponse(**like) for like in post.likes or []],
        comments=[CommentResponse(**comment) for comment in post.comments or []],
        created_at=post.created_at,
    )
