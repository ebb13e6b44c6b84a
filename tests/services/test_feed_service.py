"""Post mutation protocol.

Invariants:
    - At most one like per (post, user); a repeat like is an error, not a no-op
    - Only the owner deletes a post; deletion is not idempotent
    - Comments are removed by exact id; unknown ids leave the post untouched
    - Store failures surface as StorageError, never as NotFound or an empty list
    - Concurrent writers are serialised by the version column and retried
"""
from uuid import uuid4

import pytest
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm.exc import StaleDataError

from app.core.errors import (
    AlreadyLiked,
    CommentNotFound,
    NotAuthorized,
    NotFound,
    NotLiked,
    StorageError,
    WriteConflict,
)
from app.services import feed_service


# ─── create / read ──────────────────────────────────────────────

async def test_create_post_snapshots_author(db, alice):
    post = await feed_service.create_post(db, alice, "hello")

    assert post.user_id == alice.id
    assert post.name == "Alice"
    assert post.avatar == alice.avatar
    assert post.likes == []
    assert post.comments == []
    assert post.created_at is not None


async def test_list_posts_empty_store_returns_empty_list(db):
    assert await feed_service.list_posts(db) == []


async def test_list_posts_newest_first(db, alice):
    first = await feed_service.create_post(db, alice, "first")
    second = await feed_service.create_post(db, alice, "second")

    posts = await feed_service.list_posts(db)

    assert [p.id for p in posts] == [second.id, first.id]


async def test_list_posts_paging(db, alice):
    for i in range(3):
        await feed_service.create_post(db, alice, f"post {i}")

    posts = await feed_service.list_posts(db, skip=1, limit=1)

    assert [p.text for p in posts] == ["post 1"]


async def test_get_post(db, post):
    fetched = await feed_service.get_post(db, post.id)
    assert fetched.text == "hello"


async def test_get_missing_post(db):
    with pytest.raises(NotFound):
        await feed_service.get_post(db, uuid4())


async def test_malformed_post_id_is_not_found(db, bob):
    with pytest.raises(NotFound):
        await feed_service.get_post(db, "not-a-post-id")
    with pytest.raises(NotFound):
        await feed_service.like_post(db, bob, "not-a-post-id")


async def test_malformed_comment_id_is_comment_not_found(db, post, bob):
    await feed_service.add_comment(db, bob, post.id, "nice post")

    with pytest.raises(CommentNotFound):
        await feed_service.remove_comment(db, bob, str(post.id), "abc123")


# ─── delete ─────────────────────────────────────────────────────

async def test_delete_by_non_owner_rejected(db, post, bob):
    with pytest.raises(NotAuthorized):
        await feed_service.delete_post(db, bob, post.id)

    assert (await feed_service.get_post(db, post.id)).id == post.id


async def test_delete_by_owner(db, post, alice):
    await feed_service.delete_post(db, alice, post.id)

    with pytest.raises(NotFound):
        await feed_service.get_post(db, post.id)


async def test_second_delete_is_not_found(db, post, alice):
    await feed_service.delete_post(db, alice, post.id)

    with pytest.raises(NotFound):
        await feed_service.delete_post(db, alice, post.id)


# ─── likes ──────────────────────────────────────────────────────

async def test_like_twice_rejected(db, post, bob):
    liked = await feed_service.like_post(db, bob, post.id)
    assert len(liked.likes) == 1

    with pytest.raises(AlreadyLiked):
        await feed_service.like_post(db, bob, post.id)

    assert len((await feed_service.get_post(db, post.id)).likes) == 1


async def test_likes_are_front_inserted(db, post, alice, bob):
    await feed_service.like_post(db, alice, post.id)
    liked = await feed_service.like_post(db, bob, post.id)

    assert [like["user_id"] for like in liked.likes] == [str(bob.id), str(alice.id)]


async def test_unlike_without_like_rejected(db, post, alice, bob):
    await feed_service.like_post(db, alice, post.id)

    with pytest.raises(NotLiked):
        await feed_service.unlike_post(db, bob, post.id)

    likes = (await feed_service.get_post(db, post.id)).likes
    assert [like["user_id"] for like in likes] == [str(alice.id)]


async def test_like_then_unlike_restores_likes(db, post, alice, bob):
    await feed_service.like_post(db, alice, post.id)
    before = list((await feed_service.get_post(db, post.id)).likes)

    await feed_service.like_post(db, bob, post.id)
    after = await feed_service.unlike_post(db, bob, post.id)

    assert after.likes == before


async def test_like_missing_post(db, bob):
    with pytest.raises(NotFound):
        await feed_service.like_post(db, bob, uuid4())


async def test_unlike_missing_post(db, bob):
    with pytest.raises(NotFound):
        await feed_service.unlike_post(db, bob, uuid4())


# ─── comments ───────────────────────────────────────────────────

async def test_add_comment_snapshots_commenter(db, post, bob):
    updated = await feed_service.add_comment(db, bob, post.id, "nice post")

    comment = updated.comments[0]
    assert comment["user_id"] == str(bob.id)
    assert comment["text"] == "nice post"
    assert comment["name"] == "Bob"
    assert comment["avatar"] == bob.avatar
    assert comment["id"]


async def test_comments_are_front_inserted(db, post, bob):
    await feed_service.add_comment(db, bob, post.id, "first")
    updated = await feed_service.add_comment(db, bob, post.id, "second")

    assert [c["text"] for c in updated.comments] == ["second", "first"]


async def test_add_then_remove_comment(db, post, bob):
    updated = await feed_service.add_comment(db, bob, post.id, "nice post")
    comment_id = updated.comments[0]["id"]

    removed = await feed_service.remove_comment(db, bob, post.id, comment_id)

    assert removed.comments == []


async def test_any_caller_may_remove_a_comment(db, post, alice, bob):
    updated = await feed_service.add_comment(db, bob, post.id, "nice post")

    removed = await feed_service.remove_comment(db, alice, post.id, updated.comments[0]["id"])

    assert removed.comments == []


async def test_remove_unknown_comment(db, post, bob):
    await feed_service.add_comment(db, bob, post.id, "nice post")

    with pytest.raises(CommentNotFound):
        await feed_service.remove_comment(db, bob, post.id, uuid4())

    assert len((await feed_service.get_post(db, post.id)).comments) == 1


async def test_comment_on_missing_post(db, bob):
    with pytest.raises(NotFound):
        await feed_service.add_comment(db, bob, uuid4(), "hello?")
    with pytest.raises(NotFound):
        await feed_service.remove_comment(db, bob, uuid4(), uuid4())


async def test_delete_removes_embedded_likes_and_comments(db, post, alice, bob):
    await feed_service.like_post(db, bob, post.id)
    await feed_service.add_comment(db, bob, post.id, "nice post")

    await feed_service.delete_post(db, alice, post.id)

    assert await feed_service.list_posts(db) == []


# ─── concurrency ────────────────────────────────────────────────

def _rival_commits_first(session, rival):
    """Run ``rival`` to completion just before the session's first commit."""
    real_commit = session.commit
    raced = []

    async def commit():
        if not raced:
            raced.append(1)
            await rival()
        await real_commit()

    return commit


async def test_like_retried_after_concurrent_write(session_factory, post, alice, bob, monkeypatch):
    """A writer that loses the race re-reads and keeps both likes."""
    post_id = post.id
    async with session_factory() as loser, session_factory() as winner:
        monkeypatch.setattr(
            loser, "commit",
            _rival_commits_first(loser, lambda: feed_service.like_post(winner, alice, post_id)),
        )

        result = await feed_service.like_post(loser, bob, post_id)

    assert [like["user_id"] for like in result.likes] == [str(bob.id), str(alice.id)]


async def test_duplicate_like_detected_after_retry(session_factory, post, bob, monkeypatch):
    """The duplicate guard runs again against the fresh copy."""
    post_id = post.id
    async with session_factory() as loser, session_factory() as winner:
        monkeypatch.setattr(
            loser, "commit",
            _rival_commits_first(loser, lambda: feed_service.like_post(winner, bob, post_id)),
        )

        with pytest.raises(AlreadyLiked):
            await feed_service.like_post(loser, bob, post_id)

    async with session_factory() as check:
        assert len((await feed_service.get_post(check, post_id)).likes) == 1


async def test_guards_read_current_state_in_reused_session(session_factory, post, bob):
    """A session that already holds the post still sees likes committed elsewhere."""
    post_id = post.id
    async with session_factory() as reused, session_factory() as other:
        await feed_service.get_post(reused, post_id)
        await feed_service.like_post(other, bob, post_id)

        unliked = await feed_service.unlike_post(reused, bob, post_id)

    assert unliked.likes == []


async def test_gives_up_after_repeated_conflicts(db, post, bob, monkeypatch):
    post_id = post.id
    attempts = []

    async def always_stale():
        attempts.append(1)
        raise StaleDataError("simulated concurrent update")

    monkeypatch.setattr(db, "commit", always_stale)
    with pytest.raises(WriteConflict):
        await feed_service.like_post(db, bob, post_id)
    monkeypatch.undo()

    assert len(attempts) == 3
    assert (await feed_service.get_post(db, post_id)).likes == []


# ─── storage failures ───────────────────────────────────────────

def _break_session(db, monkeypatch):
    async def broken(*args, **kwargs):
        raise OperationalError("SELECT", {}, Exception("connection refused"))

    monkeypatch.setattr(db, "execute", broken)


async def test_list_posts_storage_failure_is_an_error(db, monkeypatch):
    _break_session(db, monkeypatch)
    with pytest.raises(StorageError):
        await feed_service.list_posts(db)


async def test_get_post_storage_failure_is_not_not_found(db, monkeypatch):
    _break_session(db, monkeypatch)
    with pytest.raises(StorageError) as exc_info:
        await feed_service.get_post(db, uuid4())
    assert not isinstance(exc_info.value, NotFound)


# ─── end to end ─────────────────────────────────────────────────

async def test_like_unlike_delete_scenario(db, alice, bob):
    post = await feed_service.create_post(db, alice, "hello")

    assert len((await feed_service.like_post(db, bob, post.id)).likes) == 1
    with pytest.raises(AlreadyLiked):
        await feed_service.like_post(db, bob, post.id)
    assert len((await feed_service.get_post(db, post.id)).likes) == 1
    assert len((await feed_service.unlike_post(db, bob, post.id)).likes) == 0

    await feed_service.delete_post(db, alice, post.id)
    with pytest.raises(NotFound):
        await feed_service.get_post(db, post.id)
