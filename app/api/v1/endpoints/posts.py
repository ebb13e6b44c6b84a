"""Posts: CRUD, likes and comments."""
from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import get_db, get_current_user
from app.schemas.comment import CommentCreate
from app.schemas.post import DeleteResponse, PostCreate, PostResponse
from app.schemas.user import CallerIdentity
from app.services import feed_service

router = APIRouter(prefix="/posts", tags=["posts"])


@router.get("/test")
async def posts_test():
    return {"msg": "Posts works"}


@router.post("", response_model=PostResponse, status_code=status.HTTP_201_CREATED)
async def create_post(
    data: PostCreate,
    current_user: CallerIdentity = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    post = await feed_service.create_post(db, current_user, data.text)
    return feed_service.post_to_response(post)


@router.get("", response_model=list[PostResponse])
async def list_posts(
    skip: int = Query(0, ge=0),
    limit: int | None = Query(None, ge=1, le=100),
    db: AsyncSession = Depends(get_db),
):
    posts = await feed_service.list_posts(db, skip=skip, limit=limit)
    return [feed_service.post_to_response(p) for p in posts]


@router.get("/{post_id}", response_model=PostResponse)
async def get_post(
    post_id: str,
    db: AsyncSession = Depends(get_db),
):
    post = await feed_service.get_post(db, post_id)
    return feed_service.post_to_response(post)


@router.delete("/{post_id}", response_model=DeleteResponse)
async def delete_post(
    post_id: str,
    current_user: CallerIdentity = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    await feed_service.delete_post(db, current_user, post_id)
    return DeleteResponse(success=True)


@router.post("/{post_id}/likes", response_model=PostResponse)
async def like_post(
    post_id: str,
    current_user: CallerIdentity = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    post = await feed_service.like_post(db, current_user, post_id)
    return feed_service.post_to_response(post)


@router.delete("/{post_id}/likes", response_model=PostResponse)
async def unlike_post(
    post_id: str,
    current_user: CallerIdentity = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    post = await feed_service.unlike_post(db, current_user, post_id)
    return feed_service.post_to_response(post)


@router.post("/{post_id}/comments", response_model=PostResponse)
async def add_comment(
    post_id: str,
    data: CommentCreate,
    current_user: CallerIdentity = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    post = await feed_service.add_comment(db, current_user, post_id, data.text)
    return feed_service.post_to_response(post)


@router.delete("/{post_id}/comments/{comment_id}", response_model=PostResponse)
async def remove_comment(
    post_id: str,
    comment_id: str,
    current_user: CallerIdentity = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    post = await feed_service.remove_comment(db, current_user, post_id, comment_id)
    return feed_service.post_to_response(post)
