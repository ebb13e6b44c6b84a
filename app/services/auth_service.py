"""Registration business logic."""
import logging
from uuid import UUID

from fastapi.concurrency import run_in_threadpool
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.avatar import gravatar_url, normalize_email
from app.core.errors import DuplicateIdentity
from app.core.security import get_password_hash
from app.db.session import storage_errors
from app.models.user import User
from app.schemas.user import CallerIdentity, UserCreate, UserResponse

logger = logging.getLogger(__name__)


async def get_user_by_email(db: AsyncSession, email: str) -> User | None:
    result = await db.execute(select(User).where(User.email == normalize_email(email)))
    return result.scalar_one_or_none()


async def get_user_by_id(db: AsyncSession, user_id: UUID) -> User | None:
    result = await db.execute(select(User).where(User.id == user_id))
    return result.scalar_one_or_none()


async def create_identity(db: AsyncSession, data: UserCreate) -> User:
    """Register a new identity.

    The password is hashed (off the event loop) before anything is written,
    so a hashing failure leaves no partial record and the plaintext never
    reaches the store. A unique-index violation from a concurrent
    registration is reported the same way as the up-front duplicate check.
    """
    email = normalize_email(data.email)
    with storage_errors("registration"):
        if await get_user_by_email(db, email):
            logger.info("Registration rejected, email already registered: %s", email)
            raise DuplicateIdentity()

        avatar = gravatar_url(email)
        password_hash = await run_in_threadpool(get_password_hash, data.password)

        user = User(
            name=data.name,
            email=email,
            password_hash=password_hash,
            avatar=avatar,
        )
        db.add(user)
        try:
            await db.commit()
        except IntegrityError:
            await db.rollback()
            logger.info("Registration lost a race on email: %s", email)
            raise DuplicateIdentity()
        await db.refresh(user)

    logger.info("Registered user %s", user.id, extra={"user_id": user.id})
    return user


def user_to_response(user: User) -> UserResponse:
    return UserResponse(
        id=user.id,
        name=user.name,
        email=user.email,
        avatar=user.avatar,
        created_at=user.created_at,
    )


def user_to_caller(user: User) -> CallerIdentity:
    return CallerIdentity(id=user.id, name=user.name, avatar=user.avatar)
