"""API dependencies: auth, db session."""
from uuid import UUID

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.security import decode_token
from app.db.session import get_db, storage_errors
from app.schemas.user import CallerIdentity
from app.services.auth_service import get_user_by_id, user_to_caller

security = HTTPBearer(auto_error=False)

__all__ = ["get_db", "get_current_user"]


def _unauthenticated() -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Not authenticated",
        headers={"WWW-Authenticate": "Bearer"},
    )


async def get_current_user(
    credentials: HTTPAuthorizationCredentials | None = Depends(security),
    db: AsyncSession = Depends(get_db),
) -> CallerIdentity:
    """Resolve the bearer token to the caller identity handed to the services."""
    if not credentials:
        raise _unauthenticated()
    payload = decode_token(credentials.credentials)
    if not payload or payload.get("type") != "access":
        raise _unauthenticated()
    try:
        user_id = UUID(payload.get("sub") or "")
    except ValueError:
        raise _unauthenticated()
    with storage_errors("authenticate"):
        user = await get_user_by_id(db, user_id)
    if user is None:
        raise _unauthenticated()
    return user_to_caller(user)
