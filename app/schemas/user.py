"""Pydantic schemas for User."""
from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, EmailStr, Field


class UserCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=50)
    email: EmailStr
    # bcrypt only reads the first 72 bytes
    password: str = Field(..., min_length=6, max_length=72)


class UserResponse(BaseModel):
    """Registered identity as returned to clients. The password hash is never included."""

    id: UUID
    name: str
    email: str
    avatar: str
    created_at: datetime

    model_config = {"from_attributes": True}


class CallerIdentity(BaseModel):
    """Authenticated principal passed into every private operation."""

    id: UUID
    name: str
    avatar: str | None = None

    model_config = {"from_attributes": True}
