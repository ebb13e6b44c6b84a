"""Pydantic schemas for Comment."""
from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, Field, field_validator


class CommentCreate(BaseModel):
    text: str = Field(..., min_length=1, max_length=1000)

    @field_validator("text")
    @classmethod
    def text_not_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("Text field is required")
        return v


class CommentResponse(BaseModel):
    id: UUID
    user_id: UUID
    text: str
    name: str | None = None
    avatar: str | None = None
    created_at: datetime
