"""Pydantic schemas for Post."""
from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, Field, field_validator

from app.schemas.comment import CommentResponse


class PostCreate(BaseModel):
    text: str = Field(..., min_length=1, max_length=1000)

    @field_validator("text")
    @classmethod
    def text_not_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("Text field is required")
        return v


class LikeResponse(BaseModel):
    id: UUID
    user_id: UUID


class PostResponse(BaseModel):
    id: UUID
    user_id: UUID
    text: str
    name: str | None = None
    avatar: str | None = None
    likes: list[LikeResponse] = []
    comments: list[CommentResponse] = []
    created_at: datetime

    model_config = {"from_attributes": True}


class DeleteResponse(BaseModel):
    success: bool = True
