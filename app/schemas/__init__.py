from app.schemas.user import (
    UserCreate,
    UserResponse,
    CallerIdentity,
)
from app.schemas.post import PostCreate, PostResponse, LikeResponse, DeleteResponse
from app.schemas.comment import CommentCreate, CommentResponse
