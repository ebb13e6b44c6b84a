"""Post model: one row per post, likes and comments embedded as JSON arrays."""
import uuid
from datetime import datetime

from sqlalchemy import JSON, Column, DateTime, ForeignKey, Integer, String, Text, Uuid
from sqlalchemy.dialects.postgresql import JSONB

from app.db.session import Base

EmbeddedList = JSON().with_variant(JSONB(), "postgresql")


class Post(Base):
    __tablename__ = "posts"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    user_id = Column(Uuid(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    text = Column(Text, nullable=False)
    # Author snapshot taken when the post is created
    name = Column(String(100), nullable=True)
    avatar = Column(Text, nullable=True)
    # [{"id", "user_id"}], newest first
    likes = Column(EmbeddedList, nullable=False, default=list)
    # [{"id", "user_id", "text", "name", "avatar", "created_at"}], newest first
    comments = Column(EmbeddedList, nullable=False, default=list)
    created_at = Column(DateTime, default=datetime.utcnow, index=True)
    version = Column(Integer, nullable=False)

    # Every UPDATE/DELETE is conditioned on the version that was read
    __mapper_args__ = {"version_id_col": version}
