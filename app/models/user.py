"""User model."""
import uuid
from datetime import datetime

from sqlalchemy import Column, DateTime, String, Text, Uuid

from app.db.session import Base


class User(Base):
    __tablename__ = "users"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    name = Column(String(100), nullable=False)
    email = Column(String(255), unique=True, nullable=False, index=True)  # stored lower-cased
    password_hash = Column(String(255), nullable=False)
    avatar = Column(Text, nullable=False)  # Gravatar URL derived at registration
    created_at = Column(DateTime, default=datetime.utcnow)
