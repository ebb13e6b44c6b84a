"""SQLAlchemy declarative base and model imports for Alembic."""
from app.db.session import Base  # noqa: F401
from app.models.user import User  # noqa: F401
from app.models.post import Post  # noqa: F401

__all__ = ["Base", "User", "Post"]
