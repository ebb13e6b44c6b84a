"""Gravatar URL derivation."""
import hashlib
from urllib.parse import urlencode

from app.core.config import settings


def normalize_email(email: str) -> str:
    return email.strip().lower()


def gravatar_url(email: str) -> str:
    """Return the Gravatar image URL for an email address.

    The URL depends only on the address (trimmed, lower-cased) and the
    configured size/rating/default parameters, so the same email always
    yields the same avatar.
    """
    digest = hashlib.md5(normalize_email(email).encode("utf-8")).hexdigest()
    query = urlencode({
        "s": settings.AVATAR_SIZE,
        "r": settings.AVATAR_RATING,
        "d": settings.AVATAR_DEFAULT,
    })
    return f"{settings.GRAVATAR_BASE_URL}/{digest}?{query}"
