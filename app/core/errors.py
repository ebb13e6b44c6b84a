"""Domain error hierarchy.

Every error knows its HTTP status and the keyed body clients receive, e.g.
``{"alreadyLiked": "User already liked this post"}``. ``legacy_status`` is the
code the first API version answered with; it is used when
``LEGACY_STATUS_CODES`` is enabled.
"""
from typing import Any


class PostboardError(Exception):
    """Base class for errors that map to a structured API response."""

    status_code: int = 500
    legacy_status: int | None = None
    key: str = "error"
    default_message: str = "Unexpected error"

    def __init__(self, message: str | None = None):
        self.message = message or self.default_message
        super().__init__(self.message)

    def http_status(self, legacy: bool = False) -> int:
        if legacy and self.legacy_status is not None:
            return self.legacy_status
        return self.status_code

    def to_response(self) -> dict[str, Any]:
        return {self.key: self.message}


class ValidationError(PostboardError):
    """Malformed request input, rejected before the store is touched."""

    status_code = 400
    default_message = "Invalid request data"

    def __init__(self, errors: dict[str, str]):
        super().__init__("; ".join(f"{k}: {v}" for k, v in errors.items()) or None)
        self.errors = errors

    def to_response(self) -> dict[str, Any]:
        return dict(self.errors)


class NotFound(PostboardError):
    status_code = 404
    key = "postNotFound"
    default_message = "No post found"


class CommentNotFound(PostboardError):
    status_code = 404
    key = "commentDoesntExist"
    default_message = "Comment does not exist"


class NotAuthorized(PostboardError):
    status_code = 403
    legacy_status = 401
    key = "notAuthorized"
    default_message = "User not authorized"


class DuplicateIdentity(PostboardError):
    status_code = 409
    legacy_status = 404
    key = "email"
    default_message = "Email already exists"


class AlreadyLiked(PostboardError):
    status_code = 400
    key = "alreadyLiked"
    default_message = "User already liked this post"


class NotLiked(PostboardError):
    status_code = 400
    key = "notLiked"
    default_message = "You have not yet liked this post"


class StorageError(PostboardError):
    """The store failed or is unreachable. Never a stand-in for "not found"."""

    status_code = 503
    key = "storage"
    default_message = "Storage is unavailable, please retry later"


class WriteConflict(StorageError):
    """A post kept changing underneath every write attempt."""

    status_code = 409
    key = "conflict"
    default_message = "Post was modified concurrently, please retry"
