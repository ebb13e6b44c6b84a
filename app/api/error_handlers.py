"""Global exception handlers.

Domain errors become their keyed envelope (``{"notLiked": "..."}``), request
validation failures a ``{field: message}`` map with status 400, and anything
else a 500 that does not leak internals.
"""
import logging

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from app.core.config import settings
from app.core.errors import PostboardError, StorageError, ValidationError

logger = logging.getLogger(__name__)


def register_error_handlers(app: FastAPI) -> None:
    _register_domain_error_handler(app)
    _register_validation_error_handler(app)
    _register_generic_error_handler(app)


def _register_domain_error_handler(app: FastAPI) -> None:
    @app.exception_handler(PostboardError)
    async def domain_error_handler(request: Request, exc: PostboardError):
        log = logger.error if isinstance(exc, StorageError) else logger.warning
        log(
            "%s on %s: %s", type(exc).__name__, request.url.path, exc.message,
            extra={"error_key": exc.key, "path": request.url.path},
        )
        return JSONResponse(
            status_code=exc.http_status(legacy=settings.LEGACY_STATUS_CODES),
            content=exc.to_response(),
        )


def _register_validation_error_handler(app: FastAPI) -> None:
    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError):
        logger.warning("Validation error on %s: %s", request.url.path, exc.errors())
        error = ValidationError(_field_errors(exc))
        return JSONResponse(status_code=error.status_code, content=error.to_response())


def _register_generic_error_handler(app: FastAPI) -> None:
    @app.exception_handler(Exception)
    async def generic_error_handler(request: Request, exc: Exception):
        logger.error("Unhandled exception on %s: %s", request.url.path, exc, exc_info=True)
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"error": "An unexpected error occurred"},
        )


def _field_errors(exc: RequestValidationError) -> dict[str, str]:
    """Flatten pydantic errors to one message per field, e.g. {"text": "..."}."""
    errors: dict[str, str] = {}
    for e in exc.errors():
        loc = [str(part) for part in e["loc"] if part not in ("body", "query", "path")]
        field = ".".join(loc) or "body"
        errors.setdefault(field, e["msg"])
    return errors
