"""Application error taxonomy and storage error conversion.

Every error carries the HTTP status it maps to; the exception handler in
``main.py`` renders them as ``{"error": message}``.
"""

import logging
from collections.abc import Iterator
from contextlib import contextmanager

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

logger = logging.getLogger(__name__)


class FoodSaveError(Exception):
    status_code = 500
    default_message = "Internal server error"

    def __init__(self, message: str | None = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)


class ValidationError(FoodSaveError):
    status_code = 400
    default_message = "Invalid request"


class Unauthorized(FoodSaveError):
    status_code = 401
    default_message = "Unauthorized"


class Forbidden(FoodSaveError):
    status_code = 403
    default_message = "Forbidden"


class NotFound(FoodSaveError):
    status_code = 404
    default_message = "Not found"


class StorageError(FoodSaveError):
    status_code = 500
    default_message = "Database error"


@contextmanager
def storage_guard(action: str, db: Session | None = None) -> Iterator[None]:
    """Log a persistence failure and re-raise it as a generic ``StorageError``.

    When a session is given it is rolled back so the caller can keep using it.
    """
    try:
        yield
    except SQLAlchemyError as exc:
        logger.exception("Database error while %s", action)
        if db is not None:
            db.rollback()
        raise StorageError() from exc


class UpstreamError(FoodSaveError):
    """An external service (the recipe model) failed or answered nonsense."""

    status_code = 502
    default_message = "Failed to generate recipe"
