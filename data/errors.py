"""Error taxonomy shared by the store, repository and web layers."""

from typing import Optional


class CatalogError(Exception):
    """Base class for errors surfaced to API callers."""

    status_code = 500
    default_message = "Internal server error"

    def __init__(self, message: Optional[str] = None, errors: Optional[list[dict]] = None):
        self.message = message or self.default_message
        self.errors = errors or []
        super().__init__(self.message)


class ValidationFailure(CatalogError):
    """Malformed or out-of-range input caught before reaching the store."""
    status_code = 400
    default_message = "Validation failed"


class NotFound(CatalogError):
    """Entry is absent or soft-deleted."""
    status_code = 404
    default_message = "Video not found"


class ConflictFailure(CatalogError):
    """Store-level uniqueness violation. Message stays generic."""
    status_code = 400
    default_message = "Video with similar details already exists"


class TransientStoreFailure(CatalogError):
    """Connection or timeout failure from the store. Never retried here."""
    status_code = 500
    default_message = "Database temporarily unavailable"


class PayloadTooLarge(CatalogError):
    """Uploaded file exceeds the configured size limit."""
    status_code = 413
    default_message = "File too large"
