"""
Domain error types.

Services raise these; the API layer maps them to HTTP responses in main.py.
"""
from typing import Any, Optional


class StreamflixError(Exception):
    """Base class for all errors raised by the service layer."""
    status_code = 500

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class ValidationError(StreamflixError):
    """Raised when input is malformed or out of range."""
    status_code = 422


class NotFoundError(StreamflixError):
    """Raised when an operation references an entity that does not exist."""
    status_code = 404

    def __init__(self, entity: str, key: Any):
        self.entity = entity
        self.key = key
        super().__init__(f"{entity} not found: {key}")


class ConflictError(StreamflixError):
    """Raised on a uniqueness violation, e.g. a duplicate primary key."""
    status_code = 409


class TransactionError(StreamflixError):
    """Raised when the store fails mid-write. The write has been rolled back."""
    status_code = 500

    def __init__(self, operation: str, cause: Optional[BaseException] = None):
        self.operation = operation
        self.cause = cause
        detail = f"Failed to {operation}"
        if cause is not None:
            detail = f"{detail}: {cause}"
        super().__init__(detail)
