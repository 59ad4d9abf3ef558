from typing import Optional


class ServiceError(Exception):
    """Base class for errors surfaced to API callers."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(ServiceError):
    """A required field is missing or unreadable. The client must fix its input."""


class ConflictError(ServiceError):
    """The client already rated this project."""


class StorageError(ServiceError):
    """Any failure reported by PostgreSQL; `details` carries the driver message."""

    def __init__(self, message: str = 'Server error.', details: Optional[str] = None):
        super().__init__(message)
        self.details = details or message
