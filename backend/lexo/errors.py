"""Domain errors raised by repositories, handlers and services.

Every error carries the HTTP status code the API layer answers with, so
routes can translate them into `HTTPException`s without a lookup table.
"""

from typing import Optional


class LexoError(Exception):
    status_code = 500
    default_message = "An error occurred"

    def __init__(self, message: Optional[str] = None):
        super().__init__(message or self.default_message)


class NotFoundError(LexoError):
    """A referenced exercise, child or user does not exist."""
    status_code = 404
    default_message = "Resource not found"


class UnknownExerciseTypeError(LexoError):
    """No registered handler accepts the discriminator."""
    status_code = 400
    default_message = "Unknown exercise type"


class TypeMismatchError(LexoError):
    """A handler was given another kind's exercise or answer."""
    status_code = 400
    default_message = "Exercise type mismatch"


class InvalidPayloadError(LexoError):
    status_code = 400
    default_message = "Invalid payload"


class ForbiddenError(LexoError):
    status_code = 403
    default_message = "Forbidden"


class ConflictError(LexoError):
    status_code = 409
    default_message = "Resource already exists"
