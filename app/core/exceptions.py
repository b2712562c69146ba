"""
Domain exceptions for the account service.

Every error the services raise derives from ``AppError`` and carries the
HTTP status and stable error code it maps to. Routes never build error
responses themselves; ``app.api.errors`` translates these at the boundary.
"""


class AppError(Exception):
    """Base exception for account service errors."""

    status_code: int = 500
    code: str = "INTERNAL_ERROR"

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class ValidationError(AppError):
    """Malformed or out-of-range input. No state was changed."""

    status_code = 400
    code = "VALIDATION_ERROR"


class AuthenticationError(AppError):
    """Missing, invalid or expired credential, or unknown user."""

    status_code = 401
    code = "UNAUTHORIZED"


class AuthorizationError(AppError):
    """The caller lacks the rights for the requested transition."""

    status_code = 403
    code = "FORBIDDEN"


class NotFoundError(AppError):
    status_code = 404
    code = "NOT_FOUND"


class ConflictError(AppError):
    """Duplicate identity or a target already in the requested state."""

    status_code = 409
    code = "CONFLICT"


class PersistenceError(AppError):
    """A transaction failed and was rolled back."""

    status_code = 500
    code = "DATABASE_ERROR"


class NotificationError(AppError):
    """The notification could not be handed to the delivery queue."""

    status_code = 503
    code = "NOTIFICATION_ERROR"
