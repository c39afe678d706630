"""Custom exception classes for the application."""


class AppError(Exception):
    """Base application error class."""

    def __init__(self, message, status_code=400):
        """Initialize the error."""
        super().__init__(message)
        self.status_code = status_code
        self.message = message


class ValidationError(AppError):
    """Raised when user input fails validation."""

    def __init__(self, message="Validation failed."):
        """Initialize the error."""
        super().__init__(message, 400)


class ConflictError(AppError):
    """Raised when an action collides with the current tournament state."""

    def __init__(self, message="The request conflicts with the current state."):
        """Initialize the error."""
        super().__init__(message, 409)


class NotFoundError(AppError):
    """Raised when a tournament or match no longer exists."""

    def __init__(self, message="Resource not found."):
        """Initialize the error."""
        super().__init__(message, 404)


class PermissionDeniedError(AppError):
    """Raised when a participant attempts an action they are not allowed to."""

    def __init__(self, message="Unauthorized."):
        """Initialize the error."""
        super().__init__(message, 403)


class TransientStoreError(AppError):
    """Raised when the document store is unavailable.

    A failed write is treated as "no state change occurred"; the next
    observed snapshot reconciles.
    """

    def __init__(self, message="The game server is unavailable. Please try again."):
        """Initialize the error."""
        super().__init__(message, 503)
