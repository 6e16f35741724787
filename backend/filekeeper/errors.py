"""Error taxonomy shared by the auth and file handlers.

Each error carries the HTTP status it maps to. The handlers registered in
``filekeeper.main`` render them as ``{"error": message}``, or as a bare
status response when ``has_body`` is False.
"""


class AppError(Exception):
    """Base class for errors surfaced to API clients."""

    status_code: int = 500
    has_body: bool = True

    def __init__(self, message: str = "Internal server error") -> None:
        super().__init__(message)
        self.message = message


class ValidationError(AppError):
    status_code = 400


class UnauthenticatedError(AppError):
    """No credential was presented."""
    status_code = 401
    has_body = False

    def __init__(self, message: str = "Unauthorized") -> None:
        super().__init__(message)


class ForbiddenError(AppError):
    """A credential was presented but is not acceptable."""
    status_code = 403
    has_body = False

    def __init__(self, message: str = "Forbidden") -> None:
        super().__init__(message)


class NotFoundError(AppError):
    status_code = 404

    def __init__(self, message: str = "File not found") -> None:
        super().__init__(message)


class BlobMissingError(NotFoundError):
    """The metadata row exists but its blob is gone from disk."""

    def __init__(self, message: str = "File not found on disk") -> None:
        super().__init__(message)


class PayloadTooLargeError(AppError):
    status_code = 413


class StorageError(AppError):
    """A database or filesystem fault during the primary operation."""
    status_code = 500
