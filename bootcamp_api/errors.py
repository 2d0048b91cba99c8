"""
Application error taxonomy.

Services and auth code raise these; the handlers registered in main.py turn
them into the JSON error envelope {"status": "fail" | "error", "message": ...}.
"""
from typing import Optional


class AppError(Exception):
    """Base class for errors that map onto an HTTP response."""

    status_code = 500

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code

    @property
    def status(self) -> str:
        return "fail" if 400 <= self.status_code < 500 else "error"


class ValidationError(AppError):
    """Bad input shape."""
    status_code = 400


class InvalidOrExpiredToken(ValidationError):
    """Password reset token does not match or has expired."""

    def __init__(self, message: str = "Token is invalid or has expired"):
        super().__init__(message)


class Unauthenticated(AppError):
    """Missing, invalid or revoked credentials."""
    status_code = 401

    def __init__(
        self,
        message: str = "You are not logged in! Please login to gain access.",
    ):
        super().__init__(message)


class Forbidden(AppError):
    """Authenticated but not allowed."""
    status_code = 403

    def __init__(
        self,
        message: str = "You do not have permission to perform this action",
    ):
        super().__init__(message)


class NotFound(AppError):
    status_code = 404


class Conflict(AppError):
    """Duplicate value for a unique field."""
    status_code = 409


class UpstreamFailure(AppError):
    """A collaborator (email, geocoding, storage) failed."""
    status_code = 502
