"""
Custom error classes for the application.

Every error carries an explicit ErrorKind. The request boundary in
app.main switches on the kind to pick the HTTP response.
"""
from enum import Enum
from typing import Optional


class ErrorKind(str, Enum):
    """Category of an application error."""
    AUTH_REQUIRED = "AUTH_REQUIRED"
    AUTH_EXPIRED = "AUTH_EXPIRED"
    PROVIDER_API = "PROVIDER_API"
    BAD_REQUEST = "BAD_REQUEST"
    INTERNAL = "INTERNAL"


class AppError(Exception):
    """Base application error."""

    def __init__(
        self,
        message: str,
        kind: ErrorKind = ErrorKind.INTERNAL,
        status_code: int = 500,
        details: Optional[dict] = None
    ):
        self.message = message
        self.kind = kind
        self.status_code = status_code
        self.details = details or {}
        super().__init__(self.message)

    def to_dict(self) -> dict:
        """Convert error to dictionary for response."""
        return {
            "error": self.message,
            "code": self.kind.value,
        }


class AuthRequiredError(AppError):
    """No usable session on the request."""

    def __init__(self, message: str = "Authentication required"):
        super().__init__(message, ErrorKind.AUTH_REQUIRED, status_code=401)


class AuthExpiredError(AppError):
    """The access token could not be refreshed. A new consent flow is needed."""

    def __init__(self, message: str = "Google session expired. Please sign in again."):
        super().__init__(message, ErrorKind.AUTH_EXPIRED, status_code=401)


class ProviderApiError(AppError):
    """Gmail API answered with a non-success status."""

    def __init__(self, message: str = "Gmail API error", status: Optional[int] = 500):
        self.status = status
        super().__init__(message, ErrorKind.PROVIDER_API, status_code=provider_status(status))


class InvalidRequestError(AppError):
    """Invalid request format."""

    def __init__(self, message: str = "Invalid request format."):
        super().__init__(message, ErrorKind.BAD_REQUEST, status_code=400)


class OAuthError(AppError):
    """Google rejected a token exchange, refresh or profile lookup."""

    def __init__(self, message: str = "Google authentication failed"):
        super().__init__(message, ErrorKind.AUTH_REQUIRED, status_code=401)


class InternalError(AppError):
    """Unexpected failure. The message is safe to show to users."""

    def __init__(self, message: str = "Unexpected server error"):
        super().__init__(message, ErrorKind.INTERNAL, status_code=500)


def provider_status(status: Optional[int]) -> int:
    """HTTP status to forward for a provider failure."""
    if isinstance(status, int) and 400 <= status <= 599:
        return status
    return 500
