"""Custom exception hierarchy.

Every error carries the HTTP status it maps to so the API layer can render
it without knowing which service raised it.
"""

from typing import Optional


class AppError(Exception):
    """Base exception for application errors."""

    status_code: int = 500

    def __init__(
        self,
        message: str,
        original_error: Optional[Exception] = None,
        status_code: Optional[int] = None,
    ):
        super().__init__(message)
        self.message = message
        self.original_error = original_error
        if status_code is not None:
            self.status_code = status_code


class ValidationError(AppError):
    """Raised when input validation fails."""

    status_code = 400


class AuthorizationError(AppError):
    """Raised when the caller lacks the required role."""

    status_code = 403


class NotFoundError(AppError):
    """Raised when a requested record does not exist."""

    status_code = 404


class ConflictError(AppError):
    """Raised when a record cannot be created because of existing state."""

    status_code = 409


class DatabaseError(AppError):
    """Raised when a database operation fails."""

    pass


class ConfigurationError(AppError):
    """Raised when configuration is invalid or missing."""

    pass


class StorageError(AppError):
    """Raised when an object storage call fails."""

    pass


class APIClientError(AppError):
    """Raised when an external API call fails."""

    pass


class APITimeoutError(APIClientError):
    """Raised when an external API call times out."""

    status_code = 504


class AIGatewayError(APIClientError):
    """Raised when the AI gateway rejects or fails a request."""

    pass


class RateLimitError(AIGatewayError):
    """AI gateway returned 429."""

    status_code = 429

    def __init__(self, message: str = "Rate limits exceeded, please try again later.", **kwargs):
        super().__init__(message, **kwargs)


class PaymentRequiredError(AIGatewayError):
    """AI gateway returned 402."""

    status_code = 402

    def __init__(self, message: str = "Payment required, please add funds to your workspace.", **kwargs):
        super().__init__(message, **kwargs)


class EmailDeliveryError(APIClientError):
    """Raised when the email provider rejects a message."""

    pass
