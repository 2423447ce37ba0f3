"""
Storefront exception taxonomy.

Every domain error carries a machine-readable ``code`` and the HTTP status it maps
to, so the API layer can turn it into the standard error envelope without
inspecting messages.
"""

from typing import Any

from fastapi import status


class StorefrontError(Exception):
    """Base exception for the storefront service."""

    code = "INTERNAL_ERROR"
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_message = "Internal server error"

    def __init__(self, message: str | None = None, *, details: Any = None) -> None:
        self.message = message or self.default_message
        self.details = details
        super().__init__(self.message)

    def to_dict(self, *, expose_message: bool = True) -> dict[str, Any]:
        """Render the error envelope for this exception."""
        message = self.message if expose_message else self.default_message
        payload: dict[str, Any] = {"success": False, "message": message, "error": self.code}
        if self.details is not None and expose_message:
            payload["details"] = self.details
        return payload


class ValidationError(StorefrontError):
    """Missing or malformed input."""

    code = "VALIDATION_ERROR"
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Validation failed"


class DuplicateCredentialError(StorefrontError):
    """Username or email already registered."""

    code = "DUPLICATE_CREDENTIAL"
    status_code = status.HTTP_409_CONFLICT
    default_message = "Username or email already exists"


class InvalidCredentialsError(StorefrontError):
    """Login rejected.

    The message is identical for unknown users and wrong passwords.
    """

    code = "INVALID_CREDENTIALS"
    status_code = status.HTTP_401_UNAUTHORIZED
    default_message = "Invalid username or password"


class AuthenticationRequiredError(StorefrontError):
    """No credentials supplied for a protected route."""

    code = "UNAUTHORIZED"
    status_code = status.HTTP_401_UNAUTHORIZED
    default_message = "Access token is required"


class InvalidTokenError(StorefrontError):
    """Token malformed or signature mismatch."""

    code = "TOKEN_INVALID"
    status_code = status.HTTP_401_UNAUTHORIZED
    default_message = "Invalid or expired token"


class ExpiredTokenError(InvalidTokenError):
    """Token signature valid but past its expiry."""

    code = "TOKEN_EXPIRED"
    default_message = "Token has expired"


class NotFoundError(StorefrontError):
    """Requested entity does not exist."""

    code = "NOT_FOUND"
    status_code = status.HTTP_404_NOT_FOUND
    default_message = "Resource not found"


class StoreError(StorefrontError):
    """Credential store failure."""

    code = "STORE_ERROR"
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_message = "Internal server error"


class RateLimitExceededError(StorefrontError):
    """Client exceeded its request quota for the current window."""

    code = "RATE_LIMITED"
    status_code = status.HTTP_429_TOO_MANY_REQUESTS
    default_message = "Too many requests, please try again later."


class ConfigurationError(StorefrontError):
    """Invalid configuration; fatal at startup."""

    code = "CONFIGURATION_ERROR"
    default_message = "Invalid configuration"


__all__ = [
    "StorefrontError",
    "ValidationError",
    "DuplicateCredentialError",
    "InvalidCredentialsError",
    "AuthenticationRequiredError",
    "InvalidTokenError",
    "ExpiredTokenError",
    "NotFoundError",
    "StoreError",
    "RateLimitExceededError",
    "ConfigurationError",
]
