"""Custom exception hierarchy for the metered API."""

from typing import Any


class MeteredAPIError(Exception):
    """Base exception for all metered API errors."""

    status_code: int = 500
    error_code: str = "INTERNAL_ERROR"
    message: str = "An internal error occurred"

    def __init__(
        self,
        message: str | None = None,
        details: dict[str, Any] | None = None,
    ):
        self.message = message or self.__class__.message
        self.details = details or {}
        super().__init__(self.message)


# Authentication Errors (401)


class AuthenticationError(MeteredAPIError):
    """Base authentication error."""

    status_code = 401
    error_code = "AUTH_ERROR"
    message = "Authentication failed"


class MissingCredentialError(AuthenticationError):
    """No API key provided."""

    error_code = "MISSING_CREDENTIAL"
    message = "API key missing"


# Authorization Errors (403)


class AuthorizationError(MeteredAPIError):
    """Base authorization error."""

    status_code = 403
    error_code = "AUTH_FORBIDDEN"
    message = "Access denied"


class InvalidAPIKeyError(AuthorizationError):
    """API key matches no user."""

    error_code = "INVALID_KEY"
    message = "Invalid API key"


class InvalidAdminKeyError(AuthorizationError):
    """Admin key missing, wrong, or not configured."""

    error_code = "INVALID_ADMIN_KEY"
    message = "Admin access denied"


class AlreadyRechargedError(AuthorizationError):
    """The one-time recharge has already been used."""

    error_code = "ALREADY_RECHARGED"
    message = "Recharge not available or already used"


# Credit Errors (429)


class InsufficientCreditsError(MeteredAPIError):
    """No credits left for this request."""

    status_code = 429
    error_code = "INSUFFICIENT_CREDITS"
    message = "Request limit exceeded. Please recharge credits."


# Resource Not Found Errors (404)


class UserNotFoundError(MeteredAPIError):
    """User not found."""

    status_code = 404
    error_code = "USER_NOT_FOUND"
    message = "User not found"


class ItemNotFoundError(MeteredAPIError):
    """Item missing or owned by someone else."""

    status_code = 404
    error_code = "ITEM_NOT_FOUND"
    message = "Item not found"

    def __init__(self, item_ref: str):
        super().__init__(
            message=f"Item '{item_ref}' not found",
            details={"item": item_ref},
        )


# Internal Errors (500)


class InternalError(MeteredAPIError):
    """Base internal error."""

    status_code = 500
    error_code = "INTERNAL_ERROR"
    message = "An internal error occurred"


class StorageUnavailableError(InternalError):
    """The backing store failed or timed out."""

    error_code = "STORAGE_UNAVAILABLE"
    message = "Internal server error during validation"


class StorageError(Exception):
    """Raised by storage backends when an operation cannot complete."""
