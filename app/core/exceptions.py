"""
Base exception classes for application-wide error handling.

Every domain error raised by the service derives from BaseApplicationError,
so callers get a machine-readable error code and a details dict no matter
which app raised it.

Exception Hierarchy:
    BaseApplicationError (base)
    ├── ValidationError - Input rejected before any work starts
    ├── NotFoundError - Referenced record does not exist
    └── ExternalServiceError - A collaborator service failed

Usage:
    from core.exceptions import ValidationError, NotFoundError

    # Raise with message only
    raise ValidationError("At least one channel is required")

    # Raise with error code and details
    raise NotFoundError(
        "Template not found",
        error_code="TEMPLATE_NOT_FOUND",
        details={"template_id": "welcome"},
    )

    # Convert to dict for a response body or a log record
    try:
        ...
    except BaseApplicationError as e:
        payload = e.to_dict()
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from typing import Any


class BaseApplicationError(Exception):
    """
    Base exception for all application-specific errors.

    Attributes:
        message: Human-readable error description
        error_code: Machine-readable code for client-side handling
        details: Additional error context (ids, field errors, etc.)

    Example:
        try:
            profile = directory.resolve(user_id)
        except NotFoundError as e:
            logger.warning(f"Lookup failed: {e.error_code}")
    """

    default_error_code: str = "APPLICATION_ERROR"

    def __init__(
        self,
        message: str,
        error_code: str | None = None,
        details: dict[str, Any] | None = None,
    ):
        """
        Initialize the exception.

        Args:
            message: Human-readable error description
            error_code: Machine-readable error code (defaults to class default)
            details: Additional error context
        """
        self.message = message
        self.error_code = error_code or self.default_error_code
        self.details = details or {}
        super().__init__(message)

    def to_dict(self) -> dict[str, Any]:
        """
        Convert exception to a dictionary.

        Returns:
            Dict with error, error_code, and (when present) details keys
        """
        result: dict[str, Any] = {
            "error": self.message,
            "error_code": self.error_code,
        }
        if self.details:
            result["details"] = self.details
        return result

    def __str__(self) -> str:
        """Return string representation with error code."""
        return f"[{self.error_code}] {self.message}"

    def __repr__(self) -> str:
        """Return detailed representation for debugging."""
        return (
            f"{self.__class__.__name__}("
            f"message={self.message!r}, "
            f"error_code={self.error_code!r}, "
            f"details={self.details!r})"
        )


class ValidationError(BaseApplicationError):
    """
    Raised when a request is rejected before any record is written.

    Use for:
    - Missing or empty channel sets
    - Channels not valid for the chosen send mode
    - Templates without usable content

    Note:
        Maps to a 4xx-equivalent failure for the calling layer.
    """

    default_error_code: str = "VALIDATION_ERROR"


class NotFoundError(BaseApplicationError):
    """
    Raised when a requested resource is not found.

    Use for:
    - Database record not found
    - External resource not found (e.g. user directory returned 404)

    Example:
        notification = Notification.objects.filter(id=notification_id).first()
        if not notification:
            raise NotFoundError(
                f"Notification {notification_id} not found",
                error_code="NOTIFICATION_NOT_FOUND",
                details={"notification_id": str(notification_id)},
            )
    """

    default_error_code: str = "NOT_FOUND"


class ExternalServiceError(BaseApplicationError):
    """
    Raised when an external service call fails.

    Use for:
    - Directory/API failures other than "not found"
    - Network timeouts
    - Unexpected response bodies

    Example:
        try:
            response = client.get(url)
        except httpx.HTTPError as e:
            raise ExternalServiceError(
                "User directory unavailable",
                error_code="USER_DIRECTORY_ERROR",
                details={"original_error": str(e)},
            )

    Note:
        Log the original error for debugging but don't expose
        internal details to clients in production.
    """

    default_error_code: str = "EXTERNAL_SERVICE_ERROR"
