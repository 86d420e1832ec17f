"""
Notification-specific exceptions.

Exception Hierarchy:
    NotFoundError (core)
    ├── RecipientNotFoundError - User directory has no such user
    ├── TemplateNotFoundError - No stored template with that id
    └── NotificationNotFoundError - Unknown notification id
    ValidationError (core)
    ├── NoChannelsSpecifiedError - Neither request nor template names a channel
    ├── UnsupportedChannelError - Channel not valid for the send mode
    ├── TemplateHasNoContentError - Template has no primary or secondary content
    ├── UnsupportedEventTypeError - Event type is not an EventType
    └── NotificationNotInAppError - Read state only applies to in-app notifications
    DeliveryError - A channel send failed (permanent or transient)

Usage:
    from notifications.exceptions import DeliveryError, RecipientNotFoundError

    raise RecipientNotFoundError(
        f"User {user_id} not found",
        details={"user_id": str(user_id)},
    )

    raise DeliveryError("Invalid email address", code="invalid_email", is_permanent=True)
"""

from __future__ import annotations

from core.exceptions import NotFoundError, ValidationError


# =============================================================================
# Not Found
# =============================================================================


class RecipientNotFoundError(NotFoundError):
    """Raised when the user directory has no profile for a user id."""

    default_error_code: str = "RECIPIENT_NOT_FOUND"


class TemplateNotFoundError(NotFoundError):
    """Raised when no stored template matches the requested template id."""

    default_error_code: str = "TEMPLATE_NOT_FOUND"


class NotificationNotFoundError(NotFoundError):
    default_error_code: str = "NOTIFICATION_NOT_FOUND"


# =============================================================================
# Validation
# =============================================================================


class NoChannelsSpecifiedError(ValidationError):
    """Raised when a send resolves to an empty channel set."""

    default_error_code: str = "NO_CHANNELS_SPECIFIED"


class UnsupportedChannelError(ValidationError):
    """
    Raised when a channel is unknown or not valid for the send mode.

    Example:
        Requesting IN_APP when sending to raw email addresses, where
        there is no user to show the in-app message to.
    """

    default_error_code: str = "UNSUPPORTED_CHANNEL"


class TemplateHasNoContentError(ValidationError):
    default_error_code: str = "TEMPLATE_HAS_NO_CONTENT"


class UnsupportedEventTypeError(ValidationError):
    """Raised when process_event is called with a type that isn't an EventType."""

    default_error_code: str = "UNSUPPORTED_EVENT_TYPE"


class NotificationNotInAppError(ValidationError):
    """Raised when a read-state change targets a non in-app notification."""

    default_error_code: str = "NOT_IN_APP"


# =============================================================================
# Delivery
# =============================================================================


# Error codes that retrying won't fix
PERMANENT_ERRORS = {
    "invalid_email",
    "invalid_recipient",
    "unsupported_channel",
}


class DeliveryError(Exception):
    """
    Raised by a channel delivery strategy when a send fails.

    Attributes:
        code: Short machine-readable failure code
        is_permanent: True if retrying won't help
    """

    def __init__(self, message: str, code: str, is_permanent: bool | None = None):
        super().__init__(message)
        self.code = code
        self.is_permanent = (
            code in PERMANENT_ERRORS if is_permanent is None else is_permanent
        )
