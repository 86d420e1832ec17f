"""
Static per-event tables used by NotificationDispatcher.process_event.

Each event type has:
    - default channels, used when the caller doesn't name any
    - title/body templates ({{token}} syntax, see notifications.rendering)
    - fallback values for tokens the payload may omit

Every EventType has an entry in both tables; anything else is rejected
with UnsupportedEventTypeError.

Payload values override the fallbacks, so
    {"newStatus": "approved"} -> "Your payment status has been changed to approved."
    {}                        -> "Your payment status has been changed to updated."
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from notifications.exceptions import UnsupportedEventTypeError
from notifications.models import EventType, NotificationChannel

if TYPE_CHECKING:
    from collections.abc import Mapping
    from typing import Any


@dataclass(frozen=True)
class EventContent:
    """Title/body templates for one event type."""

    title: str
    body: str
    defaults: dict[str, str] = field(default_factory=dict)

    def placeholders(self, payload: Mapping[str, Any] | None) -> dict[str, Any]:
        """Fallback values overlaid with the event payload."""
        merged: dict[str, Any] = dict(self.defaults)
        for key, value in (payload or {}).items():
            # A null payload value doesn't erase a fallback
            if value is not None or key not in merged:
                merged[key] = value
        return merged


EVENT_DEFAULT_CHANNELS: dict[str, tuple[str, ...]] = {
    EventType.PAYMENT_STATUS_CHANGED: (
        NotificationChannel.EMAIL,
        NotificationChannel.IN_APP,
    ),
    EventType.ISSUE_STATUS_CHANGED: (
        NotificationChannel.IN_APP,
        NotificationChannel.EMAIL,
    ),
    EventType.ISSUE_MESSAGE_NEW: (NotificationChannel.IN_APP,),
    EventType.STUDENT_VERIFIED: (NotificationChannel.EMAIL,),
    EventType.STUDENT_REGISTERED: (NotificationChannel.EMAIL,),
    EventType.ADMIN_BROADCAST: (
        NotificationChannel.IN_APP,
        NotificationChannel.EMAIL,
    ),
}

EVENT_CONTENT: dict[str, EventContent] = {
    EventType.PAYMENT_STATUS_CHANGED: EventContent(
        title="Payment Status Updated",
        body="Your payment status has been changed to {{newStatus}}.",
        defaults={"newStatus": "updated"},
    ),
    EventType.ISSUE_STATUS_CHANGED: EventContent(
        title="Issue Status Updated",
        body="Your issue status has been changed to {{newStatus}}.",
        defaults={"newStatus": "updated"},
    ),
    EventType.ISSUE_MESSAGE_NEW: EventContent(
        title="New Message",
        body="You have a new message: {{messagePreview}}",
        defaults={"messagePreview": "..."},
    ),
    EventType.STUDENT_VERIFIED: EventContent(
        title="Account Verified",
        body="Welcome to DopamineLite! Your account has been verified.",
    ),
    EventType.STUDENT_REGISTERED: EventContent(
        title="Registration Successful",
        body="Thank you for registering with DopamineLite.",
    ),
    EventType.ADMIN_BROADCAST: EventContent(
        title="{{title}}",
        body="{{message}}",
        defaults={"title": "Announcement", "message": ""},
    ),
}


def normalize_event_type(event_type: str) -> str:
    """
    Turn a requested event type into an EventType value.

    Accepts enum members, values ("payment_status_changed") or names
    ("PAYMENT_STATUS_CHANGED").

    Raises:
        UnsupportedEventTypeError: Not an EventType
    """
    value = str(event_type or "").strip().lower()
    if value not in EventType.values:
        raise UnsupportedEventTypeError(
            f"Event type '{event_type}' is not supported",
            details={"event_type": str(event_type), "allowed": sorted(EventType.values)},
        )
    return value


def default_channels_for(event_type: str) -> tuple[str, ...]:
    return EVENT_DEFAULT_CHANNELS[normalize_event_type(event_type)]


def content_for(event_type: str) -> EventContent:
    return EVENT_CONTENT[normalize_event_type(event_type)]
