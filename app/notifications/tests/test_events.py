"""
Tests for the per-event default channels and content tables.
"""

import pytest

from notifications.events import (
    EVENT_CONTENT,
    EVENT_DEFAULT_CHANNELS,
    content_for,
    default_channels_for,
    normalize_event_type,
)
from notifications.exceptions import UnsupportedEventTypeError
from notifications.models import EventType, NotificationChannel


class TestEventTables:
    """Tests for table coverage and defaults."""

    def test_every_event_type_has_channels_and_content(self):
        for event_type in EventType.values:
            assert event_type in EVENT_DEFAULT_CHANNELS
            assert event_type in EVENT_CONTENT

    def test_payment_status_defaults_to_email_and_in_app(self):
        channels = default_channels_for(EventType.PAYMENT_STATUS_CHANGED)

        assert set(channels) == {NotificationChannel.EMAIL, NotificationChannel.IN_APP}

    def test_new_message_is_in_app_only(self):
        assert default_channels_for("issue_message_new") == (NotificationChannel.IN_APP,)

    def test_unknown_event_rejected(self):
        with pytest.raises(UnsupportedEventTypeError) as exc_info:
            default_channels_for("something_else")

        assert exc_info.value.error_code == "UNSUPPORTED_EVENT_TYPE"

        with pytest.raises(UnsupportedEventTypeError):
            content_for("something_else")


class TestNormalizeEventType:
    """Tests for accepting event types by value or name."""

    @pytest.mark.parametrize(
        "event_type",
        [
            EventType.PAYMENT_STATUS_CHANGED,
            "payment_status_changed",
            "PAYMENT_STATUS_CHANGED",
            " Payment_Status_Changed ",
        ],
    )
    def test_accepts_member_value_and_name(self, event_type):
        assert normalize_event_type(event_type) == "payment_status_changed"

    @pytest.mark.parametrize("event_type", ["", None, "payment", "sms_sent"])
    def test_rejects_anything_else(self, event_type):
        with pytest.raises(UnsupportedEventTypeError):
            normalize_event_type(event_type)

    def test_name_lookup_uses_event_tables(self):
        assert default_channels_for("PAYMENT_STATUS_CHANGED") == (
            NotificationChannel.EMAIL,
            NotificationChannel.IN_APP,
        )
        assert content_for("ADMIN_BROADCAST").title == "{{title}}"


class TestEventPlaceholders:
    """Tests for payload values overlaying the fallbacks."""

    def test_payload_overrides_default(self):
        content = content_for(EventType.PAYMENT_STATUS_CHANGED)

        assert content.placeholders({"newStatus": "approved"}) == {"newStatus": "approved"}

    def test_missing_payload_uses_default(self):
        content = content_for(EventType.PAYMENT_STATUS_CHANGED)

        assert content.placeholders(None) == {"newStatus": "updated"}

    def test_null_payload_value_keeps_default(self):
        content = content_for(EventType.ADMIN_BROADCAST)

        placeholders = content.placeholders({"title": None, "message": "Hello"})

        assert placeholders == {"title": "Announcement", "message": "Hello"}

    def test_extra_payload_keys_kept(self):
        content = content_for(EventType.STUDENT_VERIFIED)

        assert content.placeholders({"batch": "2026"}) == {"batch": "2026"}
