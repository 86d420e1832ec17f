"""
Tests for per-channel delivery strategies.

Tests cover:
- Email strategy: address validation, provider rejection, sender errors
- Chat stub
- Unknown channels

Usage:
    pytest app/notifications/tests/test_delivery.py -v
"""

import pytest

from notifications.exceptions import PERMANENT_ERRORS, DeliveryError
from notifications.tests.factories import NotificationFactory


@pytest.fixture
def email_notification(db):
    return NotificationFactory(channel="email", title="Hello", body="World")


# =============================================================================
# Email
# =============================================================================


class TestEmailDelivery:
    """Tests for the EMAIL strategy."""

    def test_sends_title_and_body(self, router, email_sender, email_notification):
        router.deliver("email", "ann@example.com", email_notification)

        email_sender.send.assert_called_once_with("ann@example.com", "Hello", "World")

    @pytest.mark.parametrize("address", ["", "not-an-address"])
    def test_invalid_address_is_permanent(
        self, router, email_sender, email_notification, address
    ):
        with pytest.raises(DeliveryError) as exc_info:
            router.deliver("email", address, email_notification)

        assert exc_info.value.code == "invalid_email"
        assert exc_info.value.is_permanent
        email_sender.send.assert_not_called()

    def test_provider_rejection_is_transient(
        self, router, email_sender, email_notification
    ):
        email_sender.send.return_value = False

        with pytest.raises(DeliveryError) as exc_info:
            router.deliver("email", "ann@example.com", email_notification)

        assert exc_info.value.code == "provider_rejected"
        assert not exc_info.value.is_permanent

    def test_sender_exception_propagates(self, router, email_sender, email_notification):
        """Unclassified errors reach the worker untouched."""
        email_sender.send.side_effect = ConnectionError("SMTP down")

        with pytest.raises(ConnectionError):
            router.deliver("email", "ann@example.com", email_notification)


# =============================================================================
# Chat and unknown channels
# =============================================================================


class TestOtherChannels:
    """Tests for CHAT and channels without a strategy."""

    def test_chat_stub_succeeds(self, router, email_sender, db):
        notification = NotificationFactory(channel="chat")

        router.deliver("chat", "+94770000001", notification)

        email_sender.send.assert_not_called()

    def test_in_app_has_no_strategy(self, router, email_notification):
        with pytest.raises(DeliveryError) as exc_info:
            router.deliver("in_app", "", email_notification)

        assert exc_info.value.code == "unsupported_channel"
        assert exc_info.value.is_permanent


class TestDeliveryError:
    """Tests for DeliveryError classification."""

    def test_permanent_codes(self):
        for code in PERMANENT_ERRORS:
            assert DeliveryError("x", code=code).is_permanent

    def test_unknown_code_is_transient(self):
        assert not DeliveryError("x", code="timeout").is_permanent

    def test_explicit_flag_wins(self):
        assert DeliveryError("x", code="timeout", is_permanent=True).is_permanent
        assert not DeliveryError("x", code="invalid_email", is_permanent=False).is_permanent
