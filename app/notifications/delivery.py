"""
Per-channel delivery strategies used by the outbox worker.

Each asynchronous channel maps to one strategy callable. A strategy either
returns (delivered) or raises (failed); it never touches outbox or
notification state, so the worker stays the single authority over status
transitions regardless of channel.

Channels:
    EMAIL: Sent through the injected EmailSender
    CHAT: Stub, succeeds without contacting a provider

Usage:
    from notifications.delivery import ChannelRouter
    from toolkit.services.email import EmailService

    router = ChannelRouter(email_sender=EmailService())
    router.deliver(entry.channel, entry.recipient_address, notification)
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from notifications.exceptions import DeliveryError
from notifications.models import NotificationChannel

if TYPE_CHECKING:
    from collections.abc import Callable

    from notifications.models import Notification
    from toolkit.protocols import EmailSender

    DeliveryStrategy = Callable[[str, Notification], None]

logger = logging.getLogger(__name__)


class ChannelRouter:
    """Looks up and runs the delivery strategy for a channel."""

    def __init__(self, email_sender: EmailSender):
        self._email_sender = email_sender
        self._strategies: dict[str, DeliveryStrategy] = {
            NotificationChannel.EMAIL: self._deliver_email,
            NotificationChannel.CHAT: self._deliver_chat,
        }

    def deliver(self, channel: str, address: str, notification: Notification) -> None:
        """
        Deliver one notification on one channel.

        Raises:
            DeliveryError: Classified failure (permanent or transient)
            Exception: Anything the underlying sender raises (transient)
        """
        strategy = self._strategies.get(channel)
        if strategy is None:
            raise DeliveryError(
                f"No delivery strategy for channel '{channel}'",
                code="unsupported_channel",
            )
        strategy(address, notification)

    def _deliver_email(self, address: str, notification: Notification) -> None:
        if not address or "@" not in address:
            raise DeliveryError(
                f"Invalid email address '{address}'",
                code="invalid_email",
            )

        accepted = self._email_sender.send(address, notification.title, notification.body)
        if not accepted:
            raise DeliveryError(
                "Email provider did not accept the message",
                code="provider_rejected",
            )

    def _deliver_chat(self, address: str, notification: Notification) -> None:
        # Stub channel: no chat provider is wired in, delivery always succeeds
        logger.info(
            f"Chat delivery stub for notification {notification.id} to '{address}'"
        )
