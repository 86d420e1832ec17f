"""
Persistence boundaries for the notification core.

The dispatcher and the worker receive these objects through their
constructors instead of reaching for model managers directly, so tests
can hand them doubles and the write paths stay in one place.

Repositories:
    NotificationRepository: Notification records
    DeliveryOutboxRepository: Pending/failed delivery attempts
    DjangoTemplateStore: Stored templates (TemplateStore protocol)

Usage:
    notifications = NotificationRepository()
    outbox = DeliveryOutboxRepository()

    notification = notifications.create(
        user_id=user_id,
        channel=NotificationChannel.EMAIL,
        title="Hello",
        body="World",
    )
    outbox.enqueue(notification, "user@example.com")
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from django.conf import settings
from django.db.models import F
from django.utils import timezone

from notifications.exceptions import TemplateNotFoundError
from notifications.models import (
    DeliveryOutbox,
    DeliveryStatus,
    Notification,
    NotificationChannel,
    NotificationTemplate,
    OutboxStatus,
)

if TYPE_CHECKING:
    from datetime import datetime
    from typing import Any
    from uuid import UUID

    from django.db.models import QuerySet

    from notifications.models import BroadcastRecord

logger = logging.getLogger(__name__)


class NotificationRepository:
    """Create, look up and update Notification records."""

    def create(
        self,
        *,
        user_id: UUID | None,
        channel: str,
        title: str,
        body: str,
        broadcast: BroadcastRecord | None = None,
        template_key: str | None = None,
        metadata: dict[str, Any] | None = None,
    ) -> Notification:
        """
        Persist one notification record.

        IN_APP records are delivered by being stored, so they start SENT;
        every other channel starts PENDING until the outbox worker is done.
        """
        delivery_status = (
            DeliveryStatus.SENT
            if channel == NotificationChannel.IN_APP
            else DeliveryStatus.PENDING
        )
        return Notification.objects.create(
            user_id=user_id,
            broadcast=broadcast,
            channel=channel,
            title=title,
            body=body,
            delivery_status=delivery_status,
            template_key=template_key,
            metadata=metadata or {},
        )

    def get(self, notification_id: UUID) -> Notification | None:
        return Notification.objects.filter(id=notification_id).first()

    def list_for_broadcast(self, broadcast_id: UUID) -> QuerySet[Notification]:
        return Notification.objects.filter(broadcast_id=broadcast_id)

    def set_delivery_status(self, notification: Notification, status: str) -> None:
        notification.delivery_status = status
        notification.save(update_fields=["delivery_status", "updated_at"])

    def mark_read(
        self,
        notification: Notification,
        is_read: bool,
        now: datetime | None = None,
    ) -> Notification:
        """
        Set the read flag, keeping read_at in step with it.

        Marking an already-read notification as read leaves read_at alone;
        marking it unread clears read_at.
        """
        if is_read == notification.is_read:
            return notification

        notification.is_read = is_read
        notification.read_at = (now or timezone.now()) if is_read else None
        notification.save(update_fields=["is_read", "read_at", "updated_at"])
        return notification


class DeliveryOutboxRepository:
    """Enqueue delivery attempts and select the ones that are due."""

    def enqueue(
        self,
        notification: Notification,
        recipient_address: str,
        now: datetime | None = None,
        max_retries: int | None = None,
    ) -> DeliveryOutbox:
        """Create a PENDING outbox entry that is due immediately."""
        if max_retries is None:
            max_retries = settings.NOTIFICATIONS_OUTBOX_MAX_RETRIES
        return DeliveryOutbox.objects.create(
            notification=notification,
            channel=notification.channel,
            recipient_address=recipient_address or "",
            status=OutboxStatus.PENDING,
            retry_count=0,
            max_retries=max_retries,
            next_retry_at=now or timezone.now(),
        )

    def due_entries(self, now: datetime, limit: int) -> list[DeliveryOutbox]:
        """
        Entries the worker should attempt now.

        PENDING or retryable FAILED entries whose next_retry_at has passed.
        Terminal entries (permanent failure or retries exhausted) are excluded.
        """
        queryset = (
            DeliveryOutbox.objects.select_related("notification")
            .filter(
                status__in=[OutboxStatus.PENDING, OutboxStatus.FAILED],
                next_retry_at__lte=now,
                is_permanent_failure=False,
                retry_count__lt=F("max_retries"),
            )
            .order_by("next_retry_at")
        )
        return list(queryset[:limit])


class DjangoTemplateStore:
    """TemplateStore backed by the NotificationTemplate table."""

    def get(self, template_id: str) -> NotificationTemplate:
        template = NotificationTemplate.objects.filter(template_id=template_id).first()
        if template is None:
            raise TemplateNotFoundError(
                f"Template '{template_id}' not found",
                details={"template_id": template_id},
            )
        return template

    def increment_sent_times(self, template_id: str) -> None:
        updated = NotificationTemplate.objects.filter(template_id=template_id).update(
            sent_times=F("sent_times") + 1,
            updated_at=timezone.now(),
        )
        if not updated:
            logger.warning(f"Template {template_id} vanished before sent_times update")
