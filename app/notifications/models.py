"""
Notification system models.

This module defines the persisted state of the notification system:
- Notification: One message to one user on one channel
- BroadcastRecord: One logical send spanning many recipients and channels
- DeliveryOutbox: One pending/in-flight asynchronous delivery attempt
- NotificationTemplate: Stored content used by template sends

Design Decisions:
    - All models use UUID primary keys (ids are shared with other services)
    - Users live in an external directory, so user ids are plain UUIDs,
      not foreign keys
    - Notification.broadcast uses SET_NULL (a record outlives its broadcast)
    - DeliveryOutbox.notification uses SET_NULL so an out-of-band delete
      leaves an orphaned entry that the worker can fail terminally
    - Records are never deleted by the service; the outbox doubles as
      a delivery audit log

Usage:
    from notifications.models import Notification, NotificationChannel

    notification = Notification.objects.create(
        user_id=user_id,
        channel=NotificationChannel.IN_APP,
        title="Account Verified",
        body="Welcome to DopamineLite! Your account has been verified.",
    )
"""

from __future__ import annotations

from django.db import models

from core.model_mixins import MetadataMixin, UUIDPrimaryKeyMixin
from core.models import BaseModel


# =============================================================================
# Enums
# =============================================================================


class NotificationChannel(models.TextChoices):
    """
    Delivery channels for notifications.

    IN_APP is instant: persisting the record is the delivery.
    EMAIL and CHAT are delivered asynchronously through the outbox.
    """

    IN_APP = "in_app", "In-App"
    EMAIL = "email", "Email"
    CHAT = "chat", "Chat Message"


# Channels that go through the delivery outbox
OUTBOX_CHANNELS = frozenset({NotificationChannel.EMAIL, NotificationChannel.CHAT})


class DeliveryStatus(models.TextChoices):
    """
    Delivery outcome of a notification record.

    State Flow:
        PENDING -> SENT (outbox delivered)
        PENDING -> FAILED (permanent error or retries exhausted)
    """

    PENDING = "pending", "Pending"
    SENT = "sent", "Sent"
    FAILED = "failed", "Failed"


class OutboxStatus(models.TextChoices):
    """
    Status of a delivery outbox entry.

    State Flow:
        PENDING -> SENT
        PENDING -> FAILED (retryable, revisited at next_retry_at)
        FAILED -> FAILED (retryable again) | SENT | FAILED (terminal)

    A FAILED entry is terminal when is_permanent_failure is set, which
    happens once retries are exhausted or the failure can't be retried.
    """

    PENDING = "pending", "Pending"
    SENT = "sent", "Sent"
    FAILED = "failed", "Failed"


class EventType(models.TextChoices):
    """Domain events other services report to the dispatcher."""

    PAYMENT_STATUS_CHANGED = "payment_status_changed", "Payment Status Changed"
    ISSUE_STATUS_CHANGED = "issue_status_changed", "Issue Status Changed"
    ISSUE_MESSAGE_NEW = "issue_message_new", "New Issue Message"
    STUDENT_VERIFIED = "student_verified", "Student Verified"
    STUDENT_REGISTERED = "student_registered", "Student Registered"
    ADMIN_BROADCAST = "admin_broadcast", "Admin Broadcast"


class TemplateType(models.TextChoices):
    """Whether a template renders the same text for everyone."""

    GENERAL = "general", "General"
    PERSONALIZED = "personalized", "Personalized"


# =============================================================================
# Notification Records
# =============================================================================


class BroadcastRecord(UUIDPrimaryKeyMixin, MetadataMixin, BaseModel):
    """
    Tracking record for one logical send operation.

    Created once per dispatch call, before any per-recipient work.
    The counters are written once, after the whole fan-out loop.

    Fields:
        template_id: Template used for the send (template sends only)
        title: Title as submitted (before per-recipient rendering)
        body: Body as submitted (before per-recipient rendering)
        channels: List of channel values requested
        recipient_count: Number of targets in the request
        success_count: (recipient, channel) pairs that produced a record
        failure_count: (recipient, channel) pairs that were skipped or failed
        sent_by: Id of the user (or system sender) who triggered the send
        sent_at: When the send was accepted

    Note:
        success_count + failure_count == recipient_count * len(channels)
        once the fan-out completes.
    """

    template_id = models.CharField(
        max_length=100,
        null=True,
        blank=True,
        db_index=True,
        help_text="Template used for this broadcast, if any",
    )

    title = models.CharField(
        max_length=500,
        blank=True,
        default="",
        help_text="Title as submitted, before per-recipient rendering",
    )

    body = models.TextField(
        blank=True,
        default="",
        help_text="Body as submitted, before per-recipient rendering",
    )

    channels = models.JSONField(
        default=list,
        blank=True,
        help_text="Channels requested for this broadcast",
    )

    recipient_count = models.PositiveIntegerField(
        default=0,
        help_text="Number of recipients targeted",
    )

    success_count = models.PositiveIntegerField(
        default=0,
        help_text="Recipient/channel pairs that produced a notification",
    )

    failure_count = models.PositiveIntegerField(
        default=0,
        help_text="Recipient/channel pairs that were skipped or failed",
    )

    sent_by = models.UUIDField(
        db_index=True,
        help_text="User (or system sender) who triggered the broadcast",
    )

    sent_at = models.DateTimeField(
        db_index=True,
        help_text="When the broadcast was accepted",
    )

    class Meta:
        db_table = "notifications_broadcast"
        verbose_name = "broadcast"
        verbose_name_plural = "broadcasts"
        ordering = ["-sent_at"]

    def __str__(self) -> str:
        return (
            f"Broadcast({self.id}) {self.success_count}/{self.failure_count} "
            f"of {self.recipient_count}"
        )


class Notification(UUIDPrimaryKeyMixin, MetadataMixin, BaseModel):
    """
    One message delivered (or to be delivered) to one user on one channel.

    Fields:
        user_id: Recipient id in the user directory (null for sends
            addressed directly to an email address)
        broadcast: Broadcast this record belongs to (null for events)
        channel: Delivery channel
        title: Fully rendered title string
        body: Fully rendered body string
        is_read: Whether the recipient has read this notification
        read_at: When it was read (set iff is_read)
        delivery_status: Outcome of delivery
        template_key: Template id or event type that produced the content

    Note:
        - read_at is non-null if and only if is_read is True
        - Only IN_APP records are ever marked read
    """

    user_id = models.UUIDField(
        null=True,
        blank=True,
        db_index=True,
        help_text="Recipient id in the user directory",
    )

    broadcast = models.ForeignKey(
        BroadcastRecord,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="notifications",
        help_text="Broadcast this notification belongs to",
    )

    channel = models.CharField(
        max_length=20,
        choices=NotificationChannel.choices,
        help_text="Delivery channel",
    )

    title = models.CharField(
        max_length=500,
        help_text="Fully rendered notification title",
    )

    body = models.TextField(
        blank=True,
        default="",
        help_text="Fully rendered notification body",
    )

    is_read = models.BooleanField(
        default=False,
        db_index=True,
        help_text="Whether recipient has read this notification",
    )

    read_at = models.DateTimeField(
        null=True,
        blank=True,
        help_text="When the notification was read",
    )

    delivery_status = models.CharField(
        max_length=20,
        choices=DeliveryStatus.choices,
        default=DeliveryStatus.PENDING,
        db_index=True,
        help_text="Delivery outcome",
    )

    template_key = models.CharField(
        max_length=100,
        null=True,
        blank=True,
        help_text="Template id or event type that produced the content",
    )

    class Meta:
        db_table = "notifications_notification"
        ordering = ["-created_at"]
        indexes = [
            # User's unread notifications
            models.Index(
                fields=["user_id", "is_read", "-created_at"],
                name="notif_user_unread_idx",
            ),
        ]

    def __str__(self) -> str:
        read_status = "read" if self.is_read else "unread"
        return f"Notification({self.channel}) -> User {self.user_id} [{read_status}]"


# =============================================================================
# Delivery Outbox
# =============================================================================


class DeliveryOutbox(UUIDPrimaryKeyMixin, BaseModel):
    """
    One pending or in-flight asynchronous delivery attempt.

    Created by the dispatcher for every EMAIL/CHAT notification and
    mutated only by the outbox worker afterwards.

    Fields:
        notification: Owning notification (null if deleted out-of-band)
        channel: Delivery channel
        recipient_address: Delivery target captured at enqueue time
        status: Current outbox status
        retry_count: Failed attempts so far (never above max_retries)
        max_retries: Attempts allowed before the entry fails terminally
        next_retry_at: Earliest time the worker may pick the entry up
        last_error: Truncated message of the last failure
        delivered_at: When delivery succeeded
        is_permanent_failure: True once the entry will never be retried
    """

    notification = models.ForeignKey(
        Notification,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="outbox_entries",
    )

    channel = models.CharField(
        max_length=20,
        choices=NotificationChannel.choices,
        help_text="Delivery channel",
    )

    recipient_address = models.CharField(
        max_length=320,
        blank=True,
        default="",
        help_text="Resolved delivery target (email address, phone number)",
    )

    status = models.CharField(
        max_length=20,
        choices=OutboxStatus.choices,
        default=OutboxStatus.PENDING,
        db_index=True,
        help_text="Current outbox status",
    )

    retry_count = models.PositiveSmallIntegerField(
        default=0,
        help_text="Number of failed delivery attempts",
    )

    max_retries = models.PositiveSmallIntegerField(
        default=3,
        help_text="Failed attempts allowed before the entry fails terminally",
    )

    next_retry_at = models.DateTimeField(
        db_index=True,
        help_text="Earliest time the worker may attempt delivery",
    )

    last_error = models.CharField(
        max_length=1000,
        blank=True,
        default="",
        help_text="Truncated message of the last failure",
    )

    delivered_at = models.DateTimeField(
        null=True,
        blank=True,
        help_text="When delivery succeeded",
    )

    is_permanent_failure = models.BooleanField(
        default=False,
        help_text="True if the entry will never be retried",
    )

    class Meta:
        db_table = "notifications_delivery_outbox"
        verbose_name = "delivery outbox entry"
        verbose_name_plural = "delivery outbox entries"
        ordering = ["next_retry_at"]
        indexes = [
            # Worker scan: due pending/failed entries
            models.Index(
                fields=["status", "next_retry_at"],
                name="notif_outbox_due_idx",
            ),
        ]

    def __str__(self) -> str:
        return (
            f"Outbox({self.notification_id}, {self.channel}, {self.status}, "
            f"{self.retry_count}/{self.max_retries})"
        )

    @property
    def is_terminal(self) -> bool:
        """Whether the worker will never touch this entry again."""
        return self.status == OutboxStatus.SENT or self.is_permanent_failure


# =============================================================================
# Templates
# =============================================================================


class NotificationTemplate(UUIDPrimaryKeyMixin, MetadataMixin, BaseModel):
    """
    Stored notification content used by template sends.

    Content strings use {{token}} placeholders (see notifications.rendering).

    Fields:
        template_id: Unique programmatic identifier (e.g., "exam_reminder")
        name: Human-readable name, used as the notification title
        template_type: GENERAL or PERSONALIZED
        content_primary: Primary-language content
        content_secondary: Secondary-language content, used when the
            primary content is empty
        default_channels: Channels used when a send doesn't name any
        sent_times: Number of sends that used this template
        created_by: User who created the template
    """

    template_id = models.CharField(
        max_length=100,
        unique=True,
        help_text="Unique programmatic identifier (e.g., 'exam_reminder')",
    )

    name = models.CharField(
        max_length=200,
        help_text="Human-readable name, used as the notification title",
    )

    template_type = models.CharField(
        max_length=20,
        choices=TemplateType.choices,
        default=TemplateType.GENERAL,
        help_text="Whether the content is personalized per recipient",
    )

    content_primary = models.TextField(
        blank=True,
        default="",
        help_text="Primary-language content with {{token}} placeholders",
    )

    content_secondary = models.TextField(
        blank=True,
        default="",
        help_text="Secondary-language content, used when primary is empty",
    )

    default_channels = models.JSONField(
        default=list,
        blank=True,
        help_text="Channels used when a send doesn't name any",
    )

    sent_times = models.PositiveIntegerField(
        default=0,
        help_text="Number of sends that used this template",
    )

    created_by = models.UUIDField(
        null=True,
        blank=True,
        help_text="User who created the template",
    )

    class Meta:
        db_table = "notifications_template"
        verbose_name = "notification template"
        verbose_name_plural = "notification templates"
        ordering = ["template_id"]

    def __str__(self) -> str:
        return f"{self.name} ({self.template_id})"
