"""
Notification service layer.

This module holds the business logic of the notification system.

Services:
    NotificationDispatcher: Fans one logical send out into per-user,
        per-channel notification records and outbox entries
    NotificationService: Read-marking and lookup of single notifications
    BroadcastService: Lookup of broadcasts and their notifications

Design Principles:
    - Collaborators (user directory, repositories, template store, renderer)
      are passed to NotificationDispatcher.__init__; build_dispatcher() wires
      the production ones
    - Expected failures return ServiceResult.failure() and are decided
      before any record is written
    - A failing recipient never aborts the rest of a fan-out: its partial
      writes are rolled back and every requested channel counts as a failure
    - IN_APP records are delivered by being stored; EMAIL and CHAT records get
      one outbox entry each, drained by notifications.worker.OutboxWorker

Usage:
    from notifications.services import build_dispatcher, NotificationService

    dispatcher = build_dispatcher()

    # Domain event for one user, default channels for the event type
    result = dispatcher.process_event(
        EventType.PAYMENT_STATUS_CHANGED,
        primary_user_id=user_id,
        payload={"newStatus": "approved"},
    )

    # Direct send to many users
    result = dispatcher.send_direct(
        target_user_ids=[user_a, user_b],
        channels=["in_app", "email"],
        title="Hello {{name}}",
        body="Class starts on the {{date}}.",
        sent_by=admin_id,
    )
    broadcast_id = result.data

    # Mark as read
    result = NotificationService.mark_read(notification_id, is_read=True)
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from django.utils import timezone

from core.exceptions import BaseApplicationError
from core.services import BaseService, ServiceResult

from notifications.broadcasts import BroadcastAggregator, FanOutTally
from notifications.directory import UserProfile, get_user_directory
from notifications.events import (
    content_for,
    default_channels_for,
    normalize_event_type,
)
from notifications.exceptions import (
    NoChannelsSpecifiedError,
    NotificationNotFoundError,
    NotificationNotInAppError,
    TemplateHasNoContentError,
    UnsupportedChannelError,
)
from notifications.models import (
    OUTBOX_CHANNELS,
    Notification,
    NotificationChannel,
)
from notifications.rendering import TemplateRenderer
from notifications.repositories import (
    DeliveryOutboxRepository,
    DjangoTemplateStore,
    NotificationRepository,
)

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable, Mapping, Sequence
    from datetime import datetime
    from typing import Any
    from uuid import UUID

    from notifications.models import BroadcastRecord
    from toolkit.protocols import TemplateStore, UserDirectory

ALL_CHANNELS = frozenset(NotificationChannel.values)

# Sending to raw addresses has no user to show an in-app message to
ADDRESS_CHANNELS = frozenset({NotificationChannel.EMAIL})


def normalize_channels(
    channels: Iterable[str] | None,
    allowed: frozenset[str] = ALL_CHANNELS,
) -> list[str]:
    """
    Turn requested channels into a de-duplicated list of channel values.

    Accepts enum members, values ("email") or names ("EMAIL").

    Raises:
        NoChannelsSpecifiedError: Nothing requested
        UnsupportedChannelError: Unknown channel, or not in ``allowed``
    """
    normalized: list[str] = []
    for channel in channels or ():
        value = str(channel).strip().lower()
        if value not in ALL_CHANNELS or value not in allowed:
            raise UnsupportedChannelError(
                f"Channel '{channel}' is not supported for this send",
                details={"channel": str(channel), "allowed": sorted(allowed)},
            )
        if value not in normalized:
            normalized.append(value)

    if not normalized:
        raise NoChannelsSpecifiedError("At least one channel must be specified")
    return normalized


@dataclass
class RecipientOutcome:
    """What a single recipient's fan-out produced."""

    tally: FanOutTally = field(default_factory=FanOutTally)
    notifications: list[Notification] = field(default_factory=list)


class NotificationDispatcher(BaseService):
    """
    Orchestrates one logical send.

    Entry points:
        process_event: One user, content from the static event tables
        send_direct: Many users, caller-supplied content, tracked by a broadcast
        send_from_template: Many users, stored template content, tracked by a
            broadcast and counted on the template
        send_to_addresses: Raw email addresses, EMAIL only, tracked by a broadcast
    """

    def __init__(
        self,
        directory: UserDirectory,
        notifications: NotificationRepository | None = None,
        outbox: DeliveryOutboxRepository | None = None,
        broadcasts: BroadcastAggregator | None = None,
        templates: TemplateStore | None = None,
        renderer: TemplateRenderer | None = None,
    ):
        self.directory = directory
        self.notifications = notifications or NotificationRepository()
        self.outbox = outbox or DeliveryOutboxRepository()
        self.broadcasts = broadcasts or BroadcastAggregator()
        self.templates = templates or DjangoTemplateStore()
        self.renderer = renderer or TemplateRenderer()

    # =========================================================================
    # Entry points
    # =========================================================================

    def process_event(
        self,
        event_type: str,
        primary_user_id: UUID,
        channels: Sequence[str] | None = None,
        payload: Mapping[str, Any] | None = None,
        actor_user_id: UUID | None = None,
    ) -> ServiceResult[list[Notification]]:
        """
        Notify one user about a domain event.

        Flow:
            1. Validate the event type, then pick channels: caller's list,
               else the event type's defaults
            2. Resolve the user's profile (fails if unknown)
            3. Skip EMAIL when the profile has no usable address
            4. Render the event's title/body with payload + profile
            5. One record per surviving channel, outbox entries for EMAIL/CHAT

        Args:
            event_type: An EventType member, value or name
            primary_user_id: User to notify
            channels: Channels to use instead of the event defaults
            payload: Values for the event's {{tokens}}
            actor_user_id: User who caused the event, if any

        Returns:
            ServiceResult with the created notifications

        Error codes:
            UNSUPPORTED_EVENT_TYPE, NO_CHANNELS_SPECIFIED, UNSUPPORTED_CHANNEL,
            RECIPIENT_NOT_FOUND
        """
        logger = self.get_logger()
        try:
            event_type = normalize_event_type(event_type)
            resolved_channels = normalize_channels(
                channels or default_channels_for(event_type)
            )
            profile = self.directory.resolve(primary_user_id)
        except BaseApplicationError as e:
            logger.warning(f"Event {event_type} for user {primary_user_id} rejected: {e}")
            return ServiceResult.from_exception(e)

        content = content_for(event_type)
        metadata: dict[str, Any] = {
            key: value for key, value in (payload or {}).items()
            if value is None or isinstance(value, (str, int, float, bool))
        }
        metadata["eventType"] = str(event_type)
        if actor_user_id is not None:
            metadata["actorUserId"] = str(actor_user_id)

        with self.atomic():
            outcome = self._deliver_to_recipient(
                profile,
                resolved_channels,
                title=content.title,
                body=content.body,
                placeholders=content.placeholders(payload),
                template_key=str(event_type),
                metadata=metadata,
                now=timezone.now(),
            )

        logger.info(
            f"Processed event {event_type} for user {primary_user_id}: "
            f"{len(outcome.notifications)} notifications"
        )
        return ServiceResult.success(outcome.notifications)

    def send_direct(
        self,
        target_user_ids: Sequence[UUID],
        channels: Sequence[str],
        title: str,
        body: str,
        metadata: Mapping[str, Any] | None = None,
        sent_by: UUID | None = None,
    ) -> ServiceResult[UUID]:
        """
        Send caller-supplied content to many users.

        Title and body may use {{tokens}}; metadata doubles as the
        placeholder map.

        Returns:
            ServiceResult with the broadcast id

        Error codes:
            NO_RECIPIENTS, NO_CHANNELS_SPECIFIED, UNSUPPORTED_CHANNEL
        """
        try:
            resolved_channels = normalize_channels(channels)
        except BaseApplicationError as e:
            return ServiceResult.from_exception(e)
        if not target_user_ids:
            return self._no_recipients()

        now = timezone.now()
        metadata = dict(metadata or {})
        broadcast = self.broadcasts.open(
            title=title,
            body=body,
            channels=resolved_channels,
            recipient_count=len(target_user_ids),
            sent_by=sent_by,
            metadata=metadata,
            now=now,
        )
        tally = self._fan_out(
            target_user_ids,
            self.directory.resolve,
            resolved_channels,
            title=title,
            body=body,
            placeholders=metadata,
            broadcast=broadcast,
            template_key=None,
            metadata=metadata,
            now=now,
        )
        self.broadcasts.close(broadcast, tally)
        return ServiceResult.success(broadcast.id)

    def send_from_template(
        self,
        template_id: str,
        target_user_ids: Sequence[UUID],
        placeholder_data: Mapping[str, Any] | None = None,
        channels: Sequence[str] | None = None,
        sent_by: UUID | None = None,
    ) -> ServiceResult[UUID]:
        """
        Send a stored template to many users.

        The template's primary content is used, falling back to its
        secondary content when the primary is empty. Channels default to
        the template's default channels. The template's sent_times counter
        goes up by one per call, after the fan-out.

        Returns:
            ServiceResult with the broadcast id

        Error codes:
            TEMPLATE_NOT_FOUND, NO_CHANNELS_SPECIFIED, UNSUPPORTED_CHANNEL,
            TEMPLATE_HAS_NO_CONTENT, NO_RECIPIENTS
        """
        try:
            template = self.templates.get(template_id)
            resolved_channels = normalize_channels(
                channels or template.default_channels
            )
            content = template.content_primary or template.content_secondary
            if not content or not content.strip():
                raise TemplateHasNoContentError(
                    f"Template '{template_id}' has no content",
                    details={"template_id": template_id},
                )
        except BaseApplicationError as e:
            self.get_logger().warning(f"Template send {template_id} rejected: {e}")
            return ServiceResult.from_exception(e)
        if not target_user_ids:
            return self._no_recipients()

        now = timezone.now()
        placeholders = dict(placeholder_data or {})
        broadcast = self.broadcasts.open(
            title=template.name,
            body=content,
            channels=resolved_channels,
            recipient_count=len(target_user_ids),
            sent_by=sent_by,
            template_id=template.template_id,
            metadata=placeholders,
            now=now,
        )
        tally = self._fan_out(
            target_user_ids,
            self.directory.resolve,
            resolved_channels,
            title=template.name,
            body=content,
            placeholders=placeholders,
            broadcast=broadcast,
            template_key=template.template_id,
            metadata=placeholders,
            now=now,
        )
        self.broadcasts.close(broadcast, tally)
        self.templates.increment_sent_times(template.template_id)
        return ServiceResult.success(broadcast.id)

    def send_to_addresses(
        self,
        target_emails: Sequence[str],
        channels: Sequence[str],
        title: str,
        body: str,
        metadata: Mapping[str, Any] | None = None,
        sent_by: UUID | None = None,
    ) -> ServiceResult[UUID]:
        """
        Send caller-supplied content to raw email addresses.

        There are no user ids in this mode, so EMAIL is the only valid
        channel; anything else is rejected before a broadcast is created.

        Returns:
            ServiceResult with the broadcast id

        Error codes:
            NO_RECIPIENTS, NO_CHANNELS_SPECIFIED, UNSUPPORTED_CHANNEL
        """
        try:
            resolved_channels = normalize_channels(channels, allowed=ADDRESS_CHANNELS)
        except BaseApplicationError as e:
            return ServiceResult.from_exception(e)
        if not target_emails:
            return self._no_recipients()

        now = timezone.now()
        metadata = dict(metadata or {})
        broadcast = self.broadcasts.open(
            title=title,
            body=body,
            channels=resolved_channels,
            recipient_count=len(target_emails),
            sent_by=sent_by,
            metadata=metadata,
            now=now,
        )
        tally = self._fan_out(
            target_emails,
            UserProfile.for_address,
            resolved_channels,
            title=title,
            body=body,
            placeholders=metadata,
            broadcast=broadcast,
            template_key=None,
            metadata=metadata,
            now=now,
        )
        self.broadcasts.close(broadcast, tally)
        return ServiceResult.success(broadcast.id)

    # =========================================================================
    # Fan-out
    # =========================================================================

    def _fan_out(
        self,
        targets: Iterable[Any],
        resolve: Callable[[Any], UserProfile],
        channels: list[str],
        **content: Any,
    ) -> FanOutTally:
        """
        Run every target through _deliver_to_recipient.

        Each recipient runs in its own savepoint. Any exception (lookup,
        rendering or persistence) rolls that recipient back and counts all
        of its channels as failures.
        """
        tally = FanOutTally()
        for target in targets:
            try:
                profile = resolve(target)
                with self.atomic():
                    outcome = self._deliver_to_recipient(profile, channels, **content)
            except Exception as e:
                self.handle_exception(
                    e,
                    context=f"Fan-out to {target} failed, counting {len(channels)} failures",
                    log_level=logging.WARNING,
                )
                tally.failed(len(channels))
                continue
            tally.merge(outcome.tally)
        return tally

    def _deliver_to_recipient(
        self,
        profile: UserProfile,
        channels: list[str],
        *,
        title: str,
        body: str,
        placeholders: Mapping[str, Any],
        template_key: str | None,
        metadata: Mapping[str, Any],
        now: datetime,
        broadcast: BroadcastRecord | None = None,
    ) -> RecipientOutcome:
        """Create one record (plus outbox entry if needed) per channel."""
        outcome = RecipientOutcome()
        for channel in channels:
            if channel == NotificationChannel.EMAIL and not profile.has_email:
                self.get_logger().info(
                    f"Skipping email for {profile.user_id}: no usable email address"
                )
                outcome.tally.failed()
                continue

            notification = self.notifications.create(
                user_id=profile.user_id,
                channel=channel,
                title=self.renderer.render(title, placeholders, profile, now),
                body=self.renderer.render(body, placeholders, profile, now),
                broadcast=broadcast,
                template_key=template_key,
                metadata=dict(metadata),
            )
            if channel in OUTBOX_CHANNELS:
                self.outbox.enqueue(
                    notification,
                    self._address_for(profile, channel),
                    now=now,
                )
            outcome.notifications.append(notification)
            outcome.tally.succeeded()
        return outcome

    @staticmethod
    def _address_for(profile: UserProfile, channel: str) -> str:
        if channel == NotificationChannel.EMAIL:
            return profile.email or ""
        if channel == NotificationChannel.CHAT:
            return profile.phone_number or ""
        return ""

    @staticmethod
    def _no_recipients() -> ServiceResult:
        return ServiceResult.failure(
            "At least one recipient must be specified",
            error_code="NO_RECIPIENTS",
        )


def build_dispatcher() -> NotificationDispatcher:
    """Dispatcher wired to the configured user directory and the database."""
    return NotificationDispatcher(directory=get_user_directory())


class NotificationService(BaseService):
    """Operations on single notification records."""

    repository = NotificationRepository()

    @classmethod
    def _get_or_raise(cls, notification_id: UUID) -> Notification:
        notification = cls.repository.get(notification_id)
        if notification is None:
            raise NotificationNotFoundError(
                f"Notification {notification_id} not found",
                details={"notification_id": str(notification_id)},
            )
        return notification

    @classmethod
    def get_notification(cls, notification_id: UUID) -> ServiceResult[Notification]:
        try:
            return ServiceResult.success(cls._get_or_raise(notification_id))
        except NotificationNotFoundError as e:
            return ServiceResult.from_exception(e)

    @classmethod
    def mark_read(
        cls,
        notification_id: UUID,
        is_read: bool = True,
    ) -> ServiceResult[Notification]:
        """
        Mark an in-app notification as read or unread.

        Idempotent: re-marking as read keeps the original read_at;
        marking as unread clears it.

        Args:
            notification_id: Notification to update
            is_read: Target read state

        Returns:
            ServiceResult with the updated Notification

        Error codes:
            NOTIFICATION_NOT_FOUND: Unknown id
            NOT_IN_APP: Only in-app notifications have a read state
        """
        try:
            notification = cls._get_or_raise(notification_id)
            if notification.channel != NotificationChannel.IN_APP:
                raise NotificationNotInAppError(
                    "Only in-app notifications can be marked as read",
                    details={
                        "notification_id": str(notification_id),
                        "channel": notification.channel,
                    },
                )
        except BaseApplicationError as e:
            cls.get_logger().warning(f"Read-mark of {notification_id} rejected: {e}")
            return ServiceResult.from_exception(e)

        cls.repository.mark_read(notification, is_read)
        cls.get_logger().debug(
            f"Marked notification {notification.id} as "
            f"{'read' if is_read else 'unread'}"
        )
        return ServiceResult.success(notification)


@dataclass
class BroadcastSummary:
    broadcast: BroadcastRecord
    notification_ids: list[UUID]


class BroadcastService(BaseService):
    """Read access to broadcasts."""

    aggregator = BroadcastAggregator()
    repository = NotificationRepository()

    @classmethod
    def get_broadcast(cls, broadcast_id: UUID) -> ServiceResult[BroadcastSummary]:
        """
        Fetch a broadcast with the ids of the notifications it produced.

        Error codes:
            BROADCAST_NOT_FOUND: Unknown id
        """
        broadcast = cls.aggregator.get(broadcast_id)
        if broadcast is None:
            return ServiceResult.failure(
                "Broadcast not found",
                error_code="BROADCAST_NOT_FOUND",
            )
        notification_ids = list(
            cls.repository.list_for_broadcast(broadcast.id).values_list("id", flat=True)
        )
        return ServiceResult.success(
            BroadcastSummary(broadcast=broadcast, notification_ids=notification_ids)
        )
