"""
Delivery outbox worker.

Drains DeliveryOutbox entries written by the dispatcher and applies the
retry policy. Runs as a single recurring pass (see
notifications.tasks.process_delivery_outbox).

Retry state machine, per entry:
    Due entries: status in {PENDING, FAILED}, next_retry_at <= now,
    not permanently failed.

    Notification missing   -> FAILED (terminal), "Notification not found",
                              no delivery attempt
    Delivery succeeded     -> SENT, delivered_at=now; notification SENT
    Delivery failed        -> retry_count += 1, last_error recorded
        retries exhausted  -> FAILED (terminal); notification FAILED
        or permanent error
        otherwise          -> FAILED (retryable),
                              next_retry_at = now + 2^retry_count minutes

Each entry is processed in its own transaction; an entry that blows up
is logged and the rest of the batch carries on. When Celery's soft time
limit fires, the entry in flight is recorded as a failed attempt and the
pass ends; the remaining entries wait for the next pass.

Note:
    There is no claim step. Two workers scanning the same table at the
    same time can deliver an entry twice, so run a single beat schedule.

Usage:
    from notifications.worker import build_outbox_worker

    stats = build_outbox_worker().run_once()
    print(stats.sent, stats.retrying, stats.failed)
"""

from __future__ import annotations

from dataclasses import asdict, dataclass
from datetime import timedelta
from typing import TYPE_CHECKING

from celery.exceptions import SoftTimeLimitExceeded
from django.conf import settings
from django.utils import timezone

from core.services import BaseService

from notifications.delivery import ChannelRouter
from notifications.exceptions import DeliveryError
from notifications.models import DeliveryOutbox, DeliveryStatus, OutboxStatus
from notifications.repositories import (
    DeliveryOutboxRepository,
    NotificationRepository,
)
from toolkit.services.email import EmailService

if TYPE_CHECKING:
    from datetime import datetime

    from notifications.models import Notification

LAST_ERROR_MAX_LENGTH = 1000
NOTIFICATION_NOT_FOUND_ERROR = "Notification not found"

# Outcomes of a single entry
OUTCOME_SENT = "sent"
OUTCOME_RETRYING = "retrying"
OUTCOME_FAILED = "failed"


@dataclass
class OutboxRunStats:
    """Counters for one worker pass."""

    processed: int = 0
    sent: int = 0
    retrying: int = 0
    failed: int = 0
    errors: int = 0

    def record(self, outcome: str) -> None:
        self.processed += 1
        if outcome == OUTCOME_SENT:
            self.sent += 1
        elif outcome == OUTCOME_RETRYING:
            self.retrying += 1
        else:
            self.failed += 1

    def as_dict(self) -> dict[str, int]:
        return asdict(self)


def backoff_delay(retry_count: int) -> timedelta:
    """Delay before the next attempt: 2, 4, 8... minutes."""
    return timedelta(minutes=2**retry_count)


def _truncate_error(error: BaseException) -> str:
    message = str(error) or error.__class__.__name__
    return message[:LAST_ERROR_MAX_LENGTH]


def _mark_sent(entry: DeliveryOutbox, now: datetime) -> None:
    """Mark entry as delivered."""
    entry.status = OutboxStatus.SENT
    entry.delivered_at = now
    entry.save(update_fields=["status", "delivered_at", "updated_at"])


def _mark_retryable(entry: DeliveryOutbox, now: datetime) -> None:
    """Mark entry as failed and schedule the next attempt."""
    entry.status = OutboxStatus.FAILED
    entry.next_retry_at = now + backoff_delay(entry.retry_count)
    entry.save(
        update_fields=[
            "status",
            "retry_count",
            "last_error",
            "next_retry_at",
            "updated_at",
        ]
    )


def _mark_permanently_failed(entry: DeliveryOutbox) -> None:
    """Mark entry as failed for good."""
    entry.status = OutboxStatus.FAILED
    entry.is_permanent_failure = True
    entry.save(
        update_fields=[
            "status",
            "retry_count",
            "last_error",
            "is_permanent_failure",
            "updated_at",
        ]
    )


class OutboxWorker(BaseService):
    """
    Single-pass scanner over the delivery outbox.

    Args:
        router: Per-channel delivery strategies
        outbox: Outbox repository (selects due entries)
        notifications: Notification repository (delivery status updates)
        batch_size: Maximum entries per pass
    """

    def __init__(
        self,
        router: ChannelRouter,
        outbox: DeliveryOutboxRepository | None = None,
        notifications: NotificationRepository | None = None,
        batch_size: int | None = None,
    ):
        self.router = router
        self.outbox = outbox or DeliveryOutboxRepository()
        self.notifications = notifications or NotificationRepository()
        self.batch_size = batch_size or settings.NOTIFICATIONS_OUTBOX_BATCH_SIZE

    def run_once(self, now: datetime | None = None) -> OutboxRunStats:
        """
        Process every due entry once.

        Args:
            now: Reference time (defaults to the current time)

        Returns:
            OutboxRunStats for the pass
        """
        logger = self.get_logger()
        now = now or timezone.now()
        stats = OutboxRunStats()

        entries = self.outbox.due_entries(now, self.batch_size)
        if not entries:
            logger.debug("No due outbox entries")
            return stats

        logger.info(f"Processing {len(entries)} due outbox entries")
        for index, entry in enumerate(entries):
            try:
                with self.atomic():
                    outcome = self.process_entry(entry, now)
            except SoftTimeLimitExceeded as e:
                outcome = self._record_interrupted(entry, e, now)
                if outcome is not None:
                    stats.record(outcome)
                logger.warning(
                    f"Soft time limit reached at outbox entry {entry.id}, ending pass; "
                    f"{len(entries) - index - 1} due entries left for the next pass"
                )
                break
            except Exception as e:
                stats.errors += 1
                self.handle_exception(
                    e, context=f"Unexpected error processing outbox entry {entry.id}"
                )
                continue
            stats.record(outcome)

        logger.info(
            f"Outbox pass done: processed={stats.processed}, sent={stats.sent}, "
            f"retrying={stats.retrying}, failed={stats.failed}, errors={stats.errors}"
        )
        return stats

    def process_entry(self, entry: DeliveryOutbox, now: datetime) -> str:
        """
        Attempt one entry and persist the outcome.

        Returns:
            OUTCOME_SENT, OUTCOME_RETRYING or OUTCOME_FAILED
        """
        logger = self.get_logger()
        notification = entry.notification
        if notification is None:
            entry.last_error = NOTIFICATION_NOT_FOUND_ERROR
            _mark_permanently_failed(entry)
            logger.error(
                f"Outbox entry {entry.id} has no notification, failing permanently"
            )
            return OUTCOME_FAILED

        try:
            self.router.deliver(entry.channel, entry.recipient_address, notification)
        except SoftTimeLimitExceeded:
            raise
        except Exception as e:
            return self._record_failure(entry, notification, e, now)

        _mark_sent(entry, now)
        self.notifications.set_delivery_status(notification, DeliveryStatus.SENT)
        logger.info(
            f"Delivered notification {notification.id} via {entry.channel} "
            f"to {entry.recipient_address}"
        )
        return OUTCOME_SENT

    def _record_interrupted(
        self,
        entry: DeliveryOutbox,
        error: SoftTimeLimitExceeded,
        now: datetime,
    ) -> str | None:
        """
        Record the entry the soft time limit cut short as a failed attempt.

        The entry's own transaction was rolled back, so its row is reloaded
        before the failure is written. An orphaned entry is left for the
        next pass.
        """
        with self.atomic():
            entry.refresh_from_db()
            notification = entry.notification
            if notification is None:
                return None
            return self._record_failure(entry, notification, error, now)

    def _record_failure(
        self,
        entry: DeliveryOutbox,
        notification: Notification,
        error: Exception,
        now: datetime,
    ) -> str:
        logger = self.get_logger()
        entry.retry_count = min(entry.retry_count + 1, entry.max_retries)
        entry.last_error = _truncate_error(error)

        is_permanent = isinstance(error, DeliveryError) and error.is_permanent
        if is_permanent or entry.retry_count >= entry.max_retries:
            _mark_permanently_failed(entry)
            self.notifications.set_delivery_status(notification, DeliveryStatus.FAILED)
            logger.error(
                f"Delivery of notification {notification.id} via {entry.channel} "
                f"failed permanently after {entry.retry_count} attempts: "
                f"{entry.last_error}"
            )
            return OUTCOME_FAILED

        _mark_retryable(entry, now)
        logger.warning(
            f"Delivery of notification {notification.id} via {entry.channel} "
            f"failed (attempt {entry.retry_count}/{entry.max_retries}), "
            f"retrying at {entry.next_retry_at}: {entry.last_error}"
        )
        return OUTCOME_RETRYING


def build_outbox_worker() -> OutboxWorker:
    """Worker wired to the Django email backend."""
    return OutboxWorker(router=ChannelRouter(email_sender=EmailService()))
