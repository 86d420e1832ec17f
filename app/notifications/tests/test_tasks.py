"""
Tests for the outbox Celery task.

Runs eagerly (CELERY_TASK_ALWAYS_EAGER in config.test_settings) against
the locmem email backend.
"""

from datetime import timedelta

import pytest
from django.conf import settings
from django.core import mail
from django.utils import timezone

from notifications.models import OutboxStatus
from notifications.tasks import process_delivery_outbox
from notifications.tests.factories import DeliveryOutboxFactory
from notifications.worker import OutboxRunStats


@pytest.mark.django_db
class TestProcessDeliveryOutboxTask:
    """Tests for process_delivery_outbox."""

    def test_delivers_due_entries(self):
        entry = DeliveryOutboxFactory(
            recipient_address="ann@example.com",
            next_retry_at=timezone.now() - timedelta(seconds=5),
        )

        result = process_delivery_outbox.delay()

        assert result.get()["sent"] == 1
        entry.refresh_from_db()
        assert entry.status == OutboxStatus.SENT
        assert len(mail.outbox) == 1
        assert mail.outbox[0].to == ["ann@example.com"]
        assert mail.outbox[0].subject == entry.notification.title

    def test_returns_stats_dict(self, mocker):
        worker = mocker.Mock()
        worker.run_once.return_value = OutboxRunStats(processed=2, sent=1, retrying=1)
        mocker.patch("notifications.tasks.build_outbox_worker", return_value=worker)

        result = process_delivery_outbox.apply().get()

        assert result == {
            "processed": 2,
            "sent": 1,
            "retrying": 1,
            "failed": 0,
            "errors": 0,
        }

    def test_smtp_failure_schedules_retry(self, mocker):
        entry = DeliveryOutboxFactory(next_retry_at=timezone.now())
        mocker.patch(
            "django.core.mail.EmailMultiAlternatives.send",
            side_effect=ConnectionRefusedError("Connection refused"),
        )

        result = process_delivery_outbox.apply().get()

        entry.refresh_from_db()
        assert result["retrying"] == 1
        assert entry.status == OutboxStatus.FAILED
        assert entry.retry_count == 1
        assert "Connection refused" in entry.last_error


def test_task_on_beat_schedule():
    schedule = settings.CELERY_BEAT_SCHEDULE["process-delivery-outbox"]

    assert schedule["task"] == "notifications.tasks.process_delivery_outbox"
    assert schedule["schedule"] == float(settings.NOTIFICATIONS_OUTBOX_POLL_SECONDS)
