"""
Celery tasks for notification delivery.

Tasks:
    process_delivery_outbox: One pass of the outbox worker

Design:
    - Scheduled by celery beat every NOTIFICATIONS_OUTBOX_POLL_SECONDS
      (see CELERY_BEAT_SCHEDULE in config.settings)
    - Retries live in the outbox rows, not in Celery: the task itself
      is never retried, the next beat tick picks up due entries
    - When the soft time limit fires, OutboxWorker.run_once records the
      entry in flight and ends the pass early, so a slow pass stops before
      the next beat tick instead of overlapping it

Usage:
    from notifications.tasks import process_delivery_outbox

    # Run a pass now
    process_delivery_outbox.delay()
"""

from __future__ import annotations

import logging

from celery import shared_task

from notifications.worker import build_outbox_worker

logger = logging.getLogger(__name__)


@shared_task(
    bind=True,
    ignore_result=False,
    soft_time_limit=50,
    time_limit=58,
)
def process_delivery_outbox(self) -> dict[str, int]:
    """
    Attempt every due outbox entry once.

    Returns:
        Counters for the pass (processed, sent, retrying, failed, errors)
    """
    stats = build_outbox_worker().run_once()
    if stats.processed or stats.errors:
        logger.info(
            f"Outbox task {self.request.id}: sent={stats.sent}, "
            f"retrying={stats.retrying}, failed={stats.failed}, errors={stats.errors}"
        )
    return stats.as_dict()
