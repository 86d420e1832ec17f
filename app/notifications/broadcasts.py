"""
Broadcast aggregation.

Every direct or template send is tracked by one BroadcastRecord. The record
is opened before any per-recipient work and closed once, after the whole
fan-out, with the final success/failure counts.

Usage:
    aggregator = BroadcastAggregator()
    broadcast = aggregator.open(
        title="Exam reminder",
        body="Hi {{name}}",
        channels=["in_app", "email"],
        recipient_count=len(user_ids),
        sent_by=admin_id,
    )

    tally = FanOutTally()
    ...
    tally.succeeded()
    tally.failed(2)
    ...
    aggregator.close(broadcast, tally)
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass
from typing import TYPE_CHECKING

from django.utils import timezone

from notifications.models import BroadcastRecord

if TYPE_CHECKING:
    from collections.abc import Iterable
    from datetime import datetime
    from typing import Any
    from uuid import UUID

logger = logging.getLogger(__name__)

# Recorded as sent_by when a send has no acting user
SYSTEM_SENDER_ID = uuid.UUID("00000000-0000-0000-0000-000000000000")


@dataclass
class FanOutTally:
    """Local success/failure counters for one fan-out."""

    success: int = 0
    failure: int = 0

    def succeeded(self, count: int = 1) -> None:
        self.success += count

    def failed(self, count: int = 1) -> None:
        self.failure += count

    def merge(self, other: FanOutTally) -> None:
        self.success += other.success
        self.failure += other.failure

    @property
    def attempted(self) -> int:
        return self.success + self.failure


class BroadcastAggregator:
    """Opens and closes BroadcastRecords around a fan-out."""

    def open(
        self,
        *,
        title: str,
        body: str,
        channels: Iterable[str],
        recipient_count: int,
        sent_by: UUID | None = None,
        template_id: str | None = None,
        metadata: dict[str, Any] | None = None,
        now: datetime | None = None,
    ) -> BroadcastRecord:
        """Create the tracking record with zeroed counters."""
        broadcast = BroadcastRecord.objects.create(
            template_id=template_id,
            title=title or "",
            body=body or "",
            channels=[str(channel) for channel in channels],
            recipient_count=recipient_count,
            sent_by=sent_by or SYSTEM_SENDER_ID,
            sent_at=now or timezone.now(),
            metadata=metadata or {},
        )
        logger.info(
            f"Opened broadcast {broadcast.id} for {recipient_count} recipients "
            f"on {broadcast.channels}"
        )
        return broadcast

    def close(self, broadcast: BroadcastRecord, tally: FanOutTally) -> BroadcastRecord:
        """Write the final counters in a single update."""
        broadcast.success_count = tally.success
        broadcast.failure_count = tally.failure
        broadcast.save(update_fields=["success_count", "failure_count", "updated_at"])

        expected = broadcast.recipient_count * len(broadcast.channels)
        if tally.attempted != expected:
            logger.error(
                f"Broadcast {broadcast.id} accounted for {tally.attempted} of "
                f"{expected} recipient/channel pairs"
            )
        logger.info(
            f"Closed broadcast {broadcast.id}: success={tally.success}, "
            f"failure={tally.failure}"
        )
        return broadcast

    def get(self, broadcast_id: UUID) -> BroadcastRecord | None:
        return BroadcastRecord.objects.filter(id=broadcast_id).first()
