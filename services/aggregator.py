"""Aggregation logic for alert records."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, time
from typing import Iterable

from app.schemas import Alert


@dataclass
class AlertSummary:
    """Computed counts for a collection of alerts."""

    total: int = 0
    unacknowledged: int = 0
    today: int = 0


def local_day_start(now: datetime) -> datetime:
    """Midnight of ``now``'s calendar day in the server's local time zone."""

    # Resolve the offset at midnight itself; it differs from now's on DST-change days.
    return datetime.combine(now.astimezone().date(), time()).astimezone()


class AlertStatsAggregator:
    """Pure aggregation component that can be unit tested in isolation."""

    def summarize(self, alerts: Iterable[Alert], now: datetime) -> AlertSummary:
        summary = AlertSummary()
        day_start = local_day_start(now)

        for alert in alerts:
            summary.total += 1
            if not alert.acknowledged:
                summary.unacknowledged += 1
            if alert.timestamp.astimezone() >= day_start:
                summary.today += 1

        return summary
