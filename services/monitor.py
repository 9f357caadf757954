"""Ingestion, query and acknowledgment orchestration for sensor readings."""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from functools import lru_cache
from typing import Any, Callable, Optional

from app.schemas import Alert, AlertStatistics, Reading
from datastore.document_store import (
    DocumentCollection,
    build_default_alerts,
    build_default_readings,
)
from services.aggregator import AlertStatsAggregator
from services.classifier import alert_message, is_alert_worthy, parse_temperature
from settings import get_settings

logger = logging.getLogger(__name__)

RECENT_ALERTS_LIMIT = 20
DEFAULT_PAGE_SIZE = 50


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class MonitorService:
    """Coordinates classification, persistence and read-side queries."""

    def __init__(
        self,
        readings: DocumentCollection[Reading],
        alerts: DocumentCollection[Alert],
        aggregator: AlertStatsAggregator,
        alert_threshold: float,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self.readings = readings
        self.alerts = alerts
        self.aggregator = aggregator
        self.alert_threshold = alert_threshold
        self._clock = clock

    def ingest(self, raw_temperature: Any) -> Reading:
        """Validate, classify and store one reading plus its alert if needed.

        The reading and the alert are two separate writes. If the alert write
        fails the reading stays stored and the error propagates to the caller.
        """
        temperature = parse_temperature(raw_temperature)
        flagged = is_alert_worthy(temperature, self.alert_threshold)
        timestamp = self._clock()

        reading = self.readings.insert(
            Reading(temperature=temperature, timestamp=timestamp, alert=flagged)
        )
        logger.debug(
            "Stored reading",
            extra={"reading_id": reading.id, "temperature": temperature},
        )

        if flagged:
            try:
                alert = self.alerts.insert(
                    Alert(
                        temperature=temperature,
                        message=alert_message(temperature),
                        timestamp=timestamp,
                    )
                )
            except Exception:
                logger.exception(
                    "Alert write failed after reading was stored",
                    extra={"reading_id": reading.id, "temperature": temperature},
                )
                raise
            logger.warning(
                "Temperature exceeds alert threshold",
                extra={
                    "alert_id": alert.id,
                    "temperature": temperature,
                    "threshold": self.alert_threshold,
                },
            )

        return reading

    def latest(self) -> Reading:
        found = self.readings.find(sort_key=lambda item: item.timestamp, descending=True, limit=1)
        if not found:
            raise KeyError("No data found")
        return found[0]

    def history(self, page: int = 1, limit: int = DEFAULT_PAGE_SIZE) -> list[Reading]:
        """Return one page of readings, newest first. Pages past the end are empty."""
        if page < 1 or limit < 1:
            raise ValueError("page and limit must be positive integers.")
        return self.readings.find(
            sort_key=lambda item: item.timestamp,
            descending=True,
            skip=(page - 1) * limit,
            limit=limit,
        )

    def recent_alerts(self, limit: int = RECENT_ALERTS_LIMIT) -> list[Alert]:
        return self.alerts.find(sort_key=lambda item: item.timestamp, descending=True, limit=limit)

    def alert_stats(self) -> AlertStatistics:
        summary = self.aggregator.summarize(self.alerts.scan(), now=self._clock())
        return AlertStatistics(
            total=summary.total,
            unacknowledged=summary.unacknowledged,
            today=summary.today,
        )

    def acknowledge_alert(self, alert_id: str) -> Alert:
        existing = self.alerts.get(alert_id)
        if existing is None:
            raise KeyError("Alert not found")
        if existing.acknowledged:
            return existing

        updated = self.alerts.update(alert_id, acknowledged=True)
        if updated is None:
            raise KeyError("Alert not found")
        logger.info("Alert acknowledged", extra={"alert_id": alert_id})
        return updated

    def store_connected(self) -> bool:
        return self.readings.ping() and self.alerts.ping()

    def now(self) -> datetime:
        return self._clock()


@lru_cache
def build_default_monitor() -> MonitorService:
    """Factory that wires the monitor with the default collections."""
    settings = get_settings()
    return MonitorService(
        readings=build_default_readings(),
        alerts=build_default_alerts(),
        aggregator=AlertStatsAggregator(),
        alert_threshold=settings.thresholds.ingest,
    )
