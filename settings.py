from __future__ import annotations

import math
import os
from dataclasses import dataclass, field
from functools import lru_cache
from typing import Optional


_READINGS_NAME_ENV = "READINGS_COLLECTION_NAME"
_READINGS_PATH_ENV = "READINGS_PERSISTENCE_PATH"
_ALERTS_NAME_ENV = "ALERTS_COLLECTION_NAME"
_ALERTS_PATH_ENV = "ALERTS_PERSISTENCE_PATH"
_LOG_LEVEL_ENV = "LOG_LEVEL"
_INGEST_THRESHOLD_ENV = "ALERT_INGEST_THRESHOLD"
_CONFIRM_THRESHOLD_ENV = "ALERT_CONFIRM_THRESHOLD"
_WARN_THRESHOLD_ENV = "DISPLAY_WARN_THRESHOLD"

DEFAULT_INGEST_THRESHOLD = 28.0
DEFAULT_CONFIRM_THRESHOLD = 30.0
DEFAULT_WARN_THRESHOLD = 25.0


@dataclass(frozen=True)
class Thresholds:
    """Temperature limits (°C) used across ingestion, alarm confirmation and display.

    The three values are deliberately independent: ``ingest`` decides whether the
    server flags a reading and records an alert, ``confirm`` is re-applied by the
    dashboard before it raises a local alarm, and ``warn`` only colours output.
    """

    ingest: float = DEFAULT_INGEST_THRESHOLD
    confirm: float = DEFAULT_CONFIRM_THRESHOLD
    warn: float = DEFAULT_WARN_THRESHOLD


@dataclass(frozen=True)
class Settings:
    readings_name: str
    readings_persistence_path: Optional[str]
    alerts_name: str
    alerts_persistence_path: Optional[str]
    log_level: str
    thresholds: Thresholds = field(default_factory=Thresholds)


def _read_str_env(name: str, default: str) -> str:
    value = os.getenv(name)
    if value is None:
        return default
    candidate = value.strip()
    return candidate or default


def _read_optional_env(name: str, default: Optional[str]) -> Optional[str]:
    value = os.getenv(name)
    if value is None:
        return default
    candidate = value.strip()
    return candidate or None


def _read_float_env(name: str, default: float) -> float:
    value = os.getenv(name)
    if value is None:
        return default
    candidate = value.strip()
    if not candidate:
        return default
    try:
        parsed = float(candidate)
    except ValueError:
        return default
    return parsed if math.isfinite(parsed) else default


def _read_log_level(default: str) -> str:
    value = os.getenv(_LOG_LEVEL_ENV)
    if value is None:
        return default
    candidate = value.strip()
    if not candidate:
        return default
    return candidate.upper()


def load_thresholds() -> Thresholds:
    return Thresholds(
        ingest=_read_float_env(_INGEST_THRESHOLD_ENV, DEFAULT_INGEST_THRESHOLD),
        confirm=_read_float_env(_CONFIRM_THRESHOLD_ENV, DEFAULT_CONFIRM_THRESHOLD),
        warn=_read_float_env(_WARN_THRESHOLD_ENV, DEFAULT_WARN_THRESHOLD),
    )


@lru_cache
def get_settings() -> Settings:
    return Settings(
        readings_name=_read_str_env(_READINGS_NAME_ENV, "readings"),
        readings_persistence_path=_read_optional_env(
            _READINGS_PATH_ENV, "./tmp/readings.json"
        ),
        alerts_name=_read_str_env(_ALERTS_NAME_ENV, "alerts"),
        alerts_persistence_path=_read_optional_env(_ALERTS_PATH_ENV, "./tmp/alerts.json"),
        log_level=_read_log_level("INFO"),
        thresholds=load_thresholds(),
    )
