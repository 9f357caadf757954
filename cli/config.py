from __future__ import annotations

import os
from dataclasses import dataclass, field, replace
from typing import Optional

from settings import Thresholds, load_thresholds

DEFAULT_BASE_URL = "http://localhost:8000"
DEFAULT_REQUEST_TIMEOUT = 10.0
DEFAULT_LATEST_INTERVAL = 5.0
DEFAULT_ALERTS_INTERVAL = 10.0
DEFAULT_HISTORY_INTERVAL = 30.0
DEFAULT_HISTORY_LIMIT = 50

_BASE_URL_ENV = "API_BASE_URL"
_TIMEOUT_ENV = "CLI_REQUEST_TIMEOUT"
_LATEST_INTERVAL_ENV = "CLI_LATEST_INTERVAL"
_ALERTS_INTERVAL_ENV = "CLI_ALERTS_INTERVAL"
_HISTORY_INTERVAL_ENV = "CLI_HISTORY_INTERVAL"


@dataclass(frozen=True)
class CLIConfig:
    base_url: str = DEFAULT_BASE_URL
    request_timeout: float = DEFAULT_REQUEST_TIMEOUT
    latest_interval: float = DEFAULT_LATEST_INTERVAL
    alerts_interval: float = DEFAULT_ALERTS_INTERVAL
    history_interval: float = DEFAULT_HISTORY_INTERVAL
    history_limit: int = DEFAULT_HISTORY_LIMIT
    thresholds: Thresholds = field(default_factory=Thresholds)

    def with_intervals(
        self,
        latest: Optional[float] = None,
        alerts: Optional[float] = None,
        history: Optional[float] = None,
    ) -> "CLIConfig":
        return replace(
            self,
            latest_interval=latest if latest is not None else self.latest_interval,
            alerts_interval=alerts if alerts is not None else self.alerts_interval,
            history_interval=history if history is not None else self.history_interval,
        )


def _read_float(value: Optional[str], default: float) -> float:
    if value is None:
        return default
    candidate = value.strip()
    if not candidate:
        return default
    try:
        parsed = float(candidate)
    except ValueError:
        return default
    return parsed if parsed > 0 else default


def load_config(
    base_url: Optional[str] = None,
    request_timeout: Optional[float] = None,
) -> CLIConfig:
    url = base_url or os.getenv(_BASE_URL_ENV) or DEFAULT_BASE_URL
    if request_timeout is None:
        request_timeout = _read_float(os.getenv(_TIMEOUT_ENV), DEFAULT_REQUEST_TIMEOUT)
    return CLIConfig(
        base_url=url.rstrip("/"),
        request_timeout=request_timeout,
        latest_interval=_read_float(os.getenv(_LATEST_INTERVAL_ENV), DEFAULT_LATEST_INTERVAL),
        alerts_interval=_read_float(os.getenv(_ALERTS_INTERVAL_ENV), DEFAULT_ALERTS_INTERVAL),
        history_interval=_read_float(os.getenv(_HISTORY_INTERVAL_ENV), DEFAULT_HISTORY_INTERVAL),
        thresholds=load_thresholds(),
    )
