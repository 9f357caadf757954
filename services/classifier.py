"""Threshold classification applied to every ingested reading."""

from __future__ import annotations

import math
from typing import Any

INVALID_TEMPERATURE = "Invalid temperature"


def parse_temperature(raw: Any) -> float:
    """Coerce a request value into a finite temperature or raise ``ValueError``.

    JSON numbers and numeric strings are accepted. Missing values, booleans,
    NaN and infinities are rejected.
    """
    if raw is None or isinstance(raw, bool):
        raise ValueError(INVALID_TEMPERATURE)

    if isinstance(raw, (int, float)):
        try:
            value = float(raw)
        except OverflowError as exc:
            raise ValueError(INVALID_TEMPERATURE) from exc
    elif isinstance(raw, str):
        try:
            value = float(raw.strip())
        except ValueError as exc:
            raise ValueError(INVALID_TEMPERATURE) from exc
    else:
        raise ValueError(INVALID_TEMPERATURE)

    if not math.isfinite(value):
        raise ValueError(INVALID_TEMPERATURE)
    return value


def is_alert_worthy(temperature: float, threshold: float) -> bool:
    return temperature > threshold


def format_temperature(temperature: float) -> str:
    if float(temperature).is_integer():
        return str(int(temperature))
    return repr(float(temperature))


def alert_message(temperature: float) -> str:
    return f"Critical temperature alert: {format_temperature(temperature)}°C detected!"


def temperature_level(temperature: float, confirm_threshold: float, warn_threshold: float) -> str:
    """Coarse display band: ``HIGH`` above the confirm limit, ``MEDIUM`` above the warn limit."""
    if temperature > confirm_threshold:
        return "HIGH"
    if temperature > warn_threshold:
        return "MEDIUM"
    return "LOW"
