"""Client-side records derived from API payloads."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Mapping


def parse_timestamp(value: Any) -> datetime:
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, str) and value.strip():
        candidate = value.strip()
        if candidate.endswith("Z"):
            candidate = candidate[:-1] + "+00:00"
        parsed = datetime.fromisoformat(candidate)
    else:
        raise ValueError(f"Invalid timestamp: {value!r}")

    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


@dataclass(frozen=True, slots=True)
class ObservedReading:
    """The latest reading as seen by the dashboard on one poll."""

    temperature: float
    timestamp: datetime
    alert: bool

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> "ObservedReading":
        temperature = payload.get("temperature")
        if isinstance(temperature, bool) or not isinstance(temperature, (int, float)):
            raise ValueError(f"Invalid temperature in payload: {temperature!r}")
        return cls(
            temperature=float(temperature),
            timestamp=parse_timestamp(payload.get("timestamp")),
            alert=bool(payload.get("alert", False)),
        )


@dataclass(frozen=True, slots=True)
class AlarmState:
    """Transient local alarm derived from an alert-worthy latest reading."""

    temperature: float
    timestamp: datetime
    acknowledged: bool = False
