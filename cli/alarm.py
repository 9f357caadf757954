"""Alarm transition detection between consecutive latest-reading polls."""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Optional

from models.records import AlarmState, ObservedReading


@dataclass(frozen=True)
class AlarmTransition:
    """Outcome of reconciling one fetched reading with the previous poll.

    ``previous`` is the value to pass back in on the next poll. ``fired`` is
    true only when a new alarm was raised and the audio cue should play.
    """

    alarm: Optional[AlarmState]
    previous: ObservedReading
    fired: bool = False


def is_new_reading(reading: ObservedReading, previous: Optional[ObservedReading]) -> bool:
    # Identity is the (temperature, timestamp) pair; server ids are not compared.
    if previous is None:
        return True
    return (
        previous.temperature != reading.temperature
        or previous.timestamp != reading.timestamp
    )


def detect_alarm_transition(
    reading: ObservedReading,
    previous: Optional[ObservedReading],
    alarm: Optional[AlarmState],
    confirm_threshold: float,
) -> AlarmTransition:
    if not reading.alert:
        return AlarmTransition(alarm=None, previous=reading)

    confirmed = reading.temperature > confirm_threshold
    if confirmed and is_new_reading(reading, previous):
        raised = AlarmState(temperature=reading.temperature, timestamp=reading.timestamp)
        return AlarmTransition(alarm=raised, previous=reading, fired=True)

    return AlarmTransition(alarm=alarm, previous=reading)


def acknowledge_alarm(alarm: Optional[AlarmState]) -> Optional[AlarmState]:
    if alarm is None:
        return None
    return replace(alarm, acknowledged=True)
