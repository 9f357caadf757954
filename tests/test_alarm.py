"""Unit tests for client-side alarm transition detection."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

from cli.alarm import acknowledge_alarm, detect_alarm_transition, is_new_reading
from models.records import AlarmState, ObservedReading

CONFIRM = 30.0
T0 = datetime(2024, 1, 1, 12, 0, tzinfo=timezone.utc)


def _reading(temperature: float, alert: bool, offset: int = 0) -> ObservedReading:
    return ObservedReading(temperature=temperature, timestamp=T0 + timedelta(seconds=offset), alert=alert)


def test_first_confirmed_alert_fires() -> None:
    reading = _reading(31.0, alert=True)

    transition = detect_alarm_transition(reading, previous=None, alarm=None, confirm_threshold=CONFIRM)

    assert transition.fired is True
    assert transition.alarm == AlarmState(temperature=31.0, timestamp=reading.timestamp)
    assert transition.previous == reading


def test_server_alert_below_confirm_threshold_does_not_fire() -> None:
    reading = _reading(29.5, alert=True)

    transition = detect_alarm_transition(reading, previous=None, alarm=None, confirm_threshold=CONFIRM)

    assert transition.fired is False
    assert transition.alarm is None
    assert transition.previous == reading


def test_confirm_threshold_is_strict() -> None:
    transition = detect_alarm_transition(
        _reading(30.0, alert=True), previous=None, alarm=None, confirm_threshold=CONFIRM
    )

    assert transition.fired is False


def test_unflagged_reading_above_confirm_threshold_does_not_fire() -> None:
    transition = detect_alarm_transition(
        _reading(35.0, alert=False), previous=None, alarm=None, confirm_threshold=CONFIRM
    )

    assert transition.fired is False
    assert transition.alarm is None


def test_unchanged_reading_does_not_fire_again() -> None:
    reading = _reading(31.0, alert=True)
    first = detect_alarm_transition(reading, previous=None, alarm=None, confirm_threshold=CONFIRM)

    second = detect_alarm_transition(
        reading, previous=first.previous, alarm=first.alarm, confirm_threshold=CONFIRM
    )

    assert second.fired is False
    assert second.alarm == first.alarm


def test_acknowledged_alarm_is_not_raised_again_for_same_reading() -> None:
    reading = _reading(31.0, alert=True)
    first = detect_alarm_transition(reading, previous=None, alarm=None, confirm_threshold=CONFIRM)
    dismissed = acknowledge_alarm(first.alarm)

    again = detect_alarm_transition(
        _reading(31.0, alert=True), previous=first.previous, alarm=dismissed, confirm_threshold=CONFIRM
    )

    assert again.fired is False
    assert again.alarm is not None and again.alarm.acknowledged is True


def test_same_temperature_new_timestamp_fires() -> None:
    first = _reading(31.0, alert=True)
    later = _reading(31.0, alert=True, offset=5)

    transition = detect_alarm_transition(
        later, previous=first, alarm=AlarmState(31.0, first.timestamp, acknowledged=True), confirm_threshold=CONFIRM
    )

    assert transition.fired is True
    assert transition.alarm == AlarmState(temperature=31.0, timestamp=later.timestamp)


def test_normal_reading_clears_even_acknowledged_alarm() -> None:
    alarm = AlarmState(temperature=31.0, timestamp=T0, acknowledged=True)

    transition = detect_alarm_transition(
        _reading(22.0, alert=False, offset=5), previous=_reading(31.0, True), alarm=alarm, confirm_threshold=CONFIRM
    )

    assert transition.alarm is None
    assert transition.fired is False


def test_server_alert_below_confirm_keeps_existing_alarm() -> None:
    alarm = AlarmState(temperature=31.0, timestamp=T0)

    transition = detect_alarm_transition(
        _reading(29.0, alert=True, offset=5), previous=_reading(31.0, True), alarm=alarm, confirm_threshold=CONFIRM
    )

    assert transition.alarm == alarm
    assert transition.fired is False


def test_is_new_reading_compares_temperature_and_timestamp() -> None:
    base = _reading(31.0, alert=True)

    assert is_new_reading(base, None) is True
    assert is_new_reading(base, _reading(31.0, alert=True)) is False
    assert is_new_reading(base, _reading(31.5, alert=True)) is True
    assert is_new_reading(base, _reading(31.0, alert=True, offset=1)) is True


def test_acknowledge_alarm_handles_missing_alarm() -> None:
    assert acknowledge_alarm(None) is None


def test_observed_reading_parses_api_payload() -> None:
    reading = ObservedReading.from_payload(
        {"id": "abc", "temperature": 31, "timestamp": "2024-01-01T12:00:00Z", "alert": True}
    )

    assert reading == ObservedReading(temperature=31.0, timestamp=T0, alert=True)
