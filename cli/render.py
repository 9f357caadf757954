from __future__ import annotations

from typing import Any, Dict, Iterable, Optional

import typer

from cli.poller import DashboardState
from models.records import ObservedReading
from services.classifier import format_temperature, temperature_level
from settings import Thresholds

_STATUS_COLORS = {
    "Critical": typer.colors.RED,
    "Warning": typer.colors.YELLOW,
    "Normal": typer.colors.GREEN,
}


def echo_heading(text: str) -> None:
    typer.secho(text, bold=True)


def echo_key_values(pairs: Iterable[tuple[str, Any]]) -> None:
    for key, value in pairs:
        typer.echo(f"{key}: {value}")


def reading_status(
    temperature: float,
    server_alert: bool,
    alarm_active: bool,
    thresholds: Thresholds,
) -> str:
    """Critical needs both the server flag and an active local alarm."""
    if server_alert and alarm_active:
        return "Critical"
    if temperature > thresholds.warn:
        return "Warning"
    return "Normal"


def render_reading(
    reading: ObservedReading,
    thresholds: Thresholds,
    alarm_active: bool,
) -> None:
    status = reading_status(reading.temperature, reading.alert, alarm_active, thresholds)
    level = temperature_level(reading.temperature, thresholds.confirm, thresholds.warn)
    typer.secho(
        f"{format_temperature(reading.temperature)}°C  {status}  ({level})",
        fg=_STATUS_COLORS[status],
        bold=status == "Critical",
    )
    echo_key_values(
        [
            ("timestamp", reading.timestamp.isoformat()),
            ("server alert", "yes" if reading.alert else "no"),
        ]
    )


def render_stats(stats: Dict[str, Any]) -> None:
    typer.echo(
        f"{stats.get('total', 0)} total alerts • "
        f"{stats.get('unacknowledged', 0)} unacknowledged • "
        f"{stats.get('today', 0)} today"
    )


def render_alerts(alerts: Iterable[Dict[str, Any]]) -> None:
    alerts = list(alerts)
    if not alerts:
        typer.echo("No alerts recorded.")
        return
    for alert in alerts:
        marker = "✓" if alert.get("acknowledged") else "!"
        typer.echo(
            f"  {marker} {alert.get('timestamp')}  {alert.get('message')}  id={alert.get('id')}"
        )


def render_history(readings: Iterable[Dict[str, Any]]) -> None:
    readings = list(readings)
    if not readings:
        typer.echo("No historical data available.")
        return
    for item in readings:
        flag = " ALERT" if item.get("alert") else ""
        typer.echo(f"  {item.get('timestamp')}  {item.get('temperature')}°C{flag}")


def render_dashboard(
    state: DashboardState,
    thresholds: Thresholds,
    history_rows: Optional[int] = 10,
    dismiss_hint: Optional[str] = None,
) -> None:
    echo_heading("Battery Temperature Monitor")
    if state.banner:
        typer.secho(state.banner, fg=typer.colors.RED, err=True)

    if state.alarm_active and state.alarm is not None:
        typer.secho(
            (
                "CRITICAL TEMPERATURE ALERT: "
                f"{format_temperature(state.alarm.temperature)}°C at {state.alarm.timestamp.isoformat()}"
            ),
            fg=typer.colors.WHITE,
            bg=typer.colors.RED,
            bold=True,
        )
        if dismiss_hint:
            typer.echo(dismiss_hint)
    elif state.alarm is not None:
        typer.secho("Alarm acknowledged.", fg=typer.colors.YELLOW)

    typer.echo()
    echo_heading("Current Temperature")
    if state.latest is None:
        typer.echo("No data yet.")
    else:
        render_reading(state.latest, thresholds, alarm_active=state.alarm_active)

    typer.echo()
    echo_heading("Alerts")
    render_stats(state.stats)
    render_alerts(state.alerts)

    typer.echo()
    echo_heading("History")
    rows = state.history if history_rows is None else state.history[:history_rows]
    render_history(rows)

    if state.last_update is not None:
        typer.echo()
        typer.echo(f"Last update: {state.last_update.isoformat()}")
