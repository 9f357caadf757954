from __future__ import annotations

import asyncio
import sys
import threading
from dataclasses import dataclass
from typing import Awaitable, Callable, Optional, TextIO

import typer

from cli.client import ApiClient, AsyncApiClient
from cli.config import CLIConfig, load_config
from cli.poller import DashboardPoller, DashboardState
from cli.render import (
    echo_heading,
    render_alerts,
    render_dashboard,
    render_history,
    render_reading,
    render_stats,
)
from cli.siren import Siren
from logging_config import configure_logging
from models.records import ObservedReading

DISMISS_HINT = "Press Enter to acknowledge the alarm."


@dataclass
class CLIState:
    config: CLIConfig
    client: ApiClient


app = typer.Typer(
    help="Utilities for interacting with the battery temperature monitor.",
    context_settings={"help_option_names": ["-h", "--help"]},
)


def stream_lines(
    stream: TextIO,
    loop: asyncio.AbstractEventLoop,
) -> Callable[[], Awaitable[str]]:
    """Read ``stream`` on a daemon thread and hand each line to ``loop``.

    The returned coroutine function yields one line per call and ``""`` at
    end of input. A blocked read never holds up interpreter exit.
    """
    lines: asyncio.Queue[str] = asyncio.Queue()

    def deliver(line: str) -> bool:
        try:
            loop.call_soon_threadsafe(lines.put_nowait, line)
        except RuntimeError:
            # Loop already closed: the dashboard has exited.
            return False
        return True

    def pump() -> None:
        for line in iter(stream.readline, ""):
            if not deliver(line):
                return
        deliver("")

    threading.Thread(target=pump, name="watch-dismiss-input", daemon=True).start()
    return lines.get


def _get_state(ctx: typer.Context) -> CLIState:
    state = ctx.obj
    if not isinstance(state, CLIState):
        raise typer.Exit(code=1, message="CLI state is uninitialized.")
    return state


@app.callback()
def main(
    ctx: typer.Context,
    base_url: Optional[str] = typer.Option(
        None,
        "--base-url",
        "-b",
        help="Monitor API base URL (defaults to API_BASE_URL env or http://localhost:8000).",
    ),
    timeout: Optional[float] = typer.Option(
        None,
        "--timeout",
        help="Seconds to wait for each HTTP request.",
    ),
) -> None:
    """Entry point for the CLI."""
    config = load_config(base_url=base_url, request_timeout=timeout)
    client = ApiClient(config)
    ctx.obj = CLIState(config=config, client=client)
    ctx.call_on_close(client.close)


@app.command("send")
def send_command(
    ctx: typer.Context,
    temperature: float = typer.Argument(..., help="Temperature in °C, as the sensor device reports it."),
) -> None:
    """Submit one reading the way the sensor device does."""
    state = _get_state(ctx)
    payload = state.client.send_reading(temperature)
    if payload.get("alert"):
        typer.secho(
            f"Reading stored and flagged: {payload.get('temperature')}°C at {payload.get('timestamp')}",
            fg=typer.colors.RED,
        )
    else:
        typer.secho(
            f"Reading stored: {payload.get('temperature')}°C at {payload.get('timestamp')}",
            fg=typer.colors.GREEN,
        )


@app.command("latest")
def latest_command(ctx: typer.Context) -> None:
    """Show the most recent reading."""
    state = _get_state(ctx)
    payload = state.client.get_latest()
    if payload is None:
        typer.echo("No readings recorded yet.")
        return
    try:
        reading = ObservedReading.from_payload(payload)
    except ValueError as exc:
        typer.secho(f"Malformed reading from server: {exc}", fg=typer.colors.RED, err=True)
        raise typer.Exit(code=1) from exc
    thresholds = state.config.thresholds
    # A one-shot fetch has no previous reading, so any confirmed alert is new.
    alarm_active = reading.alert and reading.temperature > thresholds.confirm
    echo_heading("Latest Reading")
    render_reading(reading, thresholds, alarm_active=alarm_active)


@app.command("history")
def history_command(
    ctx: typer.Context,
    page: int = typer.Option(1, "--page", min=1, help="Page number, starting at 1."),
    limit: int = typer.Option(50, "--limit", min=1, help="Readings per page."),
) -> None:
    """List stored readings, newest first."""
    state = _get_state(ctx)
    echo_heading(f"History (page {page}, {limit} per page)")
    render_history(state.client.get_history(page=page, limit=limit))


@app.command("alerts")
def alerts_command(ctx: typer.Context) -> None:
    """Show alert statistics and the most recent alerts."""
    state = _get_state(ctx)
    echo_heading("Alerts")
    render_stats(state.client.get_alert_stats())
    render_alerts(state.client.get_alerts())


@app.command("ack")
def acknowledge_command(
    ctx: typer.Context,
    alert_id: str = typer.Argument(..., help="Identifier of the alert to acknowledge."),
) -> None:
    """Acknowledge an alert."""
    state = _get_state(ctx)
    payload = state.client.acknowledge_alert(alert_id)
    alert = payload.get("alert") or {}
    typer.secho(
        f"{payload.get('message', 'Alert acknowledged')}: {alert.get('message')}",
        fg=typer.colors.GREEN,
    )


@app.command("watch")
def watch_command(
    ctx: typer.Context,
    duration: Optional[float] = typer.Option(
        None,
        "--duration",
        help="Stop after this many seconds (runs until interrupted by default).",
    ),
    latest_interval: Optional[float] = typer.Option(
        None, "--latest-interval", help="Seconds between latest-reading polls."
    ),
    alerts_interval: Optional[float] = typer.Option(
        None, "--alerts-interval", help="Seconds between alert and statistics polls."
    ),
    history_interval: Optional[float] = typer.Option(
        None, "--history-interval", help="Seconds between history polls."
    ),
    sound: bool = typer.Option(
        True, "--sound/--mute", help="Ring the terminal bell when a new alarm is raised."
    ),
    clear: bool = typer.Option(
        True, "--clear/--no-clear", help="Clear the screen before each redraw."
    ),
    dismiss: bool = typer.Option(
        True,
        "--dismiss/--no-dismiss",
        help="Acknowledge the on-screen alarm when Enter is pressed.",
    ),
) -> None:
    """Poll the monitor and keep a live dashboard on screen."""
    state = _get_state(ctx)
    configure_logging()
    config = state.config.with_intervals(
        latest=latest_interval,
        alerts=alerts_interval,
        history=history_interval,
    )

    def redraw(dashboard: DashboardState) -> None:
        if clear:
            typer.clear()
        render_dashboard(dashboard, config.thresholds, dismiss_hint=DISMISS_HINT if dismiss else None)

    siren = Siren() if sound else Siren(emit=lambda: None, tone_seconds=0.0, pause_seconds=0.0)

    async def run() -> None:
        client = AsyncApiClient(config)
        poller = DashboardPoller(client, config, siren=siren, on_update=redraw)
        dismiss_input = stream_lines(sys.stdin, asyncio.get_running_loop()) if dismiss else None
        try:
            await poller.run(duration=duration, dismiss_input=dismiss_input)
        finally:
            await client.aclose()

    try:
        asyncio.run(run())
    except KeyboardInterrupt:
        typer.echo("Stopped.")
