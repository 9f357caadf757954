"""Periodic dashboard polling with a shared cancellation signal."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable, Coroutine, Dict, List, Optional, Set

import httpx

from cli.alarm import acknowledge_alarm, detect_alarm_transition
from cli.client import ALERTS_PATH, DATA_PATH, LATEST_PATH, AsyncApiClient
from cli.config import CLIConfig
from cli.siren import Siren
from models.records import AlarmState, ObservedReading

logger = logging.getLogger(__name__)

_EMPTY_STATS = {"total": 0, "unacknowledged": 0, "today": 0}

_BANNERS = {
    LATEST_PATH: "Failed to load latest data.",
    ALERTS_PATH: "Failed to load alerts.",
    DATA_PATH: "Failed to load historical data.",
}


@dataclass
class DashboardState:
    """Everything the dashboard shows, rebuilt piecemeal by the poll cycles."""

    latest: Optional[ObservedReading] = None
    alarm: Optional[AlarmState] = None
    alerts: List[Dict[str, Any]] = field(default_factory=list)
    stats: Dict[str, int] = field(default_factory=lambda: dict(_EMPTY_STATS))
    history: List[Dict[str, Any]] = field(default_factory=list)
    errors: Dict[str, str] = field(default_factory=dict)
    last_update: Optional[datetime] = None

    @property
    def alarm_active(self) -> bool:
        return self.alarm is not None and not self.alarm.acknowledged

    @property
    def banner(self) -> Optional[str]:
        if not self.errors:
            return None
        return " ".join(self.errors.values())


class DashboardPoller:
    """Runs the latest, alerts and history cycles on independent timers.

    All cycles share one cancellation event. ``stop()`` ends the timers and
    ``shutdown()`` cancels every in-flight request together.
    """

    def __init__(
        self,
        client: AsyncApiClient,
        config: CLIConfig,
        siren: Optional[Siren] = None,
        on_update: Optional[Callable[[DashboardState], None]] = None,
    ) -> None:
        self._client = client
        self._config = config
        self._siren = siren or Siren()
        self._on_update = on_update
        self._cancel = asyncio.Event()
        self._tasks: Set[asyncio.Task[Any]] = set()
        self.state = DashboardState()

    async def poll_latest(self) -> bool:
        """Fetch the latest reading and reconcile the local alarm.

        Returns ``True`` when a new alarm was raised on this cycle.
        """
        fired = False

        async def cycle() -> None:
            nonlocal fired
            payload = await self._client.get_latest()
            if payload is None:
                return
            reading = ObservedReading.from_payload(payload)
            transition = detect_alarm_transition(
                reading,
                previous=self.state.latest,
                alarm=self.state.alarm,
                confirm_threshold=self._config.thresholds.confirm,
            )
            self.state.latest = transition.previous
            self.state.alarm = transition.alarm
            self.state.last_update = datetime.now(timezone.utc)
            if transition.fired:
                fired = True
                logger.warning(
                    "Critical temperature alarm raised",
                    extra={"temperature": reading.temperature},
                )
                self._spawn(self._siren.play())

        await self._guarded(LATEST_PATH, cycle)
        return fired

    async def poll_alerts(self) -> None:
        async def cycle() -> None:
            alerts, stats = await asyncio.gather(
                self._client.get_alerts(),
                self._client.get_alert_stats(),
            )
            self.state.alerts = list(alerts)
            self.state.stats = {key: int(stats.get(key, 0)) for key in _EMPTY_STATS}

        await self._guarded(ALERTS_PATH, cycle)

    async def poll_history(self) -> None:
        async def cycle() -> None:
            self.state.history = await self._client.get_history(
                page=1, limit=self._config.history_limit
            )

        await self._guarded(DATA_PATH, cycle)

    async def refresh_all(self) -> None:
        await asyncio.gather(self.poll_latest(), self.poll_alerts(), self.poll_history())

    def dismiss_alarm(self) -> None:
        self.state.alarm = acknowledge_alarm(self.state.alarm)
        self._notify()

    async def listen_for_dismissals(self, readline: Callable[[], Awaitable[str]]) -> None:
        """Acknowledge the local alarm on every input line until end of input."""
        while not self._cancel.is_set():
            line = await readline()
            if not line:
                return
            if self.state.alarm_active:
                logger.info("Alarm acknowledged locally")
            self.dismiss_alarm()

    async def run(
        self,
        duration: Optional[float] = None,
        dismiss_input: Optional[Callable[[], Awaitable[str]]] = None,
    ) -> None:
        """Poll until ``stop()`` is called or ``duration`` seconds have passed.

        When ``dismiss_input`` is given, each line it yields acknowledges the
        current alarm.
        """
        self._cancel.clear()
        try:
            await self._spawn(self.refresh_all())
            self._spawn(self._every(self._config.latest_interval, self.poll_latest))
            self._spawn(self._every(self._config.alerts_interval, self.poll_alerts))
            self._spawn(self._every(self._config.history_interval, self.poll_history))
            if dismiss_input is not None:
                self._spawn(self.listen_for_dismissals(dismiss_input))
            if duration is None:
                await self._cancel.wait()
            else:
                try:
                    await asyncio.wait_for(self._cancel.wait(), timeout=duration)
                except asyncio.TimeoutError:
                    pass
        except asyncio.CancelledError:
            if not self._cancel.is_set():
                raise
        finally:
            await self.shutdown()

    def stop(self) -> None:
        self._cancel.set()
        for task in list(self._tasks):
            task.cancel()

    async def shutdown(self) -> None:
        self.stop()
        pending = list(self._tasks)
        await asyncio.gather(*pending, return_exceptions=True)
        self._tasks.clear()

    async def _every(self, interval: float, cycle: Callable[[], Awaitable[Any]]) -> None:
        while not self._cancel.is_set():
            try:
                await asyncio.wait_for(self._cancel.wait(), timeout=interval)
            except asyncio.TimeoutError:
                try:
                    await cycle()
                except Exception:
                    # The timer outlives any single cycle.
                    logger.exception("Unexpected error in poll cycle")

    async def _guarded(self, endpoint: str, cycle: Callable[[], Awaitable[None]]) -> None:
        try:
            await cycle()
        except httpx.HTTPStatusError as exc:
            logger.warning(
                "Poll cycle failed",
                extra={"endpoint": endpoint, "status_code": exc.response.status_code},
            )
            self.state.errors[endpoint] = _BANNERS[endpoint]
        except (httpx.HTTPError, ValueError, TypeError) as exc:
            logger.warning("Poll cycle failed: %s", exc, extra={"endpoint": endpoint})
            self.state.errors[endpoint] = _BANNERS[endpoint]
        else:
            self.state.errors.pop(endpoint, None)
        self._notify()

    def _spawn(self, coro: Coroutine[Any, Any, Any]) -> asyncio.Task[Any]:
        task = asyncio.ensure_future(coro)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    def _notify(self) -> None:
        if self._on_update is not None:
            self._on_update(self.state)
