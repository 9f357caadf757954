from __future__ import annotations

from typing import Any, Callable, Dict, List, Optional

import httpx
import typer

from cli.config import CLIConfig

DATA_PATH = "/api/data"
LATEST_PATH = "/api/data/latest"
ALERTS_PATH = "/api/alerts"
ALERT_STATS_PATH = "/api/alerts/stats"


def acknowledge_path(alert_id: str) -> str:
    return f"{ALERTS_PATH}/{alert_id}/acknowledge"


def expect_object(payload: Any, path: str) -> Dict[str, Any]:
    if not isinstance(payload, dict):
        raise ValueError(
            f"Unexpected payload from {path}: expected an object, got {type(payload).__name__}"
        )
    return payload


def expect_records(payload: Any, path: str) -> List[Dict[str, Any]]:
    if not isinstance(payload, list) or not all(isinstance(item, dict) for item in payload):
        raise ValueError(f"Unexpected payload from {path}: expected a list of objects")
    return payload


def history_records(payload: Any, path: str = DATA_PATH) -> List[Dict[str, Any]]:
    """Unwrap the ``{"data": [...]}`` page envelope."""
    return expect_records(expect_object(payload, path).get("data", []), path)


class ApiClient:
    """Blocking HTTP client used by the one-shot CLI commands."""

    def __init__(self, config: CLIConfig, transport: Optional[httpx.BaseTransport] = None) -> None:
        self._config = config
        self._client = httpx.Client(
            base_url=config.base_url,
            timeout=config.request_timeout,
            transport=transport,
        )

    def close(self) -> None:
        self._client.close()

    def send_reading(self, temperature: float) -> Dict[str, Any]:
        response = self._request("POST", DATA_PATH, json={"temperature": temperature})
        return response.json()

    def get_latest(self) -> Optional[Dict[str, Any]]:
        response = self._request("GET", LATEST_PATH, allow_not_found=True)
        if response.status_code == 404:
            return None
        return self._decode(response, LATEST_PATH, expect_object)

    def get_history(self, page: int, limit: int) -> List[Dict[str, Any]]:
        response = self._request("GET", DATA_PATH, params={"page": page, "limit": limit})
        return self._decode(response, DATA_PATH, history_records)

    def get_alerts(self) -> List[Dict[str, Any]]:
        return self._decode(self._request("GET", ALERTS_PATH), ALERTS_PATH, expect_records)

    def get_alert_stats(self) -> Dict[str, Any]:
        return self._decode(self._request("GET", ALERT_STATS_PATH), ALERT_STATS_PATH, expect_object)

    def acknowledge_alert(self, alert_id: str) -> Dict[str, Any]:
        response = self._request("PUT", acknowledge_path(alert_id), allow_not_found=True)
        if response.status_code == 404:
            raise typer.BadParameter(f"Alert {alert_id} was not found.")
        return response.json()

    def _request(
        self,
        method: str,
        path: str,
        allow_not_found: bool = False,
        **kwargs: Any,
    ) -> httpx.Response:
        try:
            response = self._client.request(method, path, **kwargs)
            if allow_not_found and response.status_code == 404:
                return response
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            self._handle_http_error(exc)
        except httpx.RequestError as exc:
            typer.secho(
                f"Could not reach {self._config.base_url}: {exc}",
                fg=typer.colors.RED,
                err=True,
            )
            raise typer.Exit(code=1) from exc
        return response

    @staticmethod
    def _decode(
        response: httpx.Response,
        path: str,
        check: Callable[[Any, str], Any],
    ) -> Any:
        try:
            return check(response.json(), path)
        except ValueError as exc:
            typer.secho(str(exc), fg=typer.colors.RED, err=True)
            raise typer.Exit(code=1) from exc

    @staticmethod
    def _handle_http_error(exc: httpx.HTTPStatusError) -> None:
        detail: str | None = None
        try:
            data = exc.response.json()
            detail = data.get("detail") if isinstance(data, dict) else None
        except ValueError:
            detail = exc.response.text.strip()
        message = (
            f"Request failed with status {exc.response.status_code}: {detail or 'no detail provided.'}"
        )
        typer.secho(message, fg=typer.colors.RED, err=True)
        raise typer.Exit(code=1)


class AsyncApiClient:
    """Non-blocking client for the dashboard poller.

    Errors are raised as ``httpx`` exceptions and payloads of the wrong shape
    as ``ValueError``; the poller decides how to surface them. A missing
    latest reading is returned as ``None``.
    """

    def __init__(
        self,
        config: CLIConfig,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self._config = config
        self._client = httpx.AsyncClient(
            base_url=config.base_url,
            timeout=config.request_timeout,
            transport=transport,
        )

    async def aclose(self) -> None:
        await self._client.aclose()

    async def get_latest(self) -> Optional[Dict[str, Any]]:
        response = await self._client.get(LATEST_PATH)
        if response.status_code == 404:
            return None
        response.raise_for_status()
        return expect_object(response.json(), LATEST_PATH)

    async def get_alerts(self) -> List[Dict[str, Any]]:
        response = await self._client.get(ALERTS_PATH)
        response.raise_for_status()
        return expect_records(response.json(), ALERTS_PATH)

    async def get_alert_stats(self) -> Dict[str, Any]:
        response = await self._client.get(ALERT_STATS_PATH)
        response.raise_for_status()
        return expect_object(response.json(), ALERT_STATS_PATH)

    async def get_history(self, page: int, limit: int) -> List[Dict[str, Any]]:
        response = await self._client.get(DATA_PATH, params={"page": page, "limit": limit})
        response.raise_for_status()
        return history_records(response.json())
