import asyncio
from typing import Iterator

import pytest
from fastapi.testclient import TestClient

from app.main import create_app
from app.schemas import Alert, Reading
from datastore.document_store import DocumentCollection, build_default_alerts, build_default_readings
from services.aggregator import AlertStatsAggregator
from services.monitor import MonitorService, build_default_monitor
from settings import get_settings


def build_test_monitor_factory(monitor: MonitorService):
    def build_test_monitor() -> MonitorService:
        return monitor

    build_test_monitor.cache_clear = lambda: None  # type: ignore[attr-defined]
    return build_test_monitor


@pytest.fixture
def monitor(tmp_path) -> MonitorService:
    return MonitorService(
        readings=DocumentCollection("readings", Reading, tmp_path / "readings.json"),
        alerts=DocumentCollection("alerts", Alert, tmp_path / "alerts.json"),
        aggregator=AlertStatsAggregator(),
        alert_threshold=28.0,
    )


@pytest.fixture
def api_client(monitor: MonitorService, monkeypatch) -> Iterator[TestClient]:
    factory = build_test_monitor_factory(monitor)
    monkeypatch.setattr("app.main.build_default_monitor", factory)
    monkeypatch.setattr("app.api.build_default_monitor", factory)
    monkeypatch.setattr("app.web.build_default_monitor", factory)

    app = create_app()
    with TestClient(app) as client:
        yield client


def test_lifespan_clears_monitor_cache(monkeypatch, tmp_path) -> None:
    monkeypatch.setenv("READINGS_PERSISTENCE_PATH", str(tmp_path / "readings.json"))
    monkeypatch.setenv("ALERTS_PERSISTENCE_PATH", str(tmp_path / "alerts.json"))
    caches = (get_settings, build_default_readings, build_default_alerts, build_default_monitor)
    for cache in caches:
        cache.cache_clear()

    try:
        app = create_app()
        with TestClient(app):
            monitor_during = build_default_monitor()

        monitor_after = build_default_monitor()
        assert monitor_after is not monitor_during
        assert monitor_after.readings is monitor_during.readings
    finally:
        for cache in caches:
            cache.cache_clear()


def test_ingest_normal_reading(api_client: TestClient) -> None:
    response = api_client.post("/api/data", json={"temperature": 20.0})

    assert response.status_code == 201
    body = response.json()
    assert body["message"] == "Data saved successfully"
    assert body["alert"] is False
    assert body["temperature"] == 20.0
    assert body["timestamp"]


def test_ingest_alert_reading_creates_alert(api_client: TestClient) -> None:
    response = api_client.post("/api/data", json={"temperature": 29.5})

    assert response.status_code == 201
    assert response.json()["alert"] is True

    alerts = api_client.get("/api/alerts").json()
    assert len(alerts) == 1
    assert alerts[0]["temperature"] == 29.5
    assert "29.5" in alerts[0]["message"]
    assert alerts[0]["acknowledged"] is False


@pytest.mark.parametrize(
    "payload",
    [{}, {"temperature": None}, {"temperature": "abc"}, {"temperature": True}, [28.5], "31"],
)
def test_ingest_rejects_invalid_payloads(api_client: TestClient, payload) -> None:
    response = api_client.post("/api/data", json=payload)

    assert response.status_code == 400
    assert response.json()["detail"] == "Invalid temperature"
    assert api_client.get("/api/data/latest").status_code == 404


def test_ingest_rejects_malformed_json(api_client: TestClient) -> None:
    response = api_client.post(
        "/api/data",
        content=b"temperature=31",
        headers={"Content-Type": "application/json"},
    )

    assert response.status_code == 400


def test_latest_returns_not_found_when_empty(api_client: TestClient) -> None:
    response = api_client.get("/api/data/latest")

    assert response.status_code == 404
    assert response.json()["detail"] == "No data found"


def test_latest_returns_most_recent_reading(api_client: TestClient) -> None:
    api_client.post("/api/data", json={"temperature": 20.0})
    api_client.post("/api/data", json={"temperature": 31.0})

    body = api_client.get("/api/data/latest").json()

    assert body["temperature"] == 31.0
    assert body["alert"] is True
    assert set(body) == {"id", "temperature", "timestamp", "alert"}


def test_history_defaults_and_out_of_range_page(api_client: TestClient) -> None:
    for temperature in (20.0, 21.0, 22.0, 23.0, 24.0):
        api_client.post("/api/data", json={"temperature": temperature})

    default_page = api_client.get("/api/data").json()
    empty_page = api_client.get("/api/data", params={"page": 2, "limit": 10})

    assert [item["temperature"] for item in default_page["data"]] == [24.0, 23.0, 22.0, 21.0, 20.0]
    assert empty_page.status_code == 200
    assert empty_page.json() == {"data": []}


def test_history_rejects_invalid_paging(api_client: TestClient) -> None:
    response = api_client.get("/api/data", params={"page": 0})

    assert response.status_code == 422


def test_alert_stats_and_acknowledge_flow(api_client: TestClient) -> None:
    for temperature in (20.0, 29.5, 31.0):
        api_client.post("/api/data", json={"temperature": temperature})

    stats = api_client.get("/api/alerts/stats").json()
    assert stats == {"total": 2, "unacknowledged": 2, "today": 2}

    alert_id = api_client.get("/api/alerts").json()[0]["id"]
    first = api_client.put(f"/api/alerts/{alert_id}/acknowledge")
    second = api_client.put(f"/api/alerts/{alert_id}/acknowledge")

    assert first.status_code == 200
    assert first.json()["message"] == "Alert acknowledged"
    assert first.json()["alert"]["acknowledged"] is True
    assert second.json() == first.json()

    stats = api_client.get("/api/alerts/stats").json()
    assert stats == {"total": 2, "unacknowledged": 1, "today": 2}


def test_acknowledge_unknown_alert_returns_not_found(api_client: TestClient) -> None:
    response = api_client.put("/api/alerts/unknown/acknowledge")

    assert response.status_code == 404
    assert response.json()["detail"] == "Alert not found"


def test_empty_alert_stats_are_zero(api_client: TestClient) -> None:
    assert api_client.get("/api/alerts/stats").json() == {"total": 0, "unacknowledged": 0, "today": 0}
    assert api_client.get("/api/alerts").json() == []


def test_health_reports_store_connectivity(api_client: TestClient) -> None:
    body = api_client.get("/health").json()

    assert body["status"] == "ok"
    assert body["store"] == "connected"
    assert body["timestamp"]


def test_ui_renders_dashboard(api_client: TestClient) -> None:
    empty = api_client.get("/ui")
    assert empty.status_code == 200
    assert "Waiting for the first reading" in empty.text

    api_client.post("/api/data", json={"temperature": 31.0})
    page = api_client.get("/ui")

    assert page.status_code == 200
    assert "31°C" in page.text
    assert "badge-alert" in page.text
    assert "Critical temperature alert: 31°C detected!" in page.text
    assert "1 total, 1 unacknowledged, 1 today" in page.text


def _has_running_loop() -> bool:
    try:
        asyncio.get_running_loop()
    except RuntimeError:
        return False
    return True


def test_store_writes_run_off_the_event_loop(api_client: TestClient, monitor: MonitorService, monkeypatch) -> None:
    on_loop: dict[str, bool] = {}
    ingest = monitor.ingest
    acknowledge = monitor.acknowledge_alert

    def recording_ingest(raw):
        on_loop["ingest"] = _has_running_loop()
        return ingest(raw)

    def recording_acknowledge(alert_id):
        on_loop["acknowledge"] = _has_running_loop()
        return acknowledge(alert_id)

    monkeypatch.setattr(monitor, "ingest", recording_ingest)
    monkeypatch.setattr(monitor, "acknowledge_alert", recording_acknowledge)

    assert api_client.post("/api/data", json={"temperature": 31.0}).status_code == 201
    alert_id = api_client.get("/api/alerts").json()[0]["id"]
    assert api_client.put(f"/api/alerts/{alert_id}/acknowledge").status_code == 200

    assert on_loop == {"ingest": False, "acknowledge": False}
