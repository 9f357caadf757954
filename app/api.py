"""HTTP route definitions for the service."""

from __future__ import annotations

import json

from fastapi import APIRouter, Depends, HTTPException, Query, Request, status
from fastapi.concurrency import run_in_threadpool

from app.schemas import (
    Alert,
    AlertAcknowledged,
    AlertStatistics,
    HealthStatus,
    Reading,
    ReadingCreated,
    ReadingPage,
)
from services.classifier import INVALID_TEMPERATURE
from services.monitor import DEFAULT_PAGE_SIZE, MonitorService, build_default_monitor

router = APIRouter()


def get_monitor() -> MonitorService:
    return build_default_monitor()


@router.post(
    "/api/data",
    status_code=status.HTTP_201_CREATED,
    response_model=ReadingCreated,
    summary="Store a temperature reading sent by the sensor device.",
)
async def ingest_reading(
    request: Request,
    monitor: MonitorService = Depends(get_monitor),
) -> ReadingCreated:
    try:
        payload = await request.json()
    except (json.JSONDecodeError, UnicodeDecodeError) as exc:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=INVALID_TEMPERATURE,
        ) from exc
    if not isinstance(payload, dict):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=INVALID_TEMPERATURE,
        )

    try:
        reading = await run_in_threadpool(monitor.ingest, payload.get("temperature"))
    except ValueError as exc:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(exc),
        ) from exc
    return ReadingCreated(
        alert=reading.alert,
        temperature=reading.temperature,
        timestamp=reading.timestamp,
    )


@router.get(
    "/api/data/latest",
    response_model=Reading,
    summary="Fetch the most recent reading.",
)
def get_latest_reading(
    monitor: MonitorService = Depends(get_monitor),
) -> Reading:
    try:
        return monitor.latest()
    except KeyError as exc:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="No data found",
        ) from exc


@router.get(
    "/api/data",
    response_model=ReadingPage,
    summary="Page through readings, newest first.",
)
def get_reading_history(
    page: int = Query(1, ge=1),
    limit: int = Query(DEFAULT_PAGE_SIZE, ge=1),
    monitor: MonitorService = Depends(get_monitor),
) -> ReadingPage:
    return ReadingPage(data=monitor.history(page=page, limit=limit))


@router.get(
    "/api/alerts",
    response_model=list[Alert],
    summary="Fetch the most recent alerts, newest first.",
)
def get_recent_alerts(
    monitor: MonitorService = Depends(get_monitor),
) -> list[Alert]:
    return monitor.recent_alerts()


@router.get(
    "/api/alerts/stats",
    response_model=AlertStatistics,
    summary="Alert totals: all, unacknowledged and raised today.",
)
def get_alert_stats(
    monitor: MonitorService = Depends(get_monitor),
) -> AlertStatistics:
    return monitor.alert_stats()


@router.put(
    "/api/alerts/{alert_id}/acknowledge",
    response_model=AlertAcknowledged,
    summary="Mark an alert as acknowledged.",
)
def acknowledge_alert(
    alert_id: str,
    monitor: MonitorService = Depends(get_monitor),
) -> AlertAcknowledged:
    try:
        alert = monitor.acknowledge_alert(alert_id)
    except KeyError as exc:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Alert not found",
        ) from exc
    return AlertAcknowledged(alert=alert)


@router.get(
    "/health",
    response_model=HealthStatus,
    summary="Health check endpoint with store connectivity.",
    status_code=status.HTTP_200_OK,
)
def healthcheck(
    monitor: MonitorService = Depends(get_monitor),
) -> HealthStatus:
    connected = monitor.store_connected()
    return HealthStatus(
        timestamp=monitor.now(),
        store="connected" if connected else "unavailable",
    )


@router.get(
    "/",
    summary="Root endpoint mirrors health information.",
    status_code=status.HTTP_200_OK,
)
async def root() -> dict[str, str]:
    return {"status": "ok", "detail": "See /health for service status."}
