from __future__ import annotations

from pathlib import Path
from typing import Optional

from fastapi import APIRouter, Depends, Request
from fastapi.responses import HTMLResponse
from fastapi.templating import Jinja2Templates

from app.schemas import Reading
from services.classifier import format_temperature, temperature_level
from services.monitor import MonitorService, build_default_monitor
from settings import Thresholds, get_settings


templates = Jinja2Templates(directory=str(Path(__file__).resolve().parent / "templates"))
templates.env.filters["temperature"] = format_temperature

REFRESH_SECONDS = 5
HISTORY_ROWS = 20


def get_monitor() -> MonitorService:
    return build_default_monitor()


def get_thresholds() -> Thresholds:
    return get_settings().thresholds


def _reading_status(reading: Optional[Reading], thresholds: Thresholds) -> str:
    if reading is None:
        return "No data"
    if reading.alert:
        return "Alert"
    if reading.temperature > thresholds.warn:
        return "Warning"
    return "Normal"


router = APIRouter(include_in_schema=False)


@router.get("/ui", name="ui_index", response_class=HTMLResponse)
def ui_index(
    request: Request,
    monitor: MonitorService = Depends(get_monitor),
    thresholds: Thresholds = Depends(get_thresholds),
) -> HTMLResponse:
    try:
        latest: Optional[Reading] = monitor.latest()
    except KeyError:
        latest = None

    level = None
    if latest is not None:
        level = temperature_level(latest.temperature, thresholds.confirm, thresholds.warn)

    return templates.TemplateResponse(
        request,
        "ui/index.html",
        {
            "latest": latest,
            "status": _reading_status(latest, thresholds),
            "level": level,
            "stats": monitor.alert_stats(),
            "alerts": monitor.recent_alerts(),
            "history": monitor.history(page=1, limit=HISTORY_ROWS),
            "thresholds": thresholds,
            "refresh_seconds": REFRESH_SECONDS,
        },
    )
