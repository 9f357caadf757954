"""Pydantic schemas for stored records and the HTTP API layer."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import List, Literal
from uuid import uuid4

from pydantic import BaseModel, Field


def _new_id() -> str:
    return uuid4().hex


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Reading(BaseModel):
    """One ingested temperature sample with its server-side classification."""

    id: str = Field(default_factory=_new_id)
    temperature: float
    timestamp: datetime = Field(default_factory=_utcnow)
    alert: bool = False


class Alert(BaseModel):
    """Persisted record of an alert-worthy reading, acknowledgeable on its own."""

    id: str = Field(default_factory=_new_id)
    temperature: float
    message: str
    timestamp: datetime = Field(default_factory=_utcnow)
    acknowledged: bool = False


class ReadingCreated(BaseModel):
    """Response payload after a reading has been stored."""

    message: str = "Data saved successfully"
    alert: bool
    temperature: float
    timestamp: datetime


class ReadingPage(BaseModel):
    data: List[Reading] = Field(default_factory=list)


class AlertStatistics(BaseModel):
    """Alert counts computed fresh on every request."""

    total: int = Field(0, ge=0)
    unacknowledged: int = Field(0, ge=0)
    today: int = Field(0, ge=0)


class AlertAcknowledged(BaseModel):
    message: str = "Alert acknowledged"
    alert: Alert


class HealthStatus(BaseModel):
    status: Literal["ok"] = "ok"
    timestamp: datetime
    store: Literal["connected", "unavailable"]
