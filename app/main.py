from __future__ import annotations
import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI

from app.api import router
from app.web import router as web_router
from logging_config import configure_logging
from services.monitor import build_default_monitor

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncIterator[None]:
    monitor = build_default_monitor()
    logger.info(
        "Monitor ready",
        extra={"threshold": monitor.alert_threshold},
    )
    try:
        yield
    finally:
        build_default_monitor.cache_clear()


def create_app() -> FastAPI:
    configure_logging()
    app = FastAPI(
        title="Battery Temperature Monitor",
        description="Ingests sensor temperature readings and derives threshold alerts.",
        version="0.1.0",
        lifespan=lifespan,
    )
    app.include_router(router)
    app.include_router(web_router)
    return app

app = create_app()
