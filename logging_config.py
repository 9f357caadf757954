from __future__ import annotations

import logging
from logging.config import dictConfig
from typing import Any, Dict, Iterable, Sequence

from settings import get_settings

_DEFAULT_EXTRA_KEYS = (
    "reading_id",
    "alert_id",
    "temperature",
    "threshold",
    "endpoint",
    "status_code",
    "page",
    "limit",
)

# httpx logs every request at INFO, which would flood the dashboard poller.
_QUIET_LOGGERS = ("httpx", "httpcore")

_configured = False


class ContextualFormatter(logging.Formatter):
    """Formatter that appends selected ``extra`` attributes as ``key=value`` pairs."""

    def __init__(
        self,
        fmt: str | None = None,
        datefmt: str | None = None,
        style: str = "%",
        extra_keys: Iterable[str] | None = None,
    ) -> None:
        super().__init__(fmt=fmt, datefmt=datefmt, style=style)
        self._extra_keys: Sequence[str] = tuple(extra_keys or _DEFAULT_EXTRA_KEYS)

    def format(self, record: logging.LogRecord) -> str:
        message = super().format(record)
        context = " ".join(
            f"{key}={getattr(record, key)}"
            for key in self._extra_keys
            if getattr(record, key, None) is not None
        )
        return f"{message} | {context}" if context else message


def configure_logging(level: str | int | None = None, stream: str = "ext://sys.stderr") -> None:
    """Configure application-wide logging with contextual formatting.

    Both the API server and the dashboard CLI call this; the CLI keeps log output
    on stderr so it never interleaves with the rendered dashboard on stdout.
    """
    global _configured
    if _configured:
        return

    settings = get_settings()
    log_level = level if level is not None else settings.log_level

    loggers: Dict[str, Dict[str, Any]] = {
        name: {"level": "WARNING"} for name in _QUIET_LOGGERS
    }

    dictConfig(
        {
            "version": 1,
            "disable_existing_loggers": False,
            "formatters": {
                "contextual": {
                    "()": "logging_config.ContextualFormatter",
                    "fmt": "%(asctime)s | %(levelname)s | %(name)s | %(message)s",
                    "datefmt": "%Y-%m-%dT%H:%M:%S",
                    "style": "%",
                    "extra_keys": list(_DEFAULT_EXTRA_KEYS),
                }
            },
            "handlers": {
                "default": {
                    "class": "logging.StreamHandler",
                    "level": log_level,
                    "formatter": "contextual",
                    "stream": stream,
                }
            },
            "loggers": loggers,
            "root": {"handlers": ["default"], "level": log_level},
        }
    )

    _configured = True
