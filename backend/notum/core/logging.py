"""Logging setup driven by :class:`notum.core.config.Settings`.

With ``log_json`` on, every record renders as one JSON line. Attributes passed
through ``extra`` with a ``ctx_`` prefix are grouped under ``context`` with the
prefix dropped, e.g. ``extra={"ctx_report": ...}`` becomes
``{"context": {"report": ...}}``.
"""

from __future__ import annotations

import logging
import sys
from datetime import datetime, timezone
from typing import Any

import orjson

from notum.core.config import Settings
from notum.utils.time import isoformat

CONTEXT_PREFIX = "ctx_"
TEXT_FORMAT = "%(asctime)s %(levelname)-7s %(name)s: %(message)s"
# chatty below WARNING once the root level drops to DEBUG
QUIET_LOGGERS = ("aiosqlite", "asyncio")


class JsonFormatter(logging.Formatter):
    """One JSON object per record, timestamped in UTC."""

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "timestamp": isoformat(datetime.fromtimestamp(record.created, tz=timezone.utc)),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        context = {
            key[len(CONTEXT_PREFIX) :]: value
            for key, value in vars(record).items()
            if key.startswith(CONTEXT_PREFIX)
        }
        if context:
            payload["context"] = context
        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)
        return orjson.dumps(payload, default=str).decode("utf-8")


class NotumHandler(logging.StreamHandler):
    """Stdout handler owned by :func:`configure_logging`."""


def configure_logging(settings: Settings | None = None) -> None:
    """Install the Notum handler on the root logger.

    Only a previously installed Notum handler is replaced; handlers added by
    the host (test capture, uvicorn) stay in place. Without ``settings`` the
    model defaults apply.
    """
    settings = settings or Settings()
    handler = NotumHandler(sys.stdout)
    handler.setFormatter(JsonFormatter() if settings.log_json else logging.Formatter(TEXT_FORMAT))

    root = logging.getLogger()
    for existing in [h for h in root.handlers if isinstance(h, NotumHandler)]:
        root.removeHandler(existing)
    root.addHandler(handler)
    root.setLevel(settings.log_level)
    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(max(logging.WARNING, root.level))
    logging.captureWarnings(True)


def get_logger(name: str = "notum") -> logging.Logger:
    """Return a logger, installing the default configuration if none is in place."""
    if not any(isinstance(h, NotumHandler) for h in logging.getLogger().handlers):
        configure_logging()
    return logging.getLogger(name)


__all__ = ["JsonFormatter", "NotumHandler", "configure_logging", "get_logger"]
