"""Logging setup: JSON lines or readable text, with a per-request id.

Records may carry gateway context through ``extra``: the object ``key``, the
``share_id`` and the Telegram ``chat_id``. Both formatters surface them.
"""

from __future__ import annotations

import logging
import sys
from contextvars import ContextVar
from typing import Any

from pythonjsonlogger.json import JsonFormatter

from imagegate import __version__

request_id_var: ContextVar[str | None] = ContextVar("request_id", default=None)

CONTEXT_FIELDS = ("key", "share_id", "chat_id")
SERVICE_NAME = "imagegate"
TIME_FORMAT = "%Y-%m-%d %H:%M:%S"

_logging_configured = False


class GatewayJsonFormatter(JsonFormatter):
    def add_fields(
        self,
        log_record: dict[str, Any],
        record: logging.LogRecord,
        message_dict: dict[str, Any],
    ) -> None:
        super().add_fields(log_record, record, message_dict)
        log_record["service"] = SERVICE_NAME
        log_record["version"] = __version__
        log_record["level"] = record.levelname
        request_id = request_id_var.get()
        if request_id:
            log_record["request_id"] = request_id


class GatewayTextFormatter(logging.Formatter):
    """``<time> <level> <logger>: [req=abcd1234] message key=... share_id=...``"""

    def format(self, record: logging.LogRecord) -> str:
        message = record.getMessage()
        request_id = request_id_var.get()
        if request_id:
            message = f"[req={request_id[:8]}] {message}"
        for field in CONTEXT_FIELDS:
            value = getattr(record, field, None)
            if value is not None:
                message += f" {field}={value}"
        line = f"{self.formatTime(record, TIME_FORMAT)} {record.levelname:8} {record.name}: {message}"
        if record.exc_info:
            line += "\n" + self.formatException(record.exc_info)
        return line


def configure_logging(log_level: str = "INFO", log_format: str = "json") -> None:
    """Install a single stdout handler on the root logger.

    Runs once per process; later calls are ignored so that building several
    apps in one interpreter does not stack handlers.
    """
    global _logging_configured
    if _logging_configured:
        return

    level = getattr(logging, log_level.upper(), logging.INFO)
    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(level)
    if log_format.lower() == "json":
        handler.setFormatter(GatewayJsonFormatter("%(asctime)s %(name)s %(message)s", timestamp=True))
    else:
        handler.setFormatter(GatewayTextFormatter())

    root = logging.getLogger()
    root.setLevel(level)
    root.handlers.clear()
    root.addHandler(handler)

    # access lines come from RequestLoggingMiddleware
    for noisy in ("uvicorn.access", "httpx", "httpcore", "urllib3"):
        logging.getLogger(noisy).setLevel(logging.WARNING)

    _logging_configured = True


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)
