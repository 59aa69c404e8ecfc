"""Logging setup: one JSON object per record, to syslog when available."""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from logging import Handler
from logging.config import dictConfig
from logging.handlers import SysLogHandler
from pathlib import Path
from typing import Any, Final

import msgspec

from .settings import RuntimeConfig

SYSLOG_SOCKET = Path("/dev/log")
SYSLOG_SOCKET_FALLBACK = Path("/var/run/log")

# Attributes every LogRecord carries; anything else arrived through ``extra``.
_RECORD_ATTRS: Final[frozenset[str]] = frozenset(
    vars(logging.LogRecord("", logging.NOTSET, "", 0, "", None, None))
) | {"message", "asctime"}

_encoder = msgspec.json.Encoder(enc_hook=str)


class StructuredLogFormatter(logging.Formatter):
    """Render records as compact JSON with the package prefix removed."""

    PREFIX = "adbtrigger."

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "ts": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat().replace("+00:00", "Z"),
            "level": record.levelname,
            "logger": record.name.removeprefix(self.PREFIX),
            "message": record.getMessage(),
        }
        extras = {
            key: value
            for key, value in vars(record).items()
            if key not in _RECORD_ATTRS and not key.startswith("_")
        }
        if extras:
            payload["extra"] = extras
        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)
        return _encoder.encode(payload).decode("utf-8")


def _build_handler() -> Handler:
    for candidate in (SYSLOG_SOCKET, SYSLOG_SOCKET_FALLBACK):
        if candidate.exists():
            handler = SysLogHandler(address=str(candidate), facility=SysLogHandler.LOG_DAEMON)
            handler.ident = "adbtrigger "
            return handler
    return logging.StreamHandler()


def configure_logging(config: RuntimeConfig) -> None:
    """Install the structured handler on the root logger."""

    level_name = "DEBUG" if config.debug_logging else "INFO"

    dictConfig(
        {
            "version": 1,
            "disable_existing_loggers": False,
            "formatters": {
                "structured": {
                    "()": "adbtrigger.config.logging.StructuredLogFormatter",
                }
            },
            "handlers": {
                "adbtrigger": {
                    "()": _build_handler,
                    "level": level_name,
                    "formatter": "structured",
                }
            },
            "root": {
                "level": level_name,
                "handlers": ["adbtrigger"],
            },
        }
    )

    logging.getLogger("adbtrigger").info("Logging configured at level %s", level_name)
