"""Logging helpers for the decision core.

The library emits records only on the ``ratewindow`` logger hierarchy, as
dotted event names (``rate_limit.exceeded``, ``store.sweep``) with the
decision metadata in ``extra``. Raw rate limit keys never reach a record:
emitters pass ``hash_key(key)`` instead.

``ratewindow/__init__.py`` attaches a NullHandler, so nothing is printed
unless the host configures logging. Hosts that want JSON lines for these
records can call ``configure_logging``; it touches the ``ratewindow``
logger only and leaves root and foreign handlers alone.
"""

from __future__ import annotations

import hashlib
import json
import logging
import sys
from datetime import datetime, timezone
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any

from ratewindow.core.config import LogSettings, settings

LIBRARY_LOGGER = "ratewindow"

REDACTED = "[REDACTED]"

# Field names that may carry a raw identifier if a host logs through our formatter
SENSITIVE_FIELDS = frozenset(
    {
        "key",
        "raw_key",
        "rate_limit_key",
        "client_ip",
        "authorization",
        "api_key",
    }
)

# Attributes every LogRecord carries; anything else on a record came from ``extra``
_RECORD_ATTRS = frozenset(vars(logging.LogRecord("", 0, "", 0, "", (), None))) | {
    "message",
    "asctime",
}

_installed_handler: logging.Handler | None = None


def hash_key(key: str) -> str:
    """Hash a rate limit key for logging without exposing the identifier."""
    return hashlib.sha256(key.encode()).hexdigest()[:16]


def _redact(value: Any) -> Any:
    if isinstance(value, dict):
        return {
            k: REDACTED if str(k).lower() in SENSITIVE_FIELDS else _redact(v)
            for k, v in value.items()
        }
    if isinstance(value, (list, tuple)):
        return [_redact(v) for v in value]
    return value


def event_fields(record: logging.LogRecord) -> dict[str, Any]:
    """Return the ``extra`` fields of a record, with sensitive values redacted."""
    fields: dict[str, Any] = {}
    for name, value in vars(record).items():
        if name in _RECORD_ATTRS or name.startswith("_"):
            continue
        fields[name] = REDACTED if name.lower() in SENSITIVE_FIELDS else _redact(value)
    return fields


class JsonFormatter(logging.Formatter):
    """One JSON object per record: ts, level, logger, event, then the event fields."""

    def format(self, record: logging.LogRecord) -> str:  # noqa: D401
        payload: dict[str, Any] = {
            "ts": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname.lower(),
            "logger": record.name,
            "event": record.getMessage(),
        }
        payload.update(event_fields(record))
        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)
        return json.dumps(payload, default=str)


def _build_handler(log_settings: LogSettings) -> logging.Handler:
    if log_settings.output != "file":
        return logging.StreamHandler(sys.stdout)

    file_path = Path(log_settings.file_path or "logs/ratewindow.log")
    file_path.parent.mkdir(parents=True, exist_ok=True)
    if log_settings.max_bytes:
        return RotatingFileHandler(
            file_path,
            maxBytes=log_settings.max_bytes,
            backupCount=log_settings.backup_count,
            encoding="utf-8",
        )
    return logging.FileHandler(file_path, encoding="utf-8")


def configure_logging(log_settings: LogSettings | None = None) -> logging.Handler:
    """Attach a handler for ratewindow records to the ``ratewindow`` logger.

    Calling it again replaces the handler installed by the previous call;
    handlers added by anyone else are kept.

    Args:
        log_settings: Optional log settings; defaults to the global settings.

    Returns:
        The handler now attached to the ``ratewindow`` logger.
    """
    global _installed_handler

    cfg = log_settings or settings.log
    library_logger = logging.getLogger(LIBRARY_LOGGER)

    if _installed_handler is not None:
        library_logger.removeHandler(_installed_handler)
        _installed_handler.close()

    handler = _build_handler(cfg)
    if cfg.format == "plain":
        handler.setFormatter(logging.Formatter("%(asctime)s %(levelname)s %(name)s %(message)s"))
    else:
        handler.setFormatter(JsonFormatter())

    library_logger.addHandler(handler)
    library_logger.setLevel(getattr(logging, cfg.level.upper(), logging.INFO))
    _installed_handler = handler
    return handler
