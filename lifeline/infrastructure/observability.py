"""Structured Logging — JSON formatter and root logger setup.

Invariants:
    - Every JSON line carries timestamp, level, logger name, and message
    - Request fields (method, path, status_code, error_kind, ...) appear only
      when a record was logged with them in `extra`
    - Static fields (service, environment) are stamped on every JSON line
    - setup_logging replaces the handler it installed earlier, never stacks

Design Decisions:
    - Timestamp from record.created, not formatting time: queued records keep
      the moment they were logged
    - setup_logging called once per create_app, before middleware is built
"""

import json
import logging
from datetime import datetime, timezone
from typing import Mapping

EXTRA_FIELDS = (
    "method", "path", "status_code", "error_kind", "error_code", "elapsed",
)
TEXT_FORMAT = "%(asctime)s %(levelname)s %(name)s — %(message)s"

_installed_handler: logging.Handler | None = None


class JSONFormatter(logging.Formatter):
    """One JSON object per record; non-serializable extras are stringified."""

    def __init__(self, static_fields: Mapping[str, str] | None = None):
        super().__init__()
        self.static_fields = dict(static_fields or {})

    def format(self, record: logging.LogRecord) -> str:
        created = datetime.fromtimestamp(record.created, tz=timezone.utc)
        payload = {
            "timestamp": created.isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            **self.static_fields,
        }
        payload.update(_request_fields(record))
        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)
        return json.dumps(payload, ensure_ascii=False, default=str)


def _request_fields(record: logging.LogRecord) -> dict:
    return {
        key: record.__dict__[key]
        for key in EXTRA_FIELDS
        if record.__dict__.get(key) is not None
    }


def setup_logging(
    level: str = "INFO",
    fmt: str = "json",
    static_fields: Mapping[str, str] | None = None,
) -> logging.Handler:
    """Install (or reinstall) Lifeline's root handler and level."""
    global _installed_handler
    handler = logging.StreamHandler()
    if fmt == "json":
        handler.setFormatter(JSONFormatter(static_fields))
    else:
        handler.setFormatter(logging.Formatter(TEXT_FORMAT))

    root = logging.getLogger()
    if _installed_handler is not None:
        root.removeHandler(_installed_handler)
    root.addHandler(handler)
    root.setLevel(level.upper())
    _installed_handler = handler
    return handler
