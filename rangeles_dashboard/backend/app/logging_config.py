# backend/app/logging_config.py
from __future__ import annotations

import json
import logging
import sys
from datetime import datetime, timezone
from typing import Any, Optional

from .config import settings
from .middleware.request_context import get_request_id

# Structured fields lifted from `extra=...` onto the JSON line
EXTRA_KEYS = (
    # access log
    "method",
    "path",
    "status_code",
    "latency_ms",
    # dashboard
    "collection",
    "endpoint",
    "count",
    "payment_id",
    "role",
    "gate_state",
)


class JsonFormatter(logging.Formatter):
    """One JSON object per record; request_id is attached while a request is active."""

    def format(self, record: logging.LogRecord) -> str:
        ts = datetime.fromtimestamp(record.created, tz=timezone.utc)
        payload: dict[str, Any] = {
            "ts": ts.isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        rid = get_request_id()
        if rid:
            payload["request_id"] = rid

        for k in EXTRA_KEYS:
            v = getattr(record, k, None)
            if v is not None:
                payload[k] = v

        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)

        return json.dumps(payload, ensure_ascii=False, default=str)


def configure_logging(level: Optional[str] = None) -> None:
    """Route everything through a single stdout JSON handler on the root logger."""
    lvl = (level or settings.log_level or "INFO").upper()

    root = logging.getLogger()
    root.setLevel(lvl)

    # uvicorn --reload re-imports main; don't stack handlers
    for h in list(root.handlers):
        root.removeHandler(h)

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(JsonFormatter())
    root.addHandler(handler)

    # the request middleware already writes an access line
    logging.getLogger("uvicorn.access").disabled = True
    logging.getLogger("httpx").setLevel(settings.httpx_log_level.upper())
