"""JSON log formatter for log aggregators.

Activate by setting ``API_STRUCTURED_LOGGING=true``.  Each record becomes a
single-line JSON object::

    {
        "timestamp": "2025-05-15T12:34:56.789012+00:00",
        "level": "INFO",
        "logger": "feed_api.access",
        "message": "request completed",
        "correlation_id": "...",   // present inside a request
        "request": { ... },        // present when emitted by RequestLoggingMiddleware
        "backends": { ... },       // present on the startup composition report
        "exc_info": "Traceback ..."
    }
"""

from __future__ import annotations

import json
import logging
import traceback
from datetime import UTC, datetime
from typing import Any

# Structured ``extra=`` attributes copied verbatim into the payload.
_STRUCTURED_FIELDS: tuple[str, ...] = ("request", "backends")


class JSONFormatter(logging.Formatter):
    """Format log records as single-line JSON."""

    def format(self, record: logging.LogRecord) -> str:
        """Render *record* as a single JSON line."""
        payload: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        request_data = getattr(record, "request", None)
        if isinstance(request_data, dict) and request_data.get("correlation_id"):
            payload["correlation_id"] = request_data["correlation_id"]

        for field in _STRUCTURED_FIELDS:
            value = getattr(record, field, None)
            if value is not None:
                payload[field] = value

        if record.exc_info and record.exc_info[0] is not None:
            payload["exc_info"] = "".join(traceback.format_exception(*record.exc_info))

        return json.dumps(payload, default=str, ensure_ascii=False)


def configure_structured_logging(level: int = logging.INFO) -> None:
    """Replace the root handlers with a single JSON-formatting stream handler."""
    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    handler = logging.StreamHandler()
    handler.setFormatter(JSONFormatter())
    root_logger.addHandler(handler)
    root_logger.setLevel(level)
