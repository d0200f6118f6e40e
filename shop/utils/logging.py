"""
JSON formatter for structured logging (stdlib only).
"""
import json
import logging
from datetime import datetime, timezone

# Context keys that services and middleware pass through ``extra``
CONTEXT_FIELDS = (
    "request_id",
    "user_id",
    "order_id",
    "product_id",
    "aggregate_id",
    "session_id",
    "payment_method",
    "amount",
    "quantity",
    "count",
    "file_name",
    "operation",
    "method",
    "path",
    "status",
    "duration_ms",
    "body",
    "error",
    "error_type",
    "error_code",
)


class JsonFormatter(logging.Formatter):
    """JSON formatter for structured logging."""

    def format(self, record):
        """Format log record as JSON."""
        log_data = {
            "timestamp": datetime.now(timezone.utc).isoformat().replace("+00:00", "Z"),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
        }

        for field in CONTEXT_FIELDS:
            if hasattr(record, field):
                log_data[field] = getattr(record, field)

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_data, ensure_ascii=False, default=str)
