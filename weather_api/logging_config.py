"""
JSON-lines logging for the weather proxy.
"""
import json
import logging
import logging.config
from datetime import datetime, timezone
from typing import Optional

# Extra attributes copied from a record into the JSON entry when present
CONTEXT_FIELDS = ("request_id", "location", "unit", "status", "duration_ms")

QUIET_LOGGERS = ("uvicorn.access", "uvicorn.error", "urllib3")


class JSONLineFormatter(logging.Formatter):
    """One JSON object per record, timestamped in UTC with milliseconds."""

    def formatTime(self, record: logging.LogRecord, datefmt=None) -> str:
        created = datetime.fromtimestamp(record.created, tz=timezone.utc)
        return created.strftime("%Y-%m-%dT%H:%M:%S.") + f"{int(record.msecs):03d}Z"

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "ts": self.formatTime(record),
            "level": record.levelname,
            "logger": record.name,
            "msg": record.getMessage(),
        }
        entry.update(
            (field, getattr(record, field))
            for field in CONTEXT_FIELDS
            if getattr(record, field, None) is not None
        )
        if record.exc_info:
            entry["exc"] = self.formatException(record.exc_info)
        return json.dumps(entry, ensure_ascii=False, default=str)


def setup_logging(log_level: str = "INFO") -> None:
    """Route the root logger to stdout as JSON lines; unknown levels fall back to INFO."""
    level = log_level.upper()
    if not isinstance(logging.getLevelName(level), int):
        level = "INFO"

    logging.config.dictConfig(
        {
            "version": 1,
            "disable_existing_loggers": False,
            "formatters": {"json": {"()": JSONLineFormatter}},
            "handlers": {
                "stdout": {
                    "class": "logging.StreamHandler",
                    "formatter": "json",
                    "stream": "ext://sys.stdout",
                }
            },
            "root": {"level": level, "handlers": ["stdout"]},
            "loggers": {name: {"level": "WARNING"} for name in QUIET_LOGGERS},
        }
    )


def log_lookup(
    logger: logging.Logger,
    request_id: str,
    location: str,
    unit: str,
    duration_ms: int,
    status: str,
    error: Optional[str] = None,
) -> None:
    """One summary line per weather lookup; failures are logged at WARNING."""
    message = f"weather lookup {status} in {duration_ms}ms"
    if error:
        message = f"{message} ({error})"
    logger.log(
        logging.WARNING if error else logging.INFO,
        message,
        extra={
            "request_id": request_id,
            "location": location,
            "unit": unit,
            "status": status,
            "duration_ms": duration_ms,
        },
    )
