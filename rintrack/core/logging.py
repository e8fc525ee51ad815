import json
import logging
import logging.config
from datetime import datetime, timezone
from typing import Any, Optional

from rintrack.core.context import get_request_id, get_subject
from rintrack.core.settings import settings

AUDIT_LOGGER = "rintrack.audit"
_SERVER_LOGGERS = ("uvicorn", "uvicorn.error", "uvicorn.access")


class RequestContextFilter(logging.Filter):
    """Stamp each record with the current request id and verified subject."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.request_id = get_request_id()
        record.subject = get_subject()
        return True


class JsonFormatter(logging.Formatter):
    """One JSON object per line; ``stream`` separates audit from operational logs."""

    def __init__(self, stream_label: str = "transactional") -> None:
        super().__init__()
        self.stream_label = stream_label

    def format(self, record: logging.LogRecord) -> str:
        entry: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "stream": self.stream_label,
            "request_id": getattr(record, "request_id", "-"),
            "subject": getattr(record, "subject", "-"),
            "message": record.getMessage(),
        }
        event = getattr(record, "event", None)
        if event:
            entry["event"] = event
        if record.exc_info:
            entry["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(entry, default=str)


def _stdout_handler(formatter: str, level: str) -> dict[str, Any]:
    return {
        "class": "logging.StreamHandler",
        "level": level,
        "formatter": formatter,
        "filters": ["request_context"],
        "stream": "ext://sys.stdout",
    }


def build_logging_config(level: str) -> dict[str, Any]:
    loggers: dict[str, Any] = {
        "": {"handlers": ["default"], "level": level, "propagate": False},
        AUDIT_LOGGER: {"handlers": ["audit"], "level": level, "propagate": False},
    }
    for name in _SERVER_LOGGERS:
        loggers[name] = {"handlers": ["default"], "level": level, "propagate": False}
    return {
        "version": 1,
        "disable_existing_loggers": False,
        "filters": {"request_context": {"()": RequestContextFilter}},
        "formatters": {
            "json": {"()": JsonFormatter, "stream_label": "transactional"},
            "audit_json": {"()": JsonFormatter, "stream_label": "audit"},
        },
        "handlers": {
            "default": _stdout_handler("json", level),
            "audit": _stdout_handler("audit_json", level),
        },
        "loggers": loggers,
    }


def configure_logging(level: Optional[str] = None) -> None:
    logging.config.dictConfig(build_logging_config((level or settings.log_level).upper()))
    logging.getLogger(__name__).info(
        "Logging configured for environment=%s", settings.environment
    )


def get_audit_logger() -> logging.Logger:
    return logging.getLogger(AUDIT_LOGGER)


def audit(event: str, message: str, *args) -> None:
    """Emit an audit record tagged with a stable event name."""
    get_audit_logger().info(message, *args, extra={"event": event})
