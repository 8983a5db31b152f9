import json
import logging
import logging.config
from datetime import datetime, timezone
from typing import Any, Optional

from app.core.context import get_actor_id, get_request_id
from app.core.settings import settings

AUDIT_LOGGER = "app.audit"
REQUEST_LOGGER = "app.request"

# stream label -> loggers routed to that stream's handler
_STREAMS: dict[str, tuple[str, ...]] = {
    "transactional": ("", "uvicorn", "uvicorn.error"),
    "audit": (AUDIT_LOGGER,),
    "access": (REQUEST_LOGGER, "uvicorn.access"),
}


class RequestContextFilter(logging.Filter):
    """Stamp records with the ids bound to the current request."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.actor_id = get_actor_id()
        record.request_id = get_request_id()
        return True


class JsonFormatter(logging.Formatter):
    """One JSON object per line; ``extra={"event": {...}}`` is carried through verbatim."""

    def __init__(self, stream_label: str = "transactional") -> None:
        super().__init__()
        self.stream_label = stream_label

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "stream": self.stream_label,
            "message": record.getMessage(),
            "request_id": getattr(record, "request_id", "-"),
            "actor_id": getattr(record, "actor_id", "-"),
        }
        event = getattr(record, "event", None)
        if isinstance(event, dict):
            payload["event"] = event
        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(payload, default=str)


def _logging_config(log_level: str) -> dict[str, Any]:
    formatters = {
        f"json_{stream}": {"()": JsonFormatter, "stream_label": stream} for stream in _STREAMS
    }
    handlers = {
        stream: {
            "class": "logging.StreamHandler",
            "level": log_level,
            "formatter": f"json_{stream}",
            "filters": ["request_context"],
            "stream": "ext://sys.stdout",
        }
        for stream in _STREAMS
    }
    loggers = {
        name: {"handlers": [stream], "level": log_level, "propagate": False}
        for stream, names in _STREAMS.items()
        for name in names
    }
    return {
        "version": 1,
        "disable_existing_loggers": False,
        "filters": {"request_context": {"()": RequestContextFilter}},
        "formatters": formatters,
        "handlers": handlers,
        "loggers": loggers,
    }


def configure_logging(level: Optional[str] = None) -> None:
    log_level = (level or settings.log_level).upper()
    logging.config.dictConfig(_logging_config(log_level))
    logging.getLogger(__name__).info(
        "Logging configured for environment=%s storage_backend=%s",
        settings.environment,
        settings.storage_backend,
    )


def get_audit_logger() -> logging.Logger:
    return logging.getLogger(AUDIT_LOGGER)
