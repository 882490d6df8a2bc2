"""
Structured logging: JSON lines on stdout, request correlation IDs and
application events.

Events produced outside a request (capture ticks run on a scheduler thread)
carry the correlation id "capture" instead of a request id.
"""

import logging
import sys
import uuid
from typing import Optional
from contextvars import ContextVar
from pythonjsonlogger.json import JsonFormatter
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request

from app.core.database import now_utc

EVENT_LOGGER = "clipdeck.events"
CORRELATION_HEADER = "X-Correlation-ID"
BACKGROUND_CORRELATION_ID = "capture"

request_id_var: ContextVar[Optional[str]] = ContextVar("request_id", default=None)


class RequestIdFilter(logging.Filter):
    def filter(self, record):
        record.correlation_id = request_id_var.get() or BACKGROUND_CORRELATION_ID
        return True


class ClipDeckJsonFormatter(JsonFormatter):
    """JSON formatter that always carries timestamp, level, logger and source."""

    def add_fields(self, log_record, record, message_dict):
        super().add_fields(log_record, record, message_dict)
        log_record["timestamp"] = now_utc().isoformat() + "Z"
        log_record["level"] = record.levelname
        log_record["logger"] = record.name
        log_record["correlation_id"] = getattr(
            record, "correlation_id", BACKGROUND_CORRELATION_ID
        )
        log_record["source"] = {
            "file": record.pathname,
            "line": record.lineno,
            "function": record.funcName,
        }


def setup_logging(level: str = "INFO") -> logging.Logger:
    """Send every logger, uvicorn's included, through one JSON stdout handler."""
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(ClipDeckJsonFormatter("%(message)s"))
    handler.addFilter(RequestIdFilter())

    root = logging.getLogger()
    root.setLevel(level)
    root.handlers = [handler]

    for name in ("uvicorn", "uvicorn.access", "uvicorn.error"):
        server_logger = logging.getLogger(name)
        server_logger.handlers = [handler]
        server_logger.propagate = False

    # APScheduler logs every job run at INFO; the capture job runs twice a second
    logging.getLogger("apscheduler").setLevel(logging.WARNING)

    event_logger = logging.getLogger(EVENT_LOGGER)
    event_logger.setLevel(logging.INFO)
    return event_logger


class CorrelationIdMiddleware(BaseHTTPMiddleware):
    """Tag each request, its log lines and its response with a correlation id."""

    async def dispatch(self, request: Request, call_next):
        request_id = request.headers.get(CORRELATION_HEADER) or uuid.uuid4().hex
        token = request_id_var.set(request_id)
        request.state.correlation_id = request_id
        try:
            response = await call_next(request)
        finally:
            request_id_var.reset(token)
        response.headers[CORRELATION_HEADER] = request_id
        return response


def log_event(
    event_type: str,
    message: str,
    level: int = logging.INFO,
    event_category: str = "clipboard",
    **fields,
):
    """
    Write one structured application event to the events logger.

    Args:
        event_type: Dotted name, e.g. "capture.accepted" or "tags.merged"
        message: Human-readable summary
        level: Logging level
        event_category: "clipboard" for data events, "system" for lifecycle
        **fields: Extra JSON fields; must not collide with LogRecord attributes
    """
    logging.getLogger(EVENT_LOGGER).log(
        level,
        message,
        extra={"event_type": event_type, "event_category": event_category, **fields},
    )
