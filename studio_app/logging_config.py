"""JSON logging for the Garment Studio orchestrator.

Every line carries the request correlation id and, inside a workflow call,
the session id. Avatar photos, garment URLs and credentials are masked before
they reach a handler.
"""

from __future__ import annotations

import contextlib
import contextvars
import json
import logging
import os
import re
import time
import uuid
from typing import Any, Dict, Iterator

SERVICE_NAME = "garment-studio"

CORRELATION_ID = contextvars.ContextVar("correlation_id", default=None)
SESSION_ID = contextvars.ContextVar("session_id", default=None)

# Attributes every LogRecord has; anything else on a record came from ``extra``.
_RECORD_ATTRIBUTES = set(vars(logging.LogRecord("", 0, "", 0, "", None, None))) | {"message", "asctime", "taskName"}
_REDACTED_FIELDS = {
    "user_id",
    "email",
    "api_key",
    "authorization",
    "avatar_image",
    "avatar_url",
    "original_url",
    "description",
}
_EMAIL_PATTERN = re.compile(r"[\w.\-]+@[\w.\-]+\.\w+")
_CHATTY_LIBRARIES = ("urllib3", "httpx", "uvicorn.access")

_TRACE_LOGGER = logging.getLogger("garment_studio.trace")


class JsonFormatter(logging.Formatter):
    """One JSON object per record: level, event, ids, then the scrubbed extras."""

    def format(self, record: logging.LogRecord) -> str:  # noqa: D401
        text = super().format(record)
        payload: Dict[str, Any] = {
            "timestamp": self.formatTime(record, datefmt="%Y-%m-%dT%H:%M:%S%z"),
            "level": record.levelname,
            "service": SERVICE_NAME,
            "logger": record.name,
            "message": text,
            "event": getattr(record, "event", record.getMessage()),
            "correlation_id": getattr(record, "correlation_id", None) or CORRELATION_ID.get(),
        }
        session_id = getattr(record, "session_id", None) or SESSION_ID.get()
        if session_id:
            payload["session_id"] = session_id

        for key, value in vars(record).items():
            if key in _RECORD_ATTRIBUTES or key in payload:
                continue
            payload[key] = redact_for_log(value)
        return json.dumps(payload, default=str)


def configure_logging(level: int | str | None = None) -> None:
    """Send JSON lines to stderr at ``LOG_LEVEL`` and quiet the HTTP libraries."""

    desired_level = level or os.getenv("LOG_LEVEL", "INFO")
    logging.root.handlers.clear()
    handler = logging.StreamHandler()
    handler.setFormatter(JsonFormatter())
    logging.basicConfig(level=desired_level, handlers=[handler])
    for name in _CHATTY_LIBRARIES:
        logging.getLogger(name).setLevel(logging.WARNING)


def _redact_string(value: str) -> str:
    if _EMAIL_PATTERN.search(value):
        return _EMAIL_PATTERN.sub("[redacted-email]", value)
    lowered = value.lower()
    if lowered.startswith("data:"):
        return f"[redacted-data-uri len={len(value)}]"
    if lowered.startswith("http"):
        return "[redacted-url]"
    return value


def redact_for_log(payload: Any) -> Any:
    """Scrub credentials, user ids and image references at any depth."""

    if payload is None or isinstance(payload, (bool, int, float)):
        return payload
    if isinstance(payload, str):
        return _redact_string(payload)
    if isinstance(payload, (list, tuple, set)):
        return [redact_for_log(item) for item in payload]
    if isinstance(payload, dict):
        return {
            key: "[redacted]" if str(key).lower() in _REDACTED_FIELDS else redact_for_log(value)
            for key, value in payload.items()
        }
    return str(payload)


def get_logger(name: str) -> logging.Logger:
    if not logging.getLogger().handlers:
        configure_logging()
    return logging.getLogger(name)


def ensure_correlation_id(correlation_id: str | None = None) -> str:
    """Adopt ``correlation_id``, keep the current one, or mint a new one."""

    if correlation_id:
        CORRELATION_ID.set(correlation_id)
        return correlation_id
    current = CORRELATION_ID.get()
    if current:
        return current
    minted = uuid.uuid4().hex
    CORRELATION_ID.set(minted)
    return minted


@contextlib.contextmanager
def correlation_context(correlation_id: str | None = None) -> Iterator[str]:
    token = CORRELATION_ID.set(correlation_id or ensure_correlation_id())
    try:
        yield CORRELATION_ID.get()
    finally:
        CORRELATION_ID.reset(token)


@contextlib.contextmanager
def session_context(session_id: str | None) -> Iterator[str | None]:
    """Tag every record logged inside the block with the workflow session id."""

    token = SESSION_ID.set(session_id or SESSION_ID.get())
    try:
        yield SESSION_ID.get()
    finally:
        SESSION_ID.reset(token)


@contextlib.contextmanager
def tracing_span(name: str, **attributes: Any) -> Iterator[Dict[str, Any]]:
    """Time the block and log it as ``span_finished`` at debug level."""

    span: Dict[str, Any] = {"name": name, "attributes": redact_for_log(attributes)}
    start = time.perf_counter()
    try:
        yield span
    finally:
        span["duration_ms"] = round((time.perf_counter() - start) * 1000, 2)
        _TRACE_LOGGER.debug("span_finished", extra={"event": "span_finished", "span": span})


def log_event(logger: logging.Logger, level: int, event: str, **fields: Any) -> None:
    """Log ``event`` with scrubbed ``fields`` as top-level JSON keys."""

    correlation_id = ensure_correlation_id(fields.pop("correlation_id", None))
    exc_info = fields.pop("exc_info", None)
    logger.log(
        level,
        event,
        exc_info=exc_info,
        extra={"event": event, "correlation_id": correlation_id, **redact_for_log(fields)},
    )


@contextlib.contextmanager
def operation_context(name: str, **attributes: Any) -> Iterator[str]:
    """Scope a correlation id, the session id when given, and a tracing span."""

    correlation_id = ensure_correlation_id(attributes.get("correlation_id"))
    with correlation_context(correlation_id) as scoped_id, session_context(
        attributes.get("session_id")
    ), tracing_span(name, **attributes):
        yield scoped_id


__all__ = [
    "SERVICE_NAME",
    "configure_logging",
    "correlation_context",
    "ensure_correlation_id",
    "get_logger",
    "log_event",
    "redact_for_log",
    "operation_context",
    "session_context",
    "tracing_span",
]
