"""Structured logging helpers with request correlation."""

from __future__ import annotations

import contextvars
import logging
from uuid import uuid4

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] [req:%(request_id)s] %(message)s"

_request_id: contextvars.ContextVar[str] = contextvars.ContextVar("request_id", default="-")


class RequestIdFilter(logging.Filter):
    """Inject request_id into log records."""

    def filter(self, record: logging.LogRecord) -> bool:  # noqa: D401 - standard filter
        record.request_id = _request_id.get("-")
        return True


def set_request_id(value: str | None = None) -> str:
    """Set (or generate) the current request id for logging."""
    request_id = value or str(uuid4())
    _request_id.set(request_id)
    return request_id


def get_request_id() -> str:
    """Get the current request id (or '-' if unset)."""
    return _request_id.get("-")


def _install(handler: logging.Handler, formatter: logging.Formatter) -> None:
    if not any(isinstance(f, RequestIdFilter) for f in handler.filters):
        handler.addFilter(RequestIdFilter())
    handler.setFormatter(formatter)


def configure_logging(level: str = "INFO") -> None:
    """
    Attach the request id filter and format to root and uvicorn handlers.

    Safe to call more than once. MRZ text, names and image data must never
    be passed to these loggers; log formats, counts and codes instead.
    """
    root = logging.getLogger()
    if not root.handlers:
        logging.basicConfig(level=level.upper())
    else:
        root.setLevel(level.upper())

    formatter = logging.Formatter(LOG_FORMAT)

    for handler in root.handlers:
        _install(handler, formatter)

    for name in ("uvicorn", "uvicorn.error", "uvicorn.access"):
        for handler in logging.getLogger(name).handlers:
            _install(handler, formatter)
