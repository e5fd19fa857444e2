"""Request ID logging context.

Every log line written while an HTTP request is being handled carries that
request's id, so one submission can be followed from the route through
persistence to the post-commit notification. Outside a request the id is
``"-"``.

Usage:
    token = bind_request_id("req-abc123")
    try:
        logger.info("Processing request")  # [req-abc123] Processing request
    finally:
        reset_request_id(token)
"""

import logging
from contextvars import ContextVar, Token
from typing import Iterable, Optional

NO_REQUEST_ID = "-"

_request_id: ContextVar[str] = ContextVar("request_id", default=NO_REQUEST_ID)


def bind_request_id(request_id: str) -> Token:
    """Set the id for the current context; pass the token to reset_request_id."""
    return _request_id.set(request_id)


def reset_request_id(token: Token) -> None:
    _request_id.reset(token)


def get_request_id() -> str:
    return _request_id.get()


class RequestIdFilter(logging.Filter):
    """Adds ``request_id`` to each record so formats can use ``%(request_id)s``."""

    def filter(self, record: logging.LogRecord) -> bool:
        if not hasattr(record, "request_id"):
            record.request_id = _request_id.get()  # type: ignore[attr-defined]
        return True


def install_request_id_filter(handlers: Optional[Iterable[logging.Handler]] = None) -> None:
    """Attach the filter to the given handlers (default: the root logger's).

    Filters go on handlers rather than loggers because logger filters are
    skipped for records propagated from child loggers.
    """
    for handler in handlers if handlers is not None else logging.getLogger().handlers:
        if not any(isinstance(f, RequestIdFilter) for f in handler.filters):
            handler.addFilter(RequestIdFilter())
