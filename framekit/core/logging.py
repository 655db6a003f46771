"""Logging configuration for frames servers.

Log records carry two request-scoped fields, both injected by
:class:`FrameLogFilter` from context variables:

- ``request_id``, set per HTTP request by :class:`RequestIdMiddleware`;
- ``fid``, the requester FID, bound once a frame message has been parsed.

Output is key-value formatted so dropped button state, rejected messages and
oversize post URLs can be traced back to the request and user that caused
them.
"""

from __future__ import annotations

import logging
import logging.config
import os
import uuid
from contextvars import ContextVar, Token
from typing import Any

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request

REQUEST_ID_HEADER = "X-Request-ID"

request_id_ctx_var: ContextVar[str | None] = ContextVar("request_id", default=None)
# Mutable per-request slot: tasks spawned for the request copy the context but
# share the slot, so a fid bound inside the frames pipeline reaches every
# later log line of the request
requester_fid_ctx_var: ContextVar[dict[str, int] | None] = ContextVar("requester_fid", default=None)


class FrameLogFilter(logging.Filter):
    """Inject request id and requester fid into log records."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.request_id = request_id_ctx_var.get() or "-"
        fid = get_requester_fid()
        record.fid = fid if fid is not None else "-"
        return True


def open_requester_fid_slot() -> Token[dict[str, int] | None] | None:
    """Open the fid slot of the current request unless one is already open.

    Returns the token to reset, or ``None`` when an outer layer owns the slot.
    """
    if requester_fid_ctx_var.get() is not None:
        return None
    return requester_fid_ctx_var.set({})


def get_requester_fid() -> int | None:
    slot = requester_fid_ctx_var.get()
    return slot.get("fid") if slot else None


def bind_requester_fid(fid: int | None) -> None:
    """Attach ``fid`` to every following log record of the current request."""
    slot = requester_fid_ctx_var.get()
    if slot is None:
        slot = {}
        requester_fid_ctx_var.set(slot)
    if fid is None:
        slot.pop("fid", None)
    else:
        slot["fid"] = fid


def _build_config(log_level: str) -> dict[str, Any]:
    return {
        "version": 1,
        "disable_existing_loggers": False,
        "filters": {"frame_context": {"()": FrameLogFilter}},
        "formatters": {
            "kv": {
                "format": (
                    "level=%(levelname)s logger=%(name)s request_id=%(request_id)s "
                    "fid=%(fid)s message=%(message)s"
                )
            }
        },
        "handlers": {
            "default": {
                "class": "logging.StreamHandler",
                "stream": "ext://sys.stdout",
                "formatter": "kv",
                "filters": ["frame_context"],
                "level": log_level,
            }
        },
        "loggers": {
            "framekit": {"level": log_level},
            # Per-attempt connection logs from the hub client are noise
            "urllib3": {"level": "WARNING"},
        },
        "root": {"handlers": ["default"], "level": log_level},
    }


def setup_logging(level: str | None = None) -> None:
    """Configure root logging; ``LOG_LEVEL`` applies unless ``level`` is given."""
    log_level = (level or os.getenv("LOG_LEVEL", "INFO")).upper()
    logging.config.dictConfig(_build_config(log_level))


class RequestIdMiddleware(BaseHTTPMiddleware):
    """Assign a request id to every request and echo it back.

    An incoming ``X-Request-ID`` header is reused, otherwise a UUID4 is
    generated. Each request gets a fresh requester fid slot.
    """

    async def dispatch(self, request: Request, call_next):  # type: ignore[no-untyped-def]
        request_id = request.headers.get(REQUEST_ID_HEADER) or str(uuid.uuid4())
        request_token = request_id_ctx_var.set(request_id)
        fid_token = requester_fid_ctx_var.set({})
        try:
            response = await call_next(request)
            response.headers[REQUEST_ID_HEADER] = request_id
            return response
        finally:
            requester_fid_ctx_var.reset(fid_token)
            request_id_ctx_var.reset(request_token)


__all__ = [
    "FrameLogFilter",
    "REQUEST_ID_HEADER",
    "RequestIdMiddleware",
    "bind_requester_fid",
    "get_requester_fid",
    "open_requester_fid_slot",
    "request_id_ctx_var",
    "requester_fid_ctx_var",
    "setup_logging",
]
