"""Request dispatching.

:func:`create_frames` binds a :class:`~framekit.config.FramesConfig` and the
global middlewares, and returns a factory turning a frame handler into a
Starlette endpoint. Each request runs through::

    render_response -> clicked_button_parser -> parse_frames_message
      -> global middlewares -> state_middleware -> per-route middlewares
      -> handler

The pipeline runs as a task watched for client disconnects. On disconnect the
context ``abort_event`` is set and the task is cancelled. Hub calls already
running in worker threads see the event and make no further attempts.
"""

from __future__ import annotations

import asyncio
import inspect
import logging
import threading
from collections.abc import Awaitable, Callable, Mapping, Sequence
from contextlib import suppress
from typing import Any
from urllib.parse import urlsplit, urlunsplit

from starlette.requests import Request
from starlette.responses import Response

from framekit.config import FramesConfig
from framekit.core.buttons import parse_search_params, resolve_base_url
from framekit.core.compose import compose_middleware
from framekit.core.logging import open_requester_fid_slot, requester_fid_ctx_var
from framekit.core.types import FrameHandler, FramesContext, FramesMiddleware, NextFunction
from framekit.middleware.clicked_button import clicked_button_parser
from framekit.middleware.parse_message import parse_frames_message
from framekit.middleware.render_response import render_response
from framekit.middleware.state import state_middleware

logger = logging.getLogger(__name__)

# Status used when the client went away before a response was produced
CLIENT_CLOSED_REQUEST = 499
DISCONNECT_POLL_INTERVAL = 0.1

FramesEndpoint = Callable[[Request], Awaitable[Response]]


def _handler_middleware(handler: FrameHandler) -> FramesMiddleware:
    async def call_handler(context: Mapping[str, Any], next_: NextFunction) -> Any:
        result = handler(context)
        if inspect.isawaitable(result):
            result = await result
        return result

    return call_handler


def current_url(request: Request, base_url: str | None) -> str:
    """Request URL, re-rooted on the origin of ``base_url`` when configured."""
    url = str(request.url)
    if not base_url:
        return url
    origin = urlsplit(base_url)
    parts = urlsplit(url)
    return urlunsplit((origin.scheme, origin.netloc, parts.path, parts.query, ""))


def build_context(request: Request, config: FramesConfig) -> FramesContext:
    url = current_url(request, config.base_url)
    return {
        "request": request,
        "url": url,
        "base_url": resolve_base_url(url, config.base_url, config.base_path),
        "base_path": config.base_path,
        "search_params": parse_search_params(url),
        "initial_state": config.initial_state,
        "state": config.initial_state,
        "clicked_button": None,
        "message": None,
        "debug": config.debug,
        "abort_event": threading.Event(),
        "config": config,
    }


async def _run_until_disconnect(
    request: Request,
    pipeline: Awaitable[Any],
    abort_event: threading.Event,
) -> Any:
    task = asyncio.ensure_future(pipeline)
    try:
        while True:
            done, _ = await asyncio.wait({task}, timeout=DISCONNECT_POLL_INTERVAL)
            if done:
                return task.result()
            if await request.is_disconnected():
                logger.info("Client disconnected, aborting frame request %s", request.url.path)
                abort_event.set()
                task.cancel()
                with suppress(asyncio.CancelledError):
                    await task
                return Response(status_code=CLIENT_CLOSED_REQUEST)
    finally:
        if not task.done():
            task.cancel()


def create_frames(
    config: FramesConfig | None = None,
    *,
    middleware: Sequence[FramesMiddleware] = (),
) -> Callable[..., FramesEndpoint]:
    """Return a factory binding frame handlers to ``config``.

    Usage::

        frames = create_frames(FramesConfig(base_path="/frames"))

        async def home(ctx):
            return FrameDefinition(image="https://example.com/a.png", buttons=[Button("Next")])

        endpoint = frames(home)
    """
    frames_config = config or FramesConfig()
    global_middleware = list(middleware)

    def create_frames_handler(
        handler: FrameHandler,
        *,
        middleware: Sequence[FramesMiddleware] = (),
    ) -> FramesEndpoint:
        composed = compose_middleware(
            [
                render_response(),
                clicked_button_parser(),
                parse_frames_message(),
                *global_middleware,
                state_middleware(),
                *middleware,
                _handler_middleware(handler),
            ]
        )

        async def handle_frames_request(request: Request) -> Response:
            # Body is read up front so the disconnect watch never competes for it
            await request.body()

            context = build_context(request, frames_config)
            logger.debug("Frame request %s %s", request.method, context["url"])

            fid_token = open_requester_fid_slot()
            try:
                result = await _run_until_disconnect(
                    request, composed(context), context["abort_event"]
                )
                if not isinstance(result, Response):
                    raise RuntimeError(
                        "The outermost middleware must return a Response, got "
                        f"{type(result).__name__}"
                    )
                logger.debug("Frame request finished with status %d", result.status_code)
                return result
            finally:
                if fid_token is not None:
                    requester_fid_ctx_var.reset(fid_token)

        return handle_frames_request

    return create_frames_handler


__all__ = [
    "CLIENT_CLOSED_REQUEST",
    "FramesEndpoint",
    "build_context",
    "create_frames",
    "current_url",
]
