"""Response negotiation.

The outermost built-in middleware. It runs the rest of the pipeline, then
turns the result into a Starlette response:

- a ``Response`` returned by a handler is passed through;
- a redirect becomes a 3xx with ``Location``;
- a frame definition is resolved and rendered as HTML meta tags, or as the
  flattened JSON document when the request ``Accept`` header asks for it.

Errors raised anywhere in the pipeline become 500 responses. Messages of
framekit errors are exposed, anything else is logged and hidden.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any

from starlette.responses import HTMLResponse, JSONResponse, PlainTextResponse, Response

from framekit.core.errors import FramesError
from framekit.core.types import (
    FramesMiddleware,
    NextFunction,
    as_frame_definition,
    as_frame_redirect,
    is_frame_definition,
    is_frame_redirect,
)
from framekit.render.metatags import get_frame_flattened, get_frame_html
from framekit.render.resolver import resolve_frame

logger = logging.getLogger(__name__)

FRAMES_META_TAGS_ACCEPT = "application/framekit+metatags"

INTERNAL_SERVER_ERROR = "Internal Server Error"


def wants_flattened_json(request: Any) -> bool:
    return request.headers.get("accept") == FRAMES_META_TAGS_ACCEPT


def error_response(message: str, *, as_json: bool, status_code: int = 500) -> Response:
    headers = {"Cache-Control": "no-store"}
    if as_json:
        return JSONResponse({"error": message}, status_code=status_code, headers=headers)
    return PlainTextResponse(message, status_code=status_code, headers=headers)


def _redirect_response(result: Any) -> Response:
    redirect = as_frame_redirect(result)
    headers = dict(redirect.headers)
    headers["Location"] = redirect.location
    return Response(status_code=redirect.status, headers=headers)


def render_response() -> FramesMiddleware:
    async def middleware(context: Mapping[str, Any], next_: NextFunction) -> Any:
        as_json = wants_flattened_json(context["request"])

        try:
            result = await next_()
        except FramesError as e:
            logger.error("Frame request failed: %s", e)
            return error_response(str(e), as_json=as_json)
        except Exception:
            logger.exception("Unhandled error in frames pipeline")
            return error_response(INTERNAL_SERVER_ERROR, as_json=as_json)

        if result is None:
            return error_response("Handler did not return a response", as_json=as_json)

        if isinstance(result, Response):
            return result

        if is_frame_redirect(result):
            return _redirect_response(result)

        if not is_frame_definition(result):
            logger.error("Handler returned an unsupported result: %r", type(result).__name__)
            return error_response(INTERNAL_SERVER_ERROR, as_json=as_json)

        try:
            frame = resolve_frame(result, context)
        except FramesError as e:
            logger.error("Invalid frame definition: %s", e)
            return error_response(str(e), as_json=as_json)

        definition = as_frame_definition(result)
        headers = dict(definition.headers)
        if as_json:
            return JSONResponse(
                get_frame_flattened(frame), status_code=definition.status, headers=headers
            )
        return HTMLResponse(get_frame_html(frame), status_code=definition.status, headers=headers)

    return middleware


__all__ = [
    "FRAMES_META_TAGS_ACCEPT",
    "error_response",
    "render_response",
    "wants_flattened_json",
]
