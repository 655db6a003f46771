"""Clicked button detection."""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any, TypedDict

from starlette.responses import Response

from framekit.core.buttons import parse_button_information_from_target_url
from framekit.core.types import (
    ButtonInformation,
    FramesMiddleware,
    NextFunction,
    is_frame_redirect,
)

logger = logging.getLogger(__name__)


class ClickedButtonContext(TypedDict):
    # Button clicked on the previous frame, ``None`` on the initial request
    clicked_button: ButtonInformation | None


def _is_redirect_result(result: Any) -> bool:
    if isinstance(result, Response):
        return 300 <= result.status_code <= 399
    return is_frame_redirect(result)


def clicked_button_parser() -> FramesMiddleware:
    """Decode the clicked button from the current URL on POST requests.

    A ``post_redirect`` click answered with anything but a redirect (or a
    ``post`` click answered with a redirect) only logs a warning.
    """

    async def middleware(context: Mapping[str, Any], next_: NextFunction) -> Any:
        if context["request"].method != "POST":
            return await next_({"clicked_button": None})

        clicked_button = parse_button_information_from_target_url(context["url"])
        result = await next_({"clicked_button": clicked_button})

        if clicked_button is None or result is None:
            return result

        if clicked_button.action == "post_redirect" and not _is_redirect_result(result):
            logger.warning(
                "The clicked button action was post_redirect, but the response was not a redirect"
            )
        elif clicked_button.action == "post" and _is_redirect_result(result):
            logger.warning(
                "The clicked button action was post, but the response was not a frame definition"
            )
        return result

    return middleware


__all__ = ["ClickedButtonContext", "clicked_button_parser"]
