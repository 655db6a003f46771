"""Frame message parsing middleware."""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any, TypedDict

from framekit.core.logging import bind_requester_fid
from framekit.core.types import FRAME_VERSION, ClientProtocolId, FramesMiddleware, NextFunction
from framekit.farcaster.message import FrameMessage, get_frame_message, parse_frame_action_payload

logger = logging.getLogger(__name__)

FARCASTER_PROTOCOL = ClientProtocolId(id="farcaster", version=FRAME_VERSION)


class FramesMessageContext(TypedDict, total=False):
    message: FrameMessage | None
    client_protocol: ClientProtocolId | None


def parse_frames_message() -> FramesMiddleware:
    """Decode the signed frame action carried by a POST body.

    GET requests, bodies that are not JSON and bodies without the frame
    action shape continue with ``message=None``. Envelope decoding errors are
    raised.
    """

    async def middleware(context: Mapping[str, Any], next_: NextFunction) -> Any:
        request = context["request"]
        if request.method != "POST":
            return await next_({"message": None, "client_protocol": None})

        payload = parse_frame_action_payload(await request.body())
        if payload is None:
            return await next_({"message": None, "client_protocol": None})

        config = context.get("config")
        message = await get_frame_message(
            payload,
            hub=config.hub if config is not None else None,
            validate=config.validate_messages if config is not None else False,
            abort_event=context.get("abort_event"),
        )
        bind_requester_fid(message.requester_fid)
        logger.debug(
            "Parsed frame message button=%s valid=%s", message.button_index, message.is_valid
        )
        return await next_({"message": message, "client_protocol": FARCASTER_PROTOCOL})

    return middleware


__all__ = ["FARCASTER_PROTOCOL", "FramesMessageContext", "parse_frames_message"]
