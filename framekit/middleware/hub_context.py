"""Hub context enrichment for frame messages.

Adds follow, reaction, verified address and user data lookups for the
requester to ``context["message"]``. Lookups run concurrently against the
hub; the middleware must be placed after message parsing.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Mapping
from typing import Any

from framekit.core.types import FramesMiddleware, NextFunction
from framekit.farcaster.hub import HubContextService
from framekit.farcaster.message import FrameMessage
from framekit.middleware.concurrent import gather_cancelling

logger = logging.getLogger(__name__)

REACTION_TYPE_LIKE = 1
REACTION_TYPE_RECAST = 2


async def _false() -> bool:
    return False


async def fetch_hub_context(
    hub: HubContextService,
    message: FrameMessage,
    *,
    abort_event: threading.Event | None = None,
) -> FrameMessage:
    fid = message.requester_fid
    cast_id = message.cast_id

    if cast_id is not None:
        follows_caster = hub.is_following(fid, cast_id.fid, abort_event=abort_event)
        caster_follows = hub.is_following(cast_id.fid, fid, abort_event=abort_event)
        liked = hub.has_reacted(
            fid, REACTION_TYPE_LIKE, cast_id.fid, cast_id.hash, abort_event=abort_event
        )
        recasted = hub.has_reacted(
            fid, REACTION_TYPE_RECAST, cast_id.fid, cast_id.hash, abort_event=abort_event
        )
    else:
        follows_caster, caster_follows, liked, recasted = _false(), _false(), _false(), _false()

    (
        requester_follows_caster,
        caster_follows_requester,
        liked_cast,
        recasted_cast,
        addresses,
        user_data,
    ) = await gather_cancelling(
        follows_caster,
        caster_follows,
        liked,
        recasted,
        hub.get_verified_addresses(fid, abort_event=abort_event),
        hub.get_user_data(fid, abort_event=abort_event),
    )

    return message.with_hub_context(
        requester_follows_caster=requester_follows_caster,
        caster_follows_requester=caster_follows_requester,
        liked_cast=liked_cast,
        recasted_cast=recasted_cast,
        requester_verified_addresses=tuple(addresses),
        requester_user_data=user_data,
    )


def hub_context_middleware(hub: HubContextService | None = None) -> FramesMiddleware:
    """Enrich the frame message with hub context.

    ``hub`` defaults to the hub configured on the frames pipeline.
    """

    async def middleware(context: Mapping[str, Any], next_: NextFunction) -> Any:
        message = context.get("message")
        if message is None:
            return await next_()

        service = hub
        if service is None:
            config = context.get("config")
            service = config.hub if config is not None else None
        if service is None:
            logger.debug("No hub configured, skipping hub context")
            return await next_()

        enriched = await fetch_hub_context(
            service, message, abort_event=context.get("abort_event")
        )
        return await next_({"message": enriched})

    return middleware


__all__ = [
    "REACTION_TYPE_LIKE",
    "REACTION_TYPE_RECAST",
    "fetch_hub_context",
    "hub_context_middleware",
]
