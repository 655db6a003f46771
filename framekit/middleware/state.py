"""State extraction and serialization.

State survives frame transitions only through the client: it is rendered into
the frame (``fc:frame:state``) and comes back inside the signed frame message
on the next click. When a signing secret is configured the state is wrapped as
``{"data": <state>, "__sig": <hex hmac>}`` and verified on the way back in.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import replace
from typing import Any, TypedDict

from framekit.core.crypto import create_hmac_signature, verify_hmac_signature
from framekit.core.errors import InvalidStateSignatureError
from framekit.core.types import (
    FramesMiddleware,
    JsonValue,
    NextFunction,
    as_frame_definition,
    dump_state,
    is_frame_definition,
)

logger = logging.getLogger(__name__)

SIGNATURE_KEY = "__sig"


class StateMiddlewareContext(TypedDict):
    # State of the previous frame, or the initial state on the first request
    state: JsonValue


def _is_signed_state(value: Any) -> bool:
    return (
        isinstance(value, dict)
        and "data" in value
        and isinstance(value.get(SIGNATURE_KEY), str)
    )


def extract_state(message_state: JsonValue, initial_state: JsonValue, secret: str | None) -> JsonValue:
    """Return the state carried by a frame message.

    Signed state is verified against ``secret``; unsigned state is accepted
    as is. Without message state ``initial_state`` is returned.

    Raises:
        InvalidStateSignatureError: If the state signature does not match
    """
    if message_state is None:
        return initial_state

    if not _is_signed_state(message_state):
        return message_state

    data = message_state["data"]
    if not secret:
        logger.warning("State is signed but no secret is provided, ignoring signature verification")
        return data

    if not verify_hmac_signature(dump_state(data), message_state[SIGNATURE_KEY], secret):
        raise InvalidStateSignatureError("State signature verification failed")
    return data


def serialize_state(state: JsonValue, *, method: str, secret: str | None) -> str | None:
    if state is None:
        return None

    if method != "POST":
        logger.warning(
            "State is not supported on the initial GET request and will be ignored"
        )
        return None

    serialized = dump_state(state)
    if not secret:
        return serialized
    return dump_state({"data": state, SIGNATURE_KEY: create_hmac_signature(serialized, secret)})


def state_middleware() -> FramesMiddleware:
    """Provide ``state`` to inner layers and serialize the returned state.

    A returned frame without state keeps the incoming state.
    """

    async def middleware(context: Mapping[str, Any], next_: NextFunction) -> Any:
        config = context.get("config")
        secret = config.state_signing_secret if config is not None else None

        message = context.get("message")
        state = extract_state(
            message.state if message is not None else None,
            context.get("initial_state"),
            secret,
        )

        result = await next_({"state": state})
        if result is None or not is_frame_definition(result):
            return result

        definition = as_frame_definition(result)
        if definition.state is None and context["request"].method != "POST":
            return replace(definition, state=None)
        next_state = definition.state if definition.state is not None else state
        return replace(
            definition,
            state=serialize_state(next_state, method=context["request"].method, secret=secret),
        )

    return middleware


__all__ = [
    "SIGNATURE_KEY",
    "StateMiddlewareContext",
    "extract_state",
    "serialize_state",
    "state_middleware",
]
