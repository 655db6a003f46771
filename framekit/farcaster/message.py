"""Frame action payload parsing.

A button click arrives as::

    {"untrustedData": {...}, "trustedData": {"messageBytes": "<hex>"}}

``untrustedData`` is a plaintext convenience mirror and is never trusted. The
``messageBytes`` envelope is decoded here and, when a hub is available,
forwarded to it for signature validation.
"""

from __future__ import annotations

import json
import logging
import threading
from dataclasses import dataclass, replace
from typing import Any

from google.protobuf.message import DecodeError
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from framekit.core.errors import InvalidFrameEnvelopeError
from framekit.core.types import JsonValue
from framekit.farcaster.hub import HubService, UserData
from framekit.farcaster.protobufs import Message, MessageData

logger = logging.getLogger(__name__)


class TrustedData(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="allow")

    message_bytes: str = Field(alias="messageBytes")


class UntrustedData(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="allow")

    fid: int | None = None
    url: str | None = None
    message_hash: str | None = Field(default=None, alias="messageHash")
    timestamp: int | None = None
    network: int | None = None
    button_index: int | None = Field(default=None, alias="buttonIndex")
    input_text: str | None = Field(default=None, alias="inputText")
    state: str | None = None
    transaction_id: str | None = Field(default=None, alias="transactionId")
    address: str | None = None
    cast_id: dict[str, Any] | None = Field(default=None, alias="castId")


class FrameActionPayload(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="allow")

    trusted_data: TrustedData = Field(alias="trustedData")
    untrusted_data: UntrustedData = Field(alias="untrustedData")


@dataclass(frozen=True, slots=True)
class CastId:
    fid: int
    hash: str


@dataclass(frozen=True, slots=True)
class FrameMessage:
    """Normalized view of a signed frame action.

    Fields come from the decoded envelope. ``is_valid`` is true only when the
    hub confirmed the signature and the message type.
    """

    requester_fid: int
    button_index: int
    is_valid: bool = False
    input_text: str | None = None
    cast_id: CastId | None = None
    url: str | None = None
    state: JsonValue = None
    transaction_id: str | None = None
    address: str | None = None
    # Hub context, only filled by the hub context middleware
    requester_follows_caster: bool | None = None
    caster_follows_requester: bool | None = None
    liked_cast: bool | None = None
    recasted_cast: bool | None = None
    requester_verified_addresses: tuple[str, ...] = ()
    requester_user_data: UserData | None = None

    def with_hub_context(self, **values: Any) -> FrameMessage:
        return replace(self, **values)


def parse_frame_action_payload(body: bytes | str | None) -> FrameActionPayload | None:
    """Return the frame action payload carried by ``body`` or ``None``.

    A body that is not JSON or lacks ``trustedData``/``untrustedData`` means
    there is no action, which is not an error.
    """
    if not body:
        return None
    try:
        data = json.loads(body)
    except (ValueError, UnicodeDecodeError):
        logger.debug("Request body is not JSON, no frame action")
        return None
    if not isinstance(data, dict) or "trustedData" not in data or "untrustedData" not in data:
        logger.debug("Request body is not a frame action payload")
        return None
    try:
        return FrameActionPayload.model_validate(data)
    except ValidationError as e:
        logger.debug("Invalid frame action payload: %s", e)
        return None


def _hex_to_bytes(message_bytes: str) -> bytes:
    raw = message_bytes[2:] if message_bytes.startswith("0x") else message_bytes
    try:
        return bytes.fromhex(raw)
    except ValueError as e:
        raise InvalidFrameEnvelopeError(f"Could not decode frame message bytes: {e}") from e


def decode_envelope(raw: bytes) -> Any:
    """Decode a serialized ``Message``, unpacking ``data_bytes`` when present.

    Raises:
        InvalidFrameEnvelopeError: If protobuf decoding fails or there is no data
    """
    try:
        envelope = Message.FromString(raw)
    except DecodeError as e:
        raise InvalidFrameEnvelopeError(f"Could not decode frame message bytes: {e}") from e

    if envelope.data_bytes:
        try:
            data = MessageData.FromString(envelope.data_bytes)
        except DecodeError as e:
            raise InvalidFrameEnvelopeError(f"Could not decode frame message data: {e}") from e
        envelope.data.CopyFrom(data)

    if not envelope.HasField("data"):
        raise InvalidFrameEnvelopeError("Frame message has no data")
    return envelope


def decode_message_bytes(message_bytes: str) -> Any:
    """Decode the hex ``messageBytes`` envelope into a ``Message``."""
    return decode_envelope(_hex_to_bytes(message_bytes))


def _hex(value: bytes) -> str | None:
    return "0x" + value.hex() if value else None


def _utf8(value: bytes) -> str | None:
    return value.decode("utf-8", errors="replace") if value else None


def _parse_state(raw: bytes) -> JsonValue:
    if not raw:
        return None
    try:
        return json.loads(raw.decode("utf-8"))
    except (ValueError, UnicodeDecodeError):
        logger.warning(
            "Failed to parse state from frame message, was it produced by this frame server?"
        )
        return None


def frame_message_from_envelope(envelope: Any, *, is_valid: bool = False) -> FrameMessage:
    data = envelope.data
    body = data.frame_action_body
    cast_id = None
    if body.HasField("cast_id"):
        cast_id = CastId(fid=int(body.cast_id.fid), hash=_hex(body.cast_id.hash) or "0x")
    return FrameMessage(
        requester_fid=int(data.fid),
        button_index=int(body.button_index),
        is_valid=is_valid,
        input_text=_utf8(body.input_text),
        cast_id=cast_id,
        url=_utf8(body.url),
        state=_parse_state(body.state),
        transaction_id=_hex(body.transaction_id),
        address=_hex(body.address),
    )


async def get_frame_message(
    payload: FrameActionPayload,
    *,
    hub: HubService | None = None,
    validate: bool = True,
    abort_event: threading.Event | None = None,
) -> FrameMessage:
    """Decode ``payload`` and validate it against ``hub``.

    Raises:
        InvalidFrameEnvelopeError: If ``messageBytes`` cannot be decoded
    """
    raw = _hex_to_bytes(payload.trusted_data.message_bytes)
    envelope = decode_envelope(raw)

    is_valid = False
    if validate and hub is not None:
        result = await hub.validate_message(raw, abort_event=abort_event)
        is_valid = result.is_frame_action
        if not is_valid:
            logger.warning(
                "Hub did not validate frame message from fid=%s (valid=%s)",
                envelope.data.fid,
                result.valid,
            )
    else:
        logger.debug("Frame message validation skipped, no hub configured")

    return frame_message_from_envelope(envelope, is_valid=is_valid)


__all__ = [
    "CastId",
    "FrameActionPayload",
    "FrameMessage",
    "TrustedData",
    "UntrustedData",
    "decode_envelope",
    "decode_message_bytes",
    "frame_message_from_envelope",
    "get_frame_message",
    "parse_frame_action_payload",
]
