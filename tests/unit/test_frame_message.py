import json
import logging

import pytest

from conftest import FakeHub, build_message_bytes, build_payload
from framekit.core.errors import InvalidFrameEnvelopeError
from framekit.farcaster.message import (
    CastId,
    FrameActionPayload,
    decode_message_bytes,
    get_frame_message,
    parse_frame_action_payload,
)
from framekit.farcaster.protobufs import Message, MessageData


@pytest.mark.unit
@pytest.mark.asyncio
async def test_valid_signed_message_is_normalized():
    hub = FakeHub(valid=True)
    message_bytes = build_message_bytes(
        fid=4321, button_index=2, input_text="hello", state=b'{"count":1}'
    )
    payload = FrameActionPayload.model_validate(build_payload(message_bytes, buttonIndex=2))

    message = await get_frame_message(payload, hub=hub)

    assert message.is_valid is True
    assert message.button_index == 2
    assert message.requester_fid == 4321
    assert message.input_text == "hello"
    assert message.state == {"count": 1}
    assert message.url == "https://example.com/frames"
    assert message.cast_id == CastId(fid=1, hash="0x" + "ab" * 20)
    assert hub.calls == [bytes.fromhex(message_bytes)]


@pytest.mark.unit
@pytest.mark.asyncio
async def test_fields_come_from_the_envelope_not_untrusted_data():
    payload = FrameActionPayload.model_validate(
        build_payload(build_message_bytes(fid=7, button_index=3), fid=999, buttonIndex=1)
    )

    message = await get_frame_message(payload, hub=FakeHub())

    assert (message.requester_fid, message.button_index) == (7, 3)


@pytest.mark.unit
@pytest.mark.asyncio
@pytest.mark.parametrize(
    "hub",
    [FakeHub(valid=False), FakeHub(valid=True, message_type="MESSAGE_TYPE_CAST_ADD")],
)
async def test_hub_rejection_yields_invalid_message(hub):
    payload = FrameActionPayload.model_validate(build_payload(build_message_bytes()))

    message = await get_frame_message(payload, hub=hub)

    assert message.is_valid is False
    assert message.requester_fid == 1234


@pytest.mark.unit
@pytest.mark.asyncio
async def test_numeric_frame_action_type_is_accepted():
    payload = FrameActionPayload.model_validate(build_payload(build_message_bytes()))

    message = await get_frame_message(payload, hub=FakeHub(message_type=13))

    assert message.is_valid is True


@pytest.mark.unit
@pytest.mark.asyncio
async def test_validation_skipped_without_hub_or_when_disabled():
    hub = FakeHub()
    payload = FrameActionPayload.model_validate(build_payload(build_message_bytes()))

    assert (await get_frame_message(payload, hub=None)).is_valid is False
    assert (await get_frame_message(payload, hub=hub, validate=False)).is_valid is False
    assert hub.calls == []


@pytest.mark.unit
@pytest.mark.asyncio
async def test_unparsable_state_degrades_to_none(caplog):
    payload = FrameActionPayload.model_validate(
        build_payload(build_message_bytes(state=b"{not json"))
    )

    with caplog.at_level(logging.WARNING, logger="framekit.farcaster.message"):
        message = await get_frame_message(payload, hub=FakeHub())

    assert message.state is None
    assert message.is_valid is True
    assert "Failed to parse state" in caplog.text


@pytest.mark.unit
@pytest.mark.asyncio
@pytest.mark.parametrize("message_bytes", ["zz", "abc", "ff", ""])
async def test_undecodable_envelope_is_a_hard_failure(message_bytes):
    payload = FrameActionPayload.model_validate(build_payload(message_bytes))

    with pytest.raises(InvalidFrameEnvelopeError):
        await get_frame_message(payload, hub=FakeHub())


@pytest.mark.unit
def test_decode_accepts_0x_prefix_and_data_bytes():
    data = MessageData(type=13, fid=55)
    envelope = Message(data_bytes=data.SerializeToString())

    decoded = decode_message_bytes("0x" + envelope.SerializeToString().hex())

    assert decoded.data.fid == 55


@pytest.mark.unit
@pytest.mark.parametrize(
    "body",
    [
        None,
        b"",
        b"not json",
        b"[1, 2]",
        json.dumps({"trustedData": {"messageBytes": "00"}}).encode(),
        json.dumps({"untrustedData": {}}).encode(),
        json.dumps({"untrustedData": {}, "trustedData": {}}).encode(),
    ],
)
def test_non_frame_action_bodies_are_absent(body):
    assert parse_frame_action_payload(body) is None


@pytest.mark.unit
def test_frame_action_body_is_parsed():
    body = json.dumps(build_payload("0a00", buttonIndex=3, inputText="hi")).encode()

    payload = parse_frame_action_payload(body)

    assert payload is not None
    assert payload.trusted_data.message_bytes == "0a00"
    assert payload.untrusted_data.button_index == 3
    assert payload.untrusted_data.input_text == "hi"
