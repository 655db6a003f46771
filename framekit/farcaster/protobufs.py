"""Wire schema of the signed frame action envelope.

Only the parts of the hub ``Message`` schema needed to read a frame action
are declared. The descriptors are built at import time and registered in a
private pool so unrelated fields (other message bodies, future additions) are
kept as unknown fields rather than failing the decode.

Enum fields are declared as ``int32``, which shares the varint encoding of
protobuf enums; :class:`MessageType` gives names to the values we check.
"""

from __future__ import annotations

from enum import IntEnum

from google.protobuf import descriptor_pb2, descriptor_pool, message_factory

_PACKAGE = "framekit.farcaster"

_F = descriptor_pb2.FieldDescriptorProto


class MessageType(IntEnum):
    NONE = 0
    CAST_ADD = 1
    REACTION_ADD = 3
    VERIFICATION_ADD_ETH_ADDRESS = 7
    USER_DATA_ADD = 11
    FRAME_ACTION = 13


class HashScheme(IntEnum):
    NONE = 0
    BLAKE3 = 1


class SignatureScheme(IntEnum):
    NONE = 0
    ED25519 = 1


def _field(name: str, number: int, type_: int, type_name: str | None = None) -> _F:
    field = _F(name=name, number=number, type=type_, label=_F.LABEL_OPTIONAL)
    if type_name:
        field.type_name = f".{_PACKAGE}.{type_name}"
    return field


def _build_file() -> descriptor_pb2.FileDescriptorProto:
    file_proto = descriptor_pb2.FileDescriptorProto(
        name="framekit/farcaster/message.proto", package=_PACKAGE, syntax="proto3"
    )

    cast_id = file_proto.message_type.add(name="CastId")
    cast_id.field.extend([
        _field("fid", 1, _F.TYPE_UINT64),
        _field("hash", 2, _F.TYPE_BYTES),
    ])

    frame_action = file_proto.message_type.add(name="FrameActionBody")
    frame_action.field.extend([
        _field("url", 1, _F.TYPE_BYTES),
        _field("button_index", 2, _F.TYPE_UINT32),
        _field("cast_id", 3, _F.TYPE_MESSAGE, "CastId"),
        _field("input_text", 4, _F.TYPE_BYTES),
        _field("state", 5, _F.TYPE_BYTES),
        _field("transaction_id", 6, _F.TYPE_BYTES),
        _field("address", 7, _F.TYPE_BYTES),
    ])

    message_data = file_proto.message_type.add(name="MessageData")
    message_data.field.extend([
        _field("type", 1, _F.TYPE_INT32),
        _field("fid", 2, _F.TYPE_UINT64),
        _field("timestamp", 3, _F.TYPE_UINT32),
        _field("network", 4, _F.TYPE_INT32),
        _field("frame_action_body", 16, _F.TYPE_MESSAGE, "FrameActionBody"),
    ])

    message = file_proto.message_type.add(name="Message")
    message.field.extend([
        _field("data", 1, _F.TYPE_MESSAGE, "MessageData"),
        _field("hash", 2, _F.TYPE_BYTES),
        _field("hash_scheme", 3, _F.TYPE_INT32),
        _field("signature", 4, _F.TYPE_BYTES),
        _field("signature_scheme", 5, _F.TYPE_INT32),
        _field("signer", 6, _F.TYPE_BYTES),
        _field("data_bytes", 7, _F.TYPE_BYTES),
    ])
    return file_proto


_pool = descriptor_pool.DescriptorPool()
_pool.AddSerializedFile(_build_file().SerializeToString())


def _message_class(name: str):  # type: ignore[no-untyped-def]
    return message_factory.GetMessageClass(_pool.FindMessageTypeByName(f"{_PACKAGE}.{name}"))


CastId = _message_class("CastId")
FrameActionBody = _message_class("FrameActionBody")
MessageData = _message_class("MessageData")
Message = _message_class("Message")


__all__ = [
    "CastId",
    "FrameActionBody",
    "HashScheme",
    "Message",
    "MessageData",
    "MessageType",
    "SignatureScheme",
]
