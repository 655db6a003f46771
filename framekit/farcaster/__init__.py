from .hub import HttpHubService, HubContextService, HubService, HubValidationResult, UserData
from .message import (
    CastId,
    FrameActionPayload,
    FrameMessage,
    decode_message_bytes,
    get_frame_message,
    parse_frame_action_payload,
)

__all__ = [
    "CastId",
    "FrameActionPayload",
    "FrameMessage",
    "HttpHubService",
    "HubContextService",
    "HubService",
    "HubValidationResult",
    "UserData",
    "decode_message_bytes",
    "get_frame_message",
    "parse_frame_action_payload",
]
