import os
import sys
from types import SimpleNamespace
from typing import Any

import pytest

# Ensure the project root (containing the `framekit` package) is importable
_TESTS_DIR = os.path.dirname(__file__)
_PROJECT_ROOT = os.path.abspath(os.path.join(_TESTS_DIR, os.pardir))
if _PROJECT_ROOT not in sys.path:
    sys.path.insert(0, _PROJECT_ROOT)

from framekit.farcaster.hub import HubValidationResult  # noqa: E402
from framekit.farcaster.protobufs import (  # noqa: E402
    CastId,
    FrameActionBody,
    Message,
    MessageData,
    MessageType,
)


def pytest_configure(config: pytest.Config) -> None:
    config.addinivalue_line("markers", "unit: Fast unit tests with mocks only")


class FakeHub:
    """Hub double answering validateMessage with a fixed verdict."""

    def __init__(self, valid: bool = True, message_type: Any = "MESSAGE_TYPE_FRAME_ACTION") -> None:
        self.valid = valid
        self.message_type = message_type
        self.calls: list[bytes] = []
        self.abort_events: list[Any] = []

    async def validate_message(
        self, message_bytes: bytes, *, abort_event: Any = None
    ) -> HubValidationResult:
        self.calls.append(message_bytes)
        self.abort_events.append(abort_event)
        if not self.valid:
            return HubValidationResult(valid=False)
        return HubValidationResult(valid=True, message={"data": {"type": self.message_type}})


def build_message_bytes(
    *,
    fid: int = 1234,
    button_index: int = 1,
    url: str = "https://example.com/frames",
    input_text: str | None = None,
    state: bytes | None = None,
    cast_fid: int = 1,
    cast_hash: bytes = bytes.fromhex("ab" * 20),
) -> str:
    body = FrameActionBody(
        url=url.encode("utf-8"),
        button_index=button_index,
        cast_id=CastId(fid=cast_fid, hash=cast_hash),
    )
    if input_text is not None:
        body.input_text = input_text.encode("utf-8")
    if state is not None:
        body.state = state

    data = MessageData(
        type=int(MessageType.FRAME_ACTION),
        fid=fid,
        timestamp=100,
        network=1,
        frame_action_body=body,
    )
    message = Message(
        data=data,
        hash=b"\x01" * 20,
        hash_scheme=1,
        signature=b"\x02" * 64,
        signature_scheme=1,
        signer=b"\x03" * 32,
    )
    return message.SerializeToString().hex()


def build_payload(message_bytes: str, **untrusted: Any) -> dict[str, Any]:
    return {
        "untrustedData": {"fid": 1234, "buttonIndex": 1, **untrusted},
        "trustedData": {"messageBytes": message_bytes},
    }


@pytest.fixture
def fake_hub() -> FakeHub:
    return FakeHub()


@pytest.fixture
def post_request() -> SimpleNamespace:
    return SimpleNamespace(method="POST", headers={})


@pytest.fixture
def get_request() -> SimpleNamespace:
    return SimpleNamespace(method="GET", headers={})
