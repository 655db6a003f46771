"""Errors raised by the frames pipeline.

Only genuine integration bugs are raised. Expected absences (no clicked
button, no frame message, unparsable state) are modelled as ``None`` and never
reach this hierarchy.
"""

from __future__ import annotations


class FramesError(Exception):
    """Base exception for frames errors."""


class InvalidFrameEnvelopeError(FramesError):
    """``trustedData.messageBytes`` could not be decoded into a signed message."""


class PostUrlTooLongError(FramesError):
    """A generated post target URL exceeds the 256 byte limit."""

    def __init__(self, url: str, byte_length: int, limit: int) -> None:
        super().__init__(f"post_url is more than {limit} bytes ({byte_length} bytes)")
        self.url = url
        self.byte_length = byte_length
        self.limit = limit


class FrameConfigurationError(FramesError):
    """The handler returned a frame definition that violates frame constraints."""


class InvalidButtonCountError(FrameConfigurationError):
    pass


class InvalidButtonShapeError(FrameConfigurationError):
    pass


class InvalidButtonTargetError(FrameConfigurationError):
    pass


class UnrecognizedButtonActionError(FrameConfigurationError):
    pass


class InvalidStateError(FrameConfigurationError):
    pass


class InvalidImageOptionsError(FrameConfigurationError):
    pass


class ImageRenderError(FramesError):
    pass


class InvalidStateSignatureError(FramesError):
    pass


class InvalidTokenUrlError(FramesError):
    """A mint target is not a CAIP-10 token URL."""


class HubServiceError(FramesError):
    """The hub answered with an unexpected status or payload."""


class HubRequestAbortedError(HubServiceError):
    """The request that needed the hub was aborted before the call was made."""


__all__ = [
    "FrameConfigurationError",
    "FramesError",
    "HubRequestAbortedError",
    "HubServiceError",
    "ImageRenderError",
    "InvalidButtonCountError",
    "InvalidButtonShapeError",
    "InvalidButtonTargetError",
    "InvalidFrameEnvelopeError",
    "InvalidImageOptionsError",
    "InvalidStateError",
    "InvalidStateSignatureError",
    "InvalidTokenUrlError",
    "PostUrlTooLongError",
    "UnrecognizedButtonActionError",
]
