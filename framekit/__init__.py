"""Stateless interactive frames served from Starlette/FastAPI."""

from .config import FramesConfig
from .core.buttons import (
    generate_post_button_target_url,
    get_token_url,
    parse_button_information_from_target_url,
)
from .core.compose import compose_middleware
from .core.errors import (
    FrameConfigurationError,
    FramesError,
    InvalidFrameEnvelopeError,
    PostUrlTooLongError,
)
from .core.types import (
    Button,
    ButtonInformation,
    ClientProtocolId,
    Frame,
    FrameDefinition,
    FrameRedirect,
    FramesContext,
    ImageOptions,
    redirect,
)
from .dispatcher import create_frames
from .farcaster.hub import HttpHubService, HubService, HubValidationResult
from .farcaster.message import FrameMessage
from .middleware import (
    FRAMES_META_TAGS_ACCEPT,
    concurrent_middleware,
    hub_context_middleware,
    images_worker_middleware,
)
from .render.image_tree import ImageNode, h

__version__ = "0.3.0"

__all__ = [
    "FRAMES_META_TAGS_ACCEPT",
    "Button",
    "ButtonInformation",
    "ClientProtocolId",
    "Frame",
    "FrameConfigurationError",
    "FrameDefinition",
    "FrameMessage",
    "FrameRedirect",
    "FramesConfig",
    "FramesContext",
    "FramesError",
    "HttpHubService",
    "HubService",
    "HubValidationResult",
    "ImageNode",
    "ImageOptions",
    "InvalidFrameEnvelopeError",
    "PostUrlTooLongError",
    "compose_middleware",
    "concurrent_middleware",
    "create_frames",
    "generate_post_button_target_url",
    "get_token_url",
    "h",
    "hub_context_middleware",
    "images_worker_middleware",
    "parse_button_information_from_target_url",
    "redirect",
]
