from .clicked_button import clicked_button_parser
from .concurrent import concurrent_middleware
from .hub_context import hub_context_middleware
from .images_worker import images_worker_middleware
from .parse_message import parse_frames_message
from .render_response import FRAMES_META_TAGS_ACCEPT, render_response
from .state import state_middleware

__all__ = [
    "FRAMES_META_TAGS_ACCEPT",
    "clicked_button_parser",
    "concurrent_middleware",
    "hub_context_middleware",
    "images_worker_middleware",
    "parse_frames_message",
    "render_response",
    "state_middleware",
]
