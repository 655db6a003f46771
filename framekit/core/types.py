"""Typed frame objects shared across the pipeline.

Handlers produce :class:`FrameDefinition` or :class:`FrameRedirect`; the
resolver turns a definition into a render-ready :class:`Frame`. The request
context is a plain mapping documented by :class:`FramesContext`, and every
built-in middleware documents the patch it contributes with its own
``TypedDict``.
"""

from __future__ import annotations

import json
import threading
from collections.abc import Awaitable, Callable, Mapping
from dataclasses import dataclass, field, fields
from typing import TYPE_CHECKING, Any, Literal, TypeAlias, TypedDict

from framekit.core.errors import InvalidStateError
from framekit.render.image_tree import ImageNode

if TYPE_CHECKING:
    from starlette.requests import Request

    from framekit.config import FramesConfig
    from framekit.farcaster.message import FrameMessage

JsonValue: TypeAlias = "dict[str, JsonValue] | list[JsonValue] | str | int | float | bool | None"

ButtonIndex = Literal[1, 2, 3, 4]
PostButtonAction = Literal["post", "post_redirect"]
ButtonAction = Literal["post", "post_redirect", "link", "mint", "tx"]
ImageAspectRatio = Literal["1.91:1", "1:1"]

FRAME_VERSION = "vNext"
MAX_BUTTONS = 4


@dataclass(frozen=True, slots=True)
class ButtonInformation:
    """Button clicked on the previous frame, as decoded from the target URL."""

    index: ButtonIndex
    action: PostButtonAction
    state: JsonValue = None


@dataclass(slots=True)
class Button:
    label: str
    action: ButtonAction = "post"
    target: str | None = None
    # Per-click state, carried in the target URL (``__bs``)
    state: JsonValue = None
    # Only used by ``tx`` buttons
    post_url: str | None = None

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> Button:
        known = {f.name for f in fields(cls)}
        values = {k: v for k, v in data.items() if k in known}
        if "label" not in values and "children" in data:
            values["label"] = str(data["children"])
        return cls(**values)


@dataclass(slots=True)
class ImageOptions:
    aspect_ratio: ImageAspectRatio = "1.91:1"
    width: int | None = None
    height: int | None = None


@dataclass(frozen=True, slots=True)
class ClientProtocolId:
    id: str
    version: str


@dataclass(slots=True)
class FrameDefinition:
    image: str | ImageNode
    buttons: list[Button | Mapping[str, Any] | None | bool] = field(default_factory=list)
    text_input: str | None = None
    state: JsonValue = None
    image_options: ImageOptions | None = None
    accepts: list[ClientProtocolId] = field(default_factory=list)
    title: str | None = None
    status: int = 200
    headers: dict[str, str] = field(default_factory=dict)

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> FrameDefinition:
        values = dict(data)
        image = values.get("image")
        if isinstance(image, Mapping):
            values["image"] = ImageNode.from_json(image)
        options = values.get("image_options")
        if isinstance(options, Mapping):
            values["image_options"] = ImageOptions(**options)
        values["accepts"] = [
            a if isinstance(a, ClientProtocolId) else ClientProtocolId(**a)
            for a in values.get("accepts") or []
        ]
        known = {f.name for f in fields(cls)}
        return cls(**{k: v for k, v in values.items() if k in known})


@dataclass(slots=True)
class FrameRedirect:
    """Redirect result, expected in response to a ``post_redirect`` click."""

    location: str
    status: int = 302
    headers: dict[str, str] = field(default_factory=dict)

    @property
    def kind(self) -> Literal["redirect"]:
        return "redirect"


@dataclass(slots=True)
class RenderedButton:
    label: str
    action: ButtonAction
    target: str | None = None
    post_url: str | None = None


@dataclass(slots=True)
class Frame:
    """Render-ready frame, every URL resolved and every constraint checked."""

    image: str
    post_url: str | None = None
    version: str = FRAME_VERSION
    og_image: str | None = None
    buttons: list[RenderedButton] = field(default_factory=list)
    input_text: str | None = None
    # Serialized JSON string, carried back by the client in the signed message
    state: str | None = None
    image_aspect_ratio: ImageAspectRatio | None = None
    accepts: list[ClientProtocolId] = field(default_factory=list)
    title: str | None = None


class FramesContext(TypedDict, total=False):
    request: Request
    url: str
    base_url: str
    base_path: str
    search_params: dict[str, str]
    initial_state: JsonValue
    state: JsonValue
    clicked_button: ButtonInformation | None
    client_protocol: ClientProtocolId | None
    message: FrameMessage | None
    debug: bool
    # Set on client disconnect; readable from hub worker threads
    abort_event: threading.Event
    config: FramesConfig


HandlerResult: TypeAlias = "FrameDefinition | FrameRedirect | Mapping[str, Any] | Any"
NextFunction = Callable[..., Awaitable[Any]]
FramesMiddleware = Callable[[Mapping[str, Any], NextFunction], Awaitable[Any]]
FrameHandler = Callable[[Mapping[str, Any]], Any]


def dump_state(state: JsonValue) -> str:
    """Serialize ``state`` as compact JSON.

    Raises:
        InvalidStateError: If the value is not JSON serializable
    """
    try:
        return json.dumps(state, separators=(",", ":"), ensure_ascii=False, allow_nan=False)
    except (TypeError, ValueError) as e:
        raise InvalidStateError(f"State must be JSON serializable: {e}") from e


def redirect(location: str, *, status: int = 302, headers: dict[str, str] | None = None) -> FrameRedirect:
    return FrameRedirect(location=location, status=status, headers=dict(headers or {}))


def is_frame_redirect(value: Any) -> bool:
    if isinstance(value, FrameRedirect):
        return True
    return isinstance(value, Mapping) and value.get("kind") == "redirect"


def is_frame_definition(value: Any) -> bool:
    if isinstance(value, FrameDefinition):
        return True
    return isinstance(value, Mapping) and "image" in value


def as_frame_definition(value: Any) -> FrameDefinition:
    if isinstance(value, FrameDefinition):
        return value
    return FrameDefinition.from_mapping(value)


def as_frame_redirect(value: Any) -> FrameRedirect:
    if isinstance(value, FrameRedirect):
        return value
    return FrameRedirect(
        location=str(value["location"]),
        status=int(value.get("status", 302)),
        headers=dict(value.get("headers") or {}),
    )


__all__ = [
    "FRAME_VERSION",
    "MAX_BUTTONS",
    "Button",
    "ButtonAction",
    "ButtonIndex",
    "ButtonInformation",
    "ClientProtocolId",
    "Frame",
    "FrameDefinition",
    "FrameHandler",
    "FrameRedirect",
    "FramesContext",
    "FramesMiddleware",
    "HandlerResult",
    "ImageAspectRatio",
    "ImageOptions",
    "JsonValue",
    "NextFunction",
    "PostButtonAction",
    "RenderedButton",
    "as_frame_definition",
    "as_frame_redirect",
    "dump_state",
    "is_frame_definition",
    "is_frame_redirect",
    "redirect",
]
