"""Frame definition validation and normalization.

:func:`resolve_frame` turns whatever a handler returned as a frame into a
render-ready :class:`~framekit.core.types.Frame`: every button target is
encoded and resolved, every URL is absolute, and frame constraints are
enforced. Violations raise a :class:`~framekit.core.errors.FrameConfigurationError`
subclass; nothing is silently truncated.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any
from urllib.parse import urlsplit

from framekit.core.buttons import (
    assert_post_url_length,
    generate_post_button_target_url,
    generate_target_url,
    get_byte_length,
    parse_token_url,
    strip_button_params,
)
from framekit.core.errors import (
    FrameConfigurationError,
    ImageRenderError,
    InvalidButtonCountError,
    InvalidButtonShapeError,
    InvalidButtonTargetError,
    InvalidImageOptionsError,
    InvalidTokenUrlError,
    UnrecognizedButtonActionError,
)
from framekit.core.types import (
    MAX_BUTTONS,
    Button,
    Frame,
    FrameDefinition,
    RenderedButton,
    as_frame_definition,
    dump_state,
)
from framekit.render.image_tree import ImageNode

logger = logging.getLogger(__name__)

MAX_INPUT_TEXT_BYTES = 32
ASPECT_RATIOS = ("1.91:1", "1:1")


def _resolve_image(image: Any, base_url: str) -> str:
    if isinstance(image, ImageNode):
        raise ImageRenderError(
            "Could not render image, add an image rendering middleware to turn image trees into URLs"
        )
    if not isinstance(image, str) or not image:
        raise FrameConfigurationError("Frame image must be a URL or an image tree")
    if urlsplit(image).scheme:
        return image
    return generate_target_url(base_url, image)


def _coerce_button(button: Any) -> Button:
    if isinstance(button, Button):
        candidate = button
    elif isinstance(button, Mapping):
        try:
            candidate = Button.from_mapping(button)
        except TypeError as e:
            raise InvalidButtonShapeError(f"Invalid button provided: {e}") from e
    else:
        raise InvalidButtonShapeError("Invalid button provided")

    if not isinstance(candidate.label, str) or not candidate.label:
        raise InvalidButtonShapeError("Button label must be a non empty string")
    return candidate


def _require_target(button: Button) -> str:
    if not button.target:
        raise InvalidButtonTargetError(f"Button with action {button.action!r} requires a target")
    return button.target


def _resolve_button(button: Button, index: int, context: Mapping[str, Any]) -> RenderedButton:
    action = button.action
    current_url = context["url"]
    base_path = context.get("base_path", "/")
    base_url = context.get("base_url")

    if action in ("post", "post_redirect"):
        target = generate_post_button_target_url(
            button_index=index,  # type: ignore[arg-type]
            button_action=action,  # type: ignore[arg-type]
            current_url=current_url,
            base_path=base_path,
            base_url=base_url,
            target=button.target,
            state=button.state,
        )
        return RenderedButton(label=button.label, action=action, target=assert_post_url_length(target))

    if action == "tx":
        target = generate_post_button_target_url(
            button_index=index,  # type: ignore[arg-type]
            button_action="post",
            current_url=current_url,
            base_path=base_path,
            base_url=base_url,
            target=_require_target(button),
            state=button.state,
        )
        post_url = None
        if button.post_url:
            post_url = assert_post_url_length(
                generate_post_button_target_url(
                    button_index=index,  # type: ignore[arg-type]
                    button_action="post",
                    current_url=current_url,
                    base_path=base_path,
                    base_url=base_url,
                    target=button.post_url,
                    state=button.state,
                )
            )
        return RenderedButton(
            label=button.label,
            action=action,
            target=assert_post_url_length(target),
            post_url=post_url,
        )

    if action == "link":
        target = generate_target_url(context["base_url"], _require_target(button))
        if urlsplit(target).scheme not in ("http", "https"):
            raise InvalidButtonTargetError(f"Link target must be an http(s) URL, got {target!r}")
        return RenderedButton(label=button.label, action=action, target=target)

    if action == "mint":
        target = _require_target(button)
        try:
            parse_token_url(target)
        except InvalidTokenUrlError as e:
            raise InvalidButtonTargetError(str(e)) from e
        return RenderedButton(label=button.label, action=action, target=target)

    raise UnrecognizedButtonActionError(f"Unrecognized button action: {action!r}")


def resolve_buttons(buttons: list[Any] | None, context: Mapping[str, Any]) -> list[RenderedButton]:
    present = [_coerce_button(b) for b in buttons or [] if b]
    if len(present) > MAX_BUTTONS:
        raise InvalidButtonCountError(
            f"Up to {MAX_BUTTONS} buttons are allowed, got {len(present)}"
        )
    return [_resolve_button(button, i, context) for i, button in enumerate(present, start=1)]


def _resolve_text_input(text_input: Any) -> str | None:
    if isinstance(text_input, (list, tuple)):
        if len(text_input) > 1:
            raise FrameConfigurationError("Only one text input is allowed")
        text_input = text_input[0] if text_input else None
    if text_input is None:
        return None
    if not isinstance(text_input, str):
        raise FrameConfigurationError("Text input must be a string")
    if get_byte_length(text_input) > MAX_INPUT_TEXT_BYTES:
        logger.warning(
            "Text input placeholder is longer than %d bytes and may be truncated by clients",
            MAX_INPUT_TEXT_BYTES,
        )
    return text_input


def resolve_frame(result: FrameDefinition | Mapping[str, Any], context: Mapping[str, Any]) -> Frame:
    """Validate ``result`` and resolve it into a :class:`Frame`.

    ``context`` must provide ``url``, ``base_url`` and ``base_path``. String
    state is assumed to be already serialized; any other state is dumped as
    JSON.

    Raises:
        FrameConfigurationError: If the definition breaks a frame constraint
        ImageRenderError: If the image is an unrendered image tree
        PostUrlTooLongError: If a generated post URL exceeds 256 bytes
    """
    try:
        definition = as_frame_definition(result)
    except (TypeError, ValueError, KeyError) as e:
        raise FrameConfigurationError(f"Invalid frame definition: {e}") from e

    options = definition.image_options
    aspect_ratio = options.aspect_ratio if options is not None else "1.91:1"
    if aspect_ratio not in ASPECT_RATIOS:
        raise InvalidImageOptionsError(
            f"Image aspect ratio must be one of {', '.join(ASPECT_RATIOS)}, got {aspect_ratio!r}"
        )

    image = _resolve_image(definition.image, context["base_url"])
    buttons = resolve_buttons(definition.buttons, context)

    state = definition.state
    if state is not None and not isinstance(state, str):
        state = dump_state(state)

    return Frame(
        image=image,
        og_image=image,
        post_url=assert_post_url_length(strip_button_params(context["url"])),
        buttons=buttons,
        input_text=_resolve_text_input(definition.text_input),
        state=state,
        image_aspect_ratio=aspect_ratio,
        accepts=list(definition.accepts),
        title=definition.title,
    )


__all__ = ["ASPECT_RATIOS", "MAX_INPUT_TEXT_BYTES", "resolve_buttons", "resolve_frame"]
