"""Hand image trees to an external rendering worker.

Frames returning an :class:`~framekit.render.image_tree.ImageNode` get their
image replaced by a worker URL carrying the serialized tree (``jsx``), the
aspect ratio and a timestamp. With a secret the serialized tree is signed so
the worker can reject forged payloads.
"""

from __future__ import annotations

import json
import logging
import time
from collections.abc import Mapping
from dataclasses import replace
from typing import Any
from urllib.parse import urlencode, urlsplit, urlunsplit

from framekit.core.buttons import generate_target_url
from framekit.core.crypto import create_hmac_signature
from framekit.core.types import (
    FramesMiddleware,
    ImageOptions,
    NextFunction,
    as_frame_definition,
    is_frame_definition,
)
from framekit.render.image_tree import ImageNode, serialize_image

logger = logging.getLogger(__name__)


def generate_image_worker_url(
    image: ImageNode,
    *,
    images_url: str,
    image_options: ImageOptions | None = None,
    secret: str | None = None,
    timestamp_ms: int | None = None,
) -> str:
    options = image_options or ImageOptions()
    jsx = json.dumps(serialize_image(image), separators=(",", ":"), ensure_ascii=False)

    params: list[tuple[str, str]] = [
        ("time", str(timestamp_ms if timestamp_ms is not None else int(time.time() * 1000))),
        ("jsx", jsx),
        ("aspectRatio", options.aspect_ratio or "1.91:1"),
    ]
    if options.width:
        params.append(("width", str(options.width)))
    if options.height:
        params.append(("height", str(options.height)))
    if secret:
        params.append(("signature", create_hmac_signature(jsx, secret)))

    parts = urlsplit(images_url)
    return urlunsplit((parts.scheme, parts.netloc, parts.path, urlencode(params), ""))


def images_worker_middleware(images_route: str, *, secret: str | None = None) -> FramesMiddleware:
    """Replace image trees with a URL on the worker at ``images_route``.

    ``images_route`` is absolute or relative to the frames base URL. ``secret``
    defaults to the images secret of the frames configuration.
    """

    async def middleware(context: Mapping[str, Any], next_: NextFunction) -> Any:
        result = await next_()
        if result is None or not is_frame_definition(result):
            return result

        definition = as_frame_definition(result)
        if not isinstance(definition.image, ImageNode):
            return definition

        signing_secret = secret
        if signing_secret is None:
            config = context.get("config")
            signing_secret = config.images_secret if config is not None else None

        image_url = generate_image_worker_url(
            definition.image,
            images_url=generate_target_url(context["base_url"], images_route),
            image_options=definition.image_options,
            secret=signing_secret,
        )
        logger.debug("Rendered image tree to worker URL (%d bytes)", len(image_url))
        return replace(definition, image=image_url)

    return middleware


__all__ = ["generate_image_worker_url", "images_worker_middleware"]
