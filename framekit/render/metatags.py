"""Frame serialization to meta tags.

A frame is described by a flat set of ``name -> content`` pairs, one per
meta tag. :func:`get_frame_flattened` returns that set as a dict (the JSON
representation); the HTML helpers render the same pairs as ``<meta>`` tags.
"""

from __future__ import annotations

from html import escape

from framekit.core.types import Frame


def _frame_entries(frame: Frame, prefix: str, version_key: str) -> dict[str, str | None]:
    entries: dict[str, str | None] = {
        version_key: frame.version,
        f"{prefix}:image": frame.image,
        f"{prefix}:post_url": frame.post_url,
        f"{prefix}:input:text": frame.input_text,
        f"{prefix}:image:aspect_ratio": frame.image_aspect_ratio,
        f"{prefix}:state": frame.state,
    }
    for index, button in enumerate(frame.buttons, start=1):
        entries[f"{prefix}:button:{index}"] = button.label
        entries[f"{prefix}:button:{index}:action"] = button.action
        entries[f"{prefix}:button:{index}:target"] = button.target
        if button.action == "tx":
            entries[f"{prefix}:button:{index}:post_url"] = button.post_url
    return entries


def get_frame_flattened(frame: Frame) -> dict[str, str]:
    """Return the frame as a flat ``{meta name: content}`` document.

    Absent optional properties are omitted. Open Frames keys (``of:*``) are
    only emitted when the frame declares accepted client protocols.
    """
    entries: dict[str, str | None] = {
        "fc:frame": frame.version,
        "og:image": frame.og_image or frame.image,
    }
    entries.update(_frame_entries(frame, "fc:frame", "fc:frame"))
    if frame.title:
        entries["og:title"] = frame.title

    if frame.accepts:
        entries.update(_frame_entries(frame, "of", "of:version"))
        for protocol in frame.accepts:
            entries[f"of:accepts:{protocol.id}"] = protocol.version

    return {k: v for k, v in entries.items() if v is not None}


def get_frame_html_head(frame: Frame) -> str:
    tags = [
        f'<meta name="{escape(name)}" content="{escape(content)}"/>'
        for name, content in get_frame_flattened(frame).items()
        if name != "og:title"
    ]
    if frame.title:
        tags.insert(0, f'<meta property="og:title" content="{escape(frame.title)}"/>')
    return "".join(tags)


def get_frame_html(
    frame: Frame,
    *,
    title: str | None = None,
    html_head: str = "",
    html_body: str = "",
) -> str:
    """Render a complete HTML document carrying the frame meta tags."""
    page_title = escape(title or frame.title or "frame")
    return (
        "<!DOCTYPE html>"
        "<html>"
        f"<head><title>{page_title}</title>{get_frame_html_head(frame)}{html_head}</head>"
        f"<body>{html_body}</body>"
        "</html>"
    )


__all__ = ["get_frame_flattened", "get_frame_html", "get_frame_html_head"]
