"""Renderable image trees.

Handlers may return an image as a tree of nodes instead of a literal URL. The
tree is independent of any UI component runtime: every node is a tag name, a
props mapping and an ordered list of children, where a child is either
another node or a primitive leaf. The tree is handed to an external rendering
worker in its JSON form, so ``to_json``/``from_json`` are plain structural
walks and must round-trip.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from typing import Any, Union

Leaf = Union[str, int, float, bool, None]
ImageChild = Union["ImageNode", Leaf]

FRAGMENT = "fragment"


@dataclass(frozen=True, slots=True)
class ImageNode:
    type: str
    props: Mapping[str, Any] = field(default_factory=dict)
    children: tuple[ImageChild, ...] = ()

    def to_json(self) -> dict[str, Any]:
        props = {k: v for k, v in self.props.items() if k != "children"}
        props["children"] = [_child_to_json(child) for child in self.children]
        return {"type": self.type, "props": props}

    @classmethod
    def from_json(cls, data: Mapping[str, Any]) -> ImageNode:
        if not isinstance(data, Mapping) or not isinstance(data.get("type"), str):
            raise ValueError("Serialized image node must be an object with a string 'type'")
        raw_props = data.get("props") or {}
        if not isinstance(raw_props, Mapping):
            raise ValueError("Serialized image node 'props' must be an object")
        props = {k: v for k, v in raw_props.items() if k != "children"}
        raw_children = raw_props.get("children") or []
        if not isinstance(raw_children, list):
            raw_children = [raw_children]
        return cls(
            type=data["type"],
            props=props,
            children=tuple(_child_from_json(child) for child in raw_children),
        )

    def walk(self) -> Iterable[ImageNode]:
        """Yield this node and every descendant node, depth first."""
        yield self
        for child in self.children:
            if isinstance(child, ImageNode):
                yield from child.walk()

    def text(self) -> str:
        parts: list[str] = []
        for child in self.children:
            if isinstance(child, ImageNode):
                parts.append(child.text())
            elif child is not None and not isinstance(child, bool):
                parts.append(str(child))
        return "".join(parts)


def h(type_: str, props: Mapping[str, Any] | None = None, *children: ImageChild) -> ImageNode:
    """Build an image node, flattening nested child lists::

        h("div", {"style": {"display": "flex"}}, "Hello ", h("b", None, "world"))
    """
    return ImageNode(type=type_, props=dict(props or {}), children=tuple(_flatten(children)))


def _flatten(children: Iterable[Any]) -> Iterable[ImageChild]:
    for child in children:
        if isinstance(child, (list, tuple)):
            yield from _flatten(child)
        else:
            yield child


def _child_to_json(child: ImageChild) -> Any:
    if isinstance(child, ImageNode):
        return child.to_json()
    return child


def _child_from_json(child: Any) -> ImageChild:
    if isinstance(child, Mapping):
        return ImageNode.from_json(child)
    if child is None or isinstance(child, (str, int, float, bool)):
        return child
    raise ValueError(f"Unsupported image tree leaf: {type(child).__name__}")


def serialize_image(node: ImageNode | Iterable[ImageNode]) -> list[Any]:
    """Serialize a node (or a sequence of sibling nodes) to a JSON-ready list."""
    if isinstance(node, ImageNode):
        return [node.to_json()]
    return [_child_to_json(child) for child in node]


def deserialize_image(serialized: list[Any]) -> ImageNode:
    """Inverse of :func:`serialize_image`.

    A single top-level node is returned as is; several siblings are wrapped in
    a fragment node.
    """
    children = [_child_from_json(child) for child in serialized]
    if len(children) == 1 and isinstance(children[0], ImageNode):
        return children[0]
    return ImageNode(type=FRAGMENT, children=tuple(children))


__all__ = [
    "FRAGMENT",
    "ImageChild",
    "ImageNode",
    "deserialize_image",
    "h",
    "serialize_image",
]
