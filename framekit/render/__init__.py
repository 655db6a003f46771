from .image_tree import FRAGMENT, ImageNode, deserialize_image, h, serialize_image

__all__ = ["FRAGMENT", "ImageNode", "deserialize_image", "h", "serialize_image"]
