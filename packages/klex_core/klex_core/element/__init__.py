"""klex_core.element -- typed image containers.

Modules
-------
pixel   RGB / RGBA channel tuples
image   Image pixel grid + nominal wrappers (binary, gray, rgb, ...)
"""

from klex_core.element.image import (
    IMAGE_TYPES,
    BinaryAlphaImage,
    BinaryImage,
    GrayAlphaImage,
    GrayImage,
    Image,
    RGBAImage,
    RGBImage,
    image_type,
    image_type_name,
)
from klex_core.element.pixel import RGB, RGBA

__all__ = [
    "IMAGE_TYPES",
    "Image",
    "BinaryImage",
    "BinaryAlphaImage",
    "GrayImage",
    "GrayAlphaImage",
    "RGBImage",
    "RGBAImage",
    "RGB",
    "RGBA",
    "image_type",
    "image_type_name",
]
