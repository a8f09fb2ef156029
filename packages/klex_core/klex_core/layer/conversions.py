"""klex_core.layer.conversions
=============================

Pure conversion functions between image wrappers, registered by
``(source_type, target_type)`` and looked up by the ``convert`` layer.

Luminance
---------
Colour-to-gray conversions linearise each sRGB channel::

    c' = c / 12.92                    if c <= 0.04045
    c' = ((c + 0.055) / 1.055) ** 2.4 otherwise

combine with Rec.709 weights (0.2126, 0.7152, 0.0722), then multiply by 255
and round half away from zero.  Alpha is never blended into luminance.
"""

from __future__ import annotations

from typing import Callable, Dict, Tuple

import numpy as np

from klex_core.element.image import (
    BinaryAlphaImage,
    BinaryImage,
    GrayAlphaImage,
    GrayImage,
    Image,
    RGBAImage,
    RGBImage,
)

Conversion = Callable[[Image], Image]

LUMA_WEIGHTS = np.array([0.2126, 0.7152, 0.0722], dtype=np.float64)

CONVERSIONS: Dict[Tuple[type, type], Conversion] = {}


def register_conversion(source: type, target: type):
    """Decorator registering ``fn`` as the conversion ``source -> target``."""

    def _register(fn: Conversion) -> Conversion:
        CONVERSIONS[(source, target)] = fn
        return fn

    return _register


def get_conversion(source: type, target: type) -> Conversion:
    try:
        return CONVERSIONS[(source, target)]
    except KeyError:
        available = sorted(f"{s.__name__}->{t.__name__}" for s, t in CONVERSIONS)
        raise KeyError(
            f"No conversion from {source.__name__} to {target.__name__}. "
            f"Available: {available}"
        ) from None


# ---------------------------------------------------------------------------
# Luminance helpers
# ---------------------------------------------------------------------------


def srgb_to_linear(channel: np.ndarray) -> np.ndarray:
    """Map 8-bit sRGB values to linear light in [0, 1]."""
    c = channel.astype(np.float64) / 255.0
    return np.where(c <= 0.04045, c / 12.92, ((c + 0.055) / 1.055) ** 2.4)


def luminance(rgb: np.ndarray) -> np.ndarray:
    """(H, W, 3) uint8 -> (H, W) uint8 perceptual luminance."""
    linear = srgb_to_linear(rgb[..., :3])
    wr, wg, wb = LUMA_WEIGHTS
    luma = wr * linear[..., 0] + wg * linear[..., 1] + wb * linear[..., 2]
    # round half away from zero; values are non-negative
    return np.clip(np.floor(luma * 255.0 + 0.5), 0, 255).astype(np.uint8)


# ---------------------------------------------------------------------------
# Registered conversions
# ---------------------------------------------------------------------------


@register_conversion(BinaryImage, GrayImage)
def binary_to_gray(image: BinaryImage) -> GrayImage:
    data = np.where(image.data, np.uint8(255), np.uint8(0)).astype(np.uint8)
    return GrayImage(data, image.width, image.height)


@register_conversion(GrayImage, BinaryImage)
def gray_to_binary(image: GrayImage) -> BinaryImage:
    return BinaryImage(image.data != 0, image.width, image.height)


@register_conversion(BinaryImage, BinaryAlphaImage)
def binary_to_binary_alpha(image: BinaryImage) -> BinaryAlphaImage:
    alpha = np.ones_like(image.data, dtype=np.bool_)
    return BinaryAlphaImage(
        np.stack([image.data, alpha], axis=-1), image.width, image.height
    )


@register_conversion(RGBAImage, GrayAlphaImage)
def rgba_to_gray_alpha(image: RGBAImage) -> GrayAlphaImage:
    data = np.stack([luminance(image.data), image.data[..., 3]], axis=-1)
    return GrayAlphaImage(data, image.width, image.height)


@register_conversion(RGBAImage, GrayImage)
def rgba_to_gray(image: RGBAImage) -> GrayImage:
    return GrayImage(luminance(image.data), image.width, image.height)


@register_conversion(RGBImage, GrayImage)
def rgb_to_gray(image: RGBImage) -> GrayImage:
    return GrayImage(luminance(image.data), image.width, image.height)


@register_conversion(GrayAlphaImage, GrayImage)
def gray_alpha_to_gray(image: GrayAlphaImage) -> GrayImage:
    return GrayImage(image.data[..., 0], image.width, image.height)


@register_conversion(RGBImage, RGBAImage)
def rgb_to_rgba(image: RGBImage) -> RGBAImage:
    alpha = np.full(image.data.shape[:2] + (1,), 255, dtype=np.uint8)
    return RGBAImage(
        np.concatenate([image.data, alpha], axis=-1), image.width, image.height
    )


@register_conversion(RGBAImage, RGBImage)
def rgba_to_rgb(image: RGBAImage) -> RGBImage:
    return RGBImage(image.data[..., :3], image.width, image.height)


@register_conversion(GrayImage, RGBAImage)
def gray_to_rgba(image: GrayImage) -> RGBAImage:
    alpha = np.full_like(image.data, 255)
    data = np.stack([image.data, image.data, image.data, alpha], axis=-1)
    return RGBAImage(data, image.width, image.height)
