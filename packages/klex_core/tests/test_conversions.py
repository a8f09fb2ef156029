"""test_conversions.py

Pure conversions between image wrappers.

Tests
-----
* Binary -> Gray maps True->255 / False->0 and keeps dimensions.
* RGBA -> GrayAlpha follows the sRGB-linearised luminance formula and passes
  alpha through unchanged.
* Gray -> Binary (threshold 128, greater) -> Gray is idempotent on {0, 255}.
"""

from __future__ import annotations

import math

import numpy as np
import pytest

from klex_core.core.enums import Ordering
from klex_core.element import (
    BinaryImage,
    GrayAlphaImage,
    GrayImage,
    RGBAImage,
    RGBImage,
)
from klex_core.layer.conversions import (
    CONVERSIONS,
    binary_to_gray,
    get_conversion,
    gray_to_rgba,
    rgb_to_rgba,
    rgba_to_gray,
    rgba_to_gray_alpha,
    rgba_to_rgb,
)
from klex_core.layer.primitives import Threshold


def _reference_luma(r: int, g: int, b: int) -> int:
    def lin(v: int) -> float:
        c = v / 255.0
        return c / 12.92 if c <= 0.04045 else ((c + 0.055) / 1.055) ** 2.4

    y = 0.2126 * lin(r) + 0.7152 * lin(g) + 0.0722 * lin(b)
    return int(math.floor(y * 255.0 + 0.5))


def _rgba(pixels) -> RGBAImage:
    arr = np.array(pixels, dtype=np.uint8).reshape(1, -1, 4)
    return RGBAImage.from_array(arr)


class TestBinaryToGray:
    def test_maps_true_false(self) -> None:
        mask = BinaryImage(np.array([[True, False, True], [False, False, True]]), 3, 2)
        gray = binary_to_gray(mask)
        assert isinstance(gray, GrayImage)
        assert gray.size == (3, 2)
        np.testing.assert_array_equal(
            gray.data, np.array([[255, 0, 255], [0, 0, 255]], dtype=np.uint8)
        )

    def test_round_trip_through_threshold_is_idempotent(self) -> None:
        rng = np.random.default_rng(3)
        data = np.where(rng.random((6, 9)) > 0.5, 255, 0).astype(np.uint8)
        gray = GrayImage(data, width=9, height=6)

        layer = Threshold.create(128, Ordering.greater)
        mask, _ = layer.compute([gray])
        back = binary_to_gray(mask)
        assert back == gray


class TestLuminance:
    def test_pure_red(self) -> None:
        out = rgba_to_gray_alpha(_rgba([(255, 0, 0, 255)]))
        assert isinstance(out, GrayAlphaImage)
        luma, alpha = out.pixel(0, 0)
        assert luma == _reference_luma(255, 0, 0) == 54
        assert alpha == 255

    def test_pure_white(self) -> None:
        out = rgba_to_gray_alpha(_rgba([(255, 255, 255, 255)]))
        assert out.pixel(0, 0) == (255, 255)

    def test_black(self) -> None:
        out = rgba_to_gray_alpha(_rgba([(0, 0, 0, 255)]))
        assert out.pixel(0, 0) == (0, 255)

    @pytest.mark.parametrize(
        "rgb", [(1, 2, 3), (10, 10, 10), (128, 64, 32), (200, 100, 250), (0, 255, 0)]
    )
    def test_matches_reference_formula(self, rgb) -> None:
        out = rgba_to_gray_alpha(_rgba([rgb + (255,)]))
        assert out.pixel(0, 0)[0] == _reference_luma(*rgb)

    def test_alpha_passes_through(self, rgba_image: RGBAImage) -> None:
        out = rgba_to_gray_alpha(rgba_image)
        assert out.size == rgba_image.size
        np.testing.assert_array_equal(out.data[..., 1], rgba_image.data[..., 3])

    def test_rgba_to_gray_drops_alpha(self, rgba_image: RGBAImage) -> None:
        gray = rgba_to_gray(rgba_image)
        assert isinstance(gray, GrayImage)
        np.testing.assert_array_equal(gray.data, rgba_to_gray_alpha(rgba_image).data[..., 0])


class TestChannelConversions:
    def test_rgb_rgba_round_trip(self, rgba_image: RGBAImage) -> None:
        rgb = rgba_to_rgb(rgba_image)
        assert isinstance(rgb, RGBImage)
        rgba = rgb_to_rgba(rgb)
        np.testing.assert_array_equal(rgba.data[..., :3], rgba_image.data[..., :3])
        assert (rgba.data[..., 3] == 255).all()

    def test_gray_to_rgba_replicates(self, gray_image: GrayImage) -> None:
        rgba = gray_to_rgba(gray_image)
        px = rgba.pixel(1, 2)
        v = gray_image.pixel(1, 2)
        assert px == (v, v, v, 255)


class TestRegistry:
    def test_canonical_pairs_registered(self) -> None:
        assert (BinaryImage, GrayImage) in CONVERSIONS
        assert (RGBAImage, GrayAlphaImage) in CONVERSIONS

    def test_unknown_pair(self) -> None:
        with pytest.raises(KeyError, match="No conversion"):
            get_conversion(GrayAlphaImage, RGBImage)
