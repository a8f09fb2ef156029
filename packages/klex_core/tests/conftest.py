"""Shared pytest fixtures for klex_core tests."""

from __future__ import annotations

from pathlib import Path

import numpy as np
import pytest
from PIL import Image as PILImage

from klex_core.element.image import GrayImage, RGBAImage


@pytest.fixture
def rgba_array():
    """4x6 (H x W) random RGBA buffer."""
    return np.random.default_rng(42).integers(0, 256, size=(4, 6, 4), dtype=np.uint8)


@pytest.fixture
def rgba_image(rgba_array):
    return RGBAImage(rgba_array, width=6, height=4)


@pytest.fixture
def gray_image():
    """5x3 (H x W) random grayscale image."""
    data = np.random.default_rng(7).integers(0, 256, size=(5, 3), dtype=np.uint8)
    return GrayImage(data, width=3, height=5)


@pytest.fixture
def png_path(tmp_path, rgba_array) -> Path:
    """RGBA PNG on disk holding ``rgba_array``."""
    path = tmp_path / "input.png"
    PILImage.fromarray(rgba_array).save(path)
    return path
