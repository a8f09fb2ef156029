"""klex_core.io.codec

Raster decode/encode backed by Pillow.

Decoding always yields an ``RGBAImage``; encoding accepts any typed image
wrapper.  Binary images are written as 0/255 grayscale.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Union

import numpy as np
from PIL import Image as PILImage
from PIL import UnidentifiedImageError

from klex_core.api.errors import DecodeError, EncodeError
from klex_core.element.image import (
    BinaryAlphaImage,
    BinaryImage,
    GrayAlphaImage,
    GrayImage,
    Image,
    RGBAImage,
    RGBImage,
)

logger = logging.getLogger(__name__)

PathLike = Union[str, Path]

_PIL_MODES = {
    GrayImage: "L",
    GrayAlphaImage: "LA",
    RGBImage: "RGB",
    RGBAImage: "RGBA",
}


def decode_rgba(path: PathLike) -> RGBAImage:
    """Read an image file and convert it to 8-bit RGBA."""
    path = Path(path)
    try:
        with PILImage.open(path) as pil:
            arr = np.asarray(pil.convert("RGBA"), dtype=np.uint8)
    except (
        OSError,
        UnidentifiedImageError,
        ValueError,
        PILImage.DecompressionBombError,
    ) as exc:
        raise DecodeError(str(path), str(exc)) from exc
    logger.debug(f"Decoded {path}: {arr.shape[1]}x{arr.shape[0]}")
    return RGBAImage.from_array(arr)


def _to_pil_array(image: Image, path: Path):
    if isinstance(image, BinaryImage):
        return np.where(image.data, 255, 0).astype(np.uint8), "L"
    if isinstance(image, BinaryAlphaImage):
        return np.where(image.data, 255, 0).astype(np.uint8), "LA"
    for cls, mode in _PIL_MODES.items():
        if isinstance(image, cls):
            return image.data, mode
    raise EncodeError(str(path), f"no file representation for {type(image).__name__}")


def encode(image: Image, path: PathLike) -> Path:
    """Write ``image`` to ``path``; the format follows the file extension."""
    path = Path(path)
    arr, mode = _to_pil_array(image, path)
    try:
        pil = PILImage.fromarray(np.ascontiguousarray(arr))
        if mode == "LA" and path.suffix.lower() in (".jpg", ".jpeg"):
            pil = pil.convert("L")
        elif mode == "RGBA" and path.suffix.lower() in (".jpg", ".jpeg"):
            pil = pil.convert("RGB")
        path.parent.mkdir(parents=True, exist_ok=True)
        pil.save(path)
    except (OSError, ValueError, KeyError) as exc:
        raise EncodeError(str(path), str(exc)) from exc
    logger.debug(f"Encoded {type(image).__name__} to {path}")
    return path
