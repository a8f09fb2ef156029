"""klex_core.element.image
=========================

Pixel grids and the typed image wrappers exchanged between layers.

Classes
-------
Image             Generic grid: any dtype, leading shape (height, width)
BinaryImage       bool, (H, W)
BinaryAlphaImage  bool, (H, W, 2)
GrayImage         uint8, (H, W)
GrayAlphaImage    uint8, (H, W, 2)
RGBImage          uint8, (H, W, 3)
RGBAImage         uint8, (H, W, 4)

Design rules
------------
* The declared width/height must agree with the buffer; a mismatch raises
  ``ShapeMismatch`` naming both shapes.  Nothing is truncated or padded.
* The buffer is copied on construction and flagged read-only.  Every
  transformation returns a new image.
* Wrappers are nominal: a plain ``Image`` holding an (H, W, 2) uint8 buffer
  is not a ``GrayAlphaImage``.  Layers check the class, not the layout.
"""

from __future__ import annotations

from typing import Any, Optional, Tuple

import numpy as np

from klex_core.api.errors import ShapeMismatch
from klex_core.element.pixel import RGB, RGBA


class Image:
    """Rectangular buffer with declared ``width`` and ``height``.

    Parameters
    ----------
    data : array_like
        Buffer whose first two axes are ``(height, width)``.
    width, height : int
        Declared dimensions.
    """

    # None for the generic grid: any element dtype, any trailing axes.
    channels: Optional[int] = None
    dtype: Optional[np.dtype] = None

    def __init__(self, data: Any, width: int, height: int) -> None:
        width = int(width)
        height = int(height)
        if width < 0 or height < 0:
            raise ValueError(f"Image dimensions must be non-negative, got {width}x{height}")

        arr = np.asarray(data)
        expected = self._expected_shape(arr, width, height)
        if arr.shape != expected:
            raise ShapeMismatch(expected=expected, found=arr.shape)

        buf = np.array(self._coerce(arr), copy=True)
        buf.flags.writeable = False
        self._data = buf
        self._width = width
        self._height = height

    # ---- construction helpers ----

    @classmethod
    def _expected_shape(
        cls, arr: np.ndarray, width: int, height: int
    ) -> Tuple[int, ...]:
        if cls.channels is None:
            return (height, width) + tuple(arr.shape[2:])
        if cls.channels == 1:
            return (height, width)
        return (height, width, cls.channels)

    @classmethod
    def _coerce(cls, arr: np.ndarray) -> np.ndarray:
        if cls.dtype is None or arr.dtype == cls.dtype:
            return arr
        if cls.dtype == np.bool_:
            if arr.size and not np.isin(arr, (0, 1)).all():
                raise ValueError(
                    f"{cls.__name__} requires boolean data, got values outside {{0, 1}}"
                )
            return arr.astype(np.bool_)
        if np.issubdtype(arr.dtype, np.floating) and arr.size and not np.all(
            np.equal(np.mod(arr, 1), 0)
        ):
            raise ValueError(f"{cls.__name__} requires integral data, got {arr.dtype}")
        info = np.iinfo(cls.dtype)
        if arr.size and (arr.min() < info.min or arr.max() > info.max):
            raise ValueError(
                f"{cls.__name__} data out of range [{info.min}, {info.max}]"
            )
        return arr.astype(cls.dtype)

    @classmethod
    def from_array(cls, data: Any) -> "Image":
        """Build an image whose width/height are read from the buffer."""
        arr = np.asarray(data)
        if arr.ndim < 2:
            raise ShapeMismatch(expected=(-1, -1), found=arr.shape)
        height, width = arr.shape[:2]
        return cls(arr, width=width, height=height)

    def with_data(self, data: Any) -> "Image":
        """New image of the same class and dimensions holding ``data``."""
        return type(self)(data, width=self._width, height=self._height)

    # ---- accessors ----

    @property
    def width(self) -> int:
        return self._width

    @property
    def height(self) -> int:
        return self._height

    @property
    def size(self) -> Tuple[int, int]:
        """(width, height)."""
        return (self._width, self._height)

    @property
    def shape(self) -> Tuple[int, ...]:
        return self._data.shape

    @property
    def data(self) -> np.ndarray:
        """Read-only view of the pixel buffer."""
        return self._data

    def pixel(self, x: int, y: int) -> Any:
        if not (0 <= x < self._width and 0 <= y < self._height):
            raise IndexError(
                f"Pixel ({x}, {y}) outside {self._width}x{self._height} image"
            )
        value = self._data[y, x]
        if isinstance(value, np.ndarray):
            return tuple(v.item() for v in value)
        return value.item()

    # ---- dunder ----

    def __eq__(self, other: object) -> bool:
        if type(other) is not type(self):
            return NotImplemented
        return self.size == other.size and np.array_equal(self._data, other._data)

    __hash__ = None  # type: ignore[assignment]

    def __repr__(self) -> str:
        return (
            f"{type(self).__name__}(width={self._width}, height={self._height}, "
            f"dtype={self._data.dtype})"
        )


class BinaryImage(Image):
    channels = 1
    dtype = np.dtype(np.bool_)


class BinaryAlphaImage(Image):
    channels = 2
    dtype = np.dtype(np.bool_)


class GrayImage(Image):
    channels = 1
    dtype = np.dtype(np.uint8)


class GrayAlphaImage(Image):
    channels = 2
    dtype = np.dtype(np.uint8)


class RGBImage(Image):
    channels = 3
    dtype = np.dtype(np.uint8)

    def pixel(self, x: int, y: int) -> RGB:
        return RGB(*super().pixel(x, y))


class RGBAImage(Image):
    channels = 4
    dtype = np.dtype(np.uint8)

    def pixel(self, x: int, y: int) -> RGBA:
        return RGBA(*super().pixel(x, y))


# Short names used in pipeline specs and on the command line.
IMAGE_TYPES = {
    "image": Image,
    "binary": BinaryImage,
    "binary_alpha": BinaryAlphaImage,
    "gray": GrayImage,
    "gray_alpha": GrayAlphaImage,
    "rgb": RGBImage,
    "rgba": RGBAImage,
}


def image_type(name: str) -> type:
    """Look up an image class by its short name."""
    try:
        return IMAGE_TYPES[name]
    except KeyError:
        raise KeyError(
            f"Unknown image type '{name}'. Available: {sorted(IMAGE_TYPES)}"
        ) from None


def image_type_name(cls: type) -> str:
    """Short name of a registered image class (class name otherwise)."""
    for name, registered in IMAGE_TYPES.items():
        if registered is cls:
            return name
    return cls.__name__
