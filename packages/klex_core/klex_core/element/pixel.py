"""klex_core.element.pixel

Fixed-arity channel tuples returned by colour images.
"""

from __future__ import annotations

from typing import NamedTuple


class RGB(NamedTuple):
    r: int
    g: int
    b: int


class RGBA(NamedTuple):
    r: int
    g: int
    b: int
    a: int

    @property
    def rgb(self) -> RGB:
        return RGB(self.r, self.g, self.b)
