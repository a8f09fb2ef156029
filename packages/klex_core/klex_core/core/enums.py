"""klex_core.core.enums
======================

Comparison ordering used by thresholding layers.

Members
-------
less      pixel < threshold
equal     pixel == threshold
greater   pixel > threshold
"""

from __future__ import annotations

from enum import Enum


class Ordering(str, Enum):
    """Result of comparing a pixel value against a threshold."""

    less = "less"
    equal = "equal"
    greater = "greater"

    @classmethod
    def compare(cls, value, reference) -> "Ordering":
        if value < reference:
            return cls.less
        if value > reference:
            return cls.greater
        return cls.equal
