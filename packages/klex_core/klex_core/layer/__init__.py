"""klex_core.layer -- layer contract and primitive layers.

Modules
-------
base          Layer protocol + BaseLayer (downcasting, cached output slot)
conversions   Registered pure conversions between image wrappers
primitives    InputFile, Convert, Threshold + LAYER_REGISTRY
"""

from klex_core.layer.base import BaseLayer, Layer
from klex_core.layer.conversions import CONVERSIONS, get_conversion, register_conversion
from klex_core.layer.primitives import (
    LAYER_REGISTRY,
    Convert,
    InputFile,
    Threshold,
    get_layer,
)

__all__ = [
    "Layer",
    "BaseLayer",
    "CONVERSIONS",
    "get_conversion",
    "register_conversion",
    "InputFile",
    "Convert",
    "Threshold",
    "LAYER_REGISTRY",
    "get_layer",
]
