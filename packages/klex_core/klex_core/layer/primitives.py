"""klex_core.layer.primitives
============================

Primitive layer implementations and the layer registry.

Layers
------
input_file   decode an image file to RGBA (no inputs)
convert      apply a pure conversion A -> B to the single input
threshold    compare each pixel against a scalar, producing a binary image

Design rules
------------
* Configuration is fixed at construction time (``params`` dict).
* Every primitive preserves the width/height of its input.
* Layers are registered by ``layer_id`` in LAYER_REGISTRY and looked up by
  the pipeline builder.
"""

from __future__ import annotations

import logging
import numbers
from pathlib import Path
from typing import Any, Callable, Dict, Optional, Union

import numpy as np

from klex_core.core.enums import Ordering
from klex_core.element.image import (
    IMAGE_TYPES,
    BinaryImage,
    GrayImage,
    Image,
    RGBAImage,
    image_type,
    image_type_name,
)
from klex_core.io import codec
from klex_core.layer.base import BaseLayer
from klex_core.layer.conversions import get_conversion

logger = logging.getLogger(__name__)


def _resolve_type(value: Union[str, type]) -> type:
    return image_type(value) if isinstance(value, str) else value


def _type_param(cls: type) -> Union[str, type]:
    # registered classes by short name; anything else as the class itself
    return image_type_name(cls) if cls in IMAGE_TYPES.values() else cls


# =========================================================================
# InputFile
# =========================================================================


class InputFile(BaseLayer):
    """Source layer: decode ``file_path`` to an ``RGBAImage``.

    Decoding failures surface as ``DecodeError``.
    """

    layer_id = "input_file"
    input_types = ()
    output_type = RGBAImage

    def __init__(self, params: Optional[Dict[str, Any]] = None) -> None:
        super().__init__(params)
        if "file_path" not in self._params:
            raise ValueError("input_file layer requires a 'file_path' parameter")
        self.file_path = Path(self._params["file_path"])

    @classmethod
    def from_path(cls, file_path: Union[str, Path]) -> "InputFile":
        return cls({"file_path": file_path})

    def apply(self) -> RGBAImage:
        logger.debug(f"Decoding {self.file_path}")
        return codec.decode_rgba(self.file_path)


# =========================================================================
# Convert
# =========================================================================


class Convert(BaseLayer):
    """Apply a fixed conversion ``source -> target`` to the single input.

    Parameters
    ----------
    params : dict
        ``source`` / ``target``: image type names (``"rgba"``, ``"gray"``...)
        or classes.  When ``operation`` is omitted the registered conversion
        for the pair is used.
    operation : callable, optional
        Custom pure function ``source -> target``.
    """

    layer_id = "convert"

    def __init__(
        self,
        params: Optional[Dict[str, Any]] = None,
        operation: Optional[Callable[[Any], Any]] = None,
    ) -> None:
        super().__init__(params)
        try:
            source = _resolve_type(self._params["source"])
            target = _resolve_type(self._params["target"])
        except KeyError as exc:
            raise ValueError(f"convert layer requires parameter {exc}") from None
        self.input_types = (source,)
        self.output_type = target
        self.operation = operation or get_conversion(source, target)

    @classmethod
    def between(
        cls,
        source: type,
        target: type,
        operation: Optional[Callable[[Any], Any]] = None,
    ) -> "Convert":
        return cls(
            {"source": _type_param(source), "target": _type_param(target)},
            operation=operation,
        )

    def apply(self, image: Any) -> Any:
        return self.operation(image)

    def serialize(self) -> Dict[str, Any]:
        result = super().serialize()
        result["params"]["operation"] = getattr(
            self.operation, "__qualname__", repr(self.operation)
        )
        return result


# =========================================================================
# Threshold
# =========================================================================


_COMPARATORS = {
    Ordering.less: np.less,
    Ordering.equal: np.equal,
    Ordering.greater: np.greater,
}


class Threshold(BaseLayer):
    """Binary mask of pixels whose comparison with ``threshold`` equals
    ``ordering``.

    Parameters
    ----------
    params : dict
        ``threshold`` (scalar), ``ordering`` (``less``/``equal``/``greater``)
        and optionally ``input`` (image type name, default ``gray``).
    """

    layer_id = "threshold"
    output_type = BinaryImage

    def __init__(self, params: Optional[Dict[str, Any]] = None) -> None:
        super().__init__(params)
        if "threshold" not in self._params:
            raise ValueError("threshold layer requires a 'threshold' parameter")
        self.threshold = self._params["threshold"]
        if isinstance(self.threshold, bool) or not isinstance(
            self.threshold, numbers.Real
        ):
            raise ValueError(
                f"threshold must be a real number, got {self.threshold!r}"
            )
        self.ordering = Ordering(self._params.get("ordering", Ordering.greater))
        self._params["ordering"] = self.ordering
        source = _resolve_type(self._params.get("input", GrayImage))
        if source is not Image and getattr(source, "channels", None) != 1:
            raise ValueError(
                f"threshold needs a single-channel input type, got {source.__name__}"
            )
        self.input_types = (source,)

    @classmethod
    def create(
        cls, threshold: Any, ordering: Union[str, Ordering] = Ordering.greater
    ) -> "Threshold":
        return cls({"threshold": threshold, "ordering": Ordering(ordering)})

    def apply(self, image: Image) -> BinaryImage:
        if image.data.ndim != 2:
            raise ValueError(
                f"threshold needs a scalar image, got buffer shape {image.shape}"
            )
        mask = _COMPARATORS[self.ordering](image.data, self.threshold)
        return BinaryImage(mask, image.width, image.height)


# =========================================================================
# Registry
# =========================================================================

_ALL_LAYERS = [InputFile, Convert, Threshold]

LAYER_REGISTRY: Dict[str, type] = {cls.layer_id: cls for cls in _ALL_LAYERS}


def get_layer(layer_id: str, params: Optional[Dict[str, Any]] = None) -> BaseLayer:
    """Look up a layer by ID and instantiate with the given params.

    Raises KeyError if the layer_id is not registered.
    """
    if layer_id not in LAYER_REGISTRY:
        raise KeyError(
            f"Unknown layer_id '{layer_id}'. "
            f"Available: {sorted(LAYER_REGISTRY.keys())}"
        )
    cls = LAYER_REGISTRY[layer_id]
    return cls(params=params)
