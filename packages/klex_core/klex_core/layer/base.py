"""klex_core.layer.base
======================

Layer protocol and the convenience base class shared by all primitives.

A layer is one node of the layer graph.  Values cross graph edges
type-erased (``Any``); each layer checks the concrete type of every input it
needs before using it, and checks its own output before caching it.

Contract
--------
compute(inputs)      -> (new_output, state_patch); inputs[i] is the cached
                        output of the i-th parent (None if not computed yet)
update(output, patch)   commit ``output`` wholesale into the cached slot
output()             -> cached value or None

A failed ``compute`` or ``update`` leaves the cached slot as it was.
"""

from __future__ import annotations

import logging
from enum import Enum
from pathlib import Path
from typing import Any, Dict, Optional, Protocol, Sequence, Tuple, runtime_checkable

from klex_core.api.errors import (
    MissingInput,
    TypeMismatch,
    UnsupportedStatePatch,
    type_name,
)

logger = logging.getLogger(__name__)

ComputeResult = Tuple[Optional[Any], Optional[Any]]


# ---------------------------------------------------------------------------
# Layer protocol
# ---------------------------------------------------------------------------


@runtime_checkable
class Layer(Protocol):
    """Structural interface for every graph layer."""

    layer_id: str

    def compute(self, inputs: Sequence[Optional[Any]]) -> ComputeResult:
        ...

    def update(self, output: Optional[Any], state_patch: Optional[Any] = None) -> None:
        ...

    def output(self) -> Optional[Any]:
        ...


# ---------------------------------------------------------------------------
# Base class for layers (convenience, not mandatory)
# ---------------------------------------------------------------------------


class BaseLayer:
    """Convenience base: input downcasting, cached output slot, serialization.

    Subclasses declare ``input_types`` (one class per required input, in edge
    order) and ``output_type``, and implement :meth:`apply` over the
    downcast inputs.
    """

    layer_id: str = "base"
    input_types: Tuple[type, ...] = ()
    output_type: Optional[type] = None
    _params: Dict[str, Any]

    def __init__(self, params: Optional[Dict[str, Any]] = None) -> None:
        self._params = dict(params or {})
        self._output: Optional[Any] = None

    @property
    def n_inputs(self) -> int:
        return len(self.input_types)

    @property
    def params(self) -> Dict[str, Any]:
        return dict(self._params)

    # ---- contract ----

    def compute(self, inputs: Sequence[Optional[Any]]) -> ComputeResult:
        args = [self.downcast(inputs, slot) for slot in range(self.n_inputs)]
        if len(inputs) > self.n_inputs:
            logger.debug(
                f"Layer '{self.layer_id}' ignores {len(inputs) - self.n_inputs} "
                "extra input(s)"
            )
        return self.apply(*args), None

    def apply(self, *inputs: Any) -> Any:
        raise NotImplementedError

    def update(self, output: Optional[Any], state_patch: Optional[Any] = None) -> None:
        if output is not None and self.output_type is not None:
            if not isinstance(output, self.output_type):
                raise TypeMismatch(type_name(self.output_type), type_name(output))
        if state_patch is not None:
            self.apply_state_patch(state_patch)
        self._output = output

    def apply_state_patch(self, state_patch: Any) -> None:
        """Extension point for incremental state; no primitive supports it."""
        raise UnsupportedStatePatch(self.layer_id)

    def output(self) -> Optional[Any]:
        return self._output

    # ---- helpers ----

    def downcast(self, inputs: Sequence[Optional[Any]], slot: int) -> Any:
        """Return ``inputs[slot]`` checked against ``input_types[slot]``."""
        value = inputs[slot] if slot < len(inputs) else None
        if value is None:
            raise MissingInput(self.layer_id, slot)
        expected = self.input_types[slot]
        if not isinstance(value, expected):
            raise TypeMismatch(type_name(expected), type_name(value), edge=slot)
        return value

    def serialize(self) -> Dict[str, Any]:
        return {
            "layer_id": self.layer_id,
            "input_types": [t.__name__ for t in self.input_types],
            "output_type": self.output_type.__name__ if self.output_type else None,
            "params": {k: _json_safe(v) for k, v in self._params.items()},
        }

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.serialize()['params']})"


def _json_safe(value: Any) -> Any:
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, Path):
        return str(value)
    if isinstance(value, type):
        return value.__name__
    if callable(value):
        return getattr(value, "__qualname__", repr(value))
    return value
