"""
klex_core.api.errors

Typed exceptions raised by images, layers and the layer graph.
"""

from __future__ import annotations

from typing import Any, Dict, Optional, Tuple


def type_name(obj: Any) -> str:
    """Qualified name of a class, or of the class of an instance."""
    cls = obj if isinstance(obj, type) else type(obj)
    if cls.__module__ == "builtins":
        return cls.__qualname__
    return f"{cls.__module__}.{cls.__qualname__}"


class KlexError(Exception):
    """Base klex error."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.details = details or {}


class ShapeMismatch(KlexError):
    def __init__(self, expected: Tuple[int, ...], found: Tuple[int, ...]):
        super().__init__(
            f"ShapeMismatch: expected buffer shape {tuple(expected)}, "
            f"found {tuple(found)}",
            {"expected": tuple(expected), "found": tuple(found)},
        )
        self.expected = tuple(expected)
        self.found = tuple(found)


class MissingInput(KlexError):
    def __init__(self, layer: str, slot: int):
        super().__init__(
            f"MissingInput: layer '{layer}' requires input {slot}, "
            "but the parent has not produced output",
            {"layer": layer, "slot": slot},
        )
        self.layer = layer
        self.slot = slot


class TypeMismatch(KlexError):
    def __init__(self, expected: str, found: str, edge: Optional[int] = None):
        where = f" at input {edge}" if edge is not None else ""
        super().__init__(
            f"TypeMismatch{where}: expected {expected}, found {found}",
            {"expected": expected, "found": found, "edge": edge},
        )
        self.expected = expected
        self.found = found
        self.edge = edge


class DecodeError(KlexError):
    def __init__(self, path: str, reason: str):
        super().__init__(
            f"DecodeError: cannot read image '{path}': {reason}",
            {"path": path},
        )
        self.path = path


class EncodeError(KlexError):
    def __init__(self, path: str, reason: str):
        super().__init__(
            f"EncodeError: cannot write image '{path}': {reason}",
            {"path": path},
        )
        self.path = path


class UnsupportedStatePatch(KlexError):
    def __init__(self, layer: str):
        super().__init__(
            f"Layer '{layer}' does not support incremental state patches",
            {"layer": layer},
        )
        self.layer = layer


class GraphError(KlexError):
    pass


class PipelineBuildError(KlexError):
    pass
