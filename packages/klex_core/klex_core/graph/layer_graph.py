"""klex_core.graph.layer_graph
=============================

LayerGraph: the DAG container that owns every layer and drives evaluation.

Nodes live in an index-addressed list; indices are assigned in insertion
order and never change.  Edges are plain ``(parent, child)`` index pairs with
no payload; the value flowing along an edge is the parent's cached output.

Evaluation
----------
``compute_layer(i)`` gathers the cached output of every parent of ``i`` in
edge-insertion order (``None`` for parents that have not been computed),
calls the layer's ``compute`` and then ``update``.  Failures propagate to the
caller and leave the layer's cached output untouched.

The graph does not derive an evaluation order: the caller evaluates nodes in
an order consistent with the edges.  Evaluating a node before its parents is
well-defined; the node sees ``None`` inputs and typically raises
``MissingInput``.
"""

from __future__ import annotations

import logging
import operator
from dataclasses import dataclass
from typing import Any, Iterable, Iterator, List, Optional, Sequence, Tuple

from klex_core.api.errors import GraphError, KlexError, TypeMismatch, type_name
from klex_core.layer.base import Layer

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class EdgeTypeIssue:
    """Statically detectable type conflict on one edge."""

    parent: int
    child: int
    slot: int
    expected: str
    found: str

    def summary(self) -> str:
        return (
            f"edge {self.parent} -> {self.child} (input {self.slot}): "
            f"expected {self.expected}, parent produces {self.found}"
        )


class LayerGraph:
    """Heterogeneous DAG of layers.

    Parameters
    ----------
    strict : bool
        When True, adding an edge whose declared producer type cannot
        satisfy the consumer's declared input type raises ``TypeMismatch``
        immediately.  Otherwise the conflict surfaces when the consumer is
        evaluated.
    """

    def __init__(self, strict: bool = False) -> None:
        self.strict = strict
        self._layers: List[Layer] = []
        self._incoming: List[List[int]] = []
        self._outgoing: List[List[int]] = []
        self._edges: List[Tuple[int, int]] = []
        self._revisions: List[int] = []
        self._generation = 0
        self._selected_layer = 0

    # ------------------------------------------------------------------
    # Construction
    # ------------------------------------------------------------------

    def add_layer_with_children(
        self,
        layer: Layer,
        parents: Iterable[int] = (),
        children: Iterable[int] = (),
    ) -> int:
        """Insert ``layer`` and wire ``parent -> new`` and ``new -> child``.

        Returns the new node's index.  Nothing is inserted if an index is
        unknown, if an edge would close a cycle, or (strict mode) if an edge
        is statically mistyped.
        """
        parents = [self._check_index(p) for p in parents]
        children = [self._check_index(c) for c in children]
        new_index = len(self._layers)

        if parents and children:
            reachable = self._descendants(children)
            closing = sorted(set(parents) & reachable)
            if closing:
                raise GraphError(
                    f"Adding node {new_index} with parents {parents} and "
                    f"children {children} would create a cycle through "
                    f"node(s) {closing}",
                    {"parents": parents, "children": children},
                )

        if self.strict:
            issues = self._static_issues(layer, new_index, parents, children)
            if issues:
                issue = issues[0]
                raise TypeMismatch(issue.expected, issue.found, edge=issue.slot)

        self._layers.append(layer)
        self._incoming.append([])
        self._outgoing.append([])
        self._revisions.append(0)

        for parent in parents:
            self._add_edge(parent, new_index)
        for child in children:
            self._add_edge(new_index, child)

        logger.debug(
            f"Added layer {new_index} ({type(layer).__name__}): "
            f"parents={parents}, children={children}"
        )
        return new_index

    def add_layer(self, layer: Layer, parents: Iterable[int] = ()) -> int:
        """Insert ``layer`` fed by ``parents``; returns its index."""
        return self.add_layer_with_children(layer, parents, ())

    def _add_edge(self, parent: int, child: int) -> None:
        self._outgoing[parent].append(child)
        self._incoming[child].append(parent)
        self._edges.append((parent, child))

    # ------------------------------------------------------------------
    # Evaluation
    # ------------------------------------------------------------------

    def compute_layer(self, index: int) -> None:
        """Evaluate one node from its parents' cached outputs."""
        index = self._check_index(index)
        layer = self._layers[index]
        inputs = [self._layers[p].output() for p in self._incoming[index]]

        try:
            output, state_patch = layer.compute(inputs)
            layer.update(output, state_patch)
        except Exception as exc:
            if isinstance(exc, KlexError):
                exc.details.setdefault("node", index)
            logger.warning(
                f"Layer {index} ({type(layer).__name__}) failed: "
                f"{type(exc).__name__}: {exc}"
            )
            raise

        self._revisions[index] += 1
        self._generation += 1
        logger.debug(
            f"Computed layer {index} ({type(layer).__name__}) -> "
            f"{type(output).__name__}"
        )

    def compute_layers(self, indices: Sequence[int]) -> None:
        """Evaluate ``indices`` one after another, in the given order."""
        for index in indices:
            self.compute_layer(index)

    # ------------------------------------------------------------------
    # Accessors
    # ------------------------------------------------------------------

    def layer(self, index: int) -> Layer:
        return self._layers[self._check_index(index)]

    @property
    def layers(self) -> Tuple[Layer, ...]:
        return tuple(self._layers)

    def output(self, index: int) -> Optional[Any]:
        """Cached output of a node, or None if never computed."""
        return self._layers[self._check_index(index)].output()

    def parents(self, index: int) -> List[int]:
        """Parent indices in edge-insertion order."""
        return list(self._incoming[self._check_index(index)])

    def children(self, index: int) -> List[int]:
        return list(self._outgoing[self._check_index(index)])

    @property
    def edges(self) -> List[Tuple[int, int]]:
        return list(self._edges)

    def revision(self, index: int) -> int:
        """Number of successful updates of a node (output-changed signal)."""
        return self._revisions[self._check_index(index)]

    @property
    def generation(self) -> int:
        """Number of successful updates across the whole graph."""
        return self._generation

    @property
    def selected_layer(self) -> int:
        """Host-focused node; has no effect on evaluation."""
        return self._selected_layer

    @selected_layer.setter
    def selected_layer(self, index: int) -> None:
        self._selected_layer = self._check_index(index)

    def __len__(self) -> int:
        return len(self._layers)

    def __iter__(self) -> Iterator[Tuple[int, Layer]]:
        return iter(enumerate(self._layers))

    # ------------------------------------------------------------------
    # Static type checking
    # ------------------------------------------------------------------

    def type_errors(self) -> List[EdgeTypeIssue]:
        """Edges whose declared producer/consumer types conflict."""
        issues: List[EdgeTypeIssue] = []
        for child, parents in enumerate(self._incoming):
            for slot, parent in enumerate(parents):
                issue = _edge_issue(
                    self._layers[parent], self._layers[child], parent, child, slot
                )
                if issue is not None:
                    issues.append(issue)
        return issues

    def _static_issues(
        self,
        layer: Layer,
        new_index: int,
        parents: List[int],
        children: List[int],
    ) -> List[EdgeTypeIssue]:
        issues = []
        for slot, parent in enumerate(parents):
            issue = _edge_issue(self._layers[parent], layer, parent, new_index, slot)
            if issue is not None:
                issues.append(issue)
        # a child receives one new slot per edge, appended after its current ones
        added = {c: 0 for c in children}
        for child in children:
            slot = len(self._incoming[child]) + added[child]
            added[child] += 1
            issue = _edge_issue(layer, self._layers[child], new_index, child, slot)
            if issue is not None:
                issues.append(issue)
        return issues

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _check_index(self, index: int) -> int:
        try:
            index = operator.index(index)
        except TypeError:
            raise GraphError(f"Node index must be an integer, got {index!r}") from None
        if not 0 <= index < len(self._layers):
            raise GraphError(
                f"Unknown node index {index}; graph has {len(self._layers)} node(s)",
                {"node": index},
            )
        return index

    def _descendants(self, roots: Iterable[int]) -> set:
        seen = set()
        stack = list(roots)
        while stack:
            node = stack.pop()
            if node in seen:
                continue
            seen.add(node)
            stack.extend(self._outgoing[node])
        return seen


def _edge_issue(
    producer: Layer, consumer: Layer, parent: int, child: int, slot: int
) -> Optional[EdgeTypeIssue]:
    produced = getattr(producer, "output_type", None)
    expected_types = getattr(consumer, "input_types", None)
    if produced is None or expected_types is None or slot >= len(expected_types):
        return None
    expected = expected_types[slot]
    if issubclass(produced, expected):
        return None
    return EdgeTypeIssue(
        parent=parent,
        child=child,
        slot=slot,
        expected=type_name(expected),
        found=type_name(produced),
    )
