"""klex_core.graph.introspection
================================

Deterministic text explanation of a layer graph: nodes, declared types,
cached-output state and edges.

Functions
---------
explain_graph   Produce a multi-line text summary of a LayerGraph.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Optional

if TYPE_CHECKING:
    from klex_core.graph.layer_graph import LayerGraph


def explain_graph(graph: "LayerGraph", title: Optional[str] = None) -> str:
    """Return a deterministic text explanation of the graph structure.

    Includes:
    * Node/edge counts and the selected layer.
    * Per-node detail: layer id, declared input/output types, parents,
      cached output state and revision.
    * Edge list.
    * Statically detectable type conflicts, if any.
    """
    lines: list[str] = []
    lines.append(f"LayerGraph: {title}" if title else "LayerGraph")
    lines.append("=" * (len(lines[0])))
    lines.append("")

    # Summary
    lines.append("Summary")
    lines.append("-------")
    lines.append(f"  Nodes:           {len(graph)}")
    lines.append(f"  Edges:           {len(graph.edges)}")
    lines.append(f"  Selected layer:  {graph.selected_layer}")
    lines.append(f"  Generation:      {graph.generation}")
    lines.append("")

    # Nodes
    lines.append("Nodes (insertion order)")
    lines.append("-----------------------")
    for index, layer in graph:
        layer_id = getattr(layer, "layer_id", type(layer).__name__)
        inputs = ", ".join(t.__name__ for t in getattr(layer, "input_types", ())) or "-"
        output_type = getattr(layer, "output_type", None)
        produces = output_type.__name__ if output_type is not None else "?"
        lines.append(
            f"  {index}. [{layer_id}] ({inputs}) -> {produces}  "
            f"parents={graph.parents(index)}  "
            f"output={_describe(graph.output(index))}  "
            f"revision={graph.revision(index)}"
        )
    lines.append("")

    # Edges
    if graph.edges:
        lines.append("Edges")
        lines.append("-----")
        for parent, child in graph.edges:
            lines.append(f"  {parent} -> {child}")
        lines.append("")

    issues = graph.type_errors()
    if issues:
        lines.append("Type conflicts")
        lines.append("--------------")
        for issue in issues:
            lines.append(f"  {issue.summary()}")
        lines.append("")

    return "\n".join(lines)


def _describe(value: Any) -> str:
    if value is None:
        return "unset"
    size = getattr(value, "size", None)
    if isinstance(size, tuple) and len(size) == 2:
        return f"{type(value).__name__} {size[0]}x{size[1]}"
    return type(value).__name__
