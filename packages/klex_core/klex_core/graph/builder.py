"""klex_core.graph.builder
=========================

PipelineBuilder: validate -> bind -> wire.

Build pipeline
--------------
1. **Validate:**  every node references a known layer_id.
2. **Bind:**      instantiate layers with their params.
3. **Wire:**      add layers to a LayerGraph in listed order, each fed by
                  its declared parents.

The listed order doubles as the evaluation order: parents are always
declared before their children, so ``BuiltPipeline.run()`` evaluates nodes in
that order.  No order is derived from the edges.
"""

from __future__ import annotations

import copy
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Union

import yaml
from pydantic import ValidationError

from klex_core.api.errors import PipelineBuildError
from klex_core.graph.graph_spec import PipelineSpec
from klex_core.graph.layer_graph import LayerGraph
from klex_core.layer.primitives import LAYER_REGISTRY, get_layer

logger = logging.getLogger(__name__)

TEMPLATES_PATH = Path(__file__).resolve().parent.parent / "templates" / "pipeline_templates.yaml"


@dataclass
class BuiltPipeline:
    """A LayerGraph together with the node_id -> index mapping of its spec."""

    spec: PipelineSpec
    graph: LayerGraph
    node_index: Dict[str, int] = field(default_factory=dict)

    @property
    def evaluation_order(self) -> List[int]:
        return [self.node_index[n.node_id] for n in self.spec.nodes]

    def index(self, node_id: str) -> int:
        try:
            return self.node_index[node_id]
        except KeyError:
            raise KeyError(
                f"Unknown node_id '{node_id}'. Available: {sorted(self.node_index)}"
            ) from None

    def run(self) -> None:
        """Evaluate every node in listed order."""
        self.graph.compute_layers(self.evaluation_order)

    def output(self, node_id: str) -> Optional[Any]:
        return self.graph.output(self.index(node_id))


class PipelineBuilder:
    """Build a PipelineSpec into a LayerGraph.

    Usage
    -----
    >>> builder = PipelineBuilder()
    >>> pipeline = builder.build(spec)
    >>> pipeline.run()
    """

    def __init__(self, strict: bool = False) -> None:
        self.strict = strict

    def build(self, spec: PipelineSpec) -> BuiltPipeline:
        """Full build pipeline.

        Raises
        ------
        PipelineBuildError
            If a node references an unknown layer_id or its params are
            rejected by the layer.
        """
        self._validate_layer_ids(spec)

        graph = LayerGraph(strict=self.strict)
        node_index: Dict[str, int] = {}
        for node in spec.nodes:
            try:
                layer = get_layer(node.layer_id, params=copy.deepcopy(node.params))
            except (KeyError, ValueError, TypeError) as exc:
                raise PipelineBuildError(
                    f"Cannot build node '{node.node_id}' "
                    f"(layer_id={node.layer_id}): {exc}",
                    {"node_id": node.node_id},
                ) from exc
            parents = [node_index[p] for p in node.parents]
            node_index[node.node_id] = graph.add_layer(layer, parents)

        logger.info(
            f"Built pipeline '{spec.pipeline_id}': "
            f"{len(graph)} layers, {len(graph.edges)} edges"
        )
        return BuiltPipeline(spec=spec, graph=graph, node_index=node_index)

    def _validate_layer_ids(self, spec: PipelineSpec) -> None:
        """Ensure every node references a known layer_id."""
        for node in spec.nodes:
            if node.layer_id not in LAYER_REGISTRY:
                raise PipelineBuildError(
                    f"Node '{node.node_id}' references unknown "
                    f"layer_id '{node.layer_id}'. "
                    f"Available: {sorted(LAYER_REGISTRY.keys())}"
                )

    # ------------------------------------------------------------------
    # Utility: parse from dict / YAML
    # ------------------------------------------------------------------

    @staticmethod
    def from_dict(data: Dict[str, Any]) -> PipelineSpec:
        """Parse a dict (e.g. from YAML) into a PipelineSpec::

            pipeline_id: threshold_chain_v1
            nodes:
              - node_id: source
                layer_id: input_file
                params: {file_path: tulips.png}
              - node_id: gray
                layer_id: convert
                params: {source: rgba, target: gray}
                parents: [source]
        """
        try:
            return PipelineSpec.model_validate(data)
        except ValidationError as exc:
            raise PipelineBuildError(f"Invalid pipeline spec: {exc}") from exc


def load_pipeline_spec(path: Union[str, Path]) -> PipelineSpec:
    """Read a PipelineSpec from a YAML file."""
    path = Path(path)
    try:
        with open(path, encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except (OSError, yaml.YAMLError) as exc:
        raise PipelineBuildError(
            f"Cannot read pipeline file '{path}': {exc}", {"path": str(path)}
        ) from exc
    if not isinstance(data, dict):
        raise PipelineBuildError(f"Pipeline file '{path}' does not contain a mapping")
    return PipelineBuilder.from_dict(data)


def _load_templates() -> Dict[str, Any]:
    with open(TEMPLATES_PATH, encoding="utf-8") as f:
        data = yaml.safe_load(f)
    return data.get("templates", {})


def template_ids() -> List[str]:
    return sorted(_load_templates())


def load_template(template_id: str) -> PipelineSpec:
    """Load a bundled pipeline template by id."""
    templates = _load_templates()
    if template_id not in templates:
        raise PipelineBuildError(
            f"Unknown template '{template_id}'. Available: {sorted(templates)}"
        )
    return PipelineBuilder.from_dict({"pipeline_id": template_id, **templates[template_id]})


def apply_overrides(spec: PipelineSpec, overrides: Mapping[str, Any]) -> PipelineSpec:
    """Return a copy of ``spec`` with ``node_id.param`` keys overridden."""
    data = spec.model_dump()
    nodes = {n["node_id"]: n for n in data["nodes"]}
    for key, value in overrides.items():
        node_id, sep, param = key.partition(".")
        if not sep or not param:
            raise PipelineBuildError(
                f"Override '{key}' must have the form <node_id>.<param>"
            )
        if node_id not in nodes:
            raise PipelineBuildError(
                f"Override '{key}' references unknown node '{node_id}'. "
                f"Available: {sorted(nodes)}"
            )
        nodes[node_id]["params"][param] = value
    return PipelineBuilder.from_dict(data)
