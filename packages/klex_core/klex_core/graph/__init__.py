"""klex_core.graph -- layer graph engine and declarative pipelines.

Modules
-------
layer_graph     LayerGraph: node arena, edges, compute_layer
graph_spec      LayerNodeSpec / PipelineSpec Pydantic models
builder         PipelineBuilder: validate -> bind -> wire; YAML templates
introspection   Deterministic graph explanation
"""

from klex_core.graph.layer_graph import EdgeTypeIssue, LayerGraph
from klex_core.graph.graph_spec import LayerNodeSpec, PipelineSpec
from klex_core.graph.builder import (
    BuiltPipeline,
    PipelineBuilder,
    apply_overrides,
    load_pipeline_spec,
    load_template,
    template_ids,
)
from klex_core.graph.introspection import explain_graph

__all__ = [
    "LayerGraph",
    "EdgeTypeIssue",
    "LayerNodeSpec",
    "PipelineSpec",
    "PipelineBuilder",
    "BuiltPipeline",
    "apply_overrides",
    "load_pipeline_spec",
    "load_template",
    "template_ids",
    "explain_graph",
]
