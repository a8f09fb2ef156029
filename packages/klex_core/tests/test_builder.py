"""test_builder.py

Declarative pipelines: PipelineSpec validation, PipelineBuilder, templates.

Tests
-----
* Valid dicts build into a LayerGraph whose indices follow the listed order.
* Duplicate ids, undeclared parents, unknown layer ids and bad params raise.
* YAML files and bundled templates load; ``node.param`` overrides apply.
"""

from __future__ import annotations

import pytest
import yaml

from klex_core.api.errors import PipelineBuildError, TypeMismatch
from klex_core.element import BinaryImage, GrayImage
from klex_core.graph import (
    PipelineBuilder,
    PipelineSpec,
    apply_overrides,
    load_pipeline_spec,
    load_template,
    template_ids,
)


def _chain_dict(file_path) -> dict:
    return {
        "pipeline_id": "test_chain",
        "nodes": [
            {"node_id": "source", "layer_id": "input_file",
             "params": {"file_path": str(file_path)}},
            {"node_id": "gray", "layer_id": "convert",
             "params": {"source": "rgba", "target": "gray"}, "parents": ["source"]},
            {"node_id": "mask", "layer_id": "threshold",
             "params": {"threshold": 100, "ordering": "greater"}, "parents": ["gray"]},
        ],
    }


class TestPipelineSpec:
    def test_valid_spec(self, tmp_path) -> None:
        spec = PipelineBuilder.from_dict(_chain_dict(tmp_path / "a.png"))
        assert isinstance(spec, PipelineSpec)
        assert [n.node_id for n in spec.nodes] == ["source", "gray", "mask"]

    def test_duplicate_node_id(self, tmp_path) -> None:
        data = _chain_dict(tmp_path / "a.png")
        data["nodes"][2]["node_id"] = "gray"
        with pytest.raises(PipelineBuildError, match="Duplicate node_id"):
            PipelineBuilder.from_dict(data)

    def test_parent_must_be_declared_first(self, tmp_path) -> None:
        data = _chain_dict(tmp_path / "a.png")
        data["nodes"].reverse()
        with pytest.raises(PipelineBuildError, match="not found among earlier nodes"):
            PipelineBuilder.from_dict(data)

    def test_extra_fields_forbidden(self, tmp_path) -> None:
        data = _chain_dict(tmp_path / "a.png")
        data["nodes"][0]["colour"] = "red"
        with pytest.raises(PipelineBuildError):
            PipelineBuilder.from_dict(data)

    def test_outputs_must_reference_nodes(self, tmp_path) -> None:
        data = _chain_dict(tmp_path / "a.png")
        data["outputs"] = {"nowhere": "out.png"}
        with pytest.raises(PipelineBuildError, match="nowhere"):
            PipelineBuilder.from_dict(data)


class TestPipelineBuilder:
    def test_build_and_run(self, png_path) -> None:
        spec = PipelineBuilder.from_dict(_chain_dict(png_path))
        pipeline = PipelineBuilder().build(spec)
        assert pipeline.node_index == {"source": 0, "gray": 1, "mask": 2}
        assert pipeline.evaluation_order == [0, 1, 2]
        assert pipeline.graph.edges == [(0, 1), (1, 2)]

        pipeline.run()
        assert isinstance(pipeline.output("gray"), GrayImage)
        assert isinstance(pipeline.output("mask"), BinaryImage)

    def test_unknown_node_id_lookup(self, tmp_path) -> None:
        spec = PipelineBuilder.from_dict(_chain_dict(tmp_path / "a.png"))
        pipeline = PipelineBuilder().build(spec)
        with pytest.raises(KeyError, match="Unknown node_id"):
            pipeline.index("missing")

    def test_unknown_layer_id(self, tmp_path) -> None:
        data = _chain_dict(tmp_path / "a.png")
        data["nodes"][1]["layer_id"] = "blur"
        spec = PipelineBuilder.from_dict(data)
        with pytest.raises(PipelineBuildError, match="unknown layer_id 'blur'"):
            PipelineBuilder().build(spec)

    def test_rejected_params(self, tmp_path) -> None:
        data = _chain_dict(tmp_path / "a.png")
        data["nodes"][2]["params"] = {"ordering": "less"}
        spec = PipelineBuilder.from_dict(data)
        with pytest.raises(PipelineBuildError) as info:
            PipelineBuilder().build(spec)
        assert info.value.details["node_id"] == "mask"

    def test_unregistered_conversion(self, tmp_path) -> None:
        data = _chain_dict(tmp_path / "a.png")
        data["nodes"][1]["params"] = {"source": "rgba", "target": "binary"}
        with pytest.raises(PipelineBuildError, match="No conversion"):
            PipelineBuilder().build(PipelineBuilder.from_dict(data))

    def test_strict_build_rejects_mistyped_edge(self, tmp_path) -> None:
        data = _chain_dict(tmp_path / "a.png")
        data["nodes"][2]["parents"] = ["source"]
        spec = PipelineBuilder.from_dict(data)
        PipelineBuilder().build(spec)
        with pytest.raises(TypeMismatch):
            PipelineBuilder(strict=True).build(spec)

    def test_spec_params_not_shared(self, tmp_path) -> None:
        spec = PipelineBuilder.from_dict(_chain_dict(tmp_path / "a.png"))
        PipelineBuilder().build(spec)
        assert spec.nodes[2].params["ordering"] == "greater"


class TestYamlAndTemplates:
    def test_load_pipeline_spec(self, tmp_path, png_path) -> None:
        path = tmp_path / "pipeline.yaml"
        path.write_text(yaml.safe_dump(_chain_dict(png_path)), encoding="utf-8")
        spec = load_pipeline_spec(path)
        assert spec.pipeline_id == "test_chain"

    def test_non_mapping_yaml(self, tmp_path) -> None:
        path = tmp_path / "pipeline.yaml"
        path.write_text("- just\n- a list\n", encoding="utf-8")
        with pytest.raises(PipelineBuildError, match="mapping"):
            load_pipeline_spec(path)

    def test_missing_pipeline_file(self, tmp_path) -> None:
        with pytest.raises(PipelineBuildError, match="Cannot read pipeline file"):
            load_pipeline_spec(tmp_path / "absent.yaml")

    def test_malformed_yaml(self, tmp_path) -> None:
        path = tmp_path / "broken.yaml"
        path.write_text("nodes: [unclosed\n", encoding="utf-8")
        with pytest.raises(PipelineBuildError) as info:
            load_pipeline_spec(path)
        assert info.value.details["path"] == str(path)

    def test_non_numeric_threshold_override(self) -> None:
        spec = apply_overrides(
            load_template("threshold_chain_v1"), {"mask.threshold": "abc"}
        )
        with pytest.raises(PipelineBuildError, match="real number"):
            PipelineBuilder().build(spec)

    def test_bundled_templates(self) -> None:
        ids = template_ids()
        assert "threshold_chain_v1" in ids
        for template_id in ids:
            spec = load_template(template_id)
            assert spec.pipeline_id == template_id
            assert spec.outputs

    def test_unknown_template(self) -> None:
        with pytest.raises(PipelineBuildError, match="Unknown template"):
            load_template("nope")

    def test_template_with_override_runs(self, png_path) -> None:
        spec = apply_overrides(
            load_template("threshold_chain_v1"),
            {"source.file_path": str(png_path), "mask.threshold": 0},
        )
        pipeline = PipelineBuilder(strict=True).build(spec)
        pipeline.run()
        final = pipeline.output("mask_gray")
        assert isinstance(final, GrayImage)
        assert pipeline.graph.layer(pipeline.index("mask")).threshold == 0

    @pytest.mark.parametrize("key", ["source", "source.", "ghost.file_path"])
    def test_bad_override_keys(self, key: str) -> None:
        with pytest.raises(PipelineBuildError):
            apply_overrides(load_template("threshold_chain_v1"), {key: 1})
