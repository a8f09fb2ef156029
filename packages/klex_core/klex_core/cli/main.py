"""klex_core.cli.main

Entry point for `klex` CLI.

Commands:
- klex demo INPUT OUTPUT [--threshold N] [--ordering greater]
- klex run PIPELINE.yaml [--set node.param=value ...] [--save node=path ...]
- klex run --template threshold_chain_v1 --set source.file_path=in.png
- klex inspect PIPELINE.yaml | --template NAME
- klex templates
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from typing import Any, Dict, List, Optional

import yaml

from klex_core.api.errors import KlexError, PipelineBuildError
from klex_core.graph.builder import (
    PipelineBuilder,
    apply_overrides,
    load_pipeline_spec,
    load_template,
    template_ids,
)
from klex_core.graph.graph_spec import PipelineSpec
from klex_core.graph.introspection import explain_graph
from klex_core.io import codec

logger = logging.getLogger(__name__)


def _parse_assignments(items: Optional[List[str]], option: str) -> Dict[str, str]:
    result: Dict[str, str] = {}
    for item in items or []:
        key, sep, value = item.partition("=")
        if not sep or not key:
            raise SystemExit(f"{option} expects KEY=VALUE, got '{item}'")
        result[key.strip()] = value
    return result


def _load_spec(args) -> PipelineSpec:
    if args.template:
        spec = load_template(args.template)
    elif args.pipeline:
        spec = load_pipeline_spec(args.pipeline)
    else:
        raise SystemExit("Error: either a pipeline file or --template must be provided.")

    overrides: Dict[str, Any] = {}
    for key, raw in _parse_assignments(args.set, "--set").items():
        try:
            overrides[key] = yaml.safe_load(raw)
        except yaml.YAMLError as exc:
            raise PipelineBuildError(f"Cannot parse --set {key}={raw}: {exc}") from exc
    if overrides:
        spec = apply_overrides(spec, overrides)
    return spec


def _describe_output(value: Any) -> Optional[Dict[str, Any]]:
    if value is None:
        return None
    size = getattr(value, "size", None)
    result: Dict[str, Any] = {"type": type(value).__name__}
    if isinstance(size, tuple):
        result["width"], result["height"] = size
    return result


def cmd_run(args) -> None:
    spec = _load_spec(args)
    outputs = dict(spec.outputs)
    outputs.update(_parse_assignments(args.save, "--save"))
    node_ids = {n.node_id for n in spec.nodes}
    unknown = sorted(set(outputs) - node_ids)
    if unknown:
        raise PipelineBuildError(
            f"Cannot save unknown node(s) {unknown}. Available: {sorted(node_ids)}"
        )

    pipeline = PipelineBuilder(strict=args.strict).build(spec)
    pipeline.run()

    saved: Dict[str, str] = {}
    for node_id, path in outputs.items():
        value = pipeline.output(node_id)
        if value is None:
            logger.warning(f"Node '{node_id}' has no output to save")
            continue
        saved[node_id] = str(codec.encode(value, path))

    summary = {
        "pipeline_id": spec.pipeline_id,
        "nodes": {
            node_id: {
                "index": index,
                "output": _describe_output(pipeline.graph.output(index)),
            }
            for node_id, index in pipeline.node_index.items()
        },
        "saved": saved,
    }
    print(json.dumps(summary, indent=2))


def cmd_inspect(args) -> None:
    spec = _load_spec(args)
    pipeline = PipelineBuilder().build(spec)
    print(explain_graph(pipeline.graph, title=spec.pipeline_id))


def cmd_templates(args) -> None:
    for template_id in template_ids():
        print(template_id)


def _add_spec_arguments(p: argparse.ArgumentParser) -> None:
    p.add_argument("pipeline", nargs="?", default=None, help="Path to pipeline YAML file")
    p.add_argument("--template", type=str, default=None, help="Bundled template id")
    p.add_argument(
        "--set",
        action="append",
        metavar="NODE.PARAM=VALUE",
        help="Override a layer parameter (repeatable)",
    )


def build_parser():
    p = argparse.ArgumentParser(prog="klex", description="Layer-graph image pipeline CLI.")
    p.add_argument(
        "--log-level",
        default="WARNING",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging verbosity",
    )
    sub = p.add_subparsers(dest="cmd", required=True)

    p_run = sub.add_parser("run", help="Build and evaluate a pipeline")
    _add_spec_arguments(p_run)
    p_run.add_argument(
        "--save",
        action="append",
        metavar="NODE=PATH",
        help="Save a node's output to an image file (repeatable)",
    )
    p_run.add_argument(
        "--strict",
        action="store_true",
        help="Reject mistyped edges while building instead of at evaluation",
    )
    p_run.set_defaults(func=cmd_run)

    p_inspect = sub.add_parser("inspect", help="Explain a pipeline's layer graph")
    _add_spec_arguments(p_inspect)
    p_inspect.set_defaults(func=cmd_inspect)

    p_templates = sub.add_parser("templates", help="List bundled pipeline templates")
    p_templates.set_defaults(func=cmd_templates)

    # --- demo subcommand ---
    from klex_core.cli.demo import add_demo_subparser
    add_demo_subparser(sub)

    return p


def main(argv=None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    logging.basicConfig(
        level=getattr(logging, args.log_level), format="%(levelname)s %(name)s: %(message)s"
    )
    try:
        args.func(args)
    except KlexError as exc:
        node = exc.details.get("node")
        where = f" (node {node})" if node is not None else ""
        kind = type(exc).__name__
        message = str(exc)
        if not message.startswith(kind):
            message = f"{kind}: {message}"
        print(f"Error{where}: {message}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
