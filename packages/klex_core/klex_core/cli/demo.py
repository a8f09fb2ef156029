"""klex_core.cli.demo

Implements ``klex demo INPUT OUTPUT [--threshold N] [--ordering ORD]``.

Builds the fixed four-layer chain

    input_file -> convert(rgba->gray) -> threshold -> convert(binary->gray)

evaluates nodes 0..3 in order and saves the final grayscale mask.
"""
from __future__ import annotations

import logging
from pathlib import Path
from typing import Union

from klex_core.core.enums import Ordering
from klex_core.element.image import BinaryImage, GrayImage, RGBAImage
from klex_core.graph.layer_graph import LayerGraph
from klex_core.io import codec
from klex_core.layer.primitives import Convert, InputFile, Threshold

logger = logging.getLogger(__name__)


def build_demo_graph(
    input_path: Union[str, Path],
    threshold: int = 100,
    ordering: Union[str, Ordering] = Ordering.greater,
) -> LayerGraph:
    """Source -> luminance -> threshold -> grayscale mask."""
    graph = LayerGraph()
    source = graph.add_layer(InputFile.from_path(input_path), [])
    gray = graph.add_layer(Convert.between(RGBAImage, GrayImage), [source])
    mask = graph.add_layer(Threshold.create(threshold, ordering), [gray])
    graph.add_layer(Convert.between(BinaryImage, GrayImage), [mask])
    return graph


def run_demo(
    input_path: Union[str, Path],
    output_path: Union[str, Path],
    threshold: int = 100,
    ordering: Union[str, Ordering] = Ordering.greater,
) -> LayerGraph:
    graph = build_demo_graph(input_path, threshold, ordering)
    graph.compute_layers(range(len(graph)))

    final = len(graph) - 1
    result = graph.output(final)
    print(f"The final layer is some: {result is not None}")
    if isinstance(result, GrayImage):
        codec.encode(result, output_path)
        logger.info(f"Saved layer {final} to {output_path}")
    return graph


def add_demo_subparser(sub) -> None:
    p = sub.add_parser("demo", help="Run the built-in four-layer threshold chain")
    p.add_argument("input", help="Input image file")
    p.add_argument("output", help="Where to save the grayscale mask")
    p.add_argument("--threshold", type=int, default=100, help="Threshold value (0-255)")
    p.add_argument(
        "--ordering",
        choices=[o.value for o in Ordering],
        default=Ordering.greater.value,
        help="Keep pixels whose comparison with the threshold has this result",
    )
    p.set_defaults(func=cmd_demo)


def cmd_demo(args) -> None:
    run_demo(args.input, args.output, args.threshold, args.ordering)
