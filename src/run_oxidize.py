from __future__ import annotations

import argparse
from typing import Protocol, cast

from .oxidepack.cache import PipelineCache
from .oxidepack.constants import DEFAULT_SPACING, ENDPOINT_MERGE_THRESHOLD
from .oxidepack.export_svg import export_sampled_paths_svg
from .oxidepack.metrics import inner_area, summarize_shape, thickness_stats
from .oxidepack.model import (
    DirectionWeight,
    Path,
    ThicknessField,
    merge_endpoints_if_close,
)
from .oxidepack.pipeline import PipelineConfig, compute_scene
from .oxidepack.svg_io import load_path_nodes, load_svg_canvas
from .utils import debug, debug_helpers


class CliArgs(Protocol):
    input: str
    output: str
    uniform: float
    weight: list[str]
    mirror: bool
    progress: float
    spacing: float
    resolution: float | None
    both_sides: bool
    merge_threshold: float
    verbose: bool


def parse_weight(text: str) -> DirectionWeight:
    """``ANGLE:VALUE`` (degrees, growth units), optionally ``ANGLE:VALUE:LABEL``."""
    parts = text.split(":")
    if len(parts) not in (2, 3):
        raise argparse.ArgumentTypeError(f"expected ANGLE:VALUE, got {text!r}")
    try:
        angle = float(parts[0])
        value = float(parts[1])
    except ValueError as exc:
        raise argparse.ArgumentTypeError(f"invalid weight {text!r}") from exc
    label = parts[2] if len(parts) == 3 else ""
    return DirectionWeight(angle, value, label)


def main() -> None:
    ap = argparse.ArgumentParser(
        description="Grow an oxide layer inward from the first path of an SVG."
    )
    ap.add_argument("--input", required=True, help="Input SVG; the first <path> is used")
    ap.add_argument("--output", required=True, help="Output SVG with the grown layer")
    ap.add_argument("--uniform", type=float, default=2.0, help="Uniform growth")
    ap.add_argument(
        "--weight",
        action="append",
        default=[],
        help="Directional keyframe ANGLE:VALUE in degrees (repeatable)",
    )
    ap.add_argument("--mirror", action="store_true", help="Mirror-symmetric field")
    ap.add_argument(
        "--progress", type=float, default=1.0, help="Growth progress in [0, 1]"
    )
    ap.add_argument(
        "--spacing", type=float, default=DEFAULT_SPACING, help="Sample spacing"
    )
    ap.add_argument(
        "--resolution",
        type=float,
        default=None,
        help="Envelope arc step (default: derived from mean growth)",
    )
    ap.add_argument(
        "--both_sides",
        action="store_true",
        help="Open paths: keep material on both sides of the chain",
    )
    ap.add_argument(
        "--merge_threshold",
        type=float,
        default=ENDPOINT_MERGE_THRESHOLD,
        help="Close open paths whose endpoints are this close",
    )
    ap.add_argument("-v", "--verbose", action="store_true", help="Enable debug logs")

    args = cast(CliArgs, ap.parse_args())
    debug.set_verbose(args.verbose)

    if not 0.0 <= args.progress <= 1.0:
        raise ValueError("progress must be in [0, 1]")

    weights = tuple(parse_weight(w) for w in args.weight)
    field = ThicknessField(
        uniform=args.uniform,
        weights=weights,
        mirror_symmetry=args.mirror,
        progress=args.progress,
        spacing=args.spacing,
    )

    path = load_path_nodes(args.input)
    nodes, closed = merge_endpoints_if_close(
        path.nodes, path.closed, threshold=args.merge_threshold
    )
    if closed and not path.closed:
        debug.log("endpoints merged; path closed", stage="svg")
    path = Path(nodes, closed=closed, name=path.name, color=path.color)

    config = PipelineConfig(
        resolution=args.resolution,
        restrict_to_inward=not args.both_sides,
    )
    cache = PipelineCache()
    (sampled,) = compute_scene([path], lambda _p: field, config, cache=cache)

    viewbox, canvas_size = load_svg_canvas(args.input)
    export_sampled_paths_svg(
        args.output,
        [path],
        [sampled],
        viewbox=viewbox,
        canvas_size=canvas_size,
    )

    summary = summarize_shape(sampled.samples.positions, path.name)
    stats = thickness_stats(sampled)
    if summary is not None:
        debug.log(
            f"outer: {summary.kind} {summary.primary:.4g} x {summary.secondary:.4g}",
            stage="metrics",
        )
    if debug_helpers.fallback_counts():
        debug.log(f"fallbacks: {debug_helpers.fallback_counts()}", stage="metrics")
    thickness_text = (
        f"thickness={stats.minimum:.4g}..{stats.maximum:.4g}" if stats else "thickness=n/a"
    )
    print(
        f"Saved: {args.output}  samples={len(sampled.samples)} "
        f"length={sampled.length:.6g} inner_area={inner_area(sampled):.6g} "
        f"{thickness_text}"
    )


if __name__ == "__main__":
    main()
