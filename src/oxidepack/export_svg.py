from __future__ import annotations

from typing import Sequence

import numpy as np
import svgwrite  # type: ignore[reportMissingTypeStubs]

from .bezier import beziers_to_svg_path_d, segment_controls
from .model import Path, SampledPath


def _to_point_list(points: np.ndarray) -> list[tuple[float, float]]:
    return [(float(p[0]), float(p[1])) for p in points]


def _scene_viewbox(
    results: Sequence[SampledPath], pad: float
) -> tuple[float, float, float, float]:
    parts = [r.samples.positions for r in results if len(r.samples)]
    parts += [poly for r in results for poly in r.inner_polygons]
    allp = np.vstack(parts) if parts else np.zeros((1, 2))
    allp = allp[np.isfinite(allp).all(axis=1)]
    if allp.shape[0] == 0:
        allp = np.zeros((1, 2))
    minx, miny = allp.min(axis=0)
    maxx, maxy = allp.max(axis=0)
    return (
        float(minx - pad),
        float(miny - pad),
        float((maxx - minx) + 2 * pad),
        float((maxy - miny) + 2 * pad),
    )


def export_sampled_paths_svg(
    out_path: str,
    paths: Sequence[Path],
    results: Sequence[SampledPath],
    stroke_width: float | str = 1.0,
    inner_stroke: str = "#dc2626",
    fill: str = "#f97316",
    fill_opacity: float = 0.35,
    viewbox: tuple[float, float, float, float] | None = None,
    canvas_size: tuple[float, float] | tuple[str, str] | None = None,
    show_samples: bool = False,
) -> None:
    """
    One group per path: grown material polygons, the outer path (drawn from
    its own cubic segments in the path colour) and the inner contour.
    """
    if len(paths) != len(results):
        raise ValueError("paths and results must have the same length")

    if viewbox is None:
        viewbox = _scene_viewbox(results, pad=10.0)

    if canvas_size is None:
        dwg = svgwrite.Drawing(out_path, profile="tiny")
    else:
        dwg = svgwrite.Drawing(out_path, profile="tiny", size=canvas_size)
    dwg.attribs["viewBox"] = f"{viewbox[0]} {viewbox[1]} {viewbox[2]} {viewbox[3]}"

    for path, sampled in zip(paths, results):
        group = dwg.g()
        for poly in sampled.inner_polygons:
            if poly.shape[0] < 3:
                continue
            group.add(
                dwg.polygon(
                    points=_to_point_list(poly),
                    fill=fill,
                    fill_opacity=fill_opacity,
                    stroke="none",
                )
            )

        closed = path.effective_closed
        d = beziers_to_svg_path_d(segment_controls(path), closed=closed)
        if d:
            group.add(
                dwg.path(d=d, stroke=path.color, fill="none", stroke_width=stroke_width)
            )

        inner = sampled.inner_samples
        if inner.shape[0] >= 2:
            shape = dwg.polygon if closed else dwg.polyline
            group.add(
                shape(
                    points=_to_point_list(inner),
                    stroke=inner_stroke,
                    fill="none",
                    stroke_width=stroke_width,
                )
            )

        if show_samples:
            for p in sampled.samples.positions:
                group.add(dwg.circle(center=(float(p[0]), float(p[1])), r=0.5, fill=path.color))
        dwg.add(group)

    dwg.save()
