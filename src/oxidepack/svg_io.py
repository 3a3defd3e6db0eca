from __future__ import annotations

import re

from svgpathtools import (  # type: ignore[reportMissingTypeStubs]
    CubicBezier,
    Line,
    svg2paths2,
)

from .model import Node, Path
from ..utils import debug

# Pieces used when turning a quadratic or elliptical segment into cubics.
CURVE_SPLITS = 4


def _xy(z: complex) -> tuple[float, float]:
    return (float(z.real), float(z.imag))


def _as_cubics(seg: object) -> list[tuple[complex, complex, complex, complex]]:
    """Cubic (p0, c1, c2, p3) pieces for any svgpathtools segment."""
    if isinstance(seg, CubicBezier):
        return [(seg.start, seg.control1, seg.control2, seg.end)]
    if isinstance(seg, Line):
        return [(seg.start, seg.start, seg.end, seg.end)]
    # Hermite fit per piece: handles follow the derivative over a third of dt.
    out = []
    dt = 1.0 / CURVE_SPLITS
    for k in range(CURVE_SPLITS):
        t0, t1 = k * dt, (k + 1) * dt
        p0 = seg.point(t0)  # type: ignore[attr-defined]
        p3 = seg.point(t1)  # type: ignore[attr-defined]
        d0 = seg.derivative(t0)  # type: ignore[attr-defined]
        d1 = seg.derivative(t1)  # type: ignore[attr-defined]
        out.append((p0, p0 + d0 * dt / 3.0, p3 - d1 * dt / 3.0, p3))
    return out


def _handle(anchor: complex, control: complex) -> tuple[float, float] | None:
    return None if abs(control - anchor) <= 1e-12 else _xy(control)


def load_path_nodes(svg_path: str, name: str | None = None) -> Path:
    """First ``<path>`` of an SVG file as anchors with cubic handles.

    Lines keep no handles; quadratic and arc segments are converted to
    cubics. A path ending where it started is returned closed.
    """

    paths, attributes, _svg_attributes = svg2paths2(svg_path)
    if len(paths) == 0:
        raise ValueError("No <path> found in SVG.")
    p = paths[0]
    pieces = [c for seg in p for c in _as_cubics(seg)]
    if not pieces:
        raise ValueError("First <path> has no segments.")
    closed = bool(p.isclosed())

    anchors: list[complex] = [pieces[0][0]]
    handles_in: list[tuple[float, float] | None] = [None]
    handles_out: list[tuple[float, float] | None] = []
    for p0, c1, c2, p3 in pieces:
        handles_out.append(_handle(p0, c1))
        anchors.append(p3)
        handles_in.append(_handle(p3, c2))
    handles_out.append(None)

    if closed:
        # The final anchor coincides with the first; carry its incoming handle.
        handles_in[0] = handles_in[-1]
        anchors, handles_in, handles_out = anchors[:-1], handles_in[:-1], handles_out[:-1]

    nodes = tuple(
        Node(_xy(a), h_in, h_out) for a, h_in, h_out in zip(anchors, handles_in, handles_out)
    )
    attrs = attributes[0] if attributes else {}
    label = name if name is not None else str(attrs.get("id", ""))
    debug.log(
        f"loaded {svg_path}: nodes={len(nodes)} closed={closed}", stage="svg"
    )
    return Path(nodes, closed=closed, name=label)


def load_svg_canvas(
    svg_path: str,
) -> tuple[tuple[float, float, float, float] | None, tuple[str, str] | None]:
    """
    Returns (viewbox, canvas_size) if present.
    viewbox: (minx, miny, width, height)
    canvas_size: (width, height) strings with units if provided in the SVG.
    """
    svg_result = svg2paths2(svg_path)
    svg_attributes = svg_result[2] if len(svg_result) > 2 else {}
    viewbox = _parse_viewbox(
        svg_attributes.get("viewBox") or svg_attributes.get("viewbox")
    )

    width = svg_attributes.get("width")
    height = svg_attributes.get("height")
    canvas_size = (width, height) if width and height else None

    if viewbox is None:
        w = _parse_length(width)
        h = _parse_length(height)
        if w is not None and h is not None:
            viewbox = (0.0, 0.0, w, h)

    return viewbox, canvas_size


def _parse_viewbox(viewbox_raw: str | None) -> tuple[float, float, float, float] | None:
    if not viewbox_raw:
        return None
    parts = viewbox_raw.replace(",", " ").split()
    if len(parts) != 4:
        return None
    try:
        minx, miny, w, h = (float(p) for p in parts)
    except ValueError:
        return None
    return minx, miny, w, h


def _parse_length(value: str | None) -> float | None:
    if value is None or "%" in value:
        return None
    match = re.match(
        r"^\s*([+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?)([a-zA-Z]*)\s*$",
        value,
    )
    if not match:
        return None
    return float(match.group(1))
