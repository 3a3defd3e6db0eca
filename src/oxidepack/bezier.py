from __future__ import annotations

import numpy as np
from beartype import beartype
from jaxtyping import Float, jaxtyped
from svgpathtools import CubicBezier  # type: ignore[reportMissingTypeStubs]

from .constants import CURVATURE_DT
from .contour_types import BezierControls
from .model import Path


def segment_controls(path: Path) -> list[BezierControls]:
    """Cubic control points (p0, c1, c2, p3) for every segment of a path.

    A missing handle collapses onto its own anchor, which turns the segment
    into a straight line when both are absent. Closed paths get the closing
    segment from the last node back to the first.
    """

    nodes = path.nodes
    if len(nodes) < 2:
        return []
    n_segments = len(nodes) if path.effective_closed else len(nodes) - 1
    segs: list[BezierControls] = []
    for i in range(n_segments):
        cur = nodes[i]
        nxt = nodes[(i + 1) % len(nodes)]
        p0 = np.asarray(cur.point, dtype=np.float64)
        c1 = np.asarray(cur.handle_out or cur.point, dtype=np.float64)
        c2 = np.asarray(nxt.handle_in or nxt.point, dtype=np.float64)
        p3 = np.asarray(nxt.point, dtype=np.float64)
        segs.append((p0, c1, c2, p3))
    return segs


@jaxtyped(typechecker=beartype)
def cubic_point(
    p0: Float[np.ndarray, "2"],
    c1: Float[np.ndarray, "2"],
    c2: Float[np.ndarray, "2"],
    p3: Float[np.ndarray, "2"],
    t: Float[np.ndarray, "T"],
) -> Float[np.ndarray, "T 2"]:
    s = (1.0 - t)[:, None]
    u = t[:, None]
    return s**3 * p0 + 3.0 * s**2 * u * c1 + 3.0 * s * u**2 * c2 + u**3 * p3


@jaxtyped(typechecker=beartype)
def cubic_derivative(
    p0: Float[np.ndarray, "2"],
    c1: Float[np.ndarray, "2"],
    c2: Float[np.ndarray, "2"],
    p3: Float[np.ndarray, "2"],
    t: Float[np.ndarray, "T"],
) -> Float[np.ndarray, "T 2"]:
    s = (1.0 - t)[:, None]
    u = t[:, None]
    return 3.0 * s**2 * (c1 - p0) + 6.0 * s * u * (c2 - c1) + 3.0 * u**2 * (p3 - c2)


@jaxtyped(typechecker=beartype)
def cubic_second_derivative(
    p0: Float[np.ndarray, "2"],
    c1: Float[np.ndarray, "2"],
    c2: Float[np.ndarray, "2"],
    p3: Float[np.ndarray, "2"],
    t: Float[np.ndarray, "T"],
) -> Float[np.ndarray, "T 2"]:
    s = (1.0 - t)[:, None]
    u = t[:, None]
    return 6.0 * s * (c2 - 2.0 * c1 + p0) + 6.0 * u * (p3 - 2.0 * c2 + c1)


def cubic_length(
    p0: np.ndarray,
    c1: np.ndarray,
    c2: np.ndarray,
    p3: np.ndarray,
) -> float:
    """Arc length of one cubic segment, integrated by svgpathtools."""

    if np.allclose(p0, c1) and np.allclose(c1, c2) and np.allclose(c2, p3):
        return 0.0
    seg = CubicBezier(
        complex(p0[0], p0[1]),
        complex(c1[0], c1[1]),
        complex(c2[0], c2[1]),
        complex(p3[0], p3[1]),
    )
    return float(seg.length(error=1e-6))


@jaxtyped(typechecker=beartype)
def estimate_curvature(
    p0: Float[np.ndarray, "2"],
    c1: Float[np.ndarray, "2"],
    c2: Float[np.ndarray, "2"],
    p3: Float[np.ndarray, "2"],
    t: Float[np.ndarray, "T"],
    dt: float = CURVATURE_DT,
) -> Float[np.ndarray, "T"]:
    """Signed curvature ``(d x dd) / |d|^3`` with a central-difference dd."""

    d = cubic_derivative(p0, c1, c2, p3, t)
    t_hi = np.minimum(1.0, t + dt)
    t_lo = np.maximum(0.0, t - dt)
    ahead = cubic_derivative(p0, c1, c2, p3, t_hi)
    behind = cubic_derivative(p0, c1, c2, p3, t_lo)
    # One-sided at the segment ends.
    dd = (ahead - behind) / np.maximum(t_hi - t_lo, dt)[:, None]
    num = d[:, 0] * dd[:, 1] - d[:, 1] * dd[:, 0]
    den = np.power(np.sum(d * d, axis=1), 1.5)
    den = np.where(den > 0.0, den, 1.0)
    return num / den


def beziers_to_svg_path_d(
    segs: list[BezierControls],
    *,
    closed: bool = False,
    precision: int = 3,
) -> str:
    """Build an SVG path 'd' string from cubic Bezier segments."""

    if not segs:
        return ""
    fmt = f".{int(precision)}f"

    def f(x: float) -> str:
        return format(float(x), fmt)

    p0 = segs[0][0]
    parts = [f"M {f(p0[0])},{f(p0[1])}"]
    for _p0, c1, c2, p3 in segs:
        parts.append(
            f"C {f(c1[0])},{f(c1[1])} {f(c2[0])},{f(c2[1])} {f(p3[0])},{f(p3[1])}"
        )
    if closed:
        parts.append("Z")
    return " ".join(parts)
