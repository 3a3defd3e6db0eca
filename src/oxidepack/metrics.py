from __future__ import annotations

from dataclasses import dataclass

import numpy as np

from .geometry import signed_area
from .model import SampledPath

# Extents below this are reported as zero.
EXTENT_EPS = 1e-3


@dataclass(frozen=True)
class Bounds:
    min_x: float
    min_y: float
    max_x: float
    max_y: float
    width: float
    height: float


@dataclass(frozen=True)
class ShapeSummary:
    """``kind`` is ``circle``, ``oval`` or ``complex``.

    circle: ``primary`` is the diameter. oval: ``primary``/``secondary`` are
    the horizontal/vertical extents. complex: longest/shortest extent.
    """

    kind: str
    primary: float
    secondary: float
    bounds: Bounds


@dataclass(frozen=True)
class ThicknessStats:
    minimum: float
    maximum: float
    mean: float


def _extent(value: float) -> float:
    if not np.isfinite(value):
        return 0.0
    value = max(value, 0.0)
    return 0.0 if value < EXTENT_EPS else value


def compute_bounds(points: np.ndarray) -> Bounds | None:
    """Axis-aligned bounds of the finite rows of an (N,2) array."""
    pts = np.asarray(points, dtype=np.float64).reshape(-1, 2)
    pts = pts[np.isfinite(pts).all(axis=1)]
    if pts.shape[0] == 0:
        return None
    lo = pts.min(axis=0)
    hi = pts.max(axis=0)
    return Bounds(
        float(lo[0]),
        float(lo[1]),
        float(hi[0]),
        float(hi[1]),
        _extent(float(hi[0] - lo[0])),
        _extent(float(hi[1] - lo[1])),
    )


def _shape_kind(bounds: Bounds, name: str, reference: bool) -> str:
    width, height = bounds.width, bounds.height
    if width == 0.0 or height == 0.0:
        return "complex"
    lowered = name.lower()
    if "circle" in lowered:
        return "circle"
    if "oval" in lowered:
        return "oval"
    tolerance = max(0.05, min(min(width, height) * 0.05, 0.5))
    if abs(width - height) <= tolerance:
        return "circle"
    return "oval" if reference else "complex"


def summarize_shape(
    points: np.ndarray, name: str = "", *, reference: bool = False
) -> ShapeSummary | None:
    bounds = compute_bounds(points)
    if bounds is None:
        return None
    width, height = bounds.width, bounds.height
    kind = _shape_kind(bounds, name, reference)
    if kind == "circle":
        diameter = 0.5 * (width + height) if width > 0 and height > 0 else max(width, height)
        return ShapeSummary(kind, diameter, diameter, bounds)
    if kind == "oval":
        return ShapeSummary(kind, width, height, bounds)
    return ShapeSummary(kind, max(width, height), min(width, height), bounds)


def inner_area(sampled: SampledPath) -> float:
    """Unsigned area enclosed by the inner contour (0 for open chains)."""
    if not sampled.samples.closed or sampled.inner_samples.shape[0] < 3:
        return 0.0
    return abs(signed_area(sampled.inner_samples))


def thickness_stats(sampled: SampledPath) -> ThicknessStats | None:
    t = sampled.samples.thickness
    t = t[np.isfinite(t)]
    if t.size == 0:
        return None
    return ThicknessStats(float(t.min()), float(t.max()), float(t.mean()))
