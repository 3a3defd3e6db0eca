from __future__ import annotations

import numpy as np
from beartype import beartype
from jaxtyping import Float, jaxtyped
from shapely.errors import GEOSException
from shapely.geometry import LineString, MultiPolygon, Polygon
from shapely.geometry.base import BaseGeometry
from shapely.geometry.polygon import orient
from shapely.ops import polygonize, unary_union

from .constants import GEOM_EPS, MIN_CLEANUP_TOLERANCE, ZERO_EPS
from .geometry import (
    align_loop,
    count_self_intersections,
    resample_closed_polygon,
    signed_area,
    strip_closing_duplicate,
)
from .model import SampleSet
from ..utils import debug, debug_helpers


def smoothing_schedule(resolution: float) -> tuple[float, int]:
    """Damping factor and iteration count for a given envelope resolution."""
    alpha = min(0.2, max(0.05, resolution * 0.4))
    iterations = 2 if resolution <= 0.2 else 1
    return alpha, iterations


@jaxtyped(typechecker=beartype)
def laplacian_smooth(
    points: Float[np.ndarray, "N 2"],
    alpha: float,
    iterations: int,
    *,
    closed: bool = False,
) -> Float[np.ndarray, "N 2"]:
    """Nudge every point toward the midpoint of its neighbours.

    Open polylines keep their two endpoints fixed.
    """

    if points.shape[0] < 3:
        return points
    out = points.astype(np.float64, copy=True)
    for _ in range(int(iterations)):
        if closed:
            mid = 0.5 * (np.roll(out, 1, axis=0) + np.roll(out, -1, axis=0))
            out = out + alpha * (mid - out)
        else:
            mid = 0.5 * (out[:-2] + out[2:])
            inner = out[1:-1] + alpha * (mid - out[1:-1])
            out = np.vstack([out[:1], inner, out[-1:]])
    return out


def enforce_minimum_offset(points: np.ndarray, samples: SampleSet) -> np.ndarray:
    """Push each point inward along its sample's normal to at least its thickness.

    Inward travel is measured along ``-normal`` from the outer position.
    Non-finite points are replaced by the straight-line offset point.
    """

    if points.shape[0] != len(samples):
        return points
    pos = samples.positions
    inward = -samples.normals
    required = np.maximum(samples.thickness, 0.0)
    travel = np.sum((points - pos) * inward, axis=1)
    short = np.isfinite(travel) & (travel < required)
    out = points + np.where(short, required - travel, 0.0)[:, None] * inward
    bad = ~np.isfinite(out).all(axis=1)
    if np.any(bad):
        debug_helpers.note_fallback("non_finite", f"{int(bad.sum())} inner points")
        out[bad] = samples.naive_inner()[bad]
    return out


def pin_zero_thickness(points: np.ndarray, samples: SampleSet) -> np.ndarray:
    """Samples that do not grow keep their outer point exactly."""
    if points.shape[0] != len(samples):
        return points
    zero = samples.thickness <= ZERO_EPS
    if not np.any(zero):
        return points
    out = points.copy()
    out[zero] = samples.positions[zero]
    return out


def _polygons_of(geom: BaseGeometry) -> list[Polygon]:
    if geom.is_empty:
        return []
    if isinstance(geom, Polygon):
        return [geom]
    if isinstance(geom, MultiPolygon):
        return list(geom.geoms)
    parts = getattr(geom, "geoms", ())
    return [g for part in parts for g in _polygons_of(part)]


def _self_union(loop: np.ndarray) -> BaseGeometry:
    ring = LineString(np.vstack([loop, loop[:1]]))
    faces = list(polygonize(unary_union(ring)))
    if faces:
        return unary_union(faces)
    # Nothing enclosed by the noded ring; let GEOS repair the polygon directly.
    poly = Polygon(loop)
    return poly if poly.is_valid else poly.buffer(0)


def cleanup_polygon(
    loop: np.ndarray,
    tolerance: float,
    orientation_sign: float | None = None,
) -> list[np.ndarray]:
    """Split a self-intersecting loop into simple loops.

    The loop is noded, every enclosed face is unioned back together and each
    resulting polygon simplified with ``tolerance``. Loops are returned without
    a closing duplicate, oriented like ``orientation_sign`` when given.
    """

    loop = strip_closing_duplicate(np.asarray(loop, dtype=np.float64))
    if loop.shape[0] < 3 or not np.isfinite(loop).all():
        return []
    try:
        merged = _self_union(loop)
        out: list[np.ndarray] = []
        for poly in _polygons_of(merged):
            simple = poly.simplify(max(tolerance, MIN_CLEANUP_TOLERANCE), preserve_topology=True)
            if simple.is_empty or not isinstance(simple, Polygon) or simple.area <= GEOM_EPS:
                continue
            if orientation_sign is not None:
                simple = orient(simple, sign=1.0 if orientation_sign >= 0 else -1.0)
            coords = np.asarray(simple.exterior.coords, dtype=np.float64)[:-1]
            if coords.shape[0] >= 3:
                out.append(coords)
        return out
    except GEOSException as exc:
        debug_helpers.note_fallback("cleanup", str(exc))
        return []


def select_primary_loop(
    loops: list[np.ndarray],
    orientation_sign: float,
) -> np.ndarray | None:
    """Largest loop by absolute area, wound like ``orientation_sign``."""

    best: np.ndarray | None = None
    best_area = 0.0
    for loop in loops:
        if loop.shape[0] < 3:
            continue
        area = signed_area(loop)
        if abs(area) <= GEOM_EPS:
            continue
        if abs(area) > best_area:
            best_area = abs(area)
            best = loop if area * orientation_sign >= 0 else loop[::-1].copy()
    return best


def finalize_closed(
    dense: np.ndarray,
    aligned: np.ndarray,
    samples: SampleSet,
    resolution: float,
) -> tuple[np.ndarray, list[np.ndarray]]:
    """Smooth, enforce the offset, and repair self-intersections.

    Returns the N inner points and the simple inner polygons.
    """

    n = len(samples)
    naive = samples.naive_inner()
    sign = 1.0 if signed_area(samples.positions) >= 0.0 else -1.0

    alpha, iterations = smoothing_schedule(resolution)
    smoothed = laplacian_smooth(aligned, alpha, iterations, closed=True)
    enforced = enforce_minimum_offset(smoothed, samples)

    crossings = count_self_intersections(enforced)
    if not crossings:
        inner = pin_zero_thickness(enforced, samples)
        return inner, [inner]

    debug.log(f"{crossings} self-intersecting edge pairs", stage="robust")
    loops = cleanup_polygon(dense, max(resolution, MIN_CLEANUP_TOLERANCE), sign)
    primary = select_primary_loop(loops, sign)
    if primary is None:
        debug_helpers.note_fallback("cleanup_empty", "keeping smoothed loop")
        inner = pin_zero_thickness(smoothed, samples)
        return inner, [inner]

    realigned = align_loop(resample_closed_polygon(primary, n), naive)
    inner = pin_zero_thickness(enforce_minimum_offset(realigned, samples), samples)
    # Secondary pockets follow the main loop, largest first.
    rest = sorted(loops, key=lambda p: abs(signed_area(p)), reverse=True)[1:]
    return inner, [primary] + rest


def finalize_open(
    points: np.ndarray,
    samples: SampleSet,
    resolution: float,
) -> np.ndarray:
    alpha, iterations = smoothing_schedule(resolution)
    smoothed = laplacian_smooth(points, alpha, iterations, closed=False)
    return pin_zero_thickness(enforce_minimum_offset(smoothed, samples), samples)
