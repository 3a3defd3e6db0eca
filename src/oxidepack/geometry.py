from __future__ import annotations

import numpy as np
import shapely
from beartype import beartype
from jaxtyping import Bool, Float, jaxtyped
from shapely.geometry import Polygon

from .constants import GEOM_EPS


@jaxtyped(typechecker=beartype)
def polyline_length(
    x: Float[np.ndarray, "M 2"],
    *,
    closed: bool = False,
) -> float:
    """Polyline length in world units."""

    if x.shape[0] < 2:
        return 0.0
    length = float(np.sum(np.linalg.norm(x[1:] - x[:-1], axis=1)))
    if closed:
        length += float(np.linalg.norm(x[0] - x[-1]))
    return length


@jaxtyped(typechecker=beartype)
def signed_area(points: Float[np.ndarray, "N 2"]) -> float:
    """Shoelace area, positive for counter-clockwise loops (y up)."""

    if points.shape[0] < 3:
        return 0.0
    x = points[:, 0]
    y = points[:, 1]
    return 0.5 * float(np.sum(x * np.roll(y, -1) - np.roll(x, -1) * y))


@jaxtyped(typechecker=beartype)
def strip_closing_duplicate(
    loop: Float[np.ndarray, "N 2"], eps: float = GEOM_EPS
) -> Float[np.ndarray, "M 2"]:
    if loop.shape[0] >= 2 and float(np.linalg.norm(loop[0] - loop[-1])) <= eps:
        return loop[:-1]
    return loop


@jaxtyped(typechecker=beartype)
def resample_closed_polygon(
    polygon: Float[np.ndarray, "N 2"],
    count: int,
) -> Float[np.ndarray, "K 2"]:
    """``count`` points at uniform arc length around a closed polygon.

    The first output point is the first polygon vertex; the closing edge
    back to the start is part of the perimeter.
    """

    if polygon.shape[0] == 0 or count <= 0:
        return np.zeros((max(count, 0), 2), dtype=np.float64)
    P = polygon.astype(np.float64)
    nxt = np.roll(P, -1, axis=0)
    seg_len = np.linalg.norm(nxt - P, axis=1)
    total = float(np.sum(seg_len))
    if total == 0.0:
        return np.repeat(P[:1], count, axis=0)
    cum = np.cumsum(seg_len)
    targets = (np.arange(count, dtype=np.float64) / count) * total
    # First segment whose end reaches the target.
    seg = np.searchsorted(cum, targets, side="left")
    seg = np.minimum(seg, P.shape[0] - 1)
    start = cum[seg] - seg_len[seg]
    with np.errstate(divide="ignore", invalid="ignore"):
        t = np.where(seg_len[seg] > 0.0, (targets - start) / seg_len[seg], 0.0)
    t = np.clip(t, 0.0, 1.0)[:, None]
    return (1.0 - t) * P[seg] + t * nxt[seg]


@jaxtyped(typechecker=beartype)
def resample_open_polyline(
    polyline: Float[np.ndarray, "N 2"],
    count: int,
) -> Float[np.ndarray, "K 2"]:
    """``count`` points at uniform arc length, both endpoints included."""

    if polyline.shape[0] == 0 or count <= 0:
        return np.zeros((max(count, 0), 2), dtype=np.float64)
    P = polyline.astype(np.float64)
    if count == 1 or P.shape[0] == 1:
        return np.repeat(P[:1], count, axis=0)
    seg_len = np.linalg.norm(P[1:] - P[:-1], axis=1)
    total = float(np.sum(seg_len))
    if total == 0.0:
        idx = np.minimum(np.arange(count), P.shape[0] - 1)
        return P[idx].copy()
    cum = np.cumsum(seg_len)
    targets = (np.arange(count, dtype=np.float64) / (count - 1)) * total
    seg = np.searchsorted(cum, targets, side="left")
    seg = np.minimum(seg, seg_len.shape[0] - 1)
    start = cum[seg] - seg_len[seg]
    with np.errstate(divide="ignore", invalid="ignore"):
        t = np.where(seg_len[seg] > 0.0, (targets - start) / seg_len[seg], 0.0)
    t = np.clip(t, 0.0, 1.0)[:, None]
    return (1.0 - t) * P[seg] + t * P[seg + 1]


@jaxtyped(typechecker=beartype)
def align_loop(
    loop: Float[np.ndarray, "N 2"],
    anchor: Float[np.ndarray, "M 2"],
) -> Float[np.ndarray, "N 2"]:
    """Rotate/reverse a closed loop to best match ``anchor`` index by index.

    Every starting index of both orientations is scored by the sum of squared
    distances; the first strictly smaller score wins, forward rotations
    before reversed ones. Loops of different length are returned unchanged.
    """

    n = loop.shape[0]
    if n != anchor.shape[0] or n == 0:
        return loop
    best = loop
    best_score = np.inf
    for oriented in (loop, loop[::-1]):
        for shift in range(n):
            rotated = np.roll(oriented, -shift, axis=0)
            score = float(np.sum((rotated - anchor) ** 2))
            if score < best_score:
                best_score = score
                best = rotated
    return np.ascontiguousarray(best)


def _orient(a: np.ndarray, b: np.ndarray, c: np.ndarray) -> np.ndarray:
    return (b[..., 0] - a[..., 0]) * (c[..., 1] - a[..., 1]) - (
        b[..., 1] - a[..., 1]
    ) * (c[..., 0] - a[..., 0])


def _on_segment(a: np.ndarray, b: np.ndarray, c: np.ndarray, eps: float) -> np.ndarray:
    """c lies within the bounding box of segment ab."""
    lo = np.minimum(a, b) - eps
    hi = np.maximum(a, b) + eps
    return np.all((lo <= c) & (c <= hi), axis=-1)


def segments_intersect(
    a1: np.ndarray,
    a2: np.ndarray,
    b1: np.ndarray,
    b2: np.ndarray,
    eps: float = GEOM_EPS,
) -> np.ndarray:
    """Orientation test for segment pairs; broadcasts over leading axes.

    Proper crossings and touching/collinear overlaps both count.
    """

    o1 = _orient(a1, a2, b1)
    o2 = _orient(a1, a2, b2)
    o3 = _orient(b1, b2, a1)
    o4 = _orient(b1, b2, a2)

    crossing = (o1 * o2 < -eps) & (o3 * o4 < -eps)
    touch = (
        ((np.abs(o1) <= eps) & _on_segment(a1, a2, b1, eps))
        | ((np.abs(o2) <= eps) & _on_segment(a1, a2, b2, eps))
        | ((np.abs(o3) <= eps) & _on_segment(b1, b2, a1, eps))
        | ((np.abs(o4) <= eps) & _on_segment(b1, b2, a2, eps))
    )
    return crossing | touch


@jaxtyped(typechecker=beartype)
def count_self_intersections(
    loop: Float[np.ndarray, "N 2"],
    eps: float = GEOM_EPS,
) -> int:
    """Number of intersecting non-adjacent edge pairs of a closed loop."""

    n = loop.shape[0]
    if n < 4:
        return 0
    starts = loop
    ends = np.roll(loop, -1, axis=0)
    total = 0
    for i in range(n - 2):
        j = np.arange(i + 2, n)
        if i == 0:
            # Edge n-1 closes onto edge 0.
            j = j[j != n - 1]
        if j.size == 0:
            continue
        hits = segments_intersect(starts[i], ends[i], starts[j], ends[j], eps)
        total += int(np.count_nonzero(hits))
    return total


@jaxtyped(typechecker=beartype)
def has_self_intersections(
    loop: Float[np.ndarray, "N 2"],
    eps: float = GEOM_EPS,
) -> bool:
    return count_self_intersections(loop, eps) > 0


@jaxtyped(typechecker=beartype)
def points_inside(
    polygon: Float[np.ndarray, "N 2"],
    points: Float[np.ndarray, "M 2"],
) -> Bool[np.ndarray, "M"]:
    """Strict point-in-polygon test against the outer loop."""

    if polygon.shape[0] < 3 or points.shape[0] == 0:
        return np.zeros(points.shape[0], dtype=bool)
    poly = Polygon(polygon)
    if not poly.is_valid:
        poly = shapely.make_valid(poly)
    return np.asarray(
        shapely.contains_xy(poly, points[:, 0], points[:, 1]), dtype=bool
    )
