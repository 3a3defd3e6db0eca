"""Interval arithmetic on circle boundaries.

Arcs are ``(start, end)`` pairs in radians with ``0 <= start <= end <= 2pi``.
A visible set is a sorted list of non-overlapping arcs; occluders are removed
from it by interval difference, which gives the same result in any order.
"""

from __future__ import annotations

import math
from typing import Iterable

from .constants import ARC_EPS, TWO_PI
from .contour_types import Arc

FULL_CIRCLE: Arc = (0.0, TWO_PI)


def wrap_angle(angle: float) -> float:
    """Map an angle into [0, 2pi)."""
    wrapped = math.fmod(angle, TWO_PI)
    if wrapped < 0.0:
        wrapped += TWO_PI
    if wrapped >= TWO_PI:
        wrapped = 0.0
    return wrapped


def angle_distance(a: float, b: float) -> float:
    """Shortest circular distance between two angles."""
    d = abs(wrap_angle(a) - wrap_angle(b))
    return min(d, TWO_PI - d)


def interval_around(center: float, half_width: float) -> list[Arc]:
    """``[center - half_width, center + half_width]`` split at the 0/2pi seam."""

    if half_width <= 0.0:
        return []
    if half_width >= math.pi:
        return [FULL_CIRCLE]
    start = wrap_angle(center - half_width)
    end = start + 2.0 * half_width
    if end <= TWO_PI:
        return [(start, end)]
    return [(start, TWO_PI), (0.0, end - TWO_PI)]


def subtract_interval(visible: list[Arc], occluder: Arc) -> list[Arc]:
    o_start, o_end = occluder
    out: list[Arc] = []
    for start, end in visible:
        if o_end <= start or o_start >= end:
            out.append((start, end))
            continue
        if o_start > start and o_start - start > ARC_EPS:
            out.append((start, o_start))
        if o_end < end and end - o_end > ARC_EPS:
            out.append((o_end, end))
    return out


def subtract_all(visible: list[Arc], occluders: Iterable[Arc]) -> list[Arc]:
    for occ in occluders:
        if not visible:
            break
        visible = subtract_interval(visible, occ)
    return visible


def total_measure(arcs: Iterable[Arc]) -> float:
    return float(sum(end - start for start, end in arcs))


def merge_seam(arcs: list[Arc]) -> list[Arc]:
    """Fuse a piece ending at 2pi with one starting at 0.

    The fused arc keeps ``start`` in [0, 2pi) and has ``end`` beyond 2pi, so it
    can be walked as one continuous range of angles.
    """

    if len(arcs) < 2:
        return list(arcs)
    ordered = sorted(arcs)
    first = ordered[0]
    last = ordered[-1]
    if first[0] <= ARC_EPS and last[1] >= TWO_PI - ARC_EPS:
        fused = (last[0], TWO_PI + first[1])
        return ordered[1:-1] + [fused]
    return ordered


def arc_contains(arc: Arc, angle: float) -> bool:
    start, end = arc
    a = wrap_angle(angle)
    if start - ARC_EPS <= a <= end + ARC_EPS:
        return True
    # Seam-fused arcs extend past 2pi.
    return end > TWO_PI and a + TWO_PI <= end + ARC_EPS


def arc_midpoint(arc: Arc) -> float:
    return 0.5 * (arc[0] + arc[1])
