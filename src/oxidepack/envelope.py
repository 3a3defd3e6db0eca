"""Inward envelope of per-sample growth disks.

Every sample carries a disk whose radius is the growth amount in the sample's
inward direction. The grown boundary is the part of the disks' union boundary
that faces into the material. Per disk, the arcs covered by other disks are
subtracted from the full circle; what is left is the disk's visible material.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, replace

import numpy as np
from beartype import beartype
from jaxtyping import Float, jaxtyped

from . import arcs as arc_ops
from .constants import (
    CANDIDATE_WALK_STEPS,
    CENTER_EPS,
    COMPASS_STEPS,
    DEDUPE_FRACTION,
    RADIUS_EPS,
    TWO_PI,
    ZERO_EPS,
)
from .contour_types import Arc
from .geometry import (
    align_loop,
    points_inside,
    resample_closed_polygon,
    resample_open_polyline,
)
from .model import SampleSet, ThicknessField
from .thickness import eval_thickness_for_angles, inward_angles
from ..utils import debug, debug_helpers


@dataclass(frozen=True)
class EnvelopeDisk:
    center: np.ndarray
    radius: float
    inward: float

    def point_at(self, angle: float) -> np.ndarray:
        return self.center + self.radius * np.array([math.cos(angle), math.sin(angle)])


@dataclass(frozen=True)
class DiskEnvelope:
    """What one disk contributes to the envelope.

    ``candidate`` is the disk's representative inner point, ``inward_points``
    the retained visible boundary on the material side (ordered along the
    path) and ``outward_points`` the visible boundary on the other side.
    """

    candidate: np.ndarray
    inward_points: np.ndarray
    outward_points: np.ndarray
    visible_measure: float
    used_fallback: bool


def build_disks(samples: SampleSet) -> list[EnvelopeDisk]:
    inward = inward_angles(samples)
    return [
        EnvelopeDisk(samples.positions[i], float(samples.thickness[i]), float(inward[i]))
        for i in range(len(samples))
    ]


def occluding_intervals(
    centers: np.ndarray,
    radii: np.ndarray,
    i: int,
) -> list[Arc]:
    """Arcs of disk ``i``'s boundary lying inside some other disk."""

    ri = float(radii[i])
    if not math.isfinite(ri) or ri <= ZERO_EPS:
        return []
    delta = centers - centers[i]
    d = np.hypot(delta[:, 0], delta[:, 1])
    others = (np.arange(radii.shape[0]) != i) & (radii > ZERO_EPS) & np.isfinite(d)

    concentric = others & (d <= CENTER_EPS)
    if np.any(concentric & (radii >= ri)):
        return [arc_ops.FULL_CIRCLE]

    overlapping = others & ~concentric & (d < ri + radii - RADIUS_EPS)
    contained = overlapping & (d <= np.abs(ri - radii) + RADIUS_EPS)
    if np.any(contained & (radii >= ri)):
        return [arc_ops.FULL_CIRCLE]

    crossing = np.flatnonzero(overlapping & ~contained)
    if crossing.size == 0:
        return []
    dj = d[crossing]
    rj = radii[crossing]
    cos_phi = (ri * ri + dj * dj - rj * rj) / (2.0 * ri * dj)
    phi = np.arccos(np.clip(cos_phi, -1.0, 1.0))
    toward = np.arctan2(delta[crossing, 1], delta[crossing, 0])

    intervals: list[Arc] = []
    for center, half in zip(toward.tolist(), phi.tolist()):
        intervals.extend(arc_ops.interval_around(center, half))
    return intervals


def visible_arcs(centers: np.ndarray, radii: np.ndarray, i: int) -> list[Arc]:
    if radii[i] <= ZERO_EPS:
        return []
    return arc_ops.subtract_all(
        [arc_ops.FULL_CIRCLE], occluding_intervals(centers, radii, i)
    )


def select_candidate(
    disk: EnvelopeDisk,
    arcs: list[Arc],
    required: float,
    walk_steps: int = CANDIDATE_WALK_STEPS,
) -> tuple[np.ndarray, bool]:
    """Pick the disk's inner point; returns ``(point, used_fallback)``.

    The arc holding the inward direction wins; otherwise the arc whose
    midpoint is angularly closest to it. The chosen arc is walked for the
    point travelling furthest inward past ``required``. Without any arc the
    straight-line offset point is used.
    """

    naive = disk.point_at(disk.inward)
    if disk.radius <= ZERO_EPS or not arcs:
        return naive, True
    merged = arc_ops.merge_seam(arcs)
    containing = [a for a in merged if arc_ops.arc_contains(a, disk.inward)]
    if containing:
        chosen = containing[0]
    else:
        chosen = min(
            merged,
            key=lambda a: arc_ops.angle_distance(arc_ops.arc_midpoint(a), disk.inward),
        )
    angles = np.linspace(chosen[0], chosen[1], walk_steps + 1)
    excess = disk.radius * np.cos(angles - disk.inward) - required
    best = float(angles[int(np.argmax(excess))])
    point = disk.point_at(best)
    if not np.isfinite(point).all():
        return naive, True
    return point, False


def sample_arc(disk: EnvelopeDisk, arc: Arc, resolution: float, max_points: int) -> np.ndarray:
    span = arc[1] - arc[0]
    n = int(math.ceil(span * disk.radius / max(resolution, ZERO_EPS)))
    n = min(max(n, 1), max(max_points - 1, 1))
    angles = np.linspace(arc[0], arc[1], n + 1)
    return disk.center + disk.radius * np.stack([np.cos(angles), np.sin(angles)], axis=1)


def _order_along(points: np.ndarray, center: np.ndarray, tangent: np.ndarray) -> np.ndarray:
    if points.shape[0] < 2:
        return points
    proj = (points - center) @ tangent
    return points[np.argsort(proj, kind="stable")]


def disk_envelopes(
    samples: SampleSet,
    resolution: float,
    *,
    restrict_to_inward: bool = True,
    max_arc_points: int = 256,
) -> list[DiskEnvelope]:
    """Visible material of every disk, split by side of the path.

    Closed outlines keep the boundary points lying strictly inside the outer
    loop; open chains keep the half facing the inward normal. With
    ``restrict_to_inward`` off the opposite half is kept as outward material.
    """

    n = len(samples)
    disks = build_disks(samples)
    centers = samples.positions
    radii = np.where(np.isfinite(samples.thickness), samples.thickness, 0.0)

    per_disk_arcs: list[list[Arc]] = []
    boundary: list[np.ndarray] = []
    for i, disk in enumerate(disks):
        vis = visible_arcs(centers, radii, i)
        per_disk_arcs.append(vis)
        pts = [sample_arc(disk, a, resolution, max_arc_points) for a in arc_ops.merge_seam(vis)]
        boundary.append(np.concatenate(pts) if pts else np.zeros((0, 2)))

    if samples.closed:
        flat = np.concatenate(boundary) if n else np.zeros((0, 2))
        inside = points_inside(samples.positions, flat)
        splits = np.cumsum([b.shape[0] for b in boundary])[:-1]
        inside_per_disk = np.split(inside, splits)
    else:
        inside_per_disk = []
        for disk, pts in zip(disks, boundary):
            direction = np.array([math.cos(disk.inward), math.sin(disk.inward)])
            inside_per_disk.append((pts - disk.center) @ direction >= -ZERO_EPS)

    out: list[DiskEnvelope] = []
    for i, disk in enumerate(disks):
        cand, fallback = select_candidate(disk, per_disk_arcs[i], disk.radius)
        if fallback and disk.radius > ZERO_EPS:
            debug_helpers.note_fallback("naive_offset", f"disk {i} has no visible arc")
        pts = boundary[i]
        keep = inside_per_disk[i]
        tangent = samples.tangents[i]
        inward_pts = _order_along(pts[keep], disk.center, tangent)
        if samples.closed or restrict_to_inward:
            outward_pts = np.zeros((0, 2))
        else:
            outward_pts = _order_along(pts[~keep], disk.center, tangent)
        out.append(
            DiskEnvelope(
                candidate=cand,
                inward_points=inward_pts,
                outward_points=outward_pts,
                visible_measure=arc_ops.total_measure(per_disk_arcs[i]),
                used_fallback=fallback,
            )
        )
    return out


@jaxtyped(typechecker=beartype)
def dedupe_points(
    points: Float[np.ndarray, "N 2"],
    min_dist: float,
    *,
    closed: bool = False,
) -> Float[np.ndarray, "M 2"]:
    """Drop points closer than ``min_dist`` to the previously kept one."""

    if points.shape[0] < 2:
        return points
    keep = [0]
    for k in range(1, points.shape[0]):
        if float(np.linalg.norm(points[k] - points[keep[-1]])) >= min_dist:
            keep.append(k)
    if closed and len(keep) > 1:
        if float(np.linalg.norm(points[keep[-1]] - points[keep[0]])) < min_dist:
            keep.pop()
    return points[keep]


def assemble_dense_loop(
    envelopes: list[DiskEnvelope],
    resolution: float,
    *,
    closed: bool,
    side: str = "inward",
) -> np.ndarray:
    """Concatenate retained boundary points in sample order, deduplicated."""

    parts = [getattr(e, f"{side}_points") for e in envelopes]
    parts = [p for p in parts if p.shape[0]]
    if not parts:
        return np.zeros((0, 2))
    dense = np.concatenate(parts)
    return dedupe_points(dense, DEDUPE_FRACTION * resolution, closed=closed)


def candidates(envelopes: list[DiskEnvelope]) -> np.ndarray:
    if not envelopes:
        return np.zeros((0, 2))
    return np.stack([e.candidate for e in envelopes])


def build_closed_inner(
    samples: SampleSet,
    envelopes: list[DiskEnvelope],
    resolution: float,
) -> tuple[np.ndarray, np.ndarray]:
    """Dense envelope loop and its N-point resample aligned to the samples.

    Returns ``(dense, aligned)``; ``aligned[i]`` belongs to sample ``i``.
    """

    n = len(samples)
    naive = samples.naive_inner()
    dense = assemble_dense_loop(envelopes, resolution, closed=True)
    if dense.shape[0] < 3:
        debug_helpers.note_fallback(
            "dense_loop", f"only {dense.shape[0]} envelope points, using candidates"
        )
        debug.log(
            "envelope collapsed, inner loop is the per-disk candidates", stage="envelope"
        )
        dense = candidates(envelopes)
    debug_helpers.log_points("dense", dense, stage="envelope")
    resampled = resample_closed_polygon(dense, n)
    aligned = align_loop(resampled, naive)
    return dense, aligned


def _trim_end_caps(samples: SampleSet, envelopes: list[DiskEnvelope]) -> list[DiskEnvelope]:
    """Drop the material of the two end disks lying beyond the chain's ends.

    The first and last disks start and stop the inward line at their
    candidates; the caps are covered by the endpoint compass patches.
    """

    if len(envelopes) < 2:
        return envelopes
    first, last = envelopes[0], envelopes[-1]
    head = (first.inward_points - samples.positions[0]) @ samples.tangents[0]
    tail = (last.inward_points - samples.positions[-1]) @ samples.tangents[-1]
    head_out = (first.outward_points - samples.positions[0]) @ samples.tangents[0]
    tail_out = (last.outward_points - samples.positions[-1]) @ samples.tangents[-1]
    trimmed = list(envelopes)
    trimmed[0] = replace(
        first,
        inward_points=np.vstack([first.candidate[None, :], first.inward_points[head > ZERO_EPS]]),
        outward_points=first.outward_points[head_out >= -ZERO_EPS],
    )
    trimmed[-1] = replace(
        last,
        inward_points=np.vstack([last.inward_points[tail < -ZERO_EPS], last.candidate[None, :]]),
        outward_points=last.outward_points[tail_out <= ZERO_EPS],
    )
    return trimmed


def build_open_inner(
    samples: SampleSet,
    envelopes: list[DiskEnvelope],
    resolution: float,
    *,
    restrict_to_inward: bool = True,
) -> tuple[np.ndarray, list[np.ndarray]]:
    """Per-sample inner points and the material polygons of an open chain.

    The inward envelope is resampled to one point per sample; the per-disk
    candidates stand in when it is too short. The material polygon runs along
    the outer samples and back along the inward envelope; with both sides kept
    it runs along the inward envelope and back along the outward one instead.
    """

    n = len(samples)
    envelopes = _trim_end_caps(samples, envelopes)
    inward_line = assemble_dense_loop(envelopes, resolution, closed=False)
    if inward_line.shape[0] >= 2 and n >= 2:
        inner = resample_open_polyline(inward_line, n)
    else:
        inner = candidates(envelopes)
    polygons: list[np.ndarray] = []
    if restrict_to_inward:
        if inward_line.shape[0] >= 2:
            polygons.append(np.vstack([samples.positions, inward_line[::-1]]))
    else:
        outward_line = assemble_dense_loop(
            envelopes, resolution, closed=False, side="outward"
        )
        band = np.vstack([inward_line, outward_line[::-1]])
        if band.shape[0] >= 3:
            polygons.append(band)
    debug.log(
        f"open chain: inward_points={inward_line.shape[0]} polygons={len(polygons)}",
        stage="envelope",
    )
    return inner, polygons


@jaxtyped(typechecker=beartype)
def compass_patch(
    center: Float[np.ndarray, "2"],
    field: ThicknessField,
    steps: int = COMPASS_STEPS,
) -> Float[np.ndarray, "K 2"] | None:
    """Polygon tracing the full thickness field around a single point."""

    steps = max(3, int(steps))
    angles = np.arange(steps, dtype=np.float64) * (TWO_PI / steps)
    radii = eval_thickness_for_angles(angles, field)
    if float(np.max(radii)) <= ZERO_EPS:
        return None
    return center + radii[:, None] * np.stack([np.cos(angles), np.sin(angles)], axis=1)
