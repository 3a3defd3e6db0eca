from __future__ import annotations

import math

import numpy as np

from .bezier import (
    cubic_derivative,
    cubic_length,
    cubic_point,
    estimate_curvature,
    segment_controls,
)
from .constants import DEFAULT_MIN_SAMPLES, GEOM_EPS
from .geometry import polyline_length
from .model import Path, SampleSet
from ..utils import debug

_DEFAULT_TANGENT = (1.0, 0.0)


def _single_node_samples(path: Path) -> SampleSet:
    # Degenerates to a point; the envelope stage turns it into a compass patch.
    tangent = np.array([_DEFAULT_TANGENT])
    normal = np.array([[-tangent[0, 1], tangent[0, 0]]])
    return SampleSet(
        positions=np.array([path.nodes[0].point], dtype=np.float64),
        tangents=tangent,
        normals=normal,
        thickness=np.zeros(1),
        curvature=np.zeros(1),
        parameter=np.zeros(1),
        segment_index=np.zeros(1, dtype=np.int64),
        closed=False,
    )


def _start_direction(
    p0: np.ndarray, c1: np.ndarray, c2: np.ndarray, p3: np.ndarray
) -> np.ndarray:
    """Unit direction a cubic leaves ``p0`` in, past any collapsed handles."""
    for target in (c1, c2, p3):
        d = target - p0
        norm = float(np.linalg.norm(d))
        if norm > GEOM_EPS:
            return d / norm
    return np.array(_DEFAULT_TANGENT)


def _sample_segments(path: Path, steps_for: list[int]) -> SampleSet:
    closed = path.effective_closed
    segs = segment_controls(path)
    positions: list[np.ndarray] = []
    tangents: list[np.ndarray] = []
    curvature: list[np.ndarray] = []
    seg_index: list[np.ndarray] = []

    last_tangent: np.ndarray | None = None
    for i, ((p0, c1, c2, p3), steps) in enumerate(zip(segs, steps_for)):
        t = np.arange(steps + 1, dtype=np.float64) / steps
        if positions:
            # Shared with the end of the previous segment.
            t = t[1:]
        pts = cubic_point(p0, c1, c2, p3, t)
        deriv = cubic_derivative(p0, c1, c2, p3, t)
        norms = np.linalg.norm(deriv, axis=1)
        tan = np.empty_like(deriv)
        for k in range(t.shape[0]):
            if norms[k] > GEOM_EPS and np.isfinite(norms[k]):
                last_tangent = deriv[k] / norms[k]
            elif last_tangent is None:
                last_tangent = _start_direction(p0, c1, c2, p3)
            tan[k] = last_tangent
        positions.append(pts)
        tangents.append(tan)
        curvature.append(estimate_curvature(p0, c1, c2, p3, t))
        seg_index.append(np.full(t.shape[0], i, dtype=np.int64))

    P = np.concatenate(positions)
    T = np.concatenate(tangents)
    K = np.concatenate(curvature)
    S = np.concatenate(seg_index)
    if closed and P.shape[0] > 1:
        # The closing segment ends on the very first sample.
        P, T, K, S = P[:-1], T[:-1], K[:-1], S[:-1]
    elif not closed:
        P[-1] = np.asarray(path.nodes[-1].point, dtype=np.float64)

    normals = np.stack([-T[:, 1], T[:, 0]], axis=1)
    return SampleSet(
        positions=P,
        tangents=T,
        normals=normals,
        thickness=np.zeros(P.shape[0]),
        curvature=K,
        parameter=np.arange(P.shape[0], dtype=np.float64),
        segment_index=S,
        closed=closed,
    )


def adaptive_sample_path(
    path: Path,
    spacing: float,
    min_samples: int = DEFAULT_MIN_SAMPLES,
) -> tuple[SampleSet, float]:
    """Sample a path densely enough that steps are at most ``spacing`` long.

    Every segment gets ``max(min_samples, ceil(length / spacing))`` steps.
    Returns the samples and the polyline length through them.
    """

    if not path.nodes:
        return SampleSet.empty(), 0.0
    if len(path.nodes) == 1:
        return _single_node_samples(path), 0.0

    spacing = max(float(spacing), GEOM_EPS)
    steps: list[int] = []
    for controls in segment_controls(path):
        seg_len = cubic_length(*controls)
        steps.append(max(int(min_samples), int(math.ceil(seg_len / spacing)), 1))
    samples = _sample_segments(path, steps)
    length = polyline_length(samples.positions, closed=samples.closed)
    debug.log(
        f"segments={len(steps)} samples={len(samples)} length={length:.6g}",
        stage="sample",
    )
    return samples, length


def sample_path_uniform(
    path: Path,
    subdivisions_per_segment: float,
) -> tuple[SampleSet, float]:
    """Fixed number of steps per segment, for predictable sample density."""

    if not path.nodes:
        return SampleSet.empty(), 0.0
    if len(path.nodes) == 1:
        return _single_node_samples(path), 0.0

    subdivisions = max(1, int(math.floor(subdivisions_per_segment)))
    samples = _sample_segments(path, [subdivisions] * len(segment_controls(path)))
    length = polyline_length(samples.positions, closed=samples.closed)
    return samples, length
