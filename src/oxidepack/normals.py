from __future__ import annotations

import numpy as np

from .constants import DEFAULT_NORMAL_WINDOW, GEOM_EPS
from .geometry import signed_area
from .model import SampleSet


def _window_sum(tangents: np.ndarray, window: int, closed: bool) -> np.ndarray:
    n = tangents.shape[0]
    acc = np.zeros_like(tangents)
    if closed:
        for off in range(-window, window + 1):
            acc += np.roll(tangents, -off, axis=0)
        return acc
    # Open chains clamp the window at both ends.
    csum = np.vstack([np.zeros((1, 2)), np.cumsum(tangents, axis=0)])
    idx = np.arange(n)
    lo = np.maximum(0, idx - window)
    hi = np.minimum(n - 1, idx + window)
    return csum[hi + 1] - csum[lo]


def recompute_normals(
    samples: SampleSet, window: int = DEFAULT_NORMAL_WINDOW
) -> SampleSet:
    """Smooth tangents over ``[i-window, i+window]`` and rebuild normals.

    ``normal = (-ty, tx)``. Closed outlines are then oriented so every normal
    points out of the enclosed region; for a counter-clockwise loop (positive
    area) that means negating the left perpendicular.
    """

    n = len(samples)
    if n == 0:
        return samples
    window = max(0, int(window))
    raw = samples.tangents
    # A closed window wider than the loop would count samples twice.
    closed_window = min(window, (n - 1) // 2) if samples.closed else window
    summed = _window_sum(raw, closed_window, samples.closed)
    norms = np.linalg.norm(summed, axis=1)
    ok = norms > GEOM_EPS
    tangents = np.where(ok[:, None], summed / np.where(ok, norms, 1.0)[:, None], raw)
    normals = np.stack([-tangents[:, 1], tangents[:, 0]], axis=1)

    if samples.closed and signed_area(samples.positions) > 0.0:
        normals = -normals
    return samples.replace(tangents=tangents, normals=normals)
