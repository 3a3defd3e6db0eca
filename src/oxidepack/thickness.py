"""Directional growth evaluation.

A field is a set of (angle, value) keyframes around the compass. Between two
keyframes the value is interpolated linearly in angle, wrapping from the last
keyframe back to the first. The uniform part is added afterwards, the sum is
clamped to ``[0, MAX_THICKNESS]`` and finally scaled by the growth progress.
"""

from __future__ import annotations

import math

import numpy as np
from beartype import beartype
from jaxtyping import Float, jaxtyped

from .constants import MAX_THICKNESS, TWO_PI
from .model import SampleSet, ThicknessField


def _wrap_pi(angle: np.ndarray) -> np.ndarray:
    """Map angles into (-pi, pi]."""
    wrapped = np.mod(angle + math.pi, TWO_PI) - math.pi
    return np.where(wrapped <= -math.pi, wrapped + TWO_PI, wrapped)


def keyframes(field: ThicknessField) -> tuple[np.ndarray, np.ndarray]:
    """Keyframe angles (radians, ascending in (-pi, pi]) and their values."""

    if not field.weights:
        return np.zeros(0), np.zeros(0)
    angles = _wrap_pi(np.radians([w.angle_deg for w in field.weights]))
    values = np.array([w.value_um for w in field.weights], dtype=np.float64)
    order = np.argsort(angles, kind="stable")
    return angles[order], values[order]


def _directional(
    theta: np.ndarray, angles: np.ndarray, values: np.ndarray
) -> np.ndarray:
    if angles.size == 0:
        return np.zeros_like(theta)
    if angles.size == 1:
        return np.full_like(theta, values[0])
    theta = _wrap_pi(theta)
    # Periodic extension: one wrapped keyframe on each side.
    xs = np.concatenate([[angles[-1] - TWO_PI], angles, [angles[0] + TWO_PI]])
    ys = np.concatenate([[values[-1]], values, [values[0]]])
    return np.interp(theta, xs, ys)


@jaxtyped(typechecker=beartype)
def eval_thickness_for_angles(
    thetas: Float[np.ndarray, "N"],
    field: ThicknessField,
) -> Float[np.ndarray, "N"]:
    """Growth amount for every query angle (radians)."""

    theta = np.asarray(thetas, dtype=np.float64)
    finite = np.isfinite(theta)
    safe = np.where(finite, theta, 0.0)
    angles, values = keyframes(field)
    directional = _directional(safe, angles, values)
    if field.mirror_symmetry:
        directional = 0.5 * (directional + _directional(math.pi - safe, angles, values))
    total = np.clip(field.uniform + directional, 0.0, MAX_THICKNESS)
    progress = min(max(field.progress, 0.0), 1.0)
    result = np.clip(total * progress, 0.0, MAX_THICKNESS)
    return np.where(finite, result, 0.0)


def eval_thickness_for_angle(theta: float, field: ThicknessField) -> float:
    return float(eval_thickness_for_angles(np.array([float(theta)]), field)[0])


def inward_angles(samples: SampleSet) -> np.ndarray:
    """Direction the material grows into at each sample: the reversed normal."""
    return np.arctan2(-samples.normals[:, 1], -samples.normals[:, 0])


def eval_thickness(samples: SampleSet, field: ThicknessField) -> SampleSet:
    if len(samples) == 0:
        return samples
    return samples.replace(
        thickness=eval_thickness_for_angles(inward_angles(samples), field)
    )
