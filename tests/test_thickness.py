import math

import numpy as np
import pytest

from src.oxidepack.constants import MAX_THICKNESS
from src.oxidepack.model import DirectionWeight, ThicknessField
from src.oxidepack.thickness import (
    eval_thickness,
    eval_thickness_for_angle,
    eval_thickness_for_angles,
    keyframes,
)
from src.oxidepack.normals import recompute_normals
from src.oxidepack.presets import circle_path
from src.oxidepack.sampler import adaptive_sample_path

THETAS = np.linspace(-math.pi, math.pi, 37)


def test_uniform_only() -> None:
    field = ThicknessField(uniform=1.5)
    np.testing.assert_allclose(eval_thickness_for_angles(THETAS, field), 1.5)


def test_single_weight_is_constant() -> None:
    field = ThicknessField(uniform=0.5, weights=(DirectionWeight(30.0, 1.5),))
    np.testing.assert_allclose(eval_thickness_for_angles(THETAS, field), 2.0)


def test_linear_interpolation_and_wrap() -> None:
    field = ThicknessField(
        uniform=0.0,
        weights=(DirectionWeight(0.0, 0.0), DirectionWeight(90.0, 2.0)),
    )
    assert eval_thickness_for_angle(math.radians(45.0), field) == pytest.approx(1.0)
    assert eval_thickness_for_angle(math.radians(90.0), field) == pytest.approx(2.0)
    # The wrapped gap runs 90 -> 360; 270 deg is two thirds of the way along it.
    assert eval_thickness_for_angle(math.radians(270.0), field) == pytest.approx(2.0 / 3.0)
    assert eval_thickness_for_angle(math.radians(-90.0), field) == pytest.approx(2.0 / 3.0)


def test_keyframes_sorted_in_pi_range() -> None:
    field = ThicknessField(
        uniform=0.0,
        weights=(DirectionWeight(270.0, 1.0), DirectionWeight(180.0, 2.0), DirectionWeight(0.0, 3.0)),
    )
    angles, values = keyframes(field)
    np.testing.assert_allclose(angles, [-math.pi / 2, 0.0, math.pi])
    np.testing.assert_allclose(values, [1.0, 3.0, 2.0])


def test_mirror_symmetry_averages_reflection() -> None:
    field = ThicknessField(
        uniform=0.0,
        weights=(DirectionWeight(0.0, 2.0), DirectionWeight(180.0, 0.0)),
        mirror_symmetry=True,
    )
    values = eval_thickness_for_angles(THETAS, field)
    reflected = eval_thickness_for_angles(math.pi - THETAS, field)
    np.testing.assert_allclose(values, reflected, atol=1e-12)
    assert eval_thickness_for_angle(0.0, field) == pytest.approx(1.0)


@pytest.mark.parametrize(
    ("progress", "expected"),
    [(0.0, 0.0), (0.5, 1.0), (1.0, 2.0), (2.0, 2.0), (-1.0, 0.0)],
)
def test_progress_scales_and_clamps(progress: float, expected: float) -> None:
    field = ThicknessField(uniform=2.0, progress=progress)
    np.testing.assert_allclose(eval_thickness_for_angles(THETAS, field), expected)


def test_total_is_clamped() -> None:
    assert eval_thickness_for_angle(0.0, ThicknessField(uniform=50.0)) == MAX_THICKNESS
    assert eval_thickness_for_angle(0.0, ThicknessField(uniform=-3.0)) == 0.0


def test_non_finite_angle_gives_zero() -> None:
    field = ThicknessField(uniform=1.0)
    out = eval_thickness_for_angles(np.array([math.nan, 0.0, math.inf]), field)
    np.testing.assert_allclose(out, [0.0, 1.0, 0.0])


def test_eval_thickness_uses_inward_direction() -> None:
    # Only growth pointing east (+x): the west side of a circle grows.
    field = ThicknessField(
        uniform=0.0,
        weights=(
            DirectionWeight(0.0, 2.0),
            DirectionWeight(90.0, 0.0),
            DirectionWeight(180.0, 0.0),
            DirectionWeight(270.0, 0.0),
        ),
    )
    samples, _ = adaptive_sample_path(circle_path((0.0, 0.0), 10.0), spacing=1.0)
    samples = eval_thickness(recompute_normals(samples), field)
    west = int(np.argmin(samples.positions[:, 0]))
    east = int(np.argmax(samples.positions[:, 0]))
    assert samples.thickness[west] == pytest.approx(2.0, abs=0.05)
    assert samples.thickness[east] == pytest.approx(0.0, abs=0.05)
