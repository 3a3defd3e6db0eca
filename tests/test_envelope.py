import math
from dataclasses import replace

import numpy as np
import pytest

from src.oxidepack.arcs import FULL_CIRCLE, total_measure
from src.oxidepack.envelope import (
    EnvelopeDisk,
    build_closed_inner,
    build_open_inner,
    compass_patch,
    dedupe_points,
    disk_envelopes,
    occluding_intervals,
    select_candidate,
    visible_arcs,
)
from src.oxidepack.model import DirectionWeight, Path, ThicknessField
from src.oxidepack.normals import recompute_normals
from src.oxidepack.presets import circle_path
from src.oxidepack.sampler import adaptive_sample_path
from src.oxidepack.thickness import eval_thickness
from src.utils import debug, debug_helpers

TWO_PI = 2.0 * math.pi


def test_separated_disks_do_not_occlude() -> None:
    centers = np.array([[0.0, 0.0], [5.0, 0.0]])
    radii = np.array([1.0, 1.0])
    assert occluding_intervals(centers, radii, 0) == []
    assert total_measure(visible_arcs(centers, radii, 0)) == pytest.approx(TWO_PI)


def test_crossing_disks_law_of_cosines() -> None:
    centers = np.array([[0.0, 0.0], [1.0, 0.0]])
    radii = np.array([1.0, 1.0])
    occluded = occluding_intervals(centers, radii, 0)
    assert total_measure(occluded) == pytest.approx(2.0 * math.pi / 3.0)
    vis = visible_arcs(centers, radii, 0)
    assert total_measure(vis) == pytest.approx(4.0 * math.pi / 3.0)


def test_contained_disk_fully_hidden() -> None:
    centers = np.array([[0.0, 0.0], [0.5, 0.0]])
    radii = np.array([3.0, 1.0])
    assert visible_arcs(centers, radii, 1) == []
    assert total_measure(visible_arcs(centers, radii, 0)) == pytest.approx(TWO_PI)


def test_concentric_and_zero_radius() -> None:
    centers = np.array([[0.0, 0.0], [0.0, 0.0], [0.2, 0.0]])
    radii = np.array([1.0, 1.0, 0.0])
    assert occluding_intervals(centers, radii, 0) == [FULL_CIRCLE]
    assert visible_arcs(centers, radii, 2) == []


def test_adding_a_disk_never_grows_visibility() -> None:
    rng = np.random.default_rng(0)
    centers = rng.uniform(-2.0, 2.0, size=(6, 2))
    radii = rng.uniform(0.5, 1.5, size=6)
    for i in range(5):
        before = total_measure(visible_arcs(centers[:5], radii[:5], i))
        after = total_measure(visible_arcs(centers, radii, i))
        assert after <= before + 1e-12


def test_select_candidate_prefers_inward() -> None:
    disk = EnvelopeDisk(np.array([1.0, 2.0]), 2.0, math.pi / 2)
    point, fallback = select_candidate(disk, [FULL_CIRCLE], required=2.0)
    assert not fallback
    np.testing.assert_allclose(point, [1.0, 4.0], atol=1e-9)


def test_select_candidate_without_arcs_falls_back() -> None:
    disk = EnvelopeDisk(np.array([0.0, 0.0]), 1.0, 0.0)
    point, fallback = select_candidate(disk, [], required=1.0)
    assert fallback
    np.testing.assert_allclose(point, [1.0, 0.0])


def test_select_candidate_nearest_arc() -> None:
    disk = EnvelopeDisk(np.array([0.0, 0.0]), 1.0, 0.0)
    # Inward direction hidden; the arc closest to it is walked.
    point, fallback = select_candidate(disk, [(0.5, 1.0), (3.0, 4.0)], required=1.0)
    assert not fallback
    np.testing.assert_allclose(point, [math.cos(0.5), math.sin(0.5)], atol=1e-9)


def test_dedupe_points_closed_wrap() -> None:
    pts = np.array([[0.0, 0.0], [0.01, 0.0], [1.0, 0.0], [1.0, 1.0], [0.0, 0.01]])
    out = dedupe_points(pts, 0.1, closed=True)
    np.testing.assert_allclose(out, [[0.0, 0.0], [1.0, 0.0], [1.0, 1.0]])


def test_compass_patch_traces_field() -> None:
    field = ThicknessField(uniform=1.0, weights=(DirectionWeight(0.0, 1.0), DirectionWeight(180.0, 0.0)))
    patch = compass_patch(np.array([2.0, 3.0]), field, steps=16)
    assert patch is not None
    assert patch.shape == (16, 2)
    radii = np.linalg.norm(patch - np.array([2.0, 3.0]), axis=1)
    assert radii[0] == pytest.approx(2.0)
    assert radii[8] == pytest.approx(1.0)
    assert compass_patch(np.array([0.0, 0.0]), ThicknessField(uniform=0.0)) is None


def test_closed_envelope_points_stay_inside() -> None:
    samples, _ = adaptive_sample_path(circle_path((0.0, 0.0), 10.0), spacing=1.0)
    samples = eval_thickness(recompute_normals(samples), ThicknessField(uniform=2.0))
    envelopes = disk_envelopes(samples, resolution=0.5)
    assert len(envelopes) == len(samples)
    for env in envelopes:
        assert not env.used_fallback
        assert env.outward_points.shape == (0, 2)
        r = np.linalg.norm(env.inward_points, axis=1)
        assert float(r.max()) < 10.0
        assert np.linalg.norm(env.candidate) == pytest.approx(8.0, abs=0.15)


def _grown(path, thickness: float, spacing: float = 1.0):
    samples, _ = adaptive_sample_path(path, spacing=spacing)
    return eval_thickness(recompute_normals(samples), ThicknessField(uniform=thickness))


def test_visible_measure_shrinks_with_more_disks() -> None:
    samples = _grown(circle_path((0.0, 0.0), 10.0), 2.0)
    full = disk_envelopes(samples, resolution=0.5)
    every_other = samples.replace(
        positions=samples.positions[::2],
        tangents=samples.tangents[::2],
        normals=samples.normals[::2],
        thickness=samples.thickness[::2],
        curvature=samples.curvature[::2],
        parameter=samples.parameter[::2],
        segment_index=samples.segment_index[::2],
    )
    sparse = disk_envelopes(every_other, resolution=0.5)
    for k, env in enumerate(sparse):
        assert full[2 * k].visible_measure <= env.visible_measure + 1e-12
    radii = samples.thickness
    assert full[0].visible_measure == pytest.approx(
        total_measure(visible_arcs(samples.positions, radii, 0))
    )
    assert all(0.0 < env.visible_measure < TWO_PI for env in full)


def test_open_inward_line_stops_at_the_chain_ends() -> None:
    samples = _grown(Path.from_points([(0.0, 0.0), (10.0, 0.0)]), 1.0)
    inner, polygons = build_open_inner(samples, disk_envelopes(samples, resolution=0.25), 0.25)
    np.testing.assert_allclose(inner[0], samples.positions[0] - samples.normals[0], atol=1e-9)
    np.testing.assert_allclose(inner[-1], samples.positions[-1] - samples.normals[-1], atol=0.1)
    np.testing.assert_allclose(inner[:, 0], samples.positions[:, 0], atol=0.1)
    band = polygons[0]
    assert float(band[:, 0].min()) >= -1e-9
    assert float(band[:, 0].max()) <= 10.0 + 1e-9


def test_collapsed_envelope_is_logged(capsys: pytest.CaptureFixture[str]) -> None:
    samples = _grown(circle_path((0.0, 0.0), 10.0), 2.0)
    empty = [
        replace(env, inward_points=np.zeros((0, 2)))
        for env in disk_envelopes(samples, resolution=0.5)
    ]
    debug.set_verbose(True)
    debug_helpers.reset_fallback_counts()
    try:
        dense, aligned = build_closed_inner(samples, empty, 0.5)
    finally:
        debug.set_verbose(False)
    assert dense.shape == (len(samples), 2)
    assert aligned.shape == (len(samples), 2)
    assert "[envelope] envelope collapsed" in capsys.readouterr().out
    assert debug_helpers.fallback_counts()["dense_loop"] == 1
    debug_helpers.reset_fallback_counts()
