"""Path + thickness field -> grown inner contour.

Stages run in a fixed order: sampling, normal smoothing, thickness
evaluation, disk envelope, robustness. Every stage takes and returns plain
values, so the whole pipeline is a pure function of its inputs.
"""

from __future__ import annotations

import dataclasses
import hashlib
import json
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import TYPE_CHECKING, Callable, Sequence

import numpy as np

from .constants import (
    COMPASS_STEPS,
    DEFAULT_MIN_SAMPLES,
    DEFAULT_NORMAL_WINDOW,
    MAX_RESOLUTION,
    MIN_RESOLUTION,
    ZERO_EPS,
)
from .envelope import (
    build_closed_inner,
    build_open_inner,
    compass_patch,
    disk_envelopes,
)
from .model import Path, SampledPath, SampleSet, ThicknessField
from .normals import recompute_normals
from .robustness import finalize_closed, finalize_open
from .sampler import adaptive_sample_path, sample_path_uniform
from .thickness import eval_thickness
from ..utils import debug, debug_helpers

if TYPE_CHECKING:
    from .cache import PipelineCache

__all__ = [
    "PipelineConfig",
    "compute_sampled_path",
    "compute_scene",
    "fingerprint",
    "resolve_resolution",
]


@dataclass(frozen=True)
class PipelineConfig:
    min_samples: int = DEFAULT_MIN_SAMPLES
    normal_window: int = DEFAULT_NORMAL_WINDOW
    # None derives the envelope resolution from the mean growth.
    resolution: float | None = None
    restrict_to_inward: bool = True
    compass_steps: int = COMPASS_STEPS
    # Open paths only; None keeps adaptive sampling.
    uniform_subdivisions: float | None = None
    max_arc_points: int = 256


def resolve_resolution(samples: SampleSet, config: PipelineConfig) -> float:
    """Arc sampling step: explicit, or a quarter of the mean growth."""
    if config.resolution is not None and np.isfinite(config.resolution):
        return max(float(config.resolution), MIN_RESOLUTION)
    mean = float(np.mean(samples.thickness)) if len(samples) else 0.0
    return max(MIN_RESOLUTION, min(MAX_RESOLUTION, mean / 4.0))


def _sample(path: Path, field: ThicknessField, config: PipelineConfig) -> tuple[SampleSet, float]:
    if config.uniform_subdivisions is not None and not path.effective_closed:
        return sample_path_uniform(path, config.uniform_subdivisions)
    return adaptive_sample_path(path, field.spacing, config.min_samples)


def _single_point(
    samples: SampleSet, field: ThicknessField, config: PipelineConfig
) -> SampledPath:
    patch = compass_patch(samples.positions[0], field, config.compass_steps)
    if patch is None:
        return SampledPath(samples, 0.0, samples.positions.copy(), [])
    return SampledPath(samples, 0.0, patch, [patch])


def compute_sampled_path(
    path: Path,
    field: ThicknessField,
    config: PipelineConfig | None = None,
) -> SampledPath:
    """Run the full pipeline for one path.

    Numeric trouble is resolved by substitution (naive offsets, smoothed
    loops), never by raising. Zero growth everywhere returns the outer
    samples unchanged as the inner contour.
    """

    config = config or PipelineConfig()
    closed = path.effective_closed

    with debug.timed("sample"):
        samples, length = _sample(path, field, config)
    if len(samples) == 0:
        return SampledPath(samples, 0.0, np.zeros((0, 2)), [])
    if len(samples) == 1:
        return _single_point(samples, field, config)

    samples = recompute_normals(samples, config.normal_window)
    samples = eval_thickness(samples, field)
    debug_helpers.log_points("thickness", samples.thickness, stage="thickness")

    if not np.any(samples.thickness > ZERO_EPS):
        inner = samples.positions.copy()
        return SampledPath(samples, length, inner, [inner.copy()] if closed else [])

    resolution = resolve_resolution(samples, config)
    with debug.timed("envelope"):
        envelopes = disk_envelopes(
            samples,
            resolution,
            restrict_to_inward=config.restrict_to_inward,
            max_arc_points=config.max_arc_points,
        )
        if closed:
            dense, aligned = build_closed_inner(samples, envelopes, resolution)
        else:
            raw, polygons = build_open_inner(
                samples,
                envelopes,
                resolution,
                restrict_to_inward=config.restrict_to_inward,
            )

    with debug.timed("robust"):
        if closed:
            inner, polygons = finalize_closed(dense, aligned, samples, resolution)
        else:
            inner = finalize_open(raw, samples, resolution)
            for end in (samples.positions[0], samples.positions[-1]):
                patch = compass_patch(end, field, config.compass_steps)
                if patch is not None:
                    polygons.append(patch)

    debug_helpers.log_points("inner", inner, stage="robust")
    return SampledPath(samples, length, inner, polygons)


def _canonical(path: Path, field: ThicknessField, config: PipelineConfig) -> str:
    payload = {
        "path": dataclasses.asdict(path),
        "field": dataclasses.asdict(field),
        "config": dataclasses.asdict(config),
    }
    return json.dumps(payload, sort_keys=True, separators=(",", ":"))


def fingerprint(
    path: Path,
    field: ThicknessField,
    config: PipelineConfig | None = None,
) -> str:
    """Stable hex digest of everything the pipeline result depends on."""
    text = _canonical(path, field, config or PipelineConfig())
    return hashlib.sha256(text.encode("utf-8")).hexdigest()


def compute_scene(
    paths: Sequence[Path],
    field_for: Callable[[Path], ThicknessField],
    config: PipelineConfig | None = None,
    *,
    max_workers: int | None = None,
    cache: PipelineCache | None = None,
) -> list[SampledPath]:
    """Compute every path independently; results keep the input order."""

    config = config or PipelineConfig()

    def run(path: Path) -> SampledPath:
        field = field_for(path)
        if cache is None:
            return compute_sampled_path(path, field, config)
        return cache.get_or_compute(path, field, config)

    if not paths:
        return []
    if max_workers == 1 or len(paths) == 1:
        return [run(p) for p in paths]
    with ThreadPoolExecutor(max_workers=max_workers) as pool:
        results = list(pool.map(run, paths))
    debug.log(f"paths={len(results)}", stage="scene")
    return results
