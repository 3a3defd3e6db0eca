import pytest

from src.oxidepack.cache import PipelineCache
from src.oxidepack.model import Path, ThicknessField
from src.oxidepack.pipeline import PipelineConfig, compute_scene, fingerprint
from src.oxidepack.presets import circle_path


def test_get_or_compute_reuses_result() -> None:
    cache = PipelineCache(max_entries=4)
    path = circle_path((0.0, 0.0), 5.0)
    field = ThicknessField(uniform=1.0)
    first = cache.get_or_compute(path, field)
    second = cache.get_or_compute(path, field)
    assert first is second
    assert cache.hits == 1
    assert cache.misses == 1
    assert fingerprint(path, field) in cache


def test_lru_eviction() -> None:
    cache = PipelineCache(max_entries=2)
    field = ThicknessField(uniform=0.5)
    paths = [Path.from_points([(0.0, 0.0), (float(k + 1), 0.0)]) for k in range(3)]
    cache.get_or_compute(paths[0], field)
    cache.get_or_compute(paths[1], field)
    # Touch the first entry so the second becomes the oldest.
    cache.get_or_compute(paths[0], field)
    cache.get_or_compute(paths[2], field)
    assert len(cache) == 2
    assert fingerprint(paths[0], field) in cache
    assert fingerprint(paths[1], field) not in cache


def test_config_is_part_of_the_key() -> None:
    cache = PipelineCache()
    path = circle_path((0.0, 0.0), 5.0)
    field = ThicknessField(uniform=1.0)
    a = cache.get_or_compute(path, field, PipelineConfig())
    b = cache.get_or_compute(path, field, PipelineConfig(min_samples=16))
    assert a is not b
    assert len(cache) == 2
    cache.clear()
    assert len(cache) == 0 and cache.hits == 0


def test_scene_uses_cache() -> None:
    cache = PipelineCache()
    paths = [circle_path((0.0, 0.0), 5.0), circle_path((20.0, 0.0), 5.0)]
    field = ThicknessField(uniform=1.0)
    first = compute_scene(paths, lambda _p: field, cache=cache, max_workers=2)
    second = compute_scene(paths, lambda _p: field, cache=cache, max_workers=2)
    assert all(a is b for a, b in zip(first, second))
    assert cache.misses == 2
    assert cache.hits == 2


def test_invalid_capacity() -> None:
    with pytest.raises(ValueError):
        PipelineCache(max_entries=0)
