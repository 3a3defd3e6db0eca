"""In-memory LRU cache of pipeline results.

Entries are keyed by the sha256 fingerprint of (path, field, config), so an
unchanged path is never recomputed while its neighbours are edited. The
store is an ``OrderedDict`` guarded by a reentrant lock; when it holds more
than ``max_entries`` results the least recently used one is dropped.

Usage::

    cache = PipelineCache(max_entries=64)
    sampled = cache.get_or_compute(path, field, config)
"""

from __future__ import annotations

from collections import OrderedDict
from threading import RLock

from .model import Path, SampledPath, ThicknessField
from .pipeline import PipelineConfig, compute_sampled_path, fingerprint
from ..utils import debug

DEFAULT_MAX_ENTRIES: int = 128


class PipelineCache:
    def __init__(self, max_entries: int = DEFAULT_MAX_ENTRIES) -> None:
        if max_entries < 1:
            raise ValueError("max_entries must be >= 1")
        self.max_entries = int(max_entries)
        self._entries: OrderedDict[str, SampledPath] = OrderedDict()
        self._lock = RLock()
        self.hits = 0
        self.misses = 0

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def __contains__(self, key: object) -> bool:
        with self._lock:
            return key in self._entries

    def get(self, key: str) -> SampledPath | None:
        with self._lock:
            value = self._entries.get(key)
            if value is not None:
                # Mark as recently used
                self._entries.move_to_end(key)
            return value

    def put(self, key: str, value: SampledPath) -> None:
        with self._lock:
            self._entries[key] = value
            self._entries.move_to_end(key)
            if len(self._entries) > self.max_entries:
                self._entries.popitem(last=False)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()
            self.hits = 0
            self.misses = 0

    def get_or_compute(
        self,
        path: Path,
        field: ThicknessField,
        config: PipelineConfig | None = None,
    ) -> SampledPath:
        """Cached result for the inputs, computing and storing it on a miss.

        The computation runs outside the lock; two threads missing on the same
        key both compute and the later result is kept.
        """

        key = fingerprint(path, field, config)
        cached = self.get(key)
        if cached is not None:
            with self._lock:
                self.hits += 1
            return cached
        with self._lock:
            self.misses += 1
        debug.log(f"miss {key[:12]} ({path.name or 'unnamed'})", stage="cache")
        value = compute_sampled_path(path, field, config)
        self.put(key, value)
        return value
