from __future__ import annotations

from collections import Counter
from threading import Lock

import numpy as np

from . import debug

_seen: set[str] = set()
_fallbacks: Counter[str] = Counter()
# Shared by the scene worker threads.
_lock = Lock()


def log_once(key: str, message: str) -> None:
    if not debug.is_verbose():
        return
    with _lock:
        if key in _seen:
            return
        _seen.add(key)
    debug.log(message)


def log_points(name: str, arr: np.ndarray, stage: str | None = None) -> None:
    """Shape, finiteness and bounding box of an (N,2) point array."""
    if not debug.is_verbose():
        return
    if arr.size == 0:
        debug.log(f"{name}: shape={arr.shape} empty", stage=stage)
        return
    finite_mask = np.isfinite(arr)
    finite_all = bool(finite_mask.all())
    if arr.ndim == 2 and arr.shape[1] == 2 and finite_mask.all(axis=1).any():
        pts = arr[finite_mask.all(axis=1)]
        lo = pts.min(axis=0)
        hi = pts.max(axis=0)
        bbox = f"bbox=({lo[0]:.6g},{lo[1]:.6g})..({hi[0]:.6g},{hi[1]:.6g})"
    elif finite_mask.any():
        vals = arr[finite_mask]
        bbox = f"min={float(np.min(vals)):.6g} max={float(np.max(vals)):.6g}"
    else:
        bbox = "no finite values"
    debug.log(
        f"{name}: shape={arr.shape} finite_all={finite_all} {bbox}", stage=stage
    )


def note_fallback(kind: str, detail: str = "") -> None:
    """Count a numeric fallback substitution; logs the first of each kind."""
    with _lock:
        _fallbacks[kind] += 1
    if debug.is_verbose():
        log_once(f"fallback:{kind}", f"fallback {kind}: {detail}".rstrip(": "))


def fallback_counts() -> dict[str, int]:
    with _lock:
        return dict(_fallbacks)


def reset_fallback_counts() -> None:
    with _lock:
        _fallbacks.clear()
        _seen.difference_update({k for k in _seen if k.startswith("fallback:")})
