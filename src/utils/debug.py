from __future__ import annotations

import time
from contextlib import contextmanager
from typing import Iterator

_verbose = False


def set_verbose(enabled: bool) -> None:
    global _verbose
    _verbose = enabled


def is_verbose() -> bool:
    return _verbose


def log(message: str, stage: str | None = None) -> None:
    if not _verbose:
        return
    if stage:
        print(f"[{stage}] {message}")
    else:
        print(message)


@contextmanager
def timed(stage: str) -> Iterator[None]:
    """Log the wall time of a pipeline stage when verbose."""
    if not _verbose:
        yield
        return
    start = time.perf_counter()
    try:
        yield
    finally:
        log(f"done in {1e3 * (time.perf_counter() - start):.2f} ms", stage=stage)
