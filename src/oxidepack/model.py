from __future__ import annotations

import dataclasses
import math
from dataclasses import dataclass, field
from typing import Any, Sequence

import numpy as np

from .constants import (
    ANGLE_DUPLICATE_EPS_DEG,
    DEFAULT_SPACING,
    ENDPOINT_MERGE_THRESHOLD,
)
from .contour_types import Vec2


def _as_vec2(value: Sequence[float] | np.ndarray, what: str) -> Vec2:
    x, y = (float(v) for v in value)
    if not (math.isfinite(x) and math.isfinite(y)):
        raise ValueError(f"{what} contains non-finite coordinates")
    return (x, y)


@dataclass(frozen=True)
class Node:
    """Path anchor with optional incoming/outgoing cubic handles."""

    point: Vec2
    handle_in: Vec2 | None = None
    handle_out: Vec2 | None = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "point", _as_vec2(self.point, "point"))
        if self.handle_in is not None:
            object.__setattr__(
                self, "handle_in", _as_vec2(self.handle_in, "handle_in")
            )
        if self.handle_out is not None:
            object.__setattr__(
                self, "handle_out", _as_vec2(self.handle_out, "handle_out")
            )

    def moved_to(self, x: float, y: float) -> Node:
        """Translate the anchor and both handles together."""
        dx = x - self.point[0]
        dy = y - self.point[1]

        def shift(h: Vec2 | None) -> Vec2 | None:
            return None if h is None else (h[0] + dx, h[1] + dy)

        return Node((x, y), shift(self.handle_in), shift(self.handle_out))


@dataclass(frozen=True)
class Path:
    nodes: tuple[Node, ...]
    closed: bool = False
    name: str = ""
    color: str = "#2563eb"

    def __post_init__(self) -> None:
        object.__setattr__(self, "nodes", tuple(self.nodes))

    @property
    def effective_closed(self) -> bool:
        # A closed outline needs at least three anchors to enclose anything.
        return self.closed and len(self.nodes) >= 3

    @classmethod
    def from_points(
        cls, points: Sequence[Sequence[float]], closed: bool = False, **kwargs: Any
    ) -> Path:
        return cls(tuple(Node(_as_vec2(p, "point")) for p in points), closed, **kwargs)


def merge_endpoints_if_close(
    nodes: Sequence[Node],
    closed: bool,
    threshold: float = ENDPOINT_MERGE_THRESHOLD,
) -> tuple[tuple[Node, ...], bool]:
    """Close an open chain whose first and last anchors nearly touch.

    The two anchors are moved to their midpoint and fused into the first node,
    which inherits the last node's incoming handle.
    """
    nodes = tuple(nodes)
    if closed:
        return nodes, closed
    # Fusing needs three distinct anchors left over.
    if len(nodes) < 4:
        return nodes, False
    first = nodes[0]
    last = nodes[-1]
    if math.dist(first.point, last.point) > threshold:
        return nodes, False
    mx = 0.5 * (first.point[0] + last.point[0])
    my = 0.5 * (first.point[1] + last.point[1])
    moved_first = first.moved_to(mx, my)
    moved_last = last.moved_to(mx, my)
    fused = Node(moved_first.point, moved_last.handle_in, moved_first.handle_out)
    return (fused,) + nodes[1:-1], True


def wrap_degrees(angle_deg: float) -> float:
    wrapped = angle_deg % 360.0
    if wrapped < 0.0:
        wrapped += 360.0
    return wrapped


@dataclass(frozen=True)
class DirectionWeight:
    angle_deg: float
    value_um: float
    label: str = ""

    def __post_init__(self) -> None:
        if not (math.isfinite(self.angle_deg) and math.isfinite(self.value_um)):
            raise ValueError("direction weight must be finite")
        object.__setattr__(self, "angle_deg", wrap_degrees(float(self.angle_deg)))
        object.__setattr__(self, "value_um", float(self.value_um))


def default_direction_weights() -> tuple[DirectionWeight, ...]:
    labels = ("E", "NE", "N", "NW", "W", "SW", "S", "SE")
    return tuple(
        DirectionWeight(45.0 * k, 0.0, label) for k, label in enumerate(labels)
    )


@dataclass(frozen=True)
class ThicknessField:
    """Directional growth description: ``angle -> offset distance``.

    ``uniform`` is added to the interpolated directional keyframes, the sum is
    clamped, then scaled by ``progress`` (0 = nothing grown, 1 = fully grown).
    ``spacing`` is the sampling distance used along the outer path.
    """

    uniform: float
    weights: tuple[DirectionWeight, ...] = ()
    mirror_symmetry: bool = False
    progress: float = 1.0
    spacing: float = DEFAULT_SPACING

    def __post_init__(self) -> None:
        object.__setattr__(self, "weights", tuple(self.weights))
        for name in ("uniform", "progress", "spacing"):
            value = float(getattr(self, name))
            if not math.isfinite(value):
                raise ValueError(f"{name} must be finite")
            object.__setattr__(self, name, value)
        if self.spacing <= 0.0:
            raise ValueError("spacing must be > 0")
        angles = sorted(w.angle_deg for w in self.weights)
        for a, b in zip(angles, angles[1:]):
            if b - a < ANGLE_DUPLICATE_EPS_DEG:
                raise ValueError(f"duplicate direction weight at {a:.6g} deg")
        if len(angles) > 1 and angles[0] + 360.0 - angles[-1] < ANGLE_DUPLICATE_EPS_DEG:
            raise ValueError(f"duplicate direction weight at {angles[0]:.6g} deg")

    def with_progress(self, progress: float) -> ThicknessField:
        return dataclasses.replace(self, progress=progress)


def _frozen(arr: np.ndarray, dtype: Any) -> np.ndarray:
    out = np.array(arr, dtype=dtype, copy=True)
    out.setflags(write=False)
    return out


@dataclass(frozen=True)
class SampleSet:
    """Samples along a path, one row per sample in every array.

    positions, tangents, normals: (N,2); thickness, curvature, parameter: (N,);
    segment_index: (N,) int. Arrays are read-only; use ``replace`` to derive.
    """

    positions: np.ndarray
    tangents: np.ndarray
    normals: np.ndarray
    thickness: np.ndarray
    curvature: np.ndarray
    parameter: np.ndarray
    segment_index: np.ndarray
    closed: bool = False

    def __post_init__(self) -> None:
        n = len(self.positions)
        for name in ("positions", "tangents", "normals"):
            arr = _frozen(getattr(self, name), np.float64).reshape(n, 2)
            object.__setattr__(self, name, arr)
        for name in ("thickness", "curvature", "parameter"):
            arr = _frozen(getattr(self, name), np.float64).reshape(n)
            object.__setattr__(self, name, arr)
        object.__setattr__(
            self, "segment_index", _frozen(self.segment_index, np.int64).reshape(n)
        )

    def __len__(self) -> int:
        return int(self.positions.shape[0])

    @classmethod
    def empty(cls, closed: bool = False) -> SampleSet:
        z2 = np.zeros((0, 2))
        z1 = np.zeros(0)
        return cls(z2, z2, z2, z1, z1, z1, np.zeros(0, dtype=np.int64), closed)

    def replace(self, **changes: Any) -> SampleSet:
        return dataclasses.replace(self, **changes)

    def naive_inner(self) -> np.ndarray:
        """Straight-line offset ``position - normal * thickness`` per sample."""
        return self.positions - self.normals * self.thickness[:, None]


@dataclass(frozen=True)
class SampledPath:
    samples: SampleSet
    length: float
    inner_samples: np.ndarray
    inner_polygons: list[np.ndarray] = field(default_factory=list)
