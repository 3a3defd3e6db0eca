from __future__ import annotations

from typing import TypeAlias

import numpy as np
from jaxtyping import Float

Vec2: TypeAlias = tuple[float, float]
NpPoint: TypeAlias = Float[np.ndarray, "2"]
BezierControls: TypeAlias = tuple[NpPoint, NpPoint, NpPoint, NpPoint]
Arc: TypeAlias = tuple[float, float]
