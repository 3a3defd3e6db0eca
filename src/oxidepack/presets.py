from __future__ import annotations

from .model import Node, Path

# Handle length for a four-segment cubic circle.
KAPPA = 0.5522847498307936


def circle_nodes(center: tuple[float, float], radius: float) -> tuple[Node, ...]:
    cx, cy = center
    k = radius * KAPPA
    return (
        Node((cx + radius, cy), (cx + radius, cy + k), (cx + radius, cy - k)),
        Node((cx, cy - radius), (cx + k, cy - radius), (cx - k, cy - radius)),
        Node((cx - radius, cy), (cx - radius, cy - k), (cx - radius, cy + k)),
        Node((cx, cy + radius), (cx - k, cy + radius), (cx + k, cy + radius)),
    )


def circle_path(center: tuple[float, float], radius: float, name: str = "circle") -> Path:
    return Path(circle_nodes(center, radius), closed=True, name=name)


def rectangle_path(
    origin: tuple[float, float], width: float, height: float, name: str = "rectangle"
) -> Path:
    x, y = origin
    corners = [(x, y), (x + width, y), (x + width, y + height), (x, y + height)]
    return Path.from_points(corners, closed=True, name=name)
