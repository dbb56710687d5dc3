# src/novadefense/core/geometry.py
from __future__ import annotations

import math


def distance(ax: float, ay: float, bx: float, by: float) -> float:
    return math.hypot(bx - ax, by - ay)


def distance_sq(ax: float, ay: float, bx: float, by: float) -> float:
    dx = bx - ax
    dy = by - ay
    return dx * dx + dy * dy


def direction(ax: float, ay: float, bx: float, by: float) -> tuple[float, float]:
    """
    Unit vector from a toward b.

    Returns (0, 0) when both points coincide, so callers never divide by zero.
    """
    dx = bx - ax
    dy = by - ay
    dist = math.hypot(dx, dy)
    if dist == 0.0:
        return 0.0, 0.0
    return dx / dist, dy / dist
