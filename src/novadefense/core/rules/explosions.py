# src/novadefense/core/rules/explosions.py
from __future__ import annotations

from ..config import DEFAULT_CONFIG, SimConfig
from ..model.state import remove_entity


def step_explosions(state, config: SimConfig = DEFAULT_CONFIG) -> int:
    """
    Grow to `explosion_max_radius` (clamped), then shrink at the same rate.

    An explosion whose radius drops to 0 or below leaves the store.
    Returns the number of explosions removed.
    """
    rate = config.explosion_growth_rate
    max_radius = config.explosion_max_radius
    removed = 0
    for exp in list(state.explosions):
        if exp.growing:
            exp.radius = min(max_radius, exp.radius + rate)
            if exp.radius >= max_radius:
                exp.growing = False
            continue
        exp.radius -= rate
        if exp.radius <= 0.0:
            remove_entity(state.explosions, exp)
            removed += 1
    return removed
