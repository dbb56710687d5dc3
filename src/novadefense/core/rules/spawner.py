# src/novadefense/core/rules/spawner.py
from __future__ import annotations

from ..config import DEFAULT_CONFIG, SimConfig
from ..model.entities import Rocket
from ..rng import rand_float, rand_index, rand_uniform

# Teinte des roquettes : plage "rouge/orange" du jeu d'origine.
ROCKET_HUE_RANGE = 60.0


def spawn_probability(score: int, config: SimConfig = DEFAULT_CONFIG) -> float:
    """
    Per-tick spawn chance: base + score / divisor.

    Uncapped on purpose: above 1.0 every tick spawns (still at most one rocket per tick).
    """
    return config.spawn_base_probability + score / config.spawn_score_divisor


def target_pool(state) -> list:
    """Live batteries first, then live cities, in store order."""
    return [b for b in state.batteries if not b.destroyed] + [c for c in state.cities if not c.destroyed]


def spawn_rocket(state, config: SimConfig = DEFAULT_CONFIG) -> Rocket | None:
    targets = target_pool(state)
    if not targets:
        return None

    target = targets[rand_index(state, len(targets))]
    start_x = rand_float(state) * config.world_width
    speed = rand_uniform(state, config.rocket_speed_min, config.rocket_speed_max)
    hue = rand_float(state) * ROCKET_HUE_RANGE

    rocket = Rocket(
        id=state.new_id(),
        x=float(start_x),
        y=0.0,
        target_x=float(target.x),
        target_y=float(target.y),
        speed=float(speed),
        hue=float(hue),
    )
    state.rockets.append(rocket)
    return rocket


def try_spawn(state, probability: float, config: SimConfig = DEFAULT_CONFIG) -> Rocket | None:
    """
    Roll once against `probability`; on success spawn one rocket at the top edge.

    The roll is consumed even when no target is left.
    """
    if rand_float(state) >= probability:
        return None
    return spawn_rocket(state, config)
