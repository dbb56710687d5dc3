# src/novadefense/core/rules/motion.py
from __future__ import annotations

from ..config import DEFAULT_CONFIG, SimConfig
from ..geometry import direction, distance
from ..model.entities import Rocket
from .collisions import detonate_missile, resolve_rocket_impact


def step_rockets(state, config: SimConfig = DEFAULT_CONFIG) -> int:
    """
    Rockets fly straight at their fixed aim point.

    Within `impact_threshold` of it the rocket impacts instead of moving.
    Returns the number of impacts this tick.
    """
    impacts = 0
    # Les impacts retirent des roquettes : on itère sur une copie.
    for rocket in list(state.rockets):
        dist = distance(rocket.x, rocket.y, rocket.target_x, rocket.target_y)
        if dist < config.impact_threshold:
            resolve_rocket_impact(state, rocket, config)
            impacts += 1
            continue
        ux, uy = direction(rocket.x, rocket.y, rocket.target_x, rocket.target_y)
        rocket.x += ux * rocket.speed
        rocket.y += uy * rocket.speed
    return impacts


def find_nearest_rocket(rockets: list[Rocket], x: float, y: float, radius: float) -> Rocket | None:
    """Strictly nearest rocket closer than `radius`; ties keep the first in store order."""
    best_dist = radius
    chosen: Rocket | None = None
    for rocket in rockets:
        d = distance(x, y, rocket.x, rocket.y)
        if d < best_dist:
            best_dist = d
            chosen = rocket
    return chosen


def step_missiles(state, config: SimConfig = DEFAULT_CONFIG) -> int:
    """
    Heat-seeking missiles.

    Each tick a missile re-aims at whichever rocket is nearest within `seek_radius`
    (no lock-on: it may switch targets). With nothing in range it keeps its last
    destination. It detonates once the destination is closer than one tick of travel.
    Returns the number of detonations.
    """
    detonations = 0
    speed = config.missile_speed
    for missile in list(state.missiles):
        target = find_nearest_rocket(state.rockets, missile.x, missile.y, config.seek_radius)
        if target is not None:
            missile.dest_x = target.x
            missile.dest_y = target.y

        dist = distance(missile.x, missile.y, missile.dest_x, missile.dest_y)
        if dist < speed:
            detonate_missile(state, missile, config)
            detonations += 1
            continue
        ux, uy = direction(missile.x, missile.y, missile.dest_x, missile.dest_y)
        missile.x += ux * speed
        missile.y += uy * speed
    return detonations
