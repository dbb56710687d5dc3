# src/novadefense/core/rules/collisions.py
from __future__ import annotations

import logging

from ..config import DEFAULT_CONFIG, SimConfig
from ..geometry import distance
from ..model.entities import Battery, City, Explosion, Missile, Rocket
from ..model.state import remove_entity


logger = logging.getLogger(__name__)


def spawn_explosion(state, x: float, y: float, config: SimConfig = DEFAULT_CONFIG) -> Explosion:
    explosion = Explosion(
        id=state.new_id(),
        x=float(x),
        y=float(y),
        radius=float(config.explosion_start_radius),
        growing=True,
    )
    state.explosions.append(explosion)
    return explosion


def find_struck_structure(state, target_x: float, target_y: float, tolerance: float) -> Battery | City | None:
    """
    Structure sitting on a rocket's aim point (within `tolerance` on both axes).

    Batteries are checked before cities; only the first match counts.
    """
    for battery in state.batteries:
        if abs(battery.x - target_x) < tolerance and abs(battery.y - target_y) < tolerance:
            return battery
    for city in state.cities:
        if abs(city.x - target_x) < tolerance and abs(city.y - target_y) < tolerance:
            return city
    return None


def resolve_rocket_impact(state, rocket: Rocket, config: SimConfig = DEFAULT_CONFIG) -> Battery | City | None:
    """
    Rocket reached its aim point.

    - explosion at the rocket's current position
    - the structure it was aimed at is destroyed (a battery also loses its ammo)
    - the rocket leaves the store
    """
    spawn_explosion(state, rocket.x, rocket.y, config)

    struck = find_struck_structure(state, rocket.target_x, rocket.target_y, config.hit_tolerance)
    if isinstance(struck, Battery):
        if not struck.destroyed:
            logger.info("Battery at x=%.0f destroyed (ammo lost=%s)", struck.x, struck.ammo)
        struck.destroyed = True
        struck.ammo = 0
    elif isinstance(struck, City):
        if not struck.destroyed:
            logger.info("City at x=%.0f destroyed", struck.x)
        struck.destroyed = True

    remove_entity(state.rockets, rocket)
    return struck


def detonate_missile(state, missile: Missile, config: SimConfig = DEFAULT_CONFIG) -> Explosion:
    explosion = spawn_explosion(state, missile.dest_x, missile.dest_y, config)
    remove_entity(state.missiles, missile)
    return explosion


def resolve_explosion_kills(state, config: SimConfig = DEFAULT_CONFIG) -> int:
    """
    Every live explosion destroys the rockets strictly inside its current radius.

    Growing and shrinking blasts both count. Each kill awards `score_per_rocket`.
    """
    kills = 0
    for explosion in list(state.explosions):
        for rocket in list(state.rockets):
            if distance(explosion.x, explosion.y, rocket.x, rocket.y) < explosion.radius:
                remove_entity(state.rockets, rocket)
                state.score += int(config.score_per_rocket)
                kills += 1
    return kills
