# src/novadefense/core/rules/firing.py
from __future__ import annotations

import logging
import math

from ..model.entities import Battery, Missile


logger = logging.getLogger(__name__)


def select_battery(batteries: list[Battery], x: float) -> Battery | None:
    """
    Battery able to fire that is horizontally closest to `x`.

    Ties go to the first in store order.
    """
    best: Battery | None = None
    best_dist = math.inf
    for battery in batteries:
        if not battery.can_fire:
            continue
        d = abs(battery.x - x)
        if d < best_dist:
            best_dist = d
            best = battery
    return best


def fire_missile(state, x: float, y: float) -> Missile | None:
    """
    Launch one interceptor toward (x, y), spending one unit of ammo immediately.

    No eligible battery, or a non-finite point, is a silent no-op.
    """
    if not (math.isfinite(x) and math.isfinite(y)):
        logger.debug("Ignoring fire at non-finite point (%r, %r)", x, y)
        return None
    battery = select_battery(state.batteries, x)
    if battery is None:
        return None

    battery.ammo = max(0, battery.ammo - 1)
    missile = Missile(
        id=state.new_id(),
        x=float(battery.x),
        y=float(battery.y),
        start_x=float(battery.x),
        start_y=float(battery.y),
        dest_x=float(x),
        dest_y=float(y),
    )
    state.missiles.append(missile)
    return missile
