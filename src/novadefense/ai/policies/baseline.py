from __future__ import annotations

import logging
import random
from typing import Protocol

from novadefense.core.geometry import direction, distance
from novadefense.core.rules.firing import select_battery

from ..actions import Action, Fire, Hold, nearest_aim_cell
from ..env import NovaDefenseEnv
from ..obs import sorted_rockets


logger = logging.getLogger(__name__)


class Policy(Protocol):
    def reset(self, env: NovaDefenseEnv) -> None:
        ...

    def next_action(self, env: NovaDefenseEnv) -> Action | int:
        ...


def _random_action(env: NovaDefenseEnv, rng: random.Random) -> int:
    mask = env.get_action_mask()
    if hasattr(mask, "tolist"):
        mask = mask.tolist()
    valid = [idx for idx, ok in enumerate(mask) if ok]
    if not valid:
        return env.action_spec.hold
    return rng.choice(valid)


def intercept_point(rocket, origin_x: float, origin_y: float, missile_speed: float) -> tuple[float, float]:
    """
    Lead the rocket by the missile's flight time from the battery.

    One refinement pass is enough: rockets are at least ~9x slower than missiles.
    """
    ux, uy = direction(rocket.x, rocket.y, rocket.target_x, rocket.target_y)
    flight = distance(origin_x, origin_y, rocket.x, rocket.y) / missile_speed
    px = rocket.x + ux * rocket.speed * flight
    py = rocket.y + uy * rocket.speed * flight
    flight = distance(origin_x, origin_y, px, py) / missile_speed
    return rocket.x + ux * rocket.speed * flight, rocket.y + uy * rocket.speed * flight


class HeuristicPolicy:
    """
    Fire at the rocket closest to impact that no missile is already heading for.

    A rocket counts as covered when some missile destination lies within `cover_radius`.
    """

    def __init__(self, *, max_in_flight: int = 3, cover_radius: float = 45.0, verbose: bool = False) -> None:
        self.max_in_flight = max_in_flight
        self.cover_radius = cover_radius
        self._verbose = verbose

    def reset(self, env: NovaDefenseEnv) -> None:
        return None

    def next_action(self, env: NovaDefenseEnv) -> Action | int:
        if env.engine is None:
            raise RuntimeError("Heuristic policy needs a reset environment")
        state = env.engine.state
        if len(state.missiles) >= self.max_in_flight:
            return Hold()
        config = env.sim_config
        for rocket in sorted_rockets(state):
            covered = any(
                distance(m.dest_x, m.dest_y, rocket.x, rocket.y) < self.cover_radius for m in state.missiles
            )
            if covered:
                continue
            battery = select_battery(state.batteries, rocket.x)
            if battery is None:
                return Hold()
            x, y = intercept_point(rocket, battery.x, battery.y, config.missile_speed)
            cell = nearest_aim_cell(env.action_spec, x, y)
            if self._verbose:
                logger.info("fire rocket=%s aim=(%.0f,%.0f) cell=%s", rocket.id, x, y, cell)
            return Fire(cell=cell)
        return Hold()


class RandomPolicy:
    def __init__(self, *, seed: int | None = None) -> None:
        self._rng = random.Random(seed)

    def reset(self, env: NovaDefenseEnv) -> None:
        return None

    def next_action(self, env: NovaDefenseEnv) -> Action | int:
        return _random_action(env, self._rng)


class IdlePolicy:
    def reset(self, env: NovaDefenseEnv) -> None:
        return None

    def next_action(self, env: NovaDefenseEnv) -> Action | int:
        return Hold()


def make_policy(name: str, *, seed: int | None = None, verbose: bool = False) -> Policy:
    if name == "heuristic":
        return HeuristicPolicy(verbose=verbose)
    if name == "random":
        return RandomPolicy(seed=seed)
    if name == "idle":
        return IdlePolicy()
    raise ValueError(f"Unknown policy {name!r}")
