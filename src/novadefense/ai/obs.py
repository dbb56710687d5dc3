from __future__ import annotations

from typing import Any
import math

from novadefense.core.config import DEFAULT_CONFIG, SimConfig
from novadefense.core.geometry import distance
from novadefense.core.rules.spawner import spawn_probability


MAX_ROCKETS = 12
MAX_CITIES = 6
MAX_MISSILES = 20
MAX_EXPLOSIONS = 20
ROCKET_SLOT_FEATURES = (
    "exists",
    "x_norm",
    "y_norm",
    "target_x_norm",
    "target_y_norm",
    "speed_norm",
    "dist_to_target_norm",
)


def _log_norm(value: int | float, scale: float) -> float:
    if scale <= 0:
        return 0.0
    return min(1.0, math.log1p(max(0.0, float(value))) / math.log1p(scale))


def _rocket_sort_key(rocket) -> tuple[float, int]:
    # Les plus proches de l'impact d'abord.
    return (distance(rocket.x, rocket.y, rocket.target_x, rocket.target_y), int(rocket.id))


def sorted_rockets(state) -> list:
    rockets = list(getattr(state, "rockets", []) or [])
    rockets.sort(key=_rocket_sort_key)
    return rockets


def build_observation(
    state,
    *,
    config: SimConfig = DEFAULT_CONFIG,
    max_rockets: int = MAX_ROCKETS,
) -> dict[str, Any]:
    width = float(config.world_width) or 1.0
    height = float(config.world_height) or 1.0
    diag = math.hypot(width, height)

    batteries = list(getattr(state, "batteries", []) or [])
    cities = list(getattr(state, "cities", []) or [])
    score = int(getattr(state, "score", 0))

    rocket_slots: list[list[float]] = []
    empty_slot = [0.0] * len(ROCKET_SLOT_FEATURES)
    rockets = sorted_rockets(state)
    for slot_idx in range(max_rockets):
        if slot_idx >= len(rockets):
            rocket_slots.append(list(empty_slot))
            continue
        r = rockets[slot_idx]
        rocket_slots.append(
            [
                1.0,
                min(1.0, max(0.0, r.x / width)),
                min(1.0, max(0.0, r.y / height)),
                min(1.0, max(0.0, r.target_x / width)),
                min(1.0, max(0.0, r.target_y / height)),
                min(1.0, r.speed / config.rocket_speed_max),
                min(1.0, distance(r.x, r.y, r.target_x, r.target_y) / diag),
            ]
        )

    obs: dict[str, Any] = {
        "score": score,
        "phase": str(getattr(state, "phase", "menu")),
        "score_norm": min(1.0, score / float(config.win_score)),
        "spawn_probability": min(1.0, spawn_probability(score, config)),
        "rocket_count_norm": min(1.0, len(getattr(state, "rockets", []) or []) / float(max_rockets)),
        "missile_count_norm": _log_norm(len(getattr(state, "missiles", []) or []), MAX_MISSILES),
        "explosion_count_norm": _log_norm(len(getattr(state, "explosions", []) or []), MAX_EXPLOSIONS),
        "rocket_slots": rocket_slots,
        "rocket_slot_features": list(ROCKET_SLOT_FEATURES),
    }
    for slot, battery in zip(("left", "center", "right"), batteries):
        capacity = max(1, int(battery.max_ammo))
        obs[f"ammo_{slot}_norm"] = min(1.0, int(battery.ammo) / capacity)
        obs[f"battery_{slot}_alive"] = 0.0 if battery.destroyed else 1.0
    for idx in range(MAX_CITIES):
        alive = idx < len(cities) and not cities[idx].destroyed
        obs[f"city_{idx}_alive"] = 1.0 if alive else 0.0
    return obs
