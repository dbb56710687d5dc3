from __future__ import annotations

from typing import Any


SCALAR_KEYS = (
    "score_norm",
    "spawn_probability",
    "ammo_left_norm",
    "ammo_center_norm",
    "ammo_right_norm",
    "battery_left_alive",
    "battery_center_alive",
    "battery_right_alive",
    "city_0_alive",
    "city_1_alive",
    "city_2_alive",
    "city_3_alive",
    "city_4_alive",
    "city_5_alive",
    "rocket_count_norm",
    "missile_count_norm",
    "explosion_count_norm",
)


def flatten_observation(obs: dict[str, Any], *, max_rockets: int, slot_size: int) -> list[float]:
    values: list[float] = [float(obs.get(key, 0.0) or 0.0) for key in SCALAR_KEYS]
    rocket_slots = obs.get("rocket_slots", []) or []
    empty_slot = [0.0] * slot_size
    for idx in range(max_rockets):
        slot = rocket_slots[idx] if idx < len(rocket_slots) else empty_slot
        values.extend(float(value) for value in slot)
    return values
