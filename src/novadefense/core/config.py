# src/novadefense/core/config.py
from __future__ import annotations

from dataclasses import asdict, dataclass, fields
import math
from typing import Any


@dataclass(frozen=True, slots=True)
class SimConfig:
    """
    Tuning constants of the simulation core.

    Distances are logical world units, speeds and rates are per tick.
    """
    world_width: float = 800.0
    world_height: float = 600.0

    rocket_speed_min: float = 0.25
    rocket_speed_max: float = 0.75
    impact_threshold: float = 2.0
    hit_tolerance: float = 5.0

    missile_speed: float = 7.0
    seek_radius: float = 300.0

    explosion_start_radius: float = 2.0
    explosion_max_radius: float = 40.0
    explosion_growth_rate: float = 1.5

    score_per_rocket: int = 20
    win_score: int = 1000

    spawn_base_probability: float = 0.015
    spawn_score_divisor: float = 10000.0

    def __post_init__(self) -> None:
        for f in fields(self):
            value = getattr(self, f.name)
            if isinstance(value, bool) or not isinstance(value, (int, float)) or not math.isfinite(value):
                raise ValueError(f"sim.{f.name} must be a finite number, got {value!r}")
        if self.world_width <= 0 or self.world_height <= 0:
            raise ValueError("sim.world_width and sim.world_height must be > 0")
        if not 0 < self.rocket_speed_min <= self.rocket_speed_max:
            raise ValueError("sim.rocket_speed_min must be > 0 and <= sim.rocket_speed_max")
        if self.missile_speed <= 0:
            raise ValueError("sim.missile_speed must be > 0")
        if self.explosion_growth_rate <= 0:
            raise ValueError("sim.explosion_growth_rate must be > 0")
        if not 0 < self.explosion_start_radius <= self.explosion_max_radius:
            raise ValueError("sim.explosion_start_radius must be > 0 and <= sim.explosion_max_radius")
        if self.spawn_base_probability < 0:
            raise ValueError("sim.spawn_base_probability must be >= 0")
        if self.spawn_score_divisor <= 0:
            raise ValueError("sim.spawn_score_divisor must be > 0")

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


DEFAULT_CONFIG = SimConfig()


def sim_config_from_dict(data: dict[str, Any] | None) -> SimConfig:
    if not data:
        return DEFAULT_CONFIG
    known = {f.name: f for f in fields(SimConfig)}
    unknown = sorted(key for key in data if key not in known)
    if unknown:
        raise ValueError(f"unknown sim config keys: {', '.join(unknown)}")
    kwargs: dict[str, Any] = {}
    for key, value in data.items():
        if known[key].type == "int" and isinstance(value, float) and value.is_integer():
            value = int(value)
        kwargs[key] = value
    return SimConfig(**kwargs)
