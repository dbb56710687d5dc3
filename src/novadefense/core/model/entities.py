from __future__ import annotations
from dataclasses import dataclass


@dataclass(slots=True)
class Rocket:
    id: int
    x: float
    y: float
    target_x: float
    target_y: float
    speed: float
    hue: float = 0.0


@dataclass(slots=True)
class Missile:
    id: int
    x: float
    y: float
    start_x: float
    start_y: float
    dest_x: float
    dest_y: float


@dataclass(slots=True)
class Explosion:
    id: int
    x: float
    y: float
    radius: float
    growing: bool = True


@dataclass(slots=True)
class Battery:
    x: float
    y: float
    ammo: int
    max_ammo: int
    destroyed: bool = False

    @property
    def can_fire(self) -> bool:
        return not self.destroyed and self.ammo > 0


@dataclass(slots=True)
class City:
    x: float
    y: float
    destroyed: bool = False
