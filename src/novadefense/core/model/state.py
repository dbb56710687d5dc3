from __future__ import annotations
from dataclasses import dataclass, field
from typing import Literal

from .entities import Battery, City, Explosion, Missile, Rocket

Phase = Literal["menu", "playing", "won", "lost"]


@dataclass(slots=True)
class GameState:
    score: int = 0
    phase: Phase = "menu"
    ticks: int = 0

    rockets: list[Rocket] = field(default_factory=list)
    missiles: list[Missile] = field(default_factory=list)
    explosions: list[Explosion] = field(default_factory=list)
    batteries: list[Battery] = field(default_factory=list)
    cities: list[City] = field(default_factory=list)

    rng_state: int = 1
    rng_calls: int = 0
    next_id: int = 1

    def new_id(self) -> int:
        entity_id = self.next_id
        self.next_id += 1
        return entity_id


def remove_entity(store: list, entity) -> bool:
    # Par identité : deux entités aux champs égaux restent distinctes.
    for idx, item in enumerate(store):
        if item is entity:
            del store[idx]
            return True
    return False
