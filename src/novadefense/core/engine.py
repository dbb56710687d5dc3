# src/novadefense/core/engine.py
from __future__ import annotations

from dataclasses import dataclass, replace
import logging
from typing import Any, Callable

from .config import DEFAULT_CONFIG, SimConfig
from .model.entities import Missile
from .model.layout import BATTERY_SLOTS, Layout, default_layout
from .model.state import GameState, Phase
from .rng import normalize_seed, seed_state
from .rules.collisions import resolve_explosion_kills
from .rules.explosions import step_explosions
from .rules.firing import fire_missile
from .rules.motion import step_missiles, step_rockets
from .rules.spawner import spawn_probability, try_spawn


logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class AmmoSnapshot:
    left: int
    center: int
    right: int


@dataclass(frozen=True, slots=True)
class Snapshot:
    score: int
    ammo: AmmoSnapshot
    phase: Phase


VictoryCallback = Callable[[Snapshot], None]


def ammo_snapshot(state: GameState) -> AmmoSnapshot:
    counts = [int(b.ammo) for b in state.batteries[: len(BATTERY_SLOTS)]]
    counts.extend([0] * (len(BATTERY_SLOTS) - len(counts)))
    return AmmoSnapshot(left=counts[0], center=counts[1], right=counts[2])


def config_for_layout(config: SimConfig, layout: Layout) -> SimConfig:
    """
    The layout owns the world size: rocket origins and normalization follow it.
    """
    if config.world_width == layout.width and config.world_height == layout.height:
        return config
    return replace(config, world_width=float(layout.width), world_height=float(layout.height))


def new_round_state(layout: Layout, seed: int | None) -> GameState:
    state = GameState(
        batteries=layout.build_batteries(),
        cities=layout.build_cities(),
    )
    seed_state(state, seed)
    return state


class Engine:
    """
    Round controller : possède l'état d'une manche, aucune dépendance GUI.

    One `tick()` per animation frame. In order: spawn, rocket motion (impacts),
    missile motion (detonations), explosion kills, explosion lifecycle, then
    the won / lost checks.
    """
    FRAME_DT = 1.0 / 60.0

    def __init__(
        self,
        layout: Layout | None = None,
        config: SimConfig | None = None,
        *,
        seed: int | None = None,
        on_victory: VictoryCallback | None = None,
    ) -> None:
        self.config = config if config is not None else DEFAULT_CONFIG
        if layout is None:
            layout = default_layout(self.config.world_width, self.config.world_height)
        self.layout = layout
        self.config = config_for_layout(self.config, layout)
        self.seed = normalize_seed(seed)
        self.on_victory = on_victory

        self.state = new_round_state(self.layout, self.seed)
        self._snapshot = self._build_snapshot()
        self._accum = 0.0

    @property
    def phase(self) -> Phase:
        return self.state.phase

    def restart(self, *, seed: int | None = None) -> Snapshot:
        # Sans nouveau seed, la manche rejoue le même flux aléatoire.
        if seed is not None:
            self.seed = normalize_seed(seed)
        self.state = new_round_state(self.layout, self.seed)
        self.state.phase = "playing"
        self._accum = 0.0
        self._snapshot = self._build_snapshot()
        logger.debug("Round restarted seed=%s", self.seed)
        return self._snapshot

    def fire(self, x: float, y: float) -> Missile | None:
        if self.state.phase != "playing":
            return None
        return fire_missile(self.state, float(x), float(y))

    def fire_at(self, point: tuple[float, float]) -> Missile | None:
        x, y = point
        return self.fire(x, y)

    def tick(self) -> Snapshot:
        s = self.state
        if s.phase != "playing":
            return self._snapshot

        cfg = self.config
        try_spawn(s, spawn_probability(s.score, cfg), cfg)
        step_rockets(s, cfg)
        step_missiles(s, cfg)
        resolve_explosion_kills(s, cfg)
        step_explosions(s, cfg)
        s.ticks += 1

        if s.score >= cfg.win_score:
            self._set_phase("won")
        if all(b.destroyed for b in s.batteries):
            self._set_phase("lost")

        self._snapshot = self._build_snapshot()
        if s.phase == "won" and self.on_victory is not None:
            self.on_victory(self._snapshot)
        return self._snapshot

    def step(self, dt_seconds: float) -> Snapshot:
        """
        Avance la simulation en "fixed-step" (FRAME_DT par tick).
        """
        if self.state.phase != "playing":
            return self._snapshot
        self._accum += max(0.0, dt_seconds)
        while self._accum >= self.FRAME_DT:
            self._accum -= self.FRAME_DT
            self.tick()
            if self.state.phase != "playing":
                self._accum = 0.0
                break
        return self._snapshot

    def snapshot(self) -> Snapshot:
        return self._snapshot

    def _set_phase(self, phase: Phase) -> None:
        if self.state.phase == phase:
            return
        logger.info(
            "Phase %s -> %s at tick=%s score=%s",
            self.state.phase,
            phase,
            self.state.ticks,
            self.state.score,
        )
        self.state.phase = phase

    def _build_snapshot(self) -> Snapshot:
        return Snapshot(score=int(self.state.score), ammo=ammo_snapshot(self.state), phase=self.state.phase)

    def observe(self) -> dict[str, Any]:
        """
        Copie en lecture seule de tous les stores (pour un rendu).
        """
        s = self.state
        return {
            "score": s.score,
            "phase": s.phase,
            "ticks": s.ticks,
            "spawn_probability": spawn_probability(s.score, self.config),
            "world": {"width": self.layout.width, "height": self.layout.height},
            "rockets": [
                {
                    "id": r.id,
                    "x": r.x,
                    "y": r.y,
                    "target_x": r.target_x,
                    "target_y": r.target_y,
                    "speed": r.speed,
                    "hue": r.hue,
                }
                for r in s.rockets
            ],
            "missiles": [
                {
                    "id": m.id,
                    "x": m.x,
                    "y": m.y,
                    "start_x": m.start_x,
                    "start_y": m.start_y,
                    "dest_x": m.dest_x,
                    "dest_y": m.dest_y,
                }
                for m in s.missiles
            ],
            "explosions": [
                {"id": e.id, "x": e.x, "y": e.y, "radius": e.radius, "growing": e.growing}
                for e in s.explosions
            ],
            "batteries": [
                {
                    "slot": slot,
                    "x": b.x,
                    "y": b.y,
                    "ammo": b.ammo,
                    "max_ammo": b.max_ammo,
                    "destroyed": b.destroyed,
                }
                for slot, b in zip(BATTERY_SLOTS, s.batteries)
            ],
            "cities": [{"x": c.x, "y": c.y, "destroyed": c.destroyed} for c in s.cities],
        }
