from __future__ import annotations

from dataclasses import dataclass
import hashlib
from pathlib import Path
import json
import logging
from typing import Any

from novadefense.core.config import SimConfig, sim_config_from_dict
from novadefense.core.engine import Engine
from novadefense.core.model.layout import Layout, load_layout_json


logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class FireCommand:
    tick: int
    x: float
    y: float


@dataclass(frozen=True, slots=True)
class Replay:
    """
    Command log of one round: seed + fire commands keyed by the tick they precede.

    Re-simulating it with the recorded `sim_config` reproduces the round; no game state is stored.
    """
    seed: int
    ticks: int
    commands: list[FireCommand]
    layout_path: str | None = None
    state_hashes: list[dict[str, Any]] | None = None
    final_summary: dict[str, Any] | None = None
    sim_config: dict[str, Any] | None = None


def _as_int(value: Any, default: int = 0) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        return default


def _as_float(value: Any, default: float = 0.0) -> float:
    try:
        return float(value)
    except (TypeError, ValueError):
        return default


def _state_snapshot(state) -> dict[str, Any]:
    return {
        "state": {
            "score": _as_int(getattr(state, "score", 0)),
            "phase": str(getattr(state, "phase", "")),
            "ticks": _as_int(getattr(state, "ticks", 0)),
            "rng_state": _as_int(getattr(state, "rng_state", 0)),
            "rng_calls": _as_int(getattr(state, "rng_calls", 0)),
            "next_id": _as_int(getattr(state, "next_id", 0)),
        },
        "rockets": [
            [
                _as_int(r.id),
                _as_float(r.x),
                _as_float(r.y),
                _as_float(r.target_x),
                _as_float(r.target_y),
                _as_float(r.speed),
            ]
            for r in getattr(state, "rockets", []) or []
        ],
        "missiles": [
            [_as_int(m.id), _as_float(m.x), _as_float(m.y), _as_float(m.dest_x), _as_float(m.dest_y)]
            for m in getattr(state, "missiles", []) or []
        ],
        "explosions": [
            [_as_int(e.id), _as_float(e.x), _as_float(e.y), _as_float(e.radius), bool(e.growing)]
            for e in getattr(state, "explosions", []) or []
        ],
        "batteries": [
            [_as_float(b.x), _as_float(b.y), _as_int(b.ammo), bool(b.destroyed)]
            for b in getattr(state, "batteries", []) or []
        ],
        "cities": [[_as_float(c.x), _as_float(c.y), bool(c.destroyed)] for c in getattr(state, "cities", []) or []],
    }


def _hash_payload(payload: Any) -> str:
    encoded = json.dumps(payload, sort_keys=True, separators=(",", ":"), ensure_ascii=True)
    return hashlib.sha256(encoded.encode("utf-8")).hexdigest()


def summarize(state) -> dict[str, Any]:
    batteries = list(getattr(state, "batteries", []) or [])
    cities = list(getattr(state, "cities", []) or [])
    return {
        "phase": str(getattr(state, "phase", "")),
        "score": _as_int(getattr(state, "score", 0)),
        "ticks": _as_int(getattr(state, "ticks", 0)),
        "ammo": [_as_int(b.ammo) for b in batteries],
        "batteries_alive": sum(1 for b in batteries if not b.destroyed),
        "cities_alive": sum(1 for c in cities if not c.destroyed),
    }


def build_state_check(state) -> dict[str, Any]:
    snapshot = _state_snapshot(state)
    return {
        "hash": _hash_payload(snapshot),
        "ticks": _as_int(getattr(state, "ticks", 0)),
        "rng_state": _as_int(getattr(state, "rng_state", 0)),
        "rng_calls": _as_int(getattr(state, "rng_calls", 0)),
        "section_hashes": {key: _hash_payload(value) for key, value in snapshot.items()},
        "summary": summarize(state),
    }


def save_replay(path: str | Path, replay: Replay) -> None:
    payload = {
        "seed": int(replay.seed),
        "ticks": int(replay.ticks),
        "layout_path": replay.layout_path,
        "commands": [[int(c.tick), float(c.x), float(c.y)] for c in replay.commands],
        "state_hashes": replay.state_hashes,
        "final_summary": replay.final_summary,
        "sim_config": replay.sim_config,
    }
    Path(path).write_text(json.dumps(payload, indent=2, sort_keys=True), encoding="utf-8")


def load_replay(path: str | Path) -> Replay:
    data = json.loads(Path(path).read_text(encoding="utf-8"))
    if "seed" not in data:
        raise ValueError(f"Replay {path} missing seed")
    commands: list[FireCommand] = []
    for raw in data.get("commands", []) or []:
        if not isinstance(raw, (list, tuple)) or len(raw) != 3:
            raise ValueError(f"Invalid replay command {raw!r}")
        commands.append(FireCommand(tick=int(raw[0]), x=float(raw[1]), y=float(raw[2])))
    commands.sort(key=lambda c: c.tick)
    return Replay(
        seed=int(data["seed"]),
        ticks=int(data.get("ticks", 0)),
        commands=commands,
        layout_path=data.get("layout_path"),
        state_hashes=data.get("state_hashes"),
        final_summary=data.get("final_summary"),
        sim_config=data.get("sim_config"),
    )


def run_replay_headless(
    replay: Replay,
    *,
    config: SimConfig | None = None,
    layout: Layout | None = None,
    assert_deterministic: bool = True,
) -> dict[str, Any]:
    if layout is None and replay.layout_path:
        layout = load_layout_json(replay.layout_path)
    if config is None and replay.sim_config:
        config = sim_config_from_dict(replay.sim_config)
    engine = Engine(layout, config, seed=replay.seed)
    engine.restart()

    pending = sorted(replay.commands, key=lambda c: c.tick)
    cursor = 0
    while engine.state.ticks < replay.ticks and engine.phase == "playing":
        while cursor < len(pending) and pending[cursor].tick <= engine.state.ticks:
            command = pending[cursor]
            if command.tick < engine.state.ticks:
                logger.warning("Replay command for past tick=%s applied at tick=%s", command.tick, engine.state.ticks)
            engine.fire(command.x, command.y)
            cursor += 1
        engine.tick()

    summary = summarize(engine.state)
    if assert_deterministic and replay.final_summary is not None:
        if replay.final_summary != summary:
            raise AssertionError(f"Replay summary mismatch: {summary} != {replay.final_summary}")
    if assert_deterministic and replay.state_hashes:
        expected = replay.state_hashes[-1].get("hash")
        actual = build_state_check(engine.state)["hash"]
        if expected is not None and expected != actual:
            raise AssertionError(f"Replay state hash mismatch: {actual} != {expected}")
    return summary
