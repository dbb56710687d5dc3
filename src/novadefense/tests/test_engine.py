import copy

import pytest

from novadefense.core.config import SimConfig
from novadefense.core.engine import Engine
from novadefense.core.model.entities import Explosion, Rocket


def _rockets_in_blast(engine, count):
    s = engine.state
    for _ in range(count):
        s.rockets.append(Rocket(id=s.new_id(), x=400.0, y=300.0, target_x=400.0, target_y=580.0, speed=0.25))


def _blast(engine, radius=30.0):
    s = engine.state
    s.explosions.append(Explosion(id=s.new_id(), x=400.0, y=300.0, radius=radius))


def test_new_engine_starts_in_menu():
    engine = Engine(seed=5)
    snap = engine.snapshot()
    assert snap.phase == "menu"
    assert snap.score == 0
    assert (snap.ammo.left, snap.ammo.center, snap.ammo.right) == (20, 40, 20)


def test_tick_and_fire_outside_playing_are_noops():
    engine = Engine(seed=5)
    before = copy.deepcopy(engine.state)
    for _ in range(10):
        engine.tick()
    assert engine.fire(400.0, 300.0) is None
    assert engine.step(1.0).phase == "menu"
    assert engine.state == before


def test_restart_snapshot():
    engine = Engine(seed=5)
    snap = engine.restart()
    assert snap.phase == "playing"
    assert snap.score == 0
    assert (snap.ammo.left, snap.ammo.center, snap.ammo.right) == (20, 40, 20)
    s = engine.state
    assert s.rockets == [] and s.missiles == [] and s.explosions == []
    assert len(s.cities) == 6
    assert not any(c.destroyed for c in s.cities)
    assert not any(b.destroyed for b in s.batteries)


def test_restart_is_idempotent():
    engine = Engine(seed=5)
    engine.restart()
    fresh = copy.deepcopy(engine.state)

    engine.restart()
    assert engine.state == fresh

    for _ in range(300):
        engine.tick()
    engine.fire(400.0, 200.0)
    engine.restart()
    assert engine.state == fresh


def test_restart_with_new_seed_changes_stream():
    engine = Engine(seed=5)
    engine.restart()
    first = engine.state.rng_state
    engine.restart(seed=6)
    assert engine.seed == 6
    assert engine.state.rng_state != first


def test_same_seed_same_round():
    a = Engine(seed=21)
    b = Engine(seed=21)
    a.restart()
    b.restart()
    for t in range(1500):
        if t % 40 == 0:
            a.fire(300.0, 250.0)
            b.fire(300.0, 250.0)
        a.tick()
        b.tick()
    assert a.state == b.state


def test_fire_in_playing():
    engine = Engine(seed=5)
    engine.restart()
    missile = engine.fire_at((400.0, 300.0))
    assert missile is not None
    assert engine.state.batteries[1].ammo == 39
    assert len(engine.state.missiles) == 1
    # La snapshot se rafraîchit au tick suivant.
    assert engine.tick().ammo.center == 39


def test_step_runs_fixed_ticks(no_spawn):
    engine = Engine(seed=5)
    engine.restart()
    engine.step(Engine.FRAME_DT * 2.5)
    assert engine.state.ticks == 2
    engine.step(-1.0)
    assert engine.state.ticks == 2


def test_win_on_the_tick_of_the_fiftieth_kill(playing_engine):
    engine = playing_engine
    victories = []
    engine.on_victory = victories.append

    _blast(engine)
    _rockets_in_blast(engine, 49)
    snap = engine.tick()
    assert snap.score == 980
    assert snap.phase == "playing"
    assert victories == []

    _rockets_in_blast(engine, 1)
    snap = engine.tick()
    assert snap.score == 1000
    assert snap.phase == "won"
    assert len(victories) == 1
    assert victories[0] == snap

    frozen = copy.deepcopy(engine.state)
    engine.tick()
    assert engine.state == frozen
    assert len(victories) == 1


def test_loss_when_every_battery_is_destroyed(playing_engine):
    engine = playing_engine
    s = engine.state
    for b in s.batteries:
        s.rockets.append(Rocket(id=s.new_id(), x=b.x, y=b.y, target_x=b.x, target_y=b.y, speed=0.5))

    snap = engine.tick()
    assert snap.phase == "lost"
    assert (snap.ammo.left, snap.ammo.center, snap.ammo.right) == (0, 0, 0)
    assert not any(c.destroyed for c in s.cities)
    assert engine.fire(400.0, 300.0) is None


def test_restart_after_loss_restores_initial_round(playing_engine):
    engine = playing_engine
    fresh = copy.deepcopy(engine.state)
    s = engine.state
    for b in s.batteries:
        s.rockets.append(Rocket(id=s.new_id(), x=b.x, y=b.y, target_x=b.x, target_y=b.y, speed=0.5))
    assert engine.tick().phase == "lost"

    snap = engine.restart()
    assert snap.phase == "playing"
    assert snap.score == 0
    assert (snap.ammo.left, snap.ammo.center, snap.ammo.right) == (20, 40, 20)
    assert engine.state == fresh
    assert engine.fire(400.0, 300.0) is not None


def test_restart_after_win_restores_initial_round(playing_engine):
    engine = playing_engine
    fresh = copy.deepcopy(engine.state)
    _blast(engine)
    _rockets_in_blast(engine, 50)
    assert engine.tick().phase == "won"

    snap = engine.restart()
    assert snap.phase == "playing"
    assert engine.state == fresh
    assert engine.tick().phase == "playing"


def test_losing_cities_does_not_end_the_round(playing_engine):
    engine = playing_engine
    s = engine.state
    for c in s.cities:
        s.rockets.append(Rocket(id=s.new_id(), x=c.x, y=c.y, target_x=c.x, target_y=c.y, speed=0.5))
    snap = engine.tick()
    assert all(c.destroyed for c in s.cities)
    assert snap.phase == "playing"


def test_loss_overrides_win_on_same_tick(playing_engine):
    engine = playing_engine
    s = engine.state
    _blast(engine)
    _rockets_in_blast(engine, 50)
    for b in s.batteries:
        s.rockets.append(Rocket(id=s.new_id(), x=b.x, y=b.y, target_x=b.x, target_y=b.y, speed=0.5))
    assert engine.tick().phase == "lost"


def test_spawning_happens_during_play():
    engine = Engine(config=SimConfig(spawn_base_probability=1.0), seed=5)
    engine.restart()
    engine.tick()
    assert len(engine.state.rockets) == 1


def test_observe_exposes_every_store():
    engine = Engine(seed=5)
    engine.restart()
    engine.fire(400.0, 300.0)
    view = engine.observe()
    assert view["phase"] == "playing"
    assert [b["slot"] for b in view["batteries"]] == ["left", "center", "right"]
    assert len(view["missiles"]) == 1
    assert len(view["cities"]) == 6
    assert view["spawn_probability"] == pytest.approx(0.015)
