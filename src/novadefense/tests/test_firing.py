import math

from novadefense.core.engine import new_round_state
from novadefense.core.model.layout import DEFAULT_LAYOUT
from novadefense.core.rules.firing import fire_missile, select_battery


def _state():
    s = new_round_state(DEFAULT_LAYOUT, 5)
    s.phase = "playing"
    return s


def test_fire_picks_horizontally_closest_battery():
    s = _state()
    missile = fire_missile(s, 400.0, 300.0)

    assert missile is not None
    assert [b.ammo for b in s.batteries] == [20, 39, 20]
    assert s.missiles == [missile]
    assert (missile.start_x, missile.start_y) == (400.0, 580.0)
    assert (missile.x, missile.y) == (400.0, 580.0)
    assert (missile.dest_x, missile.dest_y) == (400.0, 300.0)


def test_fire_far_left_uses_left_battery():
    s = _state()
    fire_missile(s, 10.0, 100.0)
    assert [b.ammo for b in s.batteries] == [19, 40, 20]


def test_tie_goes_to_first_battery():
    s = _state()
    assert select_battery(s.batteries, 225.0) is s.batteries[0]
    s.batteries[1].destroyed = True
    assert select_battery(s.batteries, 400.0) is s.batteries[0]


def test_skips_empty_and_destroyed_batteries():
    s = _state()
    s.batteries[1].ammo = 0
    s.batteries[2].destroyed = True
    s.batteries[2].ammo = 0
    assert select_battery(s.batteries, 700.0) is s.batteries[0]


def test_fire_without_eligible_battery_is_noop():
    s = _state()
    for b in s.batteries:
        b.ammo = 0
    assert fire_missile(s, 400.0, 300.0) is None
    assert s.missiles == []
    assert [b.ammo for b in s.batteries] == [0, 0, 0]


def test_fire_at_non_finite_point_is_noop():
    s = _state()
    assert fire_missile(s, math.nan, 300.0) is None
    assert fire_missile(s, 400.0, math.inf) is None
    assert s.missiles == []
    assert [b.ammo for b in s.batteries] == [20, 40, 20]


def test_ammo_runs_out_then_next_battery_takes_over():
    s = _state()
    for _ in range(40):
        fire_missile(s, 400.0, 300.0)
    assert s.batteries[1].ammo == 0
    missile = fire_missile(s, 400.0, 300.0)
    assert missile is not None
    assert missile.start_x == 50.0
    assert len(s.missiles) == 41
