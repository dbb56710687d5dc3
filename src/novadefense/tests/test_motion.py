import pytest

from novadefense.core.config import DEFAULT_CONFIG
from novadefense.core.engine import new_round_state
from novadefense.core.geometry import distance
from novadefense.core.model.entities import Missile, Rocket
from novadefense.core.model.layout import DEFAULT_LAYOUT
from novadefense.core.rules.motion import find_nearest_rocket, step_missiles, step_rockets


def _state():
    s = new_round_state(DEFAULT_LAYOUT, 5)
    s.phase = "playing"
    return s


def _rocket(s, x, y, tx, ty, speed=0.5):
    r = Rocket(id=s.new_id(), x=x, y=y, target_x=tx, target_y=ty, speed=speed)
    s.rockets.append(r)
    return r


def _missile(s, x, y, dx, dy):
    m = Missile(id=s.new_id(), x=x, y=y, start_x=x, start_y=y, dest_x=dx, dest_y=dy)
    s.missiles.append(m)
    return m


def test_rocket_moves_by_speed_toward_target():
    s = _state()
    r = _rocket(s, 0.0, 0.0, 30.0, 40.0, speed=0.5)
    assert step_rockets(s, DEFAULT_CONFIG) == 0
    assert (r.x, r.y) == pytest.approx((0.3, 0.4))


def test_rocket_distance_never_increases_until_impact():
    s = _state()
    target = s.cities[2]
    r = _rocket(s, 700.0, 0.0, target.x, target.y, speed=0.75)
    last = distance(r.x, r.y, target.x, target.y)
    impacts = 0
    for _ in range(2000):
        impacts = step_rockets(s, DEFAULT_CONFIG)
        if impacts:
            break
        d = distance(r.x, r.y, target.x, target.y)
        assert d <= last
        last = d
    assert impacts == 1
    assert s.rockets == []
    assert target.destroyed


def test_impact_destroys_targeted_battery_and_empties_it():
    s = _state()
    center = s.batteries[1]
    _rocket(s, center.x + 1.5, center.y, center.x, center.y)

    assert step_rockets(s, DEFAULT_CONFIG) == 1
    assert center.destroyed
    assert center.ammo == 0
    assert s.rockets == []
    assert len(s.explosions) == 1
    exp = s.explosions[0]
    assert (exp.x, exp.y) == (center.x + 1.5, center.y)
    assert exp.radius == DEFAULT_CONFIG.explosion_start_radius
    assert exp.growing
    assert not s.batteries[0].destroyed and not s.batteries[2].destroyed


def test_impact_on_city():
    s = _state()
    city = s.cities[4]
    _rocket(s, city.x, city.y, city.x, city.y)
    step_rockets(s, DEFAULT_CONFIG)
    assert city.destroyed
    assert sum(c.destroyed for c in s.cities) == 1
    assert not any(b.destroyed for b in s.batteries)


def test_impact_away_from_structures_destroys_nothing():
    s = _state()
    _rocket(s, 700.0, 100.0, 700.0, 100.0)
    assert step_rockets(s, DEFAULT_CONFIG) == 1
    assert not any(b.destroyed for b in s.batteries)
    assert not any(c.destroyed for c in s.cities)
    assert len(s.explosions) == 1


def test_rocket_just_outside_threshold_keeps_moving():
    s = _state()
    r = _rocket(s, 402.0, 580.0, 400.0, 580.0, speed=0.5)
    assert step_rockets(s, DEFAULT_CONFIG) == 0
    assert r.x == pytest.approx(401.5)
    assert s.rockets == [r]


def test_consecutive_impacts_in_same_tick():
    s = _state()
    for b in s.batteries:
        _rocket(s, b.x, b.y, b.x, b.y)
    assert step_rockets(s, DEFAULT_CONFIG) == 3
    assert all(b.destroyed for b in s.batteries)
    assert len(s.explosions) == 3


def test_find_nearest_rocket_strict_radius_and_ties():
    s = _state()
    _rocket(s, 0.0, 300.0, 0.0, 600.0)
    assert find_nearest_rocket(s.rockets, 0.0, 0.0, 300.0) is None
    first = _rocket(s, 10.0, 0.0, 0.0, 600.0)
    _rocket(s, -10.0, 0.0, 0.0, 600.0)
    assert find_nearest_rocket(s.rockets, 0.0, 0.0, 300.0) is first


def test_missile_reaims_at_nearest_rocket_in_range():
    s = _state()
    _rocket(s, 100.0, 100.0, 150.0, 585.0)
    near = _rocket(s, 400.0, 400.0, 450.0, 585.0)
    m = _missile(s, 400.0, 580.0, 700.0, 100.0)

    assert step_missiles(s, DEFAULT_CONFIG) == 0
    assert (m.dest_x, m.dest_y) == (near.x, near.y)
    assert (m.x, m.y) == pytest.approx((400.0, 573.0))


def test_missile_keeps_destination_without_rocket_in_range():
    s = _state()
    _rocket(s, 400.0, 200.0, 450.0, 585.0)
    m = _missile(s, 400.0, 500.0, 100.0, 500.0)
    step_missiles(s, DEFAULT_CONFIG)
    assert (m.dest_x, m.dest_y) == (100.0, 500.0)
    assert (m.x, m.y) == pytest.approx((393.0, 500.0))


def test_missile_switches_target_when_another_rocket_gets_closer():
    s = _state()
    a = _rocket(s, 400.0, 450.0, 400.0, 580.0, speed=0.25)
    m = _missile(s, 400.0, 580.0, 400.0, 300.0)
    step_missiles(s, DEFAULT_CONFIG)
    assert (m.dest_x, m.dest_y) == (a.x, a.y)

    b = _rocket(s, 410.0, 560.0, 400.0, 580.0, speed=0.25)
    step_missiles(s, DEFAULT_CONFIG)
    assert (m.dest_x, m.dest_y) == (b.x, b.y)


def test_missile_detonates_at_destination():
    s = _state()
    _missile(s, 400.0, 580.0, 400.0, 300.0)
    for _ in range(100):
        if step_missiles(s, DEFAULT_CONFIG):
            break
    assert s.missiles == []
    assert len(s.explosions) == 1
    assert (s.explosions[0].x, s.explosions[0].y) == (400.0, 300.0)


def test_missile_detonates_when_closer_than_one_step():
    s = _state()
    _missile(s, 400.0, 300.0, 400.0, 306.9)
    assert step_missiles(s, DEFAULT_CONFIG) == 1
    assert s.explosions[0].y == pytest.approx(306.9)
