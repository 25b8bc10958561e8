import math
import random

import pytest

from layout import (
    MAX_ITERATIONS,
    MIN_SEPARATION_PX,
    Marker,
    build_markers,
    layout_markers,
    local_projection,
    star_radius,
)
from projection import SYSTEM_PADDING
from universe import AU_IN_METERS, SOLAR_RADIUS_METERS, Moon, Star


def _marker(i, x, y, radius=6.0):
    return Marker(("planet", i), x, y, radius, (255, 255, 255), f"P{i}")


def test_overlapping_pair_is_pushed_to_min_separation():
    a, b = _marker(1, 100, 100), _marker(2, 105, 100)
    result = layout_markers([a, b])
    assert (a.x, b.x) == (95, 110)
    assert a.y == b.y == 100
    assert result.settled
    assert result.iterations == 2
    assert result.positions[("planet", 1)] == (95, 100, 6.0)


def test_coincident_markers_separate_along_x():
    a, b = _marker(1, 50, 50), _marker(2, 50, 50)
    layout_markers([a, b])
    assert (a.x, b.x) == (42.5, 57.5)
    assert a.y == b.y == 50


def test_separated_markers_are_untouched():
    markers = [_marker(i, i * 40.0, 0.0) for i in range(5)]
    result = layout_markers(markers)
    assert result.iterations == 1
    assert result.settled
    assert [m.x for m in markers] == [0, 40, 80, 120, 160]


def test_relaxation_separates_or_runs_out_of_budget():
    rng = random.Random(3)
    for trial in range(20):
        count = rng.randint(2, 25)
        markers = [_marker(i, rng.uniform(0, 60), rng.uniform(0, 60)) for i in range(count)]
        result = layout_markers(markers)
        if result.settled:
            for i, a in enumerate(markers):
                for b in markers[i + 1:]:
                    assert math.hypot(a.x - b.x, a.y - b.y) >= MIN_SEPARATION_PX - 1e-9
        else:
            assert result.iterations == MAX_ITERATIONS


def test_star_radius_from_solar_radii():
    def star(radius_m):
        return Star({"_key": 1, "radius": radius_m})

    assert star_radius(star(None)) == 12
    assert star_radius(star(2 * SOLAR_RADIUS_METERS)) == 16
    assert star_radius(star(100 * SOLAR_RADIUS_METERS)) == 20
    assert star_radius(star(0.1 * SOLAR_RADIUS_METERS)) == pytest.approx(8.4)


def test_markers_follow_hit_test_order(local_system):
    proj = local_projection(local_system, 1000, 800, SYSTEM_PADDING)
    markers = build_markers(local_system, proj)
    assert [m.kind for m in markers] == ["star", "planet", "planet", "stargate", "station"]
    assert markers[0].key == ("star", 40009076)
    assert markers[1].label == "Jita I"
    assert markers[3].label == "Stargate (Perimeter)"
    assert [m.radius for m in markers[1:]] == [6, 6, 5, 4]


def test_station_on_planet_is_pushed_clear(local_system):
    proj = local_projection(local_system, 1000, 800, SYSTEM_PADDING)
    markers = build_markers(local_system, proj)
    result = layout_markers(markers)
    planet = result.positions[("planet", 40009080)]
    station = result.positions[("station", 60003760)]
    assert math.hypot(planet.x - station.x, planet.y - station.y) >= MIN_SEPARATION_PX - 1e-9


def test_moons_widen_local_framing_but_get_no_marker(local_system):
    before = local_projection(local_system, 1000, 800, SYSTEM_PADDING)
    local_system.moons.append(Moon({
        "_key": 40009081,
        "orbitID": 40009080,
        "orbitIndex": 1,
        "position": {"x": 5 * AU_IN_METERS, "y": 0, "z": 0},
    }, "Jita", local_system.planets[1]))
    after = local_projection(local_system, 1000, 800, SYSTEM_PADDING)
    assert after.bounds.max_x == 5 * AU_IN_METERS
    assert after.scale < before.scale
    assert local_system.moons[0].name == "Jita II - Moon 1"
    markers = build_markers(local_system, after)
    assert "moon" not in {m.kind for m in markers}
