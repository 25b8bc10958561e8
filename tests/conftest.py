import json
import os

os.environ.setdefault("SDL_VIDEODRIVER", "dummy")
os.environ.setdefault("SDL_AUDIODRIVER", "dummy")

import pygame
import pytest

from universe import (
    AU_IN_METERS,
    LocalSystem,
    MapData,
    Planet,
    Region,
    SolarSystem,
    Star,
    Stargate,
    Station,
)


def system_record(system_id, x, y, region_id=10, name=None, security=0.5, **extra):
    record = {
        "_key": system_id,
        "name": {"en": name or f"S{system_id}"},
        "regionID": region_id,
        "constellationID": region_id * 100,
        "securityStatus": security,
        "position2D": {"x": x, "y": y},
    }
    record.update(extra)
    return record


class ImmediateExecutor:
    """Runs submitted work inline so worker code paths are deterministic in tests."""

    def __init__(self):
        self.submitted = []

    def submit(self, fn, *args, **kwargs):
        self.submitted.append((fn, args))
        return fn(*args, **kwargs)


class DeferredExecutor:
    """Collects submitted work; ``run_all`` executes it later, out of band."""

    def __init__(self):
        self.jobs = []

    def submit(self, fn, *args, **kwargs):
        self.jobs.append((fn, args, kwargs))

    def run_all(self):
        jobs, self.jobs = self.jobs, []
        for fn, args, kwargs in jobs:
            fn(*args, **kwargs)


class FakeClock:
    def __init__(self, now=0.0):
        self.now = now

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now += seconds


@pytest.fixture(scope="session", autouse=True)
def pygame_session():
    pygame.init()
    yield
    pygame.quit()


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def triangle_map():
    """Three systems at (0,0), (1,0), (1,1); the first two share region Alpha."""
    regions = [
        Region({"_key": 10, "name": {"en": "Alpha"}}),
        Region({"_key": 20, "name": {"en": "Beta"}}),
    ]
    systems = [
        SolarSystem(system_record(1, 0.0, 0.0, 10, "Amber", 0.9)),
        SolarSystem(system_record(2, 1.0, 0.0, 10, "Ash", 0.45)),
        SolarSystem(system_record(3, 1.0, 1.0, 20, "Basalt", -0.2)),
    ]
    return MapData(regions, systems, [(1, 2), (2, 1), (2, 3)])


@pytest.fixture
def local_system():
    system = SolarSystem(system_record(30000142, 0.0, 0.0, 10000002, "Jita", 0.946, starID=40009076))
    region = Region({"_key": 10000002, "name": {"en": "The Forge"}})
    star = Star({
        "_key": 40009076,
        "typeID": 45041,
        "radius": 6.96e8,
        "position": {"x": 0, "y": 0, "z": 0},
        "statistics": {"spectralClass": "K7 V", "temperature": 4100},
    })
    planets = [
        Planet({
            "_key": 40009077,
            "typeID": 11,
            "celestialIndex": 1,
            "position": {"x": 0.4 * AU_IN_METERS, "y": 0, "z": 0},
            "statistics": {"temperature": 700},
        }, "Jita"),
        Planet({
            "_key": 40009080,
            "typeID": 13,
            "celestialIndex": 2,
            "position": {"x": 0, "y": 0, "z": 1.5 * AU_IN_METERS},
            "statistics": {"temperature": 280},
        }, "Jita"),
    ]
    stargates = [
        Stargate({
            "_key": 50001248,
            "typeID": 29624,
            "position": {"x": -2.2 * AU_IN_METERS, "y": 0, "z": 0.3 * AU_IN_METERS},
            "destination": {"solarSystemID": 30000144, "stargateID": 50001249},
        }, "Perimeter"),
    ]
    stations = [
        Station({
            "_key": 60003760,
            "typeID": 52678,
            "ownerID": 1000035,
            "name": "Jita IV - Moon 4 - Caldari Navy Assembly Plant",
            # sits on top of planet II in the plane
            "position": {"x": 0, "y": 0, "z": 1.5 * AU_IN_METERS},
        }),
    ]
    return LocalSystem(system, region, star, planets, stargates, stations)


@pytest.fixture
def write_jsonl(tmp_path):
    def write(filename, records):
        path = tmp_path / filename
        with open(path, "w", encoding="utf-8") as f:
            for record in records:
                f.write(json.dumps(record) + "\n")
        return path

    return write
