"""
universe.py

Static dataset for the star map: regions, solar systems, stargate edges and
the contents of a single solar system for the local view.

Records come from line-delimited JSON files (one object per line, ``_key`` as
identity, localized names under ``name.en``), e.g.

    sde/mapRegions.jsonl
    sde/mapSolarSystems.jsonl
    sde/mapStargates.jsonl
    sde/npcStations.jsonl
    sde/mapMoons.jsonl, npcCorporations.jsonl, stationOperations.jsonl, types.jsonl

Entities are immutable once loaded; lookups by id go through prebuilt dicts.
"""

import json
import logging
import os
from typing import Callable, Dict, Iterable, Iterator, List, Optional, Set, Tuple

logger = logging.getLogger(__name__)

AU_IN_METERS = 149_597_870_700
SOLAR_RADIUS_METERS = 696_000_000

REGIONS_FILE = "mapRegions.jsonl"
CONSTELLATIONS_FILE = "mapConstellations.jsonl"
SYSTEMS_FILE = "mapSolarSystems.jsonl"
STARGATES_FILE = "mapStargates.jsonl"
STARS_FILE = "mapStars.jsonl"
PLANETS_FILE = "mapPlanets.jsonl"
STATIONS_FILE = "npcStations.jsonl"
MOONS_FILE = "mapMoons.jsonl"
CORPORATIONS_FILE = "npcCorporations.jsonl"
OPERATIONS_FILE = "stationOperations.jsonl"
TYPES_FILE = "types.jsonl"

ROMAN_NUMERALS = [
    (10, "X"), (9, "IX"), (5, "V"), (4, "IV"), (1, "I"),
]


class SystemNotFoundError(LookupError):
    """Raised when a local view is requested for an id the dataset does not know."""

    def __init__(self, system_id: int):
        super().__init__(f"System {system_id} not found")
        self.system_id = system_id


def english_name(raw: dict, default: str = "") -> str:
    name = raw.get("name")
    if isinstance(name, dict):
        return name.get("en") or default
    if isinstance(name, str):
        return name
    return default


def to_roman(num: int) -> str:
    if num <= 0 or num > 39:
        return str(num)
    out = []
    for value, numeral in ROMAN_NUMERALS:
        while num >= value:
            out.append(numeral)
            num -= value
    return "".join(out)


def _position3d(raw: dict) -> Tuple[float, float, float]:
    pos = raw.get("position") or {}
    return (
        float(pos.get("x", 0.0)),
        float(pos.get("y", 0.0)),
        float(pos.get("z", 0.0)),
    )


# ---------- Map entities ----------


class Region:
    def __init__(self, raw: dict):
        self.id: int = int(raw["_key"])
        self.name: str = english_name(raw, f"Region {self.id}")
        self.faction_id: Optional[int] = raw.get("factionID")


class SolarSystem:
    """A node of the map graph."""

    def __init__(self, raw: dict):
        self.id: int = int(raw["_key"])
        self.name: str = english_name(raw, f"System {self.id}")
        self.region_id: int = int(raw.get("regionID", 0))
        self.constellation_id: int = int(raw.get("constellationID", 0))
        self.security: float = float(raw.get("securityStatus", 0.0))
        self.star_id: Optional[int] = raw.get("starID")
        self.planet_ids: List[int] = list(raw.get("planetIDs") or [])
        self.stargate_ids: List[int] = list(raw.get("stargateIDs") or [])

        # map plane position: the precomputed 2D layout wins over the 3D x/y
        pos2d = raw.get("position2D")
        if pos2d:
            self.pos: Tuple[float, float] = (float(pos2d["x"]), float(pos2d["y"]))
        else:
            x, y, _ = _position3d(raw)
            self.pos = (x, y)

    def __repr__(self) -> str:
        return f"SolarSystem({self.id}, {self.name!r})"


def dedupe_edges(pairs: Iterable[Tuple[int, int]]) -> List[Tuple[int, int]]:
    """Drop self-loops and repeated unordered pairs, keeping first-seen order."""
    seen: Set[Tuple[int, int]] = set()
    edges: List[Tuple[int, int]] = []
    for a, b in pairs:
        if a == b:
            continue
        key = (a, b) if a < b else (b, a)
        if key in seen:
            continue
        seen.add(key)
        edges.append((a, b))
    return edges


class MapData:
    """Regions, systems and deduplicated edges for the map view."""

    def __init__(
        self,
        regions: List[Region],
        systems: List[SolarSystem],
        edges: Iterable[Tuple[int, int]],
    ):
        self.regions = regions
        self.systems = systems
        self.regions_by_id: Dict[int, Region] = {r.id: r for r in regions}
        self.systems_by_id: Dict[int, SolarSystem] = {s.id: s for s in systems}
        self.edges: List[Tuple[int, int]] = [
            (a, b)
            for a, b in dedupe_edges(edges)
            if a in self.systems_by_id and b in self.systems_by_id
        ]

    def region_name(self, region_id: int) -> Optional[str]:
        region = self.regions_by_id.get(region_id)
        return region.name if region else None

    def systems_in_region(self, region_id: int) -> List[SolarSystem]:
        return [s for s in self.systems if s.region_id == region_id]


# ---------- Local (system view) entities ----------


class LocalObject:
    """Something drawn inside a solar system: star, planet, stargate or station."""

    kind = "object"

    def __init__(self, raw: dict):
        self.id: int = int(raw["_key"])
        self.type_id: Optional[int] = raw.get("typeID")
        self.position: Tuple[float, float, float] = _position3d(raw)
        self.radius_m: Optional[float] = raw.get("radius")
        self.name: str = english_name(raw, "")

    @property
    def plane_pos(self) -> Tuple[float, float]:
        """Local view plane: the ecliptic (x, z) pair."""
        return self.position[0], self.position[2]


class Star(LocalObject):
    kind = "star"

    def __init__(self, raw: dict):
        super().__init__(raw)
        stats = raw.get("statistics") or {}
        self.spectral_class: Optional[str] = stats.get("spectralClass")
        self.temperature: Optional[float] = stats.get("temperature")

    @property
    def solar_radii(self) -> Optional[float]:
        if not self.radius_m:
            return None
        return self.radius_m / SOLAR_RADIUS_METERS

    @property
    def label(self) -> str:
        return f"Star ({self.spectral_class})" if self.spectral_class else "Star"


class Planet(LocalObject):
    kind = "planet"

    def __init__(self, raw: dict, system_name: str = ""):
        super().__init__(raw)
        stats = raw.get("statistics") or {}
        self.temperature: Optional[float] = stats.get("temperature")
        self.celestial_index: Optional[int] = raw.get("celestialIndex")
        if not self.name:
            if self.celestial_index:
                self.name = f"{system_name} {to_roman(self.celestial_index)}".strip()
            else:
                self.name = f"{system_name} - Planet".strip(" -") or f"Planet {self.id}"


class Stargate(LocalObject):
    kind = "stargate"

    def __init__(self, raw: dict, destination_name: Optional[str] = None):
        super().__init__(raw)
        dest = raw.get("destination") or {}
        self.destination_system_id: Optional[int] = dest.get("solarSystemID")
        if not self.name:
            self.name = f"Stargate ({destination_name})" if destination_name else f"Stargate {self.id}"


class Moon(LocalObject):
    """Not drawn; moons only widen the local view's bounds and name stations."""

    kind = "moon"

    def __init__(self, raw: dict, system_name: str = "", planet: Optional[Planet] = None):
        super().__init__(raw)
        self.orbit_id: Optional[int] = raw.get("orbitID")
        self.orbit_index: Optional[int] = raw.get("orbitIndex")
        if not self.name:
            if planet is not None and planet.celestial_index and self.orbit_index:
                self.name = f"{system_name} {to_roman(planet.celestial_index)} - Moon {self.orbit_index}"
            else:
                self.name = f"{system_name} - Moon".strip(" -") or f"Moon {self.id}"


class Station(LocalObject):
    kind = "station"

    def __init__(self, raw: dict, full_name: Optional[str] = None):
        super().__init__(raw)
        self.owner_id: Optional[int] = raw.get("ownerID")
        self.orbit_id: Optional[int] = raw.get("orbitID")
        self.celestial_index: Optional[int] = raw.get("celestialIndex")
        if not self.name:
            self.name = full_name or f"Station {self.id}"


def station_full_name(
    raw: dict,
    system_name: str,
    corporations: Dict[int, str],
    operations: Dict[int, str],
    type_names: Dict[int, str],
    moons_by_id: Dict[int, Moon],
) -> Optional[str]:
    """Display name ``{system} {roman} - Moon {n} - {corp} {operation}``; None when nothing names it."""
    corp = corporations.get(raw.get("ownerID"), "")
    if raw.get("useOperationName") and raw.get("operationID"):
        operation = operations.get(raw["operationID"], "")
    else:
        operation = type_names.get(raw.get("typeID"), "")
    if not corp and not operation:
        return None
    label = " ".join(part for part in (corp, operation) if part)

    moon = moons_by_id.get(raw.get("orbitID"))
    celestial_index = raw.get("celestialIndex")
    if celestial_index and moon is not None and moon.orbit_index:
        return f"{system_name} {to_roman(celestial_index)} - Moon {moon.orbit_index} - {label}"
    return f"{system_name} - {label}"


class LocalSystem:
    """Everything the system view draws for one solar system."""

    def __init__(
        self,
        system: SolarSystem,
        region: Optional[Region],
        star: Optional[Star],
        planets: List[Planet],
        stargates: List[Stargate],
        stations: List[Station],
        moons: Optional[List[Moon]] = None,
    ):
        self.system = system
        self.region = region
        self.star = star
        self.planets = planets
        self.stargates = stargates
        self.stations = stations
        self.moons: List[Moon] = moons or []

    @property
    def id(self) -> int:
        return self.system.id

    def objects(self) -> List[LocalObject]:
        """All drawable objects, star first, in hit-test order."""
        out: List[LocalObject] = []
        if self.star:
            out.append(self.star)
        out.extend(self.planets)
        out.extend(self.stargates)
        out.extend(self.stations)
        return out

    def bounds_points(self) -> List[Tuple[float, float]]:
        """Plane positions the local view must frame: every drawn object plus the moons."""
        return [obj.plane_pos for obj in [*self.objects(), *self.moons]]

    def max_orbit_au(self) -> int:
        """Whole AU count covering the farthest planet, gate or station from the star."""
        sx, _, sz = self.star.position if self.star else (0.0, 0.0, 0.0)
        max_d = 0.0
        for obj in [*self.planets, *self.stargates, *self.stations]:
            dx = obj.position[0] - sx
            dz = obj.position[2] - sz
            max_d = max(max_d, (dx * dx + dz * dz) ** 0.5)
        au = max_d / AU_IN_METERS
        whole = int(au)
        return whole if whole == au else whole + 1


# ---------- JSONL loading ----------


def iter_records(path: str) -> Iterator[dict]:
    """Yield one decoded record per non-blank line."""
    with open(path, "r", encoding="utf-8") as f:
        for lineno, line in enumerate(f, 1):
            if not line.strip():
                continue
            try:
                yield json.loads(line)
            except json.JSONDecodeError:
                logger.error("Malformed record in %s line %d", path, lineno)
                raise


def load_records(
    sde_dir: str, filename: str, keep: Optional[Callable[[dict], bool]] = None
) -> List[dict]:
    path = os.path.join(sde_dir, filename)
    return [r for r in iter_records(path) if keep is None or keep(r)]


def _load_optional(sde_dir: str, filename: str, keep: Callable[[dict], bool]) -> List[dict]:
    path = os.path.join(sde_dir, filename)
    if not os.path.exists(path):
        logger.debug("Optional dataset file %s missing", path)
        return []
    return [r for r in iter_records(path) if keep(r)]


def load_map_data(sde_dir: str, region_ids: Optional[Set[int]] = None) -> MapData:
    """Load regions, systems and stargate edges, optionally limited to some regions."""

    def in_regions(key: str) -> Callable[[dict], bool]:
        if region_ids is None:
            return lambda r: True
        return lambda r: r.get(key) in region_ids

    regions = [Region(r) for r in load_records(sde_dir, REGIONS_FILE, in_regions("_key"))]
    systems = [SolarSystem(r) for r in load_records(sde_dir, SYSTEMS_FILE, in_regions("regionID"))]
    system_ids = {s.id for s in systems}

    pairs = []
    for gate in load_records(sde_dir, STARGATES_FILE, lambda r: r.get("solarSystemID") in system_ids):
        dest = (gate.get("destination") or {}).get("solarSystemID")
        if dest is not None:
            pairs.append((int(gate["solarSystemID"]), int(dest)))

    data = MapData(regions, systems, pairs)
    logger.info(
        "Loaded %d regions, %d systems, %d edges from %s",
        len(data.regions), len(data.systems), len(data.edges), sde_dir,
    )
    return data


def load_local_system(sde_dir: str, system_id: int, map_data: Optional[MapData] = None) -> LocalSystem:
    """Load one system's star, planets, stargates and stations.

    Raises SystemNotFoundError when ``system_id`` is unknown.
    """
    system: Optional[SolarSystem] = None
    if map_data is not None:
        system = map_data.systems_by_id.get(system_id)
    if system is None:
        for raw in iter_records(os.path.join(sde_dir, SYSTEMS_FILE)):
            if raw.get("_key") == system_id:
                system = SolarSystem(raw)
                break
    if system is None:
        raise SystemNotFoundError(system_id)

    region = map_data.regions_by_id.get(system.region_id) if map_data else None
    if region is None:
        found = _load_optional(sde_dir, REGIONS_FILE, lambda r: r.get("_key") == system.region_id)
        region = Region(found[0]) if found else None

    def in_system(r: dict) -> bool:
        return r.get("solarSystemID") == system_id

    star = None
    if system.star_id is not None:
        stars = _load_optional(sde_dir, STARS_FILE, lambda r: r.get("_key") == system.star_id)
        star = Star(stars[0]) if stars else None

    planets = [Planet(r, system.name) for r in _load_optional(sde_dir, PLANETS_FILE, in_system)]
    planets.sort(key=lambda p: p.celestial_index or 0)

    def destination_name(raw: dict) -> Optional[str]:
        dest = (raw.get("destination") or {}).get("solarSystemID")
        if map_data is not None and dest in map_data.systems_by_id:
            return map_data.systems_by_id[dest].name
        return None

    stargates = [
        Stargate(r, destination_name(r)) for r in _load_optional(sde_dir, STARGATES_FILE, in_system)
    ]
    planets_by_id = {p.id: p for p in planets}
    moons = [
        Moon(r, system.name, planets_by_id.get(r.get("orbitID")))
        for r in _load_optional(sde_dir, MOONS_FILE, in_system)
    ]
    stations = _load_stations(sde_dir, system.name, _load_optional(sde_dir, STATIONS_FILE, in_system), moons)

    logger.info(
        "Loaded system %s: %d planets, %d moons, %d stargates, %d stations",
        system.name, len(planets), len(moons), len(stargates), len(stations),
    )
    return LocalSystem(system, region, star, planets, stargates, stations, moons)


def _name_lookup(sde_dir: str, filename: str, keys: Set[int], field: str = "name") -> Dict[int, str]:
    if not keys:
        return {}
    found = {}
    for raw in _load_optional(sde_dir, filename, lambda r: r.get("_key") in keys):
        value = raw.get(field)
        name = value.get("en") if isinstance(value, dict) else value
        if name:
            found[int(raw["_key"])] = name
    return found


def _load_stations(sde_dir: str, system_name: str, records: List[dict], moons: List[Moon]) -> List[Station]:
    """Build stations with their display names from corporation, operation and moon records."""
    owner_ids = {r["ownerID"] for r in records if r.get("ownerID")}
    operation_ids = {r["operationID"] for r in records if r.get("useOperationName") and r.get("operationID")}
    type_ids = {r["typeID"] for r in records if not r.get("useOperationName") and r.get("typeID")}

    corporations = _name_lookup(sde_dir, CORPORATIONS_FILE, owner_ids)
    operations = _name_lookup(sde_dir, OPERATIONS_FILE, operation_ids, "operationName")
    type_names = _name_lookup(sde_dir, TYPES_FILE, type_ids)
    moons_by_id = {m.id: m for m in moons}

    return [
        Station(r, station_full_name(r, system_name, corporations, operations, type_names, moons_by_id))
        for r in records
    ]
