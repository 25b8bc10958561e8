"""
layout.py

Marker layout for the system view.

Every object is projected into pre-camera pixels, then a few rounds of cheap
pairwise separation push apart markers that would draw on top of each other.
The result is the adjusted position cache: the one place both drawing and
hit-testing read marker positions from within a frame.
"""

import math
from typing import Dict, List, NamedTuple, Optional, Tuple

from palette import STARGATE_COLOR, STATION_COLOR, planet_color, star_color
from projection import Projection
from universe import LocalObject, LocalSystem, Planet, Star, Stargate, Station

MIN_SEPARATION_PX = 15.0
MAX_ITERATIONS = 5

STAR_RADIUS_DEFAULT = 12.0
STAR_RADIUS_MIN = 8.0
STAR_RADIUS_MAX = 20.0
PLANET_RADIUS = 6.0
STARGATE_RADIUS = 5.0
STATION_RADIUS = 4.0

MarkerKey = Tuple[str, int]


class Marker:
    """A drawable object in the system view; x/y are mutated by the relaxation."""

    __slots__ = ("key", "kind", "x", "y", "radius", "color", "label", "type_id")

    def __init__(
        self,
        key: MarkerKey,
        x: float,
        y: float,
        radius: float,
        color: Tuple[int, int, int],
        label: str,
        type_id: Optional[int] = None,
    ):
        self.key = key
        self.kind = key[0]
        self.x = x
        self.y = y
        self.radius = radius
        self.color = color
        self.label = label
        self.type_id = type_id


class Placed(NamedTuple):
    x: float
    y: float
    radius: float


class LayoutResult(NamedTuple):
    positions: Dict[MarkerKey, Placed]
    iterations: int
    settled: bool


def marker_key(obj: LocalObject) -> MarkerKey:
    return (obj.kind, obj.id)


def star_radius(star: Star) -> float:
    solar_radii = star.solar_radii
    if solar_radii is None:
        return STAR_RADIUS_DEFAULT
    return max(STAR_RADIUS_MIN, min(STAR_RADIUS_MAX, STAR_RADIUS_MIN + solar_radii * 4))


def make_marker(obj: LocalObject, projection: Projection) -> Marker:
    x, y = projection.project(*obj.plane_pos)
    if isinstance(obj, Star):
        return Marker(marker_key(obj), x, y, star_radius(obj), star_color(obj.spectral_class), obj.label, obj.type_id)
    if isinstance(obj, Planet):
        return Marker(marker_key(obj), x, y, PLANET_RADIUS, planet_color(obj.temperature), obj.name, obj.type_id)
    if isinstance(obj, Stargate):
        return Marker(marker_key(obj), x, y, STARGATE_RADIUS, STARGATE_COLOR, obj.name)
    if isinstance(obj, Station):
        return Marker(marker_key(obj), x, y, STATION_RADIUS, STATION_COLOR, obj.name)
    raise TypeError(f"no marker style for {type(obj).__name__}")


def build_markers(local: LocalSystem, projection: Projection) -> List[Marker]:
    return [make_marker(obj, projection) for obj in local.objects()]


def local_projection(local: LocalSystem, width: int, height: int, padding: float) -> Projection:
    return Projection.for_points(local.bounds_points(), width, height, padding)


def _cell(x: float, y: float, cell_size: float) -> Tuple[int, int]:
    return math.floor(x / cell_size), math.floor(y / cell_size)


def relax(
    markers: List[Marker],
    min_separation: float = MIN_SEPARATION_PX,
    max_iterations: int = MAX_ITERATIONS,
) -> Tuple[int, bool]:
    """Push overlapping markers apart in place.

    Returns (iterations run, settled). ``settled`` is False when the last
    iteration still found a collision; leftover overlap is acceptable.
    """
    cell_size = min_separation * 2
    iterations = 0
    for _ in range(max_iterations):
        iterations += 1
        collided = False

        grid: Dict[Tuple[int, int], List[int]] = {}
        for index, m in enumerate(markers):
            grid.setdefault(_cell(m.x, m.y, cell_size), []).append(index)

        checked = set()
        for i, a in enumerate(markers):
            cx, cy = _cell(a.x, a.y, cell_size)
            for dx in (-1, 0, 1):
                for dy in (-1, 0, 1):
                    for j in grid.get((cx + dx, cy + dy), ()):
                        if i == j:
                            continue
                        pair = (i, j) if i < j else (j, i)
                        if pair in checked:
                            continue
                        checked.add(pair)

                        b = markers[j]
                        vx = b.x - a.x
                        vy = b.y - a.y
                        distance = math.hypot(vx, vy)
                        if distance >= min_separation:
                            continue
                        collided = True
                        push = (min_separation - distance) / 2
                        if distance > 0:
                            ux, uy = vx / distance, vy / distance
                        else:
                            # coincident markers: separate along +x
                            ux, uy = 1.0, 0.0
                        a.x -= ux * push
                        a.y -= uy * push
                        b.x += ux * push
                        b.y += uy * push
        if not collided:
            return iterations, True
    return iterations, False


def layout_markers(
    markers: List[Marker],
    min_separation: float = MIN_SEPARATION_PX,
    max_iterations: int = MAX_ITERATIONS,
) -> LayoutResult:
    """Relax ``markers`` and build the adjusted position cache from them."""
    iterations, settled = relax(markers, min_separation, max_iterations)
    positions = {m.key: Placed(m.x, m.y, m.radius) for m in markers}
    return LayoutResult(positions, iterations, settled)
