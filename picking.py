"""
picking.py

Nearest-marker lookup under the cursor for hover and click.

Both views work in pre-camera pixel space: the cursor goes through the
camera's inverse transform and the pixel tolerance is divided by the zoom,
so the tolerance stays constant on screen.

Ties: a candidate replaces the current best only when strictly closer, so of
several markers at exactly the same distance the first one in iteration order
wins (map: dataset order; system view: star, planets, stargates, stations).
"""

import math
from typing import Hashable, Iterable, Mapping, Optional, Sequence, Tuple

from camera import CameraController
from layout import Placed

MAP_HOVER_RADIUS_PX = 10.0
MAP_CLICK_RADIUS_PX = 12.0
SYSTEM_HOVER_BUFFER_PX = 3.0
SYSTEM_CLICK_BUFFER_PX = 5.0


def world_hit_radius(radius_px: float, zoom: float) -> float:
    """Screen-space tolerance expressed in pre-camera pixels."""
    return radius_px / zoom


def nearest(
    wx: float,
    wy: float,
    candidates: Iterable[Tuple[Hashable, float, float, float]],
) -> Optional[Hashable]:
    """Closest candidate ``(key, x, y, radius)`` strictly within its own radius."""
    best = None
    best_d = math.inf
    for key, x, y, radius in candidates:
        d = math.hypot(wx - x, wy - y)
        if d < radius and d < best_d:
            best_d = d
            best = key
    return best


def pick_system(
    camera: CameraController,
    sx: float,
    sy: float,
    system_ids: Sequence[int],
    positions: Sequence[Tuple[float, float]],
    radius_px: float = MAP_HOVER_RADIUS_PX,
) -> Optional[int]:
    """Map view: id of the system nearest to screen point (sx, sy), if any."""
    wx, wy = camera.to_world(sx, sy)
    r = world_hit_radius(radius_px, camera.camera.zoom)
    # cheap box reject before the distance check
    lo_x, hi_x, lo_y, hi_y = wx - r, wx + r, wy - r, wy + r
    candidates = (
        (sid, x, y, r)
        for sid, (x, y) in zip(system_ids, positions)
        if lo_x <= x <= hi_x and lo_y <= y <= hi_y
    )
    return nearest(wx, wy, candidates)


def pick_marker(
    camera: CameraController,
    sx: float,
    sy: float,
    adjusted: Mapping[Hashable, Placed],
    buffer_px: float = SYSTEM_HOVER_BUFFER_PX,
) -> Optional[Hashable]:
    """System view: key of the marker nearest to (sx, sy) from this frame's adjusted cache."""
    wx, wy = camera.to_world(sx, sy)
    zoom = camera.camera.zoom
    candidates = (
        (key, p.x, p.y, world_hit_radius(p.radius + buffer_px, zoom))
        for key, p in adjusted.items()
    )
    return nearest(wx, wy, candidates)
