"""
clustering.py

Label anchors for the map view.

Anchors are rebuilt from scratch every render pass from the current systems,
their projected positions and the active color mode:

- region / security: one anchor per region
- faction:           one anchor per owning faction (unowned systems skipped)
- alliance:          per alliance, one anchor per spatially connected group
"""

import math
from typing import Dict, Hashable, List, Mapping, Optional, Sequence, Tuple

from overlays import AllianceClaim
from palette import faction_name
from universe import MapData

ALLIANCE_PROXIMITY_PX = 150.0

LABEL_MAX_SCREEN_PX = 16.0
LABEL_MIN_SCREEN_PX = 8.0
LABEL_FADE_ZOOM = 5.0
LABEL_MIN_OPACITY = 0.2
LABEL_BACKING_ALPHA = 0.7

Point = Tuple[float, float]


class Anchor:
    """Running sum of member positions for one label."""

    __slots__ = ("key", "group_id", "sum_x", "sum_y", "count", "label")

    def __init__(self, key: Hashable, group_id: int, label: str):
        self.key = key
        self.group_id = group_id
        self.sum_x = 0.0
        self.sum_y = 0.0
        self.count = 0
        self.label = label

    def add(self, x: float, y: float):
        self.sum_x += x
        self.sum_y += y
        self.count += 1

    @property
    def center(self) -> Point:
        return self.sum_x / self.count, self.sum_y / self.count

    def __repr__(self) -> str:
        return f"Anchor({self.key!r}, {self.label!r}, n={self.count})"


def anchors_by_region(data: MapData, positions: Sequence[Point]) -> Dict[int, Anchor]:
    anchors: Dict[int, Anchor] = {}
    for system, (x, y) in zip(data.systems, positions):
        anchor = anchors.get(system.region_id)
        if anchor is None:
            label = data.region_name(system.region_id) or "Unknown"
            anchor = anchors[system.region_id] = Anchor(system.region_id, system.region_id, label)
        anchor.add(x, y)
    return anchors


def anchors_by_faction(
    data: MapData, positions: Sequence[Point], factions: Mapping[int, int]
) -> Dict[int, Anchor]:
    anchors: Dict[int, Anchor] = {}
    for system, (x, y) in zip(data.systems, positions):
        faction_id = factions.get(system.id)
        if not faction_id:
            continue
        anchor = anchors.get(faction_id)
        if anchor is None:
            anchor = anchors[faction_id] = Anchor(faction_id, faction_id, faction_name(faction_id))
        anchor.add(x, y)
    return anchors


def proximity_groups(points: Sequence[Point], threshold: float = ALLIANCE_PROXIMITY_PX) -> List[List[int]]:
    """Single-linkage grouping: connected components of the "closer than threshold" graph.

    Returns lists of indices into ``points``. A candidate joins a group when it
    is within ``threshold`` of any member; after each join the scan restarts
    so the new member is tested against everything still unvisited.
    """
    visited = [False] * len(points)
    groups: List[List[int]] = []
    for i in range(len(points)):
        if visited[i]:
            continue
        group = [i]
        visited[i] = True
        j = i + 1
        while j < len(points):
            if not visited[j]:
                xj, yj = points[j]
                for m in group:
                    xm, ym = points[m]
                    if math.hypot(xm - xj, ym - yj) < threshold:
                        group.append(j)
                        visited[j] = True
                        j = i
                        break
            j += 1
        groups.append(group)
    return groups


def anchors_by_alliance(
    data: MapData,
    positions: Sequence[Point],
    claims: Mapping[int, AllianceClaim],
    threshold: float = ALLIANCE_PROXIMITY_PX,
) -> Dict[int, Anchor]:
    members: Dict[int, List[Point]] = {}
    names: Dict[int, str] = {}
    for system, pos in zip(data.systems, positions):
        claim = claims.get(system.id)
        if claim is None:
            continue
        members.setdefault(claim.alliance_id, []).append(pos)
        names.setdefault(claim.alliance_id, claim.alliance_name)

    anchors: Dict[int, Anchor] = {}
    index = 0
    for alliance_id, points in members.items():
        for group in proximity_groups(points, threshold):
            anchor = Anchor(index, alliance_id, names[alliance_id])
            for m in group:
                anchor.add(*points[m])
            anchors[index] = anchor
            index += 1
    return anchors


def build_anchors(
    mode: str,
    data: MapData,
    positions: Sequence[Point],
    factions: Optional[Mapping[int, int]] = None,
    alliances: Optional[Mapping[int, AllianceClaim]] = None,
) -> Dict[Hashable, Anchor]:
    """Anchors for ``mode``; overlay modes with no overlay data produce none."""
    if mode == "faction":
        return anchors_by_faction(data, positions, factions) if factions is not None else {}
    if mode == "alliance":
        return anchors_by_alliance(data, positions, alliances) if alliances is not None else {}
    return anchors_by_region(data, positions)


# ---------- label styling ----------


def label_screen_size(zoom: float) -> float:
    return max(LABEL_MIN_SCREEN_PX, LABEL_MAX_SCREEN_PX - math.log(zoom) * 8)


def label_font_size(zoom: float) -> float:
    """Font size in pre-camera pixels; the camera scale brings it back to screen size."""
    return label_screen_size(zoom) / zoom


def label_opacity(zoom: float) -> float:
    if zoom < LABEL_FADE_ZOOM:
        return 1.0
    return max(LABEL_MIN_OPACITY, 1 - (zoom - LABEL_FADE_ZOOM) / 10)


def label_padding(zoom: float) -> float:
    return max(1.5, 4 / zoom)
