"""
projection.py

Bounding-box fit projection from world coordinates into pre-camera pixel space.

The projector is rebuilt only when the entity set or the surface size changes;
callers cache the projected positions it produces and hand those to the camera.
"""

from typing import Iterable, Tuple

MAP_PADDING = 50
SYSTEM_PADDING = 100


class Bounds:
    """Axis-aligned bounding box over a set of world positions."""

    def __init__(self, min_x: float, min_y: float, max_x: float, max_y: float):
        self.min_x = min_x
        self.min_y = min_y
        self.max_x = max_x
        self.max_y = max_y

    @classmethod
    def from_points(cls, points: Iterable[Tuple[float, float]]) -> "Bounds":
        min_x = min_y = float("inf")
        max_x = max_y = float("-inf")
        for x, y in points:
            if x < min_x:
                min_x = x
            if x > max_x:
                max_x = x
            if y < min_y:
                min_y = y
            if y > max_y:
                max_y = y
        if min_x == float("inf"):
            return cls(0.0, 0.0, 0.0, 0.0)
        return cls(min_x, min_y, max_x, max_y)

    @property
    def width(self) -> float:
        return self.max_x - self.min_x

    @property
    def height(self) -> float:
        return self.max_y - self.min_y

    def __repr__(self) -> str:
        return f"Bounds({self.min_x}, {self.min_y}, {self.max_x}, {self.max_y})"


class Projection:
    """Uniform-scale fit of a world bounding box onto a drawing surface.

    ``project`` flips the vertical axis so that larger world y renders toward
    the top of the surface.
    """

    def __init__(self, bounds: Bounds, width: int, height: int, padding: float, scale: float):
        self.bounds = bounds
        self.width = width
        self.height = height
        self.padding = padding
        self.scale = scale

    @classmethod
    def fit(cls, bounds: Bounds, width: int, height: int, padding: float = MAP_PADDING) -> "Projection":
        candidates = []
        if bounds.width > 0:
            candidates.append((width - padding * 2) / bounds.width)
        if bounds.height > 0:
            candidates.append((height - padding * 2) / bounds.height)
        # zero-size box (single entity or empty set) keeps unit scale
        scale = min(candidates) if candidates else 1.0
        return cls(bounds, width, height, padding, scale)

    @classmethod
    def for_points(
        cls,
        points: Iterable[Tuple[float, float]],
        width: int,
        height: int,
        padding: float = MAP_PADDING,
    ) -> "Projection":
        return cls.fit(Bounds.from_points(points), width, height, padding)

    def project(self, x: float, y: float) -> Tuple[float, float]:
        b = self.bounds
        px = (x - b.min_x) * self.scale + self.padding
        py = self.height - ((y - b.min_y) * self.scale + self.padding)
        return px, py

    def unproject(self, px: float, py: float) -> Tuple[float, float]:
        b = self.bounds
        x = (px - self.padding) / self.scale + b.min_x
        y = (self.height - py - self.padding) / self.scale + b.min_y
        return x, y

    def projected_center(self) -> Tuple[float, float]:
        """Midpoint of the projected bounding box, in pre-camera pixels."""
        left, bottom = self.project(self.bounds.min_x, self.bounds.min_y)
        right, top = self.project(self.bounds.max_x, self.bounds.max_y)
        return (left + right) / 2.0, (top + bottom) / 2.0

    def world_length(self, length: float) -> float:
        """Convert a world-space distance into pre-camera pixels."""
        return length * self.scale
