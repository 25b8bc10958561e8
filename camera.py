"""
camera.py

Pan/zoom camera shared by the map view and the system view.

Forward transform (pre-camera pixels -> screen):

    screen = (p - size / 2) * zoom + size / 2 + offset

The controller is the single owner of the camera value. Input handlers only
record what they want (an accumulated wheel delta, the latest drag cursor);
``apply_pending`` folds that into a new camera once per display refresh, so a
burst of input events costs one camera update and at most one redraw.
"""

from dataclasses import dataclass, replace
from typing import Optional, Tuple

from projection import Projection

MIN_ZOOM = 0.1
MAX_ZOOM = 10.0
WHEEL_STEP = 0.1
KEY_ZOOM_STEP = 0.1
CLICK_SLOP_PX = 5.0


def clamp_zoom(zoom: float) -> float:
    return max(MIN_ZOOM, min(zoom, MAX_ZOOM))


@dataclass(frozen=True)
class Camera:
    offset_x: float = 0.0
    offset_y: float = 0.0
    zoom: float = 1.0


class CameraController:
    """Owns the camera for one view and converts between screen and pre-camera pixels."""

    def __init__(self, width: int, height: int, camera: Optional[Camera] = None):
        self.width = width
        self.height = height
        self.camera = camera or Camera()

        # Drag / pan
        self.dragging = False
        self.drag_anchor: Tuple[float, float] = (0.0, 0.0)
        self.press_pos: Tuple[float, float] = (0.0, 0.0)
        self._drag_cursor: Tuple[float, float] = (0.0, 0.0)
        self._pending_drag: Optional[Tuple[float, float]] = None

        # Wheel accumulation
        self._pending_zoom = 0.0
        self._zoom_cursor: Tuple[float, float] = (0.0, 0.0)

    # -------- transforms --------

    def to_screen(self, px: float, py: float) -> Tuple[float, float]:
        cam = self.camera
        sx = (px - self.width / 2) * cam.zoom + self.width / 2 + cam.offset_x
        sy = (py - self.height / 2) * cam.zoom + self.height / 2 + cam.offset_y
        return sx, sy

    def to_world(self, sx: float, sy: float) -> Tuple[float, float]:
        cam = self.camera
        px = (sx - self.width / 2 - cam.offset_x) / cam.zoom + self.width / 2
        py = (sy - self.height / 2 - cam.offset_y) / cam.zoom + self.height / 2
        return px, py

    def visible_rect(self) -> Tuple[float, float, float, float]:
        """Pre-camera pixel rectangle currently on screen as (left, top, right, bottom)."""
        left, top = self.to_world(0, 0)
        right, bottom = self.to_world(self.width, self.height)
        return left, top, right, bottom

    # -------- placement --------

    def resize(self, width: int, height: int):
        self.width = width
        self.height = height

    def center_on(self, px: float, py: float, zoom: float):
        """Put pre-camera point (px, py) at the surface center at the given zoom."""
        zoom = clamp_zoom(zoom)
        self.camera = Camera(
            offset_x=-(px - self.width / 2) * zoom,
            offset_y=-(py - self.height / 2) * zoom,
            zoom=zoom,
        )
        self._clear_pending()

    def reset_to(self, projection: Projection, zoom: float):
        cx, cy = projection.projected_center()
        self.center_on(cx, cy, zoom)

    # -------- zoom --------

    def zoomed_at(self, mx: float, my: float, delta: float, cam: Optional[Camera] = None) -> Camera:
        """Camera after zooming by ``delta`` while keeping the point under (mx, my) fixed."""
        cam = cam or self.camera
        world_x = (mx - self.width / 2 - cam.offset_x) / cam.zoom
        world_y = (my - self.height / 2 - cam.offset_y) / cam.zoom
        new_zoom = clamp_zoom(cam.zoom * (1 + delta))
        return Camera(
            offset_x=mx - self.width / 2 - world_x * new_zoom,
            offset_y=my - self.height / 2 - world_y * new_zoom,
            zoom=new_zoom,
        )

    def zoom_at(self, mx: float, my: float, delta: float):
        self.camera = self.zoomed_at(mx, my, delta)

    def queue_zoom(self, mx: float, my: float, delta: float):
        """Accumulate a wheel delta; applied by the next ``apply_pending``."""
        self._pending_zoom += delta
        self._zoom_cursor = (mx, my)

    def wheel(self, mx: float, my: float, notches: int):
        if notches > 0:
            self.queue_zoom(mx, my, WHEEL_STEP)
        elif notches < 0:
            self.queue_zoom(mx, my, -WHEEL_STEP)

    # -------- drag --------

    def begin_drag(self, sx: float, sy: float):
        self.dragging = True
        self.press_pos = (sx, sy)
        self.drag_anchor = (sx - self.camera.offset_x, sy - self.camera.offset_y)
        self._drag_cursor = (sx, sy)
        self._pending_drag = None

    def drag_to(self, sx: float, sy: float):
        if self.dragging:
            self._drag_cursor = (sx, sy)
            self._pending_drag = (sx, sy)

    def end_drag(self, sx: float, sy: float) -> bool:
        """Finish a drag; returns True when the gesture was a click rather than a pan."""
        if not self.dragging:
            return False
        self.drag_to(sx, sy)
        self.apply_pending()
        self.dragging = False
        dx = sx - self.press_pos[0]
        dy = sy - self.press_pos[1]
        return dx * dx + dy * dy < CLICK_SLOP_PX * CLICK_SLOP_PX

    def cancel_drag(self):
        self.dragging = False
        self._pending_drag = None

    # -------- per-refresh application --------

    def has_pending(self) -> bool:
        return self._pending_drag is not None or self._pending_zoom != 0.0

    def apply_pending(self) -> bool:
        """Fold queued drag/zoom input into a new camera; returns True if it changed."""
        if not self.has_pending():
            return False
        cam = self.camera
        if self._pending_drag is not None:
            sx, sy = self._pending_drag
            cam = replace(
                cam,
                offset_x=sx - self.drag_anchor[0],
                offset_y=sy - self.drag_anchor[1],
            )
        if self._pending_zoom != 0.0:
            mx, my = self._zoom_cursor
            cam = self.zoomed_at(mx, my, self._pending_zoom, cam)
            if self.dragging:
                # keep the pan anchor consistent with the zoomed offset
                sx, sy = self._drag_cursor
                self.drag_anchor = (sx - cam.offset_x, sy - cam.offset_y)
        self._clear_pending()
        changed = cam != self.camera
        self.camera = cam
        return changed

    def _clear_pending(self):
        self._pending_drag = None
        self._pending_zoom = 0.0
