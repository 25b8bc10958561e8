"""
render.py

Drawing surface and full-frame renderers for the map and system views.

Canvas wraps a pygame.Surface with the small immediate-mode API the renderers
need, plus a translate/scale transform stack so the renderers can draw in
pre-camera pixel space and let the camera transform happen here.

Frames are always redrawn whole; the viewer decides *when* (see
scheduling.RedrawScheduler), never a timer.
"""

from typing import Dict, Hashable, List, Optional, Sequence, Tuple

import pygame

from camera import CameraController
from clustering import (
    LABEL_BACKING_ALPHA,
    Anchor,
    label_font_size,
    label_opacity,
    label_padding,
)
from images import ImageCache
from layout import LayoutResult, Marker, build_markers, layout_markers
from overlays import AllianceClaim
from palette import (
    BACKGROUND,
    EDGE_COLOR,
    HOVER_RING,
    NEUTRAL,
    OUTLINE_MARKER,
    OUTLINE_SOFT,
    RING_COLOR,
    RING_LABEL_COLOR,
    alliance_color,
    faction_color,
    region_color,
    security_color,
    with_alpha,
)
from projection import Projection
from universe import AU_IN_METERS, LocalSystem, MapData

Color = Tuple[int, ...]
Point = Tuple[float, float]

SYSTEM_MARKER_PX = 2.0
EDGE_WIDTH_PX = 1.0


def _has_alpha(color: Color) -> bool:
    return len(color) == 4 and color[3] < 255


class Canvas:
    """pygame surface with a uniform-scale affine transform stack."""

    def __init__(self, surface: pygame.Surface):
        self.surface = surface
        self._scale = 1.0
        self._tx = 0.0
        self._ty = 0.0
        self._stack: List[Tuple[float, float, float]] = []
        self._fonts: Dict[int, pygame.font.Font] = {}
        if not pygame.font.get_init():
            pygame.font.init()

    # -------- transform stack --------

    @property
    def width(self) -> int:
        return self.surface.get_width()

    @property
    def height(self) -> int:
        return self.surface.get_height()

    @property
    def current_scale(self) -> float:
        return self._scale

    def save(self):
        self._stack.append((self._scale, self._tx, self._ty))

    def restore(self):
        self._scale, self._tx, self._ty = self._stack.pop()

    def translate(self, dx: float, dy: float):
        self._tx += dx * self._scale
        self._ty += dy * self._scale

    def scale(self, k: float):
        self._scale *= k

    def to_screen(self, x: float, y: float) -> Point:
        return x * self._scale + self._tx, y * self._scale + self._ty

    def to_local(self, sx: float, sy: float) -> Point:
        return (sx - self._tx) / self._scale, (sy - self._ty) / self._scale

    def _px(self, length: float) -> int:
        return max(1, int(round(length * self._scale)))

    # -------- primitives --------

    def clear(self, color: Color = BACKGROUND):
        self.surface.fill(color)

    def fill_rect(self, x: float, y: float, w: float, h: float, color: Color):
        sx, sy = self.to_screen(x, y)
        rect = pygame.Rect(int(sx), int(sy), self._px(w), self._px(h))
        if _has_alpha(color):
            layer = pygame.Surface(rect.size, pygame.SRCALPHA)
            layer.fill(color)
            self.surface.blit(layer, rect.topleft)
        else:
            pygame.draw.rect(self.surface, color, rect)

    def circle(self, x: float, y: float, r: float, color: Color, width: float = 0):
        sx, sy = self.to_screen(x, y)
        radius = self._px(r)
        stroke = self._px(width) if width else 0
        if _has_alpha(color):
            size = radius * 2 + 2
            if size > max(self.width, self.height):
                # large rings: one surface-sized layer instead of a huge local one
                layer = pygame.Surface(self.surface.get_size(), pygame.SRCALPHA)
                pygame.draw.circle(layer, color, (int(sx), int(sy)), radius, stroke)
                self.surface.blit(layer, (0, 0))
                return
            layer = pygame.Surface((size, size), pygame.SRCALPHA)
            pygame.draw.circle(layer, color, (radius + 1, radius + 1), radius, stroke)
            self.surface.blit(layer, (int(sx) - radius - 1, int(sy) - radius - 1))
        else:
            pygame.draw.circle(self.surface, color, (int(sx), int(sy)), radius, stroke)

    def segments(self, segments: Sequence[Tuple[Point, Point]], color: Color, width: float):
        """Draw many independent line segments as one batch (one alpha layer)."""
        if not segments:
            return
        stroke = self._px(width)
        target = self.surface
        layer = None
        if _has_alpha(color):
            layer = pygame.Surface(self.surface.get_size(), pygame.SRCALPHA)
            target = layer
        draw_line = pygame.draw.line
        s, tx, ty = self._scale, self._tx, self._ty
        for (x1, y1), (x2, y2) in segments:
            draw_line(target, color, (x1 * s + tx, y1 * s + ty), (x2 * s + tx, y2 * s + ty), stroke)
        if layer is not None:
            self.surface.blit(layer, (0, 0))

    def polyline(self, points: Sequence[Point], color: Color, width: float, closed: bool = False):
        if len(points) < 2:
            return
        pts = [self.to_screen(x, y) for x, y in points]
        pygame.draw.lines(self.surface, color[:3], closed, pts, self._px(width))

    def polygon(self, points: Sequence[Point], color: Color, width: float = 0):
        pts = [self.to_screen(x, y) for x, y in points]
        stroke = self._px(width) if width else 0
        if _has_alpha(color):
            xs = [p[0] for p in pts]
            ys = [p[1] for p in pts]
            left, top = int(min(xs)) - 1, int(min(ys)) - 1
            size = (int(max(xs)) - left + 2, int(max(ys)) - top + 2)
            layer = pygame.Surface(size, pygame.SRCALPHA)
            pygame.draw.polygon(layer, color, [(x - left, y - top) for x, y in pts], stroke)
            self.surface.blit(layer, (left, top))
        else:
            pygame.draw.polygon(self.surface, color, pts, stroke)

    # -------- text --------

    def font(self, size: float) -> pygame.font.Font:
        px = self._px(size)
        font = self._fonts.get(px)
        if font is None:
            font = self._fonts[px] = pygame.font.Font(None, px)
        return font

    def measure_text(self, text: str, size: float) -> float:
        """Text width in current (local) units."""
        return self.font(size).size(text)[0] / self._scale

    def text(
        self,
        x: float,
        y: float,
        text: str,
        size: float,
        color: Color,
        align: str = "left",
        baseline: str = "top",
    ):
        surf = self.font(size).render(text, True, color[:3])
        if _has_alpha(color):
            surf.set_alpha(color[3])
        sx, sy = self.to_screen(x, y)
        if align == "center":
            sx -= surf.get_width() / 2
        elif align == "right":
            sx -= surf.get_width()
        if baseline == "middle":
            sy -= surf.get_height() / 2
        elif baseline == "bottom":
            sy -= surf.get_height()
        self.surface.blit(surf, (int(sx), int(sy)))

    # -------- images --------

    def image(self, image: pygame.Surface, x: float, y: float, w: float, h: float, clip_circle: bool = False):
        sx, sy = self.to_screen(x, y)
        size = (self._px(w), self._px(h))
        scaled = pygame.transform.scale(image, size)
        if clip_circle:
            out = pygame.Surface(size, pygame.SRCALPHA)
            out.blit(scaled, (0, 0))
            mask = pygame.Surface(size, pygame.SRCALPHA)
            pygame.draw.ellipse(mask, (255, 255, 255, 255), mask.get_rect())
            out.blit(mask, (0, 0), special_flags=pygame.BLEND_RGBA_MIN)
            scaled = out
        self.surface.blit(scaled, (int(sx), int(sy)))


def apply_camera(canvas: Canvas, camera: CameraController):
    """Push the camera transform: surface center + offset, zoom about the center."""
    cam = camera.camera
    canvas.translate(camera.width / 2 + cam.offset_x, camera.height / 2 + cam.offset_y)
    canvas.scale(cam.zoom)
    canvas.translate(-camera.width / 2, -camera.height / 2)


def draw_message(canvas: Canvas, message: str, color: Color = (220, 220, 230)):
    canvas.clear()
    canvas.text(canvas.width / 2, canvas.height / 2, message, 24, color, align="center", baseline="middle")


# ---------- map view ----------


def system_colors(
    mode: str,
    data: MapData,
    factions: Optional[Dict[int, int]] = None,
    alliances: Optional[Dict[int, AllianceClaim]] = None,
) -> List[Color]:
    """Marker color per system (dataset order) for a color mode."""
    if mode == "security":
        return [security_color(s.security) for s in data.systems]
    if mode == "faction":
        factions = factions or {}
        return [faction_color(factions.get(s.id)) for s in data.systems]
    if mode == "alliance":
        alliances = alliances or {}
        out = []
        for s in data.systems:
            claim = alliances.get(s.id)
            out.append(alliance_color(claim.alliance_id) if claim else NEUTRAL)
        return out
    return [region_color(s.region_id) for s in data.systems]


def anchor_color(mode: str, anchor: Anchor) -> Color:
    if mode == "faction":
        return faction_color(anchor.group_id)
    if mode == "alliance":
        return alliance_color(anchor.group_id)
    return region_color(anchor.group_id)


def draw_anchors(canvas: Canvas, mode: str, anchors: Dict[Hashable, Anchor], zoom: float):
    font_size = label_font_size(zoom)
    opacity = label_opacity(zoom)
    pad = label_padding(zoom)
    backing = (0, 0, 0, int(round(255 * LABEL_BACKING_ALPHA * opacity)))
    for anchor in anchors.values():
        cx, cy = anchor.center
        text_w = canvas.measure_text(anchor.label, font_size)
        canvas.fill_rect(
            cx - text_w / 2 - pad,
            cy - font_size / 2 - pad,
            text_w + pad * 2,
            font_size + pad * 2,
            backing,
        )
        canvas.text(cx, cy, anchor.label, font_size, with_alpha(anchor_color(mode, anchor), opacity),
                    align="center", baseline="middle")


def draw_map(
    canvas: Canvas,
    camera: CameraController,
    data: MapData,
    positions: Sequence[Point],
    colors: Sequence[Color],
    mode: str,
    anchors: Dict[Hashable, Anchor],
    hovered: Optional[int] = None,
    index_of: Optional[Dict[int, int]] = None,
):
    """Background, edges, system markers, then cluster labels."""
    zoom = camera.camera.zoom
    canvas.clear()
    canvas.save()
    apply_camera(canvas, camera)

    pos_by_id = index_of or {s.id: i for i, s in enumerate(data.systems)}
    segments = [(positions[pos_by_id[a]], positions[pos_by_id[b]]) for a, b in data.edges]
    canvas.segments(segments, EDGE_COLOR, EDGE_WIDTH_PX / zoom)

    left, top, right, bottom = camera.visible_rect()
    r = SYSTEM_MARKER_PX / zoom
    for (x, y), color in zip(positions, colors):
        if x < left - r or x > right + r or y < top - r or y > bottom + r:
            continue
        canvas.circle(x, y, r, color)

    if hovered is not None and hovered in pos_by_id:
        hx, hy = positions[pos_by_id[hovered]]
        canvas.circle(hx, hy, 6 / zoom, HOVER_RING, width=1 / zoom)

    draw_anchors(canvas, mode, anchors, zoom)
    canvas.restore()


# ---------- system view ----------


def draw_au_rings(canvas: Canvas, local: LocalSystem, projection: Projection, zoom: float):
    star_pos = local.star.plane_pos if local.star else (0.0, 0.0)
    cx, cy = projection.project(*star_pos)
    font_size = max(8, 10 / zoom)
    for i in range(1, local.max_orbit_au() + 1):
        radius = projection.world_length(i * AU_IN_METERS)
        canvas.circle(cx, cy, radius, RING_COLOR, width=1 / zoom)
        canvas.text(cx, cy - radius - 5 / zoom, f"{i} AU", font_size, RING_LABEL_COLOR,
                    align="center", baseline="bottom")


def draw_marker(canvas: Canvas, marker: Marker, zoom: float, images: Optional[ImageCache] = None):
    x, y = marker.x, marker.y
    size = marker.radius / zoom
    icon = images.get(marker.type_id) if images is not None and marker.kind in ("star", "planet") else None

    if marker.kind == "stargate":
        diamond = [(x, y - size), (x + size, y), (x, y + size), (x - size, y)]
        canvas.polygon(diamond, marker.color)
        canvas.polygon(diamond, OUTLINE_MARKER, width=2 / zoom)
    elif marker.kind == "station":
        triangle = [(x, y - size), (x + size * 0.866, y + size * 0.5), (x - size * 0.866, y + size * 0.5)]
        canvas.polygon(triangle, marker.color)
        canvas.polygon(triangle, OUTLINE_MARKER, width=2 / zoom)
    elif icon is not None:
        if marker.kind == "star":
            canvas.circle(x, y, size * 1.5, with_alpha(marker.color, 0.3))
        canvas.image(icon, x - size, y - size, size * 2, size * 2, clip_circle=True)
        canvas.circle(x, y, size, OUTLINE_SOFT, width=1 / zoom)
    else:
        canvas.circle(x, y, size, marker.color)
        if marker.kind == "planet":
            canvas.circle(x, y, size, OUTLINE_SOFT, width=1 / zoom)


def draw_system(
    canvas: Canvas,
    camera: CameraController,
    local: LocalSystem,
    projection: Projection,
    images: Optional[ImageCache] = None,
    hovered: Optional[Hashable] = None,
) -> LayoutResult:
    """Draw one system and return this frame's adjusted position cache.

    The layout runs here, inside the frame, so whatever is hit-tested until the
    next frame is exactly what was drawn.
    """
    zoom = camera.camera.zoom
    canvas.clear()
    canvas.save()
    apply_camera(canvas, camera)

    draw_au_rings(canvas, local, projection, zoom)

    markers = build_markers(local, projection)
    result = layout_markers(markers)
    for marker in markers:
        draw_marker(canvas, marker, zoom, images)
        if marker.key == hovered:
            canvas.circle(marker.x, marker.y, (marker.radius + 4) / zoom, HOVER_RING, width=1 / zoom)

    canvas.restore()
    return result
