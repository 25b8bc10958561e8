"""
viewer.py

Interactive star map: the region-wide map view and a per-system local view,
sharing one pan/zoom interaction model.

Controls (both views):
    drag: pan   wheel or +/-: zoom   0: reset view   Esc: back / quit
Map view:
    click system: open it   C / M: next / previous color mode   /: search
System view:
    click object: select    J: jump through the selected stargate

Everything runs on the pygame main thread. Overlay fetches, icon downloads
and system loads go to a worker pool and come back through an Inbox that the
loop drains once per tick; frames are drawn only when something asked for one.
"""

import logging
from concurrent.futures import Executor, ThreadPoolExecutor
from typing import Callable, Dict, Hashable, List, Optional, Tuple

import pygame

from camera import KEY_ZOOM_STEP, CameraController
from clustering import build_anchors
from images import ImageCache, http_fetcher
from layout import local_projection, marker_key
from overlays import AllianceClaim, AllianceOverlay, EsiClient, FactionOverlay, OverlaySource
from palette import COLOR_MODES, faction_name, round_security
from picking import (
    MAP_CLICK_RADIUS_PX,
    MAP_HOVER_RADIUS_PX,
    SYSTEM_CLICK_BUFFER_PX,
    SYSTEM_HOVER_BUFFER_PX,
    pick_marker,
    pick_system,
)
from projection import MAP_PADDING, SYSTEM_PADDING, Projection
from render import Canvas, draw_map, draw_message, draw_system, system_colors
from scheduling import Inbox, RedrawScheduler
from search import SearchBox, SearchResult, focus_target
from settings import Settings
from universe import LocalObject, LocalSystem, MapData, Stargate, SystemNotFoundError, load_local_system

logger = logging.getLogger(__name__)

MAP_DEFAULT_ZOOM = 2.0
SYSTEM_DEFAULT_ZOOM = 1.0

TEXT_COLOR = (220, 220, 220)
DIM_TEXT = (150, 150, 150)
PANEL_FILL = (20, 20, 30, 220)
PANEL_BORDER = (90, 90, 110)
SELECTED_ROW = (255, 200, 100)


class Navigator:
    """Which system (if any) is open on top of the map."""

    def __init__(self, on_open: Callable[[int], None], on_close: Callable[[], None]):
        self.on_open = on_open
        self.on_close = on_close
        self.current: Optional[int] = None

    @property
    def in_system(self) -> bool:
        return self.current is not None

    def open_system(self, system_id: int):
        logger.info("Opening system %s", system_id)
        self.current = system_id
        self.on_open(system_id)

    def close_system(self):
        if self.current is None:
            return
        self.current = None
        self.on_close()


def draw_panel(canvas: Canvas, x: float, y: float, lines: List[Tuple[str, Tuple[int, int, int]]], size: float = 16):
    """Boxed block of text lines in screen space."""
    if not lines:
        return
    line_h = size + 2
    w = max(canvas.measure_text(text, size) for text, _ in lines) + 16
    h = line_h * len(lines) + 10
    # keep the panel on screen
    x = min(x, canvas.width - w - 4)
    y = min(y, canvas.height - h - 4)
    canvas.fill_rect(x, y, w, h, PANEL_FILL)
    canvas.polyline([(x, y), (x + w, y), (x + w, y + h), (x, y + h)], PANEL_BORDER, 1, closed=True)
    ty = y + 5
    for text, color in lines:
        canvas.text(x + 8, ty, text, size, color)
        ty += line_h


class OverlayLoader:
    """Fetches overlay sources off the main thread, at most one request per source in flight."""

    def __init__(
        self,
        sources: Dict[str, OverlaySource],
        executor: Executor,
        inbox: Inbox,
        on_loaded: Callable[[str, dict], None],
    ):
        self.sources = sources
        self.executor = executor
        self.inbox = inbox
        self.on_loaded = on_loaded
        self._in_flight = set()

    def request(self, kind: str):
        source = self.sources.get(kind)
        if source is None or kind in self._in_flight:
            return
        hit = source.cached()
        if hit is not None:
            self.on_loaded(kind, hit)
            return
        self._in_flight.add(kind)
        self.executor.submit(self._fetch, kind, source)

    def _fetch(self, kind: str, source: OverlaySource):
        data = {}
        try:
            data = source.fetch()
        except Exception:
            # a worker exception would vanish into its Future and leave kind in flight
            logger.exception("%s overlay fetch failed", kind)
        finally:
            self.inbox.post(lambda: self._done(kind, data))

    def _done(self, kind: str, data: dict):
        self._in_flight.discard(kind)
        self.on_loaded(kind, data)


# ---------- map view ----------


class MapView:
    def __init__(
        self,
        data: MapData,
        width: int,
        height: int,
        navigator: Navigator,
        scheduler: RedrawScheduler,
        mode: str = "region",
    ):
        self.data = data
        self.navigator = navigator
        self.scheduler = scheduler
        self.mode = mode if mode in COLOR_MODES else "region"

        self.system_ids = [s.id for s in data.systems]
        self.index_of = {sid: i for i, sid in enumerate(self.system_ids)}

        self.factions: Optional[Dict[int, int]] = None
        self.alliances: Optional[Dict[int, AllianceClaim]] = None
        self._colors: Optional[list] = None

        self.hovered: Optional[int] = None
        self.mouse: Tuple[int, int] = (0, 0)

        self.camera = CameraController(width, height)
        self.projection: Projection
        self.positions: List[Tuple[float, float]] = []
        self.resize(width, height)

    # -------- entity set / surface --------

    def resize(self, width: int, height: int):
        self.projection = Projection.for_points((s.pos for s in self.data.systems), width, height, MAP_PADDING)
        self.positions = [self.projection.project(*s.pos) for s in self.data.systems]
        self.camera.resize(width, height)
        self.reset_view()

    def reset_view(self):
        self.camera.reset_to(self.projection, MAP_DEFAULT_ZOOM)
        self.scheduler.request("camera")

    # -------- color modes / overlays --------

    def set_mode(self, mode: str):
        if mode not in COLOR_MODES or mode == self.mode:
            return
        self.mode = mode
        self._colors = None
        self.scheduler.request("mode")

    def cycle_mode(self, step: int = 1):
        i = COLOR_MODES.index(self.mode)
        self.set_mode(COLOR_MODES[(i + step) % len(COLOR_MODES)])

    def set_overlay(self, kind: str, mapping: dict):
        if kind == "faction":
            self.factions = mapping
        elif kind == "alliance":
            self.alliances = mapping
        else:
            return
        self._colors = None
        if self.mode == kind:
            self.scheduler.request("overlay")

    @property
    def colors(self) -> list:
        if self._colors is None:
            self._colors = system_colors(self.mode, self.data, self.factions, self.alliances)
        return self._colors

    # -------- input --------

    def hover(self, sx: float, sy: float):
        self.mouse = (int(sx), int(sy))
        hit = pick_system(self.camera, sx, sy, self.system_ids, self.positions, MAP_HOVER_RADIUS_PX)
        if hit != self.hovered:
            self.hovered = hit
            self.scheduler.request("hover")

    def click(self, sx: float, sy: float) -> Optional[int]:
        hit = pick_system(self.camera, sx, sy, self.system_ids, self.positions, MAP_CLICK_RADIUS_PX)
        if hit is not None:
            self.navigator.open_system(hit)
        return hit

    def focus(self, result: SearchResult):
        target = focus_target(self.data, self.projection, result)
        if target is None:
            return
        self.camera.center_on(*target)
        if result.kind == "system":
            self.hovered = result.id
        self.scheduler.request("camera")

    # -------- drawing --------

    def tooltip_lines(self, system_id: int) -> List[Tuple[str, Tuple[int, int, int]]]:
        system = self.data.systems_by_id[system_id]
        lines = [
            (system.name, TEXT_COLOR),
            (f"Security: {round_security(system.security):.1f}", DIM_TEXT),
            (f"Region: {self.data.region_name(system.region_id) or 'Unknown'}", DIM_TEXT),
        ]
        if self.factions and system_id in self.factions:
            lines.append((f"Faction: {faction_name(self.factions[system_id])}", DIM_TEXT))
        if self.alliances and system_id in self.alliances:
            lines.append((f"Alliance: {self.alliances[system_id].alliance_name}", DIM_TEXT))
        return lines

    def draw(self, canvas: Canvas):
        anchors = build_anchors(self.mode, self.data, self.positions, self.factions, self.alliances)
        draw_map(
            canvas,
            self.camera,
            self.data,
            self.positions,
            self.colors,
            self.mode,
            anchors,
            hovered=self.hovered,
            index_of=self.index_of,
        )
        zoom = self.camera.camera.zoom
        draw_panel(canvas, 10, 10, [
            (f"Color mode: {self.mode}", TEXT_COLOR),
            (f"Systems: {len(self.system_ids)}   Zoom: {zoom:.2f}", DIM_TEXT),
        ])
        if self.hovered is not None:
            mx, my = self.mouse
            draw_panel(canvas, mx + 14, my + 14, self.tooltip_lines(self.hovered), size=15)


# ---------- system view ----------


class SystemView:
    """Local view of one system; loads happen on the worker pool."""

    def __init__(
        self,
        sde_dir: str,
        map_data: Optional[MapData],
        width: int,
        height: int,
        navigator: Navigator,
        scheduler: RedrawScheduler,
        executor: Executor,
        inbox: Inbox,
        images: Optional[ImageCache] = None,
    ):
        self.sde_dir = sde_dir
        self.map_data = map_data
        self.navigator = navigator
        self.scheduler = scheduler
        self.executor = executor
        self.inbox = inbox
        self.images = images
        self.camera = CameraController(width, height)

        self.generation = 0
        self.system_id: Optional[int] = None
        self.local: Optional[LocalSystem] = None
        self.loading = False
        self.missing = False
        self.error: Optional[str] = None
        self.projection: Optional[Projection] = None
        self.objects: Dict[Hashable, LocalObject] = {}

        # adjusted marker positions from the last drawn frame
        self.adjusted: Dict[Hashable, tuple] = {}
        self.hovered: Optional[Hashable] = None
        self.selected: Optional[Hashable] = None
        self.mouse: Tuple[int, int] = (0, 0)

    # -------- loading --------

    def open(self, system_id: int):
        self.generation += 1
        generation = self.generation
        self.system_id = system_id
        self.local = None
        self.projection = None
        self.objects = {}
        self.adjusted = {}
        self.hovered = self.selected = None
        self.loading = True
        self.missing = False
        self.error = None
        self.scheduler.request("entities")
        self.executor.submit(self._load, generation, system_id)

    def close(self):
        # invalidates any load still running
        self.generation += 1
        self.camera.cancel_drag()
        self.system_id = None
        self.local = None
        self.loading = False
        self.adjusted = {}

    def _load(self, generation: int, system_id: int):
        error = None
        try:
            local = load_local_system(self.sde_dir, system_id, self.map_data)
        except SystemNotFoundError:
            logger.warning("System %s not found", system_id)
            local = None
        except (OSError, ValueError, KeyError, TypeError) as exc:
            logger.exception("Loading system %s failed", system_id)
            local, error = None, str(exc)
        self.inbox.post(lambda: self._deliver(generation, local, error))

    def _deliver(self, generation: int, local: Optional[LocalSystem], error: Optional[str] = None):
        if generation != self.generation:
            logger.debug("Dropping stale system load (generation %d != %d)", generation, self.generation)
            return
        self.loading = False
        self.local = local
        self.error = error
        self.missing = local is None and error is None
        if local is not None:
            self.objects = {marker_key(obj): obj for obj in local.objects()}
            self._reproject()
        self.scheduler.request("entities")

    def _reproject(self):
        self.projection = local_projection(self.local, self.camera.width, self.camera.height, SYSTEM_PADDING)
        self.camera.reset_to(self.projection, SYSTEM_DEFAULT_ZOOM)
        self.adjusted = {}

    def resize(self, width: int, height: int):
        self.camera.resize(width, height)
        if self.local is not None:
            self._reproject()
        self.scheduler.request("resize")

    def reset_view(self):
        if self.projection is not None:
            self.camera.reset_to(self.projection, SYSTEM_DEFAULT_ZOOM)
            self.scheduler.request("camera")

    # -------- input --------

    def hover(self, sx: float, sy: float):
        self.mouse = (int(sx), int(sy))
        hit = pick_marker(self.camera, sx, sy, self.adjusted, SYSTEM_HOVER_BUFFER_PX)
        if hit != self.hovered:
            self.hovered = hit
            self.scheduler.request("hover")

    def click(self, sx: float, sy: float) -> Optional[Hashable]:
        hit = pick_marker(self.camera, sx, sy, self.adjusted, SYSTEM_CLICK_BUFFER_PX)
        if hit != self.selected:
            self.selected = hit
            self.scheduler.request("selection")
        return hit

    def jump(self) -> bool:
        """Open the destination of the selected stargate."""
        obj = self.objects.get(self.selected)
        if not isinstance(obj, Stargate) or obj.destination_system_id is None:
            return False
        self.navigator.open_system(obj.destination_system_id)
        return True

    # -------- drawing --------

    def info_lines(self) -> List[Tuple[str, Tuple[int, int, int]]]:
        local = self.local
        system = local.system
        region = local.region.name if local.region else "Unknown"
        lines = [
            (system.name, TEXT_COLOR),
            (f"{region}   Security {round_security(system.security):.1f}", DIM_TEXT),
            (
                f"Planets {len(local.planets)}   Stargates {len(local.stargates)}   "
                f"Stations {len(local.stations)}",
                DIM_TEXT,
            ),
        ]
        obj = self.objects.get(self.selected)
        if obj is not None:
            label = obj.label if obj.kind == "star" else obj.name
            lines.append((f"Selected: {label}", SELECTED_ROW))
            if isinstance(obj, Stargate) and obj.destination_system_id is not None:
                lines.append(("J: jump through gate", DIM_TEXT))
        return lines

    def draw(self, canvas: Canvas):
        if self.loading:
            draw_message(canvas, "Loading system...")
            return
        if self.error:
            draw_message(canvas, f"Could not load system {self.system_id}: {self.error}")
            return
        if self.missing or self.local is None:
            draw_message(canvas, f"System {self.system_id} not found  (Esc: back to map)")
            return
        result = draw_system(canvas, self.camera, self.local, self.projection, self.images, self.hovered)
        self.adjusted = result.positions
        draw_panel(canvas, 10, 10, self.info_lines())
        obj = self.objects.get(self.hovered)
        if obj is not None:
            mx, my = self.mouse
            label = obj.label if obj.kind == "star" else obj.name
            draw_panel(canvas, mx + 14, my + 14, [(label, TEXT_COLOR)], size=15)


# ---------- application ----------


class StarChartViewer:
    """pygame window hosting the map view and the system view."""

    def __init__(self, data: MapData, settings: Settings, session=None):
        pygame.init()
        pygame.display.set_caption("starchart")
        self.settings = settings
        self.width = settings.width
        self.height = settings.height
        self.screen = pygame.display.set_mode((self.width, self.height), pygame.RESIZABLE)
        self.canvas = Canvas(self.screen)
        self.clock = pygame.time.Clock()
        self.running = True

        self.scheduler = RedrawScheduler()
        self.inbox = Inbox()
        self.executor = ThreadPoolExecutor(max_workers=settings.workers, thread_name_prefix="starchart")

        self.navigator = Navigator(self._on_open_system, self._on_close_system)
        self.map_view = MapView(data, self.width, self.height, self.navigator, self.scheduler, settings.color_mode)

        self.images: Optional[ImageCache] = None
        if settings.icons:
            self.images = ImageCache(http_fetcher(session), self.executor, self.inbox)
        self.system_view = SystemView(
            settings.sde_dir, data, self.width, self.height, self.navigator,
            self.scheduler, self.executor, self.inbox, self.images,
        )

        self.overlays: Optional[OverlayLoader] = None
        if settings.overlays:
            client = EsiClient(settings.esi_base_url, session)
            self.overlays = OverlayLoader(
                {"faction": FactionOverlay(client), "alliance": AllianceOverlay(client)},
                self.executor,
                self.inbox,
                self.map_view.set_overlay,
            )
            self.overlays.request("faction")
            self.overlays.request("alliance")

        self.searching = False
        self.search_index = 0
        self.search = SearchBox(data, self._on_search_results)

    @property
    def view(self):
        return self.system_view if self.navigator.in_system else self.map_view

    # -------- navigation --------

    def _on_open_system(self, system_id: int):
        self.map_view.camera.cancel_drag()
        self.system_view.open(system_id)
        self.scheduler.request("navigation")

    def _on_close_system(self):
        self.system_view.close()
        self.scheduler.request("navigation")

    def open_system(self, system_id: int):
        self.close_search()
        self.navigator.open_system(system_id)

    # -------- search --------

    def _on_search_results(self, results: List[SearchResult]):
        self.search_index = 0
        self.scheduler.request("search")

    def open_search(self):
        self.searching = True
        pygame.key.start_text_input()
        self.scheduler.request("search")

    def close_search(self):
        self.searching = False
        self.search.clear()
        self.scheduler.request("search")

    def choose_search_result(self):
        if not self.search.results:
            return
        result = self.search.results[min(self.search_index, len(self.search.results) - 1)]
        self.close_search()
        self.map_view.focus(result)

    def handle_search_key(self, key) -> bool:
        if key == pygame.K_ESCAPE:
            self.close_search()
        elif key == pygame.K_BACKSPACE:
            self.search.backspace()
            self.scheduler.request("search")
        elif key in (pygame.K_RETURN, pygame.K_KP_ENTER):
            self.choose_search_result()
        elif key == pygame.K_DOWN and self.search.results:
            self.search_index = (self.search_index + 1) % len(self.search.results)
            self.scheduler.request("search")
        elif key == pygame.K_UP and self.search.results:
            self.search_index = (self.search_index - 1) % len(self.search.results)
            self.scheduler.request("search")
        else:
            return False
        return True

    # -------- main loop --------

    def run(self):
        """Main loop."""
        try:
            while self.running:
                self.clock.tick(self.settings.fps)
                self.handle_events()
                self.update()
                if self.scheduler.consume():
                    self.draw()
                    pygame.display.flip()
        finally:
            self.executor.shutdown(wait=False, cancel_futures=True)
            pygame.quit()

    def update(self):
        view = self.view
        if view.camera.apply_pending():
            self.scheduler.request("camera")
            if not view.camera.dragging:
                view.hover(*pygame.mouse.get_pos())
        self.inbox.drain()
        if self.images is not None and self.images.take_arrivals():
            self.scheduler.request("images")
        self.search.poll()

    # -------- event handling --------

    def handle_events(self):
        """Handle user input."""
        for event in pygame.event.get():
            if event.type == pygame.QUIT:
                self.running = False
            elif event.type == pygame.VIDEORESIZE:
                self.handle_resize(event.w, event.h)
            elif event.type == pygame.KEYDOWN:
                self.handle_keydown(event.key)
            elif event.type == pygame.TEXTINPUT:
                if self.searching:
                    self.search.type_char(event.text)
                    self.scheduler.request("search")
                elif event.text == "/" and not self.navigator.in_system:
                    self.open_search()
            elif event.type == pygame.MOUSEBUTTONDOWN and event.button == 1:
                self.view.camera.begin_drag(*event.pos)
            elif event.type == pygame.MOUSEBUTTONUP and event.button == 1:
                view = self.view
                if view.camera.end_drag(*event.pos):
                    view.click(*event.pos)
                self.scheduler.request("camera")
            elif event.type == pygame.MOUSEMOTION:
                view = self.view
                if view.camera.dragging:
                    view.camera.drag_to(*event.pos)
                else:
                    view.hover(*event.pos)
            elif event.type == pygame.MOUSEWHEEL:
                mx, my = pygame.mouse.get_pos()
                self.view.camera.wheel(mx, my, event.y)

    def handle_keydown(self, key):
        """Handle keyboard input."""
        if self.searching and self.handle_search_key(key):
            return
        if self.searching:
            # printable keys arrive as TEXTINPUT
            return

        view = self.view
        if key == pygame.K_ESCAPE:
            if self.navigator.in_system:
                self.navigator.close_system()
            else:
                self.running = False
            return

        # Zoom about the window center
        if key in (pygame.K_EQUALS, pygame.K_PLUS, pygame.K_KP_PLUS):
            view.camera.zoom_at(self.width / 2, self.height / 2, KEY_ZOOM_STEP)
            self.scheduler.request("camera")
        if key in (pygame.K_MINUS, pygame.K_UNDERSCORE, pygame.K_KP_MINUS):
            view.camera.zoom_at(self.width / 2, self.height / 2, -KEY_ZOOM_STEP)
            self.scheduler.request("camera")

        # Reset view
        if key == pygame.K_0:
            view.reset_view()

        if self.navigator.in_system:
            if key == pygame.K_j:
                self.system_view.jump()
            return

        # Color modes
        if key == pygame.K_c:
            self.map_view.cycle_mode(1)
            self._request_overlay()
        if key == pygame.K_m:
            self.map_view.cycle_mode(-1)
            self._request_overlay()
        if key == pygame.K_f and pygame.key.get_mods() & pygame.KMOD_CTRL:
            self.open_search()

    def _request_overlay(self):
        if self.overlays is not None and self.map_view.mode in ("faction", "alliance"):
            # refetches once the cached copy has expired
            self.overlays.request(self.map_view.mode)

    def handle_resize(self, width: int, height: int):
        self.width, self.height = width, height
        self.screen = pygame.display.get_surface()
        self.canvas = Canvas(self.screen)
        self.map_view.resize(width, height)
        self.system_view.resize(width, height)
        self.scheduler.request("resize")

    # -------- drawing --------

    def draw(self):
        self.view.draw(self.canvas)
        if self.searching:
            self.draw_search()
        self.draw_help_overlay()

    def draw_search(self):
        lines = [(f"Search: {self.search.query}_", TEXT_COLOR)]
        for i, result in enumerate(self.search.results):
            color = SELECTED_ROW if i == self.search_index else DIM_TEXT
            lines.append((f"{result.name}  ({result.kind})", color))
        if self.search.query.strip() and not self.search.results and not self.search.debouncer.pending:
            lines.append(("No matches", DIM_TEXT))
        draw_panel(self.canvas, self.width / 2 - 150, 10, lines)

    def draw_help_overlay(self):
        if self.navigator.in_system:
            help_lines = ["Drag: pan   Wheel or +/-: zoom   0: reset   Click: select   J: jump   Esc: back to map"]
        else:
            help_lines = ["Drag: pan   Wheel or +/-: zoom   0: reset   Click system: open   C/M: color mode   /: search   Esc: quit"]
        y = self.height - 24
        for line in help_lines:
            self.canvas.text(10, y, line, 14, DIM_TEXT)
            y += 16
