from camera import Camera, CameraController
from layout import Placed
from picking import (
    MAP_CLICK_RADIUS_PX,
    MAP_HOVER_RADIUS_PX,
    SYSTEM_CLICK_BUFFER_PX,
    nearest,
    pick_marker,
    pick_system,
    world_hit_radius,
)
from scheduling import RedrawScheduler
from viewer import MapView, Navigator


def test_hit_radius_shrinks_as_zoom_grows():
    zooms = [0.1, 0.25, 0.5, 1.0, 2.0, 4.0, 7.5, 10.0]
    radii = [world_hit_radius(MAP_CLICK_RADIUS_PX, z) for z in zooms]
    assert all(a > b for a, b in zip(radii, radii[1:]))


def test_nearest_prefers_closest():
    hit = nearest(0, 0, [("far", 3, 0, 5), ("near", 1, 1, 5), ("outside", 0.5, 0, 0.4)])
    assert hit == "near"


def test_nearest_tie_goes_to_first_encountered():
    assert nearest(0, 0, [("a", 2, 0, 5), ("b", -2, 0, 5), ("c", 0, 2, 5)]) == "a"
    assert nearest(0, 0, [("b", -2, 0, 5), ("a", 2, 0, 5)]) == "b"


def test_nearest_radius_is_exclusive():
    assert nearest(0, 0, [("edge", 5, 0, 5)]) is None
    assert nearest(0, 0, []) is None


def _example_view(triangle_map, opened):
    navigator = Navigator(opened.append, lambda: None)
    view = MapView(triangle_map, 800, 600, navigator, RedrawScheduler())
    view.camera.reset_to(view.projection, 1.0)
    return view


def test_example_click_opens_only_that_system(triangle_map):
    opened = []
    view = _example_view(triangle_map, opened)
    sx, sy = view.camera.to_screen(*view.positions[2])
    assert (sx, sy) == (650, 50)

    assert view.click(sx + 4, sy - 3) == 3
    assert opened == [3]


def test_click_on_empty_space_does_nothing(triangle_map):
    opened = []
    view = _example_view(triangle_map, opened)
    assert view.click(400, 300) is None
    assert opened == []


def test_pick_system_respects_zoom(triangle_map):
    view = _example_view(triangle_map, [])
    ids = view.system_ids
    sx, sy = view.camera.to_screen(*view.positions[0])
    # 9 px away: inside the hover radius at any zoom since it is screen space
    assert pick_system(view.camera, sx + 9, sy, ids, view.positions, MAP_HOVER_RADIUS_PX) == 1
    view.camera.center_on(*view.positions[0], 10.0)
    sx, sy = view.camera.to_screen(*view.positions[0])
    assert pick_system(view.camera, sx + 9, sy, ids, view.positions, MAP_HOVER_RADIUS_PX) == 1
    assert pick_system(view.camera, sx + 11, sy, ids, view.positions, MAP_HOVER_RADIUS_PX) is None


def test_hover_updates_highlight_and_requests_redraw(triangle_map):
    view = _example_view(triangle_map, [])
    view.scheduler.consume()
    sx, sy = view.camera.to_screen(*view.positions[1])
    view.hover(sx, sy)
    assert view.hovered == 2
    assert view.scheduler.consume() is True
    view.hover(sx + 1, sy)
    assert view.scheduler.consume() is False


def test_pick_marker_uses_radius_plus_buffer():
    camera = CameraController(800, 600, Camera(0, 0, 2.0))
    adjusted = {("planet", 7): Placed(400, 300, 6)}
    # world radius (6 + 5) / 2 = 5.5
    assert pick_marker(camera, 410, 300, adjusted, SYSTEM_CLICK_BUFFER_PX) == ("planet", 7)
    assert pick_marker(camera, 412, 300, adjusted, SYSTEM_CLICK_BUFFER_PX) is None


def test_pick_marker_reads_adjusted_positions_only():
    camera = CameraController(800, 600)
    adjusted = {("star", 1): Placed(100, 100, 12), ("station", 2): Placed(130, 100, 4)}
    assert pick_marker(camera, 131, 101, adjusted) == ("station", 2)
    assert pick_marker(camera, 100, 100, {}) is None
