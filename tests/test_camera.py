import dataclasses

import pytest

from camera import MAX_ZOOM, MIN_ZOOM, Camera, CameraController, clamp_zoom
from projection import Projection


def test_screen_world_round_trip():
    for cam in [Camera(0, 0, 1), Camera(120.5, -40, 2.5), Camera(-900, 300, 0.1), Camera(3, 4, 10)]:
        ctl = CameraController(800, 600, cam)
        for px, py in [(0, 0), (400, 300), (-123.4, 987.6)]:
            sx, sy = ctl.to_screen(px, py)
            wx, wy = ctl.to_world(sx, sy)
            assert wx == pytest.approx(px)
            assert wy == pytest.approx(py)


def test_zoom_keeps_point_under_cursor():
    ctl = CameraController(800, 600, Camera(35, -20, 1.3))
    before = ctl.to_world(610, 145)
    ctl.zoom_at(610, 145, 0.4)
    assert ctl.camera.zoom == pytest.approx(1.3 * 1.4)
    after = ctl.to_world(610, 145)
    assert after[0] == pytest.approx(before[0])
    assert after[1] == pytest.approx(before[1])


def test_zoom_is_clamped_and_still_anchored():
    ctl = CameraController(800, 600, Camera(0, 0, 9.5))
    before = ctl.to_world(100, 100)
    ctl.zoom_at(100, 100, 0.5)
    assert ctl.camera.zoom == MAX_ZOOM
    assert ctl.to_world(100, 100) == pytest.approx(before)

    ctl = CameraController(800, 600, Camera(0, 0, 0.12))
    ctl.zoom_at(400, 300, -0.9)
    assert ctl.camera.zoom == MIN_ZOOM


def test_anchor_holds_across_zoom_sequence():
    ctl = CameraController(800, 600, Camera(-60, 25, 1.0))
    cursor = (523, 77)
    anchor = ctl.to_world(*cursor)
    # runs into both clamps on the way
    for delta in [0.5, 0.9, 0.9, 0.9, 0.9, -0.3, -0.9, -0.9, -0.9, 0.1, -0.2, 2.0]:
        ctl.zoom_at(*cursor, delta)
        assert MIN_ZOOM <= ctl.camera.zoom <= MAX_ZOOM
        assert ctl.to_world(*cursor) == pytest.approx(anchor)
    assert ctl.camera.zoom == pytest.approx(0.1 * 1.1 * 0.8 * 3.0)


def test_world_to_screen_chain_round_trips():
    points = [(-1.2e17, 4.4e16), (3.1e17, -2.0e17), (9.9e16, 1.0e17)]
    proj = Projection.for_points(points, 800, 600, 50)
    ctl = CameraController(800, 600, Camera(-140, 62, 3.7))
    for wx, wy in points + [(0.0, 0.0)]:
        sx, sy = ctl.to_screen(*proj.project(wx, wy))
        back = proj.unproject(*ctl.to_world(sx, sy))
        assert back == pytest.approx((wx, wy), rel=1e-9, abs=1e3)


def test_clamp_zoom_bounds():
    assert clamp_zoom(0.0) == MIN_ZOOM
    assert clamp_zoom(1e6) == MAX_ZOOM
    assert clamp_zoom(3.3) == 3.3


def test_center_on_example_bbox():
    proj = Projection.for_points([(0, 0), (1, 0), (1, 1)], 800, 600, 50)
    ctl = CameraController(800, 600)
    ctl.reset_to(proj, 1.0)
    assert ctl.camera == Camera(100, 0, 1.0)
    assert ctl.to_screen(*proj.projected_center()) == (400, 300)


def test_center_on_puts_point_mid_screen_at_any_zoom():
    ctl = CameraController(1024, 768)
    ctl.center_on(77.0, 910.0, 8.0)
    assert ctl.to_screen(77.0, 910.0) == pytest.approx((512, 384))


def test_visible_rect_identity_camera():
    ctl = CameraController(800, 600)
    assert ctl.visible_rect() == (0, 0, 800, 600)


def test_camera_value_is_immutable():
    cam = Camera(1, 2, 3)
    with pytest.raises(dataclasses.FrozenInstanceError):
        cam.zoom = 4


def test_wheel_deltas_accumulate_into_one_update():
    ctl = CameraController(800, 600)
    original = ctl.camera
    for _ in range(3):
        ctl.wheel(400, 300, 1)
    assert ctl.camera is original
    assert ctl.has_pending()
    assert ctl.apply_pending() is True
    assert ctl.camera.zoom == pytest.approx(1.3)
    assert ctl.apply_pending() is False


def test_wheel_down_zooms_out():
    ctl = CameraController(800, 600, Camera(0, 0, 2))
    ctl.wheel(400, 300, -2)
    ctl.apply_pending()
    assert ctl.camera.zoom == pytest.approx(1.8)


def test_drag_is_applied_on_refresh():
    ctl = CameraController(800, 600, Camera(10, 10, 1))
    ctl.begin_drag(100, 100)
    ctl.drag_to(130, 90)
    ctl.drag_to(150, 120)
    assert ctl.camera.offset_x == 10
    assert ctl.apply_pending() is True
    assert (ctl.camera.offset_x, ctl.camera.offset_y) == (60, 30)


def test_release_near_press_is_a_click():
    ctl = CameraController(800, 600)
    ctl.begin_drag(200, 200)
    assert ctl.end_drag(203, 202) is True
    assert not ctl.dragging

    ctl = CameraController(800, 600)
    ctl.begin_drag(200, 200)
    ctl.drag_to(260, 200)
    assert ctl.end_drag(260, 200) is False
    assert ctl.camera.offset_x == 60


def test_zoom_during_drag_keeps_pan_continuous():
    ctl = CameraController(800, 600)
    ctl.begin_drag(100, 100)
    ctl.drag_to(110, 100)
    ctl.queue_zoom(110, 100, 0.5)
    ctl.apply_pending()
    after_zoom = ctl.camera

    ctl.drag_to(120, 100)
    ctl.apply_pending()
    assert ctl.camera.offset_x == pytest.approx(after_zoom.offset_x + 10)
    assert ctl.camera.offset_y == pytest.approx(after_zoom.offset_y)
    assert ctl.camera.zoom == after_zoom.zoom


def test_center_on_discards_queued_input():
    ctl = CameraController(800, 600)
    ctl.queue_zoom(0, 0, 0.5)
    ctl.center_on(400, 300, 2.0)
    assert not ctl.has_pending()
    assert ctl.camera == Camera(0, 0, 2.0)
