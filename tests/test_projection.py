import pytest

from projection import Bounds, Projection


def test_fit_example_surface():
    proj = Projection.for_points([(0, 0), (1, 0), (1, 1)], 800, 600, 50)
    assert proj.scale == 500
    assert proj.project(0, 0) == (50, 550)
    assert proj.project(1, 0) == (550, 550)
    assert proj.project(1, 1) == (550, 50)
    assert proj.projected_center() == (300, 300)


def test_unproject_inverts_project():
    proj = Projection.for_points([(-3.5e16, 2e15), (4.1e16, -7.7e16)], 1400, 900, 50)
    for x, y in [(-3.5e16, 2e15), (0.0, 0.0), (1.234e16, -5.5e16), (4.1e16, -7.7e16)]:
        px, py = proj.project(x, y)
        ux, uy = proj.unproject(px, py)
        assert ux == pytest.approx(x, rel=1e-9, abs=1e3)
        assert uy == pytest.approx(y, rel=1e-9, abs=1e3)


def test_vertical_axis_is_flipped():
    proj = Projection.for_points([(0, 0), (10, 10)], 200, 200, 0)
    _, low = proj.project(0, 0)
    _, high = proj.project(0, 10)
    assert high < low


def test_empty_set_gives_zero_box_and_unit_scale():
    bounds = Bounds.from_points([])
    assert (bounds.min_x, bounds.min_y, bounds.max_x, bounds.max_y) == (0, 0, 0, 0)
    assert Projection.fit(bounds, 800, 600, 50).scale == 1.0


def test_single_point_keeps_unit_scale():
    proj = Projection.for_points([(5.0, 7.0)], 800, 600, 100)
    assert proj.scale == 1.0
    assert proj.project(5.0, 7.0) == (100, 500)


def test_flat_axis_is_ignored_for_scale():
    proj = Projection.for_points([(0, 0), (10, 0)], 800, 600, 50)
    assert proj.scale == 70


def test_world_length_uses_scale():
    proj = Projection.for_points([(0, 0), (2, 2)], 500, 500, 50)
    assert proj.world_length(1.0) == 200
