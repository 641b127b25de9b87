import numpy as np
import pytest

from keytrace.core.viewport import ViewportState, pixel_to_time, time_to_pixel


def test_pan_clamped_to_visible_range():
    vp = ViewportState(10.0, zoom_level=4, pan_offset=6)
    assert vp.visible_duration == 2.5
    assert vp.max_pan == 7.5
    assert vp.pan_offset == 6
    assert vp.with_pan(8).pan_offset == 7.5
    assert vp.with_pan(-3).pan_offset == 0.0


def test_zoom_is_clamped_and_repans():
    vp = ViewportState(10.0, zoom_level=4, pan_offset=7.5)
    assert vp.with_zoom(50).zoom_level == 20
    assert vp.with_zoom(0.5).zoom_level == 1
    wide = vp.with_zoom(1)
    assert wide.pan_offset == 0.0
    assert wide.visible.start == 0.0 and wide.visible.end == 10.0


def test_visible_window_stays_inside_buffer():
    duration = 7.3
    for zoom in np.linspace(1.0, 20.0, 39):
        for pan in (-1.0, 0.0, 1.0, 3.5, 7.0, 100.0):
            vp = ViewportState(duration, zoom_level=zoom, pan_offset=pan)
            assert vp.pan_offset >= 0.0
            assert vp.pan_offset + duration / vp.zoom_level <= duration + 1e-9
            assert vp.visible.end <= duration


def test_wheel_and_buttons():
    vp = ViewportState(10.0, zoom_level=2)
    assert vp.wheel(100).zoom_level == pytest.approx(1.8)
    assert vp.wheel(-100).zoom_level == pytest.approx(2.2)
    assert vp.zoom_in().zoom_level == pytest.approx(2.4)
    assert vp.zoom_out().zoom_level == pytest.approx(2 / 1.2)
    assert ViewportState(10.0).zoom_out().zoom_level == 1.0
    assert ViewportState(10.0, zoom_level=20).zoom_in().zoom_level == 20.0


def test_drag_pans_against_pointer():
    vp = ViewportState(10.0, zoom_level=2, pan_offset=2.0)
    assert vp.panned_by_pixels(100, 1000).pan_offset == pytest.approx(1.5)
    assert vp.panned_by_pixels(-100, 1000).pan_offset == pytest.approx(2.5)
    assert vp.panned_by_pixels(10_000, 1000).pan_offset == 0.0


def test_time_pixel_round_trip():
    vp = ViewportState(10.0, zoom_level=4, pan_offset=3.0)
    width = 800
    assert time_to_pixel(3.0, vp, width) == 0.0
    assert time_to_pixel(5.5, vp, width) == pytest.approx(800.0)
    for x in (0.0, 13.0, 400.0, 799.5):
        assert time_to_pixel(pixel_to_time(x, vp, width), vp, width) == pytest.approx(x)


def test_transform_edge_cases():
    vp = ViewportState(10.0)
    with pytest.raises(ValueError):
        time_to_pixel(1.0, vp, 0)
    with pytest.raises(ValueError):
        pixel_to_time(1.0, vp, -5)
    assert time_to_pixel(1.0, ViewportState(0.0), 100) == 0.0
