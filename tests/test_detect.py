"""
Boundary detection on synthetic luminance grids and frames.
"""
import numpy as np
import pytest

from opg_ui.core.config import FALLBACK_QUAD, DetectorConfig
from opg_ui.core.detect import BBox, detect_boundary, detect_in_grid, find_bbox, score_box
from opg_ui.core.luminance import LuminanceGrid
from opg_ui.core.quad import make_quad

from conftest import opg_scene


def _grid(bg=20):
    return np.full((100, 100), bg, np.uint8)


def test_bright_rectangle_found_with_light_hypothesis():
    g = _grid()
    g[20:81, 10:91] = 220
    res = detect_in_grid(LuminanceGrid.from_2d(g))

    assert res.polarity == "light"
    assert res.dark_score == 0.0
    assert res.confidence > 0
    # un-padded bounds within 3% of the true rectangle
    q = res.quad
    assert q.tl.x + 0.02 == pytest.approx(0.10, abs=0.03)
    assert q.tl.y + 0.02 == pytest.approx(0.20, abs=0.03)
    assert q.br.x - 0.02 == pytest.approx(0.90, abs=0.03)
    assert q.br.y - 0.02 == pytest.approx(0.80, abs=0.03)
    assert res.bbox[:4] == (10, 20, 90, 80)


def test_quad_is_axis_aligned_and_ordered():
    g = _grid()
    g[20:81, 10:91] = 220
    q = detect_in_grid(LuminanceGrid.from_2d(g)).quad
    assert q.tl.y == q.tr.y and q.bl.y == q.br.y
    assert q.tl.x == q.bl.x and q.tr.x == q.br.x
    assert q.tl.x < q.tr.x and q.tl.y < q.bl.y


def test_too_few_foreground_pixels_fall_back():
    g = _grid()
    g[40:45, 40:50] = 220  # 50 pixels
    res = detect_in_grid(LuminanceGrid.from_2d(g))
    assert res.dark_score == 0.0
    assert res.light_score == 0.0
    assert res.is_fallback
    assert res.quad == make_quad(FALLBACK_QUAD)
    assert res.confidence == 0.0


def test_box_below_min_area_rejected():
    g = _grid()
    g[50:54, 10:50] = 220  # 160 pixels but a 39x3 box
    res = detect_in_grid(LuminanceGrid.from_2d(g))
    assert res.is_fallback


def test_landscape_beats_portrait():
    land = _grid()
    land[30:50, 10:50] = 220
    port = _grid()
    port[10:50, 30:50] = 220

    land_score = detect_in_grid(LuminanceGrid.from_2d(land)).confidence
    port_score = detect_in_grid(LuminanceGrid.from_2d(port)).confidence
    assert port_score > 0
    assert land_score >= 1.5 * port_score


def test_score_box_aspect_bonus():
    landscape = BBox(10, 30, 50, 50, 800)
    portrait = BBox(30, 10, 50, 50, 800)
    assert score_box(landscape, 100, 100) == pytest.approx(0.08)
    assert score_box(portrait, 100, 100) == pytest.approx(0.04)


def test_score_box_rejects_near_full_frame():
    assert score_box(BBox(0, 0, 99, 99, 9000), 100, 100) == 0.0


def test_dark_target_detected():
    g = _grid(bg=200)
    g[20:81, 10:91] = 10
    res = detect_in_grid(LuminanceGrid.from_2d(g))
    assert res.polarity == "dark"
    assert res.bbox[:4] == (10, 20, 90, 80)


def test_dark_wins_ties():
    g = _grid(bg=128)
    g[10:30, 10:50] = 0
    g[60:80, 10:50] = 255
    res = detect_in_grid(LuminanceGrid.from_2d(g))
    assert res.dark_score == res.light_score > 0
    assert res.polarity == "dark"


def test_find_bbox_empty_foreground():
    bbox = find_bbox(LuminanceGrid.from_2d(_grid()), target_dark=True)
    assert bbox.count == 0
    assert bbox.min_x > bbox.max_x
    assert bbox.area == 0


def test_padding_clamped_to_unit_square():
    g = _grid()
    g[0:60, 0:100] = 220
    g[60:100, 0:100] = 20
    res = detect_in_grid(LuminanceGrid.from_2d(g))
    assert res.polarity == "light"
    for p in res.quad:
        assert 0.0 <= p.x <= 1.0 and 0.0 <= p.y <= 1.0
    assert res.quad.tl == (0.0, 0.0)


def test_detect_boundary_on_frame(light_scene):
    res = detect_boundary(light_scene)
    assert res.polarity == "light"
    assert res.grid_size == (100, 100)
    assert res.quad.tl.x == pytest.approx(0.10 - 0.02, abs=0.02)
    assert res.quad.br.y == pytest.approx(0.80 + 0.02, abs=0.02)


@pytest.mark.parametrize(
    "frame",
    [
        None,
        np.zeros((3, 3, 3), np.uint8),
        np.zeros((100, 100), np.uint8),
        [[1, 2, 3], [4, 5]],
        np.full((40, 40, 3), None, dtype=object),
    ],
)
def test_detect_boundary_never_raises(frame):
    res = detect_boundary(frame)
    assert res.is_fallback
    assert res.quad == make_quad(FALLBACK_QUAD)


def test_custom_fallback_quad():
    cfg = DetectorConfig(fallback_quad=((0, 0), (1, 0), (1, 1), (0, 1)))
    res = detect_boundary(np.full((200, 200, 3), 50, np.uint8), cfg)
    assert res.is_fallback
    assert res.quad.br == (1.0, 1.0)


def test_detection_is_deterministic():
    frame = opg_scene(w=640, h=480, rect=(100, 120, 540, 360))
    assert detect_boundary(frame) == detect_boundary(frame)
