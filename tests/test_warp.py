import numpy as np
import pytest

from opg_ui.core.quad import FULL_FRAME_QUAD, make_quad, quad_to_pixels
from opg_ui.core.warp import output_corners_in_source, warp_quad

CENTRAL = make_quad([(0.1, 0.1), (0.9, 0.1), (0.9, 0.9), (0.1, 0.9)])


def test_full_frame_identity(rng):
    frame = rng.integers(0, 256, size=(30, 40, 3), dtype=np.uint8)
    out = warp_quad(frame, FULL_FRAME_QUAD, (40, 30))
    np.testing.assert_array_equal(out, frame)
    assert out is not frame


def test_end_to_end_scenario(textured_frame):
    out = warp_quad(textured_frame, CENTRAL, (1200, 600))
    assert out.shape == (600, 1200, 3)
    assert out.dtype == np.uint8
    np.testing.assert_array_equal(out[0, 0], textured_frame[72, 128])


@pytest.mark.parametrize(
    "corners",
    [
        [(0.1, 0.1), (0.9, 0.1), (0.9, 0.9), (0.1, 0.9)],
        [(0.12, 0.2), (0.85, 0.05), (0.95, 0.92), (0.02, 0.8)],
        [(0.3, 0.3), (0.7, 0.25), (0.75, 0.7), (0.25, 0.65)],
    ],
)
def test_output_corners_land_on_quad(corners):
    quad = make_quad(corners)
    got = output_corners_in_source(quad, (720, 1280, 3), (1200, 600))
    want = quad_to_pixels(quad, 1280, 720)
    assert np.all(np.abs(got - want) < 1.0)


def test_out_of_bounds_filled_with_background():
    frame = np.full((30, 40, 3), 100, np.uint8)
    out = warp_quad(frame, FULL_FRAME_QUAD, (120, 90), background=7)
    # the last row and column map past the source edge
    assert np.all(out[:, 119] == 7)
    assert np.all(out[89, :] == 7)
    assert np.all(out[:89, :119] == 100)


def test_preserves_dtype_and_channels():
    frame = np.full((50, 60), 4000, np.uint16)
    out = warp_quad(frame, CENTRAL, (30, 20))
    assert out.shape == (20, 30)
    assert out.dtype == np.uint16
    assert np.all(out == 4000)


def test_deterministic(textured_frame):
    quad = make_quad([(0.12, 0.2), (0.85, 0.05), (0.95, 0.92), (0.02, 0.8)])
    a = warp_quad(textured_frame, quad, (300, 150))
    b = warp_quad(textured_frame, quad, (300, 150))
    np.testing.assert_array_equal(a, b)


def test_source_not_modified(textured_frame):
    before = textured_frame.copy()
    warp_quad(textured_frame, CENTRAL, (200, 100))
    np.testing.assert_array_equal(textured_frame, before)


@pytest.mark.parametrize("size", [(0, 10), (10, -1)])
def test_invalid_output_size(size):
    with pytest.raises(ValueError):
        warp_quad(np.zeros((10, 10, 3), np.uint8), CENTRAL, size)


def test_degenerate_quad_does_not_raise():
    frame = np.full((40, 40, 3), 9, np.uint8)
    out = warp_quad(frame, make_quad([(0.5, 0.5)] * 4), (20, 10))
    assert out.shape == (10, 20, 3)
