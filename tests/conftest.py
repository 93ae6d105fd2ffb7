"""
Shared fixtures. Every test image is synthesized with NumPy, so the suite
needs no assets and no network.
"""
import numpy as np
import pytest


def opg_scene(w=400, h=400, rect=(40, 80, 360, 320), bg=20, fg=220):
    """Uniform background with one filled rectangle ``(x0, y0, x1, y1)``, end-exclusive."""
    frame = np.full((h, w, 3), bg, np.uint8)
    x0, y0, x1, y1 = rect
    frame[y0:y1, x0:x1] = fg
    return frame


@pytest.fixture
def rng():
    return np.random.default_rng(1234)


@pytest.fixture
def light_scene():
    return opg_scene()


@pytest.fixture
def textured_frame(rng):
    return rng.integers(0, 256, size=(720, 1280, 3), dtype=np.uint8)
