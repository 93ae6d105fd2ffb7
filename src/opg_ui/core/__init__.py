"""
Core Capture Pipeline for OPG Capture
=====================================

This package contains the algorithmic core and its orchestration:

- **Luminance sampling**: Downsampled fixed-point luminance grid
- **Boundary detection**: Dark/light polarity hypotheses with fallback quad
- **Quad model**: Ordered corners and letterbox-aware screen mapping
- **Corner editing**: Drag gestures applied one corner at a time
- **Homography**: Four-point solver with partial pivoting
- **Dewarping**: Nearest-neighbour perspective resampling
- **Orchestration**: Capture session, classification with single fallback

Data Model
----------
- **ImageBuffer**: ``np.ndarray`` (H, W, 3|4), uint8, RGB(A)
- **Point / Quad**: normalized ``[0, 1]`` coordinates, TL, TR, BR, BL order
- **Homography**: 9 float64 coefficients with ``h8 == 1``

Examples
--------
>>> from opg_ui.core import CapturePipeline, load_frame
>>> pipe = CapturePipeline()
>>> det = pipe.begin(load_frame("opg_photo.jpg"))
>>> pipe.editor.drag_begin(0)
>>> pipe.editor.drag_move(120, 80)
>>> pipe.editor.drag_end()
>>> warped = pipe.confirm()
>>> outcome = pipe.analyze()

Modules
-------
luminance
    Downsampled luminance grid
detect
    Boundary detection
quad
    Quad model and coordinate mapping
editor
    Drag-based corner editing
homography
    Four-point homography solver
warp
    Perspective dewarping
image_io
    Image loading and upload encoding
capture
    Camera session lifecycle
classifier
    Classification service client
pipeline
    Capture workflow and fallback rule
config
    Configuration dataclasses and environment loading
errors
    Exception types

See Also
--------
opg_ui.ui : PySide6 GUI components
"""

from .config import PipelineConfig, load_config
from .detect import DetectionResult, detect_boundary
from .editor import QuadEditor
from .errors import CaptureError, ClassificationRejected, DetectionUnavailable, OpgError
from .homography import apply_homography, solve_homography
from .image_io import compress_for_upload, load_frame, to_data_uri
from .pipeline import AnalysisOutcome, CapturePipeline, classify_with_fallback
from .quad import FULL_FRAME_QUAD, Point, Quad, ScreenMapping, make_quad
from .warp import warp_quad

__all__ = [
    "PipelineConfig",
    "load_config",
    "DetectionResult",
    "detect_boundary",
    "QuadEditor",
    "OpgError",
    "CaptureError",
    "ClassificationRejected",
    "DetectionUnavailable",
    "apply_homography",
    "solve_homography",
    "compress_for_upload",
    "load_frame",
    "to_data_uri",
    "AnalysisOutcome",
    "CapturePipeline",
    "classify_with_fallback",
    "FULL_FRAME_QUAD",
    "Point",
    "Quad",
    "ScreenMapping",
    "make_quad",
    "warp_quad",
]
