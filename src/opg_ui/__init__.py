"""
OPG Capture: Perspective-Corrected Capture of Panoramic Dental Radiographs
==========================================================================

OPG Capture provides a desktop GUI and a Python library for photographing a
panoramic dental radiograph (OPG) shown on a monitor or lightbox and
turning the photo into a clean, flat, rectangular image before sending it
to an external classification service.

The capture workflow has three steps:

1. **Detection**: the radiograph boundary is located automatically, trying
   both a dark-on-light and a light-on-dark hypothesis
2. **Verification**: the operator drags the four corner handles (TL, TR,
   BR, BL) to fit the radiograph, or resets to the full frame
3. **Dewarping**: the selected quadrilateral is resampled into a 1200x600
   rectangle through a four-point homography

If the service rejects the dewarped crop, the uncropped original frame is
tried once before the failure is shown.

Quick Start
-----------
>>> import numpy as np
>>> from opg_ui.core import detect_boundary, warp_quad
>>> frame = np.asarray(...)  # (H, W, 3) RGB photo
>>> det = detect_boundary(frame)
>>> flat = warp_quad(frame, det.quad, (1200, 600))

Main Modules
------------
core
    Detection, quad editing, homography, dewarping and orchestration
ui
    PySide6 GUI components

See Also
--------
README.md : Project overview and installation instructions
"""

__version__ = "0.1.0"
__all__ = ["__version__"]
