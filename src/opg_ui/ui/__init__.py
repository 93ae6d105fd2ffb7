"""
UI Components for OPG Capture
=============================

This package provides the PySide6 interface for the capture workflow:

1. **Live Capture Tab**
   - Live camera preview
   - Capture a single frame and release the camera
   - Automatic boundary detection seeds the corner handles
   - Drag TL/TR/BR/BL handles, or reset to the full frame
   - Confirm: dewarp to the output size and analyze in the background

2. **Upload Tab**
   - Analyze an existing flat OPG file without cropping

UI Components
-------------
MainWindow
    Two-tab main window container
CaptureTab
    Camera capture, verification and analysis
UploadTab
    File-based analysis
QuadCanvas
    Letterboxed image canvas with the draggable quad overlay

Architecture Notes
------------------
- All network calls go through ``core.tasks.TaskRunner``; starting a new
  capture drops results of the previous one
- The canvas only translates mouse events into ``QuadEditor`` calls; all
  geometry lives in ``opg_ui.core``

Examples
--------
>>> from PySide6.QtWidgets import QApplication
>>> from opg_ui.ui.main_window import MainWindow
>>> import sys
>>>
>>> app = QApplication(sys.argv)
>>> window = MainWindow()
>>> window.show()
>>> sys.exit(app.exec())

See Also
--------
opg_ui.core : Capture pipeline
opg_ui.app : Entry point for launching the GUI
"""

__all__ = []
