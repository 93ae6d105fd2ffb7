#!/usr/bin/env python
"""
OPG Capture GUI Application Entry Point.

This script launches the graphical user interface for capturing and
dewarping panoramic dental radiographs from a source checkout.
"""

import sys
from pathlib import Path

# Add src to path for development
src_path = Path(__file__).parent.parent / "src"
if src_path.exists():
    sys.path.insert(0, str(src_path))

from opg_ui.app import main  # noqa: E402

if __name__ == "__main__":
    sys.exit(main())
