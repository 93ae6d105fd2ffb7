"""Application entry point for the OPG Capture GUI."""

import logging
import os
import sys

from PySide6.QtWidgets import QApplication

from opg_ui.core.config import load_config
from opg_ui.ui.main_window import MainWindow


def main():
    """
    Launch the OPG Capture GUI application.

    Reads ``OPG_LOG_LEVEL`` for the log level and ``OPG_CAMERA`` for the
    capture device (index or stream URL); everything else comes from
    :func:`opg_ui.core.config.load_config`.

    Returns
    -------
    int
        Exit code (0 for success)
    """
    logging.basicConfig(
        level=os.environ.get("OPG_LOG_LEVEL", "INFO").upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    app = QApplication(sys.argv)
    app.setApplicationName("OPG Capture")
    app.setOrganizationName("OPG Capture Team")
    app.setStyle("Fusion")

    device = os.environ.get("OPG_CAMERA", "0")
    window = MainWindow(load_config(), device=int(device) if device.isdigit() else device)
    window.show()

    return app.exec()
