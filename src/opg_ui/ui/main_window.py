"""Main window for the OPG Capture application."""

from PySide6.QtWidgets import QMainWindow, QTabWidget, QWidget, QVBoxLayout

from opg_ui.core.config import load_config
from opg_ui.core.pipeline import CapturePipeline
from .capture_tab import CaptureTab
from .upload_tab import UploadTab


class MainWindow(QMainWindow):
    """
    Main application window with the capture and upload tabs.

    Parameters
    ----------
    config : PipelineConfig, optional
        Pipeline settings, by default read from the environment
    device : int or str, default=0
        Camera used by the capture tab
    parent : QWidget, optional
        Parent widget, by default None

    Attributes
    ----------
    tab_widget : QTabWidget
        Tab container
    """

    def __init__(self, config=None, device=0, parent=None):
        super().__init__(parent)
        self.setWindowTitle("OPG Capture: Panoramic Radiograph Capture")
        self.setMinimumSize(1200, 800)
        self.config = config or load_config()

        central_widget = QWidget()
        self.setCentralWidget(central_widget)
        layout = QVBoxLayout(central_widget)

        self.tab_widget = QTabWidget()
        layout.addWidget(self.tab_widget)

        # each tab owns its pipeline so captures never share state
        self.capture_tab = CaptureTab(CapturePipeline(self.config), device=device)
        self.upload_tab = UploadTab(CapturePipeline(self.config))
        self.tab_widget.addTab(self.capture_tab, "Live Capture")
        self.tab_widget.addTab(self.upload_tab, "Upload")

    def closeEvent(self, e):
        self.capture_tab.stop_camera()
        super().closeEvent(e)
