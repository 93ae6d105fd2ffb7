"""Upload tab for analyzing an already-flat OPG image."""

from pathlib import Path

from PySide6.QtWidgets import (
    QWidget,
    QVBoxLayout,
    QHBoxLayout,
    QPushButton,
    QLabel,
    QFileDialog,
    QGroupBox,
    QTextEdit,
)
from PySide6.QtCore import Qt

from opg_ui.core.image_io import load_frame
from opg_ui.core.pipeline import CapturePipeline
from opg_ui.core.tasks import TaskRunner
from .capture_tab import array_to_pixmap, format_outcome


class UploadTab(QWidget):
    """
    Tab for sending a scanned or exported OPG file without cropping.

    Parameters
    ----------
    pipeline : CapturePipeline, optional
        Pipeline used for classification
    parent : QWidget, optional
        Parent widget, by default None

    Attributes
    ----------
    image_path : Path or None
        Currently loaded image path
    frame : np.ndarray or None
        Loaded image as RGB array
    """

    def __init__(self, pipeline: CapturePipeline | None = None, parent=None):
        super().__init__(parent)
        self.pipeline = pipeline or CapturePipeline()
        self.runner = TaskRunner()
        self.image_path = None
        self.frame = None
        self._setup_ui()

    def _setup_ui(self):
        layout = QVBoxLayout(self)

        title = QLabel("Upload Panoramic X-Ray")
        title.setStyleSheet("font-size: 20px; font-weight: bold; margin: 10px;")
        layout.addWidget(title)

        group = QGroupBox("Image Selection")
        h = QHBoxLayout()
        self.file_path_label = QLabel("No file selected")
        self.file_path_label.setStyleSheet("color: #666;")
        h.addWidget(self.file_path_label, stretch=1)
        select_btn = QPushButton("Select Image...")
        select_btn.clicked.connect(self._select_image)
        h.addWidget(select_btn)
        self.run_btn = QPushButton("Analyze")
        self.run_btn.setEnabled(False)
        self.run_btn.clicked.connect(self._run)
        h.addWidget(self.run_btn)
        group.setLayout(h)
        layout.addWidget(group)

        self.image_label = QLabel("No image loaded")
        self.image_label.setAlignment(Qt.AlignmentFlag.AlignCenter)
        self.image_label.setMinimumSize(512, 300)
        self.image_label.setStyleSheet("border: 2px solid #ccc; background: #f5f5f5;")
        layout.addWidget(self.image_label, stretch=1)

        self.results_text = QTextEdit()
        self.results_text.setReadOnly(True)
        self.results_text.setMaximumHeight(180)
        self.results_text.setText("No results yet. Select an image and analyze it.")
        layout.addWidget(self.results_text)

    def _select_image(self):
        file_path, _ = QFileDialog.getOpenFileName(
            self,
            "Select Panoramic X-Ray",
            "",
            "Image Files (*.png *.jpg *.jpeg *.dcm);;All Files (*)",
        )
        if not file_path:
            return
        self.image_path = Path(file_path)
        self.file_path_label.setText(str(self.image_path))
        try:
            self.frame = load_frame(self.image_path)
        except OSError as e:
            self.frame = None
            self.run_btn.setEnabled(False)
            self.image_label.setText(f"Error loading image:\n{e}")
            return
        self.runner.advance()
        self.run_btn.setEnabled(True)
        pix = array_to_pixmap(self.frame)
        self.image_label.setPixmap(
            pix.scaled(
                512,
                512,
                Qt.AspectRatioMode.KeepAspectRatio,
                Qt.TransformationMode.SmoothTransformation,
            )
        )

    def _run(self):
        if self.frame is None:
            return
        self.run_btn.setEnabled(False)
        self.run_btn.setText("Analyzing...")
        self.results_text.setText("Analyzing radiograph, please wait...")

        def job(pipe, frame):
            outcome = pipe.analyze_upload(frame)
            return outcome, pipe.insights(outcome)

        sigs = self.runner.submit(job, self.pipeline, self.frame)
        sigs.finished.connect(self._on_done)
        sigs.error.connect(self._on_error)

    def _on_done(self, res):
        outcome, insights = res
        self.results_text.setText(format_outcome(outcome, insights))
        self.run_btn.setEnabled(True)
        self.run_btn.setText("Analyze")

    def _on_error(self, msg):
        self.results_text.setText(f"Error during analysis:\n\n{msg}")
        self.run_btn.setEnabled(True)
        self.run_btn.setText("Analyze")
