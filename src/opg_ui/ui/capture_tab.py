"""Live capture tab: camera preview, corner verification and analysis."""

import logging
from pathlib import Path

import numpy as np
from PySide6.QtWidgets import (
    QWidget,
    QVBoxLayout,
    QHBoxLayout,
    QPushButton,
    QLabel,
    QFileDialog,
    QGroupBox,
    QTextEdit,
    QSpinBox,
)
from PySide6.QtCore import Qt, QTimer
from PySide6.QtGui import QPixmap, QImage

from opg_ui.core.capture import CaptureSession
from opg_ui.core.errors import CaptureError
from opg_ui.core.image_io import decode_data_uri, load_frame
from opg_ui.core.pipeline import CapturePipeline
from opg_ui.core.tasks import TaskRunner
from .quad_canvas import QuadCanvas

logger = logging.getLogger(__name__)


def array_to_pixmap(arr) -> QPixmap:
    arr = np.ascontiguousarray(arr[:, :, :3])
    h, w, _ = arr.shape
    qimg = QImage(arr.data, w, h, 3 * w, QImage.Format.Format_RGB888).copy()
    return QPixmap.fromImage(qimg)


def format_outcome(outcome, insights=None) -> str:
    if not outcome.ok:
        return f"Analysis failed\n\n{outcome.error.user_message}"
    source = "uncropped original (crop was rejected)" if outcome.used_fallback else "dewarped crop"
    lines = [
        "Analysis Complete",
        "━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━",
        f"Image sent: {source}",
        f"Findings: {len(outcome.result.findings)}",
        "",
    ]
    summary = (insights or {}).get("summary")
    if summary:
        lines.append(summary)
    for name, text in (insights or {}).items():
        if name == "summary":
            continue
        lines += ["", f"{name}:", str(text) if text is not None else "(unavailable)"]
    return "\n".join(lines)


class CaptureTab(QWidget):
    """
    Capture an OPG with the camera, verify its corners and analyze it.

    Parameters
    ----------
    pipeline : CapturePipeline, optional
        Pipeline to drive, by default one built from the environment
    device : int or str, default=0
        Camera passed to CaptureSession
    """

    def __init__(self, pipeline: CapturePipeline | None = None, device=0, parent=None):
        super().__init__(parent)
        self.pipeline = pipeline or CapturePipeline()
        self.session = CaptureSession(device)
        self.runner = TaskRunner()
        self.timer = QTimer(self)
        self.timer.timeout.connect(self._show_live_frame)
        self._build()
        self._set_stage("idle")

    def _build(self):
        L = QHBoxLayout(self)
        self.canvas = QuadCanvas(self.pipeline.editor, self)
        self.canvas.setMinimumSize(700, 500)
        L.addWidget(self.canvas, 3)

        R = QVBoxLayout()
        g = QGroupBox("Capture")
        v = QVBoxLayout()
        self.start_btn = QPushButton("Start Camera")
        self.start_btn.clicked.connect(self._start_camera)
        self.capture_btn = QPushButton("Capture")
        self.capture_btn.clicked.connect(self._capture)
        self.open_btn = QPushButton("Open Photo…")
        self.open_btn.clicked.connect(self._open_photo)
        for b in [self.start_btn, self.capture_btn, self.open_btn]:
            v.addWidget(b)
        g.setLayout(v)
        R.addWidget(g)

        g2 = QGroupBox("Verify")
        v2 = QVBoxLayout()
        self.status_lbl = QLabel("")
        self.status_lbl.setWordWrap(True)
        v2.addWidget(self.status_lbl)
        size = QHBoxLayout()
        self.out_w = QSpinBox()
        self.out_w.setRange(100, 4000)
        self.out_w.setValue(self.pipeline.config.output_size[0])
        self.out_h = QSpinBox()
        self.out_h.setRange(100, 4000)
        self.out_h.setValue(self.pipeline.config.output_size[1])
        size.addWidget(QLabel("Output:"))
        size.addWidget(self.out_w)
        size.addWidget(QLabel("×"))
        size.addWidget(self.out_h)
        v2.addLayout(size)
        self.full_btn = QPushButton("Use Full Frame")
        self.full_btn.clicked.connect(self._full_frame)
        self.confirm_btn = QPushButton("Confirm && Analyze")
        self.confirm_btn.clicked.connect(self._confirm)
        v2.addWidget(self.full_btn)
        v2.addWidget(self.confirm_btn)
        g2.setLayout(v2)
        R.addWidget(g2)

        g3 = QGroupBox("Results")
        v3 = QVBoxLayout()
        self.result_img = QLabel("No results yet.")
        self.result_img.setAlignment(Qt.AlignmentFlag.AlignCenter)
        self.result_img.setMinimumHeight(180)
        self.results_text = QTextEdit()
        self.results_text.setReadOnly(True)
        v3.addWidget(self.result_img)
        v3.addWidget(self.results_text)
        g3.setLayout(v3)
        R.addWidget(g3, 1)

        L.addLayout(R, 2)

    def _set_stage(self, stage):
        self.stage = stage
        live = stage == "live"
        verify = stage == "verify"
        busy = stage == "busy"
        self.start_btn.setEnabled(not live and not busy)
        self.capture_btn.setEnabled(live)
        self.open_btn.setEnabled(not busy)
        self.full_btn.setEnabled(verify)
        self.confirm_btn.setEnabled(verify)
        self.confirm_btn.setText("Analyzing..." if busy else "Confirm && Analyze")
        self.canvas.set_quad_visible(verify or busy)
        # the quad must not change while a warp is in flight
        self.canvas.setEnabled(not busy)

    def _start_camera(self):
        self.runner.advance()
        self.pipeline.reset()
        try:
            self.session.start()
        except CaptureError as e:
            self.status_lbl.setText(f"Camera access failed: {e}")
            return
        self.results_text.clear()
        self.result_img.setText("No results yet.")
        self.status_lbl.setText("Point the camera at the OPG and press Capture.")
        self._set_stage("live")
        self.timer.start(33)

    def _show_live_frame(self):
        if not self.session.is_active:
            self.timer.stop()
            return
        try:
            frame = self.session.read_frame()
        except CaptureError as e:
            logger.warning("Live preview stopped: %s", e)
            self.stop_camera()
            self.status_lbl.setText(str(e))
            self._set_stage("idle")
            return
        self.canvas.set_image(array_to_pixmap(frame))

    def stop_camera(self):
        """Stop the live preview and release the camera, if running."""
        self.timer.stop()
        self.session.stop()

    def _capture(self):
        self.timer.stop()
        try:
            frame = self.session.snapshot()
        except CaptureError as e:
            self.status_lbl.setText(f"Capture failed: {e}")
            self._set_stage("idle")
            return
        self._verify(frame)

    def _open_photo(self):
        file_path, _ = QFileDialog.getOpenFileName(
            self, "Select OPG Photo", "", "Image Files (*.png *.jpg *.jpeg *.dcm);;All Files (*)"
        )
        if not file_path:
            return
        self.stop_camera()
        try:
            frame = load_frame(Path(file_path))
        except OSError as e:
            self.status_lbl.setText(f"Error loading image:\n{e}")
            return
        self._verify(frame)

    def _verify(self, frame):
        self.runner.advance()
        det = self.pipeline.begin(frame)
        self.canvas.set_image(array_to_pixmap(frame))
        if det.is_fallback:
            self.status_lbl.setText("No boundary detected. Drag corners to fit the OPG.")
        else:
            self.status_lbl.setText(
                f"Detected {det.polarity} OPG (score {det.confidence:.2f}). "
                "Drag corners to fit the OPG boundary."
            )
        self._set_stage("verify")

    def _full_frame(self):
        self.pipeline.editor.reset_to_full_frame()
        self.status_lbl.setText("Full frame selected. Adjust handles if needed, then confirm.")

    def _confirm(self):
        out_size = (self.out_w.value(), self.out_h.value())
        self._set_stage("busy")
        self.results_text.setText("Dewarping and analyzing, please wait...")

        def job(pipe, size):
            pipe.confirm(size)
            outcome = pipe.analyze()
            return outcome, pipe.insights(outcome)

        sigs = self.runner.submit(job, self.pipeline, out_size)
        sigs.finished.connect(self._on_done)
        sigs.error.connect(self._on_error)

    def _on_done(self, res):
        outcome, insights = res
        self.results_text.setText(format_outcome(outcome, insights))
        if outcome.ok:
            try:
                pix = array_to_pixmap(decode_data_uri(outcome.result.annotated_image_uri))
                self.result_img.setPixmap(
                    pix.scaled(
                        self.result_img.width(),
                        self.result_img.height(),
                        Qt.AspectRatioMode.KeepAspectRatio,
                        Qt.TransformationMode.SmoothTransformation,
                    )
                )
            except ValueError as e:
                self.result_img.setText(f"Annotated image unavailable: {e}")
        self._set_stage("verify")

    def _on_error(self, msg):
        self.results_text.setText(f"System error during analysis:\n\n{msg}")
        self._set_stage("verify")
