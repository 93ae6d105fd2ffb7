"""Camera session with an explicit start/snapshot/stop lifecycle."""

import logging

import cv2
import numpy as np

from .errors import CaptureError

logger = logging.getLogger(__name__)


class CaptureSession:
    """
    Owns one camera stream.

    The live stream is only needed until the user presses capture:
    :meth:`snapshot` reads a single frame and releases the device, and the
    rest of the pipeline works on that frame alone.

    Parameters
    ----------
    device : int or str, default=0
        OpenCV device index or stream URL
    width : int, default=1920
        Requested frame width; the driver may pick another
    backend : callable, optional
        Factory returning a ``cv2.VideoCapture``-like object

    Examples
    --------
    >>> with CaptureSession(0) as cam:
    ...     frame = cam.snapshot()
    """

    def __init__(self, device=0, width: int = 1920, backend=None):
        self.device = device
        self.width = width
        self._backend = backend or cv2.VideoCapture
        self._cap = None

    @property
    def is_active(self) -> bool:
        return self._cap is not None

    def start(self):
        if self._cap is not None:
            return self
        cap = self._backend(self.device)
        if not cap.isOpened():
            cap.release()
            raise CaptureError(f"Could not open capture device {self.device!r}")
        if self.width:
            cap.set(cv2.CAP_PROP_FRAME_WIDTH, self.width)
        self._cap = cap
        logger.info("Capture device %r started", self.device)
        return self

    def read_frame(self) -> np.ndarray:
        """Read the current frame as an (H, W, 3) RGB array."""
        if self._cap is None:
            raise CaptureError("Capture session is not started")
        ok, frame = self._cap.read()
        if not ok or frame is None or frame.size == 0:
            raise CaptureError(f"Capture device {self.device!r} returned no frame")
        return cv2.cvtColor(frame, cv2.COLOR_BGR2RGB)

    def snapshot(self) -> np.ndarray:
        """Read one frame, then stop the stream."""
        try:
            return self.read_frame()
        finally:
            self.stop()

    def stop(self):
        if self._cap is not None:
            self._cap.release()
            self._cap = None
            logger.info("Capture device %r stopped", self.device)

    def __enter__(self):
        return self.start()

    def __exit__(self, exc_type, exc, tb):
        self.stop()
