"""
Capture Pipeline Orchestration
==============================

This module wires detection, corner editing, dewarping and classification
into the capture workflow, and owns the single fallback rule: if the
classification service rejects the dewarped crop, the uncropped original is
tried exactly once before the failure is reported.

Classes
-------
AnalysisOutcome
    Explicit success/failure value returned by the analysis step
CapturePipeline
    Per-capture state: frame, detection, editor, warped output

Functions
---------
classify_with_fallback
    Call a classifier once, retrying once with a fallback image
gather_insights
    Run insight providers concurrently, tolerating their failures
summarize_findings
    Plain-text summary of labelled findings

Notes
-----
Workflow::

    frame --begin()--> DetectionResult --> QuadEditor (user drags)
          --confirm()--> warped image --analyze()--> AnalysisOutcome

Starting a new capture with :meth:`CapturePipeline.begin` bumps the
generation counter and discards every piece of state from the previous
capture. Background tasks compare generations to drop stale results.

See Also
--------
opg_ui.core.tasks : Runs analysis off the GUI thread
"""

import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass

import numpy as np

from .classifier import ClassificationClient, ClassificationResult
from .config import PipelineConfig
from .detect import DetectionResult, detect_boundary
from .editor import QuadEditor
from .errors import ClassificationRejected
from .image_io import compress_for_upload, to_data_uri
from .quad import is_degenerate
from .warp import warp_quad

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AnalysisOutcome:
    """
    Result of classifying one capture.

    Attributes
    ----------
    result : ClassificationResult or None
        Service output when successful
    error : ClassificationRejected or None
        Last failure when unsuccessful
    used_fallback : bool
        True if the result (or final error) came from the uncropped image
    attempts : int
        Number of service calls made (1 or 2)
    image_uri : str or None
        Data URI of the image that produced ``result``
    """

    result: ClassificationResult | None = None
    error: ClassificationRejected | None = None
    used_fallback: bool = False
    attempts: int = 0
    image_uri: str | None = None

    @property
    def ok(self) -> bool:
        return self.result is not None


def classify_with_fallback(classify, primary: str, fallback: str | None = None) -> AnalysisOutcome:
    """
    Classify ``primary``, retrying once with ``fallback`` on rejection.

    Parameters
    ----------
    classify : callable
        ``classify(image_uri) -> ClassificationResult``; failures must be
        raised as ClassificationRejected
    primary : str
        Image to try first (usually the dewarped crop)
    fallback : str, optional
        Image for the single retry (usually the uncropped frame)

    Returns
    -------
    AnalysisOutcome
        Never raises for ClassificationRejected; the error is returned
    """
    try:
        return AnalysisOutcome(result=classify(primary), attempts=1, image_uri=primary)
    except ClassificationRejected as e:
        if fallback is None:
            logger.warning("Classification failed: %s", e)
            return AnalysisOutcome(error=e, attempts=1)
        logger.warning("Classification of cropped image failed (%s), retrying with original", e)

    try:
        return AnalysisOutcome(
            result=classify(fallback), used_fallback=True, attempts=2, image_uri=fallback
        )
    except ClassificationRejected as e:
        logger.error("Classification of original image failed as well: %s", e)
        return AnalysisOutcome(error=e, used_fallback=True, attempts=2)


def summarize_findings(findings) -> str:
    """
    Format findings as one line per category.

    Examples
    --------
    >>> from opg_ui.core.classifier import Finding
    >>> print(summarize_findings([Finding("decay", 2, ("16", "26"))]))
    - decay: 2 tooth/teeth affected (16, 26)
    """
    if not findings:
        return "No specific findings were reported."
    lines = []
    for f in findings:
        teeth = ", ".join(f.tooth_numbers) if f.tooth_numbers else "unspecified"
        lines.append(f"- {f.disease}: {f.count} tooth/teeth affected ({teeth})")
    return "\n".join(lines)


def gather_insights(result: ClassificationResult, image_uri: str, providers) -> dict:
    """
    Run insight providers concurrently.

    Parameters
    ----------
    result : ClassificationResult
        Findings to explain
    image_uri : str
        Image the findings refer to
    providers : dict
        ``name -> callable(result, image_uri)``

    Returns
    -------
    dict
        ``name -> provider output``, or ``None`` for providers that raised
    """
    if not providers:
        return {}
    out = {}
    with ThreadPoolExecutor(max_workers=len(providers)) as pool:
        futures = {name: pool.submit(fn, result, image_uri) for name, fn in providers.items()}
        for name, fut in futures.items():
            try:
                out[name] = fut.result()
            except Exception as e:
                logger.warning("Insight provider '%s' failed: %s", name, e)
                out[name] = None
    return out


class CapturePipeline:
    """
    State of the current capture.

    Parameters
    ----------
    config : PipelineConfig, optional
        Pipeline settings
    classify : callable, optional
        ``classify(image_uri) -> ClassificationResult``, by default a
        ClassificationClient built from ``config.classifier``
    insight_providers : dict, optional
        Extra providers for :func:`gather_insights`; the local summary is
        always included

    Attributes
    ----------
    generation : int
        Incremented by every :meth:`begin` and :meth:`reset`
    frame : np.ndarray or None
        Captured snapshot
    detection : DetectionResult or None
        Boundary detection of the snapshot
    editor : QuadEditor
        Corner editor seeded by detection
    warped : np.ndarray or None
        Dewarped output after :meth:`confirm`; cleared whenever the quad
        changes so that :meth:`analyze` never sends a stale crop
    """

    def __init__(self, config: PipelineConfig | None = None, classify=None, insight_providers=None):
        self.config = config or PipelineConfig()
        if classify is None:
            classify = ClassificationClient(self.config.classifier).classify
        self.classify = classify
        self.insight_providers = {"summary": lambda r, _uri: summarize_findings(r.findings)}
        self.insight_providers.update(insight_providers or {})
        self.generation = 0
        self.editor = QuadEditor()
        self.frame = None
        self.detection: DetectionResult | None = None
        self.warped = None
        self.editor.add_listener(self._quad_changed)

    def _quad_changed(self, _quad):
        self.warped = None

    def reset(self):
        self.generation += 1
        self.frame = None
        self.detection = None
        self.warped = None
        self.editor.dragging = None

    def begin(self, frame) -> DetectionResult:
        """Start a new capture from ``frame`` and seed the editor with detection."""
        self.reset()
        self.frame = np.asarray(frame)
        self.detection = detect_boundary(self.frame, self.config.detector)
        self.editor.set_quad(self.detection.quad)
        logger.info(
            "Capture %d: %s boundary (confidence %.3f)",
            self.generation, self.detection.polarity, self.detection.confidence,
        )
        return self.detection

    def confirm(self, out_size=None) -> np.ndarray:
        """
        Dewarp the current quad.

        Raises
        ------
        RuntimeError
            If no frame has been captured
        """
        if self.frame is None:
            raise RuntimeError("begin() must be called before confirm()")
        out_size = out_size or self.config.output_size
        quad = self.editor.quad
        H, W = self.frame.shape[:2]
        if is_degenerate(quad, W, H, min_area=1.0):
            logger.warning("Quad %s is degenerate; the dewarped image will be unusable", quad)
        self.warped = warp_quad(self.frame, quad, out_size)
        return self.warped

    def _encode(self, img) -> str:
        data = compress_for_upload(img, self.config.max_upload_dim, self.config.jpeg_quality)
        return to_data_uri(data)

    def analyze(self) -> AnalysisOutcome:
        """Classify the dewarped image, falling back once to the original frame."""
        if self.warped is None:
            self.confirm()
        primary = self._encode(self.warped)
        fallback = self._encode(self.frame)
        return classify_with_fallback(self.classify, primary, fallback)

    def analyze_upload(self, frame) -> AnalysisOutcome:
        """Classify an uploaded image as-is, without cropping or fallback."""
        self.reset()
        self.frame = np.asarray(frame)
        return classify_with_fallback(self.classify, self._encode(self.frame))

    def insights(self, outcome: AnalysisOutcome) -> dict:
        if not outcome.ok:
            return {}
        return gather_insights(outcome.result, outcome.image_uri, self.insight_providers)
