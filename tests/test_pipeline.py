"""
Capture workflow with an injected classifier; no network access.
"""
import numpy as np
import pytest

from opg_ui.core.classifier import ClassificationResult, Finding
from opg_ui.core.config import PipelineConfig
from opg_ui.core.errors import ClassificationRejected
from opg_ui.core.image_io import decode_data_uri
from opg_ui.core.pipeline import (
    CapturePipeline,
    classify_with_fallback,
    gather_insights,
    summarize_findings,
)

from conftest import opg_scene

RESULT = ClassificationResult("data:image/png;base64,xyz", (Finding("decay", 2, ("16", "26")),))


class ScriptedClassifier:
    """Returns or raises the scripted outcomes in order and records every call."""

    def __init__(self, *outcomes):
        self.outcomes = list(outcomes)
        self.calls = []

    def __call__(self, uri):
        self.calls.append(uri)
        out = self.outcomes.pop(0)
        if isinstance(out, Exception):
            raise out
        return out


def test_first_attempt_succeeds():
    clf = ScriptedClassifier(RESULT)
    out = classify_with_fallback(clf, "primary", "fallback")
    assert out.ok
    assert out.result is RESULT
    assert out.attempts == 1
    assert not out.used_fallback
    assert out.image_uri == "primary"
    assert clf.calls == ["primary"]


def test_retries_once_with_fallback():
    clf = ScriptedClassifier(ClassificationRejected("argmin"), RESULT)
    out = classify_with_fallback(clf, "primary", "fallback")
    assert out.ok
    assert out.used_fallback
    assert out.attempts == 2
    assert out.image_uri == "fallback"
    assert clf.calls == ["primary", "fallback"]


def test_second_failure_is_returned():
    second = ClassificationRejected("External API Error: 500")
    clf = ScriptedClassifier(ClassificationRejected("first"), second)
    out = classify_with_fallback(clf, "primary", "fallback")
    assert not out.ok
    assert out.error is second
    assert out.attempts == 2
    assert len(clf.calls) == 2


def test_no_fallback_means_single_attempt():
    clf = ScriptedClassifier(ClassificationRejected("nope"))
    out = classify_with_fallback(clf, "primary")
    assert not out.ok
    assert out.attempts == 1
    assert not out.used_fallback


def test_unexpected_errors_propagate():
    clf = ScriptedClassifier(RuntimeError("bug"))
    with pytest.raises(RuntimeError):
        classify_with_fallback(clf, "primary", "fallback")


def test_summarize_findings():
    assert summarize_findings([]) == "No specific findings were reported."
    text = summarize_findings([Finding("decay", 2, ("16", "26")), Finding("Filling", 1)])
    assert text.splitlines() == [
        "- decay: 2 tooth/teeth affected (16, 26)",
        "- Filling: 1 tooth/teeth affected (unspecified)",
    ]


def test_gather_insights_isolates_failures():
    def boom(result, uri):
        raise RuntimeError("model offline")

    out = gather_insights(
        RESULT, "uri", {"echo": lambda r, uri: uri, "broken": boom}
    )
    assert out == {"echo": "uri", "broken": None}
    assert gather_insights(RESULT, "uri", {}) == {}


@pytest.fixture
def pipeline():
    cfg = PipelineConfig(output_size=(240, 120))
    return CapturePipeline(cfg, classify=ScriptedClassifier(RESULT))


def test_begin_seeds_editor(pipeline):
    det = pipeline.begin(opg_scene())
    assert det.polarity == "light"
    assert pipeline.editor.quad == det.quad
    assert pipeline.generation == 1
    assert pipeline.warped is None


def test_confirm_uses_editor_quad(pipeline):
    frame = opg_scene()
    pipeline.begin(frame)
    pipeline.editor.reset_to_full_frame()
    out = pipeline.confirm((400, 400))
    np.testing.assert_array_equal(out, frame)
    assert pipeline.confirm().shape == (120, 240, 3)


def test_confirm_requires_frame(pipeline):
    with pytest.raises(RuntimeError):
        pipeline.confirm()


def test_analyze_falls_back_to_original():
    clf = ScriptedClassifier(ClassificationRejected("argmin"), RESULT)
    pipe = CapturePipeline(PipelineConfig(output_size=(240, 120)), classify=clf)
    pipe.begin(opg_scene(w=400, h=300, rect=(40, 60, 360, 240)))
    out = pipe.analyze()

    assert out.ok and out.used_fallback
    assert decode_data_uri(clf.calls[0]).shape == (120, 240, 3)
    assert decode_data_uri(clf.calls[1]).shape == (300, 400, 3)


def test_upload_sent_as_is_without_retry():
    clf = ScriptedClassifier(ClassificationRejected("bad image"))
    pipe = CapturePipeline(classify=clf)
    out = pipe.analyze_upload(np.zeros((100, 200, 3), np.uint8))
    assert not out.ok
    assert out.attempts == 1
    assert decode_data_uri(clf.calls[0]).shape == (100, 200, 3)


def test_insights(pipeline):
    pipeline.begin(opg_scene())
    outcome = pipeline.analyze()
    ins = pipeline.insights(outcome)
    assert ins["summary"] == "- decay: 2 tooth/teeth affected (16, 26)"


def test_insights_skipped_on_failure():
    pipe = CapturePipeline(
        classify=ScriptedClassifier(ClassificationRejected("x")),
        insight_providers={"extra": lambda r, uri: "never"},
    )
    out = pipe.analyze_upload(np.zeros((10, 10, 3), np.uint8))
    assert pipe.insights(out) == {}


def test_reset_clears_capture(pipeline):
    pipeline.begin(opg_scene())
    pipeline.confirm()
    pipeline.reset()
    assert pipeline.frame is None
    assert pipeline.warped is None
    assert pipeline.generation == 2


def _half_and_half():
    frame = np.zeros((100, 200, 3), np.uint8)
    frame[:, 100:] = 255
    return frame


LEFT = [(0, 0), (0.5, 0), (0.5, 1), (0, 1)]
RIGHT = [(0.5, 0), (1, 0), (1, 1), (0.5, 1)]


def test_quad_change_after_confirm_rewarps():
    clf = ScriptedClassifier(RESULT)
    pipe = CapturePipeline(PipelineConfig(output_size=(240, 120)), classify=clf)
    pipe.begin(_half_and_half())
    pipe.editor.set_quad(LEFT)
    assert pipe.confirm().mean() < 50

    pipe.editor.set_quad(RIGHT)
    assert pipe.warped is None
    pipe.analyze()
    assert decode_data_uri(clf.calls[0]).mean() > 200


def test_drag_clears_dewarped_image(pipeline):
    pipeline.begin(_half_and_half())
    pipeline.confirm()
    pipeline.editor.drag_begin(0)
    pipeline.editor.drag_move(0, 0)
    assert pipeline.warped is None


def test_degenerate_quad_warns_on_confirm(pipeline, caplog):
    pipeline.begin(_half_and_half())
    pipeline.editor.set_quad([(0.5, 0.5)] * 4)
    with caplog.at_level("WARNING", logger="opg_ui.core.pipeline"):
        out = pipeline.confirm()
    assert out.shape == (120, 240, 3)
    assert any("degenerate" in r.getMessage() for r in caplog.records)
