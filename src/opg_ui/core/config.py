"""
Pipeline Configuration
======================

This module collects the tunable constants of the capture pipeline into
dataclasses and reads the handful of deployment settings from the
environment.

Classes
-------
DetectorConfig
    Boundary detection thresholds
ClassifierConfig
    Classification endpoint, credentials and request payload
PipelineConfig
    Top-level configuration combining the two plus warp/upload settings

Functions
---------
load_config
    Build a PipelineConfig from environment variables

Notes
-----
Recognised environment variables:

- ``OPG_API_URL`` : classification endpoint URL
- ``DENTAL_API_AUTH_TOKEN`` : token sent as ``Authorization: Token <...>``
- ``OPG_API_TIMEOUT`` : request timeout in seconds (unset = no timeout)
- ``OPG_OUTPUT_SIZE`` : dewarped output size as ``"<width>x<height>"``

Examples
--------
>>> from opg_ui.core.config import load_config
>>> cfg = load_config({"OPG_OUTPUT_SIZE": "1600x800"})
>>> cfg.output_size
(1600, 800)
"""

import os
from dataclasses import dataclass, field

DEFAULT_API_URL = "https://services-decay.medentec.com/inference/opg/"

# Finding categories requested from the classification service
DEFAULT_CLASS_LIST = (1, 5, 4, 8, 3, 7)

FALLBACK_QUAD = ((0.05, 0.10), (0.95, 0.10), (0.95, 0.90), (0.05, 0.90))


@dataclass(frozen=True)
class DetectorConfig:
    """Thresholds for the two-polarity boundary detector."""

    scale: float = 0.25
    margin: int = 30
    min_count: int = 150
    min_area_frac: float = 0.03
    max_area_frac: float = 0.96
    landscape_bonus: float = 1.0
    portrait_bonus: float = 0.5
    pad: float = 0.02
    fallback_quad: tuple = FALLBACK_QUAD


@dataclass(frozen=True)
class ClassifierConfig:
    """Endpoint and payload settings for the classification service."""

    api_url: str = DEFAULT_API_URL
    auth_token: str | None = None
    class_list: tuple = DEFAULT_CLASS_LIST
    draw_boxes: bool = True
    timeout: float | None = None


@dataclass(frozen=True)
class PipelineConfig:
    """Complete configuration for a capture session."""

    detector: DetectorConfig = field(default_factory=DetectorConfig)
    classifier: ClassifierConfig = field(default_factory=ClassifierConfig)
    output_size: tuple[int, int] = (1200, 600)
    max_upload_dim: int = 1200
    jpeg_quality: int = 80


def _parse_size(text: str) -> tuple[int, int]:
    parts = text.lower().replace(" ", "").split("x")
    if len(parts) != 2:
        raise ValueError(f"Invalid output size '{text}', expected <width>x<height>")
    w, h = int(parts[0]), int(parts[1])
    if w <= 0 or h <= 0:
        raise ValueError(f"Output size must be positive, got '{text}'")
    return w, h


def load_config(env=None) -> PipelineConfig:
    """
    Build a PipelineConfig from environment variables.

    Parameters
    ----------
    env : mapping, optional
        Variables to read from, by default ``os.environ``

    Returns
    -------
    PipelineConfig
        Configuration with defaults for every unset variable

    Raises
    ------
    ValueError
        If ``OPG_API_TIMEOUT`` or ``OPG_OUTPUT_SIZE`` cannot be parsed
    """
    env = os.environ if env is None else env

    timeout = env.get("OPG_API_TIMEOUT")
    if timeout:
        timeout = float(timeout)
        if timeout <= 0:
            raise ValueError(f"OPG_API_TIMEOUT must be positive, got {timeout}")
    else:
        timeout = None

    classifier = ClassifierConfig(
        api_url=env.get("OPG_API_URL") or DEFAULT_API_URL,
        auth_token=env.get("DENTAL_API_AUTH_TOKEN") or None,
        timeout=timeout,
    )

    size = env.get("OPG_OUTPUT_SIZE")
    output_size = _parse_size(size) if size else PipelineConfig.output_size

    return PipelineConfig(classifier=classifier, output_size=output_size)
