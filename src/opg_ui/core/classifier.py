"""
Classification Service Client
=============================

This module sends a radiograph to the external OPG classification service
and parses the labelled findings it returns.

Classes
-------
Finding
    One finding category with its count and affected teeth
ClassificationResult
    Annotated image and list of findings
ClassificationClient
    HTTP client for the classification endpoint

Notes
-----
Request (JSON, ``POST``)::

    {"class_list": [1, 5, 4, 8, 3, 7],
     "draw_boxes": true,
     "image": "data:image/jpeg;base64,..."}

with header ``Authorization: Token <DENTAL_API_AUTH_TOKEN>``.

Response fields used:

- ``result_img`` : annotated image as a data URI (required)
- ``results_df`` : list of ``{"disease", "count", "tooth_numbers"}``

Every failure (missing token, transport error, error status, unusable body)
is raised as :class:`~opg_ui.core.errors.ClassificationRejected` so that the
orchestrator can apply its single fallback retry.

See Also
--------
opg_ui.core.pipeline : Retry-once orchestration around this client
"""

import logging
from dataclasses import dataclass, field

import requests

from .config import ClassifierConfig
from .errors import ClassificationRejected

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Finding:
    disease: str
    count: int = 0
    tooth_numbers: tuple = ()

    @classmethod
    def from_json(cls, item: dict) -> "Finding":
        teeth = item.get("tooth_numbers") or ()
        if isinstance(teeth, (str, int)):
            teeth = (teeth,)
        try:
            count = int(item.get("count") or 0)
        except (TypeError, ValueError):
            count = 0
        return cls(
            disease=str(item.get("disease") or "unknown"),
            count=count,
            tooth_numbers=tuple(str(t) for t in teeth),
        )


@dataclass(frozen=True)
class ClassificationResult:
    annotated_image_uri: str
    findings: tuple = field(default_factory=tuple)


class ClassificationClient:
    """
    Client for the OPG classification endpoint.

    Parameters
    ----------
    config : ClassifierConfig, optional
        Endpoint, token and payload settings
    session : requests.Session, optional
        Session to send requests with, by default a new one

    Examples
    --------
    >>> from opg_ui.core.config import load_config
    >>> client = ClassificationClient(load_config().classifier)
    >>> result = client.classify("data:image/jpeg;base64,...")
    >>> [f.disease for f in result.findings]
    ['decay', 'Filling']
    """

    def __init__(self, config: ClassifierConfig | None = None, session=None):
        self.config = config or ClassifierConfig()
        self.session = session or requests.Session()

    def build_payload(self, image_uri: str) -> dict:
        return {
            "class_list": list(self.config.class_list),
            "draw_boxes": self.config.draw_boxes,
            "image": image_uri,
        }

    def classify(self, image_uri: str) -> ClassificationResult:
        """
        Classify one image.

        Parameters
        ----------
        image_uri : str
            Image as ``data:<mime>;base64,<data>``

        Returns
        -------
        ClassificationResult
            Annotated image and parsed findings

        Raises
        ------
        ClassificationRejected
            If the request cannot be made or the service does not return an
            annotated image
        """
        if not self.config.auth_token:
            raise ClassificationRejected(
                "Server Configuration Error: the clinical analysis token is missing."
            )
        if not isinstance(image_uri, str) or not image_uri.startswith("data:image/") or "," not in image_uri:
            raise ClassificationRejected("Invalid image data format.")

        logger.info("Sending radiograph to %s", self.config.api_url)
        try:
            response = self.session.post(
                self.config.api_url,
                json=self.build_payload(image_uri),
                headers={"Authorization": f"Token {self.config.auth_token}"},
                timeout=self.config.timeout,
            )
        except requests.exceptions.RequestException as e:
            raise ClassificationRejected(f"Classification request failed: {e}") from e

        if not response.ok:
            raise ClassificationRejected(
                f"External API Error: {response.status_code} {response.reason} - {response.text}",
                status=response.status_code,
            )

        try:
            body = response.json()
        except ValueError as e:
            raise ClassificationRejected(f"API response is not JSON: {e}") from e

        return self.parse_response(body)

    @staticmethod
    def parse_response(body) -> ClassificationResult:
        img = body.get("result_img") if isinstance(body, dict) else None
        if not isinstance(img, str) or not img.strip():
            raise ClassificationRejected(
                f'API response did not contain "result_img". Full response: {body!r}'
            )
        rows = body.get("results_df")
        findings = tuple(
            Finding.from_json(r) for r in rows if isinstance(r, dict)
        ) if isinstance(rows, list) else ()
        logger.info("Classification returned %d finding(s)", len(findings))
        return ClassificationResult(img, findings)
