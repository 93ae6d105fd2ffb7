"""
Classification client against an in-memory fake of ``requests.Session``.
"""
import pytest
import requests

from opg_ui.core.classifier import ClassificationClient, ClassificationResult, Finding
from opg_ui.core.config import ClassifierConfig
from opg_ui.core.errors import ClassificationRejected

URI = "data:image/jpeg;base64,AAAA"


class FakeResponse:
    def __init__(self, status=200, body=None, reason="OK", text=""):
        self.status_code = status
        self.ok = status < 400
        self.reason = reason
        self.text = text
        self._body = body

    def json(self):
        if isinstance(self._body, Exception):
            raise self._body
        return self._body


class FakeSession:
    def __init__(self, response=None, exc=None):
        self.response = response
        self.exc = exc
        self.calls = []

    def post(self, url, **kwargs):
        self.calls.append((url, kwargs))
        if self.exc is not None:
            raise self.exc
        return self.response


def _client(response=None, exc=None, token="secret", **cfg):
    session = FakeSession(response, exc)
    config = ClassifierConfig(auth_token=token, **cfg)
    return ClassificationClient(config, session=session), session


def test_request_shape():
    body = {"result_img": "data:image/png;base64,xyz", "results_df": []}
    client, session = _client(FakeResponse(body=body), api_url="https://example.test/opg/", timeout=5.0)
    client.classify(URI)

    url, kwargs = session.calls[0]
    assert url == "https://example.test/opg/"
    assert kwargs["json"] == {"class_list": [1, 5, 4, 8, 3, 7], "draw_boxes": True, "image": URI}
    assert kwargs["headers"] == {"Authorization": "Token secret"}
    assert kwargs["timeout"] == 5.0


def test_findings_parsed():
    body = {
        "result_img": "data:image/png;base64,xyz",
        "results_df": [
            {"disease": "decay", "count": 2, "tooth_numbers": [16, 26]},
            {"disease": "Filling", "count": "1", "tooth_numbers": None},
            "garbage",
        ],
    }
    client, _ = _client(FakeResponse(body=body))
    result = client.classify(URI)
    assert isinstance(result, ClassificationResult)
    assert result.annotated_image_uri == "data:image/png;base64,xyz"
    assert result.findings == (
        Finding("decay", 2, ("16", "26")),
        Finding("Filling", 1, ()),
    )


def test_missing_results_df_is_empty():
    client, _ = _client(FakeResponse(body={"result_img": "data:image/png;base64,xyz"}))
    assert client.classify(URI).findings == ()


def test_missing_token_rejected_without_request():
    client, session = _client(FakeResponse(body={}), token=None)
    with pytest.raises(ClassificationRejected, match="token is missing"):
        client.classify(URI)
    assert session.calls == []


@pytest.mark.parametrize("uri", ["", "hello", "data:text/plain;base64,AA", None])
def test_invalid_image_uri_rejected(uri):
    client, session = _client(FakeResponse(body={}))
    with pytest.raises(ClassificationRejected, match="Invalid image data format"):
        client.classify(uri)
    assert session.calls == []


def test_error_status_rejected():
    resp = FakeResponse(status=500, reason="Internal Server Error", text="argmin of an empty sequence")
    client, _ = _client(resp)
    with pytest.raises(ClassificationRejected) as info:
        client.classify(URI)
    assert info.value.status == 500
    assert "External API Error: 500 Internal Server Error" in str(info.value)
    assert info.value.user_message.startswith("AI could not identify the dental arch")


def test_transport_error_rejected():
    client, _ = _client(exc=requests.exceptions.ConnectionError("refused"))
    with pytest.raises(ClassificationRejected, match="refused"):
        client.classify(URI)


def test_non_json_body_rejected():
    client, _ = _client(FakeResponse(body=ValueError("Expecting value")))
    with pytest.raises(ClassificationRejected, match="not JSON"):
        client.classify(URI)


@pytest.mark.parametrize("body", [{}, {"result_img": ""}, {"result_img": None}, ["x"]])
def test_missing_result_img_rejected(body):
    client, _ = _client(FakeResponse(body=body))
    with pytest.raises(ClassificationRejected, match="result_img"):
        client.classify(URI)


def test_plain_error_message_passes_through():
    err = ClassificationRejected("External API Error: 502 Bad Gateway - ")
    assert err.user_message == str(err)
    assert err.status is None
