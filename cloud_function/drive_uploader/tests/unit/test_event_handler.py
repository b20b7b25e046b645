import base64
import json
import pytest

from ... import event_handler, handler
from ...config import Settings
from ..helpers import CONTENT_TYPE, FakeStorage, multipart_body


@pytest.fixture
def storage(monkeypatch):
    fake = FakeStorage()
    monkeypatch.setattr(handler.drive_client, "get_drive_storage", lambda settings: fake)
    monkeypatch.setattr(event_handler, "get_settings", lambda: Settings(
        service_account_json="{}", drive_folder_id="folder-123", upload_token="s3cret",
    ))
    return fake


def make_event(body=b"", method="POST", headers=None, base64_encoded=True):
    if headers is None:
        headers = {"Content-Type": CONTENT_TYPE, "X-Upload-Token": "s3cret"}
    return {
        "httpMethod": method,
        "headers": headers,
        "body": base64.b64encode(body).decode() if base64_encoded else body.decode("utf-8"),
        "isBase64Encoded": base64_encoded,
    }


def test_base64_body_upload(storage):
    image = bytes(range(256)) * 4
    body = multipart_body(fields={"qrId": "a/b c!"}, files=[("photo", "a.png", "image/png", image)])

    resp = event_handler.handler(make_event(body), None)

    assert resp["statusCode"] == 200
    assert resp["headers"]["Content-Type"] == "application/json"
    payload = json.loads(resp["body"])
    assert payload["filename"].startswith("abc_")
    assert storage.calls[0]["data"] == image
    assert storage.calls[0]["mime_type"] == "image/png"


def test_plain_text_body_upload(storage):
    body = multipart_body(fields={"qrId": "ABC123"}, files=[("photo", "note.txt", "text/plain", b"hello")])
    resp = event_handler.handler(make_event(body, base64_encoded=False))

    assert resp["statusCode"] == 200
    assert storage.calls[0]["data"] == b"hello"


def test_lowercase_headers(storage):
    body = multipart_body(files=[("photo", "a.png", "image/png", b"x")])
    event = make_event(body, headers={"content-type": CONTENT_TYPE, "x-upload-token": "s3cret"})
    assert event_handler.handler(event)["statusCode"] == 200


def test_non_post(storage):
    resp = event_handler.handler(make_event(method="GET"))
    assert resp["statusCode"] == 405
    assert resp["body"] == "Method Not Allowed"


def test_missing_method_is_405(storage):
    resp = event_handler.handler({"headers": {}})
    assert resp["statusCode"] == 405


def test_token_mismatch(storage):
    event = make_event(b"irrelevant", headers={"Content-Type": CONTENT_TYPE, "X-Upload-Token": "guess"})
    resp = event_handler.handler(event)
    assert resp["statusCode"] == 401
    assert "s3cret" not in resp["body"]


def test_missing_content_type_is_500(storage):
    body = multipart_body(files=[("photo", "a.png", "image/png", b"x")])
    resp = event_handler.handler(make_event(body, headers={"X-Upload-Token": "s3cret"}))
    assert resp["statusCode"] == 500
    assert resp["body"] == "Upload failed"
    assert storage.calls == []


def test_invalid_base64_is_500(storage):
    event = make_event()
    event["body"] = "abc"
    resp = event_handler.handler(event)
    assert resp["statusCode"] == 500


def test_no_file(storage):
    body = multipart_body(fields={"qrId": "ABC123"})
    resp = event_handler.handler(make_event(body))
    assert resp["statusCode"] == 400
    assert resp["body"] == "No file received"
