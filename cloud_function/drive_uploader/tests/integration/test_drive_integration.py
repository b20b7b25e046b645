"""
Integration tests against the real Drive API.

These tests require:
- GOOGLE_SERVICE_ACCOUNT_JSON with a service account key
- DRIVE_FOLDER_ID of a folder shared with that service account
- Internet connection

Run manually with: pytest cloud_function/drive_uploader/tests/integration/ -v
Skip in CI with: pytest -m "not integration"
"""
import pytest

from ...config import Settings
from ...drive_client import get_drive_storage
from ...handler import UploadRequest, build_object_name, handle_upload
from ..helpers import CONTENT_TYPE, multipart_body

SETTINGS = Settings.from_env()

pytestmark = [
    pytest.mark.integration,
    pytest.mark.skipif(
        not (SETTINGS.service_account_json and SETTINGS.drive_folder_id),
        reason="Requires GOOGLE_SERVICE_ACCOUNT_JSON and DRIVE_FOLDER_ID.",
    ),
]


def test_folder_is_visible():
    folder = get_drive_storage(SETTINGS).get_folder()
    assert folder["id"] == SETTINGS.drive_folder_id
    assert folder["mimeType"] == "application/vnd.google-apps.folder"


def test_create_file_returns_id():
    storage = get_drive_storage(SETTINGS)
    file_id = storage.create_file(build_object_name("integration", "probe.txt"), "text/plain", b"probe")
    assert file_id


def test_end_to_end_upload():
    body = multipart_body(fields={"qrId": "integration"},
                          files=[("photo", "probe.jpg", "image/jpeg", b"\xff\xd8\xff\xd9")])
    headers = {"content-type": CONTENT_TYPE}
    if SETTINGS.upload_token:
        headers["x-upload-token"] = SETTINGS.upload_token

    resp = handle_upload(UploadRequest("POST", headers, [body]), SETTINGS)

    assert resp.status_code == 200, resp.body
    assert '"ok": true' in resp.body
