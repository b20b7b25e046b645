"""
Upload request orchestration shared by both deployment shapes.

method check -> token check -> multipart parse -> Drive upload -> response.
Every step is terminal on failure; nothing is retried.
"""
import hmac
import json
import logging
import re
import time
from dataclasses import dataclass, field
from typing import Callable, Dict, Iterable, Mapping, Optional

from . import drive_client
from .config import Settings
from .errors import MethodNotAllowed, MissingFile, Unauthorized, UploadError
from .multipart_parser import parse_multipart

logger = logging.getLogger(__name__)

TOKEN_HEADER = "x-upload-token"
DEFAULT_QR_ID = "qr"
UNSAFE_ID_CHARS_RE = re.compile(r"[^A-Za-z0-9_-]")


@dataclass
class UploadRequest:
    method: str
    headers: Dict[str, str]
    body: Iterable[bytes] = ()


@dataclass
class UploadResponse:
    status_code: int
    body: str
    headers: Dict[str, str] = field(default_factory=dict)

    @classmethod
    def text(cls, status_code: int, message: str, **headers) -> "UploadResponse":
        return cls(status_code, message, {"Content-Type": "text/plain; charset=utf-8", **headers})

    @classmethod
    def json(cls, status_code: int, payload: dict) -> "UploadResponse":
        return cls(status_code, json.dumps(payload), {"Content-Type": "application/json"})


def normalize_headers(headers: Mapping[str, str]) -> Dict[str, str]:
    return {str(name).lower(): value for name, value in headers.items()}


def sanitize_qr_id(value: str) -> str:
    """Drop every character outside [A-Za-z0-9_-]."""
    return UNSAFE_ID_CHARS_RE.sub("", value)


def build_object_name(qr_id: Optional[str], file_name: str, now_ms: Optional[int] = None) -> str:
    """
    Drive name for an upload: ``<qrId>_<epoch millis>_<file name>``.

    Two uploads with the same qrId in the same millisecond get the same name;
    Drive keeps both files since names are not unique there.
    """
    safe_id = sanitize_qr_id(qr_id or DEFAULT_QR_ID) or DEFAULT_QR_ID
    if now_ms is None:
        now_ms = int(time.time() * 1000)
    return f"{safe_id}_{now_ms}_{file_name}"


def token_matches(expected: str, received: Optional[str]) -> bool:
    if received is None:
        return False
    return hmac.compare_digest(expected.encode("utf-8"), received.encode("utf-8"))


def handle_upload(request: UploadRequest, settings: Settings,
                  storage_factory: Optional[Callable[[Settings], "drive_client.DriveStorage"]] = None,
                  clock: Optional[Callable[[], float]] = None) -> UploadResponse:
    """
    Run one upload request to completion and describe the HTTP response.

    Args:
        request: method, lower-cased headers and the (unread) body chunks
        settings: process configuration
        storage_factory: builds the Drive client; defaults to get_drive_storage
        clock: returns epoch seconds; defaults to time.time

    Returns:
        UploadResponse. Error responses only ever carry the fixed public
        messages from errors.py; details go to the log.
    """
    try:
        return _process(request, settings, storage_factory or drive_client.get_drive_storage,
                        clock or time.time)
    except UploadError as e:
        if e.status_code >= 500:
            logger.error("Upload failed: %s", e, exc_info=e.__cause__ is not None)
        else:
            logger.warning("Upload rejected: %s", e.public_message)
        headers = {"Allow": "POST"} if isinstance(e, MethodNotAllowed) else {}
        return UploadResponse.text(e.status_code, e.public_message, **headers)
    except Exception:
        logger.exception("Unexpected error while handling upload")
        return UploadResponse.text(500, UploadError.public_message)


def _process(request, settings, storage_factory, clock):
    logger.info("Upload request", extra={"method": request.method})

    # Method names are case-sensitive (RFC 9110).
    if request.method != "POST":
        raise MethodNotAllowed(f"Method {request.method} not allowed")

    if settings.token_required and not token_matches(settings.upload_token,
                                                     request.headers.get(TOKEN_HEADER)):
        raise Unauthorized("Upload token missing or mismatched")

    parsed = parse_multipart(request.headers, request.body)
    if not parsed.has_file:
        raise MissingFile("Multipart body had no file part")

    storage = storage_factory(settings)
    final_name = build_object_name(parsed.fields.get("qrId"), parsed.file_name,
                                   now_ms=int(clock() * 1000))
    logger.info("Uploading to Drive", extra={"drive_name": final_name, "size": len(parsed.file_bytes)})

    file_id = storage.create_file(final_name, parsed.mime_type, parsed.file_bytes,
                                  parent_folder_id=settings.require_folder_id())

    logger.info("Upload success", extra={"drive_name": final_name, "drive_file_id": file_id})
    return UploadResponse.json(200, {"ok": True, "filename": final_name})
