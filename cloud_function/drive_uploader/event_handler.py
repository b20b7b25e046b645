"""Netlify / AWS Lambda style entry point: ``handler(event, context)``."""
from .config import get_settings
from .handler import UploadRequest, handle_upload, normalize_headers
from .logging_setup import setup_logging
from .multipart_parser import iter_event_body

setup_logging(get_settings().log_level)


def handler(event, context=None):
    upload_request = UploadRequest(
        method=event.get("httpMethod") or "",
        headers=normalize_headers(event.get("headers") or {}),
        body=iter_event_body(event.get("body"), bool(event.get("isBase64Encoded"))),
    )
    response = handle_upload(upload_request, get_settings())
    return {
        "statusCode": response.status_code,
        "headers": response.headers,
        "body": response.body,
    }
