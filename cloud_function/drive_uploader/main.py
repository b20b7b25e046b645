import functions_framework

from .config import get_settings
from .handler import UploadRequest, handle_upload, normalize_headers
from .logging_setup import setup_logging
from .multipart_parser import iter_stream

setup_logging(get_settings().log_level)


@functions_framework.http
def upload(request):
    upload_request = UploadRequest(
        method=request.method,
        headers=normalize_headers(request.headers),
        # Raw stream: request.form/files must stay untouched so Flask doesn't consume it.
        body=iter_stream(request.stream),
    )
    response = handle_upload(upload_request, get_settings())
    return (response.body, response.status_code, response.headers)
