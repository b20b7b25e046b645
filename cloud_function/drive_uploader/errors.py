"""Custom exceptions for the Drive upload function."""


class UploadError(Exception):
    """Base exception for all upload errors.

    ``public_message`` is the only text that may reach the HTTP caller;
    the exception message itself is for the logs.
    """
    status_code = 500
    public_message = "Upload failed"


class MethodNotAllowed(UploadError):
    """Raised when the request is not a POST."""
    status_code = 405
    public_message = "Method Not Allowed"


class Unauthorized(UploadError):
    """Raised when the upload token does not match."""
    status_code = 401
    public_message = "Unauthorized"


class MissingFile(UploadError):
    """Raised when the multipart body carries no file part."""
    status_code = 400
    public_message = "No file received"


class ConfigError(UploadError):
    """Raised when service-account credentials or the folder id are missing or malformed."""
    pass


class ParseError(UploadError):
    """Raised when the request body is not valid multipart/form-data."""
    pass


class MissingContentType(ParseError):
    """Raised when the request has no Content-Type header."""
    pass


class UpstreamFailure(UploadError):
    """Raised when the Drive API rejects the upload or cannot be reached."""
    pass
