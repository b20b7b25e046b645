"""
Streaming multipart/form-data extractor.
Pulls one file and the text fields out of an upload request body.
"""
import base64
import binascii
import logging
from dataclasses import dataclass, field
from typing import Dict, Iterable, Iterator, Mapping, Optional

from python_multipart.exceptions import MultipartParseError
from python_multipart.multipart import MultipartParser, MultipartState, parse_options_header

from .errors import MissingContentType, ParseError

logger = logging.getLogger(__name__)

DEFAULT_FILE_NAME = "photo.jpg"
DEFAULT_MIME_TYPE = "image/jpeg"
CHUNK_SIZE = 64 * 1024
MAX_PREAMBLE_SIZE = 64 * 1024


@dataclass
class ParsedUpload:
    file_bytes: Optional[bytes] = None
    file_name: str = DEFAULT_FILE_NAME
    mime_type: str = DEFAULT_MIME_TYPE
    fields: Dict[str, str] = field(default_factory=dict)

    @property
    def has_file(self) -> bool:
        return self.file_bytes is not None


class _PartCollector:
    """Callback target for MultipartParser; assembles parts as they stream in."""

    def __init__(self):
        self.result = ParsedUpload()
        self._headers = {}
        self._header_field = []
        self._header_value = []
        self._chunks = []

    def callbacks(self):
        return {
            "on_part_begin": self.on_part_begin,
            "on_header_field": self.on_header_field,
            "on_header_value": self.on_header_value,
            "on_header_end": self.on_header_end,
            "on_part_data": self.on_part_data,
            "on_part_end": self.on_part_end,
        }

    def on_part_begin(self):
        self._headers = {}
        self._chunks = []

    def on_header_field(self, data, start, end):
        self._header_field.append(data[start:end])

    def on_header_value(self, data, start, end):
        self._header_value.append(data[start:end])

    def on_header_end(self):
        name = b"".join(self._header_field).decode("latin-1").strip().lower()
        self._headers[name] = b"".join(self._header_value)
        self._header_field = []
        self._header_value = []

    def on_part_data(self, data, start, end):
        self._chunks.append(data[start:end])

    def on_part_end(self):
        _, disposition = parse_options_header(self._headers.get("content-disposition"))
        data = b"".join(self._chunks)
        self._chunks = []

        if b"filename" in disposition:
            self._on_file(disposition, data)
            return

        name = disposition.get(b"name")
        if name is None:
            logger.debug("Skipping multipart part without a name")
            return
        field_name = name.decode("utf-8", errors="replace")
        self.result.fields[field_name] = data.decode("utf-8", errors="replace")
        logger.debug("Field received", extra={"field": field_name})

    def _on_file(self, disposition, data):
        # parse_options_header hands back latin-1 bytes; browsers send UTF-8 names
        file_name = disposition[b"filename"].decode("utf-8", errors="replace")
        mime_type, _ = parse_options_header(self._headers.get("content-type"))

        self.result.file_bytes = data
        self.result.file_name = file_name or DEFAULT_FILE_NAME
        self.result.mime_type = mime_type.decode("latin-1") or DEFAULT_MIME_TYPE
        logger.info(
            "File received",
            extra={
                "file_name": self.result.file_name,
                "mime_type": self.result.mime_type,
                "size": len(data),
            },
        )


def boundary_from_headers(headers: Mapping[str, str]) -> bytes:
    """Return the multipart boundary declared in the content-type header."""
    content_type = headers.get("content-type")
    if not content_type:
        raise MissingContentType("Missing Content-Type header")

    mime_type, params = parse_options_header(content_type)
    if mime_type != b"multipart/form-data":
        raise ParseError(f"Unsupported content type: {mime_type.decode('latin-1')}")

    boundary = params.get(b"boundary")
    if not boundary:
        raise ParseError("Multipart: Boundary not found")
    return boundary


def skip_preamble(chunks: Iterable[bytes], boundary: bytes) -> Iterator[bytes]:
    """
    Drop any text before the first boundary line.

    MultipartParser expects the body to open with the boundary; RFC 2046 lets
    clients put a preamble in front of it. Past MAX_PREAMBLE_SIZE the bytes are
    passed through unchanged and the parser reports the framing error.
    """
    first_line = b"--" + boundary
    delimiter = b"\r\n" + first_line
    buffered = b""
    chunks = iter(chunks)

    for chunk in chunks:
        buffered += chunk
        if buffered.startswith(first_line[:len(buffered)]) and len(buffered) < len(first_line):
            continue
        if buffered.startswith(first_line):
            break
        pos = buffered.find(delimiter)
        if pos != -1:
            logger.debug("Skipping multipart preamble", extra={"size": pos})
            buffered = buffered[pos + 2:]
            break
        if len(buffered) > MAX_PREAMBLE_SIZE:
            break

    if buffered:
        yield buffered
    yield from chunks


def parse_multipart(headers: Mapping[str, str], chunks: Iterable[bytes]) -> ParsedUpload:
    """
    Stream a multipart body through the decoder and collect the upload.

    Args:
        headers: request headers with lower-cased names
        chunks: the request body as an iterable of byte chunks

    Returns:
        ParsedUpload with the last file part (if any) and every text field.

    Raises:
        MissingContentType: no content-type header
        ParseError: not multipart, no boundary, or malformed/truncated framing
    """
    boundary = boundary_from_headers(headers)
    collector = _PartCollector()
    parser = MultipartParser(boundary, collector.callbacks())

    try:
        for chunk in skip_preamble(chunks, boundary):
            if chunk:
                parser.write(chunk)
        parser.finalize()
    except MultipartParseError as e:
        raise ParseError(f"Malformed multipart body: {e}") from e

    if parser.state != MultipartState.END:
        raise ParseError("Unexpected end of form")

    logger.info(
        "Multipart body parsed",
        extra={"has_file": collector.result.has_file, "fields": sorted(collector.result.fields)},
    )
    return collector.result


def iter_stream(stream, chunk_size: int = CHUNK_SIZE) -> Iterator[bytes]:
    """Yield chunks from a file-like request stream until it is exhausted."""
    while True:
        chunk = stream.read(chunk_size)
        if not chunk:
            return
        yield chunk


def iter_event_body(body: Optional[str], is_base64_encoded: bool = False,
                    chunk_size: int = CHUNK_SIZE) -> Iterator[bytes]:
    """
    Yield the body of a serverless event as raw bytes.

    Decoding happens on first iteration, so a bad base64 payload surfaces as a
    ParseError from parse_multipart rather than while the request is adapted.
    """
    body = body or ""
    if is_base64_encoded:
        try:
            raw = base64.b64decode(body)
        except (binascii.Error, ValueError) as e:
            raise ParseError(f"Request body is not valid base64: {e}") from e
    else:
        raw = body.encode("utf-8")

    for offset in range(0, len(raw), chunk_size):
        yield raw[offset:offset + chunk_size]
