"""
Body encoder.

Turns the entity inputs of a RequestSpec (explicit body, multipart parts or
form parameters) into bytes or a replayable stream plus the Content-Type and
framing headers that go with it.
"""

import mimetypes
import secrets
from email.message import Message
from typing import Any, BinaryIO, Dict, Iterator, List, Optional, Sequence, Tuple, Union
from urllib.parse import urlencode

from .exceptions import EncodingError
from .models import PartSpec, RequestSpec

FORM_CONTENT_TYPE = "application/x-www-form-urlencoded"
MULTIPART_FORM_DATA = "multipart/form-data"
DEFAULT_TEXT_CONTENT_TYPE = "text/plain; charset=utf-8"
DEFAULT_BINARY_CONTENT_TYPE = "application/octet-stream"

CRLF = b"\r\n"
STREAM_CHUNK_SIZE = 64 * 1024
BOUNDARY_PREFIX = "----HttpRequestBoundary"


def _is_stream(value: Any) -> bool:
    return callable(getattr(value, "read", None))


def _charset_of(content_type: Optional[str], default: str = "utf-8") -> str:
    if not content_type:
        return default
    msg = Message()
    msg["content-type"] = content_type
    return msg.get_content_charset() or default


def _read_all(stream: Any) -> bytes:
    data = stream.read()
    if isinstance(data, str):
        return data.encode("utf-8")
    if isinstance(data, (bytes, bytearray, memoryview)):
        return bytes(data)
    raise EncodingError(
        f"Unsupported stream type: read() returned {type(data).__name__}", field="body"
    )


def _to_bytes(value: Any, charset: str = "utf-8") -> Optional[bytes]:
    if isinstance(value, str):
        try:
            return value.encode(charset)
        except LookupError:
            return value.encode("utf-8")
    if isinstance(value, (bytes, bytearray, memoryview)):
        return bytes(value)
    return None


class EncodedBody:
    """
    Encoded request entity.

    Either holds `data` (sent with Content-Length) or a binary `stream`
    (sent with Content-Length when its size is known, otherwise chunked).
    Seekable streams are rewound when the body has to be sent again for a
    307/308 redirect.
    """

    def __init__(
        self,
        content_type: Optional[str],
        data: Optional[bytes] = None,
        stream: Optional[BinaryIO] = None,
    ):
        if (data is None) == (stream is None):
            raise ValueError("exactly one of data or stream must be set")

        self.content_type = content_type
        self.data = data
        self.stream = stream
        self._start: Optional[int] = None
        self._length: Optional[int] = None
        self._used = False

        if stream is not None:
            self._start, self._length = self._probe(stream)

    @staticmethod
    def _probe(stream: Any) -> Tuple[Optional[int], Optional[int]]:
        seekable = getattr(stream, "seekable", None)
        try:
            if not callable(seekable) or not seekable():
                return None, None
            start = stream.tell()
            end = stream.seek(0, 2)
            stream.seek(start)
            return start, end - start
        except (OSError, ValueError):
            return None, None

    @property
    def length(self) -> Optional[int]:
        if self.data is not None:
            return len(self.data)
        return self._length

    @property
    def framing(self) -> str:
        return "content-length" if self.length is not None else "chunked"

    def headers(self) -> Dict[str, str]:
        """Content-Type and framing headers for this entity."""
        headers: Dict[str, str] = {}
        if self.content_type:
            headers["Content-Type"] = self.content_type
        if self.length is not None:
            headers["Content-Length"] = str(self.length)
        return headers

    def content(self) -> Union[bytes, Iterator[bytes]]:
        """Content for one send; rewinds a seekable stream that was sent before."""
        if self.data is not None:
            return self.data

        if self._used:
            if self._start is None:
                raise EncodingError(
                    "Request body stream is not seekable and cannot be sent again",
                    field="body",
                )
            self.stream.seek(self._start)
        self._used = True
        return self._iter_stream()

    def _iter_stream(self) -> Iterator[bytes]:
        while True:
            chunk = self.stream.read(STREAM_CHUNK_SIZE)
            if not chunk:
                break
            if isinstance(chunk, str):
                chunk = chunk.encode("utf-8")
            yield bytes(chunk)


# ==================== Form ====================

def encode_form(params: Sequence[Tuple[str, str]]) -> EncodedBody:
    """
    Encode pairs as application/x-www-form-urlencoded.

    Repeated keys stay repeated, in insertion order.

    Example:
        >>> encode_form([("a", "1"), ("b", "2")]).data
        b'a=1&b=2'
    """
    return EncodedBody(FORM_CONTENT_TYPE, data=urlencode(list(params)).encode("ascii"))


# ==================== Multipart ====================

def _quote_param(value: str) -> str:
    return value.replace('"', "%22").replace("\r", "%0D").replace("\n", "%0A")


def generate_boundary() -> str:
    return BOUNDARY_PREFIX + secrets.token_hex(16)


def _part_payload(part: PartSpec) -> bytes:
    value = part.value
    data = _to_bytes(value, _charset_of(part.content_type))
    if data is not None:
        return data
    if _is_stream(value):
        return _read_all(value)
    raise EncodingError(
        f"Unsupported value type for multipart part '{part.name}': {type(value).__name__}",
        field="multipart.value",
    )


def _part_headers(part: PartSpec) -> bytes:
    disposition = f'form-data; name="{_quote_param(part.name)}"'
    if part.file_name is not None:
        disposition += f'; filename="{_quote_param(part.file_name)}"'

    lines = [f"Content-Disposition: {disposition}"]
    content_type = part.content_type
    if content_type is None and part.file_name is not None:
        content_type = mimetypes.guess_type(part.file_name)[0] or DEFAULT_BINARY_CONTENT_TYPE
    if content_type:
        lines.append(f"Content-Type: {content_type}")
    return CRLF.join(line.encode("utf-8") for line in lines)


def _multipart_content_type(boundary: str, content_type: Optional[str]) -> str:
    media_type = MULTIPART_FORM_DATA
    if content_type:
        base = content_type.split(";", 1)[0].strip().lower()
        if base.startswith("multipart/"):
            media_type = base
    return f"{media_type}; boundary={boundary}"


def encode_multipart(
    parts: Sequence[PartSpec],
    content_type: Optional[str] = None,
    max_attempts: int = 10,
    boundary_factory=generate_boundary,
) -> EncodedBody:
    """
    Encode parts as multipart/form-data.

    Stream values are read so that the boundary can be checked against the
    full content; a boundary found in any part is regenerated.

    Args:
        parts: Parts in order
        content_type: Optional multipart/* media type to use instead of form-data
        max_attempts: Boundary generation attempts before giving up
        boundary_factory: Callable returning a candidate boundary

    Raises:
        EncodingError: Bad part, unsupported value type, or no unique boundary
    """
    sections: List[Tuple[bytes, bytes]] = []
    for part in parts:
        if not isinstance(part, PartSpec):
            raise EncodingError("Multipart part must be a PartSpec", field="multipart")
        sections.append((_part_headers(part), _part_payload(part)))

    boundary = None
    for _ in range(max_attempts):
        candidate = boundary_factory()
        marker = candidate.encode("ascii")
        if not any(marker in head or marker in payload for head, payload in sections):
            boundary = candidate
            break
    if boundary is None:
        raise EncodingError(
            f"Could not generate a unique multipart boundary after {max_attempts} attempts",
            field="multipart",
        )

    delimiter = b"--" + boundary.encode("ascii")
    chunks: List[bytes] = []
    for head, payload in sections:
        chunks.extend((delimiter, CRLF, head, CRLF, CRLF, payload, CRLF))
    chunks.extend((delimiter, b"--", CRLF))

    return EncodedBody(_multipart_content_type(boundary, content_type), data=b"".join(chunks))


def decode_multipart(body: bytes, content_type: str) -> List[PartSpec]:
    """
    Parse a multipart body produced by encode_multipart back into parts.

    Values are returned as bytes.
    """
    msg = Message()
    msg["content-type"] = content_type
    boundary = msg.get_param("boundary")
    if not boundary:
        raise EncodingError("Content type has no boundary parameter", field="content_type")

    delimiter = b"--" + boundary.encode("ascii")
    parts: List[PartSpec] = []
    for section in body.split(delimiter)[1:]:
        if section.startswith(b"--"):
            break
        if section.startswith(CRLF):
            section = section[2:]
        head, _, payload = section.partition(CRLF + CRLF)
        if payload.endswith(CRLF):
            payload = payload[:-2]

        headers = Message()
        for line in head.decode("utf-8").split("\r\n"):
            name, _, value = line.partition(":")
            if name:
                headers[name.strip()] = value.strip()

        parts.append(PartSpec(
            name=headers.get_param("name", header="content-disposition"),
            value=payload,
            file_name=headers.get_param("filename", header="content-disposition"),
            content_type=headers.get("content-type"),
        ))
    return parts


# ==================== Dispatch ====================

def encode_explicit_body(body: Any, content_type: Optional[str]) -> EncodedBody:
    """Explicit body is sent verbatim; content type is inferred when missing."""
    if isinstance(body, str):
        return EncodedBody(
            content_type or DEFAULT_TEXT_CONTENT_TYPE,
            data=_to_bytes(body, _charset_of(content_type)),
        )
    if isinstance(body, (bytes, bytearray, memoryview)):
        return EncodedBody(content_type or DEFAULT_BINARY_CONTENT_TYPE, data=bytes(body))
    if _is_stream(body):
        return EncodedBody(content_type or DEFAULT_BINARY_CONTENT_TYPE, stream=body)
    raise EncodingError(f"Unsupported body type: {type(body).__name__}", field="body")


def encode_body(spec: RequestSpec, max_boundary_attempts: int = 10) -> Optional[EncodedBody]:
    """
    Encode the entity of `spec`.

    Precedence: body, then multipart, then form_params. Returns None when the
    request has no entity (including GET/HEAD with form params folded into
    the query string).
    """
    kind = spec.entity_kind()
    if kind == "body":
        return encode_explicit_body(spec.body, spec.content_type or spec.header("Content-Type"))
    if kind == "multipart":
        return encode_multipart(spec.multipart, spec.content_type, max_boundary_attempts)
    if kind == "form":
        return encode_form(spec.form_params)
    return None
