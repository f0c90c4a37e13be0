"""Map a RawResponse to the caller-facing ResponseRecord."""

import codecs
import io
from email.message import Message
from typing import Dict, List, Optional

from .models import ResponseRecord
from .transport import RawResponse

TEXT_MEDIA_TYPES = frozenset({
    "application/json",
    "application/xml",
    "application/x-www-form-urlencoded",
    "application/javascript",
    "application/ecmascript",
    "application/x-javascript",
    "application/xhtml+xml",
    "application/ld+json",
    "application/graphql",
    "application/yaml",
    "application/x-yaml",
    "application/sql",
    "image/svg+xml",
})

DEFAULT_CHARSET = "utf-8"


def media_type(content_type: Optional[str]) -> Optional[str]:
    """'Text/HTML; charset=ISO-8859-1' -> 'text/html'."""
    if not content_type:
        return None
    base = content_type.split(";", 1)[0].strip().lower()
    return base or None


def is_text_content_type(content_type: Optional[str]) -> bool:
    """
    True for text/*, the known textual application types and any +json/+xml.

    Examples:
        >>> is_text_content_type("text/html; charset=utf-8")
        True
        >>> is_text_content_type("application/problem+json")
        True
        >>> is_text_content_type("image/png")
        False
    """
    base = media_type(content_type)
    if base is None:
        return False
    if base.startswith("text/") or base in TEXT_MEDIA_TYPES:
        return True
    return base.endswith("+json") or base.endswith("+xml")


def charset_of(content_type: Optional[str]) -> str:
    """Charset parameter of content_type if it names a known codec, else UTF-8."""
    if not content_type:
        return DEFAULT_CHARSET
    msg = Message()
    msg["content-type"] = content_type
    charset = msg.get_content_charset()
    if not charset:
        return DEFAULT_CHARSET
    try:
        codecs.lookup(charset)
    except LookupError:
        return DEFAULT_CHARSET
    return charset


def decode_text(content: bytes, content_type: Optional[str]) -> str:
    return content.decode(charset_of(content_type), errors="replace")


def group_headers(raw_headers) -> Dict[str, List[str]]:
    """Ordered mapping of lower-case names to all values, in arrival order."""
    grouped: Dict[str, List[str]] = {}
    for name, value in raw_headers:
        grouped.setdefault(name.lower(), []).append(value)
    return grouped


def map_response(raw: RawResponse) -> ResponseRecord:
    """
    Build the ResponseRecord for the final hop.

    body is only populated for textual content types; body_stream always
    holds the entity and is positioned at its start.
    """
    content_type = raw.header("Content-Type")
    body = decode_text(raw.content, content_type) if is_text_content_type(content_type) else None

    return ResponseRecord(
        status=raw.status,
        message=raw.reason,
        headers=group_headers(raw.headers),
        content_type=content_type,
        body=body,
        body_stream=io.BytesIO(raw.content),
        url=raw.url,
        http_version=raw.http_version,
    )
