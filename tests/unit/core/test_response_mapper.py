"""
Tests for mapping raw responses to ResponseRecord.
"""

import pytest

from src.http_request.core.response_mapper import (
    charset_of,
    group_headers,
    is_text_content_type,
    map_response,
    media_type,
)
from src.http_request.core.transport import RawResponse


def raw(content=b"", headers=None, status=200, reason="OK"):
    return RawResponse(status, reason, headers or [], content, "HTTP/1.1", "https://x.org/r")


class TestContentTypeHelpers:
    """Test text detection and charset selection."""

    @pytest.mark.parametrize("content_type", [
        "text/plain",
        "text/html; charset=utf-8",
        "TEXT/CSV",
        "application/json",
        "application/xml",
        "application/x-www-form-urlencoded",
        "application/javascript",
        "application/ecmascript",
        "application/problem+json",
        "application/atom+xml; charset=utf-8",
    ])
    def test_textual(self, content_type):
        assert is_text_content_type(content_type)

    @pytest.mark.parametrize("content_type", [
        None, "", "image/png", "application/octet-stream", "application/pdf", "multipart/mixed",
    ])
    def test_binary(self, content_type):
        assert not is_text_content_type(content_type)

    def test_media_type(self):
        assert media_type(" Application/JSON ; charset=utf-8") == "application/json"
        assert media_type(None) is None

    def test_charset(self):
        assert charset_of("text/plain; charset=ISO-8859-1") == "iso-8859-1"
        assert charset_of('text/plain; charset="utf-16"') == "utf-16"

    def test_charset_defaults_to_utf8(self):
        assert charset_of("text/plain") == "utf-8"
        assert charset_of(None) == "utf-8"
        assert charset_of("text/plain; charset=no-such-codec") == "utf-8"

    def test_group_headers(self):
        grouped = group_headers([("Set-Cookie", "a=1"), ("X-A", "1"), ("set-cookie", "b=2")])
        assert grouped == {"set-cookie": ["a=1", "b=2"], "x-a": ["1"]}
        assert list(grouped) == ["set-cookie", "x-a"]


class TestMapResponse:
    """Test ResponseRecord construction."""

    def test_text_body_decoded(self):
        record = map_response(raw("héllo".encode("utf-8"), [("Content-Type", "text/plain; charset=utf-8")]))
        assert record.status == 200
        assert record.message == "OK"
        assert record.content_type == "text/plain; charset=utf-8"
        assert record.body == "héllo"
        assert record.body_stream.read() == "héllo".encode("utf-8")

    def test_declared_charset_used(self):
        record = map_response(raw(b"caf\xe9", [("Content-Type", "text/plain; charset=latin-1")]))
        assert record.body == "café"

    def test_undecodable_bytes_replaced(self):
        record = map_response(raw(b"ok\xff", [("Content-Type", "application/json")]))
        assert record.body == "ok\ufffd"

    def test_binary_body_not_decoded(self):
        record = map_response(raw(b"\x89PNG", [("Content-Type", "image/png")]))
        assert record.body is None
        assert record.body_stream.read() == b"\x89PNG"

    def test_missing_content_type(self):
        record = map_response(raw(b"data"))
        assert record.content_type is None
        assert record.body is None

    def test_headers_lower_cased_and_grouped(self):
        record = map_response(raw(headers=[("X-Rate", "1"), ("X-RATE", "2")]))
        assert record.headers == {"x-rate": ["1", "2"]}

    def test_non_2xx_returned(self):
        record = map_response(raw(b"missing", [("Content-Type", "text/plain")], status=404, reason="Not Found"))
        assert record.status == 404
        assert record.message == "Not Found"
        assert record.body == "missing"

    def test_url_and_version(self):
        record = map_response(raw())
        assert record.url == "https://x.org/r"
        assert record.http_version == "HTTP/1.1"

    def test_empty_body_stream(self):
        assert map_response(raw()).body_stream.read() == b""
