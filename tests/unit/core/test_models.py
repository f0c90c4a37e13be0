"""
Tests for RequestSpec, ResponseRecord and parameter mapping.
"""

import io

import pytest

from src.http_request.core.exceptions import EncodingError, InvalidParameterError
from src.http_request.core.models import (
    BasicAuth,
    PartSpec,
    ProxySpec,
    RequestSpec,
    ResponseRecord,
    spec_from_params,
    validate_url,
)


class TestValidateUrl:
    """Test URL validation."""

    def test_valid_https(self):
        assert validate_url("https://api.example.com/v1") == "https://api.example.com/v1"

    def test_strips_whitespace(self):
        assert validate_url("  http://x.org/ ") == "http://x.org/"

    @pytest.mark.parametrize("url", [None, "", "   "])
    def test_missing(self, url):
        with pytest.raises(InvalidParameterError) as exc_info:
            validate_url(url)
        assert exc_info.value.field == "url"
        assert "required" in str(exc_info.value)

    @pytest.mark.parametrize("url", ["ftp://x.org/", "x.org/path", "mailto:a@b.c"])
    def test_bad_scheme(self, url):
        with pytest.raises(InvalidParameterError):
            validate_url(url)

    def test_missing_host(self):
        with pytest.raises(InvalidParameterError, match="missing host"):
            validate_url("http:///path")

    def test_bad_port(self):
        with pytest.raises(InvalidParameterError):
            validate_url("http://x.org:99999/")

    @pytest.mark.parametrize("url", ["http://\x00x/", "http://x.org/a\x7fb"])
    def test_control_characters(self, url):
        with pytest.raises(InvalidParameterError) as exc_info:
            validate_url(url)
        assert exc_info.value.field == "url"


class TestRequestSpec:
    """Test RequestSpec validation and normalization."""

    def test_defaults(self):
        spec = RequestSpec(url="https://x.org/")
        assert spec.method == "GET"
        assert spec.query_params == ()
        assert spec.follow_redirects is True
        assert spec.disable_http2 is False
        assert spec.connection_timeout_ms == 10000
        assert spec.read_timeout_ms == 10000

    def test_method_upper_cased(self):
        assert RequestSpec(url="https://x.org/", method="post").method == "POST"

    def test_custom_method_token(self):
        assert RequestSpec(url="https://x.org/", method="PURGE").method == "PURGE"

    def test_invalid_method(self):
        with pytest.raises(InvalidParameterError) as exc_info:
            RequestSpec(url="https://x.org/", method="GE T")
        assert exc_info.value.field == "method"

    def test_mapping_params_become_pairs(self):
        spec = RequestSpec(url="https://x.org/", query_params={"a": "1", "b": ["2", "3"]})
        assert spec.query_params == (("a", "1"), ("b", "2"), ("b", "3"))

    def test_none_values_skipped(self):
        spec = RequestSpec(url="https://x.org/", headers={"X-A": "1", "X-B": None})
        assert spec.headers == (("X-A", "1"),)

    def test_non_string_values_converted(self):
        spec = RequestSpec(url="https://x.org/", query_params={"page": 2, "debug": True})
        assert spec.query_params == (("page", "2"), ("debug", "true"))

    def test_bad_params_type(self):
        with pytest.raises(InvalidParameterError):
            RequestSpec(url="https://x.org/", query_params=42)

    def test_negative_timeout(self):
        with pytest.raises(InvalidParameterError) as exc_info:
            RequestSpec(url="https://x.org/", read_timeout_ms=-1)
        assert exc_info.value.field == "read_timeout_ms"

    def test_zero_timeout_allowed(self):
        spec = RequestSpec(url="https://x.org/", connection_timeout_ms=0, read_timeout_ms=0)
        assert spec.connection_timeout_ms == 0

    def test_header_lookup_case_insensitive(self):
        spec = RequestSpec(url="https://x.org/", headers=[("X-Token", "a"), ("x-token", "b")])
        assert spec.header("X-TOKEN") == "a"
        assert spec.header_values("x-token") == ["a", "b"]
        assert spec.has_header("x-Token")
        assert spec.header("Missing") is None

    def test_non_ascii_header_value_rejected(self):
        with pytest.raises(InvalidParameterError) as exc_info:
            RequestSpec(url="https://x.org/", headers={"X-Name": "José"})
        assert exc_info.value.field == "headers"

    @pytest.mark.parametrize("value", ["a\r\nX-Injected: 1", "a\nb", "a\x00b"])
    def test_control_characters_in_header_value_rejected(self, value):
        with pytest.raises(InvalidParameterError):
            RequestSpec(url="https://x.org/", headers={"X-A": value})

    @pytest.mark.parametrize("name", ["Bad Name", "X-A:", "", "Name\n"])
    def test_invalid_header_name_rejected(self, name):
        with pytest.raises(InvalidParameterError, match="Invalid header name"):
            RequestSpec(url="https://x.org/", headers=[(name, "v")])

    def test_tab_in_header_value_allowed(self):
        spec = RequestSpec(url="https://x.org/", headers={"X-A": "a\tb"})
        assert spec.header("x-a") == "a\tb"

    def test_auth_and_proxy_from_mappings(self):
        spec = RequestSpec(
            url="https://x.org/",
            auth={"user": "bob", "password": "pw"},
            proxy={"host": "proxy.local", "port": 3128},
        )
        assert spec.auth == BasicAuth("bob", "pw")
        assert spec.proxy == ProxySpec("proxy.local", 3128)

    def test_multipart_from_mappings(self):
        spec = RequestSpec(
            url="https://x.org/",
            method="POST",
            multipart=[{"name": "f", "value": b"data", "fileName": "a.bin"}],
        )
        assert spec.multipart == (PartSpec("f", b"data", file_name="a.bin"),)

    def test_multipart_bad_part_type(self):
        with pytest.raises(EncodingError):
            RequestSpec(url="https://x.org/", multipart=["oops"])

    def test_immutable(self):
        spec = RequestSpec(url="https://x.org/")
        with pytest.raises(Exception):
            spec.method = "POST"

    def test_replace_revalidates(self):
        spec = RequestSpec(url="https://x.org/")
        assert spec.replace(method="delete").method == "DELETE"
        with pytest.raises(InvalidParameterError):
            spec.replace(url="nope")

    def test_is_secure(self):
        assert RequestSpec(url="https://x.org/").is_secure
        assert not RequestSpec(url="http://x.org/").is_secure


class TestEntitySelection:
    """Test which input becomes the request entity."""

    def test_body_wins_over_multipart_and_form(self):
        spec = RequestSpec(
            url="https://x.org/",
            method="POST",
            body="raw",
            form_params={"a": "1"},
            multipart=[PartSpec("f", "v")],
        )
        assert spec.entity_kind() == "body"

    def test_multipart_wins_over_form(self):
        spec = RequestSpec(
            url="https://x.org/", method="POST", form_params={"a": "1"}, multipart=[PartSpec("f", "v")]
        )
        assert spec.entity_kind() == "multipart"

    def test_form_for_post(self):
        spec = RequestSpec(url="https://x.org/", method="POST", form_params={"a": "1"})
        assert spec.entity_kind() == "form"
        assert spec.effective_url() == "https://x.org/"

    def test_form_folded_into_query_for_get(self):
        spec = RequestSpec(url="https://x.org/search", form_params={"q": "a b", "n": "1"})
        assert spec.folds_form_into_query
        assert spec.entity_kind() is None
        assert spec.effective_url() == "https://x.org/search?q=a+b&n=1"

    def test_form_not_folded_when_query_params_given(self):
        spec = RequestSpec(url="https://x.org/", query_params={"p": "1"}, form_params={"a": "1"})
        assert not spec.folds_form_into_query
        assert spec.entity_kind() == "form"
        assert spec.effective_url() == "https://x.org/?p=1"

    def test_no_entity(self):
        assert RequestSpec(url="https://x.org/").entity_kind() is None

    def test_query_appended_to_existing(self):
        spec = RequestSpec(url="https://x.org/p?x=1#frag", query_params={"y": "2"})
        assert spec.effective_url() == "https://x.org/p?x=1&y=2#frag"

    def test_query_repeated_keys_keep_order(self):
        spec = RequestSpec(url="https://x.org/", query_params=[("k", "1"), ("j", "0"), ("k", "2")])
        assert spec.effective_url() == "https://x.org/?k=1&j=0&k=2"


class TestAuthAndProxy:
    """Test BasicAuth and ProxySpec."""

    def test_authorization_header(self):
        assert BasicAuth("user", "pass").authorization_header() == "Basic dXNlcjpwYXNz"

    def test_auth_none_password(self):
        assert BasicAuth("user", None).password == ""

    def test_auth_requires_user(self):
        with pytest.raises(InvalidParameterError):
            BasicAuth("")

    def test_auth_repr_hides_password(self):
        assert "pass" not in repr(BasicAuth("user", "pass"))

    def test_proxy_url(self):
        assert ProxySpec("proxy.local", 8080).url == "http://proxy.local:8080"

    def test_proxy_ipv6_url(self):
        assert ProxySpec("::1", 8080).url == "http://[::1]:8080"

    def test_proxy_port_string(self):
        assert ProxySpec("proxy.local", "3128").port == 3128

    @pytest.mark.parametrize("port", [None, 0, 70000, "abc", True])
    def test_proxy_bad_port(self, port):
        with pytest.raises(InvalidParameterError) as exc_info:
            ProxySpec("proxy.local", port)
        assert exc_info.value.field == "proxy.port"

    def test_proxy_credentials(self):
        assert ProxySpec("p", 1, user="u", password="p").has_credentials
        assert not ProxySpec("p", 1).has_credentials


class TestPartSpec:
    """Test PartSpec validation."""

    def test_missing_name(self):
        with pytest.raises(EncodingError):
            PartSpec("", "v")

    def test_missing_value(self):
        with pytest.raises(EncodingError, match="missing 'value'"):
            PartSpec("field", None)

    def test_encoding_error_is_invalid_parameter(self):
        with pytest.raises(InvalidParameterError):
            PartSpec("field", None)

    def test_from_mapping_snake_case(self):
        part = PartSpec.from_mapping({"name": "n", "value": "v", "content_type": "text/csv"})
        assert part.content_type == "text/csv"


class TestResponseRecord:
    """Test ResponseRecord accessors."""

    def test_header_and_to_dict(self):
        stream = io.BytesIO(b"hi")
        record = ResponseRecord(
            status=200,
            message="OK",
            headers={"content-type": ["text/plain"], "x-a": ["1", "2"]},
            content_type="text/plain",
            body="hi",
            body_stream=stream,
        )
        assert record.header("X-A") == "1"
        assert record.header("missing") is None

        data = record.to_dict()
        assert data == {
            "status": 200,
            "message": "OK",
            "headers": {"content-type": ["text/plain"], "x-a": ["1", "2"]},
            "contentType": "text/plain",
            "body": "hi",
            "bodyStream": stream,
        }


class TestSpecFromParams:
    """Test mapping of loosely-typed parameters."""

    def test_minimal(self):
        spec = spec_from_params({"url": "https://x.org/"})
        assert spec.method == "GET"
        assert spec.follow_redirects is True

    def test_missing_url(self):
        with pytest.raises(InvalidParameterError, match="Parameter 'url' is required"):
            spec_from_params({"method": "GET"})

    def test_not_a_mapping(self):
        with pytest.raises(InvalidParameterError):
            spec_from_params(["https://x.org/"])

    def test_full_mapping(self):
        spec = spec_from_params({
            "url": "https://x.org/",
            "method": "post",
            "queryParams": {"q": "1"},
            "params": {"a": "1"},
            "headers": {"X-A": "1"},
            "contentType": "text/plain",
            "auth": {"user": "u", "password": "p"},
            "proxy": {"host": "proxy", "port": 3128, "user": "pu", "password": "pp"},
            "disableHttp2": True,
            "connectionTimeout": 1000,
            "readTimeout": 2000,
            "followRedirects": False,
        })
        assert spec.method == "POST"
        assert spec.query_params == (("q", "1"),)
        assert spec.form_params == (("a", "1"),)
        assert spec.auth == BasicAuth("u", "p")
        assert spec.proxy == ProxySpec("proxy", 3128, "pu", "pp")
        assert spec.disable_http2 is True
        assert spec.connection_timeout_ms == 1000
        assert spec.read_timeout_ms == 2000
        assert spec.follow_redirects is False

    def test_disable_http2_only_when_true(self):
        assert spec_from_params({"url": "https://x.org/", "disableHttp2": "yes"}).disable_http2 is False

    def test_default_timeouts(self):
        spec = spec_from_params(
            {"url": "https://x.org/"}, default_connection_timeout_ms=5, default_read_timeout_ms=7
        )
        assert (spec.connection_timeout_ms, spec.read_timeout_ms) == (5, 7)

    def test_proxy_without_host_ignored(self):
        assert spec_from_params({"url": "https://x.org/", "proxy": {"port": 1}}).proxy is None

    def test_auth_without_user_ignored(self):
        assert spec_from_params({"url": "https://x.org/", "auth": {"password": "p"}}).auth is None

    def test_multipart_must_be_list(self):
        with pytest.raises(EncodingError):
            spec_from_params({"url": "https://x.org/", "multipart": {"name": "x"}})

    def test_multipart_part_without_value(self):
        with pytest.raises(EncodingError):
            spec_from_params({"url": "https://x.org/", "multipart": [{"name": "x"}]})
