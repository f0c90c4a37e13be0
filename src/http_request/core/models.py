"""
Request / response model.

RequestSpec is an immutable, validated description of one outgoing request.
It is built once per call, consumed by the engine and never retained.
ResponseRecord is the normalized result handed back to the caller.
"""

import base64
import re
from dataclasses import dataclass, replace
from typing import (
    Any,
    BinaryIO,
    Dict,
    Iterable,
    List,
    Mapping,
    Optional,
    Tuple,
    Union,
)
from urllib.parse import urlencode, urlsplit, urlunsplit

import httpx

from .config import DEFAULT_TIMEOUT_MS
from .exceptions import EncodingError, InvalidParameterError

# (name, value) pairs, insertion ordered
Pairs = Tuple[Tuple[str, str], ...]
ParamsInput = Union[Mapping[str, Any], Iterable[Tuple[str, Any]], None]

# RFC 7230 token
_TOKEN_RE = re.compile(r"^[!#$%&'*+\-.^_`|~0-9A-Za-z]+\Z")
# visible ASCII, space and HTAB
_HEADER_VALUE_RE = re.compile(r"^[\t\x20-\x7e]*\Z")

QUERY_FOLDING_METHODS = frozenset({"GET", "HEAD"})


def _to_str(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    return value if isinstance(value, str) else str(value)


def _normalize_pairs(params: ParamsInput, field_name: str) -> Pairs:
    """
    Flatten a mapping (or sequence of pairs) of str | list[str] into pairs.

    List values produce repeated pairs in order; None values are skipped.
    """
    if params is None:
        return ()

    items = params.items() if isinstance(params, Mapping) else params
    pairs: List[Tuple[str, str]] = []
    try:
        for key, value in items:
            if key is None or value is None:
                continue
            if isinstance(value, (list, tuple)):
                pairs.extend((_to_str(key), _to_str(v)) for v in value if v is not None)
            else:
                pairs.append((_to_str(key), _to_str(value)))
    except (TypeError, ValueError) as exc:
        raise InvalidParameterError(
            f"Parameter '{field_name}' must be a mapping of names to values",
            field=field_name,
        ) from exc
    return tuple(pairs)


def _check_timeout(value: Any, field_name: str) -> int:
    if isinstance(value, bool) or not isinstance(value, int) or value < 0:
        raise InvalidParameterError(
            f"Parameter '{field_name}' must be a non-negative integer (milliseconds)",
            field=field_name,
        )
    return value


def validate_url(url: Any, field_name: str = "url") -> str:
    """Check that url is an absolute http(s) URL with a host."""
    if url is None or (isinstance(url, str) and not url.strip()):
        raise InvalidParameterError(f"Parameter '{field_name}' is required", field=field_name)
    if not isinstance(url, str):
        raise InvalidParameterError(f"Parameter '{field_name}' must be a string", field=field_name)

    url = url.strip()
    try:
        parts = urlsplit(url)
        parts.port  # raises ValueError on a bad port
    except ValueError as exc:
        raise InvalidParameterError(f"Invalid URL '{url}': {exc}", field=field_name) from exc

    if parts.scheme.lower() not in ("http", "https"):
        raise InvalidParameterError(
            f"Invalid URL '{url}': scheme must be http or https", field=field_name
        )
    if not parts.hostname:
        raise InvalidParameterError(f"Invalid URL '{url}': missing host", field=field_name)

    # urlsplit lets control characters and malformed hosts through
    try:
        httpx.URL(url)
    except httpx.InvalidURL as exc:
        raise InvalidParameterError(f"Invalid URL {url!r}: {exc}", field=field_name) from exc
    return url


def _check_headers(headers: Pairs) -> Pairs:
    """Header names must be tokens; values visible ASCII without CR/LF."""
    for name, value in headers:
        if not _TOKEN_RE.match(name):
            raise InvalidParameterError(f"Invalid header name: {name!r}", field="headers")
        if not _HEADER_VALUE_RE.match(value):
            raise InvalidParameterError(
                f"Invalid value for header '{name}': only printable ASCII is allowed",
                field="headers",
            )
    return headers


@dataclass(frozen=True)
class BasicAuth:
    """Credentials for preemptive basic authentication."""

    user: str
    password: str = ""

    def __post_init__(self):
        if not self.user:
            raise InvalidParameterError("Parameter 'auth.user' is required", field="auth.user")
        if self.password is None:
            object.__setattr__(self, 'password', "")

    def authorization_header(self) -> str:
        token = base64.b64encode(f"{self.user}:{self.password}".encode("utf-8"))
        return "Basic " + token.decode("ascii")

    def __repr__(self) -> str:
        return f"BasicAuth(user={self.user!r}, password='***')"


@dataclass(frozen=True)
class ProxySpec:
    """
    HTTP proxy settings.

    Secure targets are tunnelled with CONNECT, plaintext targets are
    forwarded. user/password enable proxy basic authentication.
    """

    host: str
    port: int
    user: Optional[str] = None
    password: Optional[str] = None

    def __post_init__(self):
        if not self.host:
            raise InvalidParameterError("Parameter 'proxy.host' is required", field="proxy.host")
        if isinstance(self.port, str) and self.port.isdigit():
            object.__setattr__(self, 'port', int(self.port))
        if isinstance(self.port, bool) or not isinstance(self.port, int) or not 0 < self.port < 65536:
            raise InvalidParameterError(
                "Parameter 'proxy.port' must be an integer between 1 and 65535",
                field="proxy.port",
            )

    @property
    def url(self) -> str:
        host = self.host
        if ":" in host and not host.startswith("["):
            host = f"[{host}]"
        return f"http://{host}:{self.port}"

    @property
    def has_credentials(self) -> bool:
        return bool(self.user)

    def __repr__(self) -> str:
        return f"ProxySpec(host={self.host!r}, port={self.port}, user={self.user!r})"


@dataclass(frozen=True)
class PartSpec:
    """One multipart/form-data section."""

    name: str
    value: Any
    file_name: Optional[str] = None
    content_type: Optional[str] = None

    def __post_init__(self):
        if not self.name:
            raise EncodingError("Multipart part is missing 'name'", field="multipart.name")
        if self.value is None:
            raise EncodingError(
                f"Multipart part '{self.name}' is missing 'value'", field="multipart.value"
            )

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> 'PartSpec':
        """Build from a {name, value, fileName, contentType} mapping."""
        return cls(
            name=data.get("name"),
            value=data.get("value"),
            file_name=data.get("fileName", data.get("file_name")),
            content_type=data.get("contentType", data.get("content_type")),
        )


@dataclass(frozen=True)
class RequestSpec:
    """
    Immutable description of one outgoing request.

    Mappings passed to the constructor are frozen into ordered tuples of
    (name, value) pairs; list values become repeated pairs.

    Args:
        url: Absolute http/https URL (required)
        method: HTTP method, default GET
        query_params: Query parameters appended to the URL
        form_params: Form parameters (body, or query string for GET/HEAD)
        headers: Request headers; lookups are case-insensitive
        body: str, bytes or binary stream sent verbatim
        content_type: Content type of body or multipart
        multipart: Sequence of PartSpec (or mappings)
        auth: Basic authentication credentials
        proxy: Proxy settings
        disable_http2: Never attempt HTTP/2
        connection_timeout_ms: Connection setup timeout, 0 = no limit
        read_timeout_ms: Timeout between bytes of the response, 0 = no limit
        follow_redirects: Follow 3xx responses
        certificates: PEM trust anchors replacing the default CA set
        client_certificate: PEM private key + certificate

    Example:
        >>> spec = RequestSpec(url="http://x/", method="POST", form_params={"a": "1"})
        >>> spec.header("content-type") is None
        True
    """

    url: str
    method: str = "GET"
    query_params: Pairs = ()
    form_params: Pairs = ()
    headers: Pairs = ()
    body: Any = None
    content_type: Optional[str] = None
    multipart: Tuple[PartSpec, ...] = ()
    auth: Optional[BasicAuth] = None
    proxy: Optional[ProxySpec] = None
    disable_http2: bool = False
    connection_timeout_ms: int = DEFAULT_TIMEOUT_MS
    read_timeout_ms: int = DEFAULT_TIMEOUT_MS
    follow_redirects: bool = True
    certificates: Any = None
    client_certificate: Any = None

    def __post_init__(self):
        """Validate and freeze mutable inputs."""
        object.__setattr__(self, 'url', validate_url(self.url))

        method = self.method or "GET"
        if not isinstance(method, str) or not _TOKEN_RE.match(method):
            raise InvalidParameterError(f"Invalid HTTP method: {method!r}", field="method")
        object.__setattr__(self, 'method', method.upper())

        object.__setattr__(self, 'query_params', _normalize_pairs(self.query_params, "query_params"))
        object.__setattr__(self, 'form_params', _normalize_pairs(self.form_params, "form_params"))
        object.__setattr__(self, 'headers', _check_headers(_normalize_pairs(self.headers, "headers")))

        parts = []
        for part in self.multipart or ():
            if isinstance(part, PartSpec):
                parts.append(part)
            elif isinstance(part, Mapping):
                parts.append(PartSpec.from_mapping(part))
            else:
                raise EncodingError(
                    f"Multipart part must be a PartSpec or mapping, got {type(part).__name__}",
                    field="multipart",
                )
        object.__setattr__(self, 'multipart', tuple(parts))

        if isinstance(self.auth, Mapping):
            object.__setattr__(self, 'auth', BasicAuth(self.auth.get("user"), self.auth.get("password")))
        if isinstance(self.proxy, Mapping):
            object.__setattr__(self, 'proxy', ProxySpec(
                host=self.proxy.get("host"),
                port=self.proxy.get("port"),
                user=self.proxy.get("user"),
                password=self.proxy.get("password"),
            ))

        _check_timeout(self.connection_timeout_ms, "connection_timeout_ms")
        _check_timeout(self.read_timeout_ms, "read_timeout_ms")

    # ==================== Headers ====================

    def header(self, name: str) -> Optional[str]:
        """First value of header `name` (case-insensitive) or None."""
        lowered = name.lower()
        for key, value in self.headers:
            if key.lower() == lowered:
                return value
        return None

    def header_values(self, name: str) -> List[str]:
        lowered = name.lower()
        return [value for key, value in self.headers if key.lower() == lowered]

    def has_header(self, name: str) -> bool:
        return self.header(name) is not None

    # ==================== Entity selection ====================

    @property
    def has_body(self) -> bool:
        return self.body is not None

    @property
    def folds_form_into_query(self) -> bool:
        """GET/HEAD without body and query_params send form_params in the query string."""
        return (
            bool(self.form_params)
            and not self.has_body
            and not self.multipart
            and not self.query_params
            and self.method in QUERY_FOLDING_METHODS
        )

    def entity_kind(self) -> Optional[str]:
        """Which input becomes the request entity: 'body', 'multipart', 'form' or None."""
        if self.has_body:
            return "body"
        if self.multipart:
            return "multipart"
        if self.form_params and not self.folds_form_into_query:
            return "form"
        return None

    def effective_url(self) -> str:
        """URL with query_params (or folded form_params) appended to any existing query."""
        extra = self.query_params or (self.form_params if self.folds_form_into_query else ())
        if not extra:
            return self.url

        parts = urlsplit(self.url)
        encoded = urlencode(list(extra))
        query = f"{parts.query}&{encoded}" if parts.query else encoded
        return urlunsplit((parts.scheme, parts.netloc, parts.path, query, parts.fragment))

    @property
    def is_secure(self) -> bool:
        return urlsplit(self.url).scheme.lower() == "https"

    def replace(self, **changes: Any) -> 'RequestSpec':
        """Copy with changes applied (re-validated)."""
        return replace(self, **changes)


@dataclass(frozen=True)
class ResponseRecord:
    """
    Normalized response.

    Attributes:
        status: HTTP status code
        message: Reason phrase
        headers: Ordered mapping of lower-case header name to values
        content_type: Content-Type header value or None
        body: Decoded text when content_type is textual, otherwise None
        body_stream: Binary stream with the entity, positioned at start
        url: Final URL after redirects
        http_version: Protocol used for the final hop ("HTTP/1.1", "HTTP/2")
    """

    status: int
    message: str
    headers: Mapping[str, List[str]]
    content_type: Optional[str]
    body: Optional[str]
    body_stream: BinaryIO
    url: str = ""
    http_version: str = "HTTP/1.1"

    def header(self, name: str) -> Optional[str]:
        values = self.headers.get(name.lower())
        return values[0] if values else None

    def to_dict(self) -> Dict[str, Any]:
        """Plain record with the scripting-facing field names."""
        return {
            "status": self.status,
            "message": self.message,
            "headers": {name: list(values) for name, values in self.headers.items()},
            "contentType": self.content_type,
            "body": self.body,
            "bodyStream": self.body_stream,
        }


def spec_from_params(
    params: Mapping[str, Any],
    default_connection_timeout_ms: int = DEFAULT_TIMEOUT_MS,
    default_read_timeout_ms: int = DEFAULT_TIMEOUT_MS,
) -> RequestSpec:
    """
    Build a RequestSpec from a loosely-typed parameter mapping.

    Accepts the scripting-facing keys (url, method, params, queryParams,
    headers, disableHttp2, connectionTimeout, readTimeout, body, contentType,
    multipart, auth, proxy, followRedirects, certificates,
    clientCertificate). None means "use the default".

    Raises:
        InvalidParameterError: 'url' missing or any field invalid
    """
    if not isinstance(params, Mapping):
        raise InvalidParameterError("Request parameters must be a mapping")
    if params.get("url") is None:
        raise InvalidParameterError("Parameter 'url' is required", field="url")

    def _get(key: str, default: Any = None) -> Any:
        value = params.get(key)
        return default if value is None else value

    proxy = None
    proxy_params = params.get("proxy")
    if proxy_params and proxy_params.get("host"):
        proxy = ProxySpec(
            host=proxy_params.get("host"),
            port=proxy_params.get("port"),
            user=proxy_params.get("user"),
            password=proxy_params.get("password"),
        )

    auth = None
    auth_params = params.get("auth")
    if auth_params and auth_params.get("user"):
        auth = BasicAuth(auth_params.get("user"), auth_params.get("password") or "")

    multipart = params.get("multipart") or ()
    if not isinstance(multipart, (list, tuple)):
        raise EncodingError("Parameter 'multipart' must be a list of parts", field="multipart")

    return RequestSpec(
        url=params.get("url"),
        method=_get("method", "GET"),
        query_params=params.get("queryParams"),
        form_params=params.get("params"),
        headers=params.get("headers"),
        body=params.get("body"),
        content_type=params.get("contentType"),
        multipart=tuple(multipart),
        auth=auth,
        proxy=proxy,
        disable_http2=params.get("disableHttp2") is True,
        connection_timeout_ms=_get("connectionTimeout", default_connection_timeout_ms),
        read_timeout_ms=_get("readTimeout", default_read_timeout_ms),
        follow_redirects=bool(_get("followRedirects", True)),
        certificates=params.get("certificates"),
        client_certificate=params.get("clientCertificate"),
    )
