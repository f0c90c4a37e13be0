"""Core HTTP Request модули."""

from .config import (
    DEFAULT_MAX_REDIRECTS,
    DEFAULT_TIMEOUT_MS,
    EngineConfig,
    LegacyRedirectRewrite,
    RedirectPolicy,
)
from .exceptions import (
    HTTPRequestException,
    InvalidParameterError,
    EncodingError,
    CertificateParseError,
    TransportError,
    TimeoutError,
    ConnectionError,
    ProxyError,
    DNSError,
    TLSError,
    TooManyRedirectsError,
    ConfigurationError,
    classify_httpx_exception,
)
from .models import (
    BasicAuth,
    PartSpec,
    ProxySpec,
    RequestSpec,
    ResponseRecord,
    spec_from_params,
)
from .body_encoder import EncodedBody, encode_body, encode_form, encode_multipart
from .tls import TransportContext, default_ssl_context, load_transport_security
from .transport import Hop, RawResponse, TransportEngine
from .redirects import RedirectHandler, RedirectState
from .response_mapper import map_response
from .engine import HTTPRequestEngine, request, request_from_params

__all__ = [
    # Config
    "DEFAULT_MAX_REDIRECTS",
    "DEFAULT_TIMEOUT_MS",
    "EngineConfig",
    "LegacyRedirectRewrite",
    "RedirectPolicy",
    # Models
    "BasicAuth",
    "PartSpec",
    "ProxySpec",
    "RequestSpec",
    "ResponseRecord",
    "spec_from_params",
    # Pipeline
    "EncodedBody",
    "encode_body",
    "encode_form",
    "encode_multipart",
    "TransportContext",
    "default_ssl_context",
    "load_transport_security",
    "Hop",
    "RawResponse",
    "TransportEngine",
    "RedirectHandler",
    "RedirectState",
    "map_response",
    # Engine
    "HTTPRequestEngine",
    "request",
    "request_from_params",
    # Exceptions
    "HTTPRequestException",
    "InvalidParameterError",
    "EncodingError",
    "CertificateParseError",
    "TransportError",
    "TimeoutError",
    "ConnectionError",
    "ProxyError",
    "DNSError",
    "TLSError",
    "TooManyRedirectsError",
    "ConfigurationError",
    "classify_httpx_exception",
]
