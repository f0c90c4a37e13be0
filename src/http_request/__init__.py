"""HTTP Request - synchronous HTTP/2-capable request engine with TLS material loading."""

import logging
from importlib.metadata import version, PackageNotFoundError

from .core.engine import HTTPRequestEngine, request, request_from_params
from .core.config import EngineConfig, RedirectPolicy, LegacyRedirectRewrite
from .core.models import BasicAuth, PartSpec, ProxySpec, RequestSpec, ResponseRecord
from .core.exceptions import (
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
)
from .core.env_config import load_from_env

# Users can configure logging themselves using logging.getLogger('http_request')
logging.getLogger('http_request').addHandler(logging.NullHandler())

try:
    __version__ = version("http-request-core")
except PackageNotFoundError:
    # Package is not installed (development mode)
    __version__ = "0.0.0-dev"

__all__ = [
    "HTTPRequestEngine",
    "request",
    "request_from_params",
    "EngineConfig",
    "RedirectPolicy",
    "LegacyRedirectRewrite",
    "load_from_env",
    "BasicAuth",
    "PartSpec",
    "ProxySpec",
    "RequestSpec",
    "ResponseRecord",
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
    "__version__",
]
