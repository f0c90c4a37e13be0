"""
HTTP request engine.

request(spec) validates the request, encodes its entity, loads TLS material
once, then drives the transport through the redirect state machine and maps
the final response.
"""

import time
import uuid
from typing import Any, Dict, Mapping, Optional, TYPE_CHECKING

from .body_encoder import encode_body
from .config import EngineConfig
from .exceptions import HTTPRequestException, InvalidParameterError
from .models import RequestSpec, ResponseRecord, spec_from_params
from .redirects import RedirectHandler
from .response_mapper import map_response
from .tls import SSLContextFactory, TransportContext, load_transport_security
from .transport import TransportEngine

if TYPE_CHECKING:
    from .logging import HTTPRequestLogger


class HTTPRequestEngine:
    """
    Synchronous HTTP request engine.

    Every call is self-contained: it builds its own TLS context and
    connection pool and releases them before returning, so one engine can be
    shared between threads.

    Args:
        config: Engine configuration (redirect limits, defaults, logging)
        default_ssl_context_factory: Trust material used when a request
            carries no certificates of its own (certifi bundle by default)

    Example:
        >>> engine = HTTPRequestEngine(EngineConfig.create(max_redirects=3))
        >>> record = engine.request(RequestSpec(url="https://httpbin.org/get"))
        >>> record.status
        200
    """

    def __init__(
        self,
        config: Optional[EngineConfig] = None,
        default_ssl_context_factory: Optional[SSLContextFactory] = None,
        transport_factory=TransportEngine,
    ):
        self._config = config or EngineConfig()
        self._ssl_context_factory = default_ssl_context_factory
        self._transport_factory = transport_factory

        self._logger: Optional['HTTPRequestLogger'] = None
        if self._config.logging:
            from .logging import HTTPRequestLogger
            self._logger = HTTPRequestLogger(config=self._config.logging)

    @property
    def config(self) -> EngineConfig:
        return self._config

    def close(self) -> None:
        """Close log handlers owned by this engine."""
        if self._logger is not None:
            self._logger.close()
            self._logger = None

    def __enter__(self) -> 'HTTPRequestEngine':
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False

    def _prepare_transport(self, spec: RequestSpec) -> TransportContext:
        ssl_context, anchors, has_identity = load_transport_security(
            spec.certificates,
            spec.client_certificate,
            default_factory=self._ssl_context_factory,
        )
        return TransportContext(
            ssl_context=ssl_context,
            http2_enabled=not spec.disable_http2,
            trust_anchor_count=anchors,
            has_client_identity=has_identity,
            proxy_url=spec.proxy.url if spec.proxy else None,
        )

    def request(self, spec: RequestSpec) -> ResponseRecord:
        """
        Perform the request described by `spec`.

        Non-2xx statuses are returned, not raised.

        Raises:
            InvalidParameterError / EncodingError: Bad request inputs
            CertificateParseError: Bad PEM material (before any connection)
            TimeoutError: Connect or read timeout
            TooManyRedirectsError: Redirect limit exceeded
            TransportError: Any other network or protocol failure
        """
        if not isinstance(spec, RequestSpec):
            raise InvalidParameterError(
                f"request() expects a RequestSpec, got {type(spec).__name__}"
            )

        correlation_id = str(uuid.uuid4())
        if self._logger:
            from .logging.filters import set_correlation_id
            set_correlation_id(correlation_id)

        start_time = time.time()
        try:
            body = encode_body(spec, self._config.max_multipart_boundary_attempts)
            context = self._prepare_transport(spec)

            if self._logger:
                self._logger.info(
                    "Request started",
                    method=spec.method,
                    url=spec.effective_url(),
                    entity=spec.entity_kind(),
                    http2=context.http2_enabled,
                    proxy=context.proxy_url,
                    trust_anchors=context.trust_anchor_count,
                    client_certificate=context.has_client_identity,
                )

            handler = RedirectHandler(
                spec,
                body,
                policy=self._config.redirect_policy,
                max_redirects=self._config.max_redirects,
            )

            with self._transport_factory(
                context,
                spec.connection_timeout_ms,
                spec.read_timeout_ms,
                proxy=spec.proxy,
                user_agent=None if spec.has_header("User-Agent") else self._config.user_agent,
                logger=self._logger,
            ) as transport:
                hop = handler.first_hop()
                while True:
                    raw = transport.exchange(hop)
                    next_hop = handler.on_response(hop, raw)
                    if next_hop is None:
                        break
                    if self._logger:
                        self._logger.info(
                            "Following redirect",
                            status=raw.status,
                            method=next_hop.method,
                            url=next_hop.url,
                            redirect=handler.redirect_count,
                        )
                    hop = next_hop

            record = map_response(raw)

            if self._logger:
                self._logger.info(
                    "Request completed",
                    method=spec.method,
                    url=record.url,
                    status=record.status,
                    http_version=record.http_version,
                    redirects=handler.redirect_count,
                    stop_reason=handler.stop_reason,
                    response_size=len(raw.content),
                    duration_ms=round((time.time() - start_time) * 1000, 2),
                )
            return record

        except HTTPRequestException as e:
            if self._logger:
                self._logger.error(
                    "Request failed",
                    method=spec.method,
                    url=spec.url,
                    error=str(e),
                    error_type=type(e).__name__,
                    duration_ms=round((time.time() - start_time) * 1000, 2),
                )
            raise
        finally:
            if self._logger:
                from .logging.filters import clear_correlation_id
                clear_correlation_id()

    def request_from_params(self, params: Mapping[str, Any]) -> Dict[str, Any]:
        """
        Scripting-style entry point: parameter mapping in, record dict out.

        Missing timeouts take the engine defaults.

        Example:
            >>> engine.request_from_params({"url": "https://x/", "method": "POST",
            ...                             "params": {"a": "1"}})["status"]
            200
        """
        spec = spec_from_params(
            params,
            default_connection_timeout_ms=self._config.default_connection_timeout_ms,
            default_read_timeout_ms=self._config.default_read_timeout_ms,
        )
        return self.request(spec).to_dict()


def request(spec: RequestSpec, *, config: Optional[EngineConfig] = None) -> ResponseRecord:
    """
    Perform one HTTP request with a throwaway engine.

    Example:
        >>> record = request(RequestSpec(url="https://example.com/"))
    """
    with HTTPRequestEngine(config) as engine:
        return engine.request(spec)


def request_from_params(
    params: Mapping[str, Any],
    *,
    config: Optional[EngineConfig] = None,
) -> Dict[str, Any]:
    """Mapping-based variant of request(); returns ResponseRecord.to_dict()."""
    with HTTPRequestEngine(config) as engine:
        return engine.request_from_params(params)
