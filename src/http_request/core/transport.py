# src/http_request/core/transport.py
"""
Transport engine on top of httpx.

One TransportEngine is opened per request() call and owns a single
httpx.Client for every hop of that call. HTTP/2 is negotiated through ALPN
on secure connections (falling back to HTTP/1.1); plaintext connections
always use HTTP/1.1.
"""

from dataclasses import dataclass, field
from typing import Callable, List, Optional, Tuple, TYPE_CHECKING

import httpx

from .body_encoder import EncodedBody
from .exceptions import ProxyError, classify_httpx_exception
from .models import ProxySpec
from .tls import TransportContext

if TYPE_CHECKING:
    from .logging import HTTPRequestLogger


def _seconds(timeout_ms: int) -> Optional[float]:
    """Milliseconds to httpx seconds; 0 means no limit."""
    return timeout_ms / 1000.0 if timeout_ms else None


@dataclass
class Hop:
    """One outgoing exchange: method, absolute URL, wire headers, entity."""

    method: str
    url: str
    headers: List[Tuple[str, str]] = field(default_factory=list)
    body: Optional[EncodedBody] = None

    def header(self, name: str) -> Optional[str]:
        lowered = name.lower()
        for key, value in self.headers:
            if key.lower() == lowered:
                return value
        return None


@dataclass
class RawResponse:
    """Protocol-level response: status line, raw headers, entity bytes (content-coding removed)."""

    status: int
    reason: str
    headers: List[Tuple[str, str]]
    content: bytes
    http_version: str
    url: str

    def header(self, name: str) -> Optional[str]:
        lowered = name.lower()
        for key, value in self.headers:
            if key.lower() == lowered:
                return value
        return None

    @property
    def is_redirect(self) -> bool:
        return self.status in (301, 302, 303, 307, 308)


class TransportEngine:
    """
    Performs request/response exchanges over a (possibly proxied, possibly
    TLS-secured) connection.

    Features:
        - Connect timeout covers TCP, proxy tunnel and TLS setup
        - Read timeout bounds the gap between received bytes
        - CONNECT tunnelling for https targets behind a proxy
        - Connections are released on every exit path

    Example:
        >>> with TransportEngine(context, 10000, 10000) as transport:
        ...     raw = transport.exchange(Hop("GET", "https://example.com/"))
    """

    def __init__(
        self,
        context: TransportContext,
        connection_timeout_ms: int,
        read_timeout_ms: int,
        proxy: Optional[ProxySpec] = None,
        user_agent: Optional[str] = None,
        logger: Optional['HTTPRequestLogger'] = None,
        client_factory: Callable[..., httpx.Client] = httpx.Client,
    ):
        self._context = context
        self._connection_timeout_ms = connection_timeout_ms
        self._read_timeout_ms = read_timeout_ms
        self._proxy = proxy
        self._user_agent = user_agent
        self._logger = logger
        self._client_factory = client_factory
        self._client: Optional[httpx.Client] = None

    @property
    def context(self) -> TransportContext:
        return self._context

    def _build_timeout(self) -> httpx.Timeout:
        connect = _seconds(self._connection_timeout_ms)
        read = _seconds(self._read_timeout_ms)
        return httpx.Timeout(connect=connect, read=read, write=read, pool=connect)

    def _build_proxy(self) -> Optional[httpx.Proxy]:
        if self._proxy is None:
            return None
        auth = None
        if self._proxy.has_credentials:
            auth = (self._proxy.user, self._proxy.password or "")
        return httpx.Proxy(self._proxy.url, auth=auth)

    def open(self) -> 'TransportEngine':
        """Create the underlying client; idempotent."""
        if self._client is None:
            headers = {"User-Agent": self._user_agent} if self._user_agent else None
            self._client = self._client_factory(
                http1=True,
                http2=self._context.http2_enabled,
                verify=self._context.ssl_context,
                proxy=self._build_proxy(),
                timeout=self._build_timeout(),
                headers=headers,
                follow_redirects=False,
                trust_env=False,
            )
        return self

    def close(self) -> None:
        """Close the client and every pooled connection. Safe to call multiple times."""
        if self._client is not None:
            try:
                self._client.close()
            finally:
                self._client = None

    def __enter__(self) -> 'TransportEngine':
        return self.open()

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False

    def exchange(self, hop: Hop) -> RawResponse:
        """
        Send one request and read the full response.

        Raises:
            TimeoutError: Connect or read phase deadline exceeded
            ProxyError / DNSError / TLSError / ConnectionError: Network failures
            EncodingError: Stream body could not be (re)sent
        """
        self.open()

        headers = list(hop.headers)
        content = None
        if hop.body is not None:
            content = hop.body.content()

        if self._logger:
            self._logger.debug(
                "Sending request",
                method=hop.method,
                url=hop.url,
                http2=self._context.http2_enabled,
                proxy=self._context.proxy_url,
                framing=hop.body.framing if hop.body is not None else None,
            )

        try:
            request = self._client.build_request(hop.method, hop.url, headers=headers, content=content)
            response = self._client.send(request, stream=True)
            try:
                body = response.read()
            finally:
                response.close()
        except httpx.RequestError as exc:
            raise classify_httpx_exception(
                exc,
                hop.url,
                connect_timeout_ms=self._connection_timeout_ms,
                read_timeout_ms=self._read_timeout_ms,
                proxy=self._context.proxy_url,
            ) from exc

        self._context.negotiated_protocol = response.http_version

        # Plaintext hops are forwarded, so a proxy rejection arrives as a response
        if self._proxy is not None and response.status_code == 407 and response.url.scheme == "http":
            raise ProxyError(
                f"Proxy rejected request: {response.status_code} {response.reason_phrase}",
                hop.url,
                self._context.proxy_url,
            )

        return RawResponse(
            status=response.status_code,
            reason=response.reason_phrase,
            headers=[
                (key.decode("latin-1"), value.decode("latin-1"))
                for key, value in response.headers.raw
            ],
            content=body,
            http_version=response.http_version,
            url=str(response.url),
        )
