"""
TLS trust anchors and client certificates against a local HTTPS server.
"""

import ssl
import threading
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer

import pytest

from src.http_request.core.engine import HTTPRequestEngine, request
from src.http_request.core.exceptions import TLSError, TransportError
from src.http_request.core.models import RequestSpec

pytestmark = pytest.mark.integration


class PeerHandler(BaseHTTPRequestHandler):
    """Replies with the common name of the client certificate, if any."""

    protocol_version = "HTTP/1.1"

    def log_message(self, format, *args):
        pass

    def do_GET(self):
        peer = self.connection.getpeercert() or {}
        subject = dict(item[0] for item in peer.get("subject", ()))
        body = subject.get("commonName", "anonymous").encode("ascii")
        self.send_response(200)
        self.send_header("Content-Type", "text/plain")
        self.send_header("Content-Length", str(len(body)))
        self.end_headers()
        self.wfile.write(body)


def start_tls_server(fixtures_dir, require_client_cert):
    context = ssl.SSLContext(ssl.PROTOCOL_TLS_SERVER)
    context.load_cert_chain(str(fixtures_dir / "server.crt"), str(fixtures_dir / "server.key"))
    context.load_verify_locations(str(fixtures_dir / "ca.pem"))
    context.verify_mode = ssl.CERT_REQUIRED if require_client_cert else ssl.CERT_OPTIONAL

    server = ThreadingHTTPServer(("127.0.0.1", 0), PeerHandler)
    server.socket = context.wrap_socket(server.socket, server_side=True)
    thread = threading.Thread(target=server.serve_forever, daemon=True)
    thread.start()
    return server


@pytest.fixture
def tls_server(fixtures_dir):
    server = start_tls_server(fixtures_dir, require_client_cert=False)
    yield f"https://127.0.0.1:{server.server_address[1]}"
    server.shutdown()
    server.server_close()


@pytest.fixture
def mtls_server(fixtures_dir):
    server = start_tls_server(fixtures_dir, require_client_cert=True)
    yield f"https://127.0.0.1:{server.server_address[1]}"
    server.shutdown()
    server.server_close()


class TestTrustAnchors:
    """Server verification with custom CA material."""

    def test_custom_ca(self, tls_server, ca_pem):
        record = request(RequestSpec(url=f"{tls_server}/", certificates=ca_pem, connection_timeout_ms=5000))
        assert record.status == 200
        assert record.body == "anonymous"
        assert record.http_version == "HTTP/1.1"

    def test_ca_bundle(self, tls_server, ca_bundle_pem):
        assert request(RequestSpec(url=f"{tls_server}/", certificates=ca_bundle_pem)).status == 200

    def test_default_trust_rejects_private_ca(self, tls_server):
        with pytest.raises(TLSError):
            request(RequestSpec(url=f"{tls_server}/", connection_timeout_ms=5000))

    def test_wrong_ca_rejected(self, tls_server, pem_fixture):
        with pytest.raises(TLSError):
            request(RequestSpec(url=f"{tls_server}/", certificates=pem_fixture("second_ca.pem")))

    def test_injected_default_context(self, tls_server, ca_pem):
        def factory():
            context = ssl.SSLContext(ssl.PROTOCOL_TLS_CLIENT)
            context.load_verify_locations(cadata=ca_pem)
            return context

        with HTTPRequestEngine(default_ssl_context_factory=factory) as engine:
            assert engine.request(RequestSpec(url=f"{tls_server}/")).status == 200


class TestClientCertificate:
    """Mutual TLS."""

    def test_client_identity_presented(self, mtls_server, ca_pem, client_identity_pem):
        record = request(RequestSpec(
            url=f"{mtls_server}/",
            certificates=ca_pem,
            client_certificate=client_identity_pem,
        ))
        assert record.status == 200
        assert record.body == "test-client"

    def test_missing_client_identity_rejected(self, mtls_server, ca_pem):
        with pytest.raises(TransportError):
            request(RequestSpec(url=f"{mtls_server}/", certificates=ca_pem, read_timeout_ms=5000))
