"""
Pytest configuration and fixtures for http-request-core tests.
"""

import functools
import ssl
from pathlib import Path

import httpx
import pytest

from src.http_request.core.engine import HTTPRequestEngine
from src.http_request.core.logging.config import LoggingConfig
from src.http_request.core.transport import TransportEngine

FIXTURES_DIR = Path(__file__).parent / "fixtures"


def read_fixture(name: str) -> str:
    return (FIXTURES_DIR / name).read_text(encoding="ascii")


@pytest.fixture
def fixtures_dir():
    return FIXTURES_DIR


@pytest.fixture
def pem_fixture():
    """Reader for PEM files under tests/fixtures."""
    return read_fixture


@pytest.fixture
def ca_pem():
    """Single self-signed CA certificate."""
    return read_fixture("ca.pem")


@pytest.fixture
def ca_bundle_pem():
    """Two CA certificates (RSA and EC)."""
    return read_fixture("ca_bundle.pem")


@pytest.fixture
def client_identity_pem():
    """Client private key followed by its certificate."""
    return read_fixture("client_identity.pem")


@pytest.fixture
def mismatched_identity_pem():
    """Private key that does not belong to the certificate."""
    return read_fixture("mismatched_identity.pem")


@pytest.fixture
def default_ssl_factory():
    """
    Default trust factory that records how often it was used.

    Keeps tests independent of the host CA bundle.
    """
    calls = []

    def factory():
        calls.append(1)
        return ssl.SSLContext(ssl.PROTOCOL_TLS_CLIENT)

    factory.calls = calls
    return factory


@pytest.fixture
def mock_engine(default_ssl_factory):
    """
    Build an HTTPRequestEngine whose connections are served by a handler.

    Example:
        def test_x(mock_engine):
            engine = mock_engine(lambda request: httpx.Response(200, text="ok"))
            record = engine.request(RequestSpec(url="https://api.example.com/"))
    """
    engines = []

    def build(handler, config=None):
        def client_factory(**kwargs):
            return httpx.Client(transport=httpx.MockTransport(handler), **kwargs)

        engine = HTTPRequestEngine(
            config,
            default_ssl_context_factory=default_ssl_factory,
            transport_factory=functools.partial(TransportEngine, client_factory=client_factory),
        )
        engines.append(engine)
        return engine

    yield build

    for engine in engines:
        engine.close()


@pytest.fixture
def logging_config():
    """Console-only DEBUG logging."""
    return LoggingConfig.create(
        level="DEBUG",
        enable_console=True,
        enable_file=False
    )


@pytest.fixture
def logging_config_with_file(tmp_path):
    """
    LoggingConfig fixture with file logging enabled.

    Uses temporary directory for log files to avoid cleanup issues.
    """
    log_file = tmp_path / "test.log"
    return LoggingConfig.create(
        level="DEBUG",
        format="json",
        enable_console=False,
        enable_file=True,
        file_path=str(log_file)
    )
