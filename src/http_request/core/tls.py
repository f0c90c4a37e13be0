"""
TLS material loader.

Parses PEM trust anchors and client identities and turns them into an
ssl.SSLContext for the transport. Material is parsed once per call and the
resulting context is reused for every redirect hop of that call.
"""

import base64
import binascii
import os
import re
import ssl
import tempfile
from dataclasses import dataclass
from typing import Any, Callable, List, Optional, Tuple

import certifi

from .exceptions import CertificateParseError

_PEM_BLOCK_RE = re.compile(
    r"-----BEGIN ([A-Z0-9 ]+)-----\s*(.*?)\s*-----END \1-----",
    re.DOTALL,
)

CERTIFICATE_LABEL = "CERTIFICATE"
SUPPORTED_KEY_LABELS = frozenset({"PRIVATE KEY", "RSA PRIVATE KEY", "EC PRIVATE KEY"})

SSLContextFactory = Callable[[], ssl.SSLContext]


@dataclass(frozen=True)
class PemBlock:
    label: str
    der: bytes

    def to_pem(self) -> str:
        body = base64.encodebytes(self.der).decode("ascii").replace("\n", "")
        lines = [body[i:i + 64] for i in range(0, len(body), 64)]
        return f"-----BEGIN {self.label}-----\n" + "\n".join(lines) + f"\n-----END {self.label}-----\n"


@dataclass(frozen=True)
class TrustAnchors:
    """Set of CA certificates (DER) replacing the default trust store."""

    certificates: Tuple[bytes, ...]

    def __len__(self) -> int:
        return len(self.certificates)


@dataclass(frozen=True)
class ClientIdentity:
    """Private key plus certificate chain presented during the TLS handshake."""

    key: PemBlock
    chain: Tuple[PemBlock, ...]

    def to_pem(self) -> str:
        return "".join(block.to_pem() for block in (self.key,) + self.chain)


@dataclass
class TransportContext:
    """
    Per-call transport state.

    Holds the resolved TLS context, proxy and protocol settings. Owned by a
    single request() call and discarded when the call completes.
    """

    ssl_context: ssl.SSLContext
    http2_enabled: bool
    trust_anchor_count: int = 0
    has_client_identity: bool = False
    proxy_url: Optional[str] = None
    negotiated_protocol: Optional[str] = None


def default_ssl_context() -> ssl.SSLContext:
    """Host default trust material: the certifi CA bundle."""
    return ssl.create_default_context(cafile=certifi.where())


def _read_pem_source(source: Any, name: str) -> str:
    if hasattr(source, "read"):
        source = source.read()
    if isinstance(source, (bytes, bytearray, memoryview)):
        try:
            return bytes(source).decode("ascii")
        except UnicodeDecodeError as exc:
            raise CertificateParseError("PEM data is not ASCII text", name) from exc
    if isinstance(source, str):
        return source
    raise CertificateParseError(f"Unsupported PEM source type: {type(source).__name__}", name)


def parse_pem_blocks(source: Any, name: str = "pem") -> List[PemBlock]:
    """
    Split PEM text into labelled DER blocks.

    Raises:
        CertificateParseError: No block found or a block is not valid base64
    """
    text = _read_pem_source(source, name)
    blocks = []
    for match in _PEM_BLOCK_RE.finditer(text):
        label, payload = match.group(1), match.group(2)
        # Encapsulated headers (Proc-Type, DEK-Info) mean an encrypted legacy key
        if ":" in payload:
            raise CertificateParseError(f"Encrypted PEM block '{label}' is not supported", name)
        try:
            der = base64.b64decode("".join(payload.split()), validate=True)
        except (binascii.Error, ValueError) as exc:
            raise CertificateParseError(f"Malformed base64 in PEM block '{label}'", name) from exc
        if not der:
            raise CertificateParseError(f"Empty PEM block '{label}'", name)
        blocks.append(PemBlock(label, der))

    if not blocks:
        raise CertificateParseError("No PEM blocks found", name)
    if text.count("-----BEGIN ") > len(blocks):
        raise CertificateParseError("Unterminated PEM block", name)
    return blocks


def load_trust_anchors(source: Any) -> TrustAnchors:
    """
    Parse a PEM stream of one or more CA certificates.

    Every certificate is checked by loading it into an SSL context.

    Raises:
        CertificateParseError: Malformed PEM, non-certificate block, or a
            certificate OpenSSL rejects
    """
    name = "certificates"
    blocks = parse_pem_blocks(source, name)
    for block in blocks:
        if block.label != CERTIFICATE_LABEL:
            raise CertificateParseError(f"Unexpected PEM block '{block.label}'", name)

    anchors = TrustAnchors(tuple(block.der for block in blocks))
    _load_anchors(ssl.SSLContext(ssl.PROTOCOL_TLS_CLIENT), anchors)
    return anchors


def load_client_identity(source: Any) -> ClientIdentity:
    """
    Parse a PEM stream with a private key and its certificate (either order).

    Extra certificates after the first are sent as the chain.

    Raises:
        CertificateParseError: Missing key or certificate, unsupported key
            type, or a key that does not match the certificate
    """
    name = "client_certificate"
    keys, certs = [], []
    for block in parse_pem_blocks(source, name):
        if block.label == CERTIFICATE_LABEL:
            certs.append(block)
        elif block.label in SUPPORTED_KEY_LABELS:
            keys.append(block)
        else:
            raise CertificateParseError(f"Unsupported PEM block '{block.label}'", name)

    if not keys:
        raise CertificateParseError("Private key is missing", name)
    if len(keys) > 1:
        raise CertificateParseError("More than one private key found", name)
    if not certs:
        raise CertificateParseError("Certificate is missing", name)

    identity = ClientIdentity(key=keys[0], chain=tuple(certs))
    _load_identity(ssl.SSLContext(ssl.PROTOCOL_TLS_CLIENT), identity)
    return identity


def _load_anchors(context: ssl.SSLContext, anchors: TrustAnchors) -> None:
    try:
        context.load_verify_locations(cadata=b"".join(anchors.certificates))
    except ssl.SSLError as exc:
        raise CertificateParseError(f"Invalid CA certificate: {exc}", "certificates") from exc


def _load_identity(context: ssl.SSLContext, identity: ClientIdentity) -> None:
    # load_cert_chain only reads from files; the key file is private and removed right away
    fd, path = tempfile.mkstemp(prefix="http-request-", suffix=".pem")
    try:
        with os.fdopen(fd, "w", encoding="ascii") as handle:
            handle.write(identity.to_pem())
        # key and chain share one file
        context.load_cert_chain(certfile=path)
    except ssl.SSLError as exc:
        reason = getattr(exc, "reason", None) or str(exc)
        if "MISMATCH" in str(reason).upper():
            message = "Private key does not match certificate"
        else:
            message = f"Invalid client certificate or key: {reason}"
        raise CertificateParseError(message, "client_certificate") from exc
    finally:
        try:
            os.unlink(path)
        except OSError:
            pass


def build_ssl_context(
    trust: Optional[TrustAnchors] = None,
    identity: Optional[ClientIdentity] = None,
    default_factory: Optional[SSLContextFactory] = None,
) -> ssl.SSLContext:
    """
    Build the SSL context for one call.

    With custom trust anchors the default CA set is replaced entirely. With
    neither trust nor identity the injectable default factory is used as is.
    """
    factory = default_factory or default_ssl_context

    if trust is None and identity is None:
        return factory()

    if trust is not None:
        # PROTOCOL_TLS_CLIENT verifies hostnames and certificates but loads no CAs
        context = ssl.SSLContext(ssl.PROTOCOL_TLS_CLIENT)
        _load_anchors(context, trust)
    else:
        context = factory()

    if identity is not None:
        _load_identity(context, identity)
    return context


def load_transport_security(
    certificates: Any = None,
    client_certificate: Any = None,
    default_factory: Optional[SSLContextFactory] = None,
) -> Tuple[ssl.SSLContext, int, bool]:
    """
    Parse certificates/client_certificate and build the SSL context.

    Returns:
        (ssl_context, trust_anchor_count, has_client_identity)
    """
    trust = load_trust_anchors(certificates) if certificates is not None else None
    identity = load_client_identity(client_certificate) if client_certificate is not None else None
    context = build_ssl_context(trust, identity, default_factory)
    return context, len(trust) if trust else 0, identity is not None
