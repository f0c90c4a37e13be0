"""
Engine configuration examples.

Demonstrates redirect policy, proxies, custom trust anchors and client
certificates.
"""

import sys

from src.http_request import (
    EngineConfig,
    HTTPRequestEngine,
    RequestSpec,
    TooManyRedirectsError,
    TransportError,
)


def redirect_policy():
    """Keep POST on 301/302 and allow at most two hops."""
    print("\n=== Redirect policy ===")

    config = EngineConfig.create(max_redirects=2, legacy_method_rewrite="preserve")
    with HTTPRequestEngine(config) as engine:
        try:
            engine.request(RequestSpec(url="https://httpbin.org/redirect/5"))
        except TooManyRedirectsError as e:
            print(f"Stopped: {e}")

        record = engine.request(RequestSpec(url="https://httpbin.org/redirect/1"))
        print(f"Final URL: {record.url}")


def through_proxy(host: str, port: int):
    """HTTPS through an HTTP proxy (CONNECT tunnel) with proxy credentials."""
    print("\n=== Proxy ===")

    spec = RequestSpec(
        url="https://httpbin.org/ip",
        proxy={"host": host, "port": port, "user": "proxy-user", "password": "proxy-pass"},
        connection_timeout_ms=3000,
    )
    try:
        print(HTTPRequestEngine().request(spec).body)
    except TransportError as e:
        print(f"Proxy request failed: {e}")


def mutual_tls(ca_file: str, identity_file: str, url: str):
    """Custom CA set plus a client certificate (PEM: key and certificate)."""
    print("\n=== Mutual TLS ===")

    with open(ca_file, "rb") as ca, open(identity_file, "rb") as identity:
        record = HTTPRequestEngine().request(RequestSpec(
            url=url,
            certificates=ca,
            client_certificate=identity,
        ))
    print(f"Status: {record.status}")


if __name__ == "__main__":
    redirect_policy()
    if len(sys.argv) == 3:
        through_proxy(sys.argv[1], int(sys.argv[2]))
    elif len(sys.argv) == 4:
        mutual_tls(*sys.argv[1:])
