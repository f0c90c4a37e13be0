"""
Redirect handling.

RedirectHandler is a small state machine (INITIAL -> REDIRECTING -> TERMINAL)
that looks at each response and either produces the next Hop or stops.
"""

from enum import Enum
from typing import List, Optional, Tuple

import httpx

from .body_encoder import EncodedBody
from .config import LegacyRedirectRewrite, RedirectPolicy
from .exceptions import TooManyRedirectsError
from .models import RequestSpec
from .transport import Hop, RawResponse

REDIRECT_CODES = frozenset({301, 302, 303, 307, 308})
LEGACY_CODES = frozenset({301, 302})
PRESERVING_CODES = frozenset({307, 308})

# Headers computed from the entity; user-supplied values are never sent next to ours
ENTITY_HEADERS = frozenset({"content-type", "content-length", "transfer-encoding"})
FRAMING_HEADERS = frozenset({"content-length", "transfer-encoding"})


class RedirectState(str, Enum):
    INITIAL = "initial"
    REDIRECTING = "redirecting"
    TERMINAL = "terminal"


def _origin(url: str) -> Tuple[str, str, Optional[int]]:
    parsed = httpx.URL(url)
    return parsed.scheme, parsed.host, parsed.port


def build_hop(
    spec: RequestSpec,
    url: str,
    method: str,
    body: Optional[EncodedBody],
    send_auth: bool = True,
    entity_dropped: bool = False,
) -> Hop:
    """
    Compose the wire headers for one hop.

    User headers keep their order and casing. Framing headers always come
    from the encoded body; the user's Content-Type is replaced when there is
    an encoded body and dropped when a redirect removed the entity.
    The basic auth header is recomputed for every hop. With send_auth off no
    Authorization header is sent at all, user-supplied ones included.
    """
    skipped = set(FRAMING_HEADERS)
    if body is not None or entity_dropped:
        skipped |= ENTITY_HEADERS
    if not send_auth or spec.auth is not None:
        skipped.add("authorization")

    headers = [(name, value) for name, value in spec.headers if name.lower() not in skipped]
    if body is not None:
        headers.extend(body.headers().items())
    if send_auth and spec.auth is not None:
        headers.append(("Authorization", spec.auth.authorization_header()))

    return Hop(method=method, url=url, headers=headers, body=body)


class RedirectHandler:
    """
    Decide whether to follow a redirect and build the next hop.

    Rules:
        - 303: method becomes GET, body dropped
        - 301/302: per RedirectPolicy.legacy_method_rewrite
        - 307/308: method and body preserved
        - https -> http is never followed unless the policy allows it
        - Missing or non-http(s) Location ends the chain with the 3xx response

    Example:
        >>> handler = RedirectHandler(spec, body, RedirectPolicy(), max_redirects=5)
        >>> hop = handler.first_hop()
        >>> while hop is not None:
        ...     raw = transport.exchange(hop)
        ...     hop = handler.on_response(hop, raw)
    """

    def __init__(
        self,
        spec: RequestSpec,
        body: Optional[EncodedBody],
        policy: Optional[RedirectPolicy] = None,
        max_redirects: int = 5,
    ):
        self._spec = spec
        self._body = body
        self._policy = policy or RedirectPolicy()
        self._max_redirects = max_redirects
        self._origin = _origin(spec.url)
        self._state = RedirectState.INITIAL
        self._redirects = 0
        self._entity_dropped = False
        self.history: List[Tuple[int, str]] = []
        self.stop_reason: Optional[str] = None

    @property
    def state(self) -> RedirectState:
        return self._state

    @property
    def redirect_count(self) -> int:
        return self._redirects

    def first_hop(self) -> Hop:
        return build_hop(self._spec, self._spec.effective_url(), self._spec.method, self._body)

    def _terminate(self, reason: str) -> None:
        self._state = RedirectState.TERMINAL
        self.stop_reason = reason

    def _rewrite(self, status: int, method: str) -> Tuple[str, bool]:
        """Return (next_method, keep_body)."""
        if status == 303:
            return "GET", False
        if status in LEGACY_CODES:
            if self._policy.legacy_method_rewrite == LegacyRedirectRewrite.PRESERVE:
                return method, True
            if method in ("GET", "HEAD"):
                return method, True
            return "GET", False
        return method, True

    def on_response(self, hop: Hop, response: RawResponse) -> Optional[Hop]:
        """
        Inspect a response; return the next Hop or None when the chain ends.

        Raises:
            TooManyRedirectsError: Following would exceed max_redirects
        """
        if self._state == RedirectState.TERMINAL:
            return None

        if response.status not in REDIRECT_CODES:
            self._terminate("not-redirect")
            return None
        if not self._spec.follow_redirects:
            self._terminate("disabled")
            return None

        location = response.header("Location")
        if not location:
            self._terminate("no-location")
            return None

        try:
            target = httpx.URL(hop.url).join(location.strip())
        except httpx.InvalidURL:
            self._terminate("invalid-location")
            return None

        if target.scheme not in ("http", "https") or not target.host:
            self._terminate("invalid-location")
            return None

        current_scheme = httpx.URL(hop.url).scheme
        if current_scheme == "https" and target.scheme == "http" and not self._policy.allow_downgrade:
            self._terminate("downgrade")
            return None

        if self._redirects >= self._max_redirects:
            self._terminate("too-many-redirects")
            raise TooManyRedirectsError(self._max_redirects, str(target))

        method, keep_body = self._rewrite(response.status, hop.method)
        body = hop.body if keep_body else None
        if hop.body is not None and body is None:
            self._entity_dropped = True

        target_url = str(target)
        send_auth = (
            not self._policy.strip_auth_on_cross_origin
            or _origin(target_url) == self._origin
        )

        self._redirects += 1
        self._state = RedirectState.REDIRECTING
        self.history.append((response.status, target_url))

        return build_hop(
            self._spec,
            target_url,
            method,
            body,
            send_auth=send_auth,
            entity_dropped=self._entity_dropped,
        )
