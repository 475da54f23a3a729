"""Endpoint resolution: turn credentials into a storage URL and auth token."""

from __future__ import annotations

import logging
from typing import NamedTuple
from urllib.parse import urlparse, urlunparse

from .exceptions import AuthenticationError
from .transport import HTTPConnection, read_all
from .utils import lower_headers

logger = logging.getLogger(__name__)

SNET_PREFIX = "snet-"


class AuthResult(NamedTuple):
    """Outcome of one authentication call."""

    storage_url: str
    auth_token: str
    headers: dict[str, str]


def snet_url(url: str) -> str:
    """Rewrite *url* to go over the private network (``snet-<host>``).

    Scheme, port and path are left untouched.
    """
    parsed = list(urlparse(url))
    parsed[1] = SNET_PREFIX + parsed[1]
    return urlunparse(parsed)


def get_auth(
    auth_url: str,
    user: str,
    key: str,
    snet: bool = False,
    *,
    insecure: bool = False,
    timeout: float | None = None,
    proxy: str | None = None,
) -> AuthResult:
    """Authenticate once against a v1.0 auth endpoint.

    The call is never retried here; retry policy belongs to the caller.

    Parameters
    ----------
    auth_url : str
        Auth endpoint, e.g. ``"https://dal05.objectstorage.softlayer.net/auth/v1.0"``.
    user : str
        Account user name (``x-auth-user``).
    key : str
        API key (``x-auth-key``).
    snet : bool
        Route storage traffic over the private network.
    insecure : bool
        Skip TLS verification.
    timeout : float | None
        Socket timeout.
    proxy : str | None
        Proxy URL.

    Returns
    -------
    AuthResult

    Raises
    ------
    AuthenticationError
        If the status is outside [200, 300) or a required header is missing.
    TransportFault
        If the auth endpoint cannot be reached.
    """
    conn = HTTPConnection(auth_url, insecure=insecure, timeout=timeout, proxy=proxy)
    parsed = conn.parsed_url
    path = parsed.path or "/"
    if parsed.query:
        path = f"{path}?{parsed.query}"
    try:
        resp = conn.request("GET", path, headers={"x-auth-user": user, "x-auth-key": key})
        content = read_all(resp)
    finally:
        conn.close()

    headers = lower_headers(resp.headers)
    context = dict(
        scheme=conn.scheme,
        host=conn.host,
        port=conn.port,
        path=parsed.path,
        query=parsed.query,
        status=resp.status_code,
        reason=resp.reason,
        content=content,
    )
    if resp.status_code < 200 or resp.status_code >= 300:
        raise AuthenticationError.from_response("Auth GET failed", **context)

    storage_url = headers.get("x-storage-url")
    token = headers.get("x-auth-token") or headers.get("x-storage-token")
    if not storage_url:
        raise AuthenticationError.from_response("Auth GET returned no x-storage-url", **context)
    if not token:
        raise AuthenticationError.from_response("Auth GET returned no x-auth-token", **context)

    if snet:
        storage_url = snet_url(storage_url)
    logger.debug("Authenticated %s against %s, storage URL %s", user, auth_url, storage_url)
    return AuthResult(storage_url, token, headers)
