"""Utility functions for name escaping, query building, header parsing and temp URLs."""

from __future__ import annotations

import hashlib
import hmac
import time
from collections.abc import Iterable, Mapping
from datetime import datetime
from email.utils import parsedate_to_datetime
from pathlib import Path
from typing import Any
from urllib.parse import quote as _quote
from urllib.parse import unquote, urlencode

# Headers whose values must never reach a log line
SENSITIVE_HEADERS = frozenset({"x-auth-token", "x-auth-key", "x-storage-token"})


def quote(value: Any, safe: str = "/") -> str:
    """Percent-encode a path segment, keeping ``/`` by default.

    Parameters
    ----------
    value : Any
        Value to encode (converted with :func:`str`).
    safe : str, optional
        Characters that are never encoded.

    Returns
    -------
    str
    """
    return _quote(str(value), safe=safe)


def escape(value: Any) -> str:
    """Encode every character outside the RFC 3986 unreserved set."""
    return _quote(str(value), safe="")


def build_path(*segments: str | None) -> str:
    """Join quoted resource segments into a path suffix.

    ``None`` and empty segments are skipped; an empty result means the
    account root.

    Parameters
    ----------
    *segments : str | None
        Raw (unquoted) container / object names.

    Returns
    -------
    str
        Path suffix starting with ``/`` or an empty string.
    """
    parts = [quote(s) for s in segments if s]
    return "".join(f"/{p}" for p in parts)


def encode_query(params: Mapping[str, Any] | None) -> str:
    """Encode query parameters, dropping ``None`` values.

    Parameters
    ----------
    params : Mapping[str, Any] | None
        Parameters in insertion order.

    Returns
    -------
    str
    """
    if not params:
        return ""
    items = [(k, str(v)) for k, v in params.items() if v is not None]
    return urlencode(items, quote_via=_quote)


def lower_headers(headers: Iterable[tuple[str, str]] | Mapping[str, str]) -> dict[str, str]:
    """Return headers as a plain dict with lower-case keys."""
    if isinstance(headers, Mapping):
        headers = headers.items()
    return {k.lower(): v for k, v in headers}


def scrub_headers(headers: Mapping[str, str]) -> dict[str, str]:
    """Replace secret header values for logging."""
    scrubbed = {}
    for key, value in headers.items():
        if key.lower() in SENSITIVE_HEADERS:
            value = f"{value[:8]}..." if len(value) > 16 else "***"
        scrubbed[key] = value
    return scrubbed


def extract_prefixed(headers: Mapping[str, str], prefix: str) -> dict[str, str]:
    """Collect headers starting with *prefix* (case-insensitive).

    Parameters
    ----------
    headers : Mapping[str, str]
        Response headers.
    prefix : str
        Lower-case header prefix, e.g. ``"x-object-meta-"``.

    Returns
    -------
    dict[str, str]
        Matching headers with lower-case keys, prefix kept.
    """
    return {k.lower(): v for k, v in headers.items() if k.lower().startswith(prefix)}


def strip_meta_prefix(meta: Mapping[str, str], prefix: str) -> dict[str, str]:
    """Strip *prefix* from metadata keys and url-decode the values."""
    result = {}
    for key, value in meta.items():
        name = key[len(prefix):] if key.startswith(prefix) else key
        result[unquote(name).replace("+-", " ")] = unquote(value).replace("+-", " ")
    return result


def meta_headers(prefix: str, metadata: Mapping[str, Any]) -> dict[str, str]:
    """Build ``<prefix><Key>`` headers from a metadata mapping.

    Keys are capitalized and escaped the way the service stores them.

    Parameters
    ----------
    prefix : str
        Header prefix, e.g. ``"X-Container-Meta-"``.
    metadata : Mapping[str, Any]
        Metadata to send.

    Returns
    -------
    dict[str, str]
    """
    return {f"{prefix}{escape(str(k).capitalize())}": str(v) for k, v in metadata.items()}


def parse_int(value: str | None) -> int | None:
    """Parse an integer header value, returning ``None`` when absent."""
    if value is None or value == "":
        return None
    try:
        return int(value)
    except ValueError:
        return None


def parse_http_date(value: str | None) -> datetime | None:
    """Parse an RFC 1123 date header such as ``Last-Modified``."""
    if not value:
        return None
    try:
        return parsedate_to_datetime(value)
    except (TypeError, ValueError):
        return None


def parse_iso_date(value: str | None) -> datetime | None:
    """Parse the ISO timestamp used in JSON listings."""
    if not value:
        return None
    try:
        return datetime.fromisoformat(value)
    except ValueError:
        return None


def file_md5(path: Path | str, chunk_size: int = 65536) -> str:
    """Compute the hex MD5 of a local file without loading it whole."""
    digest = hashlib.md5()
    with open(path, "rb") as f:
        while True:
            chunk = f.read(chunk_size)
            if not chunk:
                break
            digest.update(chunk)
    return digest.hexdigest()


def temp_url_signature(key: str, method: str, expires: int, path: str) -> str:
    """Compute the HMAC-SHA1 signature of a temporary URL.

    Parameters
    ----------
    key : str
        Account temp URL key.
    method : str
        HTTP method the URL grants (e.g. ``"GET"``).
    expires : int
        Expiry as a Unix timestamp.
    path : str
        Full storage path of the object, e.g. ``"/v1/AUTH_x/c/o"``.

    Returns
    -------
    str
        Hex digest.
    """
    body = f"{method.upper()}\n{expires}\n{path}"
    return hmac.new(key.encode("utf-8"), body.encode("utf-8"), hashlib.sha1).hexdigest()


def generate_temp_url(
    storage_url: str,
    storage_path: str,
    container: str,
    name: str,
    key: str,
    minutes: float,
    *,
    method: str = "GET",
    now: float | None = None,
) -> str:
    """Build a signed, time-limited URL for an object.

    Parameters
    ----------
    storage_url : str
        Storage URL of the account.
    storage_path : str
        Path component of *storage_url*.
    container : str
        Container name.
    name : str
        Object name.
    key : str
        Account temp URL key.
    minutes : float
        Validity in minutes from *now*.
    method : str, optional
        HTTP method to allow. Defaults to ``"GET"``.
    now : float | None, optional
        Current Unix time; defaults to :func:`time.time`.

    Returns
    -------
    str
    """
    if now is None:
        now = time.time()
    expires = int(now + 60 * minutes)
    path = f"{storage_path.rstrip('/')}/{container}/{name}"
    sig = temp_url_signature(key, method, expires, path)
    return f"{storage_url.rstrip('/')}/{container}/{name}?temp_url_sig={sig}&temp_url_expires={expires}"
