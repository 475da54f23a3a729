"""HTTP transport: the connection handle and streaming body adapters.

An :class:`HTTPConnection` is bound to the scheme, host, port and TLS mode of
one URL and wraps a :class:`requests.Session`, so keep-alive connections are
reused between calls until the handle is closed.
"""

from __future__ import annotations

import logging
from collections.abc import Iterator
from typing import Any
from urllib.parse import urlparse

import requests

from .exceptions import SwiftStoreError, TransportFault
from .types import ReadableSource
from .utils import scrub_headers

logger = logging.getLogger(__name__)

DEFAULT_CHUNK_SIZE = 65536

# Failures of the connection itself, as opposed to bad requests
TRANSPORT_ERRORS = (
    requests.exceptions.ConnectionError,
    requests.exceptions.Timeout,
    requests.exceptions.ChunkedEncodingError,
)


class ChunkIterator:
    """Iterate over a readable source in bounded reads.

    Without a known length requests sends the body with chunked transfer
    framing. Peak memory is one chunk regardless of the source size.
    """

    def __init__(self, source: ReadableSource, chunk_size: int = DEFAULT_CHUNK_SIZE) -> None:
        self._source = source
        self.chunk_size = chunk_size

    def __iter__(self) -> Iterator[bytes]:
        while True:
            chunk = self._source.read(self.chunk_size)
            if not chunk:
                return
            if isinstance(chunk, str):
                chunk = chunk.encode("utf-8")
            yield chunk


class LengthChunkIterator(ChunkIterator):
    """A :class:`ChunkIterator` that stops after *length* bytes.

    Exposing ``__len__`` lets requests send a ``Content-Length`` header
    instead of chunked framing.
    """

    def __init__(self, source: ReadableSource, length: int, chunk_size: int = DEFAULT_CHUNK_SIZE) -> None:
        super().__init__(source, chunk_size)
        self.length = length

    def __len__(self) -> int:
        return self.length

    def __iter__(self) -> Iterator[bytes]:
        remaining = self.length
        while remaining > 0:
            chunk = self._source.read(min(self.chunk_size, remaining))
            if not chunk:
                return
            if isinstance(chunk, str):
                chunk = chunk.encode("utf-8")
            remaining -= len(chunk)
            yield chunk


class ObjectBody:
    """Lazy, single-pass sequence of byte chunks of a downloaded object.

    The underlying response is released once the body is exhausted or
    :meth:`close` is called.
    """

    def __init__(self, response: requests.Response, chunk_size: int) -> None:
        self._response = response
        self.chunk_size = chunk_size
        self._iter: Iterator[bytes] | None = None

    def __iter__(self) -> Iterator[bytes]:
        return self

    def __next__(self) -> bytes:
        if self._iter is None:
            self._iter = self._response.iter_content(self.chunk_size)
        try:
            return next(self._iter)
        except StopIteration:
            self.close()
            raise
        except TRANSPORT_ERRORS as e:
            self.close()
            raise TransportFault(f"Object body read failed: {e}", url=self._response.url) from e

    def read(self, length: int | None = None) -> bytes:
        """Return the next chunk, or everything that is left when *length* is None."""
        if length is None:
            return b"".join(self)
        try:
            return next(self)
        except StopIteration:
            return b""

    def close(self) -> None:
        self._response.close()

    def __enter__(self) -> ObjectBody:
        return self

    def __exit__(self, *exc: Any) -> None:
        self.close()


class HTTPConnection:
    """Connection handle bound to one storage (or auth) URL.

    Parameters
    ----------
    url : str
        URL whose scheme, host and port the handle is bound to.
    insecure : bool
        Skip TLS certificate verification.
    timeout : float | None
        Socket timeout passed to requests.
    proxy : str | None
        Proxy URL such as ``"http://127.0.0.1:8888"``.
    """

    def __init__(
        self,
        url: str,
        *,
        insecure: bool = False,
        timeout: float | None = None,
        proxy: str | None = None,
    ) -> None:
        self.url = url
        self.parsed_url = urlparse(url)
        if self.parsed_url.scheme not in ("http", "https"):
            raise SwiftStoreError(f"Cannot handle protocol scheme {self.parsed_url.scheme} for {url}")
        self.scheme = self.parsed_url.scheme
        self.host = self.parsed_url.hostname or ""
        self.port = self.parsed_url.port or (443 if self.scheme == "https" else 80)
        self.verify = not insecure
        self.requests_args: dict[str, Any] = {"verify": self.verify, "stream": True}
        if timeout:
            self.requests_args["timeout"] = timeout
        if proxy:
            proxy_parsed = urlparse(proxy)
            if not proxy_parsed.scheme:
                raise SwiftStoreError("Proxy's missing scheme")
            self.requests_args["proxies"] = {
                self.scheme: f"{proxy_parsed.scheme}://{proxy_parsed.netloc}",
            }
        self.request_session = requests.Session()

    @property
    def path(self) -> str:
        """Base path of the bound URL, without a trailing slash."""
        return self.parsed_url.path.rstrip("/")

    def request(
        self,
        method: str,
        full_path: str,
        *,
        headers: dict[str, str] | None = None,
        data: Any = None,
    ) -> requests.Response:
        """Send one request to ``full_path`` on the bound host.

        Raises
        ------
        TransportFault
            If the connection fails before a response arrives.
        """
        url = f"{self.scheme}://{self.parsed_url.netloc}{full_path}"
        headers = headers or {}
        logger.debug("REQ: curl -i %s -X %s %s", url, method, " ".join(
            f'-H "{k}: {v}"' for k, v in scrub_headers(headers).items()
        ))
        try:
            resp = self.request_session.request(method, url, headers=headers, data=data, **self.requests_args)
        except TRANSPORT_ERRORS as e:
            raise TransportFault(f"{method} {url} failed: {e}", url=url) from e
        logger.debug("RESP STATUS: %s %s", resp.status_code, resp.reason)
        return resp

    def close(self) -> None:
        self.request_session.close()

    def __repr__(self) -> str:
        return f"HTTPConnection({self.scheme}://{self.host}:{self.port}, verify={self.verify})"


def read_all(resp: requests.Response) -> bytes:
    """Read a whole response body and release the connection."""
    try:
        return resp.content
    except TRANSPORT_ERRORS as e:
        raise TransportFault(f"Response read failed: {e}", url=resp.url) from e
    finally:
        resp.close()
