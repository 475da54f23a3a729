"""Request dispatching: one HTTP call against the storage URL.

The dispatcher is a single-shot primitive. It builds the request URI,
attaches the token, sends the body (buffered or streamed), and raises a
:class:`~swiftstore.exceptions.ClientException` for any non-2xx status. It
never retries.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from .exceptions import ClientException
from .transport import (
    DEFAULT_CHUNK_SIZE,
    ChunkIterator,
    HTTPConnection,
    LengthChunkIterator,
    ObjectBody,
    read_all,
)
from .types import Contents
from .utils import build_path, encode_query, lower_headers


@dataclass
class Request:
    """Descriptor of one storage request.

    ``segments`` are raw container / object names; the dispatcher quotes
    them and appends them to the storage base path.
    """

    method: str
    segments: tuple[str | None, ...] = ()
    query: dict[str, Any] = field(default_factory=dict)
    headers: dict[str, str] = field(default_factory=dict)
    body: Contents = None
    content_length: int | None = None
    chunk_size: int = DEFAULT_CHUNK_SIZE
    response_chunk_size: int | None = None
    description: str = ""

    @property
    def is_stream(self) -> bool:
        """Whether the body is read from a stream rather than held in memory."""
        return hasattr(self.body, "read")

    def label(self) -> str:
        return self.description or f"{self.method} {build_path(*self.segments) or '/'}"


@dataclass
class Response:
    """Successful outcome of a request.

    ``body`` is the full payload, or an :class:`ObjectBody` chunk iterator
    when the request asked for a streamed response.
    """

    status: int
    reason: str
    headers: dict[str, str]
    body: bytes | ObjectBody | None = None


def prepare_body(request: Request, headers: dict[str, str]) -> Any:
    """Return the payload to hand to requests and fix up length headers.

    Buffered bodies always carry an explicit ``content-length``; streamed
    bodies are read in ``chunk_size`` pieces and use chunked framing unless
    a length is known.
    """
    body = request.body
    content_length = request.content_length
    if content_length is None:
        for k, v in list(headers.items()):
            if k.lower() == "content-length":
                content_length = int(v)

    if body is None:
        headers["content-length"] = "0"
        return None

    if request.is_stream:
        if content_length is None:
            for k in [k for k in headers if k.lower() in ("content-length", "transfer-encoding")]:
                del headers[k]
            return ChunkIterator(body, request.chunk_size)
        # requests derives content-length from the iterator's length
        for k in [k for k in headers if k.lower() == "content-length"]:
            del headers[k]
        return LengthChunkIterator(body, content_length, request.chunk_size)

    if isinstance(body, str):
        body = body.encode("utf-8")
    headers["content-length"] = str(len(body) if content_length is None else content_length)
    return body


def execute(conn: HTTPConnection, token: str | None, request: Request) -> Response:
    """Perform *request* once over *conn*.

    Parameters
    ----------
    conn : HTTPConnection
        Handle bound to the storage URL.
    token : str | None
        Auth token; omitted from the request when ``None``.
    request : Request
        The operation descriptor.

    Returns
    -------
    Response
        Lower-cased headers and the body (``None`` for HEAD requests).

    Raises
    ------
    ClientException
        If the status is outside [200, 300).
    TransportFault
        If the connection fails.
    """
    path = conn.path + build_path(*request.segments)
    if not path:
        path = "/"
    query = encode_query(request.query)
    full_path = f"{path}?{query}" if query else path

    headers = dict(request.headers)
    if token:
        headers["x-auth-token"] = token
    data = prepare_body(request, headers)

    resp = conn.request(request.method, full_path, headers=headers, data=data)
    resp_headers = lower_headers(resp.headers)

    if resp.status_code < 200 or resp.status_code >= 300:
        content = read_all(resp)
        raise ClientException.from_response(
            f"{request.label()} failed",
            scheme=conn.scheme,
            host=conn.host,
            port=conn.port,
            path=path,
            query=query,
            status=resp.status_code,
            reason=resp.reason,
            content=content,
        )

    if request.response_chunk_size and request.method == "GET":
        return Response(resp.status_code, resp.reason, resp_headers, ObjectBody(resp, request.response_chunk_size))

    if request.method == "HEAD":
        resp.close()
        body = None
    else:
        body = read_all(resp)
    return Response(resp.status_code, resp.reason, resp_headers, body)
