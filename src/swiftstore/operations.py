"""Resource operations - one class per storage verb.

Each operation carries its own typed arguments, builds a fresh
:class:`~swiftstore.dispatch.Request` for every attempt and turns a
successful :class:`~swiftstore.dispatch.Response` into its result. The
retry controller only ever talks to this interface.
"""

from __future__ import annotations

import json
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any

from .dispatch import Request, Response
from .exceptions import InvalidResponseError
from .transport import DEFAULT_CHUNK_SIZE, ObjectBody
from .types import Contents, Headers, ListingEntry, SearchResult
from .utils import parse_int

CDN_CONTEXT = {"x-context": "cdn"}
SEARCH_CONTEXT = {"x-context": "search"}


def decode_json(response: Response) -> Any:
    """Decode a JSON response body.

    Raises
    ------
    InvalidResponseError
        If a successful response carries something other than JSON.
    """
    try:
        return json.loads(response.body)
    except ValueError as e:
        raise InvalidResponseError(
            f"Invalid JSON in {response.status} response ({response.headers.get('content-type')}): {e}"
        ) from e


def parse_listing(response: Response) -> list[ListingEntry]:
    """Decode a JSON listing; ``204 No Content`` is an empty listing."""
    if response.status == 204 or not response.body:
        return []
    return decode_json(response)


@dataclass
class Operation(ABC):
    """Base class of all resource operations."""

    @abstractmethod
    def request(self) -> Request:
        """Build the request for one attempt."""

    def parse(self, response: Response) -> Any:
        return response.headers

    @property
    def is_stream(self) -> bool:
        """Whether retrying requires rewinding an external stream."""
        return False


# ---------------------------------------------------------------------- #
#  Account                                                                 #
# ---------------------------------------------------------------------- #


@dataclass
class HeadAccount(Operation):
    def request(self) -> Request:
        return Request("HEAD", description="Account HEAD")


@dataclass
class GetAccount(Operation):
    """List the containers of the account (one page)."""

    marker: str | None = None
    limit: int | None = None
    prefix: str | None = None
    delimiter: str | None = None
    cdn_only: bool = False

    def request(self) -> Request:
        query = {
            "format": "json",
            "marker": self.marker,
            "limit": self.limit,
            "prefix": self.prefix,
            "delimiter": self.delimiter,
        }
        headers = dict(CDN_CONTEXT) if self.cdn_only else {}
        return Request("GET", query=query, headers=headers, description="Account GET")

    def parse(self, response: Response) -> tuple[Headers, list[ListingEntry]]:
        return response.headers, parse_listing(response)


@dataclass
class PostAccount(Operation):
    headers: dict[str, str] = field(default_factory=dict)

    def request(self) -> Request:
        return Request("POST", headers=dict(self.headers), description="Account POST")


# ---------------------------------------------------------------------- #
#  Container                                                               #
# ---------------------------------------------------------------------- #


@dataclass
class HeadContainer(Operation):
    container: str
    cdn: bool = False

    def request(self) -> Request:
        headers = dict(CDN_CONTEXT) if self.cdn else {}
        return Request("HEAD", (self.container,), headers=headers, description="Container HEAD")


@dataclass
class GetContainer(Operation):
    """List the objects of a container (one page)."""

    container: str
    marker: str | None = None
    limit: int | None = None
    prefix: str | None = None
    delimiter: str | None = None
    path: str | None = None

    def request(self) -> Request:
        query = {
            "format": "json",
            "marker": self.marker,
            "limit": self.limit,
            "prefix": self.prefix,
            "delimiter": self.delimiter,
            "path": self.path,
        }
        return Request("GET", (self.container,), query=query, description="Container GET")

    def parse(self, response: Response) -> tuple[Headers, list[ListingEntry]]:
        return response.headers, parse_listing(response)


@dataclass
class PutContainer(Operation):
    container: str
    headers: dict[str, str] = field(default_factory=dict)

    def request(self) -> Request:
        return Request("PUT", (self.container,), headers=dict(self.headers), description="Container PUT")


@dataclass
class PostContainer(Operation):
    container: str
    headers: dict[str, str] = field(default_factory=dict)

    def request(self) -> Request:
        return Request("POST", (self.container,), headers=dict(self.headers), description="Container POST")


@dataclass
class DeleteContainer(Operation):
    container: str
    headers: dict[str, str] = field(default_factory=dict)
    recursive: bool = False

    def request(self) -> Request:
        query = {"recursive": "true"} if self.recursive else {}
        return Request(
            "DELETE",
            (self.container,),
            query=query,
            headers=dict(self.headers),
            description="Container DELETE",
        )


# ---------------------------------------------------------------------- #
#  Object                                                                  #
# ---------------------------------------------------------------------- #


@dataclass
class HeadObject(Operation):
    container: str
    name: str

    def request(self) -> Request:
        return Request("HEAD", (self.container, self.name), description="Object HEAD")


@dataclass
class GetObject(Operation):
    """Download an object, buffered or as a lazy chunk iterator.

    With ``resp_chunk_size`` set the result body is an :class:`ObjectBody`
    that must be consumed or closed by the caller.
    """

    container: str
    name: str
    resp_chunk_size: int | None = None
    headers: dict[str, str] = field(default_factory=dict)

    def request(self) -> Request:
        return Request(
            "GET",
            (self.container, self.name),
            headers=dict(self.headers),
            response_chunk_size=self.resp_chunk_size,
            description="Object GET",
        )

    def parse(self, response: Response) -> tuple[Headers, bytes | ObjectBody | None]:
        return response.headers, response.body


@dataclass
class PutObject(Operation):
    """Upload an object from bytes, text or a readable stream."""

    container: str | None
    name: str | None
    contents: Contents = None
    content_length: int | None = None
    etag: str | None = None
    chunk_size: int = DEFAULT_CHUNK_SIZE
    content_type: str | None = None
    headers: dict[str, str] = field(default_factory=dict)

    @property
    def is_stream(self) -> bool:
        return hasattr(self.contents, "read")

    def request(self) -> Request:
        headers = dict(self.headers)
        if self.etag:
            headers["etag"] = self.etag.strip('"')
        if self.content_type is not None:
            headers["content-type"] = self.content_type
        return Request(
            "PUT",
            (self.container, self.name),
            headers=headers,
            body=self.contents,
            content_length=self.content_length,
            chunk_size=self.chunk_size,
            description="Object PUT",
        )

    def parse(self, response: Response) -> str | None:
        etag = response.headers.get("etag")
        return etag.strip('"') if etag else etag


@dataclass
class PostObject(Operation):
    container: str
    name: str
    headers: dict[str, str] = field(default_factory=dict)

    def request(self) -> Request:
        return Request("POST", (self.container, self.name), headers=dict(self.headers), description="Object POST")


@dataclass
class DeleteObject(Operation):
    container: str
    name: str
    headers: dict[str, str] = field(default_factory=dict)
    query: dict[str, str] = field(default_factory=dict)

    def request(self) -> Request:
        return Request(
            "DELETE",
            (self.container, self.name),
            query=dict(self.query),
            headers=dict(self.headers),
            description="Object DELETE",
        )


# ---------------------------------------------------------------------- #
#  Search                                                                  #
# ---------------------------------------------------------------------- #


@dataclass
class Search(Operation):
    """Query the account search endpoint."""

    options: dict[str, Any] = field(default_factory=dict)
    headers: dict[str, str] = field(default_factory=dict)

    def request(self) -> Request:
        query = {k: v for k, v in self.options.items() if k != "format"}
        query["format"] = "json"
        headers = {**self.headers, **SEARCH_CONTEXT}
        return Request("GET", query=query, headers=headers, description="Search")

    def parse(self, response: Response) -> SearchResult:
        result: SearchResult = {
            "count": parse_int(response.headers.get("x-search-items-count")) or 0,
            "total": parse_int(response.headers.get("x-search-items-total")) or 0,
        }
        if response.body:
            result["items"] = decode_json(response)
        else:
            result["items"] = []
        return result
