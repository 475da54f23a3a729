"""Type definitions for swiftstore."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Callable, Protocol, TypedDict, Union


# Credentials and session state
@dataclass(frozen=True)
class Credentials:
    """Identity used against the auth endpoint.

    Immutable for the life of a client instance.
    """

    auth_url: str
    username: str
    key: str

    def __repr__(self) -> str:
        return f"Credentials(auth_url={self.auth_url!r}, username={self.username!r}, key='***')"


@dataclass(frozen=True)
class Session:
    """A storage URL and the token issued together with it.

    Both fields always come from the same authentication call.
    """

    storage_url: str
    auth_token: str


# Listing entry types
class ContainerEntry(TypedDict, total=False):
    """Entry of an account listing."""

    name: str
    count: int
    bytes: int


class ObjectEntry(TypedDict, total=False):
    """Entry of a container listing.

    Pseudo-directories returned for a ``delimiter`` query only carry
    ``subdir``.
    """

    name: str
    bytes: int
    hash: str
    content_type: str
    last_modified: str
    subdir: str


ListingEntry = Union[ContainerEntry, ObjectEntry]

# Response headers, always with lower-case keys
Headers = dict[str, str]


class AccountInfo(TypedDict):
    """Usage figures of an account."""

    bytes: int
    count: int


class ContainerDetail(TypedDict):
    """Usage figures of a single container."""

    bytes: int
    count: int


class ContainerMetadata(TypedDict):
    """Parsed HEAD response of a container."""

    bytes: int
    count: int
    metadata: dict[str, str]
    container_read: str | None
    container_write: str | None


class ObjectDetail(TypedDict):
    """Details of an object as reported by a container listing."""

    bytes: int | None
    hash: str | None
    content_type: str | None
    last_modified: datetime | None


class ObjectMetadata(TypedDict):
    """Parsed HEAD response of an object."""

    manifest: str | None
    bytes: int | None
    last_modified: datetime | None
    etag: str | None
    content_type: str | None
    metadata: dict[str, str]


class SearchResult(TypedDict, total=False):
    """Result of a search request."""

    count: int
    total: int
    items: list[dict[str, Any]]


# Upload source protocols
class ReadableSource(Protocol):
    """A source that can be read in bounded chunks."""

    def read(self, size: int = -1) -> bytes: ...


class SeekableSource(ReadableSource, Protocol):
    """A readable source whose position can be restored before a retry."""

    def seek(self, offset: int, whence: int = 0) -> int: ...
    def tell(self) -> int: ...


Contents = Union[bytes, str, ReadableSource, None]

# Called with the operation before it is retried
ResetCallback = Callable[[Any], None]
