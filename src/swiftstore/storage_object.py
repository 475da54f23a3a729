"""StorageObject class - read, write and manage a single object."""

from __future__ import annotations

import logging
import posixpath
from collections.abc import Iterator
from pathlib import Path
from typing import TYPE_CHECKING, Any

from .exceptions import (
    AuthenticationError,
    CDNNotAvailableError,
    ClientException,
    InvalidResponseError,
    MismatchedChecksumError,
    NoSuchObjectError,
)
from .types import Contents, ObjectMetadata
from .utils import (
    extract_prefixed,
    file_md5,
    generate_temp_url,
    meta_headers,
    parse_http_date,
    parse_int,
    strip_meta_prefix,
)

if TYPE_CHECKING:
    from .container import Container

logger = logging.getLogger(__name__)

OBJECT_META_PREFIX = "x-object-meta-"
DIRECTORY_CONTENT_TYPE = "application/directory"


def byte_range(size: int, offset: int) -> str | None:
    """``Range`` header value for *size* bytes from *offset*.

    A non-positive *size* reads to the end; *None* means the whole object.
    """
    if size <= 0:
        return f"bytes={offset}-" if offset > 0 else None
    return f"bytes={offset}-{offset + size - 1}"


class StorageObject:
    """An object inside a :class:`Container`.

    Parameters
    ----------
    container : Container
        Parent container.
    name : str
        Object name (may contain ``/`` for pseudo paths).
    force_exists : bool
        Raise :class:`NoSuchObjectError` right away if the object is missing.
    make_path : bool
        On :meth:`write`, also create ``application/directory`` placeholders
        for each parent path.
    """

    def __init__(
        self,
        container: Container,
        name: str,
        force_exists: bool = False,
        make_path: bool = False,
    ) -> None:
        self.container = container
        self.name = name
        self.make_path = make_path
        self._metadata: ObjectMetadata | None = None
        self._cdn_metadata: dict[str, str] | None = None
        if force_exists and not container.object_exists(name):
            raise NoSuchObjectError(name)

    @property
    def _client(self):
        return self.container.store.client

    def refresh(self) -> bool:
        self._metadata = None
        self._cdn_metadata = None
        return True

    populate = refresh

    # ------------------------------------------------------------------ #
    #  Metadata                                                           #
    # ------------------------------------------------------------------ #

    def _head(self) -> dict[str, str]:
        try:
            return self._client.head_object(self.container.name, self.name) or {}
        except ClientException as e:
            if e.http_status == 404:
                raise NoSuchObjectError(self.name) from e
            raise

    def _post(self, headers: dict[str, str]) -> None:
        try:
            self._client.post_object(self.container.name, self.name, headers)
        except AuthenticationError:
            raise
        except ClientException as e:
            if e.http_status == 404:
                raise NoSuchObjectError(self.name) from e
            raise InvalidResponseError(f"Invalid response code {e.http_status}") from e

    @property
    def object_metadata(self) -> ObjectMetadata:
        """Parsed object HEAD (cached until :meth:`refresh`)."""
        if self._metadata is None:
            headers = self._head()
            self._metadata = ObjectMetadata(
                manifest=headers.get("x-object-manifest"),
                bytes=parse_int(headers.get("content-length")),
                last_modified=parse_http_date(headers.get("last-modified")),
                etag=headers.get("etag"),
                content_type=headers.get("content-type"),
                metadata=extract_prefixed(headers, OBJECT_META_PREFIX),
            )
        return self._metadata

    @property
    def cdn_metadata(self) -> dict[str, str]:
        if self._cdn_metadata is None:
            self._cdn_metadata = extract_prefixed(self._head(), "x-cdn")
        return self._cdn_metadata

    @property
    def metadata(self) -> dict[str, str]:
        """User metadata with the ``x-object-meta-`` prefix stripped."""
        return strip_meta_prefix(self.object_metadata["metadata"], OBJECT_META_PREFIX)

    def set_metadata(self, metadata: dict[str, Any]) -> bool:
        """Replace the object's user metadata."""
        self._post(meta_headers("X-Object-Meta-", metadata))
        self.refresh()
        return True

    @property
    def bytes(self) -> int | None:
        return self.object_metadata["bytes"]

    @property
    def last_modified(self):
        return self.object_metadata["last_modified"]

    @property
    def etag(self) -> str | None:
        return self.object_metadata["etag"]

    @property
    def content_type(self) -> str | None:
        return self.object_metadata["content_type"]

    @content_type.setter
    def content_type(self, value: str) -> None:
        # The service only changes the content type through a server-side copy
        self.copy(headers={"Content-Type": value})
        self.refresh()

    @property
    def manifest(self) -> str | None:
        return self.object_metadata["manifest"]

    def set_manifest(self, manifest: str) -> bool:
        """Turn the object into a large-object manifest for ``<container>/<prefix>``."""
        self._post({"X-Object-Manifest": manifest})
        self.refresh()
        return True

    # ------------------------------------------------------------------ #
    #  Reading                                                            #
    # ------------------------------------------------------------------ #

    def _get(self, size: int, offset: int, headers: dict[str, str] | None, resp_chunk_size: int | None):
        headers = dict(headers or {})
        value = byte_range(size, offset)
        if value:
            headers["Range"] = value
        try:
            rv = self._client.get_object(
                self.container.name, self.name, resp_chunk_size=resp_chunk_size, headers=headers
            )
        except ClientException as e:
            if e.http_status == 404:
                raise NoSuchObjectError(self.name) from e
            raise
        return rv[1] if rv else None

    def data(self, size: int = -1, offset: int = 0, headers: dict[str, str] | None = None) -> bytes:
        """Return the object's content (or *size* bytes from *offset*)."""
        return self._get(size, offset, headers, None) or b""

    read = data

    def data_stream(
        self,
        size: int = -1,
        offset: int = 0,
        headers: dict[str, str] | None = None,
        chunk_size: int | None = None,
    ) -> Iterator[bytes]:
        """Yield the content lazily in chunks; nothing is buffered whole."""
        body = self._get(size, offset, headers, chunk_size or self._client.chunk_size)
        if body is None:
            return
        with body:
            yield from body

    def save_to_filename(self, path: Path | str) -> bool:
        """Stream the content into a local file."""
        with open(path, "wb") as f:
            for chunk in self.data_stream():
                f.write(chunk)
        return True

    # ------------------------------------------------------------------ #
    #  Writing                                                            #
    # ------------------------------------------------------------------ #

    def write(self, data: Contents = None, headers: dict[str, str] | None = None) -> bool:
        """Upload *data* as the object's content.

        Parameters
        ----------
        data : bytes | str | ReadableSource | None
            Content; readable sources are streamed.
        headers : dict[str, str] | None
            Extra headers (``Etag``, ``Content-Type``, metadata...).

        Raises
        ------
        InvalidResponseError
            On ``412`` (bad content length) or any other failure status.
        MismatchedChecksumError
            On ``422`` (the sent ETag does not match the content).
        """
        try:
            self._client.put_object(self.container.name, self.name, data, headers=dict(headers or {}))
        except AuthenticationError:
            raise
        except ClientException as e:
            if e.http_status == 412:
                raise InvalidResponseError("Invalid content-length header sent") from e
            if e.http_status == 422:
                raise MismatchedChecksumError("Mismatched etag") from e
            raise InvalidResponseError(f"Invalid response code {e.http_status}") from e
        if self.make_path:
            self._make_path(posixpath.dirname(self.name))
        self.refresh()
        return True

    def _make_path(self, path: str) -> None:
        parts = [p for p in path.split("/") if p]
        current = ""
        for part in parts:
            current = f"{current}/{part}" if current else part
            if not self.container.object_exists(current):
                logger.debug("Creating directory placeholder %s/%s", self.container.name, current)
                self._client.put_object(self.container.name, current, b"", content_type=DIRECTORY_CONTENT_TYPE)

    def load_from_filename(
        self,
        path: Path | str,
        headers: dict[str, str] | None = None,
        check_md5: bool = False,
    ) -> bool:
        """Upload a local file, optionally asking the server to verify its MD5."""
        headers = dict(headers or {})
        if check_md5:
            headers["Etag"] = file_md5(path)
        with open(path, "rb") as f:
            return self.write(f, headers)

    # ------------------------------------------------------------------ #
    #  Copy / move                                                        #
    # ------------------------------------------------------------------ #

    def copy(
        self,
        name: str | None = None,
        container: str | None = None,
        headers: dict[str, str] | None = None,
    ) -> StorageObject:
        """Server-side copy of this object.

        Parameters
        ----------
        name : str | None
            Target name, defaults to this object's name.
        container : str | None
            Target container name, defaults to this object's container.
        headers : dict[str, str] | None
            Headers overriding the copied ones (e.g. ``Content-Type``).

        Returns
        -------
        StorageObject
            The new object.

        Raises
        ------
        ValueError
            If none of *name*, *container* and *headers* is given.
        """
        if name is None and container is None and headers is None:
            raise ValueError("Provide a name, container or headers to copy")
        target_container = container or self.container.name
        target_name = (name or self.name).lstrip("/")
        copy_headers = {"X-Copy-From": f"{self.container.name}/{self.name}"}
        if self.content_type:
            copy_headers["Content-Type"] = self.content_type.split(";", 1)[0]
        copy_headers.update(headers or {})
        try:
            self._client.put_object(target_container, target_name, None, headers=copy_headers)
        except AuthenticationError:
            raise
        except ClientException as e:
            if e.http_status == 404:
                raise NoSuchObjectError(self.name) from e
            raise InvalidResponseError(f"Invalid response code {e.http_status}") from e
        store = self.container.store
        target = self.container if target_container == self.container.name else store.container(target_container)
        return StorageObject(target, target_name)

    def move(
        self,
        name: str | None = None,
        container: str | None = None,
        headers: dict[str, str] | None = None,
    ) -> StorageObject:
        """Copy this object and delete the original.

        Raises
        ------
        ValueError
            If the target is this same object.
        """
        if (name or self.name) == self.name and (container or self.container.name) == self.container.name:
            raise ValueError("Cannot move an object onto itself")
        new_object = self.copy(name=name, container=container, headers=headers)
        self.container.delete_object(self.name)
        return new_object

    # ------------------------------------------------------------------ #
    #  CDN and temp URLs                                                  #
    # ------------------------------------------------------------------ #

    def set_ttl(self, ttl: int) -> bool:
        self._post({"X-Cdn-Ttl": str(ttl)})
        return True

    def purge(self) -> bool:
        """Purge this object from the CDN edge cache."""
        self._post({"X-Context": "cdn", "X-Cdn-Purge": "true"})
        return True

    def purge_from_cdn(self, email: str | None = None) -> bool:
        """Like :meth:`purge`, notifying *email* when the purge completes.

        Raises
        ------
        CDNNotAvailableError
            If the container is not CDN-enabled.
        """
        if not self.container.cdn_enabled:
            raise CDNNotAvailableError(f"Container {self.container.name} is not CDN-enabled")
        headers = {"X-Context": "cdn", "X-Cdn-Purge": "true"}
        if email:
            headers["X-Purge-Email"] = email
        self._post(headers)
        return True

    @property
    def cdn_urls(self) -> dict[str, str]:
        """CDN URLs of this object, derived from the container's."""
        return {k: f"{v.rstrip('/')}/{self.name}" for k, v in self.container.cdn_urls.items()}

    def temp_url(self, minutes: float, method: str = "GET") -> str:
        """Signed URL granting *method* on this object for *minutes*."""
        store = self.container.store
        key = store.temp_url_key
        if not key:
            raise InvalidResponseError("No temp URL key configured for the account")
        return generate_temp_url(
            store.storage_url, store.storage_path, self.container.name, self.name, key, minutes, method=method
        )

    def __repr__(self) -> str:
        return f"StorageObject(container={self.container.name!r}, name={self.name!r})"

    def __str__(self) -> str:
        return self.name
