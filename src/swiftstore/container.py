"""Container class - metadata, listing, CDN settings and object access."""

from __future__ import annotations

from collections.abc import Iterator
from typing import TYPE_CHECKING, Any

from .exceptions import (
    AuthenticationError,
    ClientException,
    InvalidResponseError,
    NoSuchContainerError,
    NoSuchObjectError,
)
from .types import ContainerMetadata, ObjectDetail, SearchResult
from .utils import extract_prefixed, meta_headers, parse_int, parse_iso_date, strip_meta_prefix

if TYPE_CHECKING:
    from .storage_object import StorageObject
    from .store import ObjectStore

CONTAINER_META_PREFIX = "x-container-meta-"
DEFAULT_CDN_TTL = 4600


class Container:
    """A container of the account.

    Metadata is loaded eagerly on construction so that a missing container
    raises :class:`NoSuchContainerError` right away, and cached until
    :meth:`refresh`::

        container = store.container("photos")
        container.count
        container.refresh()
    """

    # ------------------------------------------------------------------ #
    #  Construction                                                       #
    # ------------------------------------------------------------------ #

    def __init__(self, store: ObjectStore, name: str) -> None:
        self._store = store
        self.name = name
        self._metadata: ContainerMetadata | None = None
        self._cdn_metadata: dict[str, str] | None = None
        self.container_metadata

    @property
    def store(self) -> ObjectStore:
        """Parent :class:`ObjectStore`."""
        return self._store

    def refresh(self) -> bool:
        """Drop cached metadata; it is reloaded on next access."""
        self._metadata = None
        self._cdn_metadata = None
        return True

    populate = refresh

    # ------------------------------------------------------------------ #
    #  Metadata                                                           #
    # ------------------------------------------------------------------ #

    def _head(self, cdn: bool = False) -> dict[str, str]:
        try:
            headers = self._store.client.head_container(self.name, cdn=cdn)
        except ClientException as e:
            if e.http_status == 404:
                raise NoSuchContainerError(self.name) from e
            raise
        return headers or {}

    @property
    def container_metadata(self) -> ContainerMetadata:
        """Parsed container HEAD (cached)."""
        if self._metadata is None:
            headers = self._head()
            self._metadata = ContainerMetadata(
                bytes=parse_int(headers.get("x-container-bytes-used")) or 0,
                count=parse_int(headers.get("x-container-object-count")) or 0,
                metadata=extract_prefixed(headers, CONTAINER_META_PREFIX),
                container_read=headers.get("x-container-read"),
                container_write=headers.get("x-container-write"),
            )
        return self._metadata

    @property
    def cdn_metadata(self) -> dict[str, str]:
        """``x-cdn-*`` headers of a CDN-context HEAD (cached)."""
        if self._cdn_metadata is None:
            self._cdn_metadata = extract_prefixed(self._head(cdn=True), "x-cdn")
        return self._cdn_metadata

    @property
    def metadata(self) -> dict[str, str]:
        """User metadata with the ``x-container-meta-`` prefix stripped."""
        return strip_meta_prefix(self.container_metadata["metadata"], CONTAINER_META_PREFIX)

    def set_metadata(self, metadata: dict[str, Any]) -> bool:
        """Add or replace user metadata.

        Calls are additive; send an empty value to remove a key.
        """
        self._post(meta_headers("X-Container-Meta-", metadata))
        self.refresh()
        return True

    @property
    def bytes(self) -> int:
        return self.container_metadata["bytes"]

    @property
    def count(self) -> int:
        return self.container_metadata["count"]

    @property
    def empty(self) -> bool:
        return self.count == 0

    @property
    def read_acl(self) -> str | None:
        return self.container_metadata["container_read"]

    @property
    def write_acl(self) -> str | None:
        return self.container_metadata["container_write"]

    # ------------------------------------------------------------------ #
    #  CDN                                                                #
    # ------------------------------------------------------------------ #

    @property
    def cdn_enabled(self) -> bool:
        """Whether the container is public and CDN-enabled."""
        value = self.cdn_metadata.get("x-cdn-enabled", "")
        return value.lower() in ("true", "1", "yes")

    public = cdn_enabled

    @property
    def cdn_ttl(self) -> int | None:
        return parse_int(self.cdn_metadata.get("x-cdn-ttl"))

    @property
    def cdn_urls(self) -> dict[str, str]:
        """CDN URL headers (``x-cdn-uri``, ``x-cdn-ssl-uri``, ...)."""
        return {k: v for k, v in self.cdn_metadata.items() if k.endswith("uri") or k.endswith("url")}

    def _post(self, headers: dict[str, str]) -> None:
        try:
            self._store.client.post_container(self.name, headers)
        except ClientException as e:
            if e.http_status == 404:
                raise NoSuchContainerError(self.name) from e
            raise

    def _ensure_exists(self) -> None:
        try:
            self._store.client.put_container(self.name)
        except AuthenticationError:
            raise
        except ClientException as e:
            raise NoSuchContainerError(self.name) from e

    def make_public(self, ttl: int = DEFAULT_CDN_TTL) -> bool:
        """Publish the container on the CDN with the given TTL (seconds)."""
        self._ensure_exists()
        self._post({"X-Context": "cdn", "X-Container-Read": ".r:*", "X-Cdn-Ttl": str(ttl)})
        self.refresh()
        return True

    def make_private(self) -> bool:
        """Stop publishing the container.

        Already cached copies stay on the CDN until they expire.
        """
        self._post({"X-Context": "cdn", "X-Container-Read": " "})
        self.refresh()
        return True

    def set_ttl(self, ttl: int) -> bool:
        self._ensure_exists()
        self._post({"X-Context": "cdn", "X-Cdn-Ttl": str(ttl)})
        self.refresh()
        return True

    def set_read_acl(self, acl: str) -> bool:
        self._post({"X-Container-Read": acl})
        self.refresh()
        return True

    def set_write_acl(self, acl: str) -> bool:
        self._post({"X-Container-Write": acl})
        self.refresh()
        return True

    def purge_from_cdn(self, email: str | None = None) -> bool:
        """Purge the CDN edge cache for every object of the container.

        Parameters
        ----------
        email : str | None
            Address (or comma separated addresses) notified when done.
        """
        headers = {"X-Context": "cdn", "X-Cdn-Purge": "true"}
        if email:
            headers["X-Purge-Email"] = email
        try:
            self._store.client.post_container(self.name, headers)
        except AuthenticationError:
            raise
        except ClientException as e:
            raise InvalidResponseError(f"Unable to purge container {self.name}: {e}") from e
        return True

    # ------------------------------------------------------------------ #
    #  Listing                                                            #
    # ------------------------------------------------------------------ #

    def _listing(self, **params: Any) -> list[dict[str, Any]]:
        if params.get("marker") is None and params.get("offset") is not None:
            params["marker"] = params["offset"]
        params.pop("offset", None)
        full_listing = params.get("limit") is None
        try:
            rv = self._store.client.get_container(self.name, full_listing=full_listing, **params)
        except AuthenticationError:
            raise
        except ClientException as e:
            if e.http_status == 404:
                raise NoSuchContainerError(self.name) from e
            raise InvalidResponseError(f"Invalid response code {e.http_status}") from e
        return rv[1] if rv else []

    def objects(
        self,
        limit: int | None = None,
        marker: str | None = None,
        prefix: str | None = None,
        delimiter: str | None = None,
        path: str | None = None,
        offset: str | None = None,
    ) -> list[str]:
        """List object names.

        Parameters
        ----------
        limit : int | None
            Maximum number of names; every object when *None*.
        marker, offset : str | None
            Start after this name (``offset`` is an alias).
        prefix : str | None
            Only names starting with this prefix.
        delimiter : str | None
            Roll names up into pseudo-directories on this character.
        path : str | None
            Only objects directly within this pseudo path.

        Returns
        -------
        list[str]
        """
        listing = self._listing(
            limit=limit, marker=marker, prefix=prefix, delimiter=delimiter, path=path, offset=offset
        )
        return [o.get("name") or o.get("subdir", "") for o in listing]

    def objects_detail(self, **params: Any) -> dict[str, ObjectDetail]:
        """Map object names to size, hash, content type and modification time.

        Accepts the same parameters as :meth:`objects`.
        """
        return {
            o["name"]: ObjectDetail(
                bytes=o.get("bytes"),
                hash=o.get("hash"),
                content_type=o.get("content_type"),
                last_modified=parse_iso_date(o.get("last_modified")),
            )
            for o in self._listing(**params)
            if "name" in o
        }

    def iter_objects(self, prefix: str | None = None, page_size: int = 1000) -> Iterator[StorageObject]:
        """Yield a :class:`StorageObject` per object, page by page."""
        from .storage_object import StorageObject

        marker = None
        while True:
            names = self.objects(limit=page_size, marker=marker, prefix=prefix)
            if not names:
                return
            for name in names:
                yield StorageObject(self, name)
            marker = names[-1]

    def search(self, **options: Any) -> SearchResult:
        """Search within this container."""
        return self._store.search(container=self.name, **options)

    # ------------------------------------------------------------------ #
    #  Objects                                                            #
    # ------------------------------------------------------------------ #

    def object_exists(self, name: str) -> bool:
        try:
            self._store.client.head_object(self.name, name)
            return True
        except ClientException as e:
            if e.http_status == 404:
                return False
            raise

    def object(self, name: str) -> StorageObject:
        """Get an existing object.

        Raises
        ------
        NoSuchObjectError
            If the object does not exist.
        """
        from .storage_object import StorageObject

        return StorageObject(self, name, force_exists=True)

    get_object = object

    def create_object(self, name: str, make_path: bool = False) -> StorageObject:
        """Return a (possibly not yet existing) object ready for :meth:`StorageObject.write`.

        With *make_path*, writing it also creates ``application/directory``
        placeholder objects for every parent path.
        """
        from .storage_object import StorageObject

        return StorageObject(self, name, make_path=make_path)

    def delete_object(self, name: str) -> bool:
        """Delete an object.

        Raises
        ------
        NoSuchObjectError
            On ``404 Not Found``.
        """
        try:
            self._store.client.delete_object(self.name, name)
        except ClientException as e:
            if e.http_status == 404:
                raise NoSuchObjectError(name) from e
            raise
        return True

    def object_temp_url(self, name: str, minutes: float, method: str = "GET") -> str:
        """Signed URL granting *method* on an object for *minutes*."""
        from .storage_object import StorageObject

        return StorageObject(self, name).temp_url(minutes, method=method)

    def __repr__(self) -> str:
        return f"Container(name={self.name!r})"

    def __str__(self) -> str:
        return self.name
