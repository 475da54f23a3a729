"""Main ObjectStore class - account-level access to containers."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any
from urllib.parse import urlparse

from .client import Client
from .exceptions import (
    AuthenticationError,
    ClientException,
    InvalidNameError,
    InvalidResponseError,
    NoSuchContainerError,
    NonEmptyContainerError,
)
from .settings import SwiftSettings
from .types import AccountInfo, ContainerDetail, SearchResult

if TYPE_CHECKING:
    from .container import Container

MAX_CONTAINER_NAME_LENGTH = 256


class ObjectStore:
    """Account-level entry point of the object storage.

    All higher-level concepts (:class:`Container`, :class:`StorageObject`)
    keep a reference back to the store so that the client and its session
    are never passed around redundantly.
    """

    def __init__(
        self,
        client_or_settings: Client | SwiftSettings,
        *,
        temp_url_key: str | None = None,
    ) -> None:
        """Initialize the store.

        Parameters
        ----------
        client_or_settings : Client | SwiftSettings
            A :class:`Client` or :class:`SwiftSettings` (which creates one).
        temp_url_key : str | None
            Key for signing temp URLs. Inferred from *SwiftSettings* or the
            account metadata when *None*.
        """
        if isinstance(client_or_settings, SwiftSettings):
            client = client_or_settings.create_client()
            if temp_url_key is None:
                temp_url_key = client_or_settings.temp_url_key
        elif not isinstance(client_or_settings, Client):
            raise ValueError("client must be a Client or SwiftSettings instance")
        else:
            client = client_or_settings

        self.client: Client = client
        self._temp_url_key = temp_url_key

    # ------------------------------------------------------------------ #
    #  Session                                                            #
    # ------------------------------------------------------------------ #

    @property
    def storage_url(self) -> str:
        """Storage URL of the account (authenticates on first use)."""
        return self.client.storage_url()

    @property
    def storage_path(self) -> str:
        """Path component of :attr:`storage_url`."""
        return urlparse(self.storage_url).path

    @property
    def temp_url_key(self) -> str | None:
        """Key used to sign temporary URLs.

        Read once from the ``x-account-meta-temp-url-key`` account header
        when not configured.
        """
        if self._temp_url_key is None:
            headers = self.client.head_account()
            self._temp_url_key = (headers or {}).get("x-account-meta-temp-url-key")
        return self._temp_url_key

    # ------------------------------------------------------------------ #
    #  Account information                                                #
    # ------------------------------------------------------------------ #

    def get_info(self) -> AccountInfo:
        """Return the account's byte usage and container count.

        Raises
        ------
        InvalidResponseError
            If the account HEAD fails.
        """
        try:
            headers = self.client.head_account()
        except AuthenticationError:
            raise
        except ClientException as e:
            raise InvalidResponseError(f"Unable to obtain account size: {e}") from e
        headers = headers or {}
        return AccountInfo(
            bytes=int(headers.get("x-account-bytes-used", 0)),
            count=int(headers.get("x-account-container-count", 0)),
        )

    @property
    def bytes(self) -> int:
        return self.get_info()["bytes"]

    @property
    def count(self) -> int:
        return self.get_info()["count"]

    # ------------------------------------------------------------------ #
    #  Containers                                                         #
    # ------------------------------------------------------------------ #

    def _listing(self, **kwargs: Any) -> list[dict[str, Any]]:
        try:
            rv = self.client.get_account(**kwargs)
        except AuthenticationError:
            raise
        except ClientException as e:
            raise InvalidResponseError(f"Invalid response code {e.http_status}") from e
        return rv[1] if rv else []

    def containers(self, limit: int | None = None, marker: str | None = None) -> list[str]:
        """List container names.

        Parameters
        ----------
        limit : int | None
            Maximum number of names.  All containers when *None*.
        marker : str | None
            Start after this name.

        Returns
        -------
        list[str]
        """
        listing = self._listing(limit=limit, marker=marker, full_listing=limit is None)
        return [c["name"] for c in listing]

    def containers_detail(self, limit: int | None = None, marker: str | None = None) -> dict[str, ContainerDetail]:
        """Map container names to their byte usage and object count."""
        listing = self._listing(limit=limit, marker=marker, full_listing=limit is None)
        return {c["name"]: ContainerDetail(bytes=c.get("bytes", 0), count=c.get("count", 0)) for c in listing}

    def public_containers(self) -> list[str]:
        """List the names of CDN-enabled containers."""
        return [c["name"] for c in self._listing(cdn_only=True, full_listing=True)]

    def container_exists(self, name: str) -> bool:
        try:
            self.client.head_container(name)
            return True
        except ClientException as e:
            if e.http_status == 404:
                return False
            raise

    def container(self, name: str) -> Container:
        """Get an existing :class:`Container`.

        Raises
        ------
        NoSuchContainerError
            If the container does not exist.
        """
        from .container import Container

        return Container(self, name)

    def create_container(self, name: str) -> Container:
        """Create a container (idempotent) and return it.

        Raises
        ------
        InvalidNameError
            If *name* contains ``/`` or exceeds 256 characters.
        """
        if "/" in name:
            raise InvalidNameError("Container name cannot contain '/'")
        if len(name) > MAX_CONTAINER_NAME_LENGTH:
            raise InvalidNameError(f"Container name is limited to {MAX_CONTAINER_NAME_LENGTH} characters")
        self.client.put_container(name)
        return self.container(name)

    def delete_container(self, name: str, recursive: bool = False) -> bool:
        """Delete a container.

        Parameters
        ----------
        name : str
            Container name.
        recursive : bool
            Delete the objects it holds as well.

        Raises
        ------
        NonEmptyContainerError
            On ``409 Conflict``.
        NoSuchContainerError
            On ``404 Not Found``.
        """
        try:
            self.client.delete_container(name, recursive=recursive)
        except ClientException as e:
            if e.http_status == 409:
                raise NonEmptyContainerError(name) from e
            if e.http_status == 404:
                raise NoSuchContainerError(name) from e
            raise
        return True

    # ------------------------------------------------------------------ #
    #  Search                                                             #
    # ------------------------------------------------------------------ #

    def search(self, **options: Any) -> SearchResult:
        """Search the account.

        Parameters
        ----------
        **options : Any
            Query parameters such as ``q``, ``container``, ``type``,
            ``limit``.

        Returns
        -------
        SearchResult
            ``count``, ``total`` and ``items``.
        """
        return self.client.search(**options)

    def __repr__(self) -> str:
        return f"ObjectStore(user={self.client.credentials.username!r})"
