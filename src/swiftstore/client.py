"""Client - verb methods over a :class:`~swiftstore.retry.RetryController`."""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterator
from typing import Any

from .exceptions import UnsafeRetryError
from .operations import (
    DeleteContainer,
    DeleteObject,
    GetAccount,
    GetContainer,
    GetObject,
    HeadAccount,
    HeadContainer,
    HeadObject,
    Operation,
    PostAccount,
    PostContainer,
    PostObject,
    PutContainer,
    PutObject,
    Search,
)
from .retry import RetryController
from .transport import DEFAULT_CHUNK_SIZE, ObjectBody
from .types import Contents, Credentials, Headers, ListingEntry, ResetCallback, SearchResult

logger = logging.getLogger(__name__)

Listing = tuple[Headers, list[ListingEntry]]


def next_marker(entry: ListingEntry) -> str:
    """Marker that continues a listing after *entry*."""
    return entry.get("name") or entry.get("subdir", "")  # type: ignore[return-value]


def upload_reset(operation: PutObject) -> ResetCallback | None:
    """Choose how to rewind the contents of *operation* before a retry.

    Seekable streams go back to the position they had when the upload
    started; buffered or absent bodies need nothing. Any other stream
    cannot be resent safely.
    """
    contents = operation.contents
    if contents is None or not hasattr(contents, "read"):
        return lambda op: None
    if hasattr(contents, "seek") and hasattr(contents, "tell"):
        try:
            orig_pos = contents.tell()
        except OSError:
            orig_pos = None
        if orig_pos is not None:
            return lambda op: contents.seek(orig_pos)

    def _no_reset(op: Operation) -> None:
        raise UnsafeRetryError(
            f"put_object({operation.container!r}, {operation.name!r}, ...) failed "
            "and the contents cannot be reset for re-upload"
        )

    return _no_reset


class Client:
    """Swift client that retries every call through a single controller.

    Parameters
    ----------
    authurl : str | None
        Auth endpoint. May be omitted when ``preauthurl`` and
        ``preauthtoken`` are given.
    user : str
        Account user name.
    key : str
        API key.
    retries : int
        Maximum attempts per call.
    starting_backoff : float
        Initial backoff in seconds.
    **kwargs : Any
        Forwarded to :class:`RetryController` (``snet``, ``insecure``,
        ``timeout``, ``proxy``, ``suppress_server_errors``, ``sleep``,
        ``preauth_url``, ``preauth_token``).

    Examples
    --------
    >>> client = Client("https://dal05.objectstorage.softlayer.net/auth/v1.0", "user", "key")
    >>> headers, listing = client.get_container("photos", full_listing=True)
    """

    def __init__(
        self,
        authurl: str | None = None,
        user: str = "",
        key: str = "",
        retries: int = 5,
        starting_backoff: float = 1.0,
        *,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
        **kwargs: Any,
    ) -> None:
        self.credentials = Credentials(authurl or "", user, key)
        self.chunk_size = chunk_size
        self.controller = RetryController(
            self.credentials,
            retries=retries,
            starting_backoff=starting_backoff,
            **kwargs,
        )

    # ------------------------------------------------------------------ #
    #  Plumbing                                                           #
    # ------------------------------------------------------------------ #

    @property
    def url(self) -> str | None:
        """Storage URL of the current session."""
        return self.controller.url

    @property
    def token(self) -> str | None:
        return self.controller.token

    @property
    def attempts(self) -> int:
        """Dispatch attempts made by the last call."""
        return self.controller.attempts

    def get_auth(self) -> tuple[str, str]:
        """Authenticate now and return ``(storage_url, token)``."""
        session = self.controller.authenticate()
        return session.storage_url, session.auth_token

    def storage_url(self) -> str:
        """Return the storage URL, authenticating first when needed."""
        if self.controller.session is None:
            self.controller.authenticate()
        return self.controller.url  # type: ignore[return-value]

    def close(self) -> None:
        self.controller.close()

    def _retry(self, operation: Operation, reset: ResetCallback | None = None) -> Any:
        return self.controller.call_with_retry(operation, reset)

    def _full_listing(self, make_operation: Callable[[str | None], Operation], marker: str | None) -> Listing | None:
        rv = self._retry(make_operation(marker))
        if rv is None:
            return None
        headers, listing = rv
        page = listing
        while page:
            marker = next_marker(page[-1])
            rv = self._retry(make_operation(marker))
            if rv is None:
                return None
            page = rv[1]
            listing.extend(page)
        logger.debug("Full listing collected %d entries", len(listing))
        return headers, listing

    # ------------------------------------------------------------------ #
    #  Account                                                            #
    # ------------------------------------------------------------------ #

    def head_account(self) -> Headers:
        return self._retry(HeadAccount())

    def get_account(
        self,
        marker: str | None = None,
        limit: int | None = None,
        prefix: str | None = None,
        delimiter: str | None = None,
        full_listing: bool = False,
        cdn_only: bool = False,
    ) -> Listing | None:
        """List containers.

        Parameters
        ----------
        marker, limit, prefix, delimiter
            Listing query parameters.
        full_listing : bool
            Follow markers until an empty page and return every entry.
        cdn_only : bool
            List in the CDN context (only CDN-enabled containers).

        Returns
        -------
        tuple[Headers, list[ListingEntry]] | None
        """
        def make(m: str | None) -> GetAccount:
            return GetAccount(marker=m, limit=limit, prefix=prefix, delimiter=delimiter, cdn_only=cdn_only)

        if full_listing:
            return self._full_listing(make, marker)
        return self._retry(make(marker))

    def post_account(self, headers: dict[str, str]) -> Headers:
        return self._retry(PostAccount(headers=headers))

    def search(self, headers: dict[str, str] | None = None, **options: Any) -> SearchResult:
        """Search the account; *options* become query parameters."""
        return self._retry(Search(options=options, headers=headers or {}))

    # ------------------------------------------------------------------ #
    #  Container                                                          #
    # ------------------------------------------------------------------ #

    def head_container(self, container: str, cdn: bool = False) -> Headers:
        return self._retry(HeadContainer(container, cdn=cdn))

    def get_container(
        self,
        container: str,
        marker: str | None = None,
        limit: int | None = None,
        prefix: str | None = None,
        delimiter: str | None = None,
        path: str | None = None,
        full_listing: bool = False,
    ) -> Listing | None:
        """List the objects of *container*; see :meth:`get_account`."""
        def make(m: str | None) -> GetContainer:
            return GetContainer(container, marker=m, limit=limit, prefix=prefix, delimiter=delimiter, path=path)

        if full_listing:
            return self._full_listing(make, marker)
        return self._retry(make(marker))

    def put_container(self, container: str, headers: dict[str, str] | None = None) -> Headers:
        return self._retry(PutContainer(container, headers=headers or {}))

    def post_container(self, container: str, headers: dict[str, str]) -> Headers:
        return self._retry(PostContainer(container, headers=headers))

    def delete_container(
        self,
        container: str,
        headers: dict[str, str] | None = None,
        recursive: bool = False,
    ) -> Headers:
        return self._retry(DeleteContainer(container, headers=headers or {}, recursive=recursive))

    # ------------------------------------------------------------------ #
    #  Object                                                             #
    # ------------------------------------------------------------------ #

    def head_object(self, container: str, name: str) -> Headers:
        return self._retry(HeadObject(container, name))

    def get_object(
        self,
        container: str,
        name: str,
        resp_chunk_size: int | None = None,
        headers: dict[str, str] | None = None,
    ) -> tuple[Headers, bytes | ObjectBody | None]:
        """Download an object.

        With *resp_chunk_size* the body is an :class:`ObjectBody` yielding
        chunks of that size; otherwise it is the whole payload.
        """
        return self._retry(GetObject(container, name, resp_chunk_size=resp_chunk_size, headers=headers or {}))

    def iter_object(
        self,
        container: str,
        name: str,
        chunk_size: int | None = None,
        headers: dict[str, str] | None = None,
    ) -> Iterator[bytes]:
        """Yield the object's content chunk by chunk.

        Only the request is retried; a failure while streaming propagates.
        """
        rv = self.get_object(container, name, resp_chunk_size=chunk_size or self.chunk_size, headers=headers)
        if rv is None:
            return
        body = rv[1]
        with body:
            yield from body

    def put_object(
        self,
        container: str | None,
        obj: str | None,
        contents: Contents,
        content_length: int | None = None,
        etag: str | None = None,
        chunk_size: int | None = None,
        content_type: str | None = None,
        headers: dict[str, str] | None = None,
    ) -> str | None:
        """Upload an object and return its ETag.

        Parameters
        ----------
        container, obj : str | None
            Target container and object name.
        contents : bytes | str | ReadableSource | None
            Payload. Readable sources are streamed in *chunk_size* reads.
        content_length : int | None
            Length of a streamed body; chunked framing is used when unknown.
        etag : str | None
            MD5 for a server-side integrity check.
        chunk_size : int | None
            Read size for streams, defaults to the client's chunk size.
        content_type : str | None
            Content type of the object.
        headers : dict[str, str] | None
            Extra headers.

        Raises
        ------
        UnsafeRetryError
            If a non-seekable stream fails and would have to be resent.
        """
        operation = PutObject(
            container,
            obj,
            contents,
            content_length=content_length,
            etag=etag,
            chunk_size=chunk_size or self.chunk_size,
            content_type=content_type,
            headers=headers or {},
        )
        return self._retry(operation, upload_reset(operation))

    def post_object(self, container: str, name: str, headers: dict[str, str]) -> Headers:
        return self._retry(PostObject(container, name, headers=headers))

    def delete_object(
        self,
        container: str,
        name: str,
        headers: dict[str, str] | None = None,
        query: dict[str, str] | None = None,
    ) -> Headers:
        return self._retry(DeleteObject(container, name, headers=headers or {}, query=query or {}))
