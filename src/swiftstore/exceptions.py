"""Domain-specific exceptions for swiftstore."""

from __future__ import annotations

from typing import Any


class SwiftStoreError(Exception):
    """Base exception for swiftstore errors."""
    pass


class ClientException(SwiftStoreError):
    """Raised when a storage request completes with a non-2xx status.

    Carries enough of the request context to log or re-raise verbatim.
    """

    def __init__(
        self,
        msg: str,
        *,
        http_scheme: str | None = None,
        http_host: str | None = None,
        http_port: int | None = None,
        http_path: str | None = None,
        http_query: str | None = None,
        http_status: int | None = None,
        http_reason: str | None = None,
        http_response_content: bytes | None = None,
    ) -> None:
        self.msg = msg
        self.http_scheme = http_scheme
        self.http_host = http_host
        self.http_port = http_port
        self.http_path = http_path
        self.http_query = http_query
        self.http_status = http_status
        self.http_reason = http_reason
        self.http_response_content = http_response_content
        super().__init__(msg)

    @classmethod
    def from_response(
        cls,
        msg: str,
        *,
        scheme: str,
        host: str,
        port: int | None,
        path: str,
        query: str | None,
        status: int,
        reason: str | None,
        content: bytes | None = None,
    ) -> ClientException:
        """Build an exception from the pieces of a failed HTTP exchange."""
        return cls(
            msg,
            http_scheme=scheme,
            http_host=host,
            http_port=port,
            http_path=path,
            http_query=query or None,
            http_status=status,
            http_reason=reason,
            http_response_content=content,
        )

    @classmethod
    def wrap(cls, msg: str, other: ClientException) -> ClientException:
        """Re-raise *other*'s context under a different type and message."""
        return cls(msg, **other.context())

    def context(self) -> dict[str, Any]:
        """Return the HTTP context as keyword arguments."""
        return {
            "http_scheme": self.http_scheme,
            "http_host": self.http_host,
            "http_port": self.http_port,
            "http_path": self.http_path,
            "http_query": self.http_query,
            "http_status": self.http_status,
            "http_reason": self.http_reason,
            "http_response_content": self.http_response_content,
        }

    def __str__(self) -> str:
        target = ""
        if self.http_scheme:
            target += f"{self.http_scheme}://"
        if self.http_host:
            target += self.http_host
        if self.http_port:
            target += f":{self.http_port}"
        if self.http_path:
            target += self.http_path
        if self.http_query:
            target += f"?{self.http_query}"
        if self.http_status is not None:
            target = f"{target} {self.http_status}" if target else str(self.http_status)
        if self.http_reason:
            target = f"{target} {self.http_reason}" if target else f"- {self.http_reason}"
        return f"{self.msg} {target}" if target else self.msg


class AuthenticationError(ClientException):
    """Raised when the auth endpoint rejects the credentials or omits headers."""
    pass


class ServerErrorsExhausted(ClientException):
    """Raised when attempts run out and the last one ended in a 5xx response."""
    pass


class TransportFault(SwiftStoreError):
    """Raised on a connection-level failure (reset socket, timeout, ...)."""

    def __init__(self, message: str, *, url: str | None = None) -> None:
        self.url = url
        super().__init__(message)


class UnsafeRetryError(SwiftStoreError):
    """Raised when a partially consumed stream would have to be resent."""
    pass


class InvalidNameError(SwiftStoreError):
    """Raised when a container or object name is not acceptable."""
    pass


class InvalidResponseError(SwiftStoreError):
    """Raised when the server answers with an unexpected status."""
    pass


class NoSuchContainerError(SwiftStoreError):
    """Raised when a container does not exist."""
    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(f"Container {name} does not exist")


class NoSuchObjectError(SwiftStoreError):
    """Raised when an object does not exist."""
    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(f"Object {name} does not exist")


class NonEmptyContainerError(SwiftStoreError):
    """Raised when deleting a container that still holds objects."""
    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(f"Container {name} is not empty")


class MismatchedChecksumError(SwiftStoreError):
    """Raised when the server rejects an upload because of an ETag mismatch."""
    pass


class CDNNotAvailableError(SwiftStoreError):
    """Raised when a CDN operation is attempted without CDN support."""
    pass
