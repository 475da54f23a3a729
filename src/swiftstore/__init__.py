"""swiftstore - Client library for Swift-compatible object storage with automatic re-authentication and retries."""

from __future__ import annotations

from .auth import get_auth, snet_url
from .client import Client
from .container import Container
from .endpoints import DATACENTERS, ENDPOINTS, auth_url_for
from .exceptions import (
    AuthenticationError,
    CDNNotAvailableError,
    ClientException,
    InvalidNameError,
    InvalidResponseError,
    MismatchedChecksumError,
    NonEmptyContainerError,
    NoSuchContainerError,
    NoSuchObjectError,
    ServerErrorsExhausted,
    SwiftStoreError,
    TransportFault,
    UnsafeRetryError,
)
from .retry import RetryController, State
from .settings import SwiftSettings
from .storage_object import StorageObject
from .store import ObjectStore
from .transport import ObjectBody
from .types import (
    AccountInfo,
    ContainerDetail,
    ContainerEntry,
    ContainerMetadata,
    Credentials,
    ObjectDetail,
    ObjectEntry,
    ObjectMetadata,
    SearchResult,
    Session,
)
from .utils import generate_temp_url, temp_url_signature

__all__ = [
    # Main classes
    "Client",
    "ObjectStore",
    "Container",
    "StorageObject",
    "RetryController",
    "State",
    "ObjectBody",
    "SwiftSettings",
    # Types
    "Credentials",
    "Session",
    "ContainerEntry",
    "ObjectEntry",
    "AccountInfo",
    "ContainerDetail",
    "ContainerMetadata",
    "ObjectDetail",
    "ObjectMetadata",
    "SearchResult",
    # Exceptions
    "SwiftStoreError",
    "ClientException",
    "AuthenticationError",
    "ServerErrorsExhausted",
    "TransportFault",
    "UnsafeRetryError",
    "InvalidNameError",
    "InvalidResponseError",
    "NoSuchContainerError",
    "NoSuchObjectError",
    "NonEmptyContainerError",
    "MismatchedChecksumError",
    "CDNNotAvailableError",
    # Auth and endpoints
    "get_auth",
    "snet_url",
    "auth_url_for",
    "DATACENTERS",
    "ENDPOINTS",
    # Utils
    "generate_temp_url",
    "temp_url_signature",
]
