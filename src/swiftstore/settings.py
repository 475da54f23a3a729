from __future__ import annotations

from typing import TYPE_CHECKING

from pydantic import model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from .endpoints import auth_url_for

if TYPE_CHECKING:
    from .client import Client
    from .store import ObjectStore


class SwiftSettings(BaseSettings):
    """Settings for Swift clients.

    You can adapt the following settings in your environment variables (or using and .env file):
    - SWIFT_AUTH_URL: The auth endpoint. If unset, it is looked up from SWIFT_DATACENTER
    - SWIFT_DATACENTER, SWIFT_NETWORK, SWIFT_PROTOCOL: Endpoint lookup, e.g. "dal05", "public", "https"
    - SWIFT_USERNAME: The account user name
    - SWIFT_API_KEY: The API key
    - SWIFT_RETRIES, SWIFT_STARTING_BACKOFF: Retry budget and initial backoff in seconds

    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="SWIFT_",
        env_nested_delimiter="__",
        extra="ignore",
    )

    # The auth endpoint; looked up from the datacenter when unset
    auth_url: str | None = None

    datacenter: str | None = None
    network: str = "public"
    protocol: str = "https"

    # The account user name
    username: str

    # The API key of the account
    api_key: str

    # Maximum attempts per call, and the first backoff in seconds
    retries: int = 5
    starting_backoff: float = 1.0

    # Route storage traffic over the private network
    snet: bool = False

    # Read size for streamed uploads and downloads
    chunk_size: int = 65536

    timeout: float | None = None
    insecure: bool = False
    proxy: str | None = None

    # Key for signing temp URLs; read from the account metadata when unset
    temp_url_key: str | None = None

    # Return None instead of raising when every attempt hit a 5xx
    suppress_server_errors: bool = False

    @model_validator(mode="after")
    def _resolve_auth_url(self) -> SwiftSettings:
        if self.auth_url is None:
            if self.datacenter is None:
                raise ValueError("Either auth_url or datacenter must be set")
            self.auth_url = auth_url_for(self.datacenter, self.network, self.protocol)  # type: ignore[arg-type]
        return self

    def create_client(self) -> Client:
        """Create a Swift client from the settings."""

        from .client import Client

        return Client(
            self.auth_url,
            self.username,
            self.api_key,
            retries=self.retries,
            starting_backoff=self.starting_backoff,
            chunk_size=self.chunk_size,
            snet=self.snet,
            insecure=self.insecure,
            timeout=self.timeout,
            proxy=self.proxy,
            suppress_server_errors=self.suppress_server_errors,
        )

    def create_store(self) -> ObjectStore:
        """Create an :class:`ObjectStore` from the settings."""

        from .store import ObjectStore

        return ObjectStore(self)
