import pytest

from swiftstore import Client, ObjectStore, SwiftSettings, auth_url_for
from swiftstore.endpoints import DATACENTERS, ENDPOINTS


def test_settings_from_environment(monkeypatch):
    monkeypatch.setenv("SWIFT_AUTH_URL", "https://auth.example.com/auth/v1.0")
    monkeypatch.setenv("SWIFT_USERNAME", "env-user")
    monkeypatch.setenv("SWIFT_API_KEY", "env-key")
    monkeypatch.setenv("SWIFT_RETRIES", "7")
    monkeypatch.setenv("SWIFT_SNET", "true")

    settings = SwiftSettings()

    assert settings.auth_url == "https://auth.example.com/auth/v1.0"
    assert settings.username == "env-user"
    assert settings.retries == 7
    assert settings.snet is True
    assert settings.starting_backoff == 1.0


def test_auth_url_from_datacenter():
    settings = SwiftSettings(datacenter="lon02", network="private", protocol="http", username="u", api_key="k")

    assert settings.auth_url == "http://lon02.objectstorage.service.networklayer.com/auth/v1.0"


def test_auth_url_or_datacenter_required():
    with pytest.raises(ValueError):
        SwiftSettings(username="u", api_key="k")


def test_unknown_datacenter():
    with pytest.raises(ValueError):
        SwiftSettings(datacenter="mars01", username="u", api_key="k")


def test_create_client():
    settings = SwiftSettings(
        auth_url="https://auth.example.com/auth/v1.0",
        username="u",
        api_key="k",
        retries=2,
        starting_backoff=0.25,
        chunk_size=1024,
        suppress_server_errors=True,
    )

    client = settings.create_client()

    assert isinstance(client, Client)
    assert client.credentials.username == "u"
    assert client.chunk_size == 1024
    assert client.controller.retries == 2
    assert client.controller.starting_backoff == 0.25
    assert client.controller.suppress_server_errors is True
    assert repr(client.credentials).endswith("key='***')")


def test_create_store_uses_configured_temp_url_key():
    settings = SwiftSettings(auth_url="https://auth.example.com/auth/v1.0", username="u", api_key="k", temp_url_key="t")

    store = settings.create_store()

    assert isinstance(store, ObjectStore)
    assert store.temp_url_key == "t"


def test_endpoint_table():
    assert set(ENDPOINTS) == set(DATACENTERS)
    assert auth_url_for("dal05") == "https://dal05.objectstorage.softlayer.net/auth/v1.0"
    assert ENDPOINTS["sng01"]["public"]["http"] == "http://sng01.objectstorage.softlayer.net/auth/v1.0"


@pytest.mark.parametrize("args", [("dal05", "dmz", "https"), ("dal05", "public", "ftp"), ("xxx01", "public", "https")])
def test_endpoint_lookup_rejects_unknown_values(args):
    with pytest.raises(ValueError):
        auth_url_for(*args)
