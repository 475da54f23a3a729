import pytest

from conftest import AUTH_URL, FakeResponse
from swiftstore import AuthenticationError, get_auth, snet_url


def test_get_auth_returns_storage_url_and_token(swift):
    result = get_auth(AUTH_URL, "tester", "secret")

    assert result.storage_url == "https://storage.example.com/v1/AUTH_test"
    assert result.auth_token == "tok-1"
    req = swift.auth_requests[0]
    assert req.method == "GET"
    assert req.path == "/auth/v1.0"
    assert req.header("x-auth-user") == "tester"
    assert req.header("x-auth-key") == "secret"


def test_get_auth_accepts_storage_token_header(swift):
    swift.respond_auth(FakeResponse(200, {"X-Storage-Url": "https://s.example.com/v1/A", "X-Storage-Token": "st"}))

    assert get_auth(AUTH_URL, "u", "k").auth_token == "st"


def test_get_auth_with_snet_rewrites_host(swift):
    result = get_auth(AUTH_URL, "tester", "secret", snet=True)

    assert result.storage_url == "https://snet-storage.example.com/v1/AUTH_test"


def test_snet_url_keeps_scheme_port_and_path():
    assert snet_url("http://host.example.com:8080/v1/AUTH_x") == "http://snet-host.example.com:8080/v1/AUTH_x"


@pytest.mark.parametrize(
    "headers",
    [
        {"X-Auth-Token": "tok"},
        {"X-Storage-Url": "https://s.example.com/v1/A"},
    ],
)
def test_get_auth_missing_header_fails(swift, headers):
    swift.respond_auth(FakeResponse(200, headers))

    with pytest.raises(AuthenticationError) as exc_info:
        get_auth(AUTH_URL, "u", "k")

    assert exc_info.value.http_status == 200


def test_get_auth_bad_status_carries_context(swift):
    swift.respond_auth(FakeResponse(403, reason="Forbidden", content=b"denied"))

    with pytest.raises(AuthenticationError) as exc_info:
        get_auth(AUTH_URL, "u", "k")

    err = exc_info.value
    assert err.http_status == 403
    assert err.http_reason == "Forbidden"
    assert err.http_host == "auth.example.com"
    assert err.http_path == "/auth/v1.0"
    assert err.http_response_content == b"denied"


def test_repeated_auth_is_independent(swift):
    first = get_auth(AUTH_URL, "u", "k")
    second = get_auth(AUTH_URL, "u", "k")

    assert first.storage_url == second.storage_url
    assert len(swift.auth_requests) == 2
