import pytest

from conftest import AUTH_URL, STORAGE_URL, FakeResponse, json_response
from swiftstore import Client, ClientException, InvalidResponseError


def test_full_listing_follows_markers(swift, client):
    swift.respond(
        json_response([{"name": "a"}, {"name": "b"}]),
        json_response([{"name": "c"}, {"name": "d"}]),
        json_response([{"name": "e"}]),
        FakeResponse(204),
    )

    headers, listing = client.get_container("photos", limit=2, full_listing=True)

    assert [o["name"] for o in listing] == ["a", "b", "c", "d", "e"]
    markers = [r.query.get("marker", [None])[0] for r in swift.storage_requests]
    assert markers == [None, "b", "d", "e"]
    assert all(r.query["limit"] == ["2"] for r in swift.storage_requests)


def test_full_listing_uses_subdir_as_marker(swift, client):
    swift.respond(json_response([{"name": "a.txt"}, {"subdir": "dir/"}]), FakeResponse(204))

    _, listing = client.get_container("c", delimiter="/", full_listing=True)

    assert len(listing) == 2
    assert swift.storage_requests[1].query["marker"] == ["dir/"]


def test_full_listing_pages_are_retried_individually(swift, client, sleeps):
    swift.respond(
        json_response([{"name": "a"}]),
        FakeResponse(503),
        json_response([{"name": "b"}]),
        FakeResponse(204),
    )

    _, listing = client.get_account(full_listing=True)

    assert [c["name"] for c in listing] == ["a", "b"]
    assert sleeps == [1.0]


def test_full_listing_returns_none_when_server_errors_suppressed(swift):
    client = Client(AUTH_URL, "u", "k", retries=2, sleep=lambda s: None, suppress_server_errors=True)
    swift.respond(json_response([{"name": "a"}]), FakeResponse(500), FakeResponse(500))

    assert client.get_account(full_listing=True) is None


def test_single_page_listing(swift, client):
    swift.respond(json_response([{"name": "a", "count": 1, "bytes": 10}], headers={"X-Account-Bytes-Used": "10"}))

    headers, listing = client.get_account(limit=1, prefix="a")

    assert headers["x-account-bytes-used"] == "10"
    assert listing == [{"name": "a", "count": 1, "bytes": 10}]
    assert swift.storage_requests[0].query == {"format": ["json"], "limit": ["1"], "prefix": ["a"]}


def test_empty_listing_from_no_content(swift, client):
    _, listing = client.get_container("empty")

    assert listing == []


def test_cdn_only_listing_uses_cdn_context(swift, client):
    client.get_account(cdn_only=True)

    assert swift.storage_requests[0].header("x-context") == "cdn"


def test_search(swift, client):
    swift.respond(
        json_response(
            [{"name": "match.txt"}],
            headers={"X-Search-Items-Count": "1", "X-Search-Items-Total": "12"},
        )
    )

    result = client.search(q="match", container="docs")

    assert result == {"count": 1, "total": 12, "items": [{"name": "match.txt"}]}
    req = swift.storage_requests[0]
    assert req.header("x-context") == "search"
    assert req.query == {"q": ["match"], "container": ["docs"], "format": ["json"]}
    assert req.url.startswith(f"{STORAGE_URL}?")


def test_search_without_body(swift, client):
    swift.respond(FakeResponse(204, {"X-Search-Items-Count": "0", "X-Search-Items-Total": "0"}))

    assert client.search(q="nothing") == {"count": 0, "total": 0, "items": []}


def test_put_object_headers(swift, client):
    swift.respond(FakeResponse(201, {"Etag": '"d41d8"'}))

    etag = client.put_object("c", "o.txt", b"hi", etag='"d41d8"', content_type="text/plain", headers={"X-Object-Meta-A": "1"})

    assert etag == "d41d8"
    req = swift.storage_requests[0]
    assert req.method == "PUT"
    assert req.header("etag") == "d41d8"
    assert req.header("content-type") == "text/plain"
    assert req.header("x-object-meta-a") == "1"
    assert req.header("content-length") == "2"


def test_get_object_buffered(swift, client):
    swift.respond(FakeResponse(200, {"Content-Type": "text/plain"}, b"contents"))

    headers, body = client.get_object("c", "o")

    assert headers["content-type"] == "text/plain"
    assert body == b"contents"


def test_iter_object_yields_chunks(swift, client):
    fake = FakeResponse(200, content=b"abcdefg")
    swift.respond(fake)

    chunks = list(client.iter_object("c", "o", chunk_size=3))

    assert chunks == [b"abc", b"def", b"g"]
    assert fake.closed


def test_delete_container_recursive(swift, client):
    client.delete_container("c", recursive=True)

    req = swift.storage_requests[0]
    assert req.method == "DELETE"
    assert req.query == {"recursive": ["true"]}


def test_delete_object_failure(swift, client):
    swift.respond(FakeResponse(404))

    with pytest.raises(ClientException) as exc_info:
        client.delete_object("c", "gone")

    assert exc_info.value.http_path == "/v1/AUTH_test/c/gone"


def test_storage_url_authenticates_once(swift, client):
    assert client.storage_url() == STORAGE_URL
    assert client.storage_url() == STORAGE_URL
    assert len(swift.auth_requests) == 1


def test_get_auth_forces_new_session(swift, client):
    client.get_auth()
    url, token = client.get_auth()

    assert url == STORAGE_URL
    assert token == "tok-2"


def test_listing_that_is_not_json(swift, client):
    swift.respond(FakeResponse(200, {"Content-Type": "text/html"}, b"<html>oops</html>"))

    with pytest.raises(InvalidResponseError, match="text/html"):
        client.get_container("c")

    assert client.attempts == 1


def test_search_result_that_is_not_json(swift, client):
    swift.respond(FakeResponse(200, content=b"not json"))

    with pytest.raises(InvalidResponseError):
        client.search(q="x")
