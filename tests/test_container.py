import hashlib
import hmac
from datetime import datetime

import pytest

from conftest import STORAGE_URL, FakeResponse, json_response
from swiftstore import AuthenticationError, NoSuchContainerError, NoSuchObjectError, StorageObject

CONTAINER_HEADERS = {
    "X-Container-Bytes-Used": "1024",
    "X-Container-Object-Count": "2",
    "X-Container-Meta-Color": "blue%20sky",
    "X-Container-Read": ".r:*",
}


@pytest.fixture
def container(swift, store):
    swift.respond(FakeResponse(204, CONTAINER_HEADERS))
    container = store.container("photos")
    swift.storage_requests.clear()
    return container


def test_metadata_is_loaded_once(swift, container):
    assert container.bytes == 1024
    assert container.count == 2
    assert not container.empty
    assert container.read_acl == ".r:*"
    assert container.write_acl is None
    assert container.metadata == {"color": "blue sky"}
    assert swift.storage_requests == []


def test_refresh_reloads_metadata(swift, container):
    swift.respond(FakeResponse(204, {"X-Container-Object-Count": "0"}))

    container.refresh()

    assert container.empty
    assert len(swift.storage_requests) == 1


def test_set_metadata(swift, container):
    container.set_metadata({"owner": "alice"})

    req = swift.storage_requests[0]
    assert req.method == "POST"
    assert req.header("X-Container-Meta-Owner") == "alice"


def test_set_metadata_on_missing_container(swift, container):
    swift.respond(FakeResponse(404))

    with pytest.raises(NoSuchContainerError):
        container.set_metadata({"a": "b"})


def test_cdn_metadata(swift, container):
    swift.respond(
        FakeResponse(
            204,
            {
                "X-Cdn-Enabled": "True",
                "X-Cdn-Ttl": "3600",
                "X-Cdn-Uri": "http://cdn.example.com/abc",
                "X-Cdn-Ssl-Uri": "https://ssl.cdn.example.com/abc",
            },
        )
    )

    assert container.cdn_enabled
    assert container.cdn_ttl == 3600
    assert container.cdn_urls == {
        "x-cdn-uri": "http://cdn.example.com/abc",
        "x-cdn-ssl-uri": "https://ssl.cdn.example.com/abc",
    }
    assert swift.storage_requests[0].header("x-context") == "cdn"


def test_make_public(swift, container):
    assert container.make_public(ttl=900)

    put, post = swift.storage_requests
    assert put.method == "PUT"
    assert post.method == "POST"
    assert post.header("X-Context") == "cdn"
    assert post.header("X-Container-Read") == ".r:*"
    assert post.header("X-Cdn-Ttl") == "900"


def test_make_private(swift, container):
    container.make_private()

    post = swift.storage_requests[0]
    assert post.header("X-Context") == "cdn"
    assert post.header("X-Container-Read") == " "


def test_set_acls(swift, container):
    container.set_read_acl(".r:example.com")
    container.set_write_acl("account:user")

    assert swift.storage_requests[0].header("X-Container-Read") == ".r:example.com"
    assert swift.storage_requests[1].header("X-Container-Write") == "account:user"


def test_purge_from_cdn(swift, container):
    container.purge_from_cdn("ops@example.com")

    post = swift.storage_requests[0]
    assert post.header("X-Cdn-Purge") == "true"
    assert post.header("X-Purge-Email") == "ops@example.com"


def test_objects_lists_names_and_subdirs(swift, container):
    swift.respond(json_response([{"name": "a.jpg"}, {"subdir": "2024/"}]), FakeResponse(204))

    assert container.objects(delimiter="/") == ["a.jpg", "2024/"]


def test_objects_with_limit(swift, container):
    swift.respond(json_response([{"name": "b.jpg"}]))

    assert container.objects(limit=1, offset="a.jpg") == ["b.jpg"]
    req = swift.storage_requests[0]
    assert req.query["marker"] == ["a.jpg"]
    assert req.query["limit"] == ["1"]


def test_objects_detail(swift, container):
    swift.respond(
        json_response(
            [
                {
                    "name": "a.jpg",
                    "bytes": 12,
                    "hash": "abc",
                    "content_type": "image/jpeg",
                    "last_modified": "2024-01-02T03:04:05.123456",
                }
            ]
        ),
        FakeResponse(204),
    )

    detail = container.objects_detail()

    assert detail == {
        "a.jpg": {
            "bytes": 12,
            "hash": "abc",
            "content_type": "image/jpeg",
            "last_modified": datetime(2024, 1, 2, 3, 4, 5, 123456),
        }
    }


def test_iter_objects_pages(swift, container):
    swift.respond(json_response([{"name": "a"}, {"name": "b"}]), json_response([{"name": "c"}]), FakeResponse(204))

    names = [o.name for o in container.iter_objects(page_size=2)]

    assert names == ["a", "b", "c"]


def test_listing_missing_container(swift, container):
    swift.respond(FakeResponse(404))

    with pytest.raises(NoSuchContainerError):
        container.objects()


def test_object_exists(swift, container):
    swift.respond(FakeResponse(200), FakeResponse(404))

    assert container.object_exists("a.jpg")
    assert not container.object_exists("b.jpg")


def test_object_must_exist(swift, container):
    swift.respond(FakeResponse(404))

    with pytest.raises(NoSuchObjectError, match="Object nope does not exist"):
        container.object("nope")


def test_create_object_makes_no_request(swift, container):
    obj = container.create_object("new.jpg")

    assert isinstance(obj, StorageObject)
    assert swift.storage_requests == []


def test_delete_object(swift, container):
    swift.respond(FakeResponse(204), FakeResponse(404))

    assert container.delete_object("a.jpg")
    with pytest.raises(NoSuchObjectError):
        container.delete_object("a.jpg")


def test_object_temp_url(swift, container, monkeypatch):
    monkeypatch.setattr("swiftstore.utils.time.time", lambda: 1000.0)

    url = container.object_temp_url("a.jpg", 5)

    expected_sig = hmac.new(b"mykey", b"GET\n1300\n/v1/AUTH_test/photos/a.jpg", hashlib.sha1).hexdigest()
    assert url == f"{STORAGE_URL}/photos/a.jpg?temp_url_sig={expected_sig}&temp_url_expires=1300"


def test_search_is_scoped_to_container(swift, container):
    container.search(q="cat")

    assert swift.storage_requests[0].query["container"] == ["photos"]


def test_unauthorized_make_public_is_not_a_missing_container(swift, container):
    swift.respond(FakeResponse(401), FakeResponse(401))

    with pytest.raises(AuthenticationError):
        container.make_public()


def test_unauthorized_listing_is_not_masked(swift, container):
    swift.respond(FakeResponse(401), FakeResponse(401))

    with pytest.raises(AuthenticationError):
        container.objects()
