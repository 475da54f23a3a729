"""Shared fixtures: a scripted fake Swift backend behind ``requests.Session.request``."""

from __future__ import annotations

import json
from collections import deque
from dataclasses import dataclass, field
from typing import Any
from urllib.parse import parse_qs, urlparse

import pytest
import requests
from requests.structures import CaseInsensitiveDict

from swiftstore import Client, ObjectStore

AUTH_URL = "https://auth.example.com/auth/v1.0"
STORAGE_URL = "https://storage.example.com/v1/AUTH_test"


class FakeResponse:
    """Just enough of :class:`requests.Response` for the transport layer."""

    def __init__(
        self,
        status: int = 200,
        headers: dict[str, str] | None = None,
        content: bytes | str = b"",
        reason: str | None = None,
    ) -> None:
        self.status_code = status
        self.reason = reason or ("OK" if status < 300 else "Error")
        self.headers = CaseInsensitiveDict(headers or {})
        self._content = content.encode() if isinstance(content, str) else content
        self.url = ""
        self.closed = False

    @property
    def content(self) -> bytes:
        return self._content

    def iter_content(self, chunk_size: int = 1):
        for i in range(0, len(self._content), chunk_size):
            yield self._content[i:i + chunk_size]

    def close(self) -> None:
        self.closed = True


def json_response(payload: Any, status: int = 200, headers: dict[str, str] | None = None) -> FakeResponse:
    return FakeResponse(status, {"content-type": "application/json", **(headers or {})}, json.dumps(payload))


@dataclass
class RecordedRequest:
    method: str
    url: str
    headers: dict[str, str]
    body: bytes | None = None
    chunks: int = 0
    data_type: type | None = None

    @property
    def path(self) -> str:
        return urlparse(self.url).path

    @property
    def host(self) -> str:
        return urlparse(self.url).netloc

    @property
    def query(self) -> dict[str, list[str]]:
        return parse_qs(urlparse(self.url).query)

    def header(self, name: str) -> str | None:
        for k, v in self.headers.items():
            if k.lower() == name.lower():
                return v
        return None


@dataclass
class FakeSwift:
    """Scripted backend.

    Queue :class:`FakeResponse` objects (or exceptions to raise) on
    ``auth_queue`` / ``storage_queue``. Requests to the auth host are answered
    from ``auth_queue`` (or a fresh token when empty), all others from
    ``storage_queue`` (or an empty ``204`` when empty).
    """

    auth_requests: list[RecordedRequest] = field(default_factory=list)
    storage_requests: list[RecordedRequest] = field(default_factory=list)
    auth_queue: deque = field(default_factory=deque)
    storage_queue: deque = field(default_factory=deque)
    storage_url: str = STORAGE_URL
    issued: int = 0

    def respond(self, *responses: Any) -> None:
        self.storage_queue.extend(responses)

    def respond_auth(self, *responses: Any) -> None:
        self.auth_queue.extend(responses)

    def _record(self, method: str, url: str, headers: dict[str, str] | None, data: Any) -> RecordedRequest:
        rec = RecordedRequest(method, url, dict(headers or {}), data_type=type(data) if data is not None else None)
        if isinstance(data, (bytes, str)):
            rec.body = data.encode() if isinstance(data, str) else data
        elif data is not None:
            parts = []
            for chunk in data:
                rec.chunks += 1
                parts.append(chunk)
            rec.body = b"".join(parts)
        return rec

    def handle(self, method: str, url: str, headers: dict[str, str] | None = None, data: Any = None) -> FakeResponse:
        rec = self._record(method, url, headers, data)
        if urlparse(url).netloc == urlparse(AUTH_URL).netloc:
            self.auth_requests.append(rec)
            queue = self.auth_queue
            if not queue:
                self.issued += 1
                return FakeResponse(
                    200, {"X-Storage-Url": self.storage_url, "X-Auth-Token": f"tok-{self.issued}"}
                )
        else:
            self.storage_requests.append(rec)
            queue = self.storage_queue
            if not queue:
                return FakeResponse(204)
        item = queue.popleft()
        if isinstance(item, BaseException):
            raise item
        return item


@pytest.fixture
def swift(monkeypatch) -> FakeSwift:
    backend = FakeSwift()

    def _request(session, method, url, headers=None, data=None, **kwargs):
        return backend.handle(method, url, headers=headers, data=data)

    monkeypatch.setattr(requests.Session, "request", _request)
    return backend


@pytest.fixture
def sleeps() -> list[float]:
    return []


@pytest.fixture
def client(swift, sleeps) -> Client:
    return Client(AUTH_URL, "tester", "secret", retries=3, sleep=sleeps.append)


@pytest.fixture
def store(client) -> ObjectStore:
    return ObjectStore(client, temp_url_key="mykey")
