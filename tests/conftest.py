"""Shared fakes for store and network collaborators."""

import json
from typing import Any, Dict, List

import pytest

from common.errors import FetchError


class MemoryBlobStore:
    """In-memory BlobStore with a controllable creation clock."""

    def __init__(self, clock=lambda: 1_700_000_000.0):
        self.clock = clock
        self.files: Dict[str, bytes] = {}
        self.created: Dict[str, float] = {}
        self.dirs = set()
        self.writes: List[str] = []

    def _norm(self, path: str) -> str:
        return path.strip("/")

    def exists(self, path):
        path = self._norm(path)
        return (
            path in self.files
            or path in self.dirs
            or any(p.startswith(path + "/") for p in self.files)
        )

    def read_bytes(self, path):
        path = self._norm(path)
        if path not in self.files:
            raise FileNotFoundError(path)
        return self.files[path]

    def read_text(self, path):
        return self.read_bytes(path).decode("utf-8")

    def write_bytes(self, path, data):
        path = self._norm(path)
        self.files[path] = bytes(data)
        self.created[path] = self.clock()
        self.writes.append(path)

    def write_text(self, path, data):
        self.write_bytes(path, data.encode("utf-8"))

    def delete(self, path):
        path = self._norm(path)
        for p in [p for p in self.files if p == path or p.startswith(path + "/")]:
            del self.files[p]
            self.created.pop(p, None)
        self.dirs = {d for d in self.dirs if d != path and not d.startswith(path + "/")}

    def make_dirs(self, path):
        self.dirs.add(self._norm(path))

    def created_at(self, path):
        path = self._norm(path)
        if path not in self.created:
            raise FileNotFoundError(path)
        return self.created[path]

    def list_dir(self, path):
        prefix = self._norm(path) + "/"
        names = {p[len(prefix):].split("/", 1)[0] for p in self.files if p.startswith(prefix)}
        return sorted(names)


class FakeFetcher:
    """HttpFetcher serving canned responses and recording every request."""

    def __init__(self, routes: Dict[str, Any] = None):
        self.routes = dict(routes or {})
        self.calls: List[str] = []

    def _lookup(self, url):
        self.calls.append(url)
        if url not in self.routes:
            raise FetchError(f"GET {url} failed: HTTP 404", url=url, status=404)
        value = self.routes[url]
        if isinstance(value, Exception):
            raise value
        return value

    async def get_text(self, url):
        value = self._lookup(url)
        if isinstance(value, bytes):
            return value.decode("utf-8")
        if isinstance(value, str):
            return value
        return json.dumps(value)

    async def get_bytes(self, url):
        value = self._lookup(url)
        if isinstance(value, bytes):
            return value
        return (value if isinstance(value, str) else json.dumps(value)).encode("utf-8")

    async def get_json(self, url):
        value = self._lookup(url)
        if isinstance(value, (str, bytes)):
            try:
                return json.loads(value)
            except ValueError as exc:
                raise FetchError(f"Malformed JSON from {url}", url=url, status=200) from exc
        return value

    def count(self, url):
        return self.calls.count(url)


class Clock:
    """Mutable time source."""

    def __init__(self, now=1_700_000_000.0):
        self.now = now

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now += seconds


REGISTRY = "https://registry.test"


@pytest.fixture
def clock():
    return Clock()


@pytest.fixture
def store(clock):
    return MemoryBlobStore(clock=clock)


@pytest.fixture
def fetcher():
    return FakeFetcher()


@pytest.fixture(autouse=True)
def no_retry_delay(monkeypatch):
    """Keep retry backoff out of test runtime."""
    from constants import Constants
    monkeypatch.setattr(Constants, "HTTP_RETRY_BASE_DELAY_SEC", 0)
