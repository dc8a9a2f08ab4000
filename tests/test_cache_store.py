"""Tests for the namespace cache."""

import asyncio
import json

import pytest

from cache.artifacts import load_artifact
from cache.store import Cache, sanitize_key
from common.errors import FetchError, ReservedNamespace


@pytest.fixture
def cache(store, clock):
    return Cache("weather", store, clock=clock)


class TestCacheConstruction:
    """Namespace validation and setup."""

    @pytest.mark.parametrize("name", ["spm", "SPM-modules", "spmextra", "cache.json", "Cache.JSON.bak"])
    def test_reserved_names_rejected(self, store, name):
        with pytest.raises(ReservedNamespace):
            Cache(name, store)

    @pytest.mark.parametrize("name", ["", "  ", "a/b", "..", "a\\b"])
    def test_invalid_names_rejected(self, store, name):
        with pytest.raises(ValueError):
            Cache(name, store)

    def test_creates_namespace_and_ledger(self, store):
        Cache("weather", store)
        assert store.exists("weather")
        assert json.loads(store.read_text("cache.json")) == {}


class TestCacheReadWrite:
    """Round trips and best-effort reads."""

    def test_structured_round_trip(self, cache):
        cache.write("report", {"n": 1, "tags": ["a"]})
        assert cache.read("report") == {"n": 1, "tags": ["a"]}

    def test_string_stored_verbatim(self, cache, store):
        cache.write("note", "plain text, not json")
        assert store.read_text("weather/note") == "plain text, not json"
        assert cache.read("note") == "plain text, not json"

    def test_json_looking_string_decodes(self, cache):
        cache.write("count", "12")
        assert cache.read("count") == 12

    def test_write_records_ledger_entry(self, cache, store, clock):
        cache.write("report", [1, 2])
        assert json.loads(store.read_text("cache.json")) == {"weather": {"report": int(clock() * 1000)}}

    def test_write_recreates_missing_namespace_dir(self, cache, store):
        store.delete("weather")
        cache.write("report", 1)
        assert store.exists("weather")
        assert cache.read("report") == 1

    def test_keys_are_sanitized(self, cache, store):
        cache.write("a/b\\c", "x")
        assert store.exists("weather/a-b-c")
        assert cache.read("a/b\\c") == "x"
        assert cache.ledger.written_at("weather", "a-b-c") is not None

    def test_missing_key_reads_none(self, cache):
        assert cache.read("absent") is None
        assert cache.read("absent", 5) is None
        assert cache.read_binary("absent") is None

    def test_unreadable_blob_reads_none(self, cache, store):
        store.write_bytes("weather/bad", b"\xff\xfe\x00")
        assert cache.read("bad") is None

    def test_invalid_key_reads_none(self, cache):
        assert cache.read("") is None
        assert cache.read("..") is None

    def test_remove(self, cache, store):
        cache.write("report", 1)
        cache.remove("report")
        assert not store.exists("weather/report")
        assert cache.ledger.written_at("weather", "report") is None


class TestCacheTtl:
    """Read-time expiry uses the store's creation timestamp."""

    def test_fresh_entry_is_returned(self, cache, clock):
        cache.write("report", {"n": 1})
        clock.advance(4 * 60)
        assert cache.read("report", 5) == {"n": 1}

    def test_expired_entry_is_deleted(self, cache, store, clock):
        cache.write("report", {"n": 1})
        clock.advance(6 * 60)
        assert cache.read("report", 5) is None
        assert not store.exists("weather/report")
        assert cache.ledger.written_at("weather", "report") is None

    def test_no_ttl_never_expires_on_read(self, cache, clock):
        cache.write("report", {"n": 1})
        clock.advance(3 * 24 * 3600)
        assert cache.read("report") == {"n": 1}
        assert cache.read("report", 0) == {"n": 1}

    def test_store_clock_is_used_not_ledger(self, cache, store, clock):
        cache.write("report", 1)
        # Ledger says the entry is old; the store says it is new.
        cache.ledger.record("weather", "report", written_at=0)
        assert cache.read("report", 5) == 1


class TestBinaryArtifacts:
    """Binary payloads and the cache-or-fetch helper."""

    def test_binary_round_trip(self, cache):
        cache.write_binary("logo.png", b"\x89PNG\r\n")
        assert cache.read_binary("logo.png") == b"\x89PNG\r\n"
        assert cache.ledger.written_at("weather", "logo.png") is not None

    def test_load_artifact_fetches_once(self, cache, fetcher):
        url = "https://img.test/logo.png"
        fetcher.routes[url] = b"\x89PNG"
        first = asyncio.run(load_artifact("logo.png", url, cache, fetcher))
        second = asyncio.run(load_artifact("logo.png", url, cache, fetcher))
        assert first == second == b"\x89PNG"
        assert fetcher.count(url) == 1

    def test_load_artifact_propagates_fetch_error(self, cache):
        class _Failing:
            async def get_bytes(self, url):
                raise FetchError("down", url=url)

        with pytest.raises(FetchError):
            asyncio.run(load_artifact("logo.png", "https://img.test/logo.png", cache, _Failing()))
        assert cache.read_binary("logo.png") is None


class TestSanitizeKey:
    """Key normalization."""

    def test_replaces_every_separator(self):
        assert sanitize_key("a/b/c") == "a-b-c"

    @pytest.mark.parametrize("key", ["", ".", ".."])
    def test_rejects_unusable_keys(self, key):
        with pytest.raises(ValueError):
            sanitize_key(key)
