"""Tests for the aiohttp and requests fetchers."""

import asyncio
from unittest.mock import patch

import pytest

aiohttp_mod = pytest.importorskip("aiohttp")

from aiohttp import web
import aiohttp.test_utils

from common.errors import FetchError
from common.fetcher import AiohttpFetcher, HttpFetcher, RequestsFetcher, build_fetcher


def _make_app(counter):
    async def manifest(request):
        return web.json_response({"versions": {"latest": "2.1.0"}})

    async def source(request):
        return web.Response(text="VALUE = 1\n")

    async def broken(request):
        return web.Response(text="{not json", content_type="application/json")

    async def flaky(request):
        counter["flaky"] += 1
        if counter["flaky"] < 2:
            return web.Response(status=503)
        return web.Response(text="ok")

    async def latin1(request):
        return web.Response(body="VALUE = \"caf\u00e9\"\n".encode("latin-1"), content_type="text/plain")

    async def missing(request):
        counter["missing"] += 1
        return web.Response(status=404)

    app = web.Application()
    app.router.add_get("/spm.json", manifest)
    app.router.add_get("/module.py", source)
    app.router.add_get("/broken.json", broken)
    app.router.add_get("/flaky", flaky)
    app.router.add_get("/missing", missing)
    app.router.add_get("/latin1.py", latin1)
    return app


class TestAiohttpFetcher:
    """Real HTTP round trips against a local test server."""

    def _run(self, scenario):
        counter = {"flaky": 0, "missing": 0}

        async def _go():
            async with aiohttp.test_utils.TestServer(_make_app(counter)) as server:
                base = f"http://{server.host}:{server.port}"
                async with AiohttpFetcher(timeout=5, retries=3) as fetcher:
                    return await scenario(fetcher, base), counter

        return asyncio.run(_go())

    def test_get_json_and_text(self):
        async def scenario(fetcher, base):
            return await fetcher.get_json(f"{base}/spm.json"), await fetcher.get_text(f"{base}/module.py")

        (manifest, source), _ = self._run(scenario)
        assert manifest == {"versions": {"latest": "2.1.0"}}
        assert source == "VALUE = 1\n"

    def test_malformed_json_raises(self):
        async def scenario(fetcher, base):
            with pytest.raises(FetchError):
                await fetcher.get_json(f"{base}/broken.json")

        self._run(scenario)

    def test_non_utf8_text_raises(self):
        async def scenario(fetcher, base):
            with pytest.raises(FetchError) as excinfo:
                await fetcher.get_text(f"{base}/latin1.py")
            raw = await fetcher.get_bytes(f"{base}/latin1.py")
            return excinfo.value.status, raw

        (status, raw), _ = self._run(scenario)
        assert status == 200
        assert raw == b"VALUE = \"caf\xe9\"\n"

    def test_server_errors_are_retried(self):
        async def scenario(fetcher, base):
            return await fetcher.get_bytes(f"{base}/flaky")

        body, counter = self._run(scenario)
        assert body == b"ok"
        assert counter["flaky"] == 2

    def test_client_errors_are_not_retried(self):
        async def scenario(fetcher, base):
            with pytest.raises(FetchError) as excinfo:
                await fetcher.get_text(f"{base}/missing")
            return excinfo.value.status

        status, counter = self._run(scenario)
        assert status == 404
        assert counter["missing"] == 1

    def test_connection_error_raises_fetch_error(self):
        async def _go():
            async with AiohttpFetcher(timeout=2, retries=1) as fetcher:
                await fetcher.get_text("http://127.0.0.1:9/unreachable")

        with pytest.raises(FetchError):
            asyncio.run(_go())


class TestRequestsFetcher:
    """Adapter over the synchronous helpers."""

    @patch("common.fetcher.http_client.robust_get")
    def test_get_json(self, mock_get):
        mock_get.return_value = (200, {}, '{"versions": {"latest": "1.0.0"}}')
        data = asyncio.run(RequestsFetcher().get_json("https://registry.test/spm.json"))
        assert data == {"versions": {"latest": "1.0.0"}}

    @patch("common.fetcher.http_client.robust_get")
    def test_non_200_raises(self, mock_get):
        mock_get.return_value = (404, {}, "Not Found")
        with pytest.raises(FetchError) as excinfo:
            asyncio.run(RequestsFetcher().get_text("https://registry.test/x.py"))
        assert excinfo.value.status == 404

    @patch("common.fetcher.http_client.robust_get")
    def test_exhausted_retries_raise(self, mock_get):
        mock_get.return_value = (0, {}, "Request failed after 3 attempts: timeout")
        with pytest.raises(FetchError) as excinfo:
            asyncio.run(RequestsFetcher().get_text("https://registry.test/x.py"))
        assert excinfo.value.status is None
        assert "timeout" in str(excinfo.value)

    @patch("common.fetcher.http_client.robust_get_bytes")
    def test_get_bytes(self, mock_get):
        mock_get.return_value = (200, {}, b"\x89PNG")
        assert asyncio.run(RequestsFetcher().get_bytes("https://img.test/a.png")) == b"\x89PNG"


class TestBuildFetcher:
    """Backend selection."""

    def test_backends(self):
        assert isinstance(build_fetcher("requests"), RequestsFetcher)
        assert isinstance(build_fetcher("aiohttp"), AiohttpFetcher)
        assert isinstance(build_fetcher("bogus"), AiohttpFetcher)
        assert isinstance(build_fetcher("requests"), HttpFetcher)
