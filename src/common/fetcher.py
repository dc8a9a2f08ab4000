"""Network fetchers used by the registry client.

``HttpFetcher`` is the narrow interface the core depends on. The aiohttp
implementation is the default; ``RequestsFetcher`` runs the synchronous
requests helpers in a worker thread.
"""

from __future__ import annotations

import asyncio
import json
import logging
from typing import Any, Optional, Protocol, runtime_checkable

import aiohttp

from constants import Constants
from common import http_client
from common.errors import FetchError
from common.logging_utils import extra_context, is_debug_enabled, safe_url, Timer

logger = logging.getLogger(__name__)


@runtime_checkable
class HttpFetcher(Protocol):
    """GET-only transport returning text, bytes or parsed JSON."""

    async def get_text(self, url: str) -> str:
        """Return the body of a 200 response decoded as text."""

    async def get_bytes(self, url: str) -> bytes:
        """Return the raw body of a 200 response."""

    async def get_json(self, url: str) -> Any:
        """Return the parsed JSON body of a 200 response."""


def _parse_json(url: str, text: str) -> Any:
    try:
        return json.loads(text)
    except ValueError as exc:
        raise FetchError(f"Malformed JSON from {safe_url(url)}: {exc}", url=url, status=200) from exc


class AiohttpFetcher:
    """Fetcher backed by a shared aiohttp session."""

    def __init__(
        self,
        timeout: Optional[float] = None,
        retries: Optional[int] = None,
        session: Optional[aiohttp.ClientSession] = None,
    ):
        """Initialize the fetcher.

        Args:
            timeout: Total per-request timeout in seconds.
            retries: Attempts per request on transport errors and 5xx responses.
            session: Existing session to use; it is not closed by ``stop``.
        """
        self._timeout = aiohttp.ClientTimeout(
            total=timeout if timeout is not None else Constants.REQUEST_TIMEOUT
        )
        self._retries = max(1, retries if retries is not None else Constants.HTTP_RETRY_MAX)
        self._session = session
        self._owns_session = session is None

    async def start(self) -> None:
        """Start the HTTP session."""
        if self._session is None:
            self._session = aiohttp.ClientSession(
                timeout=self._timeout,
                headers={"User-Agent": Constants.USER_AGENT},
            )
            self._owns_session = True

    async def stop(self) -> None:
        """Stop the HTTP session."""
        if self._session is not None and self._owns_session:
            await self._session.close()
        self._session = None

    async def __aenter__(self) -> "AiohttpFetcher":
        await self.start()
        return self

    async def __aexit__(self, *exc: Any) -> None:
        await self.stop()

    async def _get(self, url: str) -> bytes:
        if self._session is None:
            await self.start()
        assert self._session is not None
        safe_target = safe_url(url)
        last_error = "no attempt made"
        last_status: Optional[int] = None

        for attempt in range(self._retries):
            if attempt:
                await asyncio.sleep(Constants.HTTP_RETRY_BASE_DELAY_SEC * (2 ** (attempt - 1)))
            with Timer() as t:
                try:
                    async with self._session.get(url, timeout=self._timeout) as response:
                        body = await response.read()
                        status = response.status
                except asyncio.TimeoutError:
                    last_error, last_status = "timeout", None
                    logger.debug("GET %s timed out (attempt %d)", safe_target, attempt + 1)
                    continue
                except aiohttp.ClientError as exc:
                    last_error, last_status = str(exc) or exc.__class__.__name__, None
                    logger.debug("GET %s failed (attempt %d): %s", safe_target, attempt + 1, exc)
                    continue

            if is_debug_enabled(logger):
                logger.debug(
                    "HTTP response",
                    extra=extra_context(
                        event="http_response",
                        component="fetcher",
                        action="GET",
                        status_code=status,
                        duration_ms=t.duration_ms(),
                        target=safe_target,
                        attempt=attempt + 1,
                    ),
                )
            if status == 200:
                return body
            last_error, last_status = f"HTTP {status}", status
            if status < 500:
                break

        raise FetchError(f"GET {safe_target} failed: {last_error}", url=url, status=last_status)

    async def get_bytes(self, url: str) -> bytes:
        return await self._get(url)

    async def get_text(self, url: str) -> str:
        body = await self._get(url)
        try:
            return body.decode("utf-8")
        except UnicodeDecodeError as exc:
            raise FetchError(f"GET {safe_url(url)} returned non-UTF-8 text: {exc}", url=url, status=200) from exc

    async def get_json(self, url: str) -> Any:
        return _parse_json(url, await self.get_text(url))


class RequestsFetcher:
    """Fetcher that delegates to ``common.http_client`` off the event loop."""

    async def get_text(self, url: str) -> str:
        status, _, text = await asyncio.to_thread(http_client.robust_get, url)
        if status != 200:
            raise FetchError(
                f"GET {safe_url(url)} failed: {text if status == 0 else f'HTTP {status}'}",
                url=url,
                status=status or None,
            )
        return text

    async def get_bytes(self, url: str) -> bytes:
        status, _, body = await asyncio.to_thread(http_client.robust_get_bytes, url)
        if status != 200:
            raise FetchError(f"GET {safe_url(url)} failed: HTTP {status}", url=url, status=status or None)
        return body

    async def get_json(self, url: str) -> Any:
        return _parse_json(url, await self.get_text(url))

    async def stop(self) -> None:
        """Nothing to release; present for symmetry with ``AiohttpFetcher``."""


def build_fetcher(backend: Optional[str] = None):
    """Create the fetcher selected by ``backend`` (``aiohttp`` or ``requests``)."""
    name = (backend or Constants.HTTP_BACKEND).lower()
    if name == "requests":
        return RequestsFetcher()
    if name != "aiohttp":
        logger.warning("Unknown HTTP backend '%s'; using aiohttp", name)
    return AiohttpFetcher()
