"""Cache-or-fetch helper for binary artifacts."""

from __future__ import annotations

import logging

from common.fetcher import HttpFetcher
from common.logging_utils import safe_url
from .store import Cache

logger = logging.getLogger(__name__)


async def load_artifact(key: str, url: str, cache: Cache, fetcher: HttpFetcher) -> bytes:
    """Return the artifact cached under ``key``, downloading it from ``url`` on a miss.

    Raises:
        FetchError: when the artifact is not cached and cannot be downloaded.
    """
    data = cache.read_binary(key)
    if data is not None:
        return data
    logger.debug("Artifact %s not cached; fetching %s", key, safe_url(url))
    data = await fetcher.get_bytes(url)
    cache.write_binary(key, data)
    return data
