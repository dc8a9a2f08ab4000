"""Synchronous HTTP helpers built on requests.

Encapsulates retry/timeout handling and DEBUG traces so callers avoid
duplicating try/except blocks. Used by ``common.fetcher.RequestsFetcher``
when the requests backend is selected.
"""
from __future__ import annotations

import logging
import time
from typing import Any, Dict, Optional, Tuple

import requests

from constants import Constants
from common.logging_utils import extra_context, is_debug_enabled, safe_url, Timer

logger = logging.getLogger(__name__)


def _default_headers(headers: Optional[Dict[str, str]]) -> Dict[str, str]:
    merged = {"User-Agent": Constants.USER_AGENT}
    if headers:
        merged.update(headers)
    return merged


def _get_with_retries(
    url: str,
    *,
    headers: Optional[Dict[str, str]] = None,
    **kwargs: Any
) -> Tuple[Optional[requests.Response], Optional[str]]:
    """GET with bounded retries on transport errors and 5xx responses.

    Returns:
        Tuple of (response or None, last error description or None)
    """
    safe_target = safe_url(url)
    last_exception: Optional[str] = None
    response: Optional[requests.Response] = None

    for attempt in range(Constants.HTTP_RETRY_MAX):
        if attempt:
            time.sleep(Constants.HTTP_RETRY_BASE_DELAY_SEC * (2 ** (attempt - 1)))
        with Timer() as t:
            try:
                if is_debug_enabled(logger):
                    logger.debug(
                        "HTTP request",
                        extra=extra_context(
                            event="http_request",
                            component="http_client",
                            action="GET",
                            target=safe_target,
                            attempt=attempt + 1
                        )
                    )

                response = requests.get(
                    url,
                    timeout=Constants.REQUEST_TIMEOUT,
                    headers=_default_headers(headers),
                    **kwargs
                )

                if is_debug_enabled(logger):
                    logger.debug(
                        "HTTP response",
                        extra=extra_context(
                            event="http_response",
                            component="http_client",
                            action="GET",
                            outcome="success" if response.status_code < 500 else "server_error",
                            status_code=response.status_code,
                            duration_ms=t.duration_ms(),
                            target=safe_target
                        )
                    )
                if response.status_code < 500:
                    return response, None
                last_exception = f"HTTP {response.status_code}"
                continue

            except requests.Timeout:
                last_exception = "timeout"
                if is_debug_enabled(logger):
                    logger.debug(
                        "HTTP timeout",
                        extra=extra_context(
                            event="http_exception",
                            component="http_client",
                            action="GET",
                            outcome="timeout",
                            attempt=attempt + 1,
                            target=safe_target
                        )
                    )
                continue
            except requests.RequestException as exc:
                last_exception = str(exc)
                if is_debug_enabled(logger):
                    logger.debug(
                        "HTTP request exception",
                        extra=extra_context(
                            event="http_exception",
                            component="http_client",
                            action="GET",
                            outcome="request_exception",
                            attempt=attempt + 1,
                            target=safe_target
                        )
                    )
                continue

    return response, last_exception


def robust_get(
    url: str,
    *,
    headers: Optional[Dict[str, str]] = None,
    **kwargs: Any
) -> Tuple[int, Dict[str, str], str]:
    """Perform GET request with timeout and retries.

    Returns:
        Tuple of (status_code, headers_dict, body_text); status 0 means every
        attempt failed and the body carries the last error.
    """
    response, error = _get_with_retries(url, headers=headers, **kwargs)
    if response is None:
        return 0, {}, f"Request failed after {Constants.HTTP_RETRY_MAX} attempts: {error}"
    return response.status_code, dict(response.headers), response.text


def robust_get_bytes(
    url: str,
    *,
    headers: Optional[Dict[str, str]] = None,
    **kwargs: Any
) -> Tuple[int, Dict[str, str], bytes]:
    """Like ``robust_get`` but returns the raw response body."""
    response, error = _get_with_retries(url, headers=headers, **kwargs)
    if response is None:
        message = f"Request failed after {Constants.HTTP_RETRY_MAX} attempts: {error}"
        return 0, {}, message.encode("utf-8")
    return response.status_code, dict(response.headers), response.content
