"""GET helper shared by the remote and mvnrepository version probes.

Repository metadata rarely changes within a resolution session, so responses
below 500 are kept in a TTL cache until ``clear_cache`` is called. Probes only
see ``(status, headers, text)``; a status of ``0`` means no response arrived.
"""
from __future__ import annotations

import logging
import time
from typing import Any, Dict, NamedTuple, Optional, Tuple

import requests

from constants import Constants
from common.logging_utils import extra_context, is_debug_enabled, safe_url, Timer

logger = logging.getLogger(__name__)

Response = Tuple[int, Dict[str, str], str]


class _CachedResponse(NamedTuple):
    response: Response
    stored_at: float

    @property
    def fresh(self) -> bool:
        return time.time() - self.stored_at < Constants.HTTP_CACHE_TTL_SEC


_http_cache: Dict[Tuple[str, Tuple[Tuple[str, str], ...]], _CachedResponse] = {}


def _trace(message: str, target: str, **fields: Any) -> None:
    if is_debug_enabled(logger):
        logger.debug(
            message,
            extra=extra_context(component="http_client", action="GET", target=target, **fields)
        )


def clear_cache() -> None:
    """Forget every cached response."""
    _http_cache.clear()


def robust_get(url: str, *, headers: Optional[Dict[str, str]] = None, **kwargs: Any) -> Response:
    """GET ``url`` with the configured timeout, retrying transport failures.

    Returns:
        ``(status_code, headers, text)``. After ``Constants.HTTP_RETRY_MAX``
        failed attempts the status is ``0`` and the text names the last error.
    """
    key = (url, tuple(sorted((headers or {}).items())))
    target = safe_url(url)
    cached = _http_cache.get(key)
    if cached is not None and cached.fresh:
        _trace("HTTP cache hit", target, event="cache_hit")
        return cached.response

    request_headers = {"User-Agent": Constants.USER_AGENT, **(headers or {})}
    error = None
    for attempt in range(1, Constants.HTTP_RETRY_MAX + 1):
        _trace("HTTP request", target, event="http_request", attempt=attempt)
        with Timer() as timer:
            try:
                reply = requests.get(
                    url, timeout=Constants.REQUEST_TIMEOUT, headers=request_headers, **kwargs
                )
            except requests.Timeout:
                error = "timeout"
            except requests.RequestException as exc:
                error = str(exc)
            else:
                response = (reply.status_code, dict(reply.headers), reply.text)
                if reply.status_code < 500:
                    _http_cache[key] = _CachedResponse(response, time.time())
                _trace(
                    "HTTP response", target, event="http_response",
                    status_code=reply.status_code, duration_ms=timer.duration_ms()
                )
                return response
        _trace("HTTP attempt failed", target, event="http_exception", attempt=attempt, outcome=error)

    logger.warning("GET %s failed after %s attempts: %s", target, Constants.HTTP_RETRY_MAX, error)
    return 0, {}, f"Request failed after {Constants.HTTP_RETRY_MAX} attempts: {error}"
