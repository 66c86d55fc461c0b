"""Backoff helpers shared by the HTTP connectors.

Rate-limited calls (HTTP 429) wait for the server's Retry-After before the
next attempt; any other HTTP error gives up immediately.
"""

from typing import Any

import requests

from soundstats.config import settings

DEFAULT_RETRY_AFTER = 1.0

# Transport failures worth retrying with exponential backoff
NETWORK_ERRORS = (requests.ConnectionError, requests.Timeout)


def _status_of(exc: Exception) -> int | None:
    status = getattr(exc, "http_status", None)
    if status is None:
        response = getattr(exc, "response", None)
        status = getattr(response, "status_code", None)
    return status


def _headers_of(exc: Exception) -> Any:
    headers = getattr(exc, "headers", None)
    if headers is None:
        response = getattr(exc, "response", None)
        headers = getattr(response, "headers", None)
    return headers or {}


def is_not_rate_limited(exc: Exception) -> bool:
    """Giveup predicate: only 429 responses are retried."""
    return _status_of(exc) != 429


def retry_after_seconds(exc: Exception) -> float:
    """Seconds to wait as announced by the server, capped."""
    try:
        wait = float(_headers_of(exc).get("Retry-After", DEFAULT_RETRY_AFTER))
    except (TypeError, ValueError):
        wait = DEFAULT_RETRY_AFTER
    return min(max(wait, 0.0), settings.api.spotify_retry_max_delay)


def spotify_max_tries() -> int:
    return settings.api.spotify_retry_count


def clerk_max_tries() -> int:
    return settings.api.clerk_retry_count
