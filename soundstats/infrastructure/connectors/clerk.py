"""Identity provider connector resolving users' Spotify OAuth tokens.

Users sign in through Clerk, which stores the Spotify OAuth grant. The engine
never refreshes tokens itself; it asks Clerk for a current access token on
every poll.
"""

import asyncio
from typing import Any

from attrs import define, field
import backoff
import requests

from soundstats.config import get_logger, resilient_operation, settings
from soundstats.domain.exceptions import TokenUnavailableError
from soundstats.infrastructure.connectors.retry import (
    NETWORK_ERRORS,
    clerk_max_tries,
    is_not_rate_limited,
    retry_after_seconds,
)

logger = get_logger(__name__).bind(service="clerk")

OAUTH_PROVIDER = "oauth_spotify"


def _first_token(payload: Any) -> str | None:
    """Pull the first access token out of Clerk's response body.

    Clerk answers with either a bare list or a paginated `{"data": [...]}`.
    """
    tokens = payload.get("data", []) if isinstance(payload, dict) else payload
    if not tokens:
        return None
    return tokens[0].get("token") or None


@define(slots=True)
class ClerkTokenProvider:
    """Resolves a user's Spotify access token through the Clerk backend API."""

    api_url: str = field(factory=lambda: settings.credentials.clerk_api_url)
    secret_key: str = field(
        factory=lambda: settings.credentials.clerk_secret_key, repr=False
    )
    timeout: float = field(factory=lambda: settings.api.request_timeout)
    session: requests.Session = field(factory=requests.Session, repr=False)

    def _fetch_tokens(self, user_id: str) -> Any:
        response = self.session.get(
            f"{self.api_url.rstrip('/')}/users/{user_id}/oauth_access_tokens/{OAUTH_PROVIDER}",
            headers={"Authorization": f"Bearer {self.secret_key}"},
            timeout=self.timeout,
        )
        response.raise_for_status()
        return response.json()

    @resilient_operation("get_clerk_spotify_token")
    @backoff.on_exception(
        backoff.runtime,
        requests.HTTPError,
        value=retry_after_seconds,
        giveup=is_not_rate_limited,
        max_tries=clerk_max_tries,
        jitter=None,
    )
    @backoff.on_exception(
        backoff.expo,
        NETWORK_ERRORS,
        max_tries=clerk_max_tries,
        jitter=backoff.full_jitter,
    )
    async def get_spotify_token(self, user_id: str) -> str:
        """Fetch the user's current Spotify access token.

        Raises:
            TokenUnavailableError: If Clerk holds no Spotify grant for the user
        """
        payload = await asyncio.to_thread(self._fetch_tokens, user_id)
        token = _first_token(payload)
        if token is None:
            raise TokenUnavailableError(user_id)
        return token
