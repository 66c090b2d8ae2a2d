"""Twitter API client and its authentication strategies."""

from __future__ import annotations

import httpx

from cain.config.models import TwitterSettings
from cain.errors import InvalidInputError
from cain.runtime import RuntimeCache

from .auth import GuestTokenManager, StaticTokenManager, TokenManager, percent_encode
from .client import TwitterClient, media_item, tweet_id_from_url


def build_client(
    settings: TwitterSettings,
    *,
    cache: RuntimeCache | None = None,
    http_client: httpx.Client | None = None,
) -> TwitterClient:
    """Create a client using the authentication strategy named in ``settings``.

    Raises:
        InvalidInputError: If static credentials are incomplete.
    """
    http = http_client or httpx.Client(timeout=httpx.Timeout(settings.timeout_seconds))
    manager: TokenManager
    if settings.auth == "static":
        credentials = (
            settings.consumer_key,
            settings.consumer_secret,
            settings.access_token,
            settings.access_token_secret,
        )
        if not all(credentials):
            raise InvalidInputError(
                "Static Twitter authentication requires consumer and access token credentials."
            )
        manager = StaticTokenManager(*credentials)  # type: ignore[arg-type]
    else:
        manager = GuestTokenManager(cache or RuntimeCache(), http)
    return TwitterClient(
        manager,
        http,
        timeout=settings.timeout_seconds,
        max_response_bytes=settings.max_response_bytes,
    )


__all__ = [
    "TwitterClient",
    "TokenManager",
    "GuestTokenManager",
    "StaticTokenManager",
    "build_client",
    "media_item",
    "percent_encode",
    "tweet_id_from_url",
]
