"""Authentication strategies for the Twitter API.

Two interchangeable token managers are provided. ``GuestTokenManager`` uses the
public web bearer plus a guest token obtained from the activation endpoint and
can reauthenticate when the token expires. ``StaticTokenManager`` signs every
request with OAuth1 (HMAC-SHA1) using long-lived user credentials and cannot
recover from an authentication failure.

Token managers hold mutable per-client state and must not be shared between
threads without external locking.
"""

from __future__ import annotations

import base64
import hashlib
import hmac
import logging
import secrets
import time
from abc import ABC, abstractmethod
from typing import Mapping
from urllib.parse import quote

import httpx

from cain.errors import AuthError, CainError, NetworkError
from cain.runtime import RuntimeCache

LOGGER = logging.getLogger(__name__)

GUEST_ACTIVATE_URL = "https://api.twitter.com/1.1/guest/activate.json"
GUEST_BEARER = (
    "Bearer AAAAAAAAAAAAAAAAAAAAANRILgAAAAAAnNwIzUejRCOuH5E6I8xnZz4puTs%3D"
    "1Zv7ttfk8LF81IUq16cHjhLTvJu4FA33AGWWjCpTnA"
)
TOKEN_CACHE_KEY = "twitter_token"
AUTH_HEADER = "Authorization"
GUEST_TOKEN_HEADER = "X-guest-token"


def percent_encode(value: str) -> str:
    """Percent-encode ``value`` per RFC 3986, leaving only unreserved characters."""
    return quote(value, safe="")


def generate_nonce(timestamp: int | None = None) -> str:
    """Return a random 32-bit value followed by the Unix timestamp, both in hex."""
    if timestamp is None:
        timestamp = int(time.time())
    return f"{secrets.randbits(32):08x}{timestamp:x}"


class TokenManager(ABC):
    """Produce authentication headers for API requests."""

    supports_reauthentication: bool = False

    @abstractmethod
    def authorize(
        self, method: str, url: str, params: Mapping[str, str]
    ) -> dict[str, str]:
        """Return the headers authenticating one request."""

    def reauthenticate(self) -> None:
        """Obtain fresh credentials after the API rejected the current ones."""
        raise AuthError(f"{type(self).__name__} cannot reauthenticate")


class GuestTokenManager(TokenManager):
    """Authenticate with a guest token cached across runs."""

    supports_reauthentication = True

    def __init__(
        self,
        cache: RuntimeCache,
        http_client: httpx.Client,
        *,
        activate_url: str = GUEST_ACTIVATE_URL,
    ) -> None:
        self._cache = cache
        self._http = http_client
        self._activate_url = activate_url
        self._token: str | None = None

    @property
    def token(self) -> str:
        """Return the current guest token, activating one when none is cached."""
        if self._token is None:
            cached = self._cache.get(TOKEN_CACHE_KEY)
            if cached:
                self._token = cached
            else:
                self._token = self._activate()
        return self._token

    def authorize(
        self, method: str, url: str, params: Mapping[str, str]
    ) -> dict[str, str]:
        return {AUTH_HEADER: GUEST_BEARER, GUEST_TOKEN_HEADER: self.token}

    def reauthenticate(self) -> None:
        LOGGER.info("Guest token rejected; requesting a new one")
        self._token = self._activate()

    def _activate(self) -> str:
        try:
            response = self._http.post(self._activate_url, headers={AUTH_HEADER: GUEST_BEARER})
        except httpx.HTTPError as exc:
            raise NetworkError(f"Failed to get guest token: {exc}") from exc
        if response.status_code in (401, 403):
            raise AuthError(
                "Guest token activation was rejected",
                status_code=response.status_code,
                body=response.text,
            )
        if not response.is_success:
            raise NetworkError(
                f"Failed to get guest token: HTTP {response.status_code}",
                status_code=response.status_code,
                body=response.text,
            )
        try:
            token = response.json()["guest_token"]
        except (ValueError, KeyError, TypeError) as exc:
            raise NetworkError("Invalid guest token response", body=response.text) from exc
        if not isinstance(token, str) or not token:
            raise NetworkError("Invalid guest token response", body=response.text)

        try:
            self._cache.set(TOKEN_CACHE_KEY, token)
        except CainError as exc:
            LOGGER.warning("Failed to set runtime config: %s", exc)
        return token


class StaticTokenManager(TokenManager):
    """Sign requests with OAuth1 user credentials."""

    supports_reauthentication = False

    def __init__(
        self,
        consumer_key: str,
        consumer_secret: str,
        access_token: str,
        access_token_secret: str,
    ) -> None:
        self.consumer_key = consumer_key
        self.consumer_secret = consumer_secret
        self.access_token = access_token
        self.access_token_secret = access_token_secret

    def authorize(
        self,
        method: str,
        url: str,
        params: Mapping[str, str],
        *,
        nonce: str | None = None,
        timestamp: int | None = None,
    ) -> dict[str, str]:
        if timestamp is None:
            timestamp = int(time.time())
        if nonce is None:
            nonce = generate_nonce(timestamp)

        oauth_params = {
            "oauth_consumer_key": self.consumer_key,
            "oauth_nonce": nonce,
            "oauth_signature_method": "HMAC-SHA1",
            "oauth_timestamp": str(timestamp),
            "oauth_token": self.access_token,
            "oauth_version": "1.0",
        }
        oauth_params["oauth_signature"] = self.signature(
            method, url, {**params, **oauth_params}
        )
        fields = sorted(
            (percent_encode(key), percent_encode(value)) for key, value in oauth_params.items()
        )
        header = "OAuth " + ", ".join(f'{key}="{value}"' for key, value in fields)
        return {AUTH_HEADER: header}

    def signature(self, method: str, url: str, params: Mapping[str, str]) -> str:
        """Return the base64 HMAC-SHA1 signature for a request.

        Args:
            method: HTTP method of the request.
            url: Request URL without its query string.
            params: Query parameters merged with the ``oauth_*`` parameters.
        """
        encoded = sorted(
            (percent_encode(key), percent_encode(value)) for key, value in params.items()
        )
        param_string = "&".join(f"{key}={value}" for key, value in encoded)
        base_string = "&".join(
            [method.upper(), percent_encode(url), percent_encode(param_string)]
        )
        signing_key = (
            f"{percent_encode(self.consumer_secret)}&{percent_encode(self.access_token_secret)}"
        )
        digest = hmac.new(
            signing_key.encode("utf-8"), base_string.encode("utf-8"), hashlib.sha1
        ).digest()
        return base64.b64encode(digest).decode("ascii")


__all__ = [
    "TokenManager",
    "GuestTokenManager",
    "StaticTokenManager",
    "percent_encode",
    "generate_nonce",
    "GUEST_ACTIVATE_URL",
    "GUEST_BEARER",
    "TOKEN_CACHE_KEY",
]
