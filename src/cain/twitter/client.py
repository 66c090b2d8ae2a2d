"""Twitter resource analyser."""

from __future__ import annotations

import json
import logging
from typing import Any, Mapping, Optional
from urllib.parse import urlparse

import httpx

from cain.analysis.base import ResourceAnalyser
from cain.analysis.models import TempItem, TextItem, UrlItem
from cain.errors import AuthError, InvalidInputError, NetworkError

from .auth import TokenManager

LOGGER = logging.getLogger(__name__)

API_BASE = "https://api.twitter.com/1.1"
DEFAULT_TIMEOUT_SECONDS = 30.0
DEFAULT_MAX_RESPONSE_BYTES = 10 * 1024 * 1024
_AUTH_FAILURE_STATUSES = (401, 403)


def tweet_id_from_url(url: str) -> str:
    """Return the last path segment of a tweet URL.

    Raises:
        InvalidInputError: If the URL has no path segment to use as an id.
    """
    parsed = urlparse(url)
    if not parsed.scheme or not parsed.netloc:
        raise InvalidInputError(f"Invalid URL: {url}")
    segments = [segment for segment in parsed.path.split("/") if segment]
    if not segments:
        raise InvalidInputError(f"Invalid Tweet URL: {url}")
    return segments[-1]


def _bitrate(variant: Mapping[str, Any]) -> int:
    bitrate = variant.get("bitrate")
    return bitrate if isinstance(bitrate, int) else 0


def media_item(media: Mapping[str, Any]) -> Optional[TempItem]:
    """Return the downloadable item for one ``extended_entities`` media object.

    Videos resolve to their highest-bitrate variant and photos to their image
    URL; other media kinds return ``None``.

    Raises:
        InvalidInputError: If the media object lacks the fields its kind requires.
    """
    if not isinstance(media, Mapping):
        raise InvalidInputError("Tweet media entry is not an object")
    kind = media.get("type")
    if not isinstance(kind, str):
        raise InvalidInputError("Failed to get tweet media type")

    if kind == "video":
        video_info = media.get("video_info")
        variants = video_info.get("variants") if isinstance(video_info, Mapping) else None
        if not isinstance(variants, list):
            raise InvalidInputError("Failed to get tweet video variants")
        candidates = [variant for variant in variants if isinstance(variant, Mapping)]
        if not candidates:
            raise InvalidInputError("Empty tweet video variants")
        best = max(candidates, key=_bitrate)
        url = best.get("url")
        if not isinstance(url, str):
            raise InvalidInputError("Tweet video variant does not have URL")
        return UrlItem(url)

    if kind == "photo":
        url = media.get("media_url")
        if not isinstance(url, str):
            raise InvalidInputError("Tweet photo does not have URL")
        return UrlItem(url)

    return None


class TwitterClient(ResourceAnalyser):
    """Fetch a tweet and turn its text and media into record items."""

    def __init__(
        self,
        token_manager: TokenManager,
        http_client: httpx.Client | None = None,
        *,
        api_base: str = API_BASE,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
        max_response_bytes: int = DEFAULT_MAX_RESPONSE_BYTES,
    ) -> None:
        self.token_manager = token_manager
        self._http = http_client or httpx.Client(timeout=httpx.Timeout(timeout))
        self._api_base = api_base.rstrip("/")
        self._max_response_bytes = max_response_bytes

    def fetch_tweet(self, tweet_id: str) -> dict[str, Any]:
        """Return the decoded ``statuses/show`` payload for ``tweet_id``.

        A 401 or 403 response triggers one reauthentication and one retry
        when the token manager supports it.

        Raises:
            AuthError: If authentication fails terminally.
            NetworkError: On transport failures or other unsuccessful responses.
        """
        url = f"{self._api_base}/statuses/show.json"
        params = {"id": tweet_id}

        status, body = self._get(url, params)
        if status in _AUTH_FAILURE_STATUSES and self.token_manager.supports_reauthentication:
            self.token_manager.reauthenticate()
            status, body = self._get(url, params)

        text = body.decode("utf-8", errors="replace")
        if status in _AUTH_FAILURE_STATUSES:
            raise AuthError(
                f"Twitter rejected the request with HTTP {status}: {text}",
                status_code=status,
                body=text,
            )
        if not 200 <= status < 300:
            raise NetworkError(
                f"Failed to get tweet {tweet_id}: HTTP {status}: {text}",
                status_code=status,
                body=text,
            )
        try:
            data = json.loads(text)
        except json.JSONDecodeError as exc:
            raise NetworkError("Failed to decode tweet response", body=text) from exc
        if not isinstance(data, dict):
            raise NetworkError("Unexpected tweet response", body=text)
        return data

    def analyse(self, url: str) -> list[TempItem]:
        tweet_id = tweet_id_from_url(url)
        LOGGER.info("Fetching tweet %s", tweet_id)
        data = self.fetch_tweet(tweet_id)

        text = data.get("full_text", data.get("text"))
        if not isinstance(text, str):
            raise InvalidInputError("Failed to get tweet text")
        items: list[TempItem] = [TextItem(text)]

        entities = data.get("extended_entities")
        medias = entities.get("media") if isinstance(entities, Mapping) else None
        if isinstance(medias, list):
            for media in medias:
                item = media_item(media)
                if item is not None:
                    items.append(item)
        return items

    def close(self) -> None:
        self._http.close()

    def _get(self, url: str, params: Mapping[str, str]) -> tuple[int, bytes]:
        headers = self.token_manager.authorize("GET", url, params)
        try:
            with self._http.stream("GET", url, params=params, headers=headers) as response:
                body = bytearray()
                for chunk in response.iter_bytes():
                    body.extend(chunk)
                    if len(body) > self._max_response_bytes:
                        raise NetworkError(
                            f"Response from {url} exceeds {self._max_response_bytes} bytes"
                        )
                return response.status_code, bytes(body)
        except httpx.HTTPError as exc:
            raise NetworkError(f"Failed to get tweet: {exc}") from exc


__all__ = ["TwitterClient", "tweet_id_from_url", "media_item", "API_BASE"]
