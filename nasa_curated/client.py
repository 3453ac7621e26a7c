"""
NASA Image and Video Library client for the curated image feed.

:copyright: (c) 2025 by Meir Miyara.
:license: MPL-2.0, see LICENSE for more details.
"""

import asyncio
import logging
import random
import ssl
from typing import Any, Dict, List, Optional

import aiohttp
import certifi

from nasa_curated.config import Config, LocationPolicy
from nasa_curated.models import ApodRecord, FailureKind, ImageRecord, Result
from nasa_curated.topics import today_topic

_LOG = logging.getLogger(__name__)

RETRY_STATUSES = {429, 500, 502, 503, 504}


def _primary_data(item: Dict[str, Any]) -> Dict[str, Any]:
    """First ``data`` entry of a search item, or an empty dict."""
    data = item.get("data") if isinstance(item, dict) else None
    if isinstance(data, list) and data and isinstance(data[0], dict):
        return data[0]
    return {}


def is_candidate(
    item: Dict[str, Any],
    min_description_length: int = 50,
    policy: LocationPolicy = LocationPolicy.IGNORE,
) -> bool:
    """Check whether a search item is worth showing."""
    data = _primary_data(item)
    if data.get("media_type") != "image" or not data.get("nasa_id"):
        return False
    description = data.get("description")
    if not isinstance(description, str) or len(description) <= min_description_length:
        return False
    if policy == LocationPolicy.REQUIRE and not data.get("location"):
        return False
    return True


def pick_link(links: Any, rel: str) -> str:
    """Href of the first link tagged ``rel``, else the first link, else ``""``."""
    if not isinstance(links, list):
        return ""
    links = [link for link in links if isinstance(link, dict)]
    for link in links:
        if link.get("rel") == rel and link.get("href"):
            return link["href"]
    if links:
        return links[0].get("href") or ""
    return ""


def item_to_record(item: Dict[str, Any]) -> ImageRecord:
    """Convert a search item into an ImageRecord."""
    data = _primary_data(item)
    links = item.get("links")
    remote_url = pick_link(links, "preview")
    return ImageRecord(
        id=str(data["nasa_id"]),
        remote_url=remote_url,
        remote_hd_url=pick_link(links, "original"),
        title=data.get("title"),
        description=data.get("description"),
        date=data.get("date_created"),
        location=data.get("location"),
        photographer=data.get("photographer") or data.get("secondary_creator"),
        # Not downloaded yet; the store replaces this with a file URI.
        local_path=remote_url,
    )


def select_items(
    items: List[Dict[str, Any]],
    count: int,
    rng: random.Random,
    policy: LocationPolicy = LocationPolicy.IGNORE,
) -> List[Dict[str, Any]]:
    """Randomly sample up to ``count`` items.

    With ``LocationPolicy.PREFER`` location-bearing items are drawn first
    and the remainder is filled from the rest.
    """
    if count <= 0 or not items:
        return []

    if policy == LocationPolicy.PREFER:
        located = [item for item in items if _primary_data(item).get("location")]
        others = [item for item in items if not _primary_data(item).get("location")]
        picked = rng.sample(located, min(count, len(located)))
        remaining = count - len(picked)
        if remaining > 0:
            picked.extend(rng.sample(others, min(remaining, len(others))))
        return picked

    return rng.sample(items, min(count, len(items)))


class NASAImageClient:
    """NASA image search client with robust networking."""

    def __init__(self, config: Config, rng: Optional[random.Random] = None):
        """Initialize NASA image client."""
        self._config = config
        self._rng = rng or random.Random()
        self._session: Optional[aiohttp.ClientSession] = None

    async def __aenter__(self):
        """Async context manager entry."""
        await self._ensure_session()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        """Async context manager exit."""
        await self.close()

    async def _ensure_session(self) -> None:
        """Ensure aiohttp session exists with robust networking config."""
        if self._session is None or self._session.closed:
            ssl_context = ssl.create_default_context(cafile=certifi.where())
            ssl_context.check_hostname = True
            ssl_context.verify_mode = ssl.CERT_REQUIRED

            connector = aiohttp.TCPConnector(
                ssl=ssl_context,
                limit=10,
                limit_per_host=5,
                ttl_dns_cache=300,
                use_dns_cache=True,
                keepalive_timeout=30,
            )

            timeout = aiohttp.ClientTimeout(
                total=self._config.request_timeout,
                connect=self._config.connect_timeout,
            )

            headers = {
                'User-Agent': 'Mozilla/5.0 (NASA Curated Image Cache) aiohttp',
                'Accept': 'application/json, image/*, */*',
                'Accept-Language': 'en-US,en;q=0.9',
            }

            self._session = aiohttp.ClientSession(
                timeout=timeout,
                connector=connector,
                headers=headers
            )

            _LOG.info("NASA HTTP session created with SSL verification")

    async def close(self) -> None:
        """Close the HTTP session."""
        if self._session and not self._session.closed:
            await self._session.close()

    def _get_api_key(self) -> str:
        """Get API key from configuration."""
        api_key = self._config.api_key
        return api_key if api_key else "DEMO_KEY"

    async def _request(self, url: str, params: Optional[Dict[str, Any]] = None, binary: bool = False) -> Result[Any]:
        """GET ``url`` and return decoded JSON (or raw bytes) as a Result."""
        await self._ensure_session()

        attempts = self._config.request_attempts
        failure: Result[Any] = Result.fail(FailureKind.NETWORK, "no attempt made")

        for attempt in range(attempts):
            last_attempt = attempt == attempts - 1
            try:
                _LOG.debug("Making request to %s (attempt %d)", url, attempt + 1)

                async with self._session.get(url, params=params) as response:
                    _LOG.debug("Response: HTTP %d from %s", response.status, url)

                    if response.status == 200:
                        if binary:
                            return Result.success(await response.read())
                        try:
                            return Result.success(await response.json(content_type=None))
                        except ValueError as ex:
                            _LOG.debug("Invalid JSON from %s: %s", url, ex)
                            return Result.fail(FailureKind.DECODE, str(ex))

                    failure = Result.fail(FailureKind.HTTP_STATUS, f"HTTP {response.status}")
                    if response.status in (401, 403):
                        _LOG.warning("Authentication error %d for %s", response.status, url)
                        return failure
                    if response.status not in RETRY_STATUSES:
                        _LOG.debug("HTTP %d for %s", response.status, url)
                        return failure
                    _LOG.debug("Retryable HTTP %d for %s", response.status, url)

            except asyncio.TimeoutError:
                _LOG.debug("Timeout for %s (attempt %d)", url, attempt + 1)
                failure = Result.fail(FailureKind.NETWORK, "timeout")
            except aiohttp.ClientConnectorError as ex:
                _LOG.debug("Connection error for %s: %s", url, ex)
                failure = Result.fail(FailureKind.NETWORK, str(ex))
            except aiohttp.ClientError as ex:
                _LOG.debug("Client error for %s: %s", url, ex)
                return Result.fail(FailureKind.NETWORK, str(ex))
            except Exception as ex:
                _LOG.error("Unexpected error for %s: %s", url, ex)
                return Result.fail(FailureKind.NETWORK, str(ex))

            if not last_attempt:
                await asyncio.sleep(self._config.retry_delay)

        return failure

    async def search(self, topic: str) -> Result[List[Dict[str, Any]]]:
        """Search the image library for ``topic``, images only."""
        params = {
            "q": topic,
            "media_type": "image",
            "page_size": self._config.page_size,
        }
        result = await self._request(self._config.search_url, params)
        if not result.ok:
            return result

        data = result.value
        collection = data.get("collection") if isinstance(data, dict) else None
        if not isinstance(collection, dict):
            return Result.fail(FailureKind.DECODE, "response has no collection")
        items = collection.get("items") or []
        if not isinstance(items, list):
            return Result.fail(FailureKind.DECODE, "collection items is not a list")
        return Result.success(items)

    async def fetch_images(self, topic: Optional[str] = None, count: Optional[int] = None) -> List[ImageRecord]:
        """Fetch up to ``count`` randomly chosen images for ``topic``.

        Any failure is logged and yields an empty list.
        """
        topic = topic or today_topic(topics=self._config.topics)
        count = self._config.images_per_day if count is None else count
        policy = self._config.location_policy

        _LOG.debug("Searching image library for '%s'...", topic)
        result = await self.search(topic)
        if not result.ok:
            _LOG.warning("Image library search failed for '%s': %s (%s)",
                         topic, result.failure.value, result.detail)
            return []

        candidates = [
            item for item in result.value
            if is_candidate(item, self._config.min_description_length, policy)
        ]
        selected = select_items(candidates, count, self._rng, policy)
        records = [item_to_record(item) for item in selected]

        _LOG.info("Image library: %d results, %d candidates, %d selected for '%s'",
                  len(result.value), len(candidates), len(records), topic)
        return records

    async def fetch_binary(self, url: str) -> Result[bytes]:
        """Download raw bytes from ``url``."""
        return await self._request(url, binary=True)

    async def fetch_apod(self) -> Optional[ApodRecord]:
        """Fetch the Astronomy Picture of the Day, None when unavailable."""
        _LOG.debug("Fetching APOD from NASA API...")
        params = {"api_key": self._get_api_key()}
        result = await self._request(self._config.apod_url, params)

        if result.ok and isinstance(result.value, dict) and result.value.get("title"):
            apod = ApodRecord.from_api(result.value)
            _LOG.info("APOD data fetched: %s", apod.title[:30])
            return apod

        _LOG.warning("APOD API failed: %s", result.detail or "unexpected payload")
        return None
