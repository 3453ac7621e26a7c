"""
Daily curated image cache.

Serves the same images all day and refreshes them from the image library
once the date rolls over.

:copyright: (c) 2025 by Meir Miyara.
:license: MPL-2.0, see LICENSE for more details.
"""

import asyncio
import logging
import weakref
from datetime import date
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Union

from nasa_curated.client import NASAImageClient
from nasa_curated.config import Config
from nasa_curated.models import CacheMetadata, ImageRecord
from nasa_curated.store import LocalStore
from nasa_curated.topics import today_topic

_LOG = logging.getLogger(__name__)

# Per event loop, one lock per cache directory.
_refresh_locks: "weakref.WeakKeyDictionary[asyncio.AbstractEventLoop, Dict[str, asyncio.Lock]]" = (
    weakref.WeakKeyDictionary()
)


def refresh_lock(base_dir: Union[str, Path]) -> asyncio.Lock:
    """Lock shared by every cache rooted at ``base_dir`` on the running loop."""
    locks = _refresh_locks.setdefault(asyncio.get_running_loop(), {})
    key = str(Path(base_dir).expanduser().resolve())
    if key not in locks:
        locks[key] = asyncio.Lock()
    return locks[key]


def is_fresh(metadata: CacheMetadata, today: str) -> bool:
    """Check if stored images were fetched ``today`` and are usable."""
    return metadata.last_fetch_date == today and len(metadata.images) > 0


class CuratedImageCache:
    """Decides between cached and freshly fetched images."""

    def __init__(
        self,
        config: Config,
        client: NASAImageClient,
        store: Optional[LocalStore] = None,
        clock: Optional[Callable[[], date]] = None,
    ):
        """Initialize the cache."""
        self._config = config
        self._client = client
        self._store = store or LocalStore(config.base_dir, client, config.image_extension)
        self._clock = clock or date.today

    @property
    def store(self) -> LocalStore:
        return self._store

    def today_topic(self) -> str:
        """Topic for the cache's current date."""
        return today_topic(self._clock(), self._config.topics)

    async def get_curated_images(self) -> List[ImageRecord]:
        """Return today's images, refreshing them at most once a day."""
        async with refresh_lock(self._store.base_dir):
            self._store.ensure_initialized()

            today = self._clock().isoformat()
            metadata = self._store.read_metadata()

            if is_fresh(metadata, today):
                _LOG.info("Using cached images for %s", today)
                return metadata.images

            topic = self.today_topic()
            _LOG.info("Fetching new curated images for '%s'...", topic)
            images = await self._client.fetch_images(topic, self._config.images_per_day)

            if images:
                cached = await self._store.download_and_cache(images)
                self._store.write_metadata(CacheMetadata(last_fetch_date=today, images=cached))
                _LOG.info("Curated %d images for %s", len(cached), today)
                return cached

            _LOG.warning("No new images available, serving %d cached images",
                         len(metadata.images))
            return metadata.images

    def status(self) -> Dict[str, Any]:
        """Get cache statistics."""
        metadata = self._store.read_metadata()
        today = self._clock().isoformat()
        return {
            "today": today,
            "topic": self.today_topic(),
            "last_fetch_date": metadata.last_fetch_date,
            "fresh": is_fresh(metadata, today),
            "image_count": len(metadata.images),
            "cached_files": [path.name for path in self._store.cached_files()],
        }


async def get_curated_images(config: Optional[Config] = None) -> List[ImageRecord]:
    """One-shot helper: build a client and cache, return today's images."""
    config = config or Config()
    async with NASAImageClient(config) as client:
        return await CuratedImageCache(config, client).get_curated_images()
