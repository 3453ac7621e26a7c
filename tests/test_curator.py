"""Tests for the daily curated image cache"""

import asyncio
from datetime import date
from unittest.mock import AsyncMock, patch

from conftest import FakeDownloader, serving, server_config

from nasa_curated.client import NASAImageClient
from nasa_curated.config import Config
from nasa_curated.curator import CuratedImageCache, get_curated_images, is_fresh, refresh_lock
from nasa_curated.models import CacheMetadata
from nasa_curated.store import LocalStore
from nasa_curated.topics import today_topic

TODAY = date(2025, 3, 14)


def _build(tmp_path, fetched=None, payloads=None, clock=lambda: TODAY):
    config = Config(overrides={"base_dir": str(tmp_path)})
    client = AsyncMock()
    client.fetch_images.return_value = fetched or []
    store = LocalStore(tmp_path, FakeDownloader(payloads or {}))
    return CuratedImageCache(config, client, store, clock=clock), client, store


class TestIsFresh:
    """Tests for is_fresh"""

    def test_fresh_requires_date_and_images(self, make_record):
        assert is_fresh(CacheMetadata("2025-03-14", [make_record()]), "2025-03-14") is True
        assert is_fresh(CacheMetadata("2025-03-14", []), "2025-03-14") is False
        assert is_fresh(CacheMetadata("2025-03-13", [make_record()]), "2025-03-14") is False
        assert is_fresh(CacheMetadata(), "2025-03-14") is False


class TestGetCuratedImages:
    """Tests for CuratedImageCache.get_curated_images"""

    def test_first_run_fetches_and_persists(self, tmp_path, make_record):
        fetched = [make_record("a"), make_record("b")]
        payloads = {image.remote_url: b"img" for image in fetched}
        cache, client, store = _build(tmp_path, fetched, payloads)

        images = asyncio.run(cache.get_curated_images())

        client.fetch_images.assert_awaited_once_with(today_topic(TODAY), 2)
        assert [image.id for image in images] == ["a", "b"]
        assert all(image.local_path.startswith("file://") for image in images)

        metadata = store.read_metadata()
        assert metadata.last_fetch_date == "2025-03-14"
        assert metadata.images == images

    def test_fresh_cache_skips_network(self, tmp_path, make_record):
        cache, client, store = _build(tmp_path)
        stored = [make_record("kept")]
        store.write_metadata(CacheMetadata("2025-03-14", stored))

        images = asyncio.run(cache.get_curated_images())

        client.fetch_images.assert_not_awaited()
        assert images == stored

    def test_same_day_calls_are_reads(self, tmp_path, make_record):
        fetched = [make_record("a")]
        cache, client, _ = _build(tmp_path, fetched, {fetched[0].remote_url: b"img"})

        first = asyncio.run(cache.get_curated_images())
        second = asyncio.run(cache.get_curated_images())

        assert client.fetch_images.await_count == 1
        assert first == second

    def test_new_day_refreshes(self, tmp_path, make_record):
        fetched = [make_record("new")]
        cache, client, store = _build(tmp_path, fetched, {fetched[0].remote_url: b"img"})
        store.write_metadata(CacheMetadata("2025-03-13", [make_record("old")]))

        images = asyncio.run(cache.get_curated_images())

        assert [image.id for image in images] == ["new"]
        assert store.read_metadata().last_fetch_date == "2025-03-14"

    def test_empty_images_today_is_stale(self, tmp_path, make_record):
        fetched = [make_record("a")]
        cache, client, store = _build(tmp_path, fetched, {fetched[0].remote_url: b"img"})
        store.write_metadata(CacheMetadata("2025-03-14", []))

        asyncio.run(cache.get_curated_images())

        client.fetch_images.assert_awaited_once()

    def test_fetch_failure_serves_previous_images(self, tmp_path, make_record):
        cache, client, store = _build(tmp_path, fetched=[])
        previous = [make_record("yesterday")]
        store.write_metadata(CacheMetadata("2025-03-13", previous))
        before = store.metadata_path.read_bytes()

        images = asyncio.run(cache.get_curated_images())

        assert images == previous
        assert store.metadata_path.read_bytes() == before

    def test_first_run_with_fetch_failure_is_empty(self, tmp_path):
        cache, client, store = _build(tmp_path, fetched=[])

        assert asyncio.run(cache.get_curated_images()) == []
        client.fetch_images.assert_awaited_once()
        assert store.read_metadata().last_fetch_date is None

    def test_partial_download_failure(self, tmp_path, make_record):
        fetched = [make_record("ok"), make_record("broken")]
        cache, _, store = _build(tmp_path, fetched, {fetched[0].remote_url: b"img"})

        images = asyncio.run(cache.get_curated_images())

        assert len(images) == 2
        assert images[0].local_path.startswith("file://")
        assert images[1].local_path == fetched[1].remote_url
        assert store.read_metadata().images == images

    def test_concurrent_calls_refresh_once(self, tmp_path, make_record):
        fetched = [make_record("a")]
        cache, client, _ = _build(tmp_path, fetched, {fetched[0].remote_url: b"img"})

        async def both():
            return await asyncio.gather(cache.get_curated_images(), cache.get_curated_images())

        first, second = asyncio.run(both())

        assert client.fetch_images.await_count == 1
        assert first == second


class TestStatus:
    """Tests for CuratedImageCache.status"""

    def test_status_reports_cache_state(self, tmp_path, make_record):
        fetched = [make_record("a")]
        cache, _, _ = _build(tmp_path, fetched, {fetched[0].remote_url: b"img"})

        before = cache.status()
        asyncio.run(cache.get_curated_images())
        after = cache.status()

        assert before["fresh"] is False
        assert before["last_fetch_date"] is None
        assert after == {
            "today": "2025-03-14",
            "topic": today_topic(TODAY),
            "last_fetch_date": "2025-03-14",
            "fresh": True,
            "image_count": 1,
            "cached_files": ["a.jpg"],
        }


class TestSharedRefresh:
    """Tests for caches sharing one directory and the one-shot helper"""

    def test_two_caches_on_one_directory_refresh_once(self, tmp_path, make_record):
        fetched = [make_record("a")]
        first_cache, first_client, _ = _build(tmp_path, fetched, {fetched[0].remote_url: b"img"})
        second_cache, second_client, _ = _build(tmp_path, fetched, {fetched[0].remote_url: b"img"})

        async def both():
            return await asyncio.gather(first_cache.get_curated_images(), second_cache.get_curated_images())

        first, second = asyncio.run(both())

        assert first_client.fetch_images.await_count + second_client.fetch_images.await_count == 1
        assert first == second

    def test_refresh_lock_is_per_directory(self, tmp_path):
        async def locks():
            return (
                refresh_lock(tmp_path / "a"),
                refresh_lock(tmp_path / "a"),
                refresh_lock(tmp_path / "b"),
            )

        same, again, other = asyncio.run(locks())
        assert same is again
        assert same is not other

    def test_overlapping_helper_calls_search_once(self, tmp_path, library_routes):
        calls = []

        async def scenario():
            async with serving(library_routes(calls)) as server:
                config = server_config(server, tmp_path)
                return await asyncio.gather(get_curated_images(config), get_curated_images(config))

        first, second = asyncio.run(scenario())

        assert len(calls) == 1
        assert len(first) == 2
        assert first == second
        assert all(image.local_path.startswith("file://") for image in first)

    def test_helper_serves_fresh_second_call_and_closes_sessions(self, tmp_path, library_routes):
        calls = []
        sessions = []
        original_close = NASAImageClient.close

        async def tracking_close(self):
            sessions.append(self._session)
            await original_close(self)

        async def scenario():
            async with serving(library_routes(calls)) as server:
                config = server_config(server, tmp_path)
                first = await get_curated_images(config)
                second = await get_curated_images(config)
                return first, second

        with patch.object(NASAImageClient, "close", tracking_close):
            first, second = asyncio.run(scenario())

        assert len(calls) == 1
        assert second == first
        assert len(sessions) == 2
        assert all(session.closed for session in sessions)
