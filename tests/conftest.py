"""Shared fixtures for the curated image cache tests"""

from contextlib import asynccontextmanager
from typing import Any, Dict, List, Optional

import pytest
from aiohttp import test_utils, web

from nasa_curated.config import Config
from nasa_curated.models import FailureKind, ImageRecord, Result

LONG_DESCRIPTION = (
    "A sweeping view of a star-forming region captured in infrared light, "
    "showing pillars of gas and dust."
)


class FakeDownloader:
    """Serves canned bytes per URL, fails for anything else"""

    def __init__(self, payloads: Optional[Dict[str, bytes]] = None):
        self.payloads = payloads or {}
        self.calls: List[str] = []

    async def fetch_binary(self, url: str) -> Result[bytes]:
        self.calls.append(url)
        if url in self.payloads:
            return Result.success(self.payloads[url])
        return Result.fail(FailureKind.HTTP_STATUS, "HTTP 404")


@pytest.fixture
def make_item():
    """Factory for image library search items"""

    def _make_item(
        nasa_id: str = "PIA00001",
        media_type: str = "image",
        description: Optional[str] = LONG_DESCRIPTION,
        location: Optional[str] = None,
        photographer: Optional[str] = None,
        secondary_creator: Optional[str] = None,
        links: Optional[List[Dict[str, Any]]] = None,
    ) -> Dict[str, Any]:
        data = {
            "nasa_id": nasa_id,
            "title": f"Title {nasa_id}",
            "media_type": media_type,
            "date_created": "2022-07-12T00:00:00Z",
        }
        if description is not None:
            data["description"] = description
        if location is not None:
            data["location"] = location
        if photographer is not None:
            data["photographer"] = photographer
        if secondary_creator is not None:
            data["secondary_creator"] = secondary_creator
        if links is None:
            links = [
                {"rel": "preview", "href": f"https://images-assets.nasa.gov/image/{nasa_id}/{nasa_id}~thumb.jpg"},
                {"rel": "original", "href": f"https://images-assets.nasa.gov/image/{nasa_id}/{nasa_id}~orig.jpg"},
            ]
        return {"data": [data], "links": links}

    return _make_item


@pytest.fixture
def make_record():
    """Factory for ImageRecord instances"""

    def _make_record(image_id: str = "PIA00001", remote_url: Optional[str] = None) -> ImageRecord:
        url = f"https://example.test/{image_id}.jpg" if remote_url is None else remote_url
        return ImageRecord(
            id=image_id,
            remote_url=url,
            remote_hd_url=url,
            title=f"Title {image_id}",
            description=LONG_DESCRIPTION,
            local_path=url,
        )

    return _make_record


@asynccontextmanager
async def serving(routes):
    """Run a local aiohttp server with ``routes`` for the duration of the block"""
    app = web.Application()
    for path, handler in routes.items():
        app.router.add_get(path, handler)
    async with test_utils.TestServer(app) as server:
        yield server


def server_config(server, base_dir, **overrides) -> Config:
    """Config pointing every endpoint at ``server`` and the cache at ``base_dir``"""
    return Config(overrides={
        "base_dir": str(base_dir),
        "search_url": str(server.make_url("/search")),
        "apod_url": str(server.make_url("/apod")),
        "retry_delay": 0,
        **overrides,
    })


@pytest.fixture
def library_routes(make_item):
    """Factory for image library routes; search queries are appended to ``calls``"""

    def _library_routes(calls: List[str], count: int = 4) -> Dict[str, Any]:
        async def search(request):
            calls.append(request.query.get("q", ""))
            items = []
            for i in range(count):
                href = str(request.url.with_path(f"/img/img{i}.jpg").with_query(None))
                items.append(make_item(nasa_id=f"img{i}", links=[{"rel": "preview", "href": href}]))
            return web.json_response({"collection": {"items": items}})

        async def image(request):
            return web.Response(body=b"\xff\xd8jpeg", content_type="image/jpeg")

        async def apod(request):
            return web.json_response({
                "date": "2025-03-14",
                "title": "Pi Day Nebula",
                "explanation": "A nebula.",
                "url": str(request.url.with_path("/img/apod.jpg").with_query(None)),
                "media_type": "image",
            })

        return {"/search": search, "/img/{name}": image, "/apod": apod}

    return _library_routes
