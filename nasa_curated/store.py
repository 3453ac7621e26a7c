"""
Local persistence for curated image metadata and downloaded files.

Layout under the base directory::

    image_metadata.json
    cached_images/<id>.jpg

:copyright: (c) 2025 by Meir Miyara.
:license: MPL-2.0, see LICENSE for more details.
"""

import json
import logging
import os
import re
import tempfile
from dataclasses import replace
from pathlib import Path
from typing import List, Optional, Sequence, Union

from nasa_curated.client import NASAImageClient
from nasa_curated.models import CacheMetadata, FailureKind, ImageRecord, Result

_LOG = logging.getLogger(__name__)

METADATA_FILENAME = "image_metadata.json"
IMAGE_DIRNAME = "cached_images"

_UNSAFE_CHARS = re.compile(r"[^A-Za-z0-9._-]")


def _atomic_write(path: Path, data: bytes) -> None:
    """Write ``data`` to a sibling temp file and move it over ``path``."""
    fd, tmp_name = tempfile.mkstemp(dir=str(path.parent), prefix=f".{path.name}.", suffix=".part")
    try:
        with os.fdopen(fd, "wb") as file:
            file.write(data)
        os.replace(tmp_name, path)
    except BaseException:
        try:
            os.unlink(tmp_name)
        except OSError:
            pass
        raise


class LocalStore:
    """Owns the metadata file and the cached image directory."""

    def __init__(
        self,
        base_dir: Union[str, Path],
        downloader: Optional[NASAImageClient] = None,
        image_extension: str = ".jpg",
    ):
        """Initialize the store rooted at ``base_dir``."""
        self._base_dir = Path(base_dir).expanduser()
        self._downloader = downloader
        self._image_extension = image_extension

    @property
    def base_dir(self) -> Path:
        return self._base_dir

    @property
    def image_dir(self) -> Path:
        return self._base_dir / IMAGE_DIRNAME

    @property
    def metadata_path(self) -> Path:
        return self._base_dir / METADATA_FILENAME

    def image_path(self, image_id: str) -> Path:
        """Cached file location for an image identifier."""
        safe_id = _UNSAFE_CHARS.sub("_", image_id).lstrip(".") or "_"
        return self.image_dir / f"{safe_id}{self._image_extension}"

    def ensure_initialized(self) -> None:
        """Create the image directory and default metadata file if missing."""
        try:
            self.image_dir.mkdir(parents=True, exist_ok=True)
            if not self.metadata_path.exists():
                _LOG.info("Initializing image cache at %s", self._base_dir)
                self.write_metadata(CacheMetadata())
        except OSError as ex:
            _LOG.error("Error initializing cache: %s", ex)

    def load_metadata(self) -> Result[CacheMetadata]:
        """Read metadata, classifying any failure."""
        if not self.metadata_path.exists():
            return Result.success(CacheMetadata())
        try:
            with open(self.metadata_path, "r", encoding="utf-8") as file:
                data = json.load(file)
        except OSError as ex:
            return Result.fail(FailureKind.STORAGE, str(ex))
        except ValueError as ex:
            return Result.fail(FailureKind.DECODE, str(ex))

        try:
            return Result.success(CacheMetadata.from_dict(data))
        except (ValueError, TypeError) as ex:
            return Result.fail(FailureKind.DECODE, str(ex))

    def read_metadata(self) -> CacheMetadata:
        """Read metadata, falling back to empty defaults."""
        result = self.load_metadata()
        if not result.ok:
            _LOG.error("Error reading metadata (%s): %s", result.failure.value, result.detail)
        return result.unwrap_or(CacheMetadata())

    def write_metadata(self, metadata: CacheMetadata) -> bool:
        """Replace the metadata file in full. Returns False on failure."""
        try:
            payload = json.dumps(metadata.to_dict(), indent=2).encode("utf-8")
            self._base_dir.mkdir(parents=True, exist_ok=True)
            _atomic_write(self.metadata_path, payload)
            return True
        except (OSError, TypeError, ValueError) as ex:
            _LOG.error("Error saving metadata: %s", ex)
            return False

    async def _download(self, image: ImageRecord, path: Path) -> Result[Path]:
        if self._downloader is None:
            return Result.fail(FailureKind.NETWORK, "no downloader configured")

        result = await self._downloader.fetch_binary(image.remote_url)
        if not result.ok:
            return Result.fail(result.failure, result.detail)
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            _atomic_write(path, result.value)
        except OSError as ex:
            return Result.fail(FailureKind.STORAGE, str(ex))
        return Result.success(path)

    async def download_and_cache(self, images: Sequence[ImageRecord]) -> List[ImageRecord]:
        """Make local copies of ``images``, one at a time, in order.

        Records without a remote URL are dropped. A record whose download
        fails is kept with its remote URL as ``local_path``.
        """
        cached: List[ImageRecord] = []

        for image in images:
            if not image.remote_url:
                _LOG.debug("Skipping image %s without remote URL", image.id)
                continue

            path = self.image_path(image.id)
            if path.exists():
                _LOG.debug("Image %s already cached", image.id)
                cached.append(replace(image, local_path=path.resolve().as_uri()))
                continue

            _LOG.info("Caching image: %s", image.title or image.id)
            result = await self._download(image, path)
            if result.ok:
                cached.append(replace(image, local_path=path.resolve().as_uri()))
            else:
                _LOG.warning("Failed to download %s (%s: %s), using remote URL",
                             image.remote_url, result.failure.value, result.detail)
                cached.append(replace(image, local_path=image.remote_url))

        return cached

    def cached_files(self) -> List[Path]:
        """Image files currently on disk."""
        if not self.image_dir.is_dir():
            return []
        return sorted(self.image_dir.glob(f"*{self._image_extension}"))

    def clear(self) -> int:
        """Delete cached images and reset metadata. Returns files removed."""
        removed = 0
        for path in self.cached_files():
            try:
                path.unlink()
                removed += 1
            except OSError as ex:
                _LOG.error("Error removing %s: %s", path, ex)
        self.write_metadata(CacheMetadata())
        _LOG.info("Cleared image cache: %d files removed", removed)
        return removed
