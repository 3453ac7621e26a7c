"""
Data models for the curated image cache.

:copyright: (c) 2025 by Meir Miyara.
:license: MPL-2.0, see LICENSE for more details.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Generic, List, Optional, TypeVar

T = TypeVar("T")


class FailureKind(str, Enum):
    """Where a degraded operation failed."""

    NETWORK = "network"
    HTTP_STATUS = "http_status"
    DECODE = "decode"
    STORAGE = "storage"


@dataclass(frozen=True)
class Result(Generic[T]):
    """Either a value or a classified failure."""

    value: Optional[T] = None
    failure: Optional[FailureKind] = None
    detail: str = ""

    @property
    def ok(self) -> bool:
        return self.failure is None

    @classmethod
    def success(cls, value: T) -> "Result[T]":
        return cls(value=value)

    @classmethod
    def fail(cls, failure: FailureKind, detail: str = "") -> "Result[T]":
        return cls(failure=failure, detail=detail)

    def unwrap_or(self, default: T) -> T:
        """Return the value, or ``default`` when this is a failure."""
        return self.value if self.ok else default


def _optional_str(value: Any) -> Optional[str]:
    if value is None:
        return None
    return str(value)


@dataclass
class ImageRecord:
    """One curated image and where to find it."""
    id: str
    remote_url: str
    remote_hd_url: str = ""
    title: Optional[str] = None
    description: Optional[str] = None
    date: Optional[str] = None
    location: Optional[str] = None
    photographer: Optional[str] = None
    local_path: str = ""

    def __post_init__(self):
        # Until a local copy exists the remote URL stands in for both.
        self.remote_hd_url = self.remote_hd_url or self.remote_url
        self.local_path = self.local_path or self.remote_url

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "description": self.description,
            "date": self.date,
            "location": self.location,
            "photographer": self.photographer,
            "remoteUrl": self.remote_url,
            "remoteHdUrl": self.remote_hd_url,
            "localPath": self.local_path,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ImageRecord":
        """Build a record from its JSON form.

        Older metadata files written by the mobile app used ``url`` and
        ``hdurl`` instead of ``remoteUrl`` and ``remoteHdUrl``.
        """
        if not isinstance(data, dict) or not data.get("id"):
            raise ValueError(f"invalid image record: {data!r}")
        remote_url = data.get("remoteUrl", data.get("url")) or ""
        return cls(
            id=str(data["id"]),
            remote_url=remote_url,
            remote_hd_url=data.get("remoteHdUrl", data.get("hdurl")) or "",
            title=_optional_str(data.get("title")),
            description=_optional_str(data.get("description")),
            date=_optional_str(data.get("date")),
            location=_optional_str(data.get("location")),
            photographer=_optional_str(data.get("photographer")),
            local_path=data.get("localPath") or "",
        )


@dataclass
class CacheMetadata:
    """Persisted state: the day of the last refresh and its images."""
    last_fetch_date: Optional[str] = None
    images: List[ImageRecord] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "lastFetchDate": self.last_fetch_date,
            "images": [image.to_dict() for image in self.images],
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "CacheMetadata":
        if not isinstance(data, dict):
            raise ValueError("metadata root must be an object")
        last_fetch_date = data.get("lastFetchDate")
        if last_fetch_date is not None and not isinstance(last_fetch_date, str):
            raise ValueError(f"invalid lastFetchDate: {last_fetch_date!r}")
        images = data.get("images")
        if images is None:
            images = []
        if not isinstance(images, list):
            raise ValueError("images must be a list")
        return cls(
            last_fetch_date=last_fetch_date,
            images=[ImageRecord.from_dict(item) for item in images],
        )


@dataclass
class ApodRecord:
    """Astronomy Picture of the Day entry."""
    date: str
    title: str
    explanation: str
    url: str
    hd_url: str = ""
    media_type: str = "image"
    copyright: Optional[str] = None

    @classmethod
    def from_api(cls, data: Dict[str, Any]) -> "ApodRecord":
        url = data.get("url") or ""
        return cls(
            date=data.get("date", ""),
            title=data.get("title", ""),
            explanation=data.get("explanation", ""),
            url=url,
            hd_url=data.get("hdurl") or url,
            media_type=data.get("media_type", "image"),
            copyright=_optional_str(data.get("copyright")),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "date": self.date,
            "title": self.title,
            "explanation": self.explanation,
            "url": self.url,
            "hdurl": self.hd_url,
            "media_type": self.media_type,
            "copyright": self.copyright,
        }
