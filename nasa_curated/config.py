"""
Configuration management for the NASA curated image cache.

:copyright: (c) 2025 by Meir Miyara.
:license: MPL-2.0, see LICENSE for more details.
"""

import json
import logging
import os
from enum import Enum
from typing import Any, Dict, List, Optional

_LOG = logging.getLogger(__name__)

TOPICS = ["james webb", "nebula", "black hole", "deep field", "planets", "galaxy"]


class LocationPolicy(str, Enum):
    """How candidate images carrying location data are treated."""

    IGNORE = "ignore"
    PREFER = "prefer"
    REQUIRE = "require"


DEFAULT_CONFIG = {
    "api_key": "",
    "base_dir": os.path.join(os.path.expanduser("~"), ".nasa_curated"),
    "search_url": "https://images-api.nasa.gov/search",
    "apod_url": "https://api.nasa.gov/planetary/apod",
    "page_size": 20,
    "images_per_day": 2,
    "min_description_length": 50,
    "location_policy": LocationPolicy.IGNORE.value,
    "topics": list(TOPICS),
    "image_extension": ".jpg",
    "request_timeout": 15,
    "connect_timeout": 5,
    "request_attempts": 1,
    "retry_delay": 1.0,
}


class Config:
    """Configuration management for the curated image cache."""

    def __init__(self, config_file_path: Optional[str] = None, overrides: Optional[Dict[str, Any]] = None):
        """Initialize configuration."""
        self._config_file_path = config_file_path
        self._config: Dict[str, Any] = {}
        self.load()
        if overrides:
            self._config.update(overrides)

    @property
    def config_file_path(self) -> Optional[str]:
        """Path of the backing JSON file, if any."""
        return self._config_file_path

    def load(self) -> None:
        """Load configuration from file."""
        self._config = DEFAULT_CONFIG.copy()
        self._config["topics"] = list(TOPICS)
        if not self._config_file_path:
            return
        try:
            if os.path.exists(self._config_file_path):
                with open(self._config_file_path, "r", encoding="utf-8") as file:
                    data = json.load(file)
                if not isinstance(data, dict):
                    raise ValueError("configuration root must be an object")
                self._config.update(data)
                _LOG.info("Configuration loaded from %s", self._config_file_path)
            else:
                _LOG.info("Configuration file not found, using defaults")
        except (OSError, ValueError) as ex:
            _LOG.error("Failed to load configuration: %s", ex)
            self._config = DEFAULT_CONFIG.copy()
            self._config["topics"] = list(TOPICS)

    def save(self) -> None:
        """Save configuration to file."""
        if not self._config_file_path:
            _LOG.debug("No configuration file path, nothing to save")
            return
        try:
            directory = os.path.dirname(self._config_file_path)
            if directory:
                os.makedirs(directory, exist_ok=True)
            with open(self._config_file_path, "w", encoding="utf-8") as file:
                json.dump(self._config, file, indent=2)
                _LOG.info("Configuration saved to %s", self._config_file_path)
        except OSError as ex:
            _LOG.error("Failed to save configuration: %s", ex)

    def get(self, key: str, default: Any = None) -> Any:
        """Get configuration value."""
        return self._config.get(key, default)

    def set(self, key: str, value: Any) -> None:
        """Set configuration value."""
        self._config[key] = value

    def update(self, data: Dict[str, Any]) -> None:
        """Update configuration with new data."""
        self._config.update(data)
        self.save()

    @property
    def api_key(self) -> str:
        """Get NASA API key."""
        return self._config.get("api_key", "")

    @property
    def base_dir(self) -> str:
        """Directory holding the metadata file and cached images."""
        return os.path.expanduser(self._config.get("base_dir") or DEFAULT_CONFIG["base_dir"])

    @property
    def search_url(self) -> str:
        """Get image library search endpoint."""
        return self._config.get("search_url", DEFAULT_CONFIG["search_url"])

    @property
    def apod_url(self) -> str:
        """Get Astronomy Picture of the Day endpoint."""
        return self._config.get("apod_url", DEFAULT_CONFIG["apod_url"])

    @property
    def page_size(self) -> int:
        """Get number of search results requested."""
        return int(self._config.get("page_size", 20))

    @property
    def images_per_day(self) -> int:
        """Get number of curated images picked per day."""
        return int(self._config.get("images_per_day", 2))

    @property
    def min_description_length(self) -> int:
        """Get description length a candidate must exceed."""
        return int(self._config.get("min_description_length", 50))

    @property
    def location_policy(self) -> LocationPolicy:
        """Get location policy, raises ValueError when unknown."""
        return LocationPolicy(self._config.get("location_policy", LocationPolicy.IGNORE.value))

    @property
    def topics(self) -> List[str]:
        """Get ordered topic rotation."""
        return list(self._config.get("topics") or TOPICS)

    @property
    def image_extension(self) -> str:
        """Get file extension used for cached images."""
        extension = str(self._config.get("image_extension") or ".jpg")
        return extension if extension.startswith(".") else f".{extension}"

    @property
    def request_timeout(self) -> float:
        """Get total request timeout in seconds."""
        return float(self._config.get("request_timeout", 15))

    @property
    def connect_timeout(self) -> float:
        """Get connect timeout in seconds."""
        return float(self._config.get("connect_timeout", 5))

    @property
    def request_attempts(self) -> int:
        """Get number of attempts per request, at least one."""
        return max(1, int(self._config.get("request_attempts", 1)))

    @property
    def retry_delay(self) -> float:
        """Get pause between attempts in seconds."""
        return float(self._config.get("retry_delay", 1.0))
