"""
NASA curated daily image cache.

Picks a space topic for the day, pulls a couple of matching photographs
from the NASA Image and Video Library, and keeps them on disk so the rest
of the day is served locally.

:copyright: (c) 2025 by Meir Miyara.
:license: MPL-2.0, see LICENSE for more details.
"""

from nasa_curated.config import TOPICS
from nasa_curated.curator import get_curated_images
from nasa_curated.topics import today_topic

__version__ = "0.1.0"
__author__ = "Meir Miyara"
__email__ = "meir.miyara@gmail.com"

__all__ = ["TOPICS", "get_curated_images", "today_topic"]
