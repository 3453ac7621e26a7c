"""
Topic of the day rotation.

:copyright: (c) 2025 by Meir Miyara.
:license: MPL-2.0, see LICENSE for more details.
"""

from datetime import date
from typing import Optional, Sequence

from nasa_curated.config import TOPICS


def day_of_year(day: date) -> int:
    """1-indexed day count since Jan 1 of the year."""
    return day.timetuple().tm_yday


def today_topic(today: Optional[date] = None, topics: Sequence[str] = TOPICS) -> str:
    """Return the topic for ``today``; the same day always yields the same topic."""
    if not topics:
        raise ValueError("topic list is empty")
    day = today or date.today()
    return topics[day_of_year(day) % len(topics)]
