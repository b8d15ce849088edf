"""Recency filtering of the synchronized item list."""

import re
from datetime import datetime, timezone
from typing import Iterable, List, Optional

from .models import Item

SECONDS_PER_DAY = 24 * 60 * 60

_DAYS_PATTERN = re.compile(r"[+-]?[0-9]+")


def age_in_days(item: Item, now: datetime) -> int:
    """Whole days since publication, truncated toward zero."""
    return int((now - item.pub_date).total_seconds() / SECONDS_PER_DAY)


def filter_by_days(
    items: Iterable[Item], days: int, now: Optional[datetime] = None
) -> List[Item]:
    """Keep items published within the last ``days`` whole days.

    Args:
        items: Synchronized items, newest first
        days: Recency window; 0 disables filtering
        now: Reference time (defaults to the current UTC time)

    Returns:
        Matching items in their original order
    """
    if days <= 0:
        return list(items)

    now = now or datetime.now(timezone.utc)
    return [item for item in items if age_in_days(item, now) <= days]


def parse_days(text: str) -> int:
    """Parse the day-filter prompt input.

    Empty, non-numeric or negative input means "no filter" (0).
    """
    if not _DAYS_PATTERN.fullmatch(text):
        return 0

    days = int(text)
    if days < 0:
        return 0
    return days
