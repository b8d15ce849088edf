"""Conversion of raw feed entries into canonical Items."""

import logging
from datetime import datetime, timedelta, timezone
from typing import Iterable, List, Optional, Sequence

from .models import Item, RawEntry

logger = logging.getLogger(__name__)

# Tried in order; the first format that parses wins.
DATE_FORMATS = [
    "%a, %d %b %Y %H:%M:%S %z",  # RFC 1123 with numeric offset
    "%a, %d %b %Y %H:%M:%S %Z",  # RFC 1123 with named zone
    "%a, %d %b %Y %H:%M:%S GMT",  # RFC 1123 GMT
    "%Y-%m-%dT%H:%M:%S%z",  # RFC 3339
    "%Y-%m-%dT%H:%M:%SZ",  # RFC 3339 UTC
    "%Y-%m-%d %H:%M:%S",  # Simple format
    "%b %d, %Y %H:%M:%S",  # Alternative format
]

# RFC 822 zone names. Unknown abbreviations are read as UTC.
ZONE_OFFSETS = {
    "UT": 0,
    "UTC": 0,
    "GMT": 0,
    "EST": -5,
    "EDT": -4,
    "CST": -6,
    "CDT": -5,
    "MST": -7,
    "MDT": -6,
    "PST": -8,
    "PDT": -7,
}


def strip_html(text: str) -> str:
    """Remove everything between '<' and '>' inclusive, then trim.

    Character-level and tag-insensitive: an unclosed '<' hides the rest
    of the text until a '>' shows up.
    """
    result = []
    in_tag = False

    for char in text:
        if char == "<":
            in_tag = True
        elif char == ">":
            in_tag = False
        elif not in_tag:
            result.append(char)

    return "".join(result).strip()


def _parse_named_zone(value: str, fmt: str) -> datetime:
    """strptime for formats ending in ' %Z' using the RFC 822 zone table.

    Raises:
        ValueError: If the value does not match
    """
    head, _, zone = value.rpartition(" ")
    if not zone.isalpha() or not zone.isupper() or len(zone) < 2:
        raise ValueError(f"Not a zone abbreviation: {zone!r}")

    parsed = datetime.strptime(head, fmt[: -len(" %Z")])
    offset = timedelta(hours=ZONE_OFFSETS.get(zone, 0))
    return parsed.replace(tzinfo=timezone(offset, zone))


def _try_format(value: str, fmt: str) -> datetime:
    if fmt.endswith(" %Z"):
        return _parse_named_zone(value, fmt)

    parsed = datetime.strptime(value, fmt)
    if parsed.tzinfo is None:
        # Formats without an offset are read as UTC
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def parse_pub_date(
    value: str,
    formats: Sequence[str] = DATE_FORMATS,
    now: Optional[datetime] = None,
) -> datetime:
    """Parse a publication date string.

    Args:
        value: Date string from the feed
        formats: strptime formats in priority order
        now: Fallback time (defaults to the current UTC time)

    Returns:
        Timezone-aware datetime. If no format matches, the fallback time
        is returned and a warning is logged.
    """
    candidate = value.strip()
    for fmt in formats:
        try:
            return _try_format(candidate, fmt)
        except ValueError:
            continue

    logger.warning(f"Could not parse date '{value}', using current time")
    return now or datetime.now(timezone.utc)


def normalize_entry(entry: RawEntry, now: Optional[datetime] = None) -> Item:
    """Convert a single RawEntry into an Item (is_new is left False)."""
    return Item(
        title=entry.title,
        link=entry.link,
        summary=strip_html(entry.description),
        pub_date=parse_pub_date(entry.pub_date, now=now),
        guid=entry.guid,
    )


def normalize_entries(
    entries: Iterable[RawEntry], now: Optional[datetime] = None
) -> List[Item]:
    """Normalize raw entries and sort them newest first.

    Args:
        entries: Raw entries from the fetcher
        now: Fallback time for unparseable dates

    Returns:
        Items sorted by publication date, descending
    """
    fallback = now or datetime.now(timezone.utc)
    items = [normalize_entry(entry, now=fallback) for entry in entries]

    # Stable sort keeps feed order for identical timestamps
    items.sort(key=lambda item: item.pub_date, reverse=True)
    return items
