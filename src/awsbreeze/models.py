"""Data models for awsbreeze."""

from dataclasses import dataclass
from datetime import datetime


@dataclass(frozen=True)
class RawEntry:
    """A feed entry exactly as delivered by the feed.

    Discarded once normalized into an Item.
    """

    title: str
    link: str
    description: str  # May contain markup
    pub_date: str  # Unparsed publication date string
    guid: str


@dataclass(frozen=True)
class Item:
    """Canonical announcement item shown in the list view.

    Created fresh on every fetch. Only ``is_new`` ever changes, and it is
    changed by building a new Item with ``dataclasses.replace``.
    """

    title: str
    link: str
    summary: str  # Plain text, markup stripped
    pub_date: datetime  # Timezone-aware (UTC or the feed's own offset)
    guid: str
    is_new: bool = False

    def to_dict(self) -> dict:
        """Convert to a JSON-friendly dictionary."""
        return {
            "title": self.title,
            "link": self.link,
            "summary": self.summary,
            "pub_date": self.pub_date.isoformat(),
            "guid": self.guid,
            "is_new": self.is_new,
        }
