"""Feed fetchers."""

from .rss import RSSFetcher

__all__ = ["RSSFetcher"]
