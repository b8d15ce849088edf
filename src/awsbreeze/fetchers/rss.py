"""RSS feed fetcher for the AWS "What's New" announcements feed."""

import hashlib
import logging
import time
from typing import List, Optional

import feedparser
import httpx

from ..errors import FetchError
from ..models import RawEntry
from ..observability import log as obs_log

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 30  # seconds


class RSSFetcher:
    """Retrieves the feed over HTTP and decodes it into RawEntry objects.

    One blocking request per call, no retries. Any failure is raised as
    FetchError for the session to display.
    """

    def __init__(self, url: str, client: Optional[httpx.Client] = None):
        """Initialize the RSS fetcher.

        Args:
            url: Feed URL
            client: Optional preconfigured httpx client (used by tests)
        """
        self.url = url
        self.client = client or httpx.Client(
            timeout=DEFAULT_TIMEOUT, follow_redirects=True
        )

    def fetch(self) -> List[RawEntry]:
        """Fetch and decode the feed.

        Returns:
            Raw entries in feed order

        Raises:
            FetchError: If the request fails, the server answers with an
                error status, or the body is not a feed
        """
        start_time = time.time()

        try:
            logger.info(f"Fetching RSS feed: {self.url}")
            response = self.client.get(self.url)
            response.raise_for_status()
            entries = self._decode(response.content)
        except httpx.HTTPStatusError as e:
            self._log_error(e, start_time)
            raise FetchError(
                self.url, f"Could not reach feed: HTTP {e.response.status_code}"
            ) from e
        except httpx.HTTPError as e:
            self._log_error(e, start_time)
            raise FetchError(self.url, f"Failed to fetch feed {self.url}: {e}") from e
        except FetchError as e:
            self._log_error(e, start_time)
            raise

        duration_ms = int((time.time() - start_time) * 1000)
        logger.info(f"Fetched {len(entries)} entries from {self.url}")
        obs_log(
            "fetcher.complete",
            source_url=self.url,
            items_count=len(entries),
            duration_ms=duration_ms,
            status="success",
        )
        return entries

    def _decode(self, body: bytes) -> List[RawEntry]:
        """Decode a feed document into raw entries.

        Raises:
            FetchError: If the document cannot be parsed as a feed
        """
        feed = feedparser.parse(body)
        entries = feed.entries if hasattr(feed, "entries") else []

        if feed.bozo:
            if not entries:
                raise FetchError(
                    self.url, f"Could not decode feed: {feed.bozo_exception}"
                )
            logger.warning(
                f"Feed parsing issues for {self.url}: {feed.bozo_exception}"
            )

        raw_entries = []
        for entry in entries:
            try:
                raw_entries.append(
                    RawEntry(
                        title=entry.get("title", ""),
                        link=entry.get("link", ""),
                        description=entry.get("summary")
                        or entry.get("description")
                        or "",
                        pub_date=entry.get("published") or entry.get("updated") or "",
                        guid=self._get_guid(entry),
                    )
                )
            except (AttributeError, TypeError) as e:
                logger.warning(
                    f"Skipping malformed entry '{entry.get('title', 'Unknown')}': {e}"
                )
                continue

        return raw_entries

    def _get_guid(self, entry: dict) -> str:
        """Return a stable identifier for the entry.

        Args:
            entry: Feed entry dict from feedparser

        Returns:
            The feed's guid, else a hash of the link, else a hash of the title
        """
        if entry.get("id"):
            return entry["id"]

        if entry.get("link"):
            return hashlib.sha256(entry["link"].encode()).hexdigest()[:16]

        title = entry.get("title", "")
        return hashlib.sha256(title.encode()).hexdigest()[:16]

    def _log_error(self, error: Exception, start_time: float) -> None:
        duration_ms = int((time.time() - start_time) * 1000)
        logger.warning(f"Feed fetch failed for {self.url}: {error}")
        obs_log(
            "fetcher.error",
            source_url=self.url,
            error=str(error),
            duration_ms=duration_ms,
            status="error",
        )

    def close(self) -> None:
        """Close the underlying HTTP client."""
        self.client.close()

    def __del__(self):
        """Cleanup HTTP client on deletion."""
        if hasattr(self, "client"):
            self.client.close()
