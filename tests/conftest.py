"""Shared test fixtures for all tests."""

import sys
from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest

# Add src to path for absolute imports
src_path = str(Path(__file__).parent.parent / "src")
sys.path.insert(0, src_path)

from awsbreeze import observability  # noqa: E402
from awsbreeze.models import Item  # noqa: E402


SAMPLE_RSS_XML = b"""<?xml version="1.0" encoding="UTF-8"?>
<rss version="2.0">
  <channel>
    <title>Recent Announcements</title>
    <link>https://aws.amazon.com/about-aws/whats-new/recent/</link>
    <description>Latest Amazon Web Services announcements</description>
    <item>
      <title>Amazon S3 adds a feature</title>
      <link>https://aws.amazon.com/about-aws/whats-new/2026/02/s3-feature/</link>
      <guid isPermaLink="false">s3-feature</guid>
      <description>&lt;p&gt;Amazon S3 now supports &lt;b&gt;something&lt;/b&gt;.&lt;/p&gt;</description>
      <pubDate>Thu, 12 Feb 2026 10:00:00 +0000</pubDate>
    </item>
    <item>
      <title>AWS Lambda adds a runtime</title>
      <link>https://aws.amazon.com/about-aws/whats-new/2026/02/lambda-runtime/</link>
      <guid isPermaLink="false">lambda-runtime</guid>
      <description>Lambda runtime description</description>
      <pubDate>Fri, 13 Feb 2026 09:00:00 GMT</pubDate>
    </item>
    <item>
      <title>Amazon EC2 announces an instance</title>
      <link>https://aws.amazon.com/about-aws/whats-new/2026/02/ec2-instance/</link>
      <guid isPermaLink="false">ec2-instance</guid>
      <description>EC2 description</description>
      <pubDate>not-a-date</pubDate>
    </item>
  </channel>
</rss>"""

SAMPLE_NOT_A_FEED = b"<html><body><p>This is not <b>a feed</body>"


@pytest.fixture(autouse=True)
def isolated_dirs(tmp_path: Path, monkeypatch) -> Path:
    """Point HOME, cache and config directories at a temp directory."""
    home = tmp_path / "home"
    home.mkdir()
    monkeypatch.setenv("HOME", str(home))
    monkeypatch.setenv("XDG_CACHE_HOME", str(tmp_path / "cache"))
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "config"))
    monkeypatch.delenv("AWSBREEZE_FEED_URL", raising=False)

    # Fresh event logger writing under the temp cache dir
    monkeypatch.setattr(observability, "_logger", None)

    return tmp_path


@pytest.fixture
def sample_rss_xml() -> bytes:
    """Sample RSS 2.0 feed in the shape of the AWS What's New feed."""
    return SAMPLE_RSS_XML


@pytest.fixture
def sample_not_a_feed() -> bytes:
    """A body that is not a feed at all."""
    return SAMPLE_NOT_A_FEED


@pytest.fixture
def now() -> datetime:
    """Fixed reference time for date arithmetic."""
    return datetime(2026, 2, 14, 12, 0, 0, tzinfo=timezone.utc)


@pytest.fixture
def make_item(now: datetime):
    """Factory for Items published a given number of days before `now`."""

    def _make(guid: str, age_days: float = 0, is_new: bool = False) -> Item:
        return Item(
            title=f"Item {guid}",
            link=f"https://example.com/{guid}",
            summary=f"Summary of {guid}",
            pub_date=now - timedelta(days=age_days),
            guid=guid,
            is_new=is_new,
        )

    return _make
