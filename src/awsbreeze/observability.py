"""JSONL event log for awsbreeze.

One file per day under <cache>/awsbreeze/observability, one JSON object
per line. Writes are serialized across processes with fcntl locks, and
a failed write is reported on stderr instead of raised.
"""

import fcntl
import json
import sys
import time
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Any

from .paths import app_cache_dir

EVENTS_SUFFIX = "_events.jsonl"
WRITE_ATTEMPTS = 3


def _utc_timestamp() -> str:
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


def _file_date(path: Path) -> datetime:
    """Date encoded in a YYYY-MM-DD_events.jsonl name.

    Raises:
        ValueError: If the name does not start with a date
    """
    return datetime.strptime(path.name[: -len(EVENTS_SUFFIX)], "%Y-%m-%d")


class ObservabilityLogger:
    """Appends events for fetches and seen-state load/save/migrate."""

    def __init__(self, base_dir: Path | None = None, enabled: bool = True):
        """Initialize the event log.

        Args:
            base_dir: Directory for JSONL files. Defaults to <cache>/awsbreeze/observability
            enabled: When False, log() is a no-op
        """
        self.base_dir = base_dir or app_cache_dir() / "observability"
        self.enabled = enabled

    def file_for(self, day: datetime) -> Path:
        return self.base_dir / f"{day:%Y-%m-%d}{EVENTS_SUFFIX}"

    def log(self, event: str, **metadata: Any) -> None:
        """Append one event to today's file.

        Args:
            event: Event name (e.g. "fetcher.complete", "state.save")
            **metadata: Extra fields written alongside the event name
        """
        if not self.enabled:
            return

        line = json.dumps({"ts": _utc_timestamp(), "event": event, **metadata}, default=str)

        for attempt in range(1, WRITE_ATTEMPTS + 1):
            try:
                self._append(self.file_for(datetime.now()), line)
                return
            except BlockingIOError:
                if attempt == WRITE_ATTEMPTS:
                    print(
                        f"[Observability] Gave up on event '{event}' after {attempt} attempts",
                        file=sys.stderr,
                    )
                    return
                time.sleep(0.01 * attempt)
            except OSError as e:
                print(f"[Observability] Could not record '{event}': {e}", file=sys.stderr)
                return

    def _append(self, log_file: Path, line: str) -> None:
        self.base_dir.mkdir(parents=True, exist_ok=True)
        with open(log_file, "a", encoding="utf-8") as f:
            fcntl.flock(f.fileno(), fcntl.LOCK_EX)
            try:
                f.write(line + "\n")
                f.flush()
            finally:
                fcntl.flock(f.fileno(), fcntl.LOCK_UN)

    def cleanup_old_files(self, retention_days: int = 30) -> int:
        """Delete daily files older than retention_days.

        Files whose names don't carry a date are left alone.

        Returns:
            Number of files removed
        """
        if not self.base_dir.exists():
            return 0

        cutoff = datetime.now() - timedelta(days=retention_days)
        removed = 0

        for path in self.base_dir.glob(f"*{EVENTS_SUFFIX}"):
            try:
                expired = _file_date(path) < cutoff
            except ValueError:
                continue
            if not expired:
                continue

            try:
                path.unlink()
            except OSError as e:
                print(f"[Observability] Could not remove {path}: {e}", file=sys.stderr)
                continue
            removed += 1

        return removed


_logger: ObservabilityLogger | None = None


def get_logger() -> ObservabilityLogger:
    """Return the process-wide event log, creating it on first use."""
    global _logger
    if _logger is None:
        _logger = ObservabilityLogger()
    return _logger


def configure(enabled: bool = True, base_dir: Path | None = None) -> ObservabilityLogger:
    """Replace the process-wide event log, e.g. to honour the config file."""
    global _logger
    _logger = ObservabilityLogger(base_dir=base_dir, enabled=enabled)
    return _logger


def log(event: str, **metadata: Any) -> None:
    """Record an event on the process-wide event log.

    Usage:
        from awsbreeze.observability import log
        log("fetcher.complete", items_count=120, duration_ms=340)
    """
    get_logger().log(event, **metadata)
