"""Seen-state persistence for awsbreeze.

SeenState is an immutable value: every mutation returns a new instance.
SeenStateStore owns the file on disk and never raises; read and write
failures degrade to an empty state or a skipped save.
"""

import json
import logging
import os
import re
import shutil
import tempfile
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Dict, Iterable, Optional

from .errors import PersistenceError
from .observability import log as obs_log
from .paths import legacy_state_file_path, state_file_path

logger = logging.getLogger(__name__)

# Zero value for "never ran": every parsed publication date is after it.
NEVER = datetime(1, 1, 1, tzinfo=timezone.utc)

_EXCESS_FRACTION = re.compile(r"(\.\d{6})\d+")


@dataclass(frozen=True)
class SeenState:
    """GUID -> acknowledged flag, plus the time of the last saved session."""

    last_seen: Dict[str, bool] = field(default_factory=dict)
    last_run: datetime = NEVER

    def is_seen(self, guid: str) -> bool:
        """Membership test; the flag's value is not consulted."""
        return guid in self.last_seen

    def mark_seen(self, guid: str) -> "SeenState":
        """Return a state with guid flagged. Idempotent."""
        if self.last_seen.get(guid) is True:
            return self
        return SeenState(
            last_seen={**self.last_seen, guid: True}, last_run=self.last_run
        )

    def mark_all_seen(self, guids: Iterable[str]) -> "SeenState":
        """Return a state with every guid in guids flagged."""
        updated = dict(self.last_seen)
        for guid in guids:
            updated[guid] = True
        return SeenState(last_seen=updated, last_run=self.last_run)

    def pruned(self, current_guids: Iterable[str]) -> "SeenState":
        """Return a state holding only entries whose guid is in current_guids.

        Builds a new mapping rather than deleting keys from the old one.
        """
        current = set(current_guids)
        kept = {guid: seen for guid, seen in self.last_seen.items() if guid in current}
        return SeenState(last_seen=kept, last_run=self.last_run)

    def to_dict(self) -> dict:
        """Serialize to the on-disk JSON shape."""
        return {
            "last_seen": dict(self.last_seen),
            "last_run": _format_timestamp(self.last_run),
        }

    @classmethod
    def from_dict(cls, data: dict) -> "SeenState":
        """Deserialize from the on-disk JSON shape.

        Raises:
            PersistenceError: If the document has the wrong shape
        """
        if not isinstance(data, dict):
            raise PersistenceError(f"Expected a JSON object, got {type(data).__name__}")

        last_seen = data.get("last_seen") or {}
        if not isinstance(last_seen, dict):
            raise PersistenceError("'last_seen' must be an object")

        raw_last_run = data.get("last_run")
        last_run = _parse_timestamp(raw_last_run) if raw_last_run else NEVER

        return cls(
            last_seen={str(guid): bool(seen) for guid, seen in last_seen.items()},
            last_run=last_run,
        )


def _format_timestamp(value: datetime) -> str:
    """RFC 3339 text, with 'Z' for UTC."""
    return value.isoformat().replace("+00:00", "Z")


def _parse_timestamp(value: str) -> datetime:
    """Parse an RFC 3339 timestamp; naive values are read as UTC.

    Raises:
        PersistenceError: If the value is not a timestamp
    """
    # Older state files carry nanoseconds; datetime holds microseconds
    text = _EXCESS_FRACTION.sub(r"\1", str(value))
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError as e:
        raise PersistenceError(f"Invalid last_run timestamp {value!r}: {e}") from e

    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


class SeenStateStore:
    """Reads and writes SeenState as a single JSON file.

    Loaded once at session start, written once at session end.
    """

    def __init__(
        self, path: Optional[Path] = None, legacy_path: Optional[Path] = None
    ):
        """Initialize the store.

        Args:
            path: State file. Defaults to <cache>/awsbreeze/seen.json
            legacy_path: Old state file to migrate. Defaults to ~/.awsbreeze.json
        """
        self.path = path or state_file_path()
        self.legacy_path = legacy_path or legacy_state_file_path()

    def load(self) -> SeenState:
        """Load persisted state.

        Migrates the legacy file first if it exists. Any read or decode
        failure yields an empty SeenState.
        """
        self.migrate_legacy()

        try:
            state = self._read()
        except PersistenceError as e:
            logger.warning(f"Ignoring unreadable state file {self.path}: {e}")
            obs_log("state.load", path=str(self.path), status="error", error=str(e))
            return SeenState()

        if state is None:
            logger.debug(f"No state file at {self.path}, starting fresh")
            return SeenState()

        obs_log(
            "state.load",
            path=str(self.path),
            entries=len(state.last_seen),
            status="success",
        )
        return state

    def migrate_legacy(self) -> bool:
        """Move the legacy state file into the cache directory.

        Best-effort: errors are logged and the session continues.

        Returns:
            True if a legacy file was moved
        """
        if not self.legacy_path.exists():
            return False

        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            shutil.move(str(self.legacy_path), str(self.path))
        except OSError as e:
            logger.error(f"Error moving old cache file {self.legacy_path}: {e}")
            obs_log(
                "state.migrate",
                source=str(self.legacy_path),
                status="error",
                error=str(e),
            )
            return False

        logger.info(f"Migrated {self.legacy_path} to {self.path}")
        obs_log(
            "state.migrate",
            source=str(self.legacy_path),
            target=str(self.path),
            status="success",
        )
        return True

    def prune_and_save(
        self,
        state: SeenState,
        current_guids: Iterable[str],
        now: Optional[datetime] = None,
    ) -> SeenState:
        """Prune to the current snapshot, stamp last_run, and write atomically.

        A failed write is logged and otherwise ignored.

        Args:
            state: State to persist
            current_guids: GUIDs of the most recent fetch
            now: Timestamp for last_run (defaults to the current UTC time)

        Returns:
            The pruned state that was (or would have been) written
        """
        start_time = time.time()
        final = state.pruned(current_guids)
        final = SeenState(
            last_seen=final.last_seen, last_run=now or datetime.now(timezone.utc)
        )

        try:
            self._write(final)
        except PersistenceError as e:
            logger.warning(f"Could not save state to {self.path}: {e}")
            obs_log("state.save", path=str(self.path), status="error", error=str(e))
            return final

        obs_log(
            "state.save",
            path=str(self.path),
            entries=len(final.last_seen),
            pruned=len(state.last_seen) - len(final.last_seen),
            duration_ms=int((time.time() - start_time) * 1000),
            status="success",
        )
        return final

    def _read(self) -> Optional[SeenState]:
        """Read the state file.

        Returns:
            The stored state, or None if the file does not exist

        Raises:
            PersistenceError: If the file cannot be read or decoded
        """
        if not self.path.exists():
            return None

        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except (
            OSError,
            UnicodeDecodeError,
            json.JSONDecodeError,
            RecursionError,
        ) as e:
            raise PersistenceError(str(e)) from e

        return SeenState.from_dict(data)

    def _write(self, state: SeenState) -> None:
        """Write via a temporary file and rename so readers never see a partial file.

        Raises:
            PersistenceError: If any step fails
        """
        tmp_name = None
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with tempfile.NamedTemporaryFile(
                "w",
                encoding="utf-8",
                dir=self.path.parent,
                prefix=f".{self.path.name}.",
                suffix=".tmp",
                delete=False,
            ) as f:
                tmp_name = f.name
                json.dump(state.to_dict(), f)
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp_name, self.path)
        except OSError as e:
            if tmp_name:
                try:
                    os.unlink(tmp_name)
                except OSError:
                    pass
            raise PersistenceError(str(e)) from e
