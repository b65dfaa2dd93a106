"""Ranked, persisted history of completed focus sessions."""

import json
import logging
import os
import shutil
import tempfile
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional, Protocol, Sequence, Tuple

import config
from errors import LedgerPersistenceError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ScoreRecord:
    """One completed session."""
    duration_seconds: int
    ended_at: datetime
    stop_reason: str = config.STOP_MANUAL

    def to_dict(self) -> Dict[str, Any]:
        return {
            "duration_seconds": self.duration_seconds,
            "ended_at": self.ended_at.isoformat(),
            "stop_reason": self.stop_reason,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ScoreRecord":
        duration = int(data["duration_seconds"])
        if duration < 0:
            raise ValueError(f"Negative duration: {duration}")
        return cls(
            duration_seconds=duration,
            ended_at=datetime.fromisoformat(data["ended_at"]),
            stop_reason=data.get("stop_reason", config.STOP_MANUAL),
        )


class LedgerStore(Protocol):
    """Where the ledger lives between runs."""

    def load_ledger(self) -> List[ScoreRecord]:
        ...

    def save_ledger(self, records: Sequence[ScoreRecord]) -> None:
        ...


class JsonLedgerStore:
    """
    Stores the ledger as a JSON list in a single file.

    Writes go to a temp file in the same directory and are moved into place
    with os.replace, so a crash mid-write never leaves a truncated ledger.

    A file that fails to load is never overwritten:
    - malformed entries are skipped and the original file is copied to
      "<name>.corrupt-<timestamp>" before the next save drops them
    - a file that is not a JSON list is moved aside to that name, and the
      next save starts a fresh ledger
    - a file that cannot be read at all (or cannot be moved aside) blocks
      every save for the rest of the run
    """

    def __init__(self, path: Optional[Path] = None):
        """
        Args:
            path: Ledger file (defaults to config.LEDGER_FILE)
        """
        self.path = Path(path) if path is not None else config.LEDGER_FILE
        self._saves_blocked = False

    def load_ledger(self) -> List[ScoreRecord]:
        """
        Read all records.

        Returns:
            Valid records in stored order; empty if the file does not exist yet

        Raises:
            LedgerPersistenceError: unreadable file or not a JSON list
        """
        if not self.path.exists():
            return []

        try:
            with open(self.path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except OSError as e:
            self._saves_blocked = True
            raise LedgerPersistenceError(f"Failed to read ledger from {self.path}: {e}") from e
        except ValueError as e:
            self._set_aside(move=True)
            raise LedgerPersistenceError(f"Ledger file {self.path} is not valid JSON: {e}") from e

        if not isinstance(data, list):
            self._set_aside(move=True)
            raise LedgerPersistenceError(f"Ledger file {self.path} must contain a JSON list")

        records = []
        skipped = 0
        for item in data:
            try:
                records.append(ScoreRecord.from_dict(item))
            except (ValueError, KeyError, TypeError, AttributeError) as e:
                skipped += 1
                logger.warning(f"Skipping malformed score entry {item!r}: {e}")

        if skipped:
            self._set_aside(move=False)
            logger.warning(f"Loaded {len(records)} scores, skipped {skipped} malformed entries")

        return records

    def save_ledger(self, records: Sequence[ScoreRecord]) -> None:
        """
        Replace the stored ledger with records.

        Raises:
            LedgerPersistenceError: the file could not be written, or it
                could not be read earlier and must not be overwritten
        """
        if self._saves_blocked:
            raise LedgerPersistenceError(
                f"Not overwriting {self.path}: it could not be read or backed up"
            )

        payload = [record.to_dict() for record in records]
        tmp_path = None
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_path = tempfile.mkstemp(
                dir=self.path.parent, prefix=f".{self.path.name}.", suffix=".tmp"
            )
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(payload, f, indent=2)
            os.replace(tmp_path, self.path)
            tmp_path = None
        except OSError as e:
            raise LedgerPersistenceError(f"Failed to save ledger to {self.path}: {e}") from e
        finally:
            if tmp_path is not None and os.path.exists(tmp_path):
                os.remove(tmp_path)

        logger.debug(f"Ledger saved ({len(payload)} records) to {self.path}")

    def _set_aside(self, move: bool) -> None:
        """
        Keep the unreadable file under a ".corrupt-<timestamp>" name.

        Args:
            move: Move the file (it is unusable) instead of copying it
        """
        backup = self.path.with_name(f"{self.path.name}.corrupt-{datetime.now().strftime('%Y%m%d_%H%M%S')}")
        try:
            if move:
                os.replace(self.path, backup)
            else:
                shutil.copy2(self.path, backup)
        except OSError as e:
            self._saves_blocked = True
            logger.error(f"Could not back up {self.path} ({e}); it will not be overwritten")
            return
        logger.warning(f"Kept the original ledger as {backup}")


class ScoreLedger:
    """
    Append-only list of ScoreRecords, always sorted by duration descending.

    Equal durations keep insertion order. The in-memory list is the source of
    truth for the running process; the store only mirrors it.
    """

    def __init__(self, store: LedgerStore):
        self.store = store
        self._records: List[ScoreRecord] = []

    def __len__(self) -> int:
        return len(self._records)

    def load(self) -> None:
        """
        Replace the in-memory ledger with the stored one.

        Raises:
            LedgerPersistenceError: the store could not be read (ledger left empty)
        """
        self._records = []
        records = self.store.load_ledger()
        # Stable sort: files written by older builds may be unsorted or ascending
        self._records = sorted(records, key=lambda r: r.duration_seconds, reverse=True)
        logger.info(f"Loaded {len(self._records)} scores")

    def append(self, record: ScoreRecord) -> None:
        """
        Insert a record in rank order and persist the whole ledger.

        Raises:
            LedgerPersistenceError: saving failed; the record is still kept in memory
        """
        index = len(self._records)
        for i, existing in enumerate(self._records):
            if existing.duration_seconds < record.duration_seconds:
                index = i
                break
        self._records.insert(index, record)

        logger.info(f"Score recorded: {record.duration_seconds}s (rank {index + 1} of {len(self._records)})")

        self.store.save_ledger(list(self._records))

    def all(self) -> Tuple[ScoreRecord, ...]:
        """Snapshot of the ledger in rank order."""
        return tuple(self._records)

    def best(self) -> Optional[ScoreRecord]:
        return self._records[0] if self._records else None
