"""
Action history - append-only log of executed batches with before/after snapshots.

The store owns every entry. After creation only `status` changes, and only through
set_status / transition_status. Listing is always newest first.
"""

import json
import threading
import uuid
from abc import ABC, abstractmethod
from dataclasses import replace
from datetime import datetime, timezone
from typing import Any, List, Optional, Sequence, Tuple

from .db import get_db, init_db
from .schema import HISTORY_STATUSES, STATUS_EXECUTED, HistoryEntry, Snapshot, ValidatedAction
from ..util.logging import logger


class HistoryBackend(ABC):
    """Backing storage for history entries."""

    @abstractmethod
    def insert(self, entry: HistoryEntry) -> None:
        pass

    @abstractmethod
    def list(self, limit: int, offset: int) -> List[HistoryEntry]:
        pass

    @abstractmethod
    def get(self, entry_id: str) -> Optional[HistoryEntry]:
        pass

    @abstractmethod
    def set_status(self, entry_id: str, status: str) -> None:
        pass

    @abstractmethod
    def compare_and_set_status(self, entry_id: str, expected: str, status: str) -> bool:
        """Set status only if it currently equals `expected`. Returns True when applied."""
        pass

    @abstractmethod
    def count(self) -> int:
        pass

    @abstractmethod
    def evict_oldest(self, keep: int) -> int:
        """Drop the oldest entries beyond `keep`. Returns how many were removed."""
        pass


class InMemoryHistoryBackend(HistoryBackend):
    """Process-local history, newest entry first. Used for tests and HISTORY_BACKEND=memory."""

    def __init__(self):
        self._entries: List[HistoryEntry] = []
        self._lock = threading.Lock()

    def insert(self, entry: HistoryEntry) -> None:
        with self._lock:
            self._entries.insert(0, entry)

    def list(self, limit: int, offset: int) -> List[HistoryEntry]:
        with self._lock:
            return [replace(e) for e in self._entries[offset:offset + limit]]

    def get(self, entry_id: str) -> Optional[HistoryEntry]:
        with self._lock:
            for entry in self._entries:
                if entry.id == entry_id:
                    return replace(entry)
        return None

    def set_status(self, entry_id: str, status: str) -> None:
        with self._lock:
            for entry in self._entries:
                if entry.id == entry_id:
                    entry.status = status
                    return

    def compare_and_set_status(self, entry_id: str, expected: str, status: str) -> bool:
        with self._lock:
            for entry in self._entries:
                if entry.id == entry_id:
                    if entry.status != expected:
                        return False
                    entry.status = status
                    return True
        return False

    def count(self) -> int:
        with self._lock:
            return len(self._entries)

    def evict_oldest(self, keep: int) -> int:
        with self._lock:
            removed = max(len(self._entries) - keep, 0)
            if removed:
                del self._entries[keep:]
            return removed


class SQLiteHistoryBackend(HistoryBackend):
    """History persisted to the action_history table."""

    def __init__(self, db_path: str = None):
        self.db_path = db_path
        init_db(db_path)

    def insert(self, entry: HistoryEntry) -> None:
        with get_db(self.db_path) as conn:
            conn.execute(
                '''INSERT INTO action_history
                   (id, timestamp, prompt, actions, before_snapshot, after_snapshot, summary, status, store_domain)
                   VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)''',
                (
                    entry.id,
                    entry.timestamp,
                    entry.prompt,
                    json.dumps([a.to_dict() for a in entry.actions]),
                    _dump_snapshot(entry.before_snapshot),
                    _dump_snapshot(entry.after_snapshot),
                    entry.summary,
                    entry.status,
                    entry.store_domain,
                )
            )
            conn.commit()

    def list(self, limit: int, offset: int) -> List[HistoryEntry]:
        with get_db(self.db_path) as conn:
            rows = conn.execute(
                f"SELECT {_COLUMNS} FROM action_history ORDER BY timestamp DESC, rowid DESC LIMIT ? OFFSET ?",
                (limit, offset)
            ).fetchall()
        return [_parse_row(row) for row in rows]

    def get(self, entry_id: str) -> Optional[HistoryEntry]:
        with get_db(self.db_path) as conn:
            row = conn.execute(
                f"SELECT {_COLUMNS} FROM action_history WHERE id = ?", (entry_id,)
            ).fetchone()
        return _parse_row(row) if row else None

    def set_status(self, entry_id: str, status: str) -> None:
        with get_db(self.db_path) as conn:
            conn.execute("UPDATE action_history SET status = ? WHERE id = ?", (status, entry_id))
            conn.commit()

    def compare_and_set_status(self, entry_id: str, expected: str, status: str) -> bool:
        with get_db(self.db_path) as conn:
            cursor = conn.execute(
                "UPDATE action_history SET status = ? WHERE id = ? AND status = ?",
                (status, entry_id, expected)
            )
            conn.commit()
            return cursor.rowcount == 1

    def count(self) -> int:
        with get_db(self.db_path) as conn:
            return conn.execute("SELECT COUNT(*) FROM action_history").fetchone()[0]

    def evict_oldest(self, keep: int) -> int:
        with get_db(self.db_path) as conn:
            cursor = conn.execute(
                '''DELETE FROM action_history WHERE id NOT IN (
                       SELECT id FROM action_history ORDER BY timestamp DESC, rowid DESC LIMIT ?
                   )''',
                (keep,)
            )
            conn.commit()
            return cursor.rowcount


class HistoryStore:
    """
    Append-only history of executed batches.

    Args:
        backend: Where entries live (in-memory list or SQLite table)
        max_entries: Optional retention bound; 0 keeps everything, otherwise the
            oldest entries are evicted after each append
    """

    def __init__(self, backend: HistoryBackend = None, max_entries: int = 0):
        self.backend = backend if backend is not None else InMemoryHistoryBackend()
        self.max_entries = max_entries

    def append(self, prompt: str, actions: Sequence[ValidatedAction], before_snapshot: Optional[Snapshot],
               after_snapshot: Optional[Snapshot], summary: str = "", store_domain: str = "") -> Tuple[str, str]:
        """Create a new entry with status 'executed'. Returns (id, timestamp)."""
        entry = HistoryEntry(
            id=str(uuid.uuid4()),
            timestamp=datetime.now(timezone.utc).isoformat(timespec="microseconds"),
            prompt=prompt,
            actions=list(actions),
            before_snapshot=before_snapshot,
            after_snapshot=after_snapshot,
            summary=summary or "",
            store_domain=store_domain or "",
            status=STATUS_EXECUTED,
        )
        self.backend.insert(entry)

        if self.max_entries > 0:
            evicted = self.backend.evict_oldest(self.max_entries)
            if evicted:
                logger.log_operation("history.evict", "success", {"evicted": evicted, "max_entries": self.max_entries})

        return entry.id, entry.timestamp

    def list(self, limit: int = 50, offset: int = 0) -> List[HistoryEntry]:
        return self.backend.list(max(limit, 0), max(offset, 0))

    def get(self, entry_id: str) -> Optional[HistoryEntry]:
        return self.backend.get(entry_id)

    def set_status(self, entry_id: str, status: str) -> None:
        """Set the status unconditionally. Unknown ids are ignored."""
        _check_status(status)
        self.backend.set_status(entry_id, status)

    def transition_status(self, entry_id: str, expected: str, status: str) -> bool:
        """Atomically move an entry from `expected` to `status`."""
        _check_status(expected)
        _check_status(status)
        applied = self.backend.compare_and_set_status(entry_id, expected, status)
        logger.log_history_transition(entry_id, expected, status, applied)
        return applied

    def count(self) -> int:
        return self.backend.count()


def create_history_store(backend: str = None, db_path: str = None, max_entries: int = None) -> HistoryStore:
    """Build a HistoryStore from configuration."""
    from . import config

    backend = backend or config.get_history_backend()
    max_entries = config.HISTORY_MAX_ENTRIES if max_entries is None else max_entries

    if backend == "memory":
        return HistoryStore(InMemoryHistoryBackend(), max_entries=max_entries)
    if backend == "sqlite":
        return HistoryStore(SQLiteHistoryBackend(db_path or config.HISTORY_DB_PATH), max_entries=max_entries)
    raise ValueError(f"Unknown history backend: {backend}")


_COLUMNS = "id, timestamp, prompt, actions, before_snapshot, after_snapshot, summary, status, store_domain"


def _check_status(status: str) -> None:
    if status not in HISTORY_STATUSES:
        raise ValueError(f"Invalid history status: {status}")


def _dump_snapshot(snapshot: Optional[Snapshot]) -> Optional[str]:
    return json.dumps(snapshot.to_dict()) if snapshot is not None else None


def _load_snapshot(raw: Optional[str]) -> Optional[Snapshot]:
    return Snapshot.from_dict(json.loads(raw)) if raw else None


def _parse_row(row: Tuple[Any, ...]) -> HistoryEntry:
    entry_id, timestamp, prompt, actions, before, after, summary, status, store_domain = row
    return HistoryEntry(
        id=entry_id,
        timestamp=timestamp,
        prompt=prompt,
        actions=[ValidatedAction.from_dict(a) for a in json.loads(actions)],
        before_snapshot=_load_snapshot(before),
        after_snapshot=_load_snapshot(after),
        summary=summary or "",
        store_domain=store_domain or "",
        status=status,
    )
