"""
Undo/redo for executed batches.

An entry is either 'executed' or 'undone'. Undo replays the before-snapshot values
of every record an in-place action touched; redo replays the after-snapshot values.
Created records are never deleted, so creations are reported as not reversible.
"""

from typing import Any, Dict, List, Optional

from .action_schema import ALLOWED_ACTIONS, ActionKind
from .errors import HistoryConflictError, HistoryNotFoundError, SnapshotMissingError
from .history import HistoryStore
from .schema import STATUS_EXECUTED, STATUS_UNDONE, HistoryEntry, ReplayResult, Snapshot, ValidatedAction
from ..util.logging import logger

SEO_TITLE_FIELD = "metafields_global_title_tag"
SEO_DESCRIPTION_FIELD = "metafields_global_description_tag"


class UndoRedoEngine:
    """Drives undo/redo transitions on entries owned by a HistoryStore."""

    def __init__(self, history_store: HistoryStore):
        self.history_store = history_store

    def undo(self, entry_id: str, client) -> ReplayResult:
        """
        Restore the records changed by a batch to their before-snapshot values.

        Raises:
            HistoryNotFoundError: no entry with this id
            HistoryConflictError: the entry is already undone
            SnapshotMissingError: the entry has no before snapshot
        """
        entry = self._get_entry(entry_id)
        if entry.status == STATUS_UNDONE:
            raise HistoryConflictError(entry_id, entry.status, "This batch has already been undone")
        if entry.before_snapshot is None:
            raise SnapshotMissingError(entry_id, "before")

        # Claim the transition first so a concurrent undo on the same id is rejected
        if not self.history_store.transition_status(entry_id, STATUS_EXECUTED, STATUS_UNDONE):
            raise HistoryConflictError(entry_id, STATUS_UNDONE, "This batch has already been undone")

        results = [self._replay(action, entry.before_snapshot, client, "undo") for action in entry.actions]
        logger.log_replay("undo", entry_id, results)

        return ReplayResult(entry_id=entry_id, operation="undo", status=STATUS_UNDONE, results=results)

    def redo(self, entry_id: str, client) -> ReplayResult:
        """
        Re-apply the after-snapshot values of an undone batch.

        Raises:
            HistoryNotFoundError: no entry with this id
            HistoryConflictError: the entry is not currently undone
            SnapshotMissingError: the entry has no after snapshot
        """
        entry = self._get_entry(entry_id)
        if entry.status != STATUS_UNDONE:
            raise HistoryConflictError(entry_id, entry.status, "This batch is not currently undone")
        if entry.after_snapshot is None:
            raise SnapshotMissingError(entry_id, "after")

        if not self.history_store.transition_status(entry_id, STATUS_UNDONE, STATUS_EXECUTED):
            raise HistoryConflictError(entry_id, STATUS_EXECUTED, "This batch is not currently undone")

        results = [self._replay(action, entry.after_snapshot, client, "redo") for action in entry.actions]
        logger.log_replay("redo", entry_id, results)

        return ReplayResult(entry_id=entry_id, operation="redo", status=STATUS_EXECUTED, results=results)

    def _get_entry(self, entry_id: str) -> HistoryEntry:
        entry = self.history_store.get(entry_id)
        if entry is None:
            raise HistoryNotFoundError(entry_id)
        return entry

    def _replay(self, action: ValidatedAction, snapshot: Snapshot, client, operation: str) -> Dict[str, Any]:
        flag = "undone" if operation == "undo" else "redone"
        schema = ALLOWED_ACTIONS[action.kind]
        result: Dict[str, Any] = {"action": action.kind.value}

        if schema.creates_record:
            result[flag] = False
            result["reason"] = f"Cannot {operation} {action.kind.value}: created records are never deleted or re-created automatically"
            return result

        record_id = action.get(schema.target_field)
        result[schema.target_field] = record_id

        try:
            if action.kind is ActionKind.SET_ACTIVE_THEME:
                restored = _replay_theme(snapshot, client)
            else:
                restored = _replay_record(action, schema.collection, record_id, snapshot, client)
        except Exception as e:
            result[flag] = False
            result["error"] = str(e)
            return result

        if restored is None:
            result[flag] = False
            if action.kind is ActionKind.SET_ACTIVE_THEME:
                result["error"] = "No published theme found in snapshot"
            else:
                result["error"] = f"{schema.collection[:-1].capitalize()} {record_id} not found in snapshot"
        else:
            result[flag] = True
        return result


def _replay_record(action: ValidatedAction, collection: str, record_id: Any,
                   snapshot: Snapshot, client) -> Optional[Dict[str, Any]]:
    """Write a snapshot record's values back to the store. None when the record is not in the snapshot.

    A null body is written back as an empty string; the client skips None fields.
    """
    record = snapshot.find(collection, record_id)
    if record is None:
        return None

    if collection == "pages":
        client.update_page(record["id"], {
            "title": record.get("title"),
            "content": record.get("body_html") or "",
        })
        return record

    variants = record.get("variants") or [{}]
    client.update_product(record["id"], {
        "title": record.get("title"),
        "description": record.get("body_html") or "",
        "price": variants[0].get("price"),
    })

    if action.kind is ActionKind.GENERATE_SEO and (SEO_TITLE_FIELD in record or SEO_DESCRIPTION_FIELD in record):
        client.update_product_seo(record["id"], record.get(SEO_TITLE_FIELD), record.get(SEO_DESCRIPTION_FIELD))

    return record


def _replay_theme(snapshot: Snapshot, client) -> Optional[Dict[str, Any]]:
    """Republish whichever theme was published when the snapshot was taken."""
    published = next((t for t in snapshot.records("themes") if t.get("role") == "main"), None)
    if published is None:
        return None
    client.set_active_theme(published["id"])
    return published
