"""
Typed records passed between the validator, executor, history store and undo/redo engine.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from .action_schema import ActionKind

STATUS_EXECUTED = "executed"
STATUS_UNDONE = "undone"
HISTORY_STATUSES = (STATUS_EXECUTED, STATUS_UNDONE)


@dataclass(frozen=True)
class ValidatedAction:
    """An action that passed schema checks: its kind plus declared fields only."""
    kind: ActionKind
    fields: Dict[str, Any]

    def get(self, name: str, default: Any = None) -> Any:
        return self.fields.get(name, default)

    def to_dict(self) -> Dict[str, Any]:
        data = {"kind": self.kind.value}
        data.update(self.fields)
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'ValidatedAction':
        """Rebuild from persisted history. Only for data that was validated before it was stored."""
        fields = {k: v for k, v in data.items() if k != "kind"}
        return cls(kind=ActionKind(data["kind"]), fields=fields)


@dataclass
class ValidationResult:
    valid: bool
    actions: List[ValidatedAction]
    errors: List[str]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "valid": self.valid,
            "actions": [a.to_dict() for a in self.actions],
            "errors": list(self.errors),
        }


@dataclass
class CollectionRead:
    """Outcome of reading one record collection from the store.

    A degraded read carries no records and the reason the read failed.
    """
    name: str
    records: List[Dict[str, Any]] = field(default_factory=list)
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def success(cls, name: str, records: List[Dict[str, Any]]) -> 'CollectionRead':
        return cls(name=name, records=list(records or []))

    @classmethod
    def degraded(cls, name: str, reason: str) -> 'CollectionRead':
        return cls(name=name, records=[], error=reason)


@dataclass
class Snapshot:
    """Captured record collections at one point in time."""
    collections: Dict[str, List[Dict[str, Any]]]
    degraded: Dict[str, str] = field(default_factory=dict)

    @classmethod
    def from_reads(cls, reads: List[CollectionRead]) -> 'Snapshot':
        return cls(
            collections={r.name: r.records for r in reads},
            degraded={r.name: r.error for r in reads if not r.ok},
        )

    def records(self, collection: str) -> List[Dict[str, Any]]:
        return self.collections.get(collection, [])

    def find(self, collection: str, record_id: Any) -> Optional[Dict[str, Any]]:
        """Find a record by id, comparing ids as strings."""
        wanted = _id_key(record_id)
        for record in self.records(collection):
            if _id_key(record.get("id")) == wanted:
                return record
        return None

    def to_dict(self) -> Dict[str, Any]:
        return {"collections": self.collections, "degraded": self.degraded}

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> Optional['Snapshot']:
        if data is None:
            return None
        return cls(collections=data.get("collections", {}), degraded=data.get("degraded", {}))


@dataclass
class HistoryEntry:
    """One executed batch. Only `status` changes after creation."""
    id: str
    timestamp: str
    prompt: str
    actions: List[ValidatedAction]
    before_snapshot: Optional[Snapshot]
    after_snapshot: Optional[Snapshot]
    summary: str
    store_domain: str
    status: str = STATUS_EXECUTED

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "timestamp": self.timestamp,
            "prompt": self.prompt,
            "actions": [a.to_dict() for a in self.actions],
            "before_snapshot": self.before_snapshot.to_dict() if self.before_snapshot else None,
            "after_snapshot": self.after_snapshot.to_dict() if self.after_snapshot else None,
            "summary": self.summary,
            "store_domain": self.store_domain,
            "status": self.status,
        }


@dataclass
class ActionOutcome:
    action: Dict[str, Any]
    success: bool
    result: Any = None
    error: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        data = {"action": self.action, "success": self.success}
        if self.success:
            data["result"] = self.result
        else:
            data["error"] = self.error
        return data


@dataclass
class BatchResult:
    results: List[ActionOutcome]
    history_id: Optional[str]
    degraded: Dict[str, str] = field(default_factory=dict)
    history_error: Optional[str] = None

    @property
    def success_count(self) -> int:
        return sum(1 for r in self.results if r.success)

    @property
    def failure_count(self) -> int:
        return sum(1 for r in self.results if not r.success)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "executed": True,
            "history_id": self.history_id,
            "results": [r.to_dict() for r in self.results],
            "success_count": self.success_count,
            "failure_count": self.failure_count,
            "degraded_snapshots": self.degraded,
            "history_error": self.history_error,
        }


@dataclass
class ReplayResult:
    """Outcome of an undo or redo call on one history entry."""
    entry_id: str
    operation: str  # undo|redo
    status: str
    results: List[Dict[str, Any]]

    def to_dict(self) -> Dict[str, Any]:
        flag = "undone" if self.operation == "undo" else "redone"
        return {flag: True, "entry_id": self.entry_id, "status": self.status, "results": self.results}


def _id_key(value: Any) -> str:
    if isinstance(value, float) and value.is_integer():
        value = int(value)
    return str(value)
