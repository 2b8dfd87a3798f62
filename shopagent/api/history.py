"""
Action history endpoints: browse executed batches, undo and redo them.
"""

from fastapi import APIRouter, Depends, HTTPException, Query

from .deps import get_history_store, get_store_client, get_undo_engine
from .schemas import HistoryEntryResponse, HistoryListResponse, ReplayResponse
from ..agents.store_client import StoreClient
from ..core.errors import HistoryConflictError, HistoryNotFoundError, SnapshotMissingError
from ..core.history import HistoryStore
from ..core.undo import UndoRedoEngine

router = APIRouter()


@router.get("", response_model=HistoryListResponse)
def list_history(
    limit: int = Query(20, ge=1, description="Maximum entries to return (capped at 100)"),
    offset: int = Query(0, ge=0),
    history_store: HistoryStore = Depends(get_history_store),
):
    """List executed batches, newest first. Snapshots are left out of the listing."""
    limit = min(limit, 100)
    entries = history_store.list(limit, offset)

    summaries = []
    for entry in entries:
        data = entry.to_dict()
        data.pop("before_snapshot")
        data.pop("after_snapshot")
        summaries.append(data)

    return HistoryListResponse(entries=summaries, total=history_store.count(), limit=limit, offset=offset)


@router.get("/{entry_id}", response_model=HistoryEntryResponse)
def get_history_entry(entry_id: str, history_store: HistoryStore = Depends(get_history_store)):
    """Single history entry with full snapshots."""
    entry = history_store.get(entry_id)
    if entry is None:
        raise HTTPException(status_code=404, detail="History entry not found")
    return entry.to_dict()


@router.post("/{entry_id}/undo", response_model=ReplayResponse)
def undo_history_entry(
    entry_id: str,
    client: StoreClient = Depends(get_store_client),
    engine: UndoRedoEngine = Depends(get_undo_engine),
):
    """Restore the records a batch changed to their before-snapshot values."""
    try:
        return engine.undo(entry_id, client).to_dict()
    except (HistoryNotFoundError, HistoryConflictError, SnapshotMissingError) as e:
        raise _replay_http_error(e)


@router.post("/{entry_id}/redo", response_model=ReplayResponse)
def redo_history_entry(
    entry_id: str,
    client: StoreClient = Depends(get_store_client),
    engine: UndoRedoEngine = Depends(get_undo_engine),
):
    """Re-apply the after-snapshot values of an undone batch."""
    try:
        return engine.redo(entry_id, client).to_dict()
    except (HistoryNotFoundError, HistoryConflictError, SnapshotMissingError) as e:
        raise _replay_http_error(e)


def _replay_http_error(error: Exception) -> HTTPException:
    if isinstance(error, HistoryNotFoundError):
        return HTTPException(status_code=404, detail="History entry not found")
    if isinstance(error, HistoryConflictError):
        return HTTPException(status_code=409, detail=str(error))
    return HTTPException(status_code=400, detail=str(error))
