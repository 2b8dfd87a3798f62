"""
Best-effort reads of store record collections.

A failed read degrades to an empty slice, but the failure is kept on the
CollectionRead so callers can report degraded snapshots and context.
"""

from typing import Dict, List, Sequence

from .action_schema import snapshot_collections
from .schema import CollectionRead, Snapshot
from ..util.logging import logger

CONTEXT_COLLECTIONS = ("products", "pages", "collections", "themes")


def read_collections(client, names: Sequence[str], phase: str = "context") -> List[CollectionRead]:
    """Read each named collection from the store, one call at a time."""
    reads = []
    for name in names:
        try:
            reads.append(CollectionRead.success(name, client.list_collection(name)))
        except Exception as e:
            logger.log_snapshot_degraded(name, str(e), phase)
            reads.append(CollectionRead.degraded(name, str(e)))
    return reads


def capture_snapshot(client, phase: str = "before") -> Snapshot:
    """Capture the collections undo/redo needs (products, pages, themes)."""
    return Snapshot.from_reads(read_collections(client, snapshot_collections(), phase))


def read_store_context(client) -> Dict[str, CollectionRead]:
    """Read everything the action generator is shown about the store."""
    return {read.name: read for read in read_collections(client, CONTEXT_COLLECTIONS)}
