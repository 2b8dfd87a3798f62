"""
Activity log helpers for the terminal dashboard.

Row formatting and undo/redo calls are plain functions so the textual screens stay thin.
"""

import os
from typing import Any, Dict, List, Optional

from shopagent.agents.store_client import ShopifyClient, StoreClient
from shopagent.core.errors import PipelineError
from shopagent.core.history import HistoryStore
from shopagent.core.schema import STATUS_UNDONE, HistoryEntry
from shopagent.core.undo import UndoRedoEngine
from shopagent.util.logging import logger

HISTORY_COLUMNS = ("When", "Prompt", "Actions", "Status", "Summary")
PROMPT_PREVIEW_CHARS = 48


def get_store_credentials() -> Optional[Dict[str, str]]:
    """Store domain and access token from the environment, or None if either is missing."""
    domain = os.getenv("SHOPIFY_STORE_DOMAIN", "").strip()
    token = os.getenv("SHOPIFY_ACCESS_TOKEN", "").strip()
    if not domain or not token:
        return None
    return {"store_domain": domain, "access_token": token}


def build_store_client() -> Optional[StoreClient]:
    credentials = get_store_credentials()
    if credentials is None:
        return None
    return ShopifyClient(credentials["store_domain"], credentials["access_token"])


def format_entry_row(entry: HistoryEntry) -> tuple:
    prompt = entry.prompt
    if len(prompt) > PROMPT_PREVIEW_CHARS:
        prompt = prompt[:PROMPT_PREVIEW_CHARS - 3] + "..."

    status = "↩ undone" if entry.status == STATUS_UNDONE else "✓ executed"
    when = entry.timestamp.replace("T", " ")[:19]
    kinds = ", ".join(sorted({a.kind for a in entry.actions}))

    return (when, prompt, f"{len(entry.actions)} ({kinds})", status, entry.summary)


def format_history_rows(history_store: HistoryStore, limit: int = 50) -> List[Dict[str, Any]]:
    """Newest-first rows for the activity table, keyed by entry id."""
    rows = []
    for entry in history_store.list(limit=limit):
        rows.append({"id": entry.id, "status": entry.status, "cells": format_entry_row(entry)})
    return rows


def perform_undo(history_store: HistoryStore, entry_id: str, client: Optional[StoreClient] = None) -> Dict[str, Any]:
    """Undo a batch and report the outcome as a dashboard notification payload."""
    return _perform("undo", history_store, entry_id, client)


def perform_redo(history_store: HistoryStore, entry_id: str, client: Optional[StoreClient] = None) -> Dict[str, Any]:
    """Redo an undone batch and report the outcome as a dashboard notification payload."""
    return _perform("redo", history_store, entry_id, client)


def _perform(operation: str, history_store: HistoryStore, entry_id: str,
             client: Optional[StoreClient]) -> Dict[str, Any]:
    if client is None:
        client = build_store_client()
    if client is None:
        return {
            "success": False,
            "error": "Store not connected. Set SHOPIFY_STORE_DOMAIN and SHOPIFY_ACCESS_TOKEN.",
        }

    engine = UndoRedoEngine(history_store)
    try:
        if operation == "undo":
            result = engine.undo(entry_id, client)
        else:
            result = engine.redo(entry_id, client)
    except PipelineError as e:
        logger.warning(f"Dashboard {operation} rejected for {entry_id}: {e}")
        return {"success": False, "error": str(e)}

    failures = [r for r in result.results if r.get("error")]
    flag = "undone" if operation == "undo" else "redone"
    skipped = [r for r in result.results if r.get(flag) is False and not r.get("error")]
    message = f"{operation.capitalize()} applied to {len(result.results)} action(s)"
    if failures or skipped:
        message += f", {len(failures)} failed, {len(skipped)} skipped"

    return {"success": True, "message": message, "status": result.status, "results": result.results}
