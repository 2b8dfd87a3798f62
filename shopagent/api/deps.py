"""
FastAPI dependencies: store credentials, history store and pipeline collaborators.

The history store is created once per process from configuration; tests replace
any of these through app.dependency_overrides.
"""

from functools import lru_cache
from typing import Optional

from fastapi import Depends, Header, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from ..agents.action_generator import ActionGenerator
from ..agents.image_acquirer import ImageAcquirer
from ..agents.store_client import ShopifyClient, StoreClient
from ..core.config import is_image_generation_enabled
from ..core.executor import BatchExecutor
from ..core.history import HistoryStore, create_history_store
from ..core.undo import UndoRedoEngine

security = HTTPBearer(auto_error=False)


def get_store_client(
    x_shop_domain: Optional[str] = Header(None),
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
) -> StoreClient:
    """Build a store client from the per-request shop domain and access token."""
    if not x_shop_domain or credentials is None or not credentials.credentials:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Store not connected. Send X-Shop-Domain and a Bearer access token.",
        )
    return ShopifyClient(x_shop_domain, credentials.credentials)


@lru_cache(maxsize=1)
def get_history_store() -> HistoryStore:
    return create_history_store()


@lru_cache(maxsize=1)
def get_action_generator() -> ActionGenerator:
    return ActionGenerator()


def get_image_acquirer() -> Optional[ImageAcquirer]:
    if not is_image_generation_enabled():
        return None
    return ImageAcquirer()


def get_batch_executor(
    history_store: HistoryStore = Depends(get_history_store),
    image_acquirer: Optional[ImageAcquirer] = Depends(get_image_acquirer),
) -> BatchExecutor:
    return BatchExecutor(history_store, image_acquirer=image_acquirer)


def get_undo_engine(history_store: HistoryStore = Depends(get_history_store)) -> UndoRedoEngine:
    return UndoRedoEngine(history_store)
