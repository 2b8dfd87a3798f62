"""
Read-only store endpoints used by the dashboard.
"""

from typing import Any, Dict

from fastapi import APIRouter, Depends

from .deps import get_store_client
from ..agents.store_client import StoreClient

router = APIRouter()


@router.get("/products")
def get_products(client: StoreClient = Depends(get_store_client)) -> Dict[str, Any]:
    return {"products": client.list_products()}


@router.get("/pages")
def get_pages(client: StoreClient = Depends(get_store_client)) -> Dict[str, Any]:
    return {"pages": client.list_pages()}


@router.get("/collections")
def get_collections(client: StoreClient = Depends(get_store_client)) -> Dict[str, Any]:
    return {"collections": client.list_collections()}


@router.get("/themes")
def get_themes(client: StoreClient = Depends(get_store_client)) -> Dict[str, Any]:
    return {"themes": client.list_themes()}


@router.get("/shop")
def get_shop(client: StoreClient = Depends(get_store_client)) -> Dict[str, Any]:
    return {"shop": client.get_shop_info()}
