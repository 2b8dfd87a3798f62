"""
Store action API - preview, execute, and undo natural-language store changes.
"""

from datetime import datetime
from typing import Optional

from fastapi import Depends, FastAPI, Header, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from . import execute, history, store
from .deps import get_history_store
from .schemas import HealthResponse
from ..agents.action_generator import ActionGeneratorError, check_ollama_health
from ..agents.store_client import StoreAPIError
from ..core.config import CORS_ORIGINS, VERSION, debug_enabled, get_history_backend
from ..core.db import health_check
from ..core.history import HistoryStore, SQLiteHistoryBackend
from ..util.logging import logger

# Initialize the FastAPI application
app = FastAPI(
    title="Shop Agent API",
    version=VERSION,
    description="Natural-language store operations with validated actions and undo/redo",
    docs_url="/docs" if debug_enabled() else None,
    redoc_url="/redoc" if debug_enabled() else None
)

# Allow the dashboard frontend
app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(execute.router, prefix="/api/execute", tags=["execute"])
app.include_router(history.router, prefix="/api/history", tags=["history"])
app.include_router(store.router, prefix="/api/store", tags=["store"])


@app.exception_handler(StoreAPIError)
async def store_api_error_handler(request: Request, exc: StoreAPIError):
    logger.error(f"Store API error on {request.url.path}: {exc}")
    return JSONResponse(status_code=502, content={"error": "Store API error", "message": str(exc)})


@app.exception_handler(ActionGeneratorError)
async def generator_error_handler(request: Request, exc: ActionGeneratorError):
    logger.error(f"Action generator error on {request.url.path}: {exc}")
    return JSONResponse(status_code=502, content={"error": "AI service error", "message": str(exc)})


@app.get("/")
def root():
    return {
        "name": "Shop Agent API",
        "version": VERSION,
        "timestamp": datetime.now().isoformat(),
    }


@app.get("/api/health", response_model=HealthResponse)
def health_check_endpoint(
    x_shop_domain: Optional[str] = Header(None),
    history_store: HistoryStore = Depends(get_history_store),
):
    """Check service health."""
    if isinstance(history_store.backend, SQLiteHistoryBackend):
        history_health = health_check(history_store.backend.db_path)
    else:
        history_health = True

    return HealthResponse(
        status="healthy" if history_health else "unhealthy",
        version=VERSION,
        history_backend=get_history_backend(),
        history_health=history_health,
        history_count=history_store.count() if history_health else 0,
        store_connected=bool(x_shop_domain),
        generator_available=check_ollama_health(),
    )
