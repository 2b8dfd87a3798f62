"""
Request/response models for the store action API.
"""

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, field_validator


class PreviewRequest(BaseModel):
    prompt: str

    @field_validator('prompt')
    @classmethod
    def prompt_must_not_be_empty(cls, v):
        if not v.strip():
            raise ValueError('prompt cannot be empty')
        return v.strip()

    @field_validator('prompt')
    @classmethod
    def prompt_must_be_reasonable_length(cls, v):
        if len(v) > 4000:
            raise ValueError('prompt must be less than 4000 characters')
        return v


class StoreContextCounts(BaseModel):
    product_count: int
    page_count: int
    collection_count: int
    theme_count: int


class PreviewResponse(BaseModel):
    model_config = ConfigDict(protected_namespaces=())

    preview: bool = True
    prompt: str
    actions: List[Dict[str, Any]]
    valid: bool
    validation_errors: List[str]
    summary: str
    model: str
    usage: Dict[str, Any]
    store_context: StoreContextCounts
    degraded_context: Dict[str, str]


class ConfirmRequest(BaseModel):
    prompt: Optional[str] = None
    # Left untyped on purpose: the validator is the only gate for action contents
    actions: Any = None


class ActionResultModel(BaseModel):
    action: Dict[str, Any]
    success: bool
    result: Any = None
    error: Optional[str] = None


class ConfirmResponse(BaseModel):
    executed: bool
    history_id: Optional[str]
    results: List[ActionResultModel]
    success_count: int
    failure_count: int
    degraded_snapshots: Dict[str, str]
    history_error: Optional[str] = None


class HistoryEntryResponse(BaseModel):
    id: str
    timestamp: str
    prompt: str
    actions: List[Dict[str, Any]]
    before_snapshot: Optional[Dict[str, Any]] = None
    after_snapshot: Optional[Dict[str, Any]] = None
    summary: str
    store_domain: str
    status: str


class HistorySummary(BaseModel):
    id: str
    timestamp: str
    prompt: str
    actions: List[Dict[str, Any]]
    summary: str
    store_domain: str
    status: str


class HistoryListResponse(BaseModel):
    entries: List[HistorySummary]
    total: int
    limit: int
    offset: int


class ReplayResponse(BaseModel):
    entry_id: str
    status: str
    results: List[Dict[str, Any]]
    undone: Optional[bool] = None
    redone: Optional[bool] = None


class HealthResponse(BaseModel):
    status: str
    version: str
    history_backend: str
    history_health: bool
    history_count: int
    store_connected: bool
    generator_available: bool
