"""
Prompt execution endpoints.

POST /api/execute previews: it reads the store, asks the generator for actions and
validates them, without touching the store. POST /api/execute/confirm executes.
"""

from fastapi import APIRouter, Depends, HTTPException

from .deps import get_action_generator, get_batch_executor, get_store_client
from .schemas import ConfirmRequest, ConfirmResponse, PreviewRequest, PreviewResponse, StoreContextCounts
from ..agents.action_generator import ActionGenerator
from ..agents.store_client import StoreClient
from ..core.errors import BatchValidationError
from ..core.executor import BatchExecutor
from ..core.snapshots import read_store_context
from ..core.validator import validate_actions

router = APIRouter()


@router.post("", response_model=PreviewResponse)
def preview_actions(
    request: PreviewRequest,
    client: StoreClient = Depends(get_store_client),
    generator: ActionGenerator = Depends(get_action_generator),
):
    """Generate and validate actions for a prompt. Nothing is executed."""
    context = read_store_context(client)
    records = {name: read.records for name, read in context.items()}

    generated = generator.generate(request.prompt, records)
    validation = validate_actions(generated.actions, source="preview")

    return PreviewResponse(
        prompt=request.prompt,
        actions=[a.to_dict() for a in validation.actions],
        valid=validation.valid,
        validation_errors=validation.errors,
        summary=generated.summary,
        model=generated.model,
        usage=generated.usage,
        store_context=StoreContextCounts(
            product_count=len(records["products"]),
            page_count=len(records["pages"]),
            collection_count=len(records["collections"]),
            theme_count=len(records["themes"]),
        ),
        degraded_context={name: read.error for name, read in context.items() if not read.ok},
    )


@router.post("/confirm", response_model=ConfirmResponse)
def confirm_actions(
    request: ConfirmRequest,
    client: StoreClient = Depends(get_store_client),
    executor: BatchExecutor = Depends(get_batch_executor),
):
    """Re-validate and execute a previewed batch, recording it for undo."""
    try:
        result = executor.execute_batch(request.prompt, request.actions, client)
    except BatchValidationError as e:
        raise HTTPException(status_code=400, detail={"error": "Validation failed", "errors": e.errors})

    return result.to_dict()
