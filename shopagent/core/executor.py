"""
Batch executor - runs confirmed actions against the store and records them for undo.

Steps per batch: re-validate, snapshot "before", run each action in order,
snapshot "after", append one history entry. Actions succeed or fail
independently; nothing is rolled back.
"""

from typing import Any, Callable, Dict, List

from .action_schema import ActionKind
from .errors import BatchValidationError, UnknownActionKindError
from .history import HistoryStore
from .schema import ActionOutcome, BatchResult, ValidatedAction
from .snapshots import capture_snapshot
from .validator import validate_actions
from ..agents.image_acquirer import default_image_prompt
from ..util.logging import audit_event, logger


def _create_product(client, fields):
    return client.create_product(fields)


def _update_product(client, fields):
    return client.update_product(fields["product_id"], fields)


def _create_page(client, fields):
    return client.create_page(fields)


def _update_page(client, fields):
    return client.update_page(fields["page_id"], fields)


def _create_collection(client, fields):
    return client.create_collection(fields)


def _adjust_price(client, fields):
    return client.update_product(fields["product_id"], {"price": fields["new_price"]})


def _generate_seo(client, fields):
    return client.update_product_seo(fields["product_id"], fields["meta_title"], fields["meta_description"])


def _set_active_theme(client, fields):
    return client.set_active_theme(fields["theme_id"])


# One store operation per kind
DISPATCH: Dict[ActionKind, Callable[[Any, Dict[str, Any]], Any]] = {
    ActionKind.CREATE_PRODUCT: _create_product,
    ActionKind.UPDATE_PRODUCT: _update_product,
    ActionKind.CREATE_PAGE: _create_page,
    ActionKind.UPDATE_PAGE: _update_page,
    ActionKind.CREATE_COLLECTION: _create_collection,
    ActionKind.ADJUST_PRICE: _adjust_price,
    ActionKind.GENERATE_SEO: _generate_seo,
    ActionKind.SET_ACTIVE_THEME: _set_active_theme,
}

_missing = set(ActionKind) - set(DISPATCH)
if _missing:
    raise RuntimeError(f"Action kinds without a store operation: {sorted(k.value for k in _missing)}")


def dispatch_action(client, action: ValidatedAction, fields: Dict[str, Any] = None) -> Any:
    """Run the single store operation matching the action's kind."""
    handler = DISPATCH.get(action.kind)
    if handler is None:
        raise UnknownActionKindError(str(action.kind))
    return handler(client, fields if fields is not None else action.fields)


class BatchExecutor:
    """
    Executes validated batches and records them in the history store.

    Args:
        history_store: Where executed batches are recorded
        image_acquirer: Optional collaborator supplying images for new products
    """

    def __init__(self, history_store: HistoryStore, image_acquirer=None):
        self.history_store = history_store
        self.image_acquirer = image_acquirer

    def execute_batch(self, prompt: str, candidates: Any, client) -> BatchResult:
        """
        Validate and execute a batch.

        Raises:
            BatchValidationError: the batch does not validate; nothing ran
        """
        # Preview output may have been edited client-side, so check again
        validation = validate_actions(candidates, source="confirm")
        if not validation.valid:
            raise BatchValidationError(validation.errors)

        before = capture_snapshot(client, phase="before")

        results: List[ActionOutcome] = []
        for index, action in enumerate(validation.actions, start=1):
            results.append(self._execute_one(index, action, client))

        after = capture_snapshot(client, phase="after")

        degraded = {}
        for phase, snapshot in (("before", before), ("after", after)):
            for name, reason in snapshot.degraded.items():
                degraded[f"{phase}.{name}"] = reason

        result = BatchResult(results=results, history_id=None, degraded=degraded)
        store_domain = getattr(client, "store_domain", "")

        try:
            history_id, _ = self.history_store.append(
                prompt=prompt or "Manual execution",
                actions=validation.actions,
                before_snapshot=before,
                after_snapshot=after,
                summary=f"Executed {result.success_count}/{len(results)} actions",
                store_domain=store_domain,
            )
            result.history_id = history_id
        except Exception as e:
            # Store mutations already landed and are not rolled back
            logger.error(f"Failed to record history for executed batch on {store_domain}: {e}")
            result.history_error = str(e)

        logger.log_batch_completed(result.history_id, result.success_count, result.failure_count, store_domain)
        audit_event(
            "execute.batch",
            {"history_id": result.history_id, "store": store_domain},
            {"prompt": prompt, "actions": [a.to_dict() for a in validation.actions]},
        )
        return result

    def _execute_one(self, index: int, action: ValidatedAction, client) -> ActionOutcome:
        fields = dict(action.fields)
        try:
            if action.kind is ActionKind.CREATE_PRODUCT:
                fields = self._attach_images(fields)

            outcome = dispatch_action(client, action, fields)
            logger.log_action_executed(index, action.kind.value, True)
            return ActionOutcome(action=_display_action(action, fields), success=True, result=outcome)

        except UnknownActionKindError:
            raise
        except Exception as e:
            logger.log_action_executed(index, action.kind.value, False, str(e))
            return ActionOutcome(action=_display_action(action, fields), success=False, error=str(e))

    def _attach_images(self, fields: Dict[str, Any]) -> Dict[str, Any]:
        """Fill in product images from image prompts; the store never sees image_prompts."""
        prompts = fields.pop("image_prompts", None) or [default_image_prompt(fields["title"])]

        if not fields.get("images") and self.image_acquirer is not None:
            fields["images"] = self.image_acquirer.acquire(prompts)

        return fields


def _display_action(action: ValidatedAction, fields: Dict[str, Any]) -> Dict[str, Any]:
    data = {"kind": action.kind.value}
    data.update(fields)
    if data.get("images"):
        data["images"] = "[images attached]"
    return data
