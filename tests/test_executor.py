"""
Tests for batch execution against an in-memory store.
"""

import logging
from unittest.mock import Mock, patch

import pytest

from shopagent.agents.image_acquirer import ImageAcquirer, placeholder_url
from shopagent.core.action_schema import ActionKind
from shopagent.core.errors import BatchValidationError, UnknownActionKindError
from shopagent.core.executor import DISPATCH, BatchExecutor, dispatch_action
from shopagent.core.schema import ValidatedAction


@pytest.fixture
def executor(history_store):
    return BatchExecutor(history_store)


class TestDispatch:

    def test_every_kind_dispatches(self):
        assert set(DISPATCH) == set(ActionKind)

    def test_adjust_price_updates_first_variant(self, store):
        action = ValidatedAction(kind=ActionKind.ADJUST_PRICE, fields={"product_id": 101, "new_price": 9.5})
        dispatch_action(store, action)
        assert store.product(101)["variants"][0]["price"] == "9.5"

    def test_unknown_kind_raises(self, store):
        action = Mock(kind="teleport", fields={})
        with pytest.raises(UnknownActionKindError):
            dispatch_action(store, action)


class TestExecuteBatch:

    def test_invalid_batch_runs_nothing(self, executor, store, history_store):
        with pytest.raises(BatchValidationError) as exc_info:
            executor.execute_batch("bad", [{"kind": "delete_store"}], store)

        assert exc_info.value.errors == ['Action #1: Action "delete_store" is BLOCKED and not allowed']
        assert store.calls == []
        assert history_store.count() == 0

    def test_create_page_recorded(self, executor, store, history_store):
        result = executor.execute_batch(
            "Create an About page",
            [{"kind": "create_page", "title": "Our Story", "content": "<p>Hello</p>"}],
            store,
        )

        assert result.success_count == 1
        assert result.failure_count == 0
        assert result.results[0].result["title"] == "Our Story"

        entry = history_store.get(result.history_id)
        assert entry.prompt == "Create an About page"
        assert entry.summary == "Executed 1/1 actions"
        assert entry.store_domain == "test-shop.myshopify.com"
        assert [p["title"] for p in entry.after_snapshot.records("pages")] == ["About", "Our Story"]
        assert [p["title"] for p in entry.before_snapshot.records("pages")] == ["About"]

    def test_actions_run_in_order_and_fail_independently(self, executor, store):
        store.fail_on.add("update_page")
        result = executor.execute_batch("mixed", [
            {"kind": "adjust_price", "product_id": 101, "new_price": 20},
            {"kind": "update_page", "page_id": 201, "title": "New About"},
            {"kind": "set_active_theme", "theme_id": 402},
        ], store)

        assert [r.success for r in result.results] == [True, False, True]
        assert result.results[1].error == "update_page failed"
        assert result.success_count == 2
        assert result.failure_count == 1

        mutating = [c[0] for c in store.calls if not c[0].startswith("list_")]
        assert mutating == ["update_product", "update_page", "set_active_theme"]

    def test_snapshots_taken_around_actions(self, executor, store, history_store):
        result = executor.execute_batch("price", [{"kind": "adjust_price", "product_id": 101, "new_price": 30}], store)
        entry = history_store.get(result.history_id)

        assert entry.before_snapshot.find("products", 101)["variants"][0]["price"] == "12.00"
        assert entry.after_snapshot.find("products", 101)["variants"][0]["price"] == "30"

    def test_degraded_snapshot_reported(self, executor, store, history_store):
        store.fail_on.add("list_pages")
        result = executor.execute_batch("price", [{"kind": "adjust_price", "product_id": 101, "new_price": 30}], store)

        assert result.degraded == {"before.pages": "list_pages failed", "after.pages": "list_pages failed"}
        entry = history_store.get(result.history_id)
        assert entry.before_snapshot.records("pages") == []
        assert entry.before_snapshot.degraded == {"pages": "list_pages failed"}

    def test_default_prompt(self, executor, store, history_store):
        result = executor.execute_batch(None, [{"kind": "create_collection", "title": "Summer"}], store)
        assert history_store.get(result.history_id).prompt == "Manual execution"

    def test_history_failure_still_returns_results(self, store):
        broken = Mock()
        broken.append.side_effect = RuntimeError("disk full")
        result = BatchExecutor(broken).execute_batch("p", [{"kind": "create_collection", "title": "Summer"}], store)

        assert result.history_id is None
        assert result.history_error == "disk full"
        assert result.success_count == 1

    def test_history_stores_validated_actions(self, executor, store, history_store):
        result = executor.execute_batch("p", [{"kind": "update_page", "page_id": "201", "title": "X", "junk": 1}], store)
        action = history_store.get(result.history_id).actions[0]
        assert action.fields == {"page_id": 201, "title": "X"}

    def test_to_dict(self, executor, store):
        data = executor.execute_batch("p", [{"kind": "create_collection", "title": "Summer"}], store).to_dict()
        assert data["executed"] is True
        assert data["success_count"] == 1
        assert data["results"][0]["action"] == {"kind": "create_collection", "title": "Summer"}
        assert data["degraded_snapshots"] == {}


class TestProductImages:

    def test_images_acquired_from_prompts(self, store, history_store):
        acquirer = Mock()
        acquirer.acquire.return_value = [{"src": "https://img/1.png"}]
        executor = BatchExecutor(history_store, image_acquirer=acquirer)

        result = executor.execute_batch("p", [
            {"kind": "create_product", "title": "Mug", "image_prompts": ["a mug on a desk"]},
        ], store)

        acquirer.acquire.assert_called_once_with(["a mug on a desk"])
        sent = next(c[1] for c in store.calls if c[0] == "create_product")
        assert "image_prompts" not in sent
        assert sent["images"] == [{"src": "https://img/1.png"}]
        assert result.results[0].action["images"] == "[images attached]"

    def test_default_prompt_from_title(self, store, history_store):
        acquirer = Mock()
        acquirer.acquire.return_value = [{"src": "https://img/1.png"}]
        BatchExecutor(history_store, image_acquirer=acquirer).execute_batch(
            "p", [{"kind": "create_product", "title": "Mug"}], store)

        prompts = acquirer.acquire.call_args[0][0]
        assert len(prompts) == 1
        assert "Mug" in prompts[0]

    def test_explicit_images_kept(self, store, history_store):
        acquirer = Mock()
        BatchExecutor(history_store, image_acquirer=acquirer).execute_batch(
            "p", [{"kind": "create_product", "title": "Mug", "images": ["https://cdn/mug.png"]}], store)

        acquirer.acquire.assert_not_called()
        sent = next(c[1] for c in store.calls if c[0] == "create_product")
        assert sent["images"] == ["https://cdn/mug.png"]

    def test_no_acquirer(self, executor, store):
        executor.execute_batch("p", [{"kind": "create_product", "title": "Mug", "image_prompts": ["x"]}], store)
        sent = next(c[1] for c in store.calls if c[0] == "create_product")
        assert "images" not in sent
        assert "image_prompts" not in sent


class TestNonStringImagePrompts:

    def test_numeric_image_prompt_does_not_fail_product(self, store, history_store):
        executor = BatchExecutor(history_store, image_acquirer=ImageAcquirer(api_key=""))

        result = executor.execute_batch("p", [
            {"kind": "create_product", "title": "Mug", "image_prompts": [123]},
        ], store)

        assert result.results[0].success is True
        sent = next(c[1] for c in store.calls if c[0] == "create_product")
        assert sent["images"] == [{"src": placeholder_url("123", 0)}]


class TestAudit:

    @patch("shopagent.core.executor.audit_event")
    def test_batch_audited(self, mock_audit, executor, store):
        result = executor.execute_batch("p", [{"kind": "create_collection", "title": "Summer"}], store)

        event_type, identifiers, payload = mock_audit.call_args[0]
        assert event_type == "execute.batch"
        assert identifiers == {"history_id": result.history_id, "store": "test-shop.myshopify.com"}
        assert payload["actions"] == [{"kind": "create_collection", "title": "Summer"}]

    def test_attachments_redacted_in_audit_log(self, executor, store, caplog):
        with caplog.at_level(logging.INFO, logger="shopagent"):
            executor.execute_batch("p", [
                {"kind": "create_product", "title": "Mug", "images": [{"attachment": "QUJDREVGRw=="}]},
            ], store)

        audit = [r.getMessage() for r in caplog.records if "execute_batch" in r.getMessage()]
        assert audit
        assert "QUJDREVGRw==" not in audit[-1]
        assert "[REDACTED]" in audit[-1]
