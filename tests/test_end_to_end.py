"""
End-to-end flows: preview, confirm, inspect history, undo and redo.
"""

from unittest.mock import Mock

import pytest
from fastapi.testclient import TestClient

from shopagent.agents.action_generator import ActionGenerator, GeneratedActions
from shopagent.api import deps
from shopagent.api.main import app
from shopagent.core.history import HistoryStore, SQLiteHistoryBackend

AUTH = {"X-Shop-Domain": "test-shop.myshopify.com", "Authorization": "Bearer shpat_test"}


@pytest.fixture
def generator():
    return Mock(spec=ActionGenerator)


@pytest.fixture
def api(store, tmp_path, generator):
    history = HistoryStore(SQLiteHistoryBackend(str(tmp_path / "history.db")))
    app.dependency_overrides[deps.get_store_client] = lambda: store
    app.dependency_overrides[deps.get_history_store] = lambda: history
    app.dependency_overrides[deps.get_action_generator] = lambda: generator
    app.dependency_overrides[deps.get_image_acquirer] = lambda: None
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


def test_create_page_flow(api, store, generator):
    generator.generate.return_value = GeneratedActions(
        actions=[{"kind": "create_page", "title": "Our Story", "content": "<p>Since 2020</p>"}],
        summary="Create an Our Story page",
        model="llama3.1:8b",
    )

    preview = api.post("/api/execute", json={"prompt": "Create an about page"}, headers=AUTH).json()
    assert preview["valid"] is True
    assert len(store.pages) == 1

    confirmed = api.post("/api/execute/confirm", json={
        "prompt": preview["prompt"],
        "actions": preview["actions"],
    }, headers=AUTH).json()
    assert confirmed["success_count"] == 1
    assert [p["title"] for p in store.pages] == ["About", "Our Story"]

    history = api.get("/api/history").json()
    assert history["entries"][0]["id"] == confirmed["history_id"]
    assert history["entries"][0]["summary"] == "Executed 1/1 actions"

    undo = api.post(f"/api/history/{confirmed['history_id']}/undo", headers=AUTH).json()
    assert undo["results"][0]["undone"] is False
    assert "Cannot undo create_page" in undo["results"][0]["reason"]
    assert len(store.pages) == 2

    entry = api.get(f"/api/history/{confirmed['history_id']}").json()
    assert entry["status"] == "undone"


def test_price_change_round_trip(api, store, generator):
    generator.generate.return_value = GeneratedActions(
        actions=[
            {"kind": "adjust_price", "product_id": "101", "new_price": "9.99"},
            {"kind": "update_product", "product_id": 102, "title": "Crimson Mug"},
        ],
        summary="Discount the blue mug and rename the red one",
        model="llama3.1:8b",
    )

    preview = api.post("/api/execute", json={"prompt": "sale"}, headers=AUTH).json()
    confirmed = api.post("/api/execute/confirm", json={"prompt": "sale", "actions": preview["actions"]},
                         headers=AUTH).json()
    entry_id = confirmed["history_id"]

    assert store.product(101)["variants"][0]["price"] == "9.99"
    assert store.product(102)["title"] == "Crimson Mug"

    api.post(f"/api/history/{entry_id}/undo", headers=AUTH)
    assert store.product(101)["variants"][0]["price"] == "12.00"
    assert store.product(102)["title"] == "Red Mug"

    api.post(f"/api/history/{entry_id}/redo", headers=AUTH)
    assert store.product(101)["variants"][0]["price"] == "9.99"
    assert store.product(102)["title"] == "Crimson Mug"


def test_oversized_batch_rejected(api, store, generator):
    actions = [{"kind": "create_collection", "title": f"C{i}"} for i in range(51)]
    generator.generate.return_value = GeneratedActions(actions=actions, summary="", model="m")

    preview = api.post("/api/execute", json={"prompt": "lots"}, headers=AUTH).json()
    assert preview["valid"] is False
    assert preview["validation_errors"] == ["Too many actions (51). Maximum is 50."]
    assert preview["actions"] == []

    response = api.post("/api/execute/confirm", json={"actions": actions}, headers=AUTH)
    assert response.status_code == 400
    assert len(store.collections) == 1
