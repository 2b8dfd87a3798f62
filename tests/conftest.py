"""
Shared fixtures: an in-memory store client and history stores.
"""

import copy

import pytest

from shopagent.agents.store_client import StoreAPIError, StoreClient
from shopagent.core.history import HistoryStore, InMemoryHistoryBackend, SQLiteHistoryBackend


class FakeStoreClient(StoreClient):
    """In-memory store with Shopify-shaped records.

    `fail_on` names methods that raise StoreAPIError; every call is recorded in `calls`.
    """

    def __init__(self, products=None, pages=None, collections=None, themes=None, store_domain="test-shop.myshopify.com"):
        self.store_domain = store_domain
        self.products = copy.deepcopy(products or [])
        self.pages = copy.deepcopy(pages or [])
        self.collections = copy.deepcopy(collections or [])
        self.themes = copy.deepcopy(themes or [])
        self.fail_on = set()
        self.calls = []
        self._next_id = 9000

    def _call(self, name, *args):
        self.calls.append((name,) + args)
        if name in self.fail_on:
            raise StoreAPIError(f"{name} failed", status_code=500)

    def _new_id(self):
        self._next_id += 1
        return self._next_id

    def _find(self, records, record_id, label):
        for record in records:
            if str(record["id"]) == str(int(record_id) if isinstance(record_id, float) else record_id):
                return record
        raise StoreAPIError(f"{label} {record_id} not found", status_code=404)

    def list_products(self):
        self._call("list_products")
        return copy.deepcopy(self.products)

    def list_pages(self):
        self._call("list_pages")
        return copy.deepcopy(self.pages)

    def list_collections(self):
        self._call("list_collections")
        return copy.deepcopy(self.collections)

    def list_themes(self):
        self._call("list_themes")
        return copy.deepcopy(self.themes)

    def create_product(self, fields):
        self._call("create_product", dict(fields))
        product = {
            "id": self._new_id(),
            "title": fields["title"],
            "body_html": fields.get("description", ""),
            "variants": [{"id": self._new_id(), "price": str(fields.get("price", "0.00"))}],
            "images": list(fields.get("images") or []),
        }
        self.products.append(product)
        return copy.deepcopy(product)

    def update_product(self, product_id, fields):
        self._call("update_product", product_id, dict(fields))
        product = self._find(self.products, product_id, "Product")
        if fields.get("title") is not None:
            product["title"] = fields["title"]
        if fields.get("description") is not None:
            product["body_html"] = fields["description"]
        if fields.get("price") is not None:
            product["variants"][0]["price"] = str(fields["price"])
        return copy.deepcopy(product)

    def create_page(self, fields):
        self._call("create_page", dict(fields))
        page = {"id": self._new_id(), "title": fields["title"], "body_html": fields.get("content", "")}
        self.pages.append(page)
        return copy.deepcopy(page)

    def update_page(self, page_id, fields):
        self._call("update_page", page_id, dict(fields))
        page = self._find(self.pages, page_id, "Page")
        if fields.get("title") is not None:
            page["title"] = fields["title"]
        if fields.get("content") is not None:
            page["body_html"] = fields["content"]
        return copy.deepcopy(page)

    def create_collection(self, fields):
        self._call("create_collection", dict(fields))
        collection = {"id": self._new_id(), "title": fields["title"]}
        self.collections.append(collection)
        return copy.deepcopy(collection)

    def update_product_seo(self, product_id, meta_title, meta_description):
        self._call("update_product_seo", product_id, meta_title, meta_description)
        product = self._find(self.products, product_id, "Product")
        product["metafields_global_title_tag"] = meta_title
        product["metafields_global_description_tag"] = meta_description
        return copy.deepcopy(product)

    def set_active_theme(self, theme_id):
        self._call("set_active_theme", theme_id)
        target = self._find(self.themes, theme_id, "Theme")
        for theme in self.themes:
            theme["role"] = "unpublished"
        target["role"] = "main"
        return copy.deepcopy(target)

    def get_shop_info(self):
        self._call("get_shop_info")
        return {"name": "Test Shop", "domain": self.store_domain}

    def product(self, product_id):
        return self._find(self.products, product_id, "Product")

    def page(self, page_id):
        return self._find(self.pages, page_id, "Page")


@pytest.fixture
def store():
    """Store with two products, one page, one collection and two themes."""
    return FakeStoreClient(
        products=[
            {"id": 101, "title": "Blue Mug", "body_html": "<p>A blue mug</p>", "status": "active",
             "variants": [{"id": 1001, "price": "12.00"}]},
            {"id": 102, "title": "Red Mug", "body_html": "<p>A red mug</p>", "status": "active",
             "variants": [{"id": 1002, "price": "15.00"}]},
        ],
        pages=[{"id": 201, "title": "About", "body_html": "<p>Old about</p>"}],
        collections=[{"id": 301, "title": "Mugs"}],
        themes=[
            {"id": 401, "name": "Dawn", "role": "main"},
            {"id": 402, "name": "Sense", "role": "unpublished"},
        ],
    )


@pytest.fixture
def history_store():
    return HistoryStore(InMemoryHistoryBackend())


@pytest.fixture
def sqlite_history_store(tmp_path):
    return HistoryStore(SQLiteHistoryBackend(str(tmp_path / "history.db")))
