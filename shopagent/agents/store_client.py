"""
Store API collaborator - Shopify Admin REST client.

The executor and the undo/redo engine only talk to the abstract StoreClient;
ShopifyClient is the production implementation.
"""

import time
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional

import requests

from ..core import config
from ..util.logging import logger


class StoreAPIError(Exception):
    """A store call failed (transport error or non-2xx response)."""

    def __init__(self, message: str, status_code: Optional[int] = None, body: str = ""):
        self.status_code = status_code
        self.body = body
        super().__init__(message)


class StoreClient(ABC):
    """Operations the pipeline may perform against a store."""

    store_domain: str = ""

    @abstractmethod
    def list_products(self) -> List[Dict[str, Any]]:
        pass

    @abstractmethod
    def list_pages(self) -> List[Dict[str, Any]]:
        pass

    @abstractmethod
    def list_collections(self) -> List[Dict[str, Any]]:
        pass

    @abstractmethod
    def list_themes(self) -> List[Dict[str, Any]]:
        pass

    @abstractmethod
    def create_product(self, fields: Dict[str, Any]) -> Dict[str, Any]:
        pass

    @abstractmethod
    def update_product(self, product_id: Any, fields: Dict[str, Any]) -> Dict[str, Any]:
        pass

    @abstractmethod
    def create_page(self, fields: Dict[str, Any]) -> Dict[str, Any]:
        pass

    @abstractmethod
    def update_page(self, page_id: Any, fields: Dict[str, Any]) -> Dict[str, Any]:
        pass

    @abstractmethod
    def create_collection(self, fields: Dict[str, Any]) -> Dict[str, Any]:
        pass

    @abstractmethod
    def update_product_seo(self, product_id: Any, meta_title: str, meta_description: str) -> Dict[str, Any]:
        pass

    @abstractmethod
    def set_active_theme(self, theme_id: Any) -> Dict[str, Any]:
        pass

    @abstractmethod
    def get_shop_info(self) -> Dict[str, Any]:
        pass

    def list_collection(self, name: str) -> List[Dict[str, Any]]:
        """Read a record collection by name (products|pages|collections|themes)."""
        readers = {
            "products": self.list_products,
            "pages": self.list_pages,
            "collections": self.list_collections,
            "themes": self.list_themes,
        }
        if name not in readers:
            raise ValueError(f"Unknown store collection: {name}")
        return readers[name]()


class ShopifyClient(StoreClient):
    """
    Shopify Admin REST API client using the access token of the current session.

    Rate-limited calls (HTTP 429) are retried exactly once after the server's
    Retry-After delay; any other failure raises StoreAPIError.
    """

    def __init__(self, store_domain: str, access_token: str, api_version: str = None,
                 session: requests.Session = None, timeout: float = None):
        self.store_domain = store_domain.replace("https://", "").replace("http://", "").rstrip("/")
        self.access_token = access_token
        self.api_version = api_version or config.SHOPIFY_API_VERSION
        self.base_url = f"https://{self.store_domain}/admin/api/{self.api_version}"
        self.session = session or requests.Session()
        self.timeout = timeout or config.SHOPIFY_REQUEST_TIMEOUT_SEC

    def _request(self, endpoint: str, method: str = "GET", body: Dict[str, Any] = None) -> Dict[str, Any]:
        url = f"{self.base_url}{endpoint}"
        headers = {
            "X-Shopify-Access-Token": self.access_token,
            "Content-Type": "application/json",
        }

        response = self._send(method, url, headers, body)

        if response.status_code == 429:
            retry_after = _parse_retry_after(response.headers.get("Retry-After"))
            logger.log_store_retry(endpoint, retry_after)
            time.sleep(retry_after)
            response = self._send(method, url, headers, body)

        if not response.ok:
            raise StoreAPIError(
                f"Shopify API error {response.status_code}: {response.text[:500]}",
                status_code=response.status_code,
                body=response.text,
            )

        # Some calls return 200 with an empty body
        if not response.content:
            return {}
        return response.json()

    def _send(self, method: str, url: str, headers: Dict[str, str], body: Optional[Dict[str, Any]]) -> requests.Response:
        try:
            return self.session.request(method, url, headers=headers, json=body, timeout=self.timeout)
        except requests.RequestException as e:
            raise StoreAPIError(f"Shopify request failed: {e}") from e

    # Products

    def list_products(self, limit: int = None) -> List[Dict[str, Any]]:
        data = self._request(f"/products.json?limit={limit or config.SHOPIFY_LIST_LIMIT}")
        return data.get("products", [])

    def create_product(self, fields: Dict[str, Any]) -> Dict[str, Any]:
        product = {"title": fields["title"]}
        if fields.get("description"):
            product["body_html"] = fields["description"]
        for name in ("vendor", "product_type", "tags"):
            if fields.get(name):
                product[name] = fields[name]

        variant = {"inventory_management": "shopify"}
        if fields.get("price") is not None:
            variant["price"] = str(fields["price"])
        product["variants"] = [variant]

        images = [img for img in (_image_payload(i) for i in fields.get("images") or []) if img]
        if images:
            product["images"] = images

        logger.info(f"Creating product '{product['title']}' with {len(images)} image(s) on {self.store_domain}")
        data = self._request("/products.json", "POST", {"product": product})
        return data.get("product", {})

    def update_product(self, product_id: Any, fields: Dict[str, Any]) -> Dict[str, Any]:
        product_id = _format_id(product_id)
        product = {"id": product_id}
        if fields.get("title") is not None:
            product["title"] = fields["title"]
        if fields.get("description") is not None:
            product["body_html"] = fields["description"]
        for name in ("vendor", "product_type", "tags"):
            if fields.get(name) is not None:
                product[name] = fields[name]

        data = self._request(f"/products/{product_id}.json", "PUT", {"product": product})
        updated = data.get("product", {})

        # Price lives on the first variant
        if fields.get("price") is not None:
            variants = updated.get("variants") or []
            if not variants:
                raise StoreAPIError(f"Product {product_id} has no variant to carry a price")
            variant_id = variants[0]["id"]
            variant_data = self._request(
                f"/variants/{variant_id}.json", "PUT",
                {"variant": {"id": variant_id, "price": str(fields["price"])}}
            )
            updated["variants"] = [variant_data.get("variant", variants[0])] + variants[1:]

        return updated

    def update_product_seo(self, product_id: Any, meta_title: str, meta_description: str) -> Dict[str, Any]:
        product_id = _format_id(product_id)
        product = {
            "id": product_id,
            "metafields_global_title_tag": meta_title,
            "metafields_global_description_tag": meta_description,
        }
        data = self._request(f"/products/{product_id}.json", "PUT", {"product": product})
        return data.get("product", {})

    # Pages

    def list_pages(self, limit: int = None) -> List[Dict[str, Any]]:
        data = self._request(f"/pages.json?limit={limit or config.SHOPIFY_LIST_LIMIT}")
        return data.get("pages", [])

    def create_page(self, fields: Dict[str, Any]) -> Dict[str, Any]:
        data = self._request("/pages.json", "POST", {
            "page": {"title": fields["title"], "body_html": fields.get("content", "")}
        })
        return data.get("page", {})

    def update_page(self, page_id: Any, fields: Dict[str, Any]) -> Dict[str, Any]:
        page_id = _format_id(page_id)
        page = {"id": page_id}
        if fields.get("title") is not None:
            page["title"] = fields["title"]
        if fields.get("content") is not None:
            page["body_html"] = fields["content"]

        data = self._request(f"/pages/{page_id}.json", "PUT", {"page": page})
        return data.get("page", {})

    # Collections

    def list_collections(self, limit: int = None) -> List[Dict[str, Any]]:
        data = self._request(f"/custom_collections.json?limit={limit or config.SHOPIFY_LIST_LIMIT}")
        return data.get("custom_collections", [])

    def create_collection(self, fields: Dict[str, Any]) -> Dict[str, Any]:
        collection = {"title": fields["title"]}
        if fields.get("description"):
            collection["body_html"] = fields["description"]
        if fields.get("sort_order"):
            collection["sort_order"] = fields["sort_order"]

        data = self._request("/custom_collections.json", "POST", {"custom_collection": collection})
        return data.get("custom_collection", {})

    # Themes

    def list_themes(self) -> List[Dict[str, Any]]:
        data = self._request("/themes.json")
        return data.get("themes", [])

    def set_active_theme(self, theme_id: Any) -> Dict[str, Any]:
        theme_id = _format_id(theme_id)
        data = self._request(f"/themes/{theme_id}.json", "PUT", {"theme": {"id": theme_id, "role": "main"}})
        return data.get("theme", {})

    # Store info

    def get_shop_info(self) -> Dict[str, Any]:
        data = self._request("/shop.json")
        return data.get("shop", {})


def _format_id(value: Any) -> Any:
    """Record ids travel as numbers; 123.0 must not become '/products/123.0.json'."""
    if isinstance(value, float) and value.is_integer():
        return int(value)
    return value


def _parse_retry_after(header: Optional[str]) -> float:
    try:
        return max(float(header), 0.0)
    except (TypeError, ValueError):
        return config.SHOPIFY_DEFAULT_RETRY_AFTER_SEC


def _image_payload(image: Any) -> Optional[Dict[str, str]]:
    """Accept plain URLs, {"src": url} and {"attachment": base64} images."""
    if isinstance(image, str):
        return {"src": image}
    if isinstance(image, dict):
        if image.get("attachment"):
            return {"attachment": image["attachment"]}
        if image.get("src"):
            return {"src": image["src"]}
    return None
