from __future__ import annotations

from typing import Any, Dict, List, Optional

import httpx
import pytest

from foodscan.core.openfoodfacts import OpenFoodFactsClient


class FakeOpenFoodFacts:
    """In-memory stand-in for the Open Food Facts HTTP API."""

    def __init__(self):
        self.products: Dict[str, Dict[str, Any]] = {}
        # sort_by -> list of products, or an int status code to fail with
        self.search_results: Dict[str, Any] = {}
        self.requests: List[httpx.Request] = []
        self.fail_transport = False

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.fail_transport:
            raise httpx.ConnectError("connection refused", request=request)

        path = request.url.path
        if path.startswith("/api/v2/product/"):
            code = path.rsplit("/", 1)[-1].removesuffix(".json")
            product = self.products.get(code)
            if product is None:
                return httpx.Response(404, json={"code": code, "status": 0, "status_verbose": "product not found"})
            return httpx.Response(200, json={"code": code, "status": 1, "product": product})

        if path == "/api/v2/search":
            result = self.search_results.get(request.url.params.get("sort_by"), [])
            if isinstance(result, int):
                return httpx.Response(result, text="upstream trouble")
            return httpx.Response(200, json={"count": len(result), "products": result})

        return httpx.Response(404, text="no route")

    def client(self, **kwargs: Any) -> OpenFoodFactsClient:
        kwargs.setdefault("max_retries", 0)
        return OpenFoodFactsClient(
            base_url="https://off.test",
            transport=httpx.MockTransport(self.handler),
            **kwargs,
        )

    def search_requests(self) -> List[httpx.Request]:
        return [r for r in self.requests if r.url.path == "/api/v2/search"]


@pytest.fixture
def off_api() -> FakeOpenFoodFacts:
    return FakeOpenFoodFacts()


def make_product(
    code: str,
    name: Optional[str] = None,
    *,
    categories_tags: Optional[List[str]] = None,
    countries_tags: Optional[List[str]] = None,
    stores_tags: Optional[List[str]] = None,
    stores: Optional[str] = None,
    nutrition_grades: Optional[str] = "b",
    ecoscore_grade: Optional[str] = "b",
    **extra: Any,
) -> Dict[str, Any]:
    p: Dict[str, Any] = {
        "code": code,
        "product_name": name or f"Product {code}",
        "categories_tags": categories_tags if categories_tags is not None else ["en:snacks", "en:chips"],
        "countries_tags": countries_tags if countries_tags is not None else ["en:switzerland"],
        "stores_tags": stores_tags if stores_tags is not None else ["coop"],
        "stores": stores if stores is not None else "Coop",
        "nutrition_grades": nutrition_grades,
        "ecoscore_grade": ecoscore_grade,
    }
    p.update(extra)
    return p


@pytest.fixture
def product_factory():
    return make_product


