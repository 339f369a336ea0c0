import asyncio
import random
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

import httpx

from foodscan.core.config import settings
from foodscan.core.logging import get_logger

log = get_logger("openfoodfacts")

# Fields consumed by the product view and the alternative filters
PRODUCT_FIELDS = ",".join(
    [
        "code",
        "product_name",
        "product_name_de",
        "brands",
        "image_front_url",
        "nutrition_grades",
        "nutriscore_grade",
        "nutrition_grade_fr",
        "ecoscore_grade",
        "categories_tags",
        "countries_tags",
        "purchase_places_tags",
        "stores_tags",
        "stores",
    ]
)

SORT_BY_NUTRISCORE = "nutriscore_score"
SORT_BY_ECOSCORE = "ecoscore_score"


class OpenFoodFactsError(Exception):
    """The API answered, but not with something we can use."""

    def __init__(self, message: str, status_code: Optional[int] = None, body: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.body = body


class OpenFoodFactsTransportError(OpenFoodFactsError):
    """The request never got an answer (DNS, connect, timeout, ...)."""


@dataclass
class ProductLookup:
    found: bool
    product: Optional[Dict[str, Any]] = None


@dataclass
class SearchOutcome:
    products: List[Dict[str, Any]] = field(default_factory=list)
    error: Optional[str] = None


async def _sleep_for_retry(resp: httpx.Response, attempt: int, max_backoff: float) -> None:
    """
    Respect Retry-After header when present; otherwise exponential backoff with jitter.
    """
    retry_after = resp.headers.get("retry-after")
    if retry_after:
        try:
            wait = max(0.5, min(float(retry_after), max_backoff))
            await asyncio.sleep(wait)
            return
        except ValueError:
            pass

    base = min(max_backoff, (2 ** attempt))
    jitter = random.uniform(0.0, 0.5)
    await asyncio.sleep(base + jitter)


class OpenFoodFactsClient:
    """
    Thin async client for the Open Food Facts v2 API.

    One httpx.AsyncClient per call, like the rest of the backend. Tests pass a
    `transport` (httpx.MockTransport) to keep everything offline.
    """

    def __init__(
        self,
        base_url: Optional[str] = None,
        user_agent: Optional[str] = None,
        language: Optional[str] = None,
        timeout: Optional[float] = None,
        max_retries: Optional[int] = None,
        max_backoff: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = (base_url or settings.OFF_BASE_URL).rstrip("/")
        self.user_agent = user_agent or settings.OFF_USER_AGENT
        self.language = language or settings.OFF_LANGUAGE
        self.timeout = timeout if timeout is not None else settings.OFF_TIMEOUT_SECONDS
        self.max_retries = max_retries if max_retries is not None else settings.OFF_MAX_RETRIES
        self.max_backoff = max_backoff if max_backoff is not None else settings.OFF_MAX_BACKOFF_SECONDS
        self._transport = transport

    def _http(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            timeout=self.timeout,
            transport=self._transport,
            headers={"User-Agent": self.user_agent, "Accept": "application/json"},
        )

    async def _get(self, url: str, params: Dict[str, Any]) -> httpx.Response:
        """
        GET with retries for 429/503. Transport failures are raised as
        OpenFoodFactsTransportError.
        """
        async with self._http() as client:
            for attempt in range(self.max_retries + 1):
                try:
                    resp = await client.get(url, params=params)
                except httpx.HTTPError as e:
                    raise OpenFoodFactsTransportError(f"Open Food Facts unreachable: {e}") from e

                if resp.status_code in (429, 503) and attempt < self.max_retries:
                    log.warning(f"Open Food Facts answered {resp.status_code}; retry {attempt + 1}/{self.max_retries}")
                    await _sleep_for_retry(resp, attempt, self.max_backoff)
                    continue
                return resp

        # unreachable: the loop always returns on its last attempt
        raise OpenFoodFactsError("Open Food Facts retry loop exhausted")

    async def get_product(self, code: str) -> ProductLookup:
        """
        Fetch a single product by barcode.

        Not found is a normal outcome (found=False). Anything else that is not a
        product raises OpenFoodFactsError.
        """
        url = f"{self.base_url}/api/v2/product/{code}.json"
        resp = await self._get(url, {"fields": PRODUCT_FIELDS, "lc": self.language})

        try:
            data = resp.json()
        except ValueError:
            data = None

        # v2 answers unknown barcodes with 404 + {"status": 0}
        if resp.status_code == 404 and isinstance(data, dict) and data.get("status") == 0:
            log.info(f"No Open Food Facts product for {code}")
            return ProductLookup(found=False)

        if resp.status_code >= 400:
            raise OpenFoodFactsError(
                f"Open Food Facts product request failed: {resp.status_code}",
                status_code=resp.status_code,
                body=resp.text[:2000],
            )

        if not isinstance(data, dict):
            raise OpenFoodFactsError("Unexpected Open Food Facts response shape", status_code=resp.status_code)

        if data.get("error"):
            raise OpenFoodFactsError(f"Open Food Facts error: {data.get('error')}", status_code=resp.status_code)

        product = data.get("product")
        status = data.get("status")
        if isinstance(product, dict) and product and status in (1, None):
            product.setdefault("code", code)
            return ProductLookup(found=True, product=product)

        log.info(f"No Open Food Facts product for {code} (status={status})")
        return ProductLookup(found=False)

    async def search_products(
        self,
        category_tag: str,
        sort_by: str,
        page_size: Optional[int] = None,
    ) -> SearchOutcome:
        """
        Category search scoped to the configured country and store.

        API-level failures come back in SearchOutcome.error so callers can treat
        each search on its own; transport failures raise.
        """
        size = page_size if page_size is not None else settings.ALTERNATIVES_PAGE_SIZE
        params: Dict[str, Any] = {
            "categories_tags": category_tag,
            "countries_tags_en": settings.REGION_COUNTRY_FILTER,
            "stores_tags": settings.RETAILER_STORE_FILTER,
            "sort_by": sort_by,
            "page_size": max(1, int(size)),
            "fields": PRODUCT_FIELDS,
            "lc": self.language,
        }
        resp = await self._get(f"{self.base_url}/api/v2/search", params)

        if resp.status_code >= 400:
            log.warning(f"Search {category_tag!r} sorted by {sort_by} failed: {resp.status_code}")
            return SearchOutcome(error=f"HTTP {resp.status_code}")

        try:
            data = resp.json()
        except ValueError:
            return SearchOutcome(error="invalid JSON")

        if not isinstance(data, dict):
            return SearchOutcome(error="unexpected response shape")
        if data.get("error"):
            return SearchOutcome(error=str(data.get("error")))

        products = [p for p in data.get("products", []) or [] if isinstance(p, dict)]
        log.debug(f"Search {category_tag!r} sorted by {sort_by}: {len(products)} candidate(s)")
        return SearchOutcome(products=products)
