"""
Healthier / more sustainable alternatives for a product.

Two category searches run side by side (one sorted by Nutri-Score, one by
Eco-Score); each list is filtered and settled on its own. The tracker keeps the
state of both lists for a session and only lets the most recent refresh write.
"""

from __future__ import annotations

import asyncio
from contextlib import suppress
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence

from foodscan.core.filters import (
    ECO_GRADE_FIELDS,
    NUTRITION_GRADE_FIELDS,
    derive_category_tag,
    filter_alternatives,
)
from foodscan.core.logging import get_logger
from foodscan.core.openfoodfacts import (
    SORT_BY_ECOSCORE,
    SORT_BY_NUTRISCORE,
    OpenFoodFactsClient,
    SearchOutcome,
)

log = get_logger("suggestions")

IDLE = "idle"
LOADING = "loading"
SUCCESS = "success"
ERROR = "error"

MSG_NO_CATEGORY = "Für dieses Produkt ist keine Kategorie hinterlegt."
MSG_QUERY_FAILED = "Alternativen konnten nicht geladen werden."


@dataclass
class QueryState:
    status: str = IDLE
    items: List[Dict[str, Any]] = field(default_factory=list)
    error: Optional[str] = None

    @classmethod
    def idle(cls) -> "QueryState":
        return cls()

    @classmethod
    def loading(cls) -> "QueryState":
        return cls(status=LOADING)

    @classmethod
    def success(cls, items: List[Dict[str, Any]]) -> "QueryState":
        return cls(status=SUCCESS, items=list(items))

    @classmethod
    def failed(cls, message: str) -> "QueryState":
        return cls(status=ERROR, error=message)


@dataclass
class Alternatives:
    healthier: QueryState = field(default_factory=QueryState.idle)
    greener: QueryState = field(default_factory=QueryState.idle)

    @classmethod
    def loading(cls) -> "Alternatives":
        return cls(QueryState.loading(), QueryState.loading())

    @classmethod
    def failed(cls, message: str) -> "Alternatives":
        return cls(QueryState.failed(message), QueryState.failed(message))


def _settle(outcome: SearchOutcome, source_code: Optional[str], grade_fields: Sequence[str]) -> QueryState:
    if outcome.error:
        return QueryState.failed(MSG_QUERY_FAILED)
    return QueryState.success(filter_alternatives(outcome.products, source_code, grade_fields))


async def fetch_alternatives(
    client: OpenFoodFactsClient,
    product: Optional[Dict[str, Any]],
    page_size: Optional[int] = None,
) -> Alternatives:
    if not product:
        return Alternatives()

    category_tag = derive_category_tag(product.get("categories_tags"))
    if not category_tag:
        return Alternatives.failed(MSG_NO_CATEGORY)

    source_code = product.get("code")
    results = await asyncio.gather(
        client.search_products(category_tag, SORT_BY_NUTRISCORE, page_size),
        client.search_products(category_tag, SORT_BY_ECOSCORE, page_size),
        return_exceptions=True,
    )

    for r in results:
        if isinstance(r, asyncio.CancelledError):
            raise r
        if isinstance(r, BaseException):
            log.warning(f"Alternatives for {source_code} failed: {r}")
            return Alternatives.failed(MSG_QUERY_FAILED)

    nutri, eco = results
    return Alternatives(
        healthier=_settle(nutri, source_code, NUTRITION_GRADE_FIELDS),
        greener=_settle(eco, source_code, ECO_GRADE_FIELDS),
    )


class AlternativesTracker:
    """
    Holds the alternatives state of one session.

    Every refresh takes a generation number when it is requested; its result
    is committed only while that number is still the latest one.
    """

    def __init__(self, client: OpenFoodFactsClient, page_size: Optional[int] = None):
        self.client = client
        self.page_size = page_size
        self.state = Alternatives()
        self._generation = 0
        self._task: Optional[asyncio.Task] = None

    @property
    def generation(self) -> int:
        return self._generation

    def _next_generation(self) -> int:
        self._generation += 1
        return self._generation

    def trigger(self, product: Optional[Dict[str, Any]]) -> Optional[asyncio.Task]:
        """
        Start a background refresh for `product` and supersede any running one.
        Must be called from inside a running event loop.
        """
        token = self._next_generation()
        previous, self._task = self._task, None
        if previous is not None and not previous.done():
            previous.cancel()

        if product is None:
            self.state = Alternatives()
            return None

        self.state = Alternatives.loading()
        self._task = asyncio.create_task(self._refresh(product, token))
        return self._task

    async def _refresh(self, product: Optional[Dict[str, Any]], token: int) -> None:
        if product is None:
            self.state = Alternatives()
            return

        if token == self._generation:
            self.state = Alternatives.loading()
        result = await fetch_alternatives(self.client, product, self.page_size)

        if token != self._generation:
            log.info(f"Dropping stale alternatives for {product.get('code')} (generation {token} < {self._generation})")
            return
        self.state = result

    async def wait(self) -> None:
        """Wait for the current background refresh, if any."""
        task = self._task
        if task is None:
            return
        with suppress(asyncio.CancelledError):
            await task
