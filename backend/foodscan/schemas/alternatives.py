from pydantic import BaseModel
from typing import List, Optional

from foodscan.core.suggestions import Alternatives, QueryState
from foodscan.schemas.products import ProductView


class QueryStateView(BaseModel):
    status: str                       # idle | loading | success | error
    items: List[ProductView] = []
    error: Optional[str] = None

    @classmethod
    def from_state(cls, state: QueryState) -> "QueryStateView":
        return cls(
            status=state.status,
            items=[ProductView.from_product(p) for p in state.items],
            error=state.error,
        )


class AlternativesView(BaseModel):
    healthier: QueryStateView
    greener: QueryStateView

    @classmethod
    def from_alternatives(cls, alts: Alternatives) -> "AlternativesView":
        return cls(
            healthier=QueryStateView.from_state(alts.healthier),
            greener=QueryStateView.from_state(alts.greener),
        )
