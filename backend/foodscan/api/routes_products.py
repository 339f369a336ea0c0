from fastapi import APIRouter, Depends, HTTPException

from foodscan.core.logging import get_logger
from foodscan.core.openfoodfacts import OpenFoodFactsClient, OpenFoodFactsError
from foodscan.core.session import MSG_API_FAILURE, MSG_INVALID_CODE, not_found_message
from foodscan.core.suggestions import fetch_alternatives
from foodscan.api.deps import get_client
from foodscan.schemas.alternatives import AlternativesView
from foodscan.schemas.products import ProductView

router = APIRouter(prefix="/v1", tags=["products"])

log = get_logger("api.products")


async def _load_product(client: OpenFoodFactsClient, code: str) -> dict:
    trimmed = code.strip()
    if not trimmed:
        raise HTTPException(status_code=400, detail={"error": "invalid_code", "message": MSG_INVALID_CODE})

    try:
        result = await client.get_product(trimmed)
    except OpenFoodFactsError as e:
        log.warning(f"Product {trimmed}: {e.message}")
        raise HTTPException(
            status_code=502,
            detail={"error": "upstream_error", "message": MSG_API_FAILURE, "status_code": e.status_code},
        )

    if not result.found:
        raise HTTPException(status_code=404, detail={"error": "not_found", "message": not_found_message(trimmed)})
    return result.product


@router.get("/products/{code}", response_model=ProductView)
async def product(code: str, client: OpenFoodFactsClient = Depends(get_client)):
    return ProductView.from_product(await _load_product(client, code))


@router.get("/products/{code}/alternatives", response_model=AlternativesView)
async def alternatives(code: str, client: OpenFoodFactsClient = Depends(get_client)):
    """
    Healthier (Nutri-Score) and more sustainable (Eco-Score) alternatives.
    Each list carries its own status; one failing does not fail the other.
    """
    source = await _load_product(client, code)
    return AlternativesView.from_alternatives(await fetch_alternatives(client, source))
