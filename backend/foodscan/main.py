"""
Food Scanner API - FastAPI Main Entry

LOCAL:
    cd backend
    python -m uvicorn foodscan.main:app --reload --host 0.0.0.0 --port 8000

TEST:
    curl -i http://127.0.0.1:8000/health
    curl -i http://127.0.0.1:8000/v1/products/737628064502
    curl -i http://127.0.0.1:8000/v1/products/737628064502/alternatives
    curl -i -X POST http://127.0.0.1:8000/v1/session/lookup \
         -H 'Content-Type: application/json' -d '{"code": "737628064502"}'
"""

from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from foodscan.core.config import settings
from foodscan.core.logging import get_logger
from foodscan.core.openfoodfacts import OpenFoodFactsClient
from foodscan.core.scanner import BarcodeScanner
from foodscan.core.session import ScanSession

# Routers
from foodscan.api.routes_meta import router as meta_router
from foodscan.api.routes_products import router as products_router
from foodscan.api.routes_scanner import router as scanner_router
from foodscan.api.routes_session import router as session_router

log = get_logger("main")


def create_app(
    client: Optional[OpenFoodFactsClient] = None,
    scanner: Optional[BarcodeScanner] = None,
) -> FastAPI:
    session = ScanSession(client or OpenFoodFactsClient(), scanner=scanner)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        log.info(f"Food Scanner API {settings.APP_VERSION} ({settings.BUILD_ID}) starting")
        yield
        # release the camera even if a scan is still running
        await session.close()

    app = FastAPI(
        title="Food Scanner API",
        version=settings.APP_VERSION,
        description="Barcode lookup against Open Food Facts with healthier and greener alternatives",
        lifespan=lifespan,
    )
    app.state.session = session

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ALLOW_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(meta_router)
    app.include_router(products_router)
    app.include_router(session_router)
    app.include_router(scanner_router)

    return app


app = create_app()
