from fastapi import Request

from foodscan.core.openfoodfacts import OpenFoodFactsClient
from foodscan.core.session import ScanSession


def get_session(request: Request) -> ScanSession:
    return request.app.state.session


def get_client(request: Request) -> OpenFoodFactsClient:
    return request.app.state.session.client
