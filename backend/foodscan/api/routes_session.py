from fastapi import APIRouter, Depends

from foodscan.core.session import ScanSession
from foodscan.api.deps import get_session
from foodscan.schemas.session import BarcodeInput, LookupRequest, ScanRequest, SessionView

router = APIRouter(prefix="/v1/session", tags=["session"])


@router.get("", response_model=SessionView)
async def session_state(wait_alternatives: bool = False, session: ScanSession = Depends(get_session)):
    if wait_alternatives:
        await session.alternatives.wait()
    return SessionView.from_session(session)


@router.put("/barcode", response_model=SessionView)
async def set_barcode(body: BarcodeInput, session: ScanSession = Depends(get_session)):
    session.set_barcode(body.barcode)
    return SessionView.from_session(session)


@router.post("/lookup", response_model=SessionView)
async def lookup(
    body: LookupRequest,
    wait_alternatives: bool = False,
    session: ScanSession = Depends(get_session),
):
    """
    Submit the barcode field (or `code`, which replaces the field first).
    Alternatives load in the background unless `wait_alternatives` is set.
    """
    if body.code is not None:
        session.set_barcode(body.code)
    await session.submit()
    if wait_alternatives:
        await session.alternatives.wait()
    return SessionView.from_session(session)


@router.post("/scan", response_model=SessionView)
async def scan(body: ScanRequest, wait_alternatives: bool = False, session: ScanSession = Depends(get_session)):
    await session.handle_scan(body.code)
    if wait_alternatives:
        await session.alternatives.wait()
    return SessionView.from_session(session)
