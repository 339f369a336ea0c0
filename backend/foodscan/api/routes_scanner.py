from typing import List, Optional

from fastapi import APIRouter, Depends

from foodscan.core.session import ScanSession
from foodscan.api.deps import get_session
from foodscan.schemas.session import CameraView, ScannerStartRequest, ScannerView

router = APIRouter(prefix="/v1", tags=["scanner"])


@router.get("/cameras", response_model=List[CameraView])
async def cameras(session: ScanSession = Depends(get_session)):
    devices = await session.scanner.list_cameras()
    return [CameraView(label=d.label, device_id=d.device_id) for d in devices]


@router.get("/scanner", response_model=ScannerView)
async def scanner_state(session: ScanSession = Depends(get_session)):
    return ScannerView.from_scanner(session.scanner)


@router.post("/scanner/start", response_model=ScannerView)
async def start(body: Optional[ScannerStartRequest] = None, session: ScanSession = Depends(get_session)):
    """Start decoding; a decoded barcode is looked up in the session."""
    await session.start_scanner(body.device_id if body else None)
    return ScannerView.from_scanner(session.scanner)


@router.post("/scanner/stop", response_model=ScannerView)
async def stop(session: ScanSession = Depends(get_session)):
    await session.stop_scanner()
    return ScannerView.from_scanner(session.scanner)
