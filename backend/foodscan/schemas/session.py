from pydantic import BaseModel
from typing import List, Optional

from foodscan.core.scanner import BarcodeScanner
from foodscan.core.session import ScanSession
from foodscan.schemas.alternatives import AlternativesView
from foodscan.schemas.products import ProductView


class CameraView(BaseModel):
    label: str
    device_id: str


class ScannerView(BaseModel):
    cameras: List[CameraView] = []
    selected_device_id: Optional[str] = None
    is_scanning: bool = False
    error: Optional[str] = None

    @classmethod
    def from_scanner(cls, scanner: BarcodeScanner) -> "ScannerView":
        return cls(
            cameras=[CameraView(label=c.label, device_id=c.device_id) for c in scanner.cameras],
            selected_device_id=scanner.selected_device_id,
            is_scanning=scanner.is_scanning,
            error=scanner.error,
        )


class SessionView(BaseModel):
    barcode: str
    loading: bool
    error: Optional[str] = None
    last_scanned_code: Optional[str] = None
    product: Optional[ProductView] = None
    alternatives: AlternativesView
    scanner: ScannerView

    @classmethod
    def from_session(cls, s: ScanSession) -> "SessionView":
        return cls(
            barcode=s.barcode,
            loading=s.loading,
            error=s.error,
            last_scanned_code=s.last_scanned_code,
            product=ProductView.from_product(s.product) if s.product else None,
            alternatives=AlternativesView.from_alternatives(s.alternatives.state),
            scanner=ScannerView.from_scanner(s.scanner),
        )


class BarcodeInput(BaseModel):
    barcode: str = ""


class LookupRequest(BaseModel):
    code: Optional[str] = None      # omitted => submit the current input field


class ScanRequest(BaseModel):
    code: str


class ScannerStartRequest(BaseModel):
    device_id: Optional[str] = None
