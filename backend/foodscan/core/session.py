from __future__ import annotations

from typing import Any, Dict, Optional

from foodscan.core.logging import get_logger
from foodscan.core.openfoodfacts import OpenFoodFactsClient, OpenFoodFactsError
from foodscan.core.scanner import BarcodeScanner
from foodscan.core.suggestions import AlternativesTracker

log = get_logger("session")

MSG_INVALID_CODE = "Bitte geben Sie eine gültige Artikelnummer ein."
MSG_API_FAILURE = "Fehler bei der Kommunikation mit der Open Food Facts API."


def not_found_message(code: str) -> str:
    return f'Kein Produkt mit der Artikelnummer "{code}" gefunden.'


class ScanSession:
    """
    State of the scanning screen: the barcode input, the looked-up product,
    loading/error flags and the two alternatives lists.

    Any change of the displayed product refreshes the alternatives.
    """

    def __init__(
        self,
        client: OpenFoodFactsClient,
        scanner: Optional[BarcodeScanner] = None,
        alternatives_page_size: Optional[int] = None,
    ):
        self.client = client
        self.scanner = scanner or BarcodeScanner()
        self.alternatives = AlternativesTracker(client, page_size=alternatives_page_size)

        self.barcode = ""
        self.product: Optional[Dict[str, Any]] = None
        self.loading = False
        self.error: Optional[str] = None
        self.last_scanned_code: Optional[str] = None

        self._lookup_generation = 0

    def set_barcode(self, text: Optional[str]) -> None:
        self.barcode = text or ""

    def _show(self, product: Optional[Dict[str, Any]]) -> None:
        if product is None and self.product is None:
            return
        self.product = product
        self.alternatives.trigger(product)

    async def submit(self) -> None:
        await self.lookup(self.barcode)

    async def lookup(self, code: Optional[str]) -> None:
        trimmed = (code or "").strip()
        # any submit supersedes a lookup still in flight
        self._lookup_generation += 1
        token = self._lookup_generation

        if not trimmed:
            self.loading = False
            self.error = MSG_INVALID_CODE
            self._show(None)
            return

        self.loading = True
        self.error = None
        self._show(None)
        try:
            result = await self.client.get_product(trimmed)
        except OpenFoodFactsError as e:
            log.warning(f"Lookup of {trimmed} failed: {e.message}")
            if token == self._lookup_generation:
                self.error = MSG_API_FAILURE
            return
        finally:
            if token == self._lookup_generation:
                self.loading = False

        if token != self._lookup_generation:
            log.info(f"Dropping superseded lookup result for {trimmed}")
            return

        if result.found:
            log.info(f"Showing product {trimmed}")
            self._show(result.product)
            self.barcode = ""
            return

        self.error = not_found_message(trimmed)

    async def handle_scan(self, code: str) -> None:
        trimmed = (code or "").strip()
        if not trimmed:
            return
        self.last_scanned_code = trimmed
        self.barcode = trimmed
        await self.lookup(trimmed)

    async def start_scanner(self, device_id: Optional[str] = None) -> bool:
        return await self.scanner.start(self.handle_scan, device_id)

    async def stop_scanner(self) -> None:
        await self.scanner.stop()

    async def close(self) -> None:
        # cancels a lookup started by a scan before dropping the alternatives
        await self.scanner.close()
        self.alternatives.trigger(None)
