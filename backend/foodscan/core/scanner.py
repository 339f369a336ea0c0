"""
Camera barcode scanner.

Frames come from an OpenCV capture and are decoded with pyzbar. Both are
imported lazily so the API can run on hosts without a camera stack.
"""

from __future__ import annotations

import asyncio
import inspect
from contextlib import suppress
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, List, Optional, Union

from foodscan.core.config import settings
from foodscan.core.logging import get_logger

log = get_logger("scanner")

MSG_NO_CAMERA = "Keine Kamera gefunden oder Zugriff verweigert."
MSG_SELECT_CAMERA = "Bitte eine Kamera auswählen."
MSG_START_FAILED = "Kamera konnte nicht gestartet werden."
MSG_SCAN_FAILED = "Scan fehlgeschlagen. Bitte erneut versuchen."

OnScan = Callable[[str], Union[None, Awaitable[None]]]


@dataclass
class CameraDevice:
    label: str
    device_id: str


def default_label(device_id: str) -> str:
    return f"Kamera {device_id[-4:]}"


def open_capture(device_id: str) -> Any:
    import cv2

    index = int(device_id) if device_id.isdigit() else device_id
    return cv2.VideoCapture(index)


def decode_frame(frame: Any) -> List[str]:
    """All barcode texts found in a frame; an empty list when there is none."""
    from pyzbar import pyzbar

    return [b.data.decode("utf-8", errors="replace") for b in pyzbar.decode(frame)]


class BarcodeScanner:
    """
    Owns at most one open capture device at a time.

    start() runs a decode loop as an asyncio task; the first decoded text is
    handed to `on_scan` and the device is released.
    """

    def __init__(
        self,
        capture_factory: Callable[[str], Any] = open_capture,
        decoder: Callable[[Any], List[str]] = decode_frame,
        probe_limit: Optional[int] = None,
        frame_interval: Optional[float] = None,
        max_failed_reads: Optional[int] = None,
    ):
        self._capture_factory = capture_factory
        self._decoder = decoder
        self.probe_limit = probe_limit if probe_limit is not None else settings.CAMERA_PROBE_LIMIT
        self.frame_interval = frame_interval if frame_interval is not None else settings.SCAN_FRAME_INTERVAL_SECONDS
        self.max_failed_reads = max_failed_reads if max_failed_reads is not None else settings.SCAN_MAX_FAILED_READS

        self.cameras: List[CameraDevice] = []
        self.selected_device_id: Optional[str] = None
        self.is_scanning = False
        self.error: Optional[str] = None

        self._capture: Any = None
        self._task: Optional[asyncio.Task] = None
        self._last_task: Optional[asyncio.Task] = None

    # -- devices ---------------------------------------------------------

    def _probe(self) -> List[CameraDevice]:
        devices: List[CameraDevice] = []
        for index in range(self.probe_limit):
            device_id = str(index)
            capture = self._capture_factory(device_id)
            try:
                if capture.isOpened():
                    devices.append(CameraDevice(label=default_label(device_id), device_id=device_id))
            finally:
                capture.release()
        return devices

    async def list_cameras(self) -> List[CameraDevice]:
        if self.is_scanning:
            # probing would fight the running session for the device
            return self.cameras
        try:
            devices = await asyncio.to_thread(self._probe)
        except Exception as e:
            log.warning(f"Camera enumeration failed: {e}")
            self.error = MSG_NO_CAMERA
            return []

        self.cameras = devices
        known = {d.device_id for d in devices}
        if self.selected_device_id not in known:
            self.selected_device_id = devices[0].device_id if devices else None
        log.info(f"Found {len(devices)} camera(s)")
        return devices

    def select(self, device_id: Optional[str]) -> None:
        if self.is_scanning:
            return
        self.selected_device_id = device_id or None

    # -- scanning --------------------------------------------------------

    async def start(self, on_scan: OnScan, device_id: Optional[str] = None) -> bool:
        if self.is_scanning:
            return False
        if device_id:
            self.selected_device_id = device_id
        if not self.selected_device_id:
            self.error = MSG_SELECT_CAMERA
            return False

        self.error = None
        try:
            capture = await asyncio.to_thread(self._capture_factory, self.selected_device_id)
            if not capture.isOpened():
                capture.release()
                raise RuntimeError(f"device {self.selected_device_id} did not open")
        except Exception as e:
            log.warning(f"Could not start camera {self.selected_device_id}: {e}")
            self.error = MSG_START_FAILED
            await self.stop()
            return False

        self._capture = capture
        self.is_scanning = True
        self._task = asyncio.create_task(self._decode_loop(capture, on_scan))
        self._last_task = self._task
        log.info(f"Scanning on camera {self.selected_device_id}")
        return True

    async def _decode_loop(self, capture: Any, on_scan: OnScan) -> None:
        failed_reads = 0
        try:
            while True:
                ok, frame = await asyncio.to_thread(capture.read)
                if ok:
                    failed_reads = 0
                    try:
                        texts = await asyncio.to_thread(self._decoder, frame)
                    except Exception as e:
                        log.debug(f"Frame decode failed: {e}")
                        self.error = MSG_SCAN_FAILED
                        texts = []

                    text = next((t.strip() for t in texts if t and t.strip()), None)
                    if text:
                        log.info(f"Decoded barcode {text}")
                        await self.stop()
                        result = on_scan(text)
                        if inspect.isawaitable(result):
                            await result
                        return
                else:
                    failed_reads += 1
                    if failed_reads >= self.max_failed_reads:
                        log.warning(f"Camera {self.selected_device_id} stopped delivering frames")
                        self.error = MSG_START_FAILED
                        return
                    self.error = MSG_SCAN_FAILED

                await asyncio.sleep(self.frame_interval)
        finally:
            if self._capture is capture:
                self._release()

    def _release(self) -> None:
        capture, self._capture = self._capture, None
        if capture is not None:
            capture.release()
            log.info("Camera released")
        self.is_scanning = False

    async def stop(self) -> None:
        task, self._task = self._task, None
        if task is not None and task is not asyncio.current_task() and not task.done():
            task.cancel()
            with suppress(asyncio.CancelledError):
                await task
        self._release()

    async def wait(self) -> None:
        """Wait until the most recent decode loop has finished."""
        task = self._last_task
        if task is None:
            return
        with suppress(asyncio.CancelledError):
            await task

    async def close(self) -> None:
        """Stop scanning and cancel an on_scan callback that is still running."""
        await self.stop()
        task = self._last_task
        if task is not None and task is not asyncio.current_task() and not task.done():
            task.cancel()
            with suppress(asyncio.CancelledError):
                await task
