from __future__ import annotations

import asyncio
import time
from typing import List

from foodscan.core.scanner import (
    MSG_NO_CAMERA,
    MSG_SCAN_FAILED,
    MSG_SELECT_CAMERA,
    MSG_START_FAILED,
    BarcodeScanner,
)


class FakeCapture:
    def __init__(self, frames: List[object], opened: bool = True):
        self.frames = list(frames)
        self.opened = opened
        self.released = False

    def isOpened(self) -> bool:
        return self.opened

    def read(self):
        if self.frames:
            return True, self.frames.pop(0)
        return True, "blank"

    def release(self) -> None:
        self.released = True


def _decoder(frame) -> List[str]:
    if frame == "broken":
        raise RuntimeError("bad frame")
    if isinstance(frame, str) and frame.startswith("code:"):
        return [frame[len("code:"):]]
    return []


def _scanner(captures, **kwargs) -> BarcodeScanner:
    return BarcodeScanner(
        capture_factory=lambda device_id: captures[device_id],
        decoder=_decoder,
        frame_interval=0,
        **kwargs,
    )


def test_list_cameras_selects_first_device() -> None:
    captures = {"0": FakeCapture([]), "1": FakeCapture([], opened=False), "2": FakeCapture([])}
    scanner = _scanner(captures, probe_limit=3)

    devices = asyncio.run(scanner.list_cameras())

    assert [d.device_id for d in devices] == ["0", "2"]
    assert devices[0].label == "Kamera 0"
    assert scanner.selected_device_id == "0"
    assert all(c.released for c in captures.values())


def test_list_cameras_failure_sets_error() -> None:
    def explode(device_id):
        raise OSError("no video")

    scanner = BarcodeScanner(capture_factory=explode, decoder=_decoder, probe_limit=1)
    assert asyncio.run(scanner.list_cameras()) == []
    assert scanner.error == MSG_NO_CAMERA


def test_start_without_selection() -> None:
    scanner = _scanner({})
    assert asyncio.run(scanner.start(lambda code: None)) is False
    assert scanner.error == MSG_SELECT_CAMERA


def test_start_failure_releases_device() -> None:
    capture = FakeCapture([], opened=False)
    scanner = _scanner({"0": capture})

    assert asyncio.run(scanner.start(lambda code: None, "0")) is False
    assert scanner.error == MSG_START_FAILED
    assert scanner.is_scanning is False
    assert capture.released is True


def test_first_decoded_code_is_delivered_once_and_scanner_stops() -> None:
    capture = FakeCapture(["blank", "broken", "code:737628064502", "code:999"])
    scanner = _scanner({"0": capture})
    scans: List[str] = []

    async def scenario():
        assert await scanner.start(scans.append, "0") is True
        assert scanner.is_scanning is True
        await scanner.wait()

    asyncio.run(scenario())

    assert scans == ["737628064502"]
    assert scanner.is_scanning is False
    assert capture.released is True
    # the broken frame was reported but did not stop the loop
    assert scanner.error == MSG_SCAN_FAILED


def test_frames_without_barcode_are_not_errors() -> None:
    capture = FakeCapture(["blank", "blank", "code:1"])
    scanner = _scanner({"0": capture})

    async def scenario():
        await scanner.start(lambda code: None, "0")
        await scanner.wait()

    asyncio.run(scenario())
    assert scanner.error is None


def test_second_start_is_a_no_op_and_stop_releases() -> None:
    capture = FakeCapture([])
    scanner = _scanner({"0": capture})

    async def scenario():
        assert await scanner.start(lambda code: None, "0") is True
        assert await scanner.start(lambda code: None, "0") is False
        await scanner.stop()

    asyncio.run(scenario())
    assert scanner.is_scanning is False
    assert capture.released is True


def test_async_callback_is_awaited() -> None:
    capture = FakeCapture(["code:55"])
    scanner = _scanner({"0": capture})
    seen: List[str] = []

    async def on_scan(code: str) -> None:
        await asyncio.sleep(0)
        seen.append(code)

    async def scenario():
        await scanner.start(on_scan, "0")
        await scanner.wait()

    asyncio.run(scenario())
    assert seen == ["55"]


class DeadCapture(FakeCapture):
    def read(self):
        return False, None


def test_slow_decoding_does_not_block_the_event_loop() -> None:
    capture = FakeCapture(["blank", "code:7"])
    calls = []

    def slow_decoder(frame) -> List[str]:
        calls.append(frame)
        time.sleep(0.2)
        return _decoder(frame)

    scanner = BarcodeScanner(capture_factory=lambda device_id: capture, decoder=slow_decoder, frame_interval=0)
    ticks = 0

    async def heartbeat() -> None:
        nonlocal ticks
        while True:
            await asyncio.sleep(0.01)
            ticks += 1

    async def scenario():
        beat = asyncio.create_task(heartbeat())
        await scanner.start(lambda code: None, "0")
        await scanner.wait()
        beat.cancel()

    asyncio.run(scenario())
    assert calls == ["blank", "code:7"]
    # roughly 40 ticks fit into 0.4s of decoding when it runs off the loop
    assert ticks >= 10


def test_camera_that_stops_delivering_frames_is_released() -> None:
    capture = DeadCapture([])
    scanner = BarcodeScanner(
        capture_factory=lambda device_id: capture,
        decoder=_decoder,
        frame_interval=0,
        max_failed_reads=3,
    )

    async def scenario():
        assert await scanner.start(lambda code: None, "0") is True
        await scanner.wait()

    asyncio.run(scenario())
    assert scanner.error == MSG_START_FAILED
    assert scanner.is_scanning is False
    assert capture.released is True


def test_close_cancels_running_scan_callback() -> None:
    capture = FakeCapture(["code:9"])
    scanner = _scanner({"0": capture})
    events = []

    async def on_scan(code: str) -> None:
        events.append("started")
        try:
            await asyncio.Event().wait()
        except asyncio.CancelledError:
            events.append("cancelled")
            raise

    async def scenario():
        await scanner.start(on_scan, "0")
        while not events:
            await asyncio.sleep(0.01)
        await scanner.close()

    asyncio.run(scenario())
    assert events == ["started", "cancelled"]
    assert capture.released is True
