"""
Test Configuration
==================

Pytest fixtures and test doubles for faultframe.
"""

import asyncio
import struct
from pathlib import Path
from typing import Dict, List, Optional, Sequence

import pytest

from faultframe.models.worker import WorkerHandle
from faultframe.playback.errors import LaunchFailure


def build_bitmap(
    rows: Sequence[Sequence[Sequence[int]]],
    bottom_up: bool = True,
    channel_bytes: int = 1,
    pixel_offset: int = 54,
    pad_byte: int = 0,
) -> bytes:
    """
    Build a bitmap buffer from rows of (c0, c1, c2) channel values.

    Rows are given top to bottom; they are stored bottom to top unless
    bottom_up is False (negative height).
    """
    height = len(rows)
    width = len(rows[0])
    data_bytes = width * 3 * channel_bytes
    padding = bytes([pad_byte]) * (-data_bytes % 4)

    stored = list(reversed(rows)) if bottom_up else list(rows)
    pixel_data = b"".join(
        b"".join(
            value.to_bytes(channel_bytes, "little")
            for pixel in row
            for value in pixel
        ) + padding
        for row in stored
    )

    header = bytearray(pixel_offset)
    header[0:2] = b"BM"
    struct.pack_into("<I", header, 2, pixel_offset + len(pixel_data))
    struct.pack_into("<I", header, 10, pixel_offset)
    struct.pack_into("<I", header, 14, 40)
    struct.pack_into("<ii", header, 18, width, height if bottom_up else -height)
    struct.pack_into("<HH", header, 26, 1, 24 * channel_bytes)
    return bytes(header) + pixel_data


def gray(value: int) -> tuple:
    return (value, value, value)


@pytest.fixture
def bitmap_factory():
    """Provide the bitmap builder."""
    return build_bitmap


@pytest.fixture
def write_frames(tmp_path):
    """Write {filename: rows} as bitmap files and return the directory."""

    def _write(files: Dict[str, Sequence], directory: Optional[Path] = None) -> Path:
        target = directory or tmp_path / "frames"
        target.mkdir(parents=True, exist_ok=True)
        for name, rows in files.items():
            (target / name).write_bytes(build_bitmap(rows))
        return target

    return _write


# =============================================================================
# Playback test doubles
# =============================================================================

class FakeClock:
    """Manually advanced monotonic clock (seconds)."""

    def __init__(self) -> None:
        self.now = 0.0

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class RecordingSleep:
    """Sleep replacement that records delays and advances a FakeClock."""

    def __init__(self, clock: FakeClock) -> None:
        self.clock = clock
        self.delays: List[float] = []

    async def __call__(self, seconds: float) -> None:
        self.delays.append(seconds)
        self.clock.advance(seconds)


class RecordingDisplay:
    """Display sink that keeps each cleared screen as one frame."""

    def __init__(self) -> None:
        self.events: List[str] = []
        self.frames: List[bytes] = []

    def clear(self) -> None:
        self.events.append("clear")
        self.frames.append(b"")

    def write(self, chunk: bytes) -> None:
        self.events.append("write")
        if not self.frames:
            self.frames.append(b"")
        self.frames[-1] += chunk

    @property
    def texts(self) -> List[str]:
        return [frame.decode() for frame in self.frames]


class FakeWorker:
    """In-memory worker that takes `duration` seconds on the FakeClock."""

    def __init__(
        self,
        index: int,
        log: List[tuple],
        clock: Optional[FakeClock] = None,
        duration: float = 0.0,
        output: Sequence[bytes] = (b"frame\n",),
        exit_code: int = 1,
        hang: bool = False,
        on_release=None,
    ) -> None:
        self.index = index
        self.log = log
        self.clock = clock
        self.duration = duration
        self.output = list(output)
        self.exit_code = exit_code
        self.hang = hang
        self.on_release = on_release
        self.terminated = False
        self._stopped = asyncio.Event()

    async def release(self) -> None:
        self.log.append(("release", self.index))
        if self.on_release is not None:
            self.on_release(self)
        if self.clock is not None:
            self.clock.advance(self.duration)

    async def iter_output(self):
        for chunk in self.output:
            yield chunk
        if self.hang:
            await self._stopped.wait()

    async def wait(self) -> Optional[int]:
        if self.hang:
            await self._stopped.wait()
            return -15
        return self.exit_code

    def terminate(self) -> None:
        if not self.terminated:
            self.log.append(("terminate", self.index))
        self.terminated = True
        self._stopped.set()


class FakeLauncher:
    """Launcher producing FakeWorkers; can be told to fail on an index."""

    def __init__(
        self,
        clock: Optional[FakeClock] = None,
        durations: Optional[Dict[int, float]] = None,
        default_duration: float = 0.0,
        fail_on: Optional[int] = None,
        **worker_options,
    ) -> None:
        self.clock = clock
        self.durations = durations or {}
        self.default_duration = default_duration
        self.fail_on = fail_on
        self.worker_options = worker_options
        self.log: List[tuple] = []
        self.workers: Dict[int, FakeWorker] = {}

    async def __call__(self, handle: WorkerHandle) -> FakeWorker:
        if handle.index == self.fail_on:
            raise LaunchFailure(handle.index, "simulated failure")

        self.log.append(("launch", handle.index))
        options = dict(self.worker_options)
        hang_on = options.pop("hang_on", ())
        worker = FakeWorker(
            handle.index,
            self.log,
            clock=self.clock,
            duration=self.durations.get(handle.index, self.default_duration),
            hang=handle.index in hang_on,
            **options,
        )
        self.workers[handle.index] = worker
        return worker

    @property
    def terminated(self) -> set:
        return {index for index, worker in self.workers.items() if worker.terminated}


def make_handles(count: int) -> List[WorkerHandle]:
    return [WorkerHandle(index=i, locator=Path(f"frame_{i:05d}.py")) for i in range(count)]


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def recording_sleep(clock):
    return RecordingSleep(clock)


@pytest.fixture
def display():
    return RecordingDisplay()
