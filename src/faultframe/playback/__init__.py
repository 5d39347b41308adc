"""
Playback Module
===============

Bounded worker pool and fixed-cadence scheduling of frame workers.

This module provides:
    - PlaybackScheduler: Releases workers in order at a target frame rate
    - WorkerPool: Bounded FIFO of pre-started workers
    - ProcessLauncher / ProcessWorker: OS process workers
    - ConsoleDisplay: Terminal sink for worker output

Example:
    from faultframe.playback import ConsoleDisplay, PlaybackScheduler, ProcessLauncher

    scheduler = PlaybackScheduler(ProcessLauncher(), ConsoleDisplay(), fps=30)
    telemetry = await scheduler.run(handles)
"""

from faultframe.playback.display import ConsoleDisplay, DisplaySink
from faultframe.playback.errors import (
    LaunchFailure,
    PlaybackError,
    PoolExhausted,
    PoolOverflow,
    WorkerTimeout,
)
from faultframe.playback.pool import WorkerPool
from faultframe.playback.scheduler import PlaybackScheduler, frame_interval_ms
from faultframe.playback.worker import (
    FrameWorker,
    ProcessLauncher,
    ProcessWorker,
    WorkerLauncher,
)


__all__ = [
    "ConsoleDisplay",
    "DisplaySink",
    "FrameWorker",
    "LaunchFailure",
    "PlaybackError",
    "PlaybackScheduler",
    "PoolExhausted",
    "PoolOverflow",
    "ProcessLauncher",
    "ProcessWorker",
    "WorkerLauncher",
    "WorkerPool",
    "WorkerTimeout",
    "frame_interval_ms",
]
