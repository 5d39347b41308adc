"""
Playback Pipeline
=================

Wires the stages of a run together:

    clean -> read frames -> write worker scripts -> play -> report

Catalog and decode errors surface before any worker process is started.
Decoding and script writing run off the event loop.
"""

import asyncio
import logging
from typing import Optional

from faultframe.catalog import FrameCatalog
from faultframe.compiler import FrameArtifactCompiler
from faultframe.config import Settings
from faultframe.models.telemetry import PlaybackTelemetry
from faultframe.observability import report_telemetry
from faultframe.playback import (
    ConsoleDisplay,
    DisplaySink,
    PlaybackScheduler,
    ProcessLauncher,
)


logger = logging.getLogger(__name__)


def create_compiler(settings: Settings) -> FrameArtifactCompiler:
    artifacts = settings.artifacts
    return FrameArtifactCompiler(
        output_dir=artifacts.output_dir,
        bright_marker=artifacts.bright_marker,
        dark_marker=artifacts.dark_marker,
        threshold=artifacts.threshold,
    )


def create_catalog(settings: Settings) -> FrameCatalog:
    catalog = settings.catalog
    return FrameCatalog(
        directory=catalog.frames_dir,
        key_offset=catalog.key_offset,
        suffix=catalog.suffix,
        max_workers=catalog.max_decode_workers,
    )


def create_scheduler(
    settings: Settings,
    display: Optional[DisplaySink] = None,
    cancel_event: Optional[asyncio.Event] = None,
) -> PlaybackScheduler:
    playback = settings.playback
    return PlaybackScheduler(
        launcher=ProcessLauncher(settings.artifacts.python_executable),
        display=display or ConsoleDisplay(),
        fps=playback.fps,
        pool_capacity=playback.pool_capacity,
        warmup_ms=playback.warmup_ms,
        completion_timeout_ms=playback.completion_timeout_ms,
        timeout_policy=playback.timeout_policy,
        cancel_event=cancel_event,
    )


async def play(
    settings: Settings,
    display: Optional[DisplaySink] = None,
    cancel_event: Optional[asyncio.Event] = None,
) -> PlaybackTelemetry:
    """
    Run the full pipeline.

    Args:
        settings: Loaded configuration
        display: Sink for frame output (terminal by default)
        cancel_event: Event that cancels playback when set

    Returns:
        PlaybackTelemetry of the run

    Raises:
        CatalogError: If frames cannot be discovered or decoded
        PlaybackError: If workers cannot be coordinated
    """
    compiler = create_compiler(settings)
    compiler.clean()

    frames = await asyncio.to_thread(create_catalog(settings).build)

    logger.info("Writing worker scripts")
    handles = await asyncio.to_thread(compiler.compile, frames)

    scheduler = create_scheduler(settings, display=display, cancel_event=cancel_event)
    telemetry = await scheduler.run(handles)

    report_telemetry(telemetry)
    return telemetry
