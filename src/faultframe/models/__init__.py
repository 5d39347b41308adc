"""
Data Models
===========

Shared data types for faultframe.

Models:
    - Frame: Immutable decoded grayscale matrix
    - WorkerHandle: Launchable worker for one frame
    - PlaybackOutcome, FrameTiming, PlaybackTelemetry: Scheduler results
"""

from faultframe.models.frame import Frame
from faultframe.models.worker import WorkerHandle
from faultframe.models.telemetry import FrameTiming, PlaybackOutcome, PlaybackTelemetry

__all__ = [
    "Frame",
    "WorkerHandle",
    "FrameTiming",
    "PlaybackOutcome",
    "PlaybackTelemetry",
]
