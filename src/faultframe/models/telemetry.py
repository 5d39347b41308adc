"""
Playback Telemetry Models
=========================

Timing results produced by the playback scheduler.

Core Concepts:
    - PlaybackOutcome: How the run ended (COMPLETED, CANCELLED)
    - FrameTiming: Measurements for a single released frame
    - PlaybackTelemetry: Ordered per-frame timings plus the run total

Example:
    from faultframe.models.telemetry import PlaybackTelemetry

    telemetry = await scheduler.run(handles)
    print(telemetry.frame_times_ms, telemetry.total_ms)
"""

from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field


class PlaybackOutcome(str, Enum):
    """
    Terminal state of a playback run.

    Attributes:
        COMPLETED: Every frame was released
        CANCELLED: An external cancellation stopped the run early
    """

    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"


class FrameTiming(BaseModel):
    """
    Timing of one frame, measured from dequeue to completion.

    Attributes:
        index: Frame position in the sequence
        elapsed_ms: Wall-clock time from dequeue until the worker finished
            and its replacement was launched
        sleep_ms: Pacing sleep issued after the frame
        pool_depth: Pooled workers waiting after replenishment
        exit_code: Worker exit status (informational only)
        timed_out: Whether the worker was skipped after exceeding its bound
    """

    index: int = Field(..., ge=0, description="Frame position in the sequence")
    elapsed_ms: float = Field(..., ge=0.0, description="Frame elapsed time (ms)")
    sleep_ms: float = Field(default=0.0, ge=0.0, description="Pacing sleep (ms)")
    pool_depth: int = Field(default=0, ge=0, description="Pool size after replenishment")
    exit_code: Optional[int] = Field(default=None, description="Worker exit status")
    timed_out: bool = Field(default=False, description="Skipped after timeout")


class PlaybackTelemetry(BaseModel):
    """
    Complete result of a playback run.

    Attributes:
        frames: Per-frame timings in release order
        total_ms: Wall-clock duration from the first release to the end
        frame_interval_ms: Target interval between releases
        outcome: How the run ended
    """

    frames: List[FrameTiming] = Field(default_factory=list)
    total_ms: float = Field(default=0.0, ge=0.0, description="Run duration (ms)")
    frame_interval_ms: int = Field(default=0, ge=0, description="Target interval (ms)")
    outcome: PlaybackOutcome = Field(default=PlaybackOutcome.COMPLETED)

    @property
    def frame_times_ms(self) -> List[float]:
        """Per-frame elapsed milliseconds, in order."""
        return [timing.elapsed_ms for timing in self.frames]

    @property
    def frame_count(self) -> int:
        return len(self.frames)

    @property
    def mean_frame_ms(self) -> float:
        """Mean elapsed time per frame, excluding pacing sleeps."""
        return sum(self.frame_times_ms) / (self.frame_count or 1)

    @property
    def expected_fps(self) -> float:
        """Rate achievable if frames were released back to back."""
        mean = self.mean_frame_ms
        return 1000.0 / mean if mean > 0 else 0.0

    @property
    def actual_fps(self) -> float:
        """Observed release rate over the whole run."""
        average = self.total_ms / (self.frame_count or 1)
        return 1000.0 / average if average > 0 else 0.0
