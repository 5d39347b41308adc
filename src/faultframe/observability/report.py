"""
Telemetry Report
================

Summarises a playback run for the operator.

Reports:
    - Mean frame time and the frame rate it would allow back to back
    - Total run time and the frame rate actually achieved
"""

import logging

from faultframe.models.telemetry import PlaybackOutcome, PlaybackTelemetry


logger = logging.getLogger(__name__)


def summarize(telemetry: PlaybackTelemetry) -> dict:
    """
    Derive report figures from telemetry.

    Returns:
        Dict with frames, mean_frame_ms, expected_fps, total_ms, actual_fps,
        late_frames and outcome
    """
    late = sum(
        1 for timing in telemetry.frames
        if timing.elapsed_ms > telemetry.frame_interval_ms
    )
    return {
        "frames": telemetry.frame_count,
        "mean_frame_ms": round(telemetry.mean_frame_ms, 2),
        "expected_fps": round(telemetry.expected_fps, 2),
        "total_ms": round(telemetry.total_ms, 2),
        "actual_fps": round(telemetry.actual_fps, 2),
        "late_frames": late,
        "outcome": telemetry.outcome.value,
    }


def report_telemetry(telemetry: PlaybackTelemetry) -> dict:
    """Log the run summary and return it."""
    summary = summarize(telemetry)

    logger.info(
        f"Average expected millis between frames: {summary['mean_frame_ms']:.2f}, "
        f"{summary['expected_fps']:.2f} fps"
    )
    logger.info(
        f"Total time taken: {summary['total_ms']:.0f}ms for {summary['frames']} frames. "
        f"Avg actual fps: {summary['actual_fps']:.2f}"
    )
    if summary["late_frames"]:
        logger.info(
            f"{summary['late_frames']} frames exceeded the "
            f"{telemetry.frame_interval_ms}ms interval"
        )
    if telemetry.outcome is PlaybackOutcome.CANCELLED:
        logger.warning("Run was cancelled before the last frame")

    return summary
