"""
Playback Errors
===============

Failures to coordinate with frame workers. A worker crashing is NOT an
error: the crash trace is the frame.
"""


class PlaybackError(Exception):
    """Base class for playback scheduling failures."""
    pass


class LaunchFailure(PlaybackError):
    """Raised when a worker process cannot be started."""

    def __init__(self, index: int, reason: str) -> None:
        super().__init__(f"Failed to launch worker for frame {index}: {reason}")
        self.index = index


class PoolExhausted(PlaybackError):
    """Raised when a frame is due but no pre-started worker is pooled."""

    def __init__(self, frame_index: int, capacity: int, size: int) -> None:
        super().__init__(
            f"Worker pool empty at frame {frame_index} "
            f"(capacity={capacity}, size={size})"
        )
        self.frame_index = frame_index
        self.capacity = capacity
        self.size = size


class PoolOverflow(PlaybackError):
    """Raised when a worker is pushed into a full pool."""
    pass


class WorkerTimeout(PlaybackError):
    """Raised when a worker exceeds its completion bound under the abort policy."""

    def __init__(self, index: int, timeout_ms: int) -> None:
        super().__init__(f"Worker for frame {index} did not finish within {timeout_ms}ms")
        self.index = index
        self.timeout_ms = timeout_ms
