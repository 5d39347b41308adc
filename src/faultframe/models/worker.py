"""
Worker Handle
=============

Launchable unit produced by the artifact compiler for one frame.
"""

from dataclasses import dataclass
from pathlib import Path


@dataclass(frozen=True, slots=True)
class WorkerHandle:
    """
    Locator for one frame worker.

    Attributes:
        index: 0-based position of the frame in the sequence
        locator: Path of the worker script to launch
    """

    index: int
    locator: Path
