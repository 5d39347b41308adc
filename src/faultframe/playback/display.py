"""
Display Sink
============

Shared destination for the active worker's diagnostic output.

Only one worker is released at a time, so writes never interleave.
"""

import sys
from typing import BinaryIO, Optional, Protocol


CLEAR_SEQUENCE = b"\x1b[2J\x1b[H"


class DisplaySink(Protocol):
    """Protocol for the frame display."""

    def clear(self) -> None:
        """Remove the previous frame."""
        ...

    def write(self, chunk: bytes) -> None:
        """Pass through diagnostic bytes."""
        ...


class ConsoleDisplay:
    """
    Terminal display writing to a binary stream.

    Clearing only happens on a terminal, so redirected output keeps every
    frame.

    Attributes:
        stream: Binary stream receiving frame output (stderr by default)
    """

    def __init__(self, stream: Optional[BinaryIO] = None) -> None:
        self.stream = stream if stream is not None else sys.stderr.buffer

    @property
    def is_terminal(self) -> bool:
        isatty = getattr(self.stream, "isatty", None)
        return bool(isatty and isatty())

    def clear(self) -> None:
        if self.is_terminal:
            self.stream.write(CLEAR_SEQUENCE)
            self.stream.flush()

    def write(self, chunk: bytes) -> None:
        self.stream.write(chunk)
        self.stream.flush()
