"""
Frame Data Model
=================

Internal frame representation shared by the decoder, the catalog and the
artifact compiler.

Design Rules:
    - Pixels are a 2-D uint8 matrix, row 0 is the visual top
    - Frames are immutable once produced (array is made read-only)
    - Does NOT know how it was decoded or how it will be rendered
"""

from dataclasses import dataclass
from typing import Optional

import numpy as np


@dataclass(frozen=True, slots=True)
class Frame:
    """
    Decoded grayscale frame.

    Attributes:
        pixels: Intensity matrix (height, width), dtype=uint8, values in [0, 255]
        source: Filename the frame was decoded from, if any
        sequence_key: Numeric ordering key parsed from the filename, if any
    """

    pixels: np.ndarray
    source: Optional[str] = None
    sequence_key: Optional[int] = None

    def __post_init__(self) -> None:
        if self.pixels.ndim != 2:
            raise ValueError(f"Frame pixels must be 2-D, got shape {self.pixels.shape}")
        self.pixels.setflags(write=False)

    @property
    def height(self) -> int:
        """Number of rows."""
        return int(self.pixels.shape[0])

    @property
    def width(self) -> int:
        """Number of columns."""
        return int(self.pixels.shape[1])

    def __repr__(self) -> str:
        """Compact repr that doesn't dump the full matrix."""
        return (
            f"Frame(source={self.source!r}, "
            f"sequence_key={self.sequence_key}, "
            f"size={self.width}x{self.height})"
        )
