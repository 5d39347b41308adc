"""
Frame Catalog
=============

Discovers bitmap frames in a directory, orders them by the sequence number
embedded in each filename, and decodes them into a FrameSequence.

Naming:
    Upstream conversion tooling writes frames such as ``out_00042.bmp``: a
    fixed-length prefix followed by a zero-padded sequence number. The number
    must be at least as wide as the decimal digit count of the total number
    of frames, so that 13000 frames are numbered with five digits.

Design Rules:
    - Ordering is by parsed integer key, never by raw string
    - Malformed names and duplicate keys fail closed
    - Decoding runs concurrently; results are joined in sorted order
    - A single bad frame aborts the whole build (no partial sequence)
"""

import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional

from faultframe.decode.raster_decoder import decode_raster
from faultframe.models.frame import Frame


logger = logging.getLogger(__name__)


class CatalogError(Exception):
    """Base class for frame catalog failures."""
    pass


class EmptyCatalog(CatalogError):
    """Raised when the frame directory holds no frames."""
    pass


class MalformedFilename(CatalogError):
    """Raised when a filename carries no valid sequence number."""
    pass


class DuplicateSequenceKey(CatalogError):
    """Raised when two files carry the same sequence number."""
    pass


class FrameDecodeError(CatalogError):
    """Raised when a frame file cannot be decoded. Wraps the decoder error."""

    def __init__(self, path: Path, error: Exception) -> None:
        super().__init__(f"Failed to decode frame '{path.name}': {error}")
        self.path = path


@dataclass(frozen=True, slots=True)
class CatalogEntry:
    """A discovered frame file and its parsed sequence key."""

    path: Path
    sequence_key: int


def key_width(file_count: int) -> int:
    """Minimum digit count of a sequence number for a directory of file_count frames."""
    return len(str(file_count))


def parse_sequence_key(filename: str, offset: int, width: int) -> int:
    """
    Extract the sequence number embedded in a filename.

    The number is the run of decimal digits starting at ``offset``; it must
    contain at least ``width`` digits.

    Args:
        filename: Bare filename (no directory)
        offset: Character offset where the number starts
        width: Minimum number of digits

    Returns:
        Parsed sequence number

    Raises:
        MalformedFilename: If no valid number is found at the offset
    """
    end = offset
    while end < len(filename) and filename[end] in "0123456789":
        end += 1

    digits = filename[offset:end]
    if len(digits) < max(width, 1):
        raise MalformedFilename(
            f"'{filename}' has no {width}-digit sequence number at offset {offset}"
        )
    return int(digits)


class FrameCatalog:
    """
    Ordered collection of the frames in a directory.

    Attributes:
        directory: Directory scanned for frames
        key_offset: Character offset of the sequence number in filenames
        suffix: File suffix of frame files (case-insensitive)
        max_workers: Decoder threads (None = executor default)

    Example:
        catalog = FrameCatalog("frames", key_offset=4)
        frames = catalog.build()
    """

    def __init__(
        self,
        directory: str | Path,
        key_offset: int = 4,
        suffix: str = ".bmp",
        max_workers: Optional[int] = None,
    ) -> None:
        if key_offset < 0:
            raise ValueError("key_offset must be >= 0")

        self.directory = Path(directory)
        self.key_offset = key_offset
        self.suffix = suffix.lower()
        self.max_workers = max_workers

    def discover(self) -> List[CatalogEntry]:
        """
        List frame files sorted by sequence number.

        Returns:
            Entries in ascending numeric key order

        Raises:
            EmptyCatalog: If the directory is missing or holds no frames
            MalformedFilename: If a filename carries no valid key
            DuplicateSequenceKey: If two files share a key
        """
        if not self.directory.is_dir():
            raise EmptyCatalog(f"Frame directory '{self.directory}' does not exist")

        paths = [
            path for path in self.directory.iterdir()
            if path.is_file() and path.name.lower().endswith(self.suffix)
        ]
        if not paths:
            raise EmptyCatalog(f"No '{self.suffix}' frames found in '{self.directory}'")

        width = key_width(len(paths))
        entries = [
            CatalogEntry(path, parse_sequence_key(path.name, self.key_offset, width))
            for path in paths
        ]
        entries.sort(key=lambda entry: entry.sequence_key)

        for previous, current in zip(entries, entries[1:]):
            if previous.sequence_key == current.sequence_key:
                raise DuplicateSequenceKey(
                    f"'{previous.path.name}' and '{current.path.name}' share "
                    f"sequence number {current.sequence_key}"
                )

        return entries

    def build(self) -> List[Frame]:
        """
        Decode every frame in sequence order.

        Returns:
            Frames ordered by sequence number

        Raises:
            CatalogError: If discovery fails or any frame fails to decode
        """
        entries = self.discover()
        logger.info(f"Reading {len(entries)} bitmap frames from {self.directory}")

        with ThreadPoolExecutor(max_workers=self.max_workers) as executor:
            # map() yields in submission order, which is the sorted order
            frames = list(executor.map(self._decode_entry, entries))

        logger.debug(f"Decoded {len(frames)} frames")
        return frames

    @staticmethod
    def _decode_entry(entry: CatalogEntry) -> Frame:
        try:
            frame = decode_raster(entry.path.read_bytes(), source=entry.path.name)
        except Exception as e:
            raise FrameDecodeError(entry.path, e) from e

        return Frame(
            pixels=frame.pixels,
            source=frame.source,
            sequence_key=entry.sequence_key,
        )
