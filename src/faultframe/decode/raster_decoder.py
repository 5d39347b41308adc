"""
Raster Decoder
==============

Dedicated module for decoding uncompressed bitmap buffers into grayscale
frames.

Design Rules:
    - This is the ONLY place in the codebase that decodes images
    - Pure: takes bytes, returns a Frame, performs no I/O
    - Fails fast on corrupt headers or truncated pixel data
    - Never zero-fills missing pixels

Layout (all header fields little-endian):
    offset 10  u32  pixel data offset
    offset 18  i32  width in pixels
    offset 22  i32  height in pixels (positive = rows stored bottom-to-top)
    offset 28  u16  bits per pixel

Each scan line holds width * bytes_per_pixel data bytes followed by padding
up to a 4-byte boundary. A pixel is three channels; its intensity is the
floored mean of the channels.
"""

import logging
import struct
from dataclasses import dataclass
from typing import Optional

import numpy as np

from faultframe.models.frame import Frame


logger = logging.getLogger(__name__)


MIN_HEADER_SIZE = 30
SIGNATURE = b"BM"
CHANNELS = 3


class RasterDecodeError(Exception):
    """Base class for bitmap decoding failures."""
    pass


class MalformedHeader(RasterDecodeError):
    """Raised when the header is truncated or describes an unreadable layout."""
    pass


class IncompleteFrame(RasterDecodeError):
    """Raised when pixel data ends before every row is populated."""
    pass


@dataclass(frozen=True, slots=True)
class RasterHeader:
    """
    Fields of the bitmap header consumed by the decoder.

    Attributes:
        pixel_offset: Byte offset where pixel data starts
        width: Width in pixels
        height: Height in pixels as stored (negative for top-down bitmaps)
        bits_per_pixel: Color depth
    """

    pixel_offset: int
    width: int
    height: int
    bits_per_pixel: int

    @property
    def rows(self) -> int:
        return abs(self.height)

    @property
    def bottom_up(self) -> bool:
        return self.height > 0

    @property
    def bytes_per_pixel(self) -> int:
        return self.bits_per_pixel // 8

    @property
    def bytes_per_channel(self) -> int:
        return self.bytes_per_pixel // CHANNELS

    @property
    def data_bytes_per_row(self) -> int:
        return self.bytes_per_pixel * self.width

    @property
    def row_padding_bytes(self) -> int:
        return -self.data_bytes_per_row % 4

    @property
    def row_stride(self) -> int:
        """Data plus padding bytes per scan line."""
        return self.data_bytes_per_row + self.row_padding_bytes


def read_header(buffer: bytes) -> RasterHeader:
    """
    Parse and validate the bitmap header.

    Args:
        buffer: Complete bitmap file contents

    Returns:
        RasterHeader with validated layout fields

    Raises:
        MalformedHeader: If the header is truncated or inconsistent
    """
    if len(buffer) < MIN_HEADER_SIZE:
        raise MalformedHeader(
            f"Buffer of {len(buffer)} bytes is shorter than the "
            f"{MIN_HEADER_SIZE}-byte header"
        )
    if buffer[:2] != SIGNATURE:
        raise MalformedHeader(f"Missing bitmap signature, got {bytes(buffer[:2])!r}")

    (pixel_offset,) = struct.unpack_from("<I", buffer, 10)
    width, height = struct.unpack_from("<ii", buffer, 18)
    (bits_per_pixel,) = struct.unpack_from("<H", buffer, 28)

    header = RasterHeader(
        pixel_offset=pixel_offset,
        width=width,
        height=height,
        bits_per_pixel=bits_per_pixel,
    )

    if width <= 0 or height == 0:
        raise MalformedHeader(f"Invalid dimensions {width}x{height}")
    if bits_per_pixel == 0 or bits_per_pixel % 8 != 0:
        raise MalformedHeader(f"Bits per pixel {bits_per_pixel} is not a whole number of bytes")
    if header.bytes_per_pixel % CHANNELS != 0:
        raise MalformedHeader(
            f"Bits per pixel {bits_per_pixel} does not split into {CHANNELS} channels"
        )
    if header.bytes_per_channel not in (1, 2):
        raise MalformedHeader(
            f"Unsupported channel width of {header.bytes_per_channel} bytes"
        )
    if pixel_offset < MIN_HEADER_SIZE or pixel_offset > len(buffer):
        raise MalformedHeader(
            f"Pixel data offset {pixel_offset} outside buffer of {len(buffer)} bytes"
        )

    return header


def decode_raster(buffer: bytes, source: Optional[str] = None) -> Frame:
    """
    Decode a bitmap buffer to a grayscale frame.

    Rows come out top-to-bottom whatever the storage order. Padding bytes at
    the end of each scan line are skipped, and bytes after the last scan
    line are ignored. 16-bit channels keep their high byte.

    Args:
        buffer: Complete bitmap file contents
        source: Optional name recorded on the frame

    Returns:
        Frame of header height x header width, dtype=uint8

    Raises:
        MalformedHeader: If the header is invalid
        IncompleteFrame: If pixel data is missing for any row
    """
    header = read_header(buffer)

    rows = header.rows
    stride = header.row_stride
    data_bytes = header.data_bytes_per_row
    channel_bytes = header.bytes_per_channel

    # The last scan line may omit its padding
    required = (rows - 1) * stride + data_bytes
    available = len(buffer) - header.pixel_offset
    if available < required:
        complete = 0 if available < data_bytes else (available - data_bytes) // stride + 1
        raise IncompleteFrame(
            f"Pixel data holds {complete} of {rows} rows "
            f"({available} of {required} bytes)"
        )
    if available > rows * stride:
        logger.debug(f"Ignoring {available - rows * stride} trailing bytes")

    raw = np.frombuffer(buffer, dtype=np.uint8, count=required, offset=header.pixel_offset)
    raw = np.concatenate([raw, np.zeros(rows * stride - required, dtype=np.uint8)])

    scan_lines = raw.reshape(rows, stride)[:, :data_bytes]
    channels = scan_lines.reshape(rows, header.width, CHANNELS, channel_bytes).astype(np.uint32)

    # Little-endian channel bytes
    weights = np.left_shift(np.uint32(1), 8 * np.arange(channel_bytes, dtype=np.uint32))
    values = (channels * weights).sum(axis=3, dtype=np.uint32)

    gray = values.sum(axis=2, dtype=np.uint32) // CHANNELS
    if channel_bytes > 1:
        gray >>= 8 * (channel_bytes - 1)

    if header.bottom_up:
        gray = gray[::-1]

    return Frame(pixels=np.ascontiguousarray(gray, dtype=np.uint8), source=source)
