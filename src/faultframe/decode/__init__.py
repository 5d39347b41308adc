"""
Decode Module
=============

Bitmap decoding into grayscale frames.
"""

from faultframe.decode.raster_decoder import (
    IncompleteFrame,
    MalformedHeader,
    RasterDecodeError,
    RasterHeader,
    decode_raster,
    read_header,
)


__all__ = [
    "IncompleteFrame",
    "MalformedHeader",
    "RasterDecodeError",
    "RasterHeader",
    "decode_raster",
    "read_header",
]
