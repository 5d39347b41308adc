"""
Catalog Module
==============

Frame discovery, ordering and concurrent decoding.
"""

from faultframe.catalog.frame_catalog import (
    CatalogEntry,
    CatalogError,
    DuplicateSequenceKey,
    EmptyCatalog,
    FrameCatalog,
    FrameDecodeError,
    MalformedFilename,
    key_width,
    parse_sequence_key,
)


__all__ = [
    "CatalogEntry",
    "CatalogError",
    "DuplicateSequenceKey",
    "EmptyCatalog",
    "FrameCatalog",
    "FrameDecodeError",
    "MalformedFilename",
    "key_width",
    "parse_sequence_key",
]
