"""
faultframe
==========

Plays a directory of bitmap frames as an animation of crash traces.

Each frame is decoded to grayscale and compiled into a worker script whose
uncaught traceback draws the image, one stack entry per row. A scheduler
keeps a bounded pool of worker processes started ahead of time and releases
them strictly in order at a target frame rate.

Components:
    - decode: Bitmap header parsing and grayscale decoding
    - catalog: Frame discovery, ordering and concurrent decoding
    - compiler: Per-frame worker script generation
    - playback: Worker pool, process workers and the scheduler
    - observability: Telemetry reporting

Example:
    import asyncio
    from faultframe.config import load_config
    from faultframe.pipeline import play

    telemetry = asyncio.run(play(load_config()))
"""

__version__ = "0.1.0"

__all__ = [
    "__version__",
]
