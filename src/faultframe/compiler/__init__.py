"""
Compiler Module
===============

Generation of per-frame worker scripts.
"""

from faultframe.compiler.artifact_compiler import FrameArtifactCompiler


__all__ = [
    "FrameArtifactCompiler",
]
