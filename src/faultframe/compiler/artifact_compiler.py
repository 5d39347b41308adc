"""
Frame Artifact Compiler
=======================

Turns decoded frames into self-contained worker scripts whose crash trace
draws the frame.

Worker Anatomy:
    Each image row becomes a function whose name spells the row, one marker
    per pixel (bright or dark) followed by ``__<row>``. Row 0 calls row 1,
    row 1 calls row 2, and the last row dereferences ``None``. Once the
    worker reads its start line from stdin it calls row 0, and the uncaught
    traceback printed on stderr lists the rows top to bottom:

        Traceback (most recent call last):
          File "worker-frames/frame_00000.py", line 12, in <module>
            exec(compile("XX____XX__0()", "<frame 0>", "exec"), namespace)
          File "<frame 0>", line 1, in <module>
          File "<frame 0>", line 1, in XX____XX__0
          File "<frame 0>", line 2, in __XXXX____1
        AttributeError: 'NoneType' object has no attribute 'frame'

    The row functions are compiled from a string so their traceback entries
    carry no source lines.
"""

import logging
from pathlib import Path
from typing import Iterable, List

from faultframe.models.frame import Frame
from faultframe.models.worker import WorkerHandle


logger = logging.getLogger(__name__)


ARTIFACT_PREFIX = "frame_"
ARTIFACT_SUFFIX = ".py"

WORKER_TEMPLATE = '''\
import sys

ROWS = {row_source!r}

sys.setrecursionlimit(max(sys.getrecursionlimit(), {depth} + 50))
sys.tracebacklimit = {depth}

namespace = {{}}
exec(compile(ROWS, "<frame {index}>", "exec"), namespace)

sys.stdin.readline()
exec(compile("{entry}()", "<frame {index}>", "exec"), namespace)
'''


class FrameArtifactCompiler:
    """
    Writer of per-frame worker scripts.

    Attributes:
        output_dir: Directory that receives the worker scripts
        bright_marker: Function-name fragment for pixels above threshold
        dark_marker: Function-name fragment for the remaining pixels
        threshold: Intensity boundary between dark and bright

    Example:
        compiler = FrameArtifactCompiler("worker-frames")
        compiler.clean()
        handles = compiler.compile(frames)
    """

    def __init__(
        self,
        output_dir: str | Path,
        bright_marker: str = "XX",
        dark_marker: str = "__",
        threshold: float = 127.5,
    ) -> None:
        self.output_dir = Path(output_dir)
        self.bright_marker = bright_marker
        self.dark_marker = dark_marker
        self.threshold = threshold

    def clean(self) -> int:
        """
        Remove worker scripts left by a previous run.

        Returns:
            Number of files removed
        """
        logger.info(f"Cleaning worker artifacts in {self.output_dir}")
        self.output_dir.mkdir(parents=True, exist_ok=True)

        removed = 0
        for path in self.output_dir.glob(f"{ARTIFACT_PREFIX}*{ARTIFACT_SUFFIX}"):
            path.unlink()
            removed += 1
        return removed

    def row_names(self, frame: Frame) -> List[str]:
        """Function name for every row of the frame, top row first."""
        names = []
        for row_index, row in enumerate(frame.pixels):
            markers = "".join(
                self.bright_marker if value > self.threshold else self.dark_marker
                for value in row.tolist()
            )
            names.append(f"{markers}__{row_index}")
        return names

    def render(self, frame: Frame, index: int) -> str:
        """Source of the worker script for one frame."""
        names = self.row_names(frame)

        lines = [
            f"def {name}(): return {callee}()"
            for name, callee in zip(names, names[1:])
        ]
        lines.append(f"def {names[-1]}(): return None.frame")

        return WORKER_TEMPLATE.format(
            row_source="\n".join(lines) + "\n",
            depth=len(names) + 2,
            index=index,
            entry=names[0],
        )

    def compile(self, frames: Iterable[Frame]) -> List[WorkerHandle]:
        """
        Write one worker script per frame.

        Args:
            frames: Frames in playback order

        Returns:
            Worker handles in the same order
        """
        self.output_dir.mkdir(parents=True, exist_ok=True)

        handles = []
        for index, frame in enumerate(frames):
            path = self.output_dir / f"{ARTIFACT_PREFIX}{index:05d}{ARTIFACT_SUFFIX}"
            path.write_text(self.render(frame, index))
            handles.append(WorkerHandle(index=index, locator=path))

        logger.info(f"Wrote {len(handles)} worker scripts to {self.output_dir}")
        return handles
