"""
Frame Workers
=============

Isolated execution units for frames.

A worker is launched ahead of time and idles until it receives a single
start line on stdin. It then writes its diagnostic trace to stderr and
exits. Its exit status is never inspected for scheduling: crashing is what
a worker is for.

This module provides:
    - FrameWorker: Protocol the scheduler drives
    - WorkerLauncher: Protocol for starting a worker from a WorkerHandle
    - ProcessWorker / ProcessLauncher: OS process implementation
"""

import asyncio
import logging
import sys
from typing import AsyncIterator, Optional, Protocol

from faultframe.models.worker import WorkerHandle
from faultframe.playback.errors import LaunchFailure


logger = logging.getLogger(__name__)


START_SIGNAL = b"start\n"


class FrameWorker(Protocol):
    """
    Protocol for a started, not yet released frame worker.

    Exposes the start signal, the diagnostic stream and the completion event.
    """

    index: int

    async def release(self) -> None:
        """Send the start signal."""
        ...

    def iter_output(self) -> AsyncIterator[bytes]:
        """Diagnostic output chunks until the stream closes."""
        ...

    async def wait(self) -> Optional[int]:
        """Wait for termination and return the exit status."""
        ...

    def terminate(self) -> None:
        """Stop the worker if it is still running."""
        ...


class WorkerLauncher(Protocol):
    """Protocol for starting the worker described by a handle."""

    async def __call__(self, handle: WorkerHandle) -> FrameWorker:
        ...


class ProcessWorker:
    """
    Frame worker backed by an asyncio subprocess.

    Attributes:
        index: Frame position in the sequence
        chunk_size: Maximum bytes read from stderr at a time
    """

    def __init__(
        self,
        index: int,
        process: asyncio.subprocess.Process,
        chunk_size: int = 4096,
    ) -> None:
        self.index = index
        self.chunk_size = chunk_size
        self._process = process

    @property
    def pid(self) -> int:
        return self._process.pid

    @property
    def returncode(self) -> Optional[int]:
        return self._process.returncode

    async def release(self) -> None:
        stdin = self._process.stdin
        if stdin is None:
            return

        try:
            stdin.write(START_SIGNAL)
            await stdin.drain()
            stdin.close()
        except (BrokenPipeError, ConnectionResetError):
            # Already exited; its termination is still an ordinary frame end
            logger.debug(f"Worker {self.index} exited before its start signal")

    async def iter_output(self) -> AsyncIterator[bytes]:
        stream = self._process.stderr
        if stream is None:
            return

        while True:
            chunk = await stream.read(self.chunk_size)
            if not chunk:
                break
            yield chunk

    async def wait(self) -> Optional[int]:
        return await self._process.wait()

    def terminate(self) -> None:
        if self._process.returncode is not None:
            return
        try:
            self._process.terminate()
        except ProcessLookupError:
            pass

    def __repr__(self) -> str:
        return f"ProcessWorker(index={self.index}, pid={self.pid})"


class ProcessLauncher:
    """
    Starts worker scripts with a Python interpreter.

    Attributes:
        python_executable: Interpreter path (defaults to the running one)

    Example:
        launcher = ProcessLauncher()
        worker = await launcher(handle)
    """

    def __init__(self, python_executable: Optional[str] = None) -> None:
        self.python_executable = python_executable or sys.executable

    async def __call__(self, handle: WorkerHandle) -> ProcessWorker:
        """
        Start the worker for a handle.

        Raises:
            LaunchFailure: If the artifact is missing or the process cannot start
        """
        if not handle.locator.is_file():
            raise LaunchFailure(handle.index, f"artifact '{handle.locator}' not found")

        try:
            process = await asyncio.create_subprocess_exec(
                self.python_executable,
                str(handle.locator),
                stdin=asyncio.subprocess.PIPE,
                stdout=asyncio.subprocess.DEVNULL,
                stderr=asyncio.subprocess.PIPE,
            )
        except OSError as e:
            raise LaunchFailure(handle.index, str(e)) from e

        logger.debug(f"Started worker {handle.index} (pid {process.pid})")
        return ProcessWorker(handle.index, process)
