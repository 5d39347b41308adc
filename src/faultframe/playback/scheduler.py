"""
Playback Scheduler
==================

Releases frame workers strictly in sequence at a target frame rate.

Run Lifecycle:
    1. Start the first ``capacity = min(pool_capacity, total)`` workers and
       wait out the warm-up delay (process start-up is asynchronous).
    2. For each frame, in order:
        a. Take the pool head (FIFO)
        b. Send the start signal and pipe its stderr to the display,
           clearing the display on the first chunk
        c. Wait for the worker to exit, then start worker ``i + capacity``
           (if any) at the pool tail
        d. Record elapsed time and sleep ``max(interval - elapsed, 0)``
    3. Return per-frame telemetry and the run total

Pacing:
    Compensating, not additive. A slow frame shortens or removes the sleep
    after it, and nothing is carried into later frames. Frames that are
    systematically slower than the interval lower the achieved frame rate.

Failure Policy:
    - Worker exit status is ignored; a crash is the frame
    - A worker that cannot be launched aborts the run
    - Every fatal error terminates pooled workers before propagating
    - cancel() stops the run and reports a CANCELLED outcome; the request
      is consumed when the run ends, so the scheduler can run again
"""

import asyncio
import logging
import time
from typing import Awaitable, Callable, List, Literal, Optional, Sequence, Tuple

from faultframe.models.telemetry import FrameTiming, PlaybackOutcome, PlaybackTelemetry
from faultframe.models.worker import WorkerHandle
from faultframe.playback.display import DisplaySink
from faultframe.playback.errors import WorkerTimeout
from faultframe.playback.pool import WorkerPool
from faultframe.playback.worker import FrameWorker, WorkerLauncher


logger = logging.getLogger(__name__)


Clock = Callable[[], float]
Sleep = Callable[[float], Awaitable[None]]


def frame_interval_ms(fps: float) -> int:
    """Milliseconds between frame releases, rounded half up."""
    if fps <= 0:
        raise ValueError("fps must be positive")
    return int(1000.0 / fps + 0.5)


class PlaybackScheduler:
    """
    Bounded-pool, fixed-cadence frame player.

    Attributes:
        launcher: Starts the worker for a WorkerHandle
        display: Sink receiving the active worker's output
        fps: Target frames per second
        pool_capacity: Maximum workers started ahead of playback
        warmup_ms: Delay between filling the pool and the first release
        completion_timeout_ms: Per-frame bound (None = wait indefinitely)
        timeout_policy: "abort" raises WorkerTimeout, "skip" moves on

    Example:
        scheduler = PlaybackScheduler(
            launcher=ProcessLauncher(),
            display=ConsoleDisplay(),
            fps=30,
        )
        telemetry = await scheduler.run(handles)
    """

    def __init__(
        self,
        launcher: WorkerLauncher,
        display: DisplaySink,
        fps: float,
        pool_capacity: int = 10,
        warmup_ms: float = 300,
        completion_timeout_ms: Optional[int] = None,
        timeout_policy: Literal["abort", "skip"] = "abort",
        clock: Clock = time.monotonic,
        sleep: Optional[Sleep] = None,
        cancel_event: Optional[asyncio.Event] = None,
    ) -> None:
        """
        Initialize playback scheduler.

        Args:
            launcher: Worker launcher
            display: Display sink
            fps: Target frames per second (> 0)
            pool_capacity: Pool size cap (>= 1)
            warmup_ms: Warm-up delay in milliseconds (>= 0)
            completion_timeout_ms: Optional per-frame completion bound
            timeout_policy: Behaviour when the bound is exceeded
            clock: Monotonic clock in seconds
            sleep: Replacement for the cancellable pacing sleep (seconds)
            cancel_event: Event that cancels the run when set
        """
        if pool_capacity < 1:
            raise ValueError("pool_capacity must be >= 1")
        if warmup_ms < 0:
            raise ValueError("warmup_ms must be >= 0")
        if completion_timeout_ms is not None and completion_timeout_ms <= 0:
            raise ValueError("completion_timeout_ms must be positive")
        if timeout_policy not in ("abort", "skip"):
            raise ValueError(f"Unknown timeout policy: {timeout_policy}")

        self.launcher = launcher
        self.display = display
        self.fps = fps
        self.frame_interval_ms = frame_interval_ms(fps)
        self.pool_capacity = pool_capacity
        self.warmup_ms = warmup_ms
        self.completion_timeout_ms = completion_timeout_ms
        self.timeout_policy = timeout_policy

        self._clock = clock
        self._sleep = sleep
        self._cancel_event = cancel_event or asyncio.Event()

        self._pool: Optional[WorkerPool[FrameWorker]] = None
        self._active: Optional[FrameWorker] = None

    @property
    def pool(self) -> Optional[WorkerPool[FrameWorker]]:
        """Pool of the current or last run."""
        return self._pool

    @property
    def cancelled(self) -> bool:
        return self._cancel_event.is_set()

    def cancel(self) -> None:
        """Request cancellation of the current run."""
        if not self.cancelled:
            logger.info("Playback cancellation requested")
        self._cancel_event.set()

    async def run(self, handles: Sequence[WorkerHandle]) -> PlaybackTelemetry:
        """
        Play every handle in order.

        Args:
            handles: Launchable workers in playback order

        Returns:
            PlaybackTelemetry with outcome COMPLETED or CANCELLED

        Raises:
            LaunchFailure: If a worker cannot be started
            PoolExhausted: If the pool runs dry (bookkeeping defect)
            WorkerTimeout: If a worker exceeds its bound under the abort policy
        """
        total = len(handles)
        if total == 0:
            logger.warning("No frames to play")
            self._cancel_event.clear()
            return PlaybackTelemetry(frame_interval_ms=self.frame_interval_ms)

        capacity = min(self.pool_capacity, total)
        self._pool = WorkerPool(capacity)

        logger.info(
            f"Running {total} frames at {self.fps:g} fps "
            f"(interval={self.frame_interval_ms}ms, pool={capacity})"
        )

        timings: List[FrameTiming] = []
        outcome = PlaybackOutcome.COMPLETED
        run_start: Optional[float] = None

        try:
            for handle in handles[:capacity]:
                self._pool.push(await self.launcher(handle))

            if await self._pause(self.warmup_ms):
                run_start = self._clock()
                for index in range(total):
                    timing = await self._play_frame(index, handles, capacity)
                    if timing is None:
                        break
                    timings.append(timing)

                    if not await self._pause(timing.sleep_ms):
                        break

            if self.cancelled and len(timings) < total:
                outcome = PlaybackOutcome.CANCELLED
                logger.warning(f"Playback cancelled after {len(timings)} of {total} frames")
            await self._shutdown()
        except BaseException:
            await self._shutdown()
            raise
        finally:
            self._cancel_event.clear()

        total_ms = (self._clock() - run_start) * 1000.0 if run_start is not None else 0.0
        return PlaybackTelemetry(
            frames=timings,
            total_ms=total_ms,
            frame_interval_ms=self.frame_interval_ms,
            outcome=outcome,
        )

    async def _play_frame(
        self,
        index: int,
        handles: Sequence[WorkerHandle],
        capacity: int,
    ) -> Optional[FrameTiming]:
        """Release one frame. Returns None if the run was cancelled."""
        if self.cancelled:
            return None

        start = self._clock()
        worker = self._pool.pop(index)
        self._active = worker

        finished, exit_code, timed_out = await self._await_worker(worker)
        self._active = None
        if not finished:
            return None

        if index + capacity < len(handles):
            self._pool.push(await self.launcher(handles[index + capacity]))

        elapsed_ms = (self._clock() - start) * 1000.0
        sleep_ms = max(self.frame_interval_ms - elapsed_ms, 0.0)

        logger.debug(
            f"Frame {index}: elapsed={elapsed_ms:.1f}ms, sleep={sleep_ms:.1f}ms, "
            f"pool={self._pool.size}, exit={exit_code}"
        )

        return FrameTiming(
            index=index,
            elapsed_ms=elapsed_ms,
            sleep_ms=sleep_ms,
            pool_depth=self._pool.size,
            exit_code=exit_code,
            timed_out=timed_out,
        )

    async def _await_worker(self, worker: FrameWorker) -> Tuple[bool, Optional[int], bool]:
        """
        Release a worker and wait for it to finish.

        Returns:
            (finished, exit_code, timed_out); finished is False on cancellation
        """
        playback = asyncio.ensure_future(self._release_and_pipe(worker))
        cancelled = asyncio.ensure_future(self._cancel_event.wait())
        timeout = (
            self.completion_timeout_ms / 1000.0
            if self.completion_timeout_ms is not None else None
        )

        try:
            done, _ = await asyncio.wait(
                {playback, cancelled},
                timeout=timeout,
                return_when=asyncio.FIRST_COMPLETED,
            )
        finally:
            cancelled.cancel()
            if not playback.done():
                worker.terminate()
                playback.cancel()
                await asyncio.wait({playback})

        if playback in done:
            return True, playback.result(), False

        if self.cancelled:
            await worker.wait()
            return False, None, False

        await worker.wait()
        if self.timeout_policy == "abort":
            raise WorkerTimeout(worker.index, self.completion_timeout_ms)

        logger.warning(
            f"Worker for frame {worker.index} exceeded "
            f"{self.completion_timeout_ms}ms, skipping"
        )
        return True, None, True

    async def _release_and_pipe(self, worker: FrameWorker) -> Optional[int]:
        await worker.release()

        cleared = False
        async for chunk in worker.iter_output():
            if not cleared:
                self.display.clear()
                cleared = True
            self.display.write(chunk)

        return await worker.wait()

    async def _pause(self, delay_ms: float) -> bool:
        """Sleep unless cancelled. Returns False if the run was cancelled."""
        if self.cancelled:
            return False
        if delay_ms <= 0:
            return True

        if self._sleep is not None:
            await self._sleep(delay_ms / 1000.0)
            return not self.cancelled

        try:
            await asyncio.wait_for(self._cancel_event.wait(), timeout=delay_ms / 1000.0)
            return False
        except asyncio.TimeoutError:
            return True

    async def _shutdown(self) -> None:
        """Terminate the active worker and everything still pooled."""
        workers = self._pool.drain() if self._pool is not None else []
        if self._active is not None:
            workers.insert(0, self._active)
            self._active = None

        if not workers:
            return

        for worker in workers:
            worker.terminate()
        await asyncio.gather(*(worker.wait() for worker in workers), return_exceptions=True)

        logger.info(f"Terminated {len(workers)} unreleased workers")
