"""
Playback Scheduler Tests
========================

FIFO release, pool replenishment, compensating pacing, cancellation and
failure cleanup, driven by in-memory workers and a fake clock.
"""

import asyncio

import pytest

from conftest import FakeLauncher, make_handles
from faultframe.models.telemetry import PlaybackOutcome
from faultframe.playback import (
    LaunchFailure,
    PlaybackScheduler,
    PoolExhausted,
    WorkerTimeout,
    frame_interval_ms,
)


def make_scheduler(launcher, display, clock, sleep, **options):
    options.setdefault("fps", 10)
    return PlaybackScheduler(
        launcher=launcher,
        display=display,
        clock=clock,
        sleep=sleep,
        **options,
    )


class TestFrameInterval:
    """Tests for the target cadence."""

    @pytest.mark.parametrize("fps,interval", [(10, 100), (30, 33), (16, 63), (1, 1000), (60, 17)])
    def test_rounds_half_up(self, fps, interval):
        assert frame_interval_ms(fps) == interval

    def test_rejects_non_positive_fps(self):
        with pytest.raises(ValueError):
            frame_interval_ms(0)


class TestOrdering:
    """Tests for strict FIFO release and replenishment."""

    def test_release_order_and_replenishment(self, clock, recording_sleep, display):
        launcher = FakeLauncher(clock=clock)
        scheduler = make_scheduler(launcher, display, clock, recording_sleep, pool_capacity=3)

        telemetry = asyncio.run(scheduler.run(make_handles(7)))

        assert launcher.log == [
            ("launch", 0), ("launch", 1), ("launch", 2),
            ("release", 0), ("launch", 3),
            ("release", 1), ("launch", 4),
            ("release", 2), ("launch", 5),
            ("release", 3), ("launch", 6),
            ("release", 4),
            ("release", 5),
            ("release", 6),
        ]
        assert [t.index for t in telemetry.frames] == list(range(7))
        assert telemetry.outcome == PlaybackOutcome.COMPLETED

    def test_pool_stays_full_in_steady_state(self, clock, recording_sleep, display):
        launcher = FakeLauncher(clock=clock)
        scheduler = make_scheduler(launcher, display, clock, recording_sleep, pool_capacity=3)

        telemetry = asyncio.run(scheduler.run(make_handles(7)))

        assert [t.pool_depth for t in telemetry.frames] == [3, 3, 3, 3, 2, 1, 0]

    def test_capacity_is_capped_by_frame_count(self, clock, recording_sleep, display):
        launcher = FakeLauncher(clock=clock)
        scheduler = make_scheduler(launcher, display, clock, recording_sleep, pool_capacity=10)

        asyncio.run(scheduler.run(make_handles(2)))

        assert scheduler.pool.capacity == 2
        assert launcher.log[:2] == [("launch", 0), ("launch", 1)]

    def test_warmup_precedes_first_release(self, clock, recording_sleep, display):
        launcher = FakeLauncher(clock=clock)
        scheduler = make_scheduler(
            launcher, display, clock, recording_sleep, pool_capacity=2, warmup_ms=300
        )

        asyncio.run(scheduler.run(make_handles(2)))

        assert recording_sleep.delays[0] == pytest.approx(0.3)

    def test_exit_status_is_ignored(self, clock, recording_sleep, display):
        launcher = FakeLauncher(clock=clock, exit_code=-11)
        scheduler = make_scheduler(launcher, display, clock, recording_sleep)

        telemetry = asyncio.run(scheduler.run(make_handles(3)))

        assert telemetry.frame_count == 3
        assert [t.exit_code for t in telemetry.frames] == [-11, -11, -11]

    def test_no_handles(self, clock, recording_sleep, display):
        scheduler = make_scheduler(FakeLauncher(clock=clock), display, clock, recording_sleep)

        telemetry = asyncio.run(scheduler.run([]))

        assert telemetry.frames == []
        assert telemetry.outcome == PlaybackOutcome.COMPLETED


class TestDisplay:
    """Tests for output piping."""

    def test_clears_once_per_frame_on_first_chunk(self, clock, recording_sleep, display):
        launcher = FakeLauncher(clock=clock, output=[b"row 0\n", b"row 1\n"])
        scheduler = make_scheduler(launcher, display, clock, recording_sleep)

        asyncio.run(scheduler.run(make_handles(2)))

        assert display.events == ["clear", "write", "write"] * 2
        assert display.frames == [b"row 0\nrow 1\n"] * 2

    def test_silent_worker_does_not_clear(self, clock, recording_sleep, display):
        launcher = FakeLauncher(clock=clock, output=[])
        scheduler = make_scheduler(launcher, display, clock, recording_sleep)

        asyncio.run(scheduler.run(make_handles(2)))

        assert display.events == []


class TestPacing:
    """Tests for compensating sleeps."""

    def test_sleeps_remainder_of_interval(self, clock, recording_sleep, display):
        launcher = FakeLauncher(clock=clock, default_duration=0.040)
        scheduler = make_scheduler(
            launcher, display, clock, recording_sleep, fps=10, warmup_ms=300
        )

        telemetry = asyncio.run(scheduler.run(make_handles(3)))

        assert [t.elapsed_ms for t in telemetry.frames] == pytest.approx([40, 40, 40])
        assert [t.sleep_ms for t in telemetry.frames] == pytest.approx([60, 60, 60])
        assert recording_sleep.delays == pytest.approx([0.3, 0.06, 0.06, 0.06])
        assert telemetry.total_ms == pytest.approx(300)

    def test_slow_frame_is_not_carried_forward(self, clock, recording_sleep, display):
        launcher = FakeLauncher(clock=clock, durations={0: 0.150}, default_duration=0.040)
        scheduler = make_scheduler(
            launcher, display, clock, recording_sleep, fps=10, warmup_ms=0
        )

        telemetry = asyncio.run(scheduler.run(make_handles(3)))

        assert [t.sleep_ms for t in telemetry.frames] == pytest.approx([0, 60, 60])
        assert recording_sleep.delays == pytest.approx([0.06, 0.06])
        assert telemetry.total_ms == pytest.approx(350)

    def test_telemetry_statistics(self, clock, recording_sleep, display):
        launcher = FakeLauncher(clock=clock, default_duration=0.050)
        scheduler = make_scheduler(launcher, display, clock, recording_sleep, fps=10)

        telemetry = asyncio.run(scheduler.run(make_handles(4)))

        assert telemetry.frame_interval_ms == 100
        assert telemetry.frame_times_ms == pytest.approx([50, 50, 50, 50])
        assert telemetry.mean_frame_ms == pytest.approx(50)
        assert telemetry.expected_fps == pytest.approx(20)
        assert telemetry.actual_fps == pytest.approx(10)


class TestFailures:
    """Tests for fatal errors and cleanup."""

    def test_launch_failure_during_fill_cleans_up(self, clock, recording_sleep, display):
        launcher = FakeLauncher(clock=clock, fail_on=2)
        scheduler = make_scheduler(launcher, display, clock, recording_sleep, pool_capacity=3)

        with pytest.raises(LaunchFailure):
            asyncio.run(scheduler.run(make_handles(5)))

        assert launcher.terminated == {0, 1}
        assert ("release", 0) not in launcher.log

    def test_launch_failure_during_replenish_cleans_up(self, clock, recording_sleep, display):
        launcher = FakeLauncher(clock=clock, fail_on=4)
        scheduler = make_scheduler(launcher, display, clock, recording_sleep, pool_capacity=3)

        with pytest.raises(LaunchFailure) as exc_info:
            asyncio.run(scheduler.run(make_handles(6)))

        assert exc_info.value.index == 4
        assert launcher.terminated == {2, 3}
        assert scheduler.pool.size == 0

    def test_empty_pool_is_fatal(self, clock, recording_sleep, display):
        scheduler = None

        def lose_pool(worker):
            if worker.index == 0:
                scheduler.pool.drain()

        launcher = FakeLauncher(clock=clock, on_release=lose_pool)
        scheduler = make_scheduler(launcher, display, clock, recording_sleep, pool_capacity=2)

        with pytest.raises(PoolExhausted) as exc_info:
            asyncio.run(scheduler.run(make_handles(2)))

        assert exc_info.value.frame_index == 1

    def test_timeout_abort(self, clock, recording_sleep, display):
        launcher = FakeLauncher(clock=clock, hang_on={1})
        scheduler = make_scheduler(
            launcher, display, clock, recording_sleep,
            pool_capacity=2, completion_timeout_ms=20, timeout_policy="abort",
        )

        with pytest.raises(WorkerTimeout) as exc_info:
            asyncio.run(scheduler.run(make_handles(4)))

        assert exc_info.value.index == 1
        assert launcher.terminated == {1, 2}

    def test_timeout_skip(self, clock, recording_sleep, display):
        launcher = FakeLauncher(clock=clock, hang_on={1})
        scheduler = make_scheduler(
            launcher, display, clock, recording_sleep,
            pool_capacity=2, completion_timeout_ms=20, timeout_policy="skip",
        )

        telemetry = asyncio.run(scheduler.run(make_handles(4)))

        assert [t.index for t in telemetry.frames] == [0, 1, 2, 3]
        assert [t.timed_out for t in telemetry.frames] == [False, True, False, False]
        assert launcher.terminated == {1}

    def test_rejects_invalid_options(self, clock, recording_sleep, display):
        launcher = FakeLauncher(clock=clock)
        with pytest.raises(ValueError):
            make_scheduler(launcher, display, clock, recording_sleep, pool_capacity=0)
        with pytest.raises(ValueError):
            make_scheduler(launcher, display, clock, recording_sleep, timeout_policy="retry")


class TestCancellation:
    """Tests for external cancellation."""

    def test_cancel_between_frames(self, clock, recording_sleep, display):
        scheduler = None

        def cancel_on_third(worker):
            if worker.index == 2:
                scheduler.cancel()

        launcher = FakeLauncher(clock=clock, on_release=cancel_on_third)
        scheduler = make_scheduler(launcher, display, clock, recording_sleep, pool_capacity=3)

        telemetry = asyncio.run(scheduler.run(make_handles(8)))

        assert telemetry.outcome == PlaybackOutcome.CANCELLED
        assert [t.index for t in telemetry.frames] == [0, 1, 2]
        assert launcher.terminated == {3, 4, 5}
        assert scheduler.pool.size == 0

    def test_cancel_while_worker_runs(self, clock, display):
        launcher = FakeLauncher(clock=clock, hang_on={0})
        scheduler = PlaybackScheduler(
            launcher=launcher,
            display=display,
            fps=10,
            pool_capacity=3,
            warmup_ms=0,
        )

        async def scenario():
            task = asyncio.ensure_future(scheduler.run(make_handles(5)))
            await asyncio.sleep(0.05)
            scheduler.cancel()
            return await task

        telemetry = asyncio.run(scenario())

        assert telemetry.outcome == PlaybackOutcome.CANCELLED
        assert telemetry.frames == []
        assert launcher.terminated == {0, 1, 2}

    def test_cancel_during_warmup(self, clock, display):
        cancel_event = asyncio.Event()
        cancel_event.set()
        launcher = FakeLauncher(clock=clock)
        scheduler = PlaybackScheduler(
            launcher=launcher,
            display=display,
            fps=10,
            pool_capacity=2,
            cancel_event=cancel_event,
        )

        telemetry = asyncio.run(scheduler.run(make_handles(3)))

        assert telemetry.outcome == PlaybackOutcome.CANCELLED
        assert telemetry.total_ms == 0.0
        assert launcher.terminated == {0, 1}

    def test_runs_again_after_cancel(self, clock, recording_sleep, display):
        scheduler = None
        requests = [True]

        def cancel_once(worker):
            if worker.index == 1 and requests:
                requests.pop()
                scheduler.cancel()

        launcher = FakeLauncher(clock=clock, on_release=cancel_once)
        scheduler = make_scheduler(launcher, display, clock, recording_sleep, pool_capacity=2)

        first = asyncio.run(scheduler.run(make_handles(4)))
        assert first.outcome == PlaybackOutcome.CANCELLED
        assert not scheduler.cancelled

        second = asyncio.run(scheduler.run(make_handles(4)))
        assert second.outcome == PlaybackOutcome.COMPLETED
        assert [t.index for t in second.frames] == [0, 1, 2, 3]

    def test_failed_run_does_not_keep_cancel_request(self, clock, recording_sleep, display):
        cancel_event = asyncio.Event()
        cancel_event.set()
        launcher = FakeLauncher(clock=clock, fail_on=1)
        scheduler = make_scheduler(
            launcher, display, clock, recording_sleep,
            pool_capacity=2, cancel_event=cancel_event,
        )

        with pytest.raises(LaunchFailure):
            asyncio.run(scheduler.run(make_handles(3)))

        assert not cancel_event.is_set()
