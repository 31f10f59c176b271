"""
Tests for periodic background tasks.
"""
import asyncio

import pytest

from code_explorer.utils.scheduling import PeriodicTask

INTERVAL = 0.01


def _run(scenario):
    return asyncio.run(scenario())


class TestPeriodicTask:
    """Tests for PeriodicTask."""

    def test_rejects_non_positive_interval(self):
        """Should refuse an interval that is not positive."""
        with pytest.raises(ValueError):
            PeriodicTask("t", 0, lambda: None)

    def test_sync_job_repeats(self):
        """Should call a plain function on every interval."""
        calls = []

        async def scenario():
            task = PeriodicTask("t", INTERVAL, lambda: calls.append(1))
            task.start()
            await asyncio.sleep(INTERVAL * 10)
            await task.stop()

        _run(scenario)
        assert len(calls) > 1

    def test_coroutine_job_repeats(self):
        """Should await a coroutine job on every interval."""
        calls = []

        async def job():
            await asyncio.sleep(0)
            calls.append(1)

        async def scenario():
            task = PeriodicTask("t", INTERVAL, job)
            task.start()
            await asyncio.sleep(INTERVAL * 10)
            await task.stop()

        _run(scenario)
        assert len(calls) > 1

    def test_failing_job_keeps_schedule(self):
        """Should keep running after the job raises."""
        calls = []

        def job():
            calls.append(1)
            raise RuntimeError("disk full")

        async def scenario():
            task = PeriodicTask("t", INTERVAL, job)
            task.start()
            await asyncio.sleep(INTERVAL * 10)
            running = task.running
            await task.stop()
            return running

        assert _run(scenario) is True
        assert len(calls) > 1

    def test_stop_cancels(self):
        """Should cancel the task so the job no longer runs."""
        calls = []

        async def scenario():
            task = PeriodicTask("t", INTERVAL, lambda: calls.append(1))
            task.start()
            await asyncio.sleep(INTERVAL * 5)
            await task.stop()
            assert not task.running
            stopped_at = len(calls)
            await asyncio.sleep(INTERVAL * 5)
            return stopped_at

        stopped_at = _run(scenario)
        assert len(calls) == stopped_at

    def test_stop_before_start(self):
        """Should do nothing when the task was never started."""

        async def scenario():
            await PeriodicTask("t", INTERVAL, lambda: None).stop()

        _run(scenario)
