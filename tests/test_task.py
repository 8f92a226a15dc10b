"""
Tests for Task functionality
"""

import asyncio
import logging
from datetime import timedelta
from unittest.mock import Mock

import pytest

from lads.core.errors import AlreadyRunningError, InvalidArgumentError, TaskStoppedError
from lads.core.task import NodeClass, Task

from conftest import TEST_TICK


class TestNodeClass:
    """Test capability tag parsing and matching"""

    def test_parse_is_case_insensitive(self):
        assert NodeClass.parse("Compute") == NodeClass.COMPUTE
        assert NodeClass.parse(" database ") == NodeClass.DATABASE

    def test_parse_unknown_class(self):
        with pytest.raises(InvalidArgumentError) as exc_info:
            NodeClass.parse("gpu")
        assert "Available classes" in str(exc_info.value)

    def test_generic_is_wildcard_on_both_sides(self):
        assert NodeClass.GENERIC.compatible_with(NodeClass.STORAGE)
        assert NodeClass.STORAGE.compatible_with(NodeClass.GENERIC)
        assert NodeClass.COMPUTE.compatible_with(NodeClass.COMPUTE)
        assert not NodeClass.COMPUTE.compatible_with(NodeClass.STORAGE)


class TestTask:
    """Test Task class functionality"""

    def test_task_creation(self):
        """Test basic task creation"""
        task = Task("build", 5, 2, task_class=NodeClass.COMPUTE)

        assert task.name == "build"
        assert task.duration == 5.0
        assert task.cpu_cores == 2
        assert task.task_class == NodeClass.COMPUTE
        assert task.id == 0
        assert task.remaining == 5.0
        assert not task.is_running
        assert not task.started
        assert task.completion is None

    def test_duration_as_timedelta(self):
        task = Task("backup", timedelta(minutes=1), 1)
        assert task.duration == 60.0

    @pytest.mark.parametrize("cores", [0, -1, True, 1.5, "2"])
    def test_invalid_cpu_cores(self, cores):
        with pytest.raises(InvalidArgumentError) as exc_info:
            Task("bad", 1, cores)
        assert exc_info.value.argument == "cpu_cores"

    def test_negative_duration(self):
        with pytest.raises(InvalidArgumentError) as exc_info:
            Task("bad", -1, 1)
        assert exc_info.value.argument == "duration"

    def test_zero_duration_is_allowed(self):
        task = Task("instant", 0, 1)
        assert task.duration == 0.0

    def test_str_shows_total_length_before_start(self):
        task = Task("report", 65, 1)
        assert str(task) == "Task{name: report, id: 0, length: 0:01:05}"

    @pytest.mark.asyncio
    async def test_countdown_completes_and_fires_hook_once(self):
        """Test the completion signal resolves with the task"""
        hook = Mock()
        task = Task("short", 0.05, 1, on_complete=hook)

        signal = task.start(tick_interval=TEST_TICK)
        assert task.is_running

        result = await signal
        assert result is task
        assert task.finished
        assert task.remaining == 0
        assert not task.is_running
        hook.assert_called_once_with(task)

        # Disposing a finished task changes nothing
        task.dispose()
        hook.assert_called_once()

    @pytest.mark.asyncio
    async def test_remaining_counts_down(self):
        task = Task("long", 0.5, 1)
        task.start(tick_interval=TEST_TICK)

        await asyncio.sleep(0.1)
        assert 0 < task.remaining < 0.5
        task.dispose()

    @pytest.mark.asyncio
    async def test_zero_duration_finishes(self):
        task = Task("instant", 0, 1)
        assert await task.start(tick_interval=TEST_TICK) is task

    @pytest.mark.asyncio
    async def test_start_twice_raises(self):
        task = Task("twice", 1, 1)
        task.start(tick_interval=TEST_TICK)

        with pytest.raises(AlreadyRunningError):
            task.start(tick_interval=TEST_TICK)
        task.dispose()

    @pytest.mark.asyncio
    async def test_invalid_tick_interval(self):
        task = Task("ticks", 1, 1)
        with pytest.raises(InvalidArgumentError):
            task.start(tick_interval=0)
        assert not task.started

    @pytest.mark.asyncio
    async def test_settle_runs_before_hook_and_waiters(self):
        """Test bookkeeping happens before the hook and before waiters resume"""
        order = []
        task = Task("ordered", 0.02, 1, on_complete=lambda t: order.append("hook"))

        signal = task.start(tick_interval=TEST_TICK, on_settled=lambda t: order.append("settled"))
        await signal
        order.append("awaited")

        assert order == ["settled", "hook", "awaited"]

    @pytest.mark.asyncio
    async def test_hook_error_is_logged_not_raised(self, caplog):
        """Test a failing completion hook does not break completion"""
        settled = Mock()
        task = Task("faulty", 0.02, 1, on_complete=Mock(side_effect=RuntimeError("boom")))

        with caplog.at_level(logging.ERROR, logger="lads.core.task"):
            result = await task.start(tick_interval=TEST_TICK, on_settled=settled)

        assert result is task
        settled.assert_called_once_with(task)
        assert "boom" in caplog.text

    @pytest.mark.asyncio
    async def test_dispose_stops_without_hook(self):
        """Test disposal resolves the signal with an error and skips the hook"""
        hook = Mock()
        settled = Mock()
        task = Task("stopped", 10, 1, on_complete=hook)
        signal = task.start(tick_interval=TEST_TICK, on_settled=settled)

        task.dispose()
        task.dispose()

        with pytest.raises(TaskStoppedError) as exc_info:
            await signal
        assert "stopped prematurely" in str(exc_info.value)
        assert not task.is_running
        assert not task.finished
        hook.assert_not_called()
        settled.assert_called_once_with(task)

    @pytest.mark.asyncio
    async def test_snapshot(self):
        task = Task("snap", 1, 3, task_class=NodeClass.NETWORK)
        task.start(tick_interval=TEST_TICK)

        snapshot = task.snapshot()
        assert snapshot.name == "snap"
        assert snapshot.cpu_cores == 3
        assert snapshot.task_class == NodeClass.NETWORK
        assert snapshot.is_running is True
        assert snapshot.to_dict()["task_class"] == "network"
        task.dispose()
