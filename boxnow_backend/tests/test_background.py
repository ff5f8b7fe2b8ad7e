"""
Tests for the detached background task runner.
"""
import asyncio

import pytest

from app.core.background import BackgroundTaskRunner


@pytest.mark.asyncio
async def test_submit_does_not_wait_for_task(runner):
    started = asyncio.Event()
    release = asyncio.Event()

    async def job():
        started.set()
        await release.wait()

    task = runner.submit("job", job)
    assert runner.pending == 1

    await started.wait()
    release.set()
    await runner.drain()

    assert task.done()
    assert runner.pending == 0
    assert runner.completed == 1


@pytest.mark.asyncio
async def test_failures_stay_inside_the_boundary(runner):
    async def explode():
        raise RuntimeError("smtp down")

    task = runner.submit("explode", explode)
    await runner.drain()

    assert task.exception() is None
    assert runner.failed == 1


@pytest.mark.asyncio
async def test_drain_cancels_stragglers(runner):
    async def forever():
        await asyncio.sleep(3600)

    task = runner.submit("forever", forever)
    await runner.drain(timeout=0.01)

    assert task.cancelled()
    assert runner.pending == 0


def test_submit_without_running_loop_is_refused():
    runner = BackgroundTaskRunner()

    async def job():
        return None

    assert runner.submit("job", job) is None
    assert runner.pending == 0
