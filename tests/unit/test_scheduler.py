"""Tests for the background job scheduler."""

import asyncio

import pytest

from devtodo.scheduler import Scheduler


def _counter():
    calls = []

    async def job():
        calls.append(1)
        return len(calls)

    return job, calls


@pytest.mark.asyncio
async def test_run_now_returns_job_result():
    scheduler = Scheduler()
    job, calls = _counter()
    handle = scheduler.register("count", job, interval=60)

    assert await scheduler.run_now("count") == 1
    assert handle.runs == 1
    assert not handle.active


@pytest.mark.asyncio
async def test_failures_are_counted_not_raised():
    scheduler = Scheduler()

    async def broken():
        raise RuntimeError("transcripts unavailable")

    handle = scheduler.register("broken", broken, interval=60)

    assert await scheduler.run_now("broken") is None
    assert handle.failures == 1


def test_duplicate_registration():
    scheduler = Scheduler()
    job, _ = _counter()
    scheduler.register("count", job, interval=60)

    with pytest.raises(ValueError):
        scheduler.register("count", job, interval=60)


@pytest.mark.asyncio
async def test_schedule_runs_repeatedly_until_cancelled():
    scheduler = Scheduler()
    job, calls = _counter()

    handle = scheduler.schedule("count", job, interval=0.01)
    await asyncio.sleep(0.1)
    handle.cancel()
    await asyncio.sleep(0)
    runs = len(calls)
    await asyncio.sleep(0.05)

    assert runs >= 2
    assert len(calls) == runs
    assert not handle.active


@pytest.mark.asyncio
async def test_failing_job_keeps_its_schedule():
    scheduler = Scheduler()
    attempts = []

    async def flaky():
        attempts.append(1)
        raise RuntimeError("boom")

    handle = scheduler.schedule("flaky", flaky, interval=0.01)
    await asyncio.sleep(0.1)
    await scheduler.shutdown()

    assert handle.failures >= 2
    assert handle.failures == len(attempts)


@pytest.mark.asyncio
async def test_initial_delay():
    scheduler = Scheduler()
    job, calls = _counter()

    scheduler.schedule("count", job, interval=60, initial_delay=10)
    await asyncio.sleep(0.05)

    assert calls == []
    await scheduler.shutdown()


@pytest.mark.asyncio
async def test_start_is_idempotent():
    scheduler = Scheduler()
    job, _ = _counter()
    scheduler.register("count", job, interval=60, initial_delay=10)

    first = scheduler.start("count")._task
    second = scheduler.start("count")._task

    assert first is second
    await scheduler.shutdown()


@pytest.mark.asyncio
async def test_fire_returns_immediately():
    scheduler = Scheduler()
    started = asyncio.Event()
    release = asyncio.Event()

    async def slow():
        started.set()
        await release.wait()
        return "done"

    scheduler.register("slow", slow, interval=60)

    task = scheduler.fire("slow")
    await started.wait()
    assert not task.done()

    release.set()
    await scheduler.wait_idle()
    assert task.result() == "done"


@pytest.mark.asyncio
async def test_shutdown_cancels_everything():
    scheduler = Scheduler()
    job, _ = _counter()

    async def forever():
        await asyncio.sleep(3600)

    scheduler.register("forever", forever, interval=60)
    handle = scheduler.schedule("count", job, interval=60, initial_delay=10)
    oneshot = scheduler.fire("forever")

    await scheduler.shutdown()

    assert not handle.active
    assert oneshot.cancelled()
    assert scheduler.get("count") is handle
    assert scheduler.get("missing") is None
