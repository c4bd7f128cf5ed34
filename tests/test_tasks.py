"""
Tests for the background matching queue.
"""
import asyncio
import logging

import pytest

from jobboard.tasks import MatchingQueue


@pytest.mark.asyncio
async def test_join_waits_for_submitted_tasks():
    queue = MatchingQueue()
    finished = []

    async def work(tag):
        await asyncio.sleep(0.01)
        finished.append(tag)

    queue.submit("one", work(1))
    queue.submit("two", work(2))
    assert queue.pending == 2

    await queue.join()

    assert sorted(finished) == [1, 2]
    assert queue.pending == 0


@pytest.mark.asyncio
async def test_failed_task_is_logged_not_raised(caplog):
    queue = MatchingQueue()

    async def boom():
        raise RuntimeError("matching crashed")

    with caplog.at_level(logging.ERROR, logger="jobboard.tasks"):
        task = queue.submit("boom", boom())
        await queue.join()

    assert task.done()
    assert queue.pending == 0
    assert "matching crashed" in caplog.text


@pytest.mark.asyncio
async def test_join_covers_tasks_submitted_while_running():
    queue = MatchingQueue()
    finished = []

    async def child():
        finished.append("child")

    async def parent():
        await asyncio.sleep(0)
        queue.submit("child", child())
        finished.append("parent")

    queue.submit("parent", parent())
    await queue.join()

    assert finished == ["parent", "child"]


@pytest.mark.asyncio
async def test_join_on_empty_queue_returns():
    await MatchingQueue().join()
