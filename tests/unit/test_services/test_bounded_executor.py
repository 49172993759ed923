"""Unit tests for the semaphore-gated async map."""

import asyncio

import pytest

from kb_assist.api.services.bounded_executor import map_limit


@pytest.mark.asyncio
async def test_results_follow_input_order_when_workers_finish_in_reverse():
    async def _worker(item, index):
        # Later items finish first
        await asyncio.sleep(0.01 * (5 - index))
        return item * 10

    results = await map_limit([1, 2, 3, 4, 5], 5, _worker)

    assert results == [10, 20, 30, 40, 50]


@pytest.mark.asyncio
@pytest.mark.parametrize("limit,count", [(1, 5), (2, 7), (3, 3), (4, 20)])
async def test_active_workers_never_exceed_limit(limit, count):
    active = 0
    peak = 0

    async def _worker(item, index):
        nonlocal active, peak
        active += 1
        peak = max(peak, active)
        await asyncio.sleep(0.001 * ((index * 7) % 5))
        active -= 1
        return index

    results = await map_limit(list(range(count)), limit, _worker)

    assert results == list(range(count))
    assert peak <= limit
    assert peak == min(limit, count)


@pytest.mark.asyncio
async def test_empty_input_returns_empty_list():
    async def _worker(item, index):
        raise AssertionError("not called")

    assert await map_limit([], 3, _worker) == []


@pytest.mark.asyncio
async def test_limit_below_one_rejected():
    async def _worker(item, index):
        return item

    with pytest.raises(ValueError):
        await map_limit([1], 0, _worker)


@pytest.mark.asyncio
async def test_first_failure_fails_whole_call_and_skips_unstarted_items():
    started = []

    async def _worker(item, index):
        started.append(index)
        await asyncio.sleep(0)
        if index == 1:
            raise RuntimeError("boom")
        await asyncio.sleep(0.01)
        return index

    with pytest.raises(RuntimeError, match="boom"):
        await map_limit(list(range(10)), 2, _worker)
    # Let the in-flight worker finish in the background
    await asyncio.sleep(0.05)

    assert 0 in started and 1 in started
    assert len(started) < 10
