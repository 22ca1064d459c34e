# backend/linklian/tests/unit/test_batching.py

import asyncio

import pytest

from linklian.services.imports.batching import chunk, process_batches_parallel


def test_chunk_splits_in_order_with_short_tail():
    assert chunk(list(range(7)), 3) == [[0, 1, 2], [3, 4, 5], [6]]


def test_chunk_of_empty_list_is_empty():
    assert chunk([], 50) == []


@pytest.mark.parametrize("size", [0, -1])
def test_chunk_rejects_non_positive_size(size):
    with pytest.raises(ValueError):
        chunk([1, 2, 3], size)


async def test_process_batches_parallel_flattens_in_window_order():
    async def double(batch):
        # later batches finish first
        await asyncio.sleep(0.001 * (10 - batch[0]))
        return [item * 2 for item in batch]

    result = await process_batches_parallel(chunk(list(range(10)), 2), double, 3)

    assert result == [item * 2 for item in range(10)]


async def test_process_batches_parallel_limits_concurrency():
    running = 0
    peak = 0

    async def track(batch):
        nonlocal running, peak
        running += 1
        peak = max(peak, running)
        await asyncio.sleep(0.001)
        running -= 1
        return batch

    await process_batches_parallel(chunk(list(range(20)), 1), track, 4)

    assert peak == 4


async def test_process_batches_parallel_propagates_errors():
    async def boom(batch):
        raise RuntimeError("batch failed")

    with pytest.raises(RuntimeError, match="batch failed"):
        await process_batches_parallel([[1]], boom, 2)
