# backend/linklian/services/imports/batching.py

import asyncio
from typing import Awaitable, Callable, List, Sequence, TypeVar

T = TypeVar("T")
R = TypeVar("R")


def chunk(items: Sequence[T], size: int) -> List[List[T]]:
    """Split ``items`` into consecutive batches of at most ``size`` elements."""
    if size < 1:
        raise ValueError("batch size must be at least 1")
    return [list(items[i : i + size]) for i in range(0, len(items), size)]


async def process_batches_parallel(
    batches: Sequence[List[T]],
    processor: Callable[[List[T]], Awaitable[List[R]]],
    max_concurrent: int,
) -> List[R]:
    """
    Run ``processor`` over ``batches``, ``max_concurrent`` at a time.

    Each window of batches is started together and awaited as a barrier
    before the next window starts. Results are flattened window by window;
    callers that need input order must re-sort by their own row index.
    """
    if max_concurrent < 1:
        raise ValueError("max_concurrent must be at least 1")

    results: List[R] = []
    for start in range(0, len(batches), max_concurrent):
        window = batches[start : start + max_concurrent]
        window_results = await asyncio.gather(*(processor(batch) for batch in window))
        for batch_result in window_results:
            results.extend(batch_result)
    return results
