"""Semaphore-gated async map with ordered results."""

from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable, List, Optional, Sequence, Set, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")
R = TypeVar("R")

# Strong references for invocations still running after their batch failed
_orphaned_tasks: Set[asyncio.Task] = set()


def _forget_orphan(task: asyncio.Task) -> None:
    _orphaned_tasks.discard(task)
    if not task.cancelled() and task.exception() is not None:
        logger.debug("Discarded late failure from abandoned task: %s", task.exception())


async def map_limit(
    items: Sequence[T],
    limit: int,
    worker: Callable[[T, int], Awaitable[R]],
) -> List[R]:
    """
    Run ``worker(item, index)`` for every item with at most ``limit`` active.

    Results are returned in input order. The first failure fails the whole
    call: items not yet started are skipped, invocations already running
    finish in the background and their results are discarded.

    Raises:
        ValueError: If ``limit`` < 1
    """
    if limit < 1:
        raise ValueError(f"limit must be >= 1, got {limit}")

    items = list(items)
    if not items:
        return []

    results: List[Optional[R]] = [None] * len(items)
    semaphore = asyncio.Semaphore(limit)
    failed = asyncio.Event()

    async def _run(index: int, item: T) -> None:
        async with semaphore:
            if failed.is_set():
                return
            try:
                results[index] = await worker(item, index)
            except BaseException:
                failed.set()
                raise

    tasks = [asyncio.create_task(_run(index, item)) for index, item in enumerate(items)]
    done, pending = await asyncio.wait(tasks, return_when=asyncio.FIRST_EXCEPTION)

    for task in tasks:
        if task in done and not task.cancelled() and task.exception() is not None:
            for leftover in pending:
                _orphaned_tasks.add(leftover)
                leftover.add_done_callback(_forget_orphan)
            # Collect sibling failures so none is reported as unretrieved
            for other in done:
                if other is not task and not other.cancelled():
                    other.exception()
            raise task.exception()

    return list(results)  # type: ignore[arg-type]
