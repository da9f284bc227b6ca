"""
Bounded-concurrency fan-out that preserves input order.
"""
import logging
import threading
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import Any, Callable, List, Sequence, TypeVar

logger = logging.getLogger("utils.pool")

T = TypeVar("T")
R = TypeVar("R")


@dataclass
class PoolFailure:
    """Sentinel stored in the output slot of an item whose worker raised."""
    index: int
    item: Any
    error: BaseException


def is_failure(result: Any) -> bool:
    return isinstance(result, PoolFailure)


def run_pool(
    items: Sequence[T],
    concurrency: int,
    worker: Callable[[T], R],
) -> List[Any]:
    """
    Run worker over items with at most `concurrency` calls in flight.

    Exactly `concurrency` workers share one claim cursor. Each claims the next
    unclaimed index under a lock, so no index is processed twice, and writes
    its result into that index's slot. A worker exception is caught and
    stored as a PoolFailure for that slot only.

    Args:
        items: Ordered input
        concurrency: Number of workers (>= 1)
        worker: Function applied to each item

    Returns:
        Results (or PoolFailure sentinels) in the same order as items
    """
    if concurrency < 1:
        raise ValueError(f"concurrency must be >= 1, got {concurrency}")

    items = list(items)
    if not items:
        return []

    results: List[Any] = [None] * len(items)
    cursor = {"next": 0}
    cursor_lock = threading.Lock()

    def claim() -> int:
        with cursor_lock:
            index = cursor["next"]
            if index >= len(items):
                return -1
            cursor["next"] = index + 1
            return index

    def drain() -> None:
        while True:
            index = claim()
            if index < 0:
                return
            item = items[index]
            try:
                results[index] = worker(item)
            except Exception as e:
                logger.warning(f"Pool item {index} ({item!r}) failed: {e}")
                results[index] = PoolFailure(index=index, item=item, error=e)

    with ThreadPoolExecutor(max_workers=concurrency, thread_name_prefix="pool") as executor:
        workers = [executor.submit(drain) for _ in range(concurrency)]
        for future in workers:
            future.result()

    return results
