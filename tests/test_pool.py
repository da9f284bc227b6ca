"""
Bounded-concurrency pool tests
"""
import random
import threading
import time

import pytest

from app.utils.pool import PoolFailure, is_failure, run_pool


@pytest.mark.parametrize("concurrency", [1, 2, 3, 8, 20])
def test_results_keep_input_order(concurrency):
    items = list(range(20))

    def worker(n):
        time.sleep(random.uniform(0, 0.005))
        return n * n

    assert run_pool(items, concurrency, worker) == [n * n for n in items]


@pytest.mark.parametrize("failing_index", [0, 7, 19])
def test_single_failure_is_isolated(failing_index):
    items = list(range(20))

    def worker(n):
        if n == failing_index:
            raise RuntimeError("boom")
        return n + 100

    results = run_pool(items, 4, worker)

    assert len(results) == len(items)
    failure = results[failing_index]
    assert is_failure(failure)
    assert isinstance(failure, PoolFailure)
    assert failure.index == failing_index
    assert failure.item == failing_index
    assert str(failure.error) == "boom"
    for index, result in enumerate(results):
        if index != failing_index:
            assert result == index + 100


def test_in_flight_calls_never_exceed_concurrency():
    lock = threading.Lock()
    state = {"active": 0, "peak": 0}

    def worker(n):
        with lock:
            state["active"] += 1
            state["peak"] = max(state["peak"], state["active"])
        time.sleep(0.01)
        with lock:
            state["active"] -= 1
        return n

    run_pool(list(range(30)), 3, worker)
    assert 1 <= state["peak"] <= 3


def test_each_item_processed_exactly_once():
    seen = []
    lock = threading.Lock()

    def worker(n):
        with lock:
            seen.append(n)
        return n

    run_pool(list(range(50)), 8, worker)
    assert sorted(seen) == list(range(50))


def test_empty_input():
    assert run_pool([], 4, lambda n: n) == []


def test_invalid_concurrency():
    with pytest.raises(ValueError):
        run_pool([1, 2], 0, lambda n: n)
