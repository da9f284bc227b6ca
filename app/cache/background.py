"""
Supervised background work for writes that must not block a response.

Cache population, hit counting and usage recording all leave the request
path through a BackgroundWriter. Tasks may retry with exponential backoff,
and a task that finally fails is always logged.
"""
import logging
import threading
from concurrent.futures import Future, ThreadPoolExecutor, wait
from typing import Any, Callable, Dict, Optional, Set

from tenacity import (
    RetryError,
    Retrying,
    retry_if_exception_type,
    retry_if_result,
    stop_after_attempt,
    wait_exponential,
)

from config.settings import settings

logger = logging.getLogger("cache.background")


def _is_failure(result: Any) -> bool:
    return result is False


class BackgroundWriter:
    """
    Thread pool for fire-and-forget writes with bounded retry.

    A task "fails" if it raises or returns False (the convention used by
    CacheStore.put and CacheStore.record_hit).

    Usage:
        writer = BackgroundWriter(max_workers=4)
        writer.submit("cache-put", store.put, key, payload, ttl)
    """

    def __init__(
        self,
        max_workers: int = 4,
        max_attempts: int = 3,
        backoff_seconds: float = 0.5,
    ):
        """
        Initialize the writer.

        Args:
            max_workers: Thread pool size
            max_attempts: Attempts per retried task, including the first
            backoff_seconds: Base delay for exponential backoff between attempts
        """
        self._pool = ThreadPoolExecutor(
            max_workers=max_workers,
            thread_name_prefix="gateway-bg",
        )
        self._max_attempts = max(1, max_attempts)
        self._backoff = backoff_seconds
        self._pending: Set[Future] = set()
        self._lock = threading.Lock()
        self._stats = {"submitted": 0, "succeeded": 0, "failed": 0}

    def submit(self, name: str, fn: Callable[..., Any], *args: Any, retry: bool = True) -> Future:
        """
        Schedule fn(*args) without waiting for it.

        Args:
            name: Label used in logs
            fn: Callable to run
            retry: Retry on failure with exponential backoff
        """
        future = self._pool.submit(self._run, name, fn, args, retry)
        with self._lock:
            self._stats["submitted"] += 1
            self._pending.add(future)
        future.add_done_callback(self._discard)
        return future

    def _discard(self, future: Future) -> None:
        with self._lock:
            self._pending.discard(future)

    def _run(self, name: str, fn: Callable[..., Any], args: tuple, retry: bool) -> bool:
        attempts = self._max_attempts if retry else 1
        retrying = Retrying(
            stop=stop_after_attempt(attempts),
            wait=wait_exponential(multiplier=self._backoff, max=self._backoff * 8),
            retry=retry_if_exception_type(Exception) | retry_if_result(_is_failure),
        )
        try:
            retrying(fn, *args)
        except RetryError as e:
            last = e.last_attempt
            reason = last.exception() if last.failed else "returned failure"
            logger.error(
                f"Background task {name} failed after {last.attempt_number} attempt(s): {reason}"
            )
            self._count("failed")
            return False

        self._count("succeeded")
        return True

    def _count(self, outcome: str) -> None:
        with self._lock:
            self._stats[outcome] += 1

    def wait_idle(self, timeout: Optional[float] = None) -> bool:
        """
        Block until every submitted task has finished.

        Returns:
            True if the queue drained within timeout
        """
        with self._lock:
            pending = list(self._pending)
        if not pending:
            return True
        _, not_done = wait(pending, timeout=timeout)
        return not not_done

    def shutdown(self, wait: bool = True) -> None:
        self._pool.shutdown(wait=wait)

    def get_stats(self) -> Dict[str, Any]:
        with self._lock:
            return dict(self._stats, pending=len(self._pending))


# Global background writer instance
_background_writer: Optional[BackgroundWriter] = None


def get_background_writer() -> BackgroundWriter:
    """Get or create the global background writer."""
    global _background_writer
    if _background_writer is None:
        _background_writer = BackgroundWriter(
            max_workers=settings.background_workers,
            max_attempts=settings.background_max_attempts,
        )
    return _background_writer


def shutdown_background_writer(wait: bool = True) -> None:
    """Drain and discard the global writer; the next get creates a fresh one."""
    global _background_writer
    writer, _background_writer = _background_writer, None
    if writer is not None:
        writer.shutdown(wait=wait)
