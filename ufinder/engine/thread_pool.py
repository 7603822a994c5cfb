"""Fixed-size worker pool with an explicit join barrier."""

from __future__ import annotations

from concurrent.futures import Future, ThreadPoolExecutor, wait
from threading import Lock
from typing import Callable, Generic, TypeVar

T = TypeVar("T")


class BoundedWorkerPool(Generic[T]):
    """Run at most ``max_workers`` tasks at once and join them in submission order."""

    def __init__(self, max_workers: int, thread_name_prefix: str = "ufinder") -> None:
        if max_workers < 1:
            raise ValueError("max_workers must be >= 1")
        self.max_workers = max_workers
        self._executor = ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix=thread_name_prefix)
        self._futures: list[Future[T]] = []
        self._lock = Lock()
        self._running = 0
        self.peak_running = 0

    @property
    def running(self) -> int:
        with self._lock:
            return self._running

    def submit(self, fn: Callable[..., T], *args, **kwargs) -> Future[T]:
        future = self._executor.submit(self._track, fn, *args, **kwargs)
        self._futures.append(future)
        return future

    def _track(self, fn: Callable[..., T], *args, **kwargs) -> T:
        with self._lock:
            self._running += 1
            self.peak_running = max(self.peak_running, self._running)
        try:
            return fn(*args, **kwargs)
        finally:
            with self._lock:
                self._running -= 1

    def join(self) -> list[Future[T]]:
        """Block until every submitted task has finished; return their futures in order."""

        futures, self._futures = self._futures, []
        wait(futures)
        return futures

    def cancel_pending(self) -> None:
        """Drop queued tasks that have not started; running ones are left alone."""

        self._executor.shutdown(wait=False, cancel_futures=True)

    def shutdown(self, cancel_pending: bool = False) -> None:
        self._executor.shutdown(wait=True, cancel_futures=cancel_pending)

    def __enter__(self) -> "BoundedWorkerPool[T]":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.shutdown(cancel_pending=exc_type is not None)


__all__ = ["BoundedWorkerPool"]
