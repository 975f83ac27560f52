"""Thread pool running the crawler and download worker loops."""

from __future__ import annotations

from concurrent.futures import Future, ThreadPoolExecutor
from threading import Lock
from typing import Any, Callable


class ThreadPoolManager:
    """Fixed-size executor whose tasks are long-running loops."""

    def __init__(self, max_workers: int, thread_name_prefix: str = "zipfeed") -> None:
        self.max_workers = max_workers
        self._executor = ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix=thread_name_prefix)
        self._futures: dict[str, Future[Any]] = {}
        self._lock = Lock()

    def submit(self, name: str, fn: Callable[..., Any], *args: Any) -> Future[Any]:
        with self._lock:
            if len(self._futures) >= self.max_workers:
                raise RuntimeError(f"pool is full ({self.max_workers} tasks), cannot start {name!r}")
            if name in self._futures:
                raise ValueError(f"task {name!r} already started")
            future = self._executor.submit(fn, *args)
            self._futures[name] = future
            return future

    def running(self) -> list[str]:
        with self._lock:
            return [name for name, future in self._futures.items() if not future.done()]

    def failures(self) -> list[tuple[str, BaseException]]:
        """Tasks that ended by raising instead of returning."""

        with self._lock:
            finished = [(name, future) for name, future in self._futures.items() if future.done()]
        crashed = []
        for name, future in finished:
            if future.cancelled():
                continue
            exc = future.exception()
            if exc is not None:
                crashed.append((name, exc))
        return crashed

    def shutdown(self, wait: bool = True) -> None:
        self._executor.shutdown(wait=wait, cancel_futures=True)
        with self._lock:
            self._futures.clear()


__all__ = ["ThreadPoolManager"]
