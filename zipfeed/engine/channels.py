"""Queues connecting the crawler, the workers and the orchestrator."""

from __future__ import annotations

import queue
from collections import deque
from dataclasses import dataclass
from enum import Enum
from threading import Condition, Event

from ..errors import PipelineError


class SignalKind(str, Enum):
    DONE = "done"
    FAILED = "failed"


@dataclass(slots=True)
class Signal:
    kind: SignalKind
    error: PipelineError | None = None


class LinkChannel:
    """Bounded hand-off of links whose blocking calls honour a stop token.

    With ``maxsize=0`` the channel is unbuffered: ``put`` returns only once a
    worker has taken the link. A positive ``maxsize`` buffers that many links.
    """

    def __init__(self, stop: Event, maxsize: int = 0, poll_interval: float = 0.5) -> None:
        if maxsize < 0:
            raise ValueError("maxsize must be >= 0")
        self.stop = stop
        self.maxsize = maxsize
        self.poll_interval = poll_interval
        self._items: deque[str] = deque()
        self._cond = Condition()
        self._enqueued = 0
        self._taken = 0
        self._unfinished = 0

    def put(self, link: str) -> bool:
        """Block until ``link`` is accepted; ``False`` if stopped first."""

        with self._cond:
            while len(self._items) >= max(self.maxsize, 1):
                if self.stop.is_set():
                    return False
                self._cond.wait(self.poll_interval)
            if self.stop.is_set():
                return False
            self._items.append(link)
            self._enqueued += 1
            self._unfinished += 1
            ticket = self._enqueued
            self._cond.notify_all()
            if self.maxsize:
                return True
            while self._taken < ticket:
                if self.stop.is_set():
                    # Nobody took it; withdraw so it is not counted as pending.
                    self._items.pop()
                    self._enqueued -= 1
                    self._unfinished -= 1
                    return False
                self._cond.wait(self.poll_interval)
            return True

    def get(self) -> str | None:
        """Block for the next link; ``None`` once the stop token is set."""

        with self._cond:
            while True:
                if self.stop.is_set():
                    return None
                if self._items:
                    link = self._items.popleft()
                    self._taken += 1
                    self._cond.notify_all()
                    return link
                self._cond.wait(self.poll_interval)

    def task_done(self) -> None:
        with self._cond:
            self._unfinished -= 1
            self._cond.notify_all()

    @property
    def pending(self) -> int:
        """Links put on the channel and not yet marked handled."""

        with self._cond:
            return self._unfinished


class SignalChannel:
    """Completion and failure reports flowing up to the orchestrator."""

    def __init__(self) -> None:
        self._queue: queue.Queue[Signal] = queue.Queue()

    def done(self) -> None:
        self._queue.put(Signal(SignalKind.DONE))

    def fail(self, error: PipelineError) -> None:
        self._queue.put(Signal(SignalKind.FAILED, error))

    def get(self, timeout: float | None = None) -> Signal | None:
        try:
            return self._queue.get(timeout=timeout)
        except queue.Empty:
            return None


__all__ = ["LinkChannel", "Signal", "SignalChannel", "SignalKind"]
