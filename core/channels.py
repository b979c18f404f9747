"""
channels.py — Delivery channels from the engine to its consumers.

``LatestSlot``  holds a single value; a new ``put`` overwrites an unread one,
                so a slow reader skips intermediate snapshots instead of
                stalling the engine.
``EventStream`` is an unbounded FIFO for milestone events, none of which
                may be dropped.

Neither ``put`` ever blocks.  Both are closed by the engine on ``stop()``,
which ends any iteration over them.
"""
from __future__ import annotations

import queue
import threading
from typing import Generic, Iterator, Optional, TypeVar

T = TypeVar("T")

_CLOSED = object()


class LatestSlot(Generic[T]):
    """Capacity-1, latest-wins slot."""

    def __init__(self) -> None:
        self._cond = threading.Condition()
        self._value: Optional[T] = None
        self._version = 0
        self._seen = 0
        self._closed = False

    def put(self, value: T) -> None:
        with self._cond:
            if self._closed:
                return
            self._value = value
            self._version += 1
            self._cond.notify_all()

    def get(self, timeout: Optional[float] = None) -> Optional[T]:
        """Return the newest unread value, or None on timeout or close."""
        with self._cond:
            self._cond.wait_for(lambda: self._closed or self._version != self._seen, timeout)
            if self._version == self._seen:
                return None
            self._seen = self._version
            return self._value

    def close(self) -> None:
        with self._cond:
            self._closed = True
            self._cond.notify_all()

    @property
    def closed(self) -> bool:
        return self._closed

    def __iter__(self) -> Iterator[T]:
        while True:
            value = self.get()
            if value is None:
                return
            yield value


class EventStream(Generic[T]):
    """Unbounded FIFO of events."""

    def __init__(self) -> None:
        self._queue: "queue.Queue[object]" = queue.Queue()
        self._closed = False

    def put(self, event: T) -> None:
        if not self._closed:
            self._queue.put_nowait(event)

    def get(self, timeout: Optional[float] = None) -> Optional[T]:
        """Return the next event, or None on timeout or once closed and drained."""
        try:
            item = self._queue.get(timeout=timeout)
        except queue.Empty:
            return None
        if item is _CLOSED:
            # leave the marker for other readers
            self._queue.put_nowait(_CLOSED)
            return None
        return item  # type: ignore[return-value]

    def close(self) -> None:
        if not self._closed:
            self._closed = True
            self._queue.put_nowait(_CLOSED)

    @property
    def closed(self) -> bool:
        return self._closed

    def __iter__(self) -> Iterator[T]:
        while True:
            event = self.get()
            if event is None:
                return
            yield event
