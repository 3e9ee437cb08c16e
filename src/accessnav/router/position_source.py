# position_source.py
# Cancellable push stream of position fixes.
# The device side calls push()/fail(); the monitor iterates.

import queue
import threading
from typing import Iterator, Optional, Union

from .errors import GeolocationError
from .models import PositionFix

_CLOSED = object()


class PositionStream:
    """
    Queue-backed subscription to a live position source.

    Iterating yields PositionFix objects as they arrive and None every
    idle_tick_s seconds without one, so the consumer can run its
    watchdog. A pushed GeolocationError is raised from the iterator.
    close() ends iteration once the fixes already queued are drained;
    anything pushed after close() is ignored.

    Args:
        idle_tick_s: Seconds to wait for a fix before yielding None.
    """

    def __init__(self, idle_tick_s: float = 1.0) -> None:
        self.idle_tick_s = idle_tick_s
        self._queue: "queue.Queue[Union[PositionFix, GeolocationError, object]]" = queue.Queue()
        self._closed = threading.Event()

    @property
    def closed(self) -> bool:
        return self._closed.is_set()

    def push(self, fix: PositionFix) -> None:
        if not self.closed:
            self._queue.put(fix)

    def fail(self, error: GeolocationError) -> None:
        if not self.closed:
            self._queue.put(error)

    def close(self) -> None:
        """Cancel the subscription and wake any waiting consumer."""
        if not self.closed:
            self._closed.set()
            self._queue.put(_CLOSED)

    def __iter__(self) -> Iterator[Optional[PositionFix]]:
        while True:
            try:
                item = self._queue.get(timeout=self.idle_tick_s)
            except queue.Empty:
                yield None
                continue
            if item is _CLOSED:
                break
            if isinstance(item, GeolocationError):
                raise item
            yield item
