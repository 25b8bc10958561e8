"""
scheduling.py

Main-loop helpers that keep the viewer single threaded:

- RedrawScheduler: dirty flag consumed once per tick (many requests, one frame)
- Debouncer:       fires a callback once input has been quiet for a delay
- Inbox:           thread-safe queue of completions, drained on the main thread
"""

import queue
import time
from typing import Callable, Optional, Set


class RedrawScheduler:
    def __init__(self):
        self._dirty = True
        self.reasons: Set[str] = set()
        self.frames = 0

    def request(self, reason: str = "state"):
        self._dirty = True
        self.reasons.add(reason)

    @property
    def pending(self) -> bool:
        return self._dirty

    def consume(self) -> bool:
        """True (once) when a redraw was requested since the last call."""
        if not self._dirty:
            return False
        self._dirty = False
        self.reasons.clear()
        self.frames += 1
        return True


class Debouncer:
    """One pending callback at a time; scheduling again replaces the pending one."""

    def __init__(self, delay_seconds: float, clock: Callable[[], float] = time.monotonic):
        self.delay = delay_seconds
        self.clock = clock
        self._token = 0
        self._deadline: Optional[float] = None
        self._callback: Optional[Callable[[], None]] = None

    @property
    def token(self) -> int:
        return self._token

    @property
    def pending(self) -> bool:
        return self._callback is not None

    def schedule(self, callback: Callable[[], None]) -> int:
        self._token += 1
        self._deadline = self.clock() + self.delay
        self._callback = callback
        return self._token

    def cancel(self):
        self._token += 1
        self._deadline = None
        self._callback = None

    def poll(self) -> bool:
        """Run the pending callback if its delay has elapsed; returns True if it ran."""
        if self._callback is None or self.clock() < self._deadline:
            return False
        callback = self._callback
        self._callback = None
        self._deadline = None
        callback()
        return True


class Inbox:
    """Completions posted from worker threads, run on the main thread by ``drain``."""

    def __init__(self):
        self._queue: "queue.SimpleQueue[Callable[[], None]]" = queue.SimpleQueue()

    def post(self, callback: Callable[[], None]):
        self._queue.put(callback)

    def drain(self) -> int:
        ran = 0
        while True:
            try:
                callback = self._queue.get_nowait()
            except queue.Empty:
                return ran
            callback()
            ran += 1
