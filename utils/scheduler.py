"""
Display-refresh frame scheduler.

Behaves like a browser's requestAnimationFrame: callbacks requested now run
on the *next* refresh, each at most once, and a pending callback can be
cancelled until it fires. The host decides what a refresh is:

    - OpenCV demo: one pass of the imshow/waitKey loop
    - Streamlit WebRTC: one recv() call per incoming video frame
    - tests: explicit run_pending() calls
"""

from __future__ import annotations

import threading
import time
from typing import Callable, Dict, Optional

FrameCallback = Callable[[float], None]


class FrameScheduler:
    """Queue of one-shot callbacks fired by run_pending()."""

    def __init__(self, clock: Callable[[], float] = time.monotonic):
        self._clock = clock
        self._lock = threading.Lock()
        self._queue: Dict[int, FrameCallback] = {}
        self._next_handle = 1

    def request(self, callback: FrameCallback) -> int:
        with self._lock:
            handle = self._next_handle
            self._next_handle += 1
            self._queue[handle] = callback
        return handle

    def cancel(self, handle: Optional[int]) -> None:
        if handle is None:
            return
        with self._lock:
            self._queue.pop(handle, None)

    @property
    def pending(self) -> int:
        with self._lock:
            return len(self._queue)

    def now_ms(self) -> float:
        return self._clock() * 1000.0

    def run_pending(self, now_ms: Optional[float] = None) -> int:
        """
        Fire every callback queued before this call.

        Callbacks requested while this refresh runs wait for the next one.
        Returns the number of callbacks fired.
        """
        if now_ms is None:
            now_ms = self.now_ms()
        with self._lock:
            handles = list(self._queue.keys())

        fired = 0
        for handle in handles:
            with self._lock:
                callback = self._queue.pop(handle, None)
            if callback is None:
                continue  # cancelled by an earlier callback in this refresh
            callback(now_ms)
            fired += 1
        return fired
