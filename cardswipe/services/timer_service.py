"""
TimerService - Single-shot delayed callbacks for the interdigit timeout.
"""

import heapq
import itertools
from typing import Callable, Dict, Optional, Set, Tuple

from PyQt5.QtCore import QObject, QTimer


class QtTimerService:
    """
    Timer service backed by single-shot QTimers.

    Requires a running Qt event loop for callbacks to fire.
    """

    def __init__(self, parent: Optional[QObject] = None):
        """
        Initialize the timer service.

        Args:
            parent: Optional QObject that owns the created timers
        """
        self._parent = parent
        # Strong references so timers without a parent are not collected
        self._timers: Set[QTimer] = set()

    def schedule(self, delay_ms: int, callback: Callable[[], None]) -> QTimer:
        timer = QTimer(self._parent)
        timer.setSingleShot(True)
        timer.timeout.connect(lambda: self._on_fired(timer, callback))
        self._timers.add(timer)
        timer.start(int(delay_ms))
        return timer

    def cancel(self, handle: Optional[QTimer]) -> None:
        if handle is None or handle not in self._timers:
            return
        handle.stop()
        self._release(handle)

    @property
    def active_count(self) -> int:
        """Number of timers scheduled and not yet fired or cancelled."""
        return len(self._timers)

    def _on_fired(self, timer: QTimer, callback: Callable[[], None]) -> None:
        self._release(timer)
        callback()

    def _release(self, timer: QTimer) -> None:
        self._timers.discard(timer)
        timer.deleteLater()


class MockTimerService:
    """
    Mock TimerService for testing.

    Runs on a virtual clock; callbacks fire synchronously when the clock
    is advanced past their due time.
    """

    def __init__(self):
        self._now_ms = 0
        self._ids = itertools.count(1)
        self._pending: Dict[int, Tuple[int, Callable[[], None]]] = {}

    def schedule(self, delay_ms: int, callback: Callable[[], None]) -> int:
        handle = next(self._ids)
        self._pending[handle] = (self._now_ms + int(delay_ms), callback)
        return handle

    def cancel(self, handle: Optional[int]) -> None:
        if handle is not None:
            self._pending.pop(handle, None)

    def advance(self, delay_ms: int) -> int:
        """
        Move the clock forward, firing every callback that comes due.

        Returns:
            Number of callbacks fired
        """
        target = self._now_ms + int(delay_ms)
        fired = 0
        while True:
            due = [(when, handle) for handle, (when, _) in self._pending.items() if when <= target]
            if not due:
                break
            when, handle = heapq.nsmallest(1, due)[0]
            _, callback = self._pending.pop(handle)
            self._now_ms = when
            callback()
            fired += 1
        self._now_ms = target
        return fired

    def fire_pending(self) -> int:
        """Fire everything currently scheduled, in due order."""
        if not self._pending:
            return 0
        latest = max(when for when, _ in self._pending.values())
        return self.advance(latest - self._now_ms)

    def is_pending(self, handle: int) -> bool:
        return handle in self._pending

    @property
    def pending_count(self) -> int:
        return len(self._pending)

    @property
    def now_ms(self) -> int:
        return self._now_ms
