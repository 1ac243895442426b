"""Timer and background-work helpers.

Everything the GUI layer schedules goes through a ``Dispatcher`` so that the
session state is only ever touched from one logical thread:

- ``TkDispatcher`` runs work on a daemon thread and hands the outcome back to
  the Tk event loop with ``root.after(0, ...)``.
- ``ManualDispatcher`` keeps a virtual clock. Async work runs inline (or is
  parked until ``flush_async()`` when ``defer_async=True``). Used by tests.
- ``LoopDispatcher`` drives the same timer queue from the wall clock for
  headless scripts.
"""

from __future__ import annotations

import heapq
import itertools
import logging
import threading
import time
from typing import Any, Callable, Dict, List, Optional, Tuple

logger = logging.getLogger("furnace.gui.async")

SuccessCallback = Optional[Callable[[Any], None]]
ErrorCallback = Optional[Callable[[BaseException], None]]


def _deliver_error(on_error: ErrorCallback, exc: BaseException) -> None:
    if on_error is None:
        logger.error("Background task failed: %s", exc)
        return
    on_error(exc)


class Dispatcher:
    """Scheduling interface shared by the registry and the session controller."""

    def after(self, delay_ms: int, callback: Callable[[], None]) -> Any:
        raise NotImplementedError

    def after_cancel(self, handle: Any) -> None:
        raise NotImplementedError

    def run_async(
        self,
        func: Callable[[], Any],
        on_success: SuccessCallback = None,
        on_error: ErrorCallback = None,
    ) -> None:
        raise NotImplementedError


class TkDispatcher(Dispatcher):
    """Dispatcher bound to a Tk root window."""

    def __init__(self, root):
        self.root = root

    def after(self, delay_ms: int, callback: Callable[[], None]) -> Any:
        return self.root.after(delay_ms, callback)

    def after_cancel(self, handle: Any) -> None:
        self.root.after_cancel(handle)

    def run_async(self, func, on_success=None, on_error=None) -> None:
        """Run function in background thread, report back on the Tk thread."""

        def wrapper():
            try:
                result = func()
            except Exception as exc:
                self.root.after(0, lambda e=exc: _deliver_error(on_error, e))
                return
            if on_success is not None:
                self.root.after(0, lambda cb=on_success, res=result: cb(res))

        thread = threading.Thread(target=wrapper, daemon=True)
        thread.start()


class ManualDispatcher(Dispatcher):
    """Virtual-time dispatcher.

    Timers fire only from ``advance()``; handles are plain integers.
    """

    def __init__(self, defer_async: bool = False):
        self.now_ms = 0
        self.defer_async = defer_async
        self._seq = itertools.count(1)
        self._heap: List[Tuple[int, int]] = []
        self._callbacks: Dict[int, Callable[[], None]] = {}
        self._pending: List[Tuple[Callable[[], Any], SuccessCallback, ErrorCallback]] = []

    # -------------------- timers --------------------
    def after(self, delay_ms: int, callback: Callable[[], None]) -> int:
        handle = next(self._seq)
        self._callbacks[handle] = callback
        heapq.heappush(self._heap, (self._clock() + max(0, int(delay_ms)), handle))
        return handle

    def after_cancel(self, handle: Any) -> None:
        self._callbacks.pop(handle, None)

    @property
    def pending_timers(self) -> int:
        return len(self._callbacks)

    def next_due(self) -> Optional[int]:
        while self._heap and self._heap[0][1] not in self._callbacks:
            heapq.heappop(self._heap)
        return self._heap[0][0] if self._heap else None

    def _clock(self) -> int:
        return self.now_ms

    def _fire_due(self, until_ms: int) -> int:
        fired = 0
        while True:
            due = self.next_due()
            if due is None or due > until_ms:
                return fired
            _, handle = heapq.heappop(self._heap)
            callback = self._callbacks.pop(handle)
            self.now_ms = max(self.now_ms, due)
            callback()
            fired += 1

    def advance(self, delay_ms: int) -> int:
        """Move the clock forward, firing due timers in order. Returns the count fired."""
        target = self.now_ms + int(delay_ms)
        fired = self._fire_due(target)
        self.now_ms = target
        return fired

    # -------------------- async work --------------------
    def run_async(self, func, on_success=None, on_error=None) -> None:
        if self.defer_async:
            self._pending.append((func, on_success, on_error))
            return
        self._run(func, on_success, on_error)

    @staticmethod
    def _run(func, on_success, on_error) -> None:
        try:
            result = func()
        except Exception as exc:
            _deliver_error(on_error, exc)
            return
        if on_success is not None:
            on_success(result)

    @property
    def pending_tasks(self) -> int:
        return len(self._pending)

    def flush_async(self) -> int:
        """Complete parked tasks in submission order."""
        count = 0
        while self._pending:
            func, on_success, on_error = self._pending.pop(0)
            self._run(func, on_success, on_error)
            count += 1
        return count


class LoopDispatcher(ManualDispatcher):
    """Wall-clock dispatcher for blocking, single-threaded scripts."""

    def __init__(
        self,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
    ):
        super().__init__(defer_async=False)
        self._time = clock
        self._sleep = sleep
        self._origin = clock()
        self.now_ms = 0

    def _clock(self) -> int:
        self.now_ms = int((self._time() - self._origin) * 1000)
        return self.now_ms

    def run_until(self, predicate: Callable[[], bool], timeout_s: Optional[float] = None) -> bool:
        """Fire timers as they come due until ``predicate()`` holds.

        Returns False when the timeout elapses or nothing is left to run.
        """
        deadline = None if timeout_s is None else self._clock() + int(timeout_s * 1000)
        while not predicate():
            due = self.next_due()
            if due is None:
                return False
            if deadline is not None and due > deadline:
                wait = deadline - self._clock()
                if wait > 0:
                    self._sleep(wait / 1000.0)
                return predicate()
            wait = due - self._clock()
            if wait > 0:
                self._sleep(wait / 1000.0)
            self._fire_due(max(due, self._clock()))
        return True

    def sleep(self, seconds: float) -> None:
        """Block for ``seconds`` while still firing timers that come due."""
        end = self._clock() + int(seconds * 1000)
        while True:
            due = self.next_due()
            now = self._clock()
            if due is None or due > end:
                if end > now:
                    self._sleep((end - now) / 1000.0)
                self._clock()
                return
            if due > now:
                self._sleep((due - now) / 1000.0)
            self._fire_due(max(due, self._clock()))
