"""
Task Scheduler

Two primitives for the state machine:
- call_later(delay, fn, *args): fire-once timer, cancellable
- submit(fn, *args): run potentially slow work (remote query, catalog lookup)
  on a single background worker, serially, off the callback-delivery context

shutdown() cancels every pending timer and stops the worker with a poison pill.
A job that raises is logged; the worker keeps running.
"""

import logging
import queue
import threading
from typing import Callable, Optional, Set

logger = logging.getLogger("RISA.Scheduler")


class ScheduledCall:
    """Handle for a pending timer."""

    def __init__(self, timer: threading.Timer):
        self._timer = timer

    def cancel(self) -> None:
        self._timer.cancel()

    @property
    def active(self) -> bool:
        return self._timer.is_alive()


class TaskScheduler:
    def __init__(self, name: str = "risa"):
        self.name = name
        self._lock = threading.Lock()
        self._timers: Set[threading.Timer] = set()
        self._jobs: queue.Queue = queue.Queue()
        self._closed = False
        # Daemon so it stops when main thread exits
        self._worker_thread = threading.Thread(
            target=self._worker, name=f"{name}-worker", daemon=True
        )
        self._worker_thread.start()

    def call_later(self, delay: float, fn: Callable, *args) -> Optional[ScheduledCall]:
        with self._lock:
            if self._closed:
                logger.debug(f"[call_later] Scheduler closed; dropping {getattr(fn, '__name__', fn)}")
                return None
            timer = threading.Timer(max(0.0, delay), self._fire)
            # The timer passes itself so _fire can discard it
            timer.args = (fn, args, timer)
            timer.daemon = True
            timer.name = f"{self.name}-timer"
            self._timers.add(timer)
        timer.start()
        return ScheduledCall(timer)

    def _fire(self, fn: Callable, args: tuple, timer: threading.Timer) -> None:
        with self._lock:
            self._timers.discard(timer)
            if self._closed:
                return
        try:
            fn(*args)
        except Exception:
            logger.exception(f"[timer] {getattr(fn, '__name__', fn)} failed")

    def submit(self, fn: Callable, *args) -> bool:
        with self._lock:
            if self._closed:
                logger.debug(f"[submit] Scheduler closed; dropping {getattr(fn, '__name__', fn)}")
                return False
        self._jobs.put((fn, args))
        return True

    def _worker(self) -> None:
        while True:
            item = self._jobs.get()
            # Poison pill
            if item is None:
                break
            fn, args = item
            try:
                fn(*args)
            except Exception:
                logger.exception(f"[worker] {getattr(fn, '__name__', fn)} failed")

    def shutdown(self, wait: bool = False, timeout: float = 2.0) -> None:
        with self._lock:
            if self._closed:
                return
            self._closed = True
            timers = list(self._timers)
            self._timers.clear()
        for timer in timers:
            timer.cancel()
        self._jobs.put(None)
        if wait and threading.current_thread() is not self._worker_thread:
            self._worker_thread.join(timeout=timeout)
        logger.info(f"[Scheduler] Shut down ({len(timers)} timers cancelled)")

    @property
    def pending_timers(self) -> int:
        with self._lock:
            return len(self._timers)
