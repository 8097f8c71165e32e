"""Background timer that runs the expiry sweep at a fixed interval."""

import logging
import threading
from typing import Callable, Optional

from config import cleanup_interval_hours
from sweep import SweepResult, sweep

logger = logging.getLogger(__name__)


class CleanupScheduler:
    """Owns the cleanup timer thread and a single-flight guard around the sweep.

    Timer firings and ``manual_sweep`` share the guard: a trigger that arrives
    while a sweep is running is dropped, not queued.
    """

    def __init__(self, sweep_fn: Callable[[], SweepResult] = sweep,
                 interval_hours: Optional[float] = None):
        if interval_hours is None:
            interval_hours = cleanup_interval_hours()
        self.interval_seconds = interval_hours * 3600
        self.last_result: Optional[SweepResult] = None
        self._sweep_fn = sweep_fn
        self._sweep_lock = threading.Lock()
        self._state_lock = threading.Lock()
        self._stop_event: Optional[threading.Event] = None
        self._thread: Optional[threading.Thread] = None

    @property
    def is_running(self) -> bool:
        return self._thread is not None and self._thread.is_alive() and not self._stop_event.is_set()

    @property
    def sweep_in_progress(self) -> bool:
        return self._sweep_lock.locked()

    def start(self):
        with self._state_lock:
            if self.is_running:
                logger.info("Cleanup scheduler is already running")
                return
            self._stop_event = threading.Event()
            self._thread = threading.Thread(
                target=self._run, args=(self._stop_event,), name="cleanup-scheduler", daemon=True
            )
            self._thread.start()
        logger.info("Cleanup scheduler started (interval=%ss)", self.interval_seconds)

    def stop(self):
        """Cancel future firings. A sweep already in flight finishes on its own."""
        with self._state_lock:
            if self._stop_event is None:
                return
            self._stop_event.set()
            self._thread = None
        logger.info("Cleanup scheduler stopped")

    def manual_sweep(self) -> Optional[SweepResult]:
        """Run one sweep now; ``None`` if another sweep is in flight. Errors propagate."""
        logger.info("Running manual cleanup")
        return self._run_single_flight()

    def _run(self, stop_event: threading.Event):
        while not stop_event.wait(self.interval_seconds):
            try:
                self._run_single_flight()
            except Exception:
                logger.exception("Automatic cleanup failed, retrying at next interval")

    def _run_single_flight(self) -> Optional[SweepResult]:
        if not self._sweep_lock.acquire(blocking=False):
            logger.info("Cleanup already in progress, skipping this trigger")
            return None
        try:
            result = self._sweep_fn()
            self.last_result = result
            return result
        finally:
            self._sweep_lock.release()
