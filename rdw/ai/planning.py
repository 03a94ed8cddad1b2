"""
Background Planning Task
========================
Long-running planner thread owned by a redirector.

The control loop only ever talks to it through pause()/resume():
- pause() is non-blocking; an in-flight plan that finishes after the
  pause is discarded instead of published
- while paused, latest() returns None so no stale plan is read
- resume() starts a new planning epoch; plans from before the pause
  are never published
"""

import logging
import threading
from typing import Any, Callable, Optional

logger = logging.getLogger(__name__)


class PlanningTask:
    """
    Runs plan_fn every interval seconds on a daemon thread.

    plan_fn takes no arguments and returns the new plan. With
    threaded=False nothing runs in the background and the owner calls
    run_once() itself (deterministic mode).
    """

    def __init__(self,
                 plan_fn: Callable[[], Any],
                 interval: float = 0.05,
                 name: str = "planner",
                 threaded: bool = True):
        self.plan_fn = plan_fn
        self.interval = interval
        self.name = name
        self.threaded = threaded

        self._lock = threading.Lock()
        self._stop_event = threading.Event()
        self._resumed = threading.Event()
        self._resumed.set()
        self._thread: Optional[threading.Thread] = None

        self._epoch = 0
        self._latest: Any = None
        self.plans_published = 0
        self.plans_discarded = 0

    # =========================================================================
    # LIFECYCLE
    # =========================================================================

    def start(self):
        if not self.threaded or self.is_alive():
            return
        self._stop_event.clear()
        self._thread = threading.Thread(target=self._loop, name=self.name, daemon=True)
        self._thread.start()
        logger.debug("Planning task %s started", self.name)

    def stop(self, timeout: float = 1.0):
        self._stop_event.set()
        self._resumed.set()   # wake the loop so it can exit
        if self._thread is not None:
            self._thread.join(timeout)
            self._thread = None
        logger.debug("Planning task %s stopped", self.name)

    def is_alive(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    # =========================================================================
    # PAUSE / RESUME
    # =========================================================================

    def pause(self):
        with self._lock:
            self._resumed.clear()
            self._epoch += 1
            self._latest = None

    def resume(self):
        with self._lock:
            self._epoch += 1
            self._latest = None
            self._resumed.set()

    def is_paused(self) -> bool:
        return not self._resumed.is_set()

    # =========================================================================
    # PLANNING
    # =========================================================================

    def run_once(self) -> bool:
        """Compute one plan; returns True if it was published"""
        with self._lock:
            if self.is_paused():
                return False
            epoch = self._epoch

        plan = self.plan_fn()

        with self._lock:
            if epoch != self._epoch or self.is_paused():
                self.plans_discarded += 1
                return False
            self._latest = plan
            self.plans_published += 1
            return True

    def latest(self) -> Any:
        """Most recent plan, or None while paused / before the first plan"""
        with self._lock:
            if self.is_paused():
                return None
            return self._latest

    def _loop(self):
        while not self._stop_event.is_set():
            if not self._resumed.wait(timeout=self.interval):
                continue
            if self._stop_event.is_set():
                break
            self.run_once()
            self._stop_event.wait(self.interval)
