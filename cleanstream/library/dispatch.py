"""
Ordered hand-off from background workers to the coordinator context.

Workers never touch library state. They run through spawn(), and their
results come back as callbacks queued in completion order; the host drains
the queue on the coordinator context with process_pending() (from its UI
loop) or run_until_idle() (tests, scripts).
"""

import queue
import threading
import time
from concurrent.futures import Executor
from typing import Any, Callable, Optional

from ..core.logging import debug_log


class Dispatcher:
    """FIFO channel of callbacks plus bookkeeping of outstanding background work."""

    def __init__(self):
        self._queue: "queue.Queue[tuple[Callable, tuple]]" = queue.Queue()
        self._lock = threading.Lock()
        self._active = 0

    # =========================================================================
    # Posting (any thread)
    # =========================================================================

    def post(self, fn: Callable, *args: Any):
        """Queue fn(*args) to run on the coordinator context."""
        self._queue.put((fn, args))

    def spawn(
        self,
        work: Callable[[], Any],
        on_done: Optional[Callable[[Any], None]] = None,
        on_error: Optional[Callable[[BaseException], None]] = None,
        executor: Optional[Executor] = None,
        name: str = "worker",
    ):
        """
        Run work() in the background and queue its outcome.

        Args:
            work: Blocking callable, runs off the coordinator context
            on_done: Queued with work()'s return value
            on_error: Queued with the exception if work() raises
            executor: Pool to run on; a dedicated daemon thread if None
            name: Thread name (and log label)
        """
        with self._lock:
            self._active += 1

        def runner():
            try:
                result = work()
            except Exception as e:
                debug_log(f"WORKER_FAIL | {name} | {type(e).__name__}: {e}")
                if on_error:
                    self.post(on_error, e)
            else:
                if on_done:
                    self.post(on_done, result)
            finally:
                # Posted last so the outcome above is already queued when idle
                self.post(self._finish)

        if executor is not None:
            try:
                executor.submit(runner)
            except RuntimeError:
                # Executor already shut down
                self._finish()
                raise
        else:
            threading.Thread(target=runner, name=name, daemon=True).start()

    def _finish(self):
        with self._lock:
            self._active -= 1

    # =========================================================================
    # Draining (coordinator context only)
    # =========================================================================

    @property
    def active(self) -> int:
        """Background tasks whose outcome hasn't been processed yet."""
        with self._lock:
            return self._active

    def process_pending(self) -> int:
        """Run every queued callback without blocking. Returns how many ran."""
        count = 0
        while True:
            try:
                fn, args = self._queue.get_nowait()
            except queue.Empty:
                return count
            fn(*args)
            count += 1

    def wait_and_process(self, timeout: float) -> int:
        """Block up to timeout for one callback, then drain the rest."""
        try:
            fn, args = self._queue.get(timeout=timeout)
        except queue.Empty:
            return 0
        fn(*args)
        return 1 + self.process_pending()

    def run_until_idle(self, timeout: float = 10.0) -> bool:
        """
        Process callbacks until no background work is outstanding.

        Follow-up work spawned by callbacks (e.g. a rescan after a fetch) is
        waited for too. Returns False if the timeout expired first.
        """
        deadline = time.time() + timeout
        while True:
            self.process_pending()
            if self.active == 0 and self._queue.empty():
                return True
            remaining = deadline - time.time()
            if remaining <= 0:
                return False
            self.wait_and_process(min(remaining, 0.05))
