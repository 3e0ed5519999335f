"""
Uploader nickname resolution.

Remote items carry only the owner's numeric id. NicknameResolver looks the
nickname up on a small worker pool, caches it for the life of the process,
and never has more than one request in flight per id. Failures are cached as
UNKNOWN_NICKNAME so a flaky or deleted account doesn't trigger a request
storm on every repaint.
"""

import threading
from concurrent.futures import ThreadPoolExecutor
from typing import Callable, Optional

from ..core.logging import debug_log
from .dispatch import Dispatcher

UNKNOWN_NICKNAME = "(unknown)"


class NicknameResolver:
    """
    Async, de-duplicating owner_id -> nickname resolver.

    The cache and in-flight set are the only state shared with worker
    threads; both are guarded by one lock. on_ready callbacks are delivered
    through the dispatcher, never on a worker thread.
    """

    def __init__(
        self,
        lookup: Callable[[int], str],
        dispatcher: Dispatcher,
        max_workers: int = 2,
    ):
        """
        Args:
            lookup: Blocking owner_id -> nickname call (may raise)
            dispatcher: Channel back to the coordinator context
            max_workers: Pool size; the server rate-limits lookups anyway
        """
        self._lookup = lookup
        self._dispatcher = dispatcher
        self._pool = ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="nickname")
        self._lock = threading.Lock()
        self._cache: dict[int, str] = {}
        self._in_flight: set[int] = set()

    def get_cached(self, owner_id: Optional[int]) -> Optional[str]:
        """Cached nickname (possibly UNKNOWN_NICKNAME), or None if not resolved yet."""
        if owner_id is None:
            return None
        with self._lock:
            return self._cache.get(owner_id)

    def is_in_flight(self, owner_id: int) -> bool:
        with self._lock:
            return owner_id in self._in_flight

    def resolve_async(
        self,
        owner_id: Optional[int],
        on_ready: Callable[[int, str], None],
    ) -> bool:
        """
        Start resolving owner_id unless cached or already in flight.

        Returns True if a request was submitted. on_ready(owner_id, nickname)
        runs on the coordinator context once the cache holds a value, even
        when the lookup failed.
        """
        if owner_id is None:
            return False
        with self._lock:
            if owner_id in self._cache or owner_id in self._in_flight:
                return False
            self._in_flight.add(owner_id)

        def work() -> str:
            try:
                nick = self._lookup(owner_id)
            except Exception as e:
                debug_log(f"NICK_FAIL | owner={owner_id} | {type(e).__name__}: {e}")
                nick = None
            if nick is None or not str(nick).strip():
                nick = UNKNOWN_NICKNAME
            else:
                nick = str(nick).strip()
            with self._lock:
                self._cache[owner_id] = nick
                self._in_flight.discard(owner_id)
            return nick

        self._dispatcher.spawn(
            work,
            on_done=lambda nick: on_ready(owner_id, nick),
            executor=self._pool,
            name=f"nickname-{owner_id}",
        )
        return True

    def shutdown(self):
        """Stop the pool; pending lookups are dropped."""
        self._pool.shutdown(wait=False, cancel_futures=True)
