"""
Transfer supervision: fetch (server -> library folder) and push
(library folder -> server) of single items.

Each transfer runs on its own worker thread with a cooperative cancel flag.
The supervisor keeps the busy signal, refuses a second transfer of the same
kind for the same key, and hands the result back on the coordinator context.
"""

import threading
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Callable, Optional

from ..core.logging import debug_log
from ..remote.transfer import TransferResult
from .dispatch import Dispatcher

# fetcher(media_id, dest_path, cancel_check) -> TransferResult
Fetcher = Callable[[int, Path, Callable[[], bool]], TransferResult]
# pusher(path, source_url, cancel_check) -> TransferResult
Pusher = Callable[[Path, Optional[str], Callable[[], bool]], TransferResult]


class TransferKind(Enum):
    FETCH = "fetch"
    PUSH = "push"


# Busy messages per kind: (started, complete, failed, cancelled)
_MESSAGES = {
    TransferKind.FETCH: (
        "Downloading from cloud...",
        "Download complete",
        "Download failed",
        "Download cancelled",
    ),
    TransferKind.PUSH: (
        "Uploading to cloud...",
        "Upload complete",
        "Upload failed",
        "Upload cancelled",
    ),
}


@dataclass
class TransferHandle:
    """One running transfer."""
    kind: TransferKind
    key: str
    path: Path
    cancel_event: threading.Event = field(default_factory=threading.Event)

    def cancel(self):
        self.cancel_event.set()

    def is_cancelled(self) -> bool:
        return self.cancel_event.is_set()


class TransferSupervisor:
    """
    Runs fetches and pushes and tracks which are in progress.

    All methods are called on the coordinator context; only the fetcher and
    pusher run on worker threads.
    """

    def __init__(
        self,
        dispatcher: Dispatcher,
        fetcher: Fetcher,
        pusher: Pusher,
        on_busy: Optional[Callable[[bool, str], None]] = None,
    ):
        """
        Args:
            dispatcher: Channel back to the coordinator context
            fetcher: Blocking download call
            pusher: Blocking upload call
            on_busy: Called with (busy, message) whenever a transfer starts or ends
        """
        self._dispatcher = dispatcher
        self._fetcher = fetcher
        self._pusher = pusher
        self._on_busy = on_busy
        self._active: dict[tuple[TransferKind, str], TransferHandle] = {}

    # =========================================================================
    # State
    # =========================================================================

    @property
    def active_count(self) -> int:
        return len(self._active)

    @property
    def busy(self) -> bool:
        return bool(self._active)

    def is_active(self, kind: TransferKind, key: Optional[str]) -> bool:
        return (kind, key) in self._active

    # =========================================================================
    # Operations
    # =========================================================================

    def fetch(
        self,
        key: str,
        media_id: int,
        dest: Path,
        on_complete: Callable[[TransferResult], None],
    ) -> Optional[TransferHandle]:
        """
        Start downloading media_id into dest.

        Returns None (and starts nothing) if a fetch of this key is already
        running. on_complete gets the TransferResult on the coordinator context,
        after the busy signal has been updated.
        """
        return self._start(
            TransferKind.FETCH,
            key,
            dest,
            lambda handle: self._fetcher(media_id, dest, handle.is_cancelled),
            on_complete,
        )

    def push(
        self,
        key: str,
        path: Path,
        source_url: Optional[str],
        on_complete: Callable[[TransferResult], None],
    ) -> Optional[TransferHandle]:
        """Start uploading path. Same contract as fetch()."""
        return self._start(
            TransferKind.PUSH,
            key,
            path,
            lambda handle: self._pusher(path, source_url, handle.is_cancelled),
            on_complete,
        )

    def cancel(self, key: Optional[str] = None, kind: Optional[TransferKind] = None) -> int:
        """
        Request cancellation of running transfers.

        Args:
            key: Only transfers of this key (all keys if None)
            kind: Only transfers of this kind (both kinds if None)

        Returns:
            Number of transfers flagged
        """
        count = 0
        for handle in self._active.values():
            if key is not None and handle.key != key:
                continue
            if kind is not None and handle.kind != kind:
                continue
            if not handle.is_cancelled():
                handle.cancel()
                count += 1
        if count:
            debug_log(f"TRANSFER_CANCEL | key={key} | count={count}")
        return count

    # =========================================================================
    # Internals
    # =========================================================================

    def _notify_busy(self, message: str):
        if self._on_busy:
            self._on_busy(self.busy, message)

    def _start(
        self,
        kind: TransferKind,
        key: str,
        path: Path,
        run: Callable[[TransferHandle], TransferResult],
        on_complete: Callable[[TransferResult], None],
    ) -> Optional[TransferHandle]:
        slot = (kind, key)
        if slot in self._active:
            debug_log(f"TRANSFER_DUP | {kind.value} | key={key}")
            return None

        handle = TransferHandle(kind=kind, key=key, path=path)
        self._active[slot] = handle
        started, _, _, _ = _MESSAGES[kind]
        debug_log(f"TRANSFER_START | {kind.value} | key={key} | {path}")
        self._notify_busy(started)

        def done(result: TransferResult):
            self._finish(handle, result, on_complete)

        def failed(exc: BaseException):
            result = TransferResult(False, path, f"ERR: {path.name} - {exc}")
            self._finish(handle, result, on_complete)

        self._dispatcher.spawn(
            lambda: run(handle),
            on_done=done,
            on_error=failed,
            name=f"{kind.value}-{key}",
        )
        return handle

    def _finish(
        self,
        handle: TransferHandle,
        result: TransferResult,
        on_complete: Callable[[TransferResult], None],
    ):
        self._active.pop((handle.kind, handle.key), None)
        _, complete, failed, cancelled = _MESSAGES[handle.kind]

        if result.cancelled:
            message = cancelled
        elif result.success:
            message = complete
        else:
            message = failed

        debug_log(f"TRANSFER_END | {handle.kind.value} | key={handle.key} | {result.message}")
        self._notify_busy(message)
        on_complete(result)
