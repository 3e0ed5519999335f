"""
Library coordinator: owns the local and remote inventories and everything
derived from them (state map, rows, selection), and orchestrates scans,
remote loads, transfers and nickname lookups.

Everything here runs on one coordinator context. Background work goes
through the Dispatcher and its results are applied in completion order when
the host drains the queue. Each applied result triggers a full rebuild:
recompute states, build rows, restore selection, enrich nicknames.
"""

from collections import defaultdict
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Any, Callable, Optional

from ..core.formatting import sanitize_filename
from ..core.logging import debug_log
from ..remote.client import AuthExpiredError
from ..remote.transfer import TransferResult
from .dispatch import Dispatcher
from .filters import MediaKind, ViewFilters
from .models import ItemState, LocalItem, RemoteItem, Row
from .nicknames import NicknameResolver
from .reconcile import count_states, index_remote_by_key, recompute, state_of
from .selection import SelectionTracker
from .transfers import Fetcher, Pusher, TransferKind, TransferSupervisor
from .view import ViewMode, build_rows, describe_row

SESSION_EXPIRED_MESSAGE = "Session expired. Please sign in again."
SCANNING_MESSAGE = "Scanning local folder..."


class LibraryEvent(Enum):
    """
    Notifications for the host. Callback arguments:

    ROWS_CHANGED(rows), ROW_UPDATED(index, row), SELECTION_CHANGED(index, row),
    BUSY_CHANGED(busy, message), STATUS_CHANGED(status), ERROR(message)
    """
    ROWS_CHANGED = "rows_changed"
    ROW_UPDATED = "row_updated"
    SELECTION_CHANGED = "selection_changed"
    BUSY_CHANGED = "busy_changed"
    STATUS_CHANGED = "status_changed"
    ERROR = "error"


def scan_summary(previous_keys: Optional[set[str]], keys: set[str]) -> str:
    """Status line for a finished scan, relative to the previous scan's keys."""
    if previous_keys is None:
        return f"Scan complete: {len(keys)} files."
    added = len(keys - previous_keys)
    removed = len(previous_keys - keys)
    if added == 0 and removed == 0:
        return "Scan complete: no changes."
    return f"Scan complete: +{added} new, -{removed} removed."


class LibraryCoordinator:
    """Live view over the local library folder mirrored against the server."""

    def __init__(
        self,
        dispatcher: Dispatcher,
        lister: Callable[[Path], list[LocalItem]],
        remote_lister: Callable[[], list[RemoteItem]],
        fetcher: Fetcher,
        pusher: Pusher,
        nickname_lookup: Callable[[int], str],
        library_dir: Optional[Path] = None,
        view_mode: ViewMode = ViewMode.ALL,
        filters: Optional[ViewFilters] = None,
        clock: Optional[Callable[[], datetime]] = None,
        nickname_workers: int = 2,
    ):
        """
        Args:
            dispatcher: Queue the host drains on the coordinator context
            lister: Blocking folder -> LocalItems call
            remote_lister: Blocking server listing (raises RemoteError)
            fetcher: Blocking download (see TransferSupervisor)
            pusher: Blocking upload (see TransferSupervisor)
            nickname_lookup: Blocking owner_id -> nickname call
            library_dir: Local library folder (None if not configured)
            view_mode: Initial view mode
            filters: Initial filters
            clock: Source of "now" for the week filter
            nickname_workers: Size of the nickname lookup pool
        """
        self.dispatcher = dispatcher
        self._lister = lister
        self._remote_lister = remote_lister
        self._clock = clock or datetime.now

        self.nicknames = NicknameResolver(nickname_lookup, dispatcher, max_workers=nickname_workers)
        self.transfers = TransferSupervisor(dispatcher, fetcher, pusher, on_busy=self._on_transfer_busy)
        self.selection = SelectionTracker()

        self.library_dir = library_dir
        self.view_mode = view_mode
        self.filters = filters or ViewFilters()

        # Inventories and derived state; replaced wholesale, never patched
        self.local_items: list[LocalItem] = []
        self.remote_items: list[RemoteItem] = []
        self.states: dict[str, ItemState] = {}
        self.rows: list[Row] = []

        self.status = ""
        self.busy_message = ""

        self._scans_running = 0
        self._remote_loading = False
        # A reload was requested while one was running (after push/delete)
        self._remote_stale = False
        self._last_scan_keys: Optional[set[str]] = None
        # Key to select once the rescan after a fetch lands
        self._pending_select_key: Optional[str] = None
        self._listeners: dict[LibraryEvent, list[Callable[..., Any]]] = defaultdict(list)

    # =========================================================================
    # Events
    # =========================================================================

    def subscribe(self, event: LibraryEvent, callback: Callable[..., Any]) -> Callable[[], None]:
        """Register a callback. Returns a function that unsubscribes it."""
        self._listeners[event].append(callback)

        def unsubscribe():
            if callback in self._listeners[event]:
                self._listeners[event].remove(callback)

        return unsubscribe

    def _emit(self, event: LibraryEvent, *args):
        for callback in list(self._listeners[event]):
            callback(*args)

    def _set_status(self, message: str):
        self.status = message
        self._emit(LibraryEvent.STATUS_CHANGED, message)

    def _error(self, message: str):
        debug_log(f"ERROR | {message}")
        self._emit(LibraryEvent.ERROR, message)

    # =========================================================================
    # Host-facing state
    # =========================================================================

    @property
    def selected_index(self) -> int:
        return self.selection.selected_index

    @property
    def selected_row(self) -> Optional[Row]:
        return self.selection.selected_row(self.rows)

    @property
    def busy(self) -> bool:
        return self.transfers.busy

    @property
    def scanning(self) -> bool:
        return self._scans_running > 0

    @property
    def remote_loading(self) -> bool:
        return self._remote_loading

    def state_of(self, row: Optional[Row]) -> Optional[ItemState]:
        if row is None:
            return None
        return state_of(self.states, row.key)

    def counts(self) -> dict[ItemState, int]:
        return count_states(self.states)

    def select(self, index: int) -> bool:
        """Select a row by index; an out-of-range index clears the selection."""
        selected = self.selection.select(index, self.rows)
        self._emit(LibraryEvent.SELECTION_CHANGED, self.selected_index, self.selected_row)
        return selected

    def describe_selected(self) -> list[tuple[str, str]]:
        return describe_row(self.selected_row)

    # =========================================================================
    # Action predicates (selected row)
    # =========================================================================

    def can_delete(self) -> bool:
        row = self.selected_row
        return row is not None and row.path is not None

    def can_fetch(self) -> bool:
        row = self.selected_row
        if self.state_of(row) != ItemState.REMOTE_ONLY:
            return False
        return not self.transfers.is_active(TransferKind.FETCH, row.key)

    def can_push(self) -> bool:
        row = self.selected_row
        if row is None or row.path is None:
            return False
        if self.state_of(row) != ItemState.LOCAL_ONLY:
            return False
        if self.transfers.is_active(TransferKind.PUSH, row.key):
            return False
        return row.path.is_file()

    def can_open(self) -> bool:
        row = self.selected_row
        if row is None or row.path is None:
            return False
        return self.state_of(row) != ItemState.REMOTE_ONLY

    # =========================================================================
    # Startup and refreshes
    # =========================================================================

    def start(self):
        """Initial load: the server listing always, the local folder if it exists."""
        self.refresh_remote()
        folder = self.library_dir
        if folder is not None and folder.is_dir():
            self.refresh_local()
        else:
            debug_log(f"LOCAL_DISABLED | folder={folder}")
            self.local_items = []
            self._rebuild()

    def refresh_local(self):
        """Rescan the library folder in the background. Scans are never refused."""
        folder = self.library_dir
        self._scans_running += 1
        self._set_status(SCANNING_MESSAGE)

        def work() -> list[LocalItem]:
            if folder is None:
                return []
            return self._lister(folder)

        self.dispatcher.spawn(work, on_done=self._apply_local, on_error=self._local_failed, name="scan")

    def refresh_remote(self) -> bool:
        """
        Reload the server listing in the background.

        Returns False if a load is already running; the request is dropped.
        The one exception is a reload requested by a finished push or a
        delete, which is remembered and run once the current load completes
        (see _request_remote_reload).
        """
        if self._remote_loading:
            debug_log("REMOTE_LOAD_SKIP | already loading")
            return False
        self._remote_loading = True
        self._remote_stale = False
        self.dispatcher.spawn(
            self._remote_lister,
            on_done=self._apply_remote,
            on_error=self._remote_failed,
            name="remote-load",
        )
        return True

    def _request_remote_reload(self):
        """Reload now, or as soon as the running load finishes."""
        if not self.refresh_remote():
            self._remote_stale = True

    def _apply_local(self, items: list[LocalItem]):
        self._scans_running -= 1
        self.local_items = list(items)

        keys = {item.key for item in self.local_items if item.key is not None}
        summary = scan_summary(self._last_scan_keys, keys)
        self._last_scan_keys = keys
        debug_log(f"SCAN_DONE | files={len(self.local_items)}")

        self._rebuild()
        self._set_status(summary)

        if self._pending_select_key is not None:
            key, self._pending_select_key = self._pending_select_key, None
            if self.selection.select_key(key, self.rows):
                self._emit(LibraryEvent.SELECTION_CHANGED, self.selected_index, self.selected_row)

    def _local_failed(self, exc: BaseException):
        # An unreadable folder is an empty folder
        debug_log(f"SCAN_FAIL | {type(exc).__name__}: {exc}")
        self._apply_local([])

    def _apply_remote(self, items: list[RemoteItem]):
        self._remote_loading = False
        self.remote_items = list(items)
        debug_log(f"REMOTE_LOAD_DONE | items={len(self.remote_items)}")
        self._rebuild()
        if self._remote_stale:
            self.refresh_remote()

    def _remote_failed(self, exc: BaseException):
        self._remote_loading = False
        self._remote_stale = False
        if isinstance(exc, AuthExpiredError):
            debug_log("REMOTE_LOAD_FAIL | auth")
            self._set_status(SESSION_EXPIRED_MESSAGE)
            self._error(SESSION_EXPIRED_MESSAGE)
            return
        debug_log(f"REMOTE_LOAD_FAIL | {exc}")
        message = f"Could not load cloud library: {exc}"
        self._set_status(message)
        self._error(message)

    # =========================================================================
    # View
    # =========================================================================

    def set_view_mode(self, mode: ViewMode):
        if mode != self.view_mode:
            self.view_mode = mode
            self._rebuild()

    def set_filters(self, filters: ViewFilters):
        if filters != self.filters:
            self.filters = filters
            self._rebuild()

    def set_kind(self, kind: MediaKind):
        self.set_filters(ViewFilters(kind=kind, this_week=self.filters.this_week))

    def set_this_week(self, enabled: bool):
        self.set_filters(ViewFilters(kind=self.filters.kind, this_week=enabled))

    def set_library_dir(self, folder: Optional[Path]):
        """Point at another library folder and rescan it from scratch."""
        self.library_dir = folder
        self._last_scan_keys = None
        self.refresh_local()

    def _rebuild(self, after_delete: Optional[tuple[Optional[str], int]] = None):
        """Recompute states, rebuild rows, restore selection, enrich nicknames."""
        snapshot = self.selection.capture(self.rows)

        self.states = recompute(self.local_items, self.remote_items)
        self.rows = build_rows(
            self.local_items,
            self.remote_items,
            self.states,
            self.view_mode,
            self.filters,
            now=self._clock(),
        )

        if after_delete is not None:
            key, old_index = after_delete
            self.selection.restore_after_delete(key, old_index, self.rows)
        else:
            self.selection.restore(snapshot, self.rows)

        self._enrich_nicknames()
        self._emit(LibraryEvent.ROWS_CHANGED, self.rows)
        self._emit(LibraryEvent.SELECTION_CHANGED, self.selected_index, self.selected_row)

    def _enrich_nicknames(self):
        for row in self.rows:
            if row.owner_id is None:
                continue
            cached = self.nicknames.get_cached(row.owner_id)
            if cached is not None:
                row.nickname = cached
            else:
                self.nicknames.resolve_async(row.owner_id, self._on_nickname)

    def _on_nickname(self, owner_id: int, nickname: str):
        # Rows may have been rebuilt since the lookup started; patch the current ones
        for index, row in enumerate(self.rows):
            if row.owner_id == owner_id and row.nickname != nickname:
                row.nickname = nickname
                self._emit(LibraryEvent.ROW_UPDATED, index, row)

    # =========================================================================
    # Transfers
    # =========================================================================

    def _on_transfer_busy(self, busy: bool, message: str):
        self.busy_message = message
        self._set_status(message)
        self._emit(LibraryEvent.BUSY_CHANGED, busy, message)

    def fetch_selected(self) -> bool:
        """Download the selected remote-only item into the library folder."""
        row = self.selected_row
        if row is None or not self.can_fetch():
            return False

        key = row.key
        remote = index_remote_by_key(self.remote_items).get(key)
        if remote is None:
            self._error("Remote media not found.")
            return False

        folder = self.library_dir
        if folder is None:
            self._error("Library folder not configured.")
            return False

        # The server names the file; keep it to one component inside the folder
        dest = folder / sanitize_filename(Path(remote.file_name).name)
        if dest.resolve().parent != folder.resolve():
            debug_log(f"FETCH_REFUSED | key={key} | name={remote.file_name!r}")
            self._error(f"Refusing to save outside the library folder: {remote.file_name}")
            return False

        handle = self.transfers.fetch(key, remote.media_id, dest, lambda r: self._fetch_done(key, r))
        return handle is not None

    def _fetch_done(self, key: str, result: TransferResult):
        if result.cancelled:
            return
        if result.success:
            debug_log(f"FETCH_OK | key={key} | bytes={result.bytes_transferred}")
            self._pending_select_key = key
            self.refresh_local()
            return
        if result.auth_failed:
            self._set_status(SESSION_EXPIRED_MESSAGE)
            self._error(SESSION_EXPIRED_MESSAGE)
        elif result.not_found:
            self._error("Remote media not found.")
        else:
            self._error(f"Download failed. {result.message}")

    def push_selected(self) -> bool:
        """Upload the selected local-only file."""
        row = self.selected_row
        if row is None or row.path is None:
            return False
        if self.state_of(row) != ItemState.LOCAL_ONLY:
            return False

        path = row.path
        if not path.is_file():
            self._error(f"Local file not found: {path}")
            return False

        key = row.key
        handle = self.transfers.push(key, path, row.source_url, lambda r: self._push_done(key, r))
        return handle is not None

    def _push_done(self, key: str, result: TransferResult):
        if result.cancelled:
            return
        if result.success:
            debug_log(f"PUSH_OK | key={key} | bytes={result.bytes_transferred}")
            self._request_remote_reload()
            return
        if result.auth_failed:
            self._set_status(SESSION_EXPIRED_MESSAGE)
            self._error(SESSION_EXPIRED_MESSAGE)
        elif result.not_found:
            self._error(f"Local file not found: {result.path}")
        else:
            self._error(f"Upload failed. {result.message}")

    def cancel_transfers(self, key: Optional[str] = None) -> int:
        """Cancel running transfers (all, or those of one key)."""
        return self.transfers.cancel(key)

    # =========================================================================
    # Delete
    # =========================================================================

    def delete_selected(self) -> bool:
        """
        Delete the selected row's local file.

        The row disappears at once (or turns into a remote row if the item is
        also on the server), then the folder is rescanned and the server
        listing reloaded. Returns True if a file was deleted.
        """
        row = self.selected_row
        if row is None or row.path is None:
            return False

        key = row.key
        old_index = self.selected_index
        path = row.path

        try:
            path.unlink()
        except FileNotFoundError:
            self._error(f"Could not delete (already gone?): {path}")
            self.refresh_local()
            return False
        except OSError as e:
            self._error(f"Could not delete {path}: {e}")
            return False

        debug_log(f"DELETE | key={key} | {path}")
        self.local_items = [item for item in self.local_items if item.path != path]
        self._rebuild(after_delete=(key, old_index))

        self.refresh_local()
        self._request_remote_reload()
        return True

    # =========================================================================
    # Shutdown
    # =========================================================================

    def shutdown(self):
        """Cancel transfers and stop the nickname pool."""
        self.transfers.cancel()
        self.nicknames.shutdown()
