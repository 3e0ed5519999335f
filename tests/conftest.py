"""Pytest configuration and shared fixtures."""

import os
import tempfile
import threading
import time
from collections import Counter
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Optional

import pytest

from cleanstream.library import (
    Dispatcher,
    LibraryCoordinator,
    LibraryEvent,
    RemoteItem,
    ViewFilters,
    ViewMode,
    scan_local_items,
)
from cleanstream.remote import RemoteError, TransferResult


@dataclass
class LibraryEnv:
    """Isolated library folder for coordinator and scanner tests."""
    tmp: Path
    library_dir: Path

    def make_files(self, file_specs: dict[str, int]) -> list[Path]:
        """Create files in the library folder.

        Args:
            file_specs: {relative_path: size_bytes}
        """
        paths = []
        for rel_path, size in file_specs.items():
            full = self.library_dir / rel_path
            full.parent.mkdir(parents=True, exist_ok=True)
            full.write_bytes(b"\x00" * size)
            paths.append(full)
        return paths

    def touch(self, rel_path: str, when: datetime, size: int = 10) -> Path:
        """Create a file with a given modification time."""
        path = self.make_files({rel_path: size})[0]
        ts = when.timestamp()
        os.utime(path, (ts, ts))
        return path


@pytest.fixture
def library_env():
    with tempfile.TemporaryDirectory() as tmpdir:
        tmp = Path(tmpdir)
        library_dir = tmp / "Library"
        library_dir.mkdir()
        yield LibraryEnv(tmp=tmp, library_dir=library_dir)


class FakeServer:
    """In-memory media server standing in for MediaClient and MediaTransfer.

    Gates (threading.Event) let a test hold a call open; a held transfer
    still honours cancel_check.
    """

    def __init__(self):
        self.items: list[RemoteItem] = []
        self.nicknames: dict[int, str] = {}
        self.list_error: Optional[Exception] = None
        self.list_gate: Optional[threading.Event] = None
        self.transfer_gate: Optional[threading.Event] = None
        self.list_calls = 0
        self.lookup_calls: Counter = Counter()
        self.fetch_calls: list[tuple[int, Path]] = []
        self.push_calls: list[tuple[Path, Optional[str]]] = []
        self._lock = threading.Lock()
        self._next_id = 1

    def add(
        self,
        file_name: str,
        owner_id: Optional[int] = 1,
        mime_type: Optional[str] = None,
        source_url: Optional[str] = None,
    ) -> RemoteItem:
        with self._lock:
            item = RemoteItem(
                media_id=self._next_id,
                owner_id=owner_id,
                file_name=file_name,
                mime_type=mime_type,
                storage_ref=f"blob-{self._next_id}",
                source_url=source_url,
            )
            self._next_id += 1
            self.items.append(item)
        return item

    # MediaClient.list_media
    def list_media(self) -> list[RemoteItem]:
        if self.list_gate is not None:
            self.list_gate.wait(timeout=5)
        with self._lock:
            self.list_calls += 1
            if self.list_error is not None:
                raise self.list_error
            return list(self.items)

    # MediaClient.get_nickname
    def get_nickname(self, owner_id: int) -> str:
        with self._lock:
            self.lookup_calls[owner_id] += 1
            if owner_id not in self.nicknames:
                raise RemoteError("Get nickname: not found", status_code=404)
            return self.nicknames[owner_id]

    def _hold(self, cancel_check) -> bool:
        """Wait on the transfer gate. Returns True if cancelled meanwhile."""
        if self.transfer_gate is None:
            return False
        while not self.transfer_gate.is_set():
            if cancel_check():
                return True
            time.sleep(0.01)
        return cancel_check()

    # MediaTransfer.download
    def download(self, media_id: int, dest: Path, cancel_check) -> TransferResult:
        self.fetch_calls.append((media_id, dest))
        if self._hold(cancel_check):
            return TransferResult(False, dest, f"Cancelled: {dest.name}", cancelled=True)
        with self._lock:
            found = any(item.media_id == media_id for item in self.items)
        if not found:
            return TransferResult(False, dest, "ERR (not found)", not_found=True)
        dest.write_bytes(b"media")
        return TransferResult(True, dest, f"OK: {dest.name}", bytes_transferred=5)

    # MediaTransfer.upload
    def upload(self, path: Path, source_url: Optional[str], cancel_check) -> TransferResult:
        self.push_calls.append((path, source_url))
        if self._hold(cancel_check):
            return TransferResult(False, path, f"Cancelled: {path.name}", cancelled=True)
        self.add(path.name, owner_id=1, source_url=source_url)
        return TransferResult(True, path, f"OK: {path.name}", bytes_transferred=path.stat().st_size)


@pytest.fixture
def server():
    return FakeServer()


@dataclass
class EventLog:
    """Records every event a coordinator emits."""
    events: list[tuple[LibraryEvent, tuple]] = field(default_factory=list)

    def attach(self, coordinator: LibraryCoordinator) -> "EventLog":
        for event in LibraryEvent:
            coordinator.subscribe(event, lambda *args, _e=event: self.events.append((_e, args)))
        return self

    def of(self, event: LibraryEvent) -> list[tuple]:
        return [args for e, args in self.events if e == event]

    def errors(self) -> list[str]:
        return [args[0] for args in self.of(LibraryEvent.ERROR)]

    def statuses(self) -> list[str]:
        return [args[0] for args in self.of(LibraryEvent.STATUS_CHANGED)]

    def busy(self) -> list[tuple[bool, str]]:
        return self.of(LibraryEvent.BUSY_CHANGED)


# ---------------------------------------------------------------------------
# Reusable scenario builders (functions, not fixtures)
# ---------------------------------------------------------------------------

def make_coordinator(
    server: FakeServer,
    library_dir: Optional[Path],
    view_mode: ViewMode = ViewMode.ALL,
    filters: Optional[ViewFilters] = None,
    now: Optional[datetime] = None,
    lister=None,
) -> LibraryCoordinator:
    """Coordinator wired to the fake server and (by default) the real folder scanner."""
    return LibraryCoordinator(
        Dispatcher(),
        lister=lister or scan_local_items,
        remote_lister=server.list_media,
        fetcher=server.download,
        pusher=server.upload,
        nickname_lookup=server.get_nickname,
        library_dir=library_dir,
        view_mode=view_mode,
        filters=filters,
        clock=(lambda: now) if now is not None else None,
    )


def started(coordinator: LibraryCoordinator) -> LibraryCoordinator:
    """Run start() and drain until all background work is applied."""
    coordinator.start()
    assert coordinator.dispatcher.run_until_idle(timeout=5)
    return coordinator


def row_names(coordinator: LibraryCoordinator) -> list[str]:
    return [row.name for row in coordinator.rows]


def index_of(coordinator: LibraryCoordinator, name: str) -> int:
    return row_names(coordinator).index(name)

