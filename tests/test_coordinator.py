"""
Tests for LibraryCoordinator: startup, refreshes, transfers, delete, and
selection stability, run against an in-memory server and a real temp folder.
"""

import threading
from datetime import datetime, timedelta

from cleanstream.library import (
    ItemState,
    LibraryEvent,
    LocalItem,
    MediaKind,
    UNKNOWN_NICKNAME,
    ViewFilters,
    ViewMode,
)
from cleanstream.library.coordinator import SESSION_EXPIRED_MESSAGE, scan_summary
from cleanstream.remote import AuthExpiredError, RemoteError
from tests.conftest import EventLog, make_coordinator, started, row_names, index_of


def drain(coordinator):
    assert coordinator.dispatcher.run_until_idle(timeout=5)


class TestStartup:
    """Tests for start()."""

    def test_merges_both_sides(self, library_env, server):
        library_env.make_files({"a.mp4": 10, "b.mp3": 5})
        server.add("A.mp4", owner_id=7)
        server.add("c.mp4", owner_id=8)
        server.nicknames[7] = "alice"

        lib = make_coordinator(server, library_env.library_dir)
        log = EventLog().attach(lib)
        started(lib)

        assert sorted(row_names(lib)[:2]) == ["a.mp4", "b.mp3"]
        assert row_names(lib)[2] == "c.mp4"
        assert lib.states == {
            "a.mp4": ItemState.BOTH,
            "b.mp3": ItemState.LOCAL_ONLY,
            "c.mp4": ItemState.REMOTE_ONLY,
        }
        assert log.of(LibraryEvent.ROWS_CHANGED)

    def test_nicknames_enriched(self, library_env, server):
        library_env.make_files({"a.mp4": 10})
        server.add("a.mp4", owner_id=7)
        server.add("c.mp4", owner_id=8)
        server.nicknames[7] = "alice"

        lib = make_coordinator(server, library_env.library_dir)
        log = EventLog().attach(lib)
        started(lib)

        by_name = {row.name: row for row in lib.rows}
        assert by_name["a.mp4"].nickname == "alice"
        assert by_name["c.mp4"].nickname == UNKNOWN_NICKNAME
        assert log.of(LibraryEvent.ROW_UPDATED)
        # Each owner looked up once even though several rebuilds ran
        assert server.lookup_calls == {7: 1, 8: 1}

    def test_cached_nicknames_applied_on_rebuild(self, library_env, server):
        server.add("c.mp4", owner_id=8)
        server.nicknames[8] = "bob"
        lib = started(make_coordinator(server, library_env.library_dir))

        lib.refresh_remote()
        drain(lib)
        assert lib.rows[0].nickname == "bob"
        assert server.lookup_calls[8] == 1

    def test_without_folder(self, server):
        server.add("c.mp4")
        lib = make_coordinator(server, None)
        log = EventLog().attach(lib)
        started(lib)

        assert row_names(lib) == ["c.mp4"]
        assert lib.local_items == []
        assert "Scanning local folder..." not in log.statuses()

    def test_missing_folder_not_scanned(self, library_env, server):
        lib = make_coordinator(server, library_env.tmp / "gone")
        log = EventLog().attach(lib)
        started(lib)
        assert lib.rows == []
        assert "Scanning local folder..." not in log.statuses()

    def test_first_row_selected(self, library_env, server):
        library_env.make_files({"a.mp4": 1})
        lib = started(make_coordinator(server, library_env.library_dir))
        assert lib.selected_index == 0
        assert lib.selected_row.name == "a.mp4"


class TestRemoteLoad:
    """Tests for refresh_remote() and its failure handling."""

    def test_auth_failure_keeps_rows(self, library_env, server):
        library_env.make_files({"a.mp4": 1})
        server.add("c.mp4")
        lib = started(make_coordinator(server, library_env.library_dir))
        log = EventLog().attach(lib)
        rows_before = row_names(lib)
        remote_before = list(lib.remote_items)

        server.list_error = AuthExpiredError("List media: session expired", status_code=401)
        assert lib.refresh_remote()
        drain(lib)

        assert lib.status == SESSION_EXPIRED_MESSAGE
        assert SESSION_EXPIRED_MESSAGE in log.errors()
        assert row_names(lib) == rows_before
        assert lib.remote_items == remote_before
        assert not lib.remote_loading

    def test_transport_failure_message(self, library_env, server):
        lib = started(make_coordinator(server, library_env.library_dir))
        log = EventLog().attach(lib)

        server.list_error = RemoteError("List media: HTTP 500", status_code=500)
        lib.refresh_remote()
        drain(lib)

        assert lib.status == "Could not load cloud library: List media: HTTP 500"
        assert log.errors() == [lib.status]

    def test_reload_allowed_after_failure(self, library_env, server):
        lib = started(make_coordinator(server, library_env.library_dir))
        server.list_error = RemoteError("boom")
        lib.refresh_remote()
        drain(lib)

        server.list_error = None
        server.add("c.mp4")
        assert lib.refresh_remote()
        drain(lib)
        assert row_names(lib) == ["c.mp4"]

    def test_single_flight(self, library_env, server):
        lib = started(make_coordinator(server, library_env.library_dir))
        calls_before = server.list_calls

        server.list_gate = threading.Event()
        assert lib.refresh_remote()
        assert not lib.refresh_remote()
        assert not lib.refresh_remote()

        server.list_gate.set()
        drain(lib)
        assert server.list_calls == calls_before + 1


class TestLocalScan:
    """Tests for refresh_local() and scan summaries."""

    def test_scan_summaries(self, library_env, server):
        a, b = library_env.make_files({"a.mp4": 1, "b.mp4": 1})
        lib = make_coordinator(server, library_env.library_dir)
        log = EventLog().attach(lib)
        started(lib)
        assert lib.status == "Scan complete: 2 files."

        lib.refresh_local()
        drain(lib)
        assert lib.status == "Scan complete: no changes."

        b.unlink()
        library_env.make_files({"c.mp4": 1, "d.mp4": 1})
        lib.refresh_local()
        drain(lib)
        assert lib.status == "Scan complete: +2 new, -1 removed."
        assert log.statuses().count("Scanning local folder...") == 3

    def test_scan_summary_helper(self):
        assert scan_summary(None, {"a", "b"}) == "Scan complete: 2 files."
        assert scan_summary({"a"}, {"a"}) == "Scan complete: no changes."
        assert scan_summary({"a", "b"}, {"a", "c"}) == "Scan complete: +1 new, -1 removed."

    def test_lister_error_is_empty_folder(self, library_env, server):
        def broken_lister(folder):
            raise PermissionError("denied")

        server.add("c.mp4")
        lib = started(make_coordinator(server, library_env.library_dir, lister=broken_lister))
        assert lib.local_items == []
        assert row_names(lib) == ["c.mp4"]
        assert lib.status == "Scan complete: 0 files."

    def test_selection_follows_key(self, library_env, server):
        library_env.make_files({"a.mp4": 1})
        server.add("c.mp4")
        lib = started(make_coordinator(server, library_env.library_dir))

        lib.select(index_of(lib, "c.mp4"))
        assert lib.selected_index == 1

        library_env.make_files({"new.mp4": 1})
        lib.refresh_local()
        drain(lib)

        assert lib.selected_row.name == "c.mp4"
        assert lib.selected_index == 2

    def test_deleted_selection_clamps(self, library_env, server):
        library_env.make_files({"a.mp4": 1, "b.mp4": 1, "c.mp4": 1})
        lib = started(make_coordinator(server, library_env.library_dir))
        lib.select(2)
        selected = lib.selected_row.path

        selected.unlink()
        lib.refresh_local()
        drain(lib)

        assert lib.selected_index == 1
        assert selected.name not in row_names(lib)

    def test_switch_library_dir(self, library_env, server):
        library_env.make_files({"a.mp4": 1})
        other = library_env.tmp / "Other"
        other.mkdir()
        (other / "b.mp4").write_bytes(b"x")
        lib = started(make_coordinator(server, library_env.library_dir))
        assert row_names(lib) == ["a.mp4"]

        lib.set_library_dir(other)
        drain(lib)

        assert lib.library_dir == other
        assert row_names(lib) == ["b.mp4"]
        # Summary starts over for the new folder
        assert lib.status == "Scan complete: 1 files."


class TestFetch:
    """Tests for fetch_selected()."""

    def test_fetch_then_rescan_gives_both(self, library_env, server):
        library_env.make_files({"a.mp4": 1})
        server.add("Clip.mp4", owner_id=3)
        lib = started(make_coordinator(server, library_env.library_dir))
        log = EventLog().attach(lib)

        lib.select(index_of(lib, "Clip.mp4"))
        assert lib.can_fetch()
        assert lib.fetch_selected()
        assert lib.busy
        drain(lib)

        assert (library_env.library_dir / "Clip.mp4").read_bytes() == b"media"
        assert lib.states["clip.mp4"] == ItemState.BOTH
        assert lib.selected_row.key == "clip.mp4"
        assert not lib.selected_row.is_virtual
        assert not lib.busy
        assert log.busy() == [
            (True, "Downloading from cloud..."),
            (False, "Download complete"),
        ]
        assert lib.status.startswith("Scan complete")

    def test_fetch_refused_for_local_rows(self, library_env, server):
        library_env.make_files({"a.mp4": 1})
        server.add("a.mp4")
        lib = started(make_coordinator(server, library_env.library_dir))
        lib.select(0)
        assert not lib.can_fetch()
        assert not lib.fetch_selected()
        assert server.fetch_calls == []

    def test_fetch_without_folder(self, server):
        server.add("c.mp4")
        lib = started(make_coordinator(server, None))
        log = EventLog().attach(lib)
        lib.select(0)
        assert not lib.fetch_selected()
        assert log.errors() == ["Library folder not configured."]

    def test_fetch_not_found(self, library_env, server):
        server.add("c.mp4")
        lib = started(make_coordinator(server, library_env.library_dir))
        log = EventLog().attach(lib)
        server.items.clear()

        lib.select(0)
        assert lib.fetch_selected()
        drain(lib)

        assert "Remote media not found." in log.errors()
        assert log.busy()[-1] == (False, "Download failed")
        assert lib.states["c.mp4"] == ItemState.REMOTE_ONLY
        assert not (library_env.library_dir / "c.mp4").exists()

    def test_cancel_fetch(self, library_env, server):
        server.add("c.mp4")
        lib = started(make_coordinator(server, library_env.library_dir))
        log = EventLog().attach(lib)
        scans_before = log.statuses().count("Scanning local folder...")

        server.transfer_gate = threading.Event()
        lib.select(0)
        assert lib.fetch_selected()
        # Same key can't be fetched twice at once
        assert not lib.fetch_selected()

        assert lib.cancel_transfers() == 1
        drain(lib)

        assert log.busy()[-1] == (False, "Download cancelled")
        assert not (library_env.library_dir / "c.mp4").exists()
        assert lib.states["c.mp4"] == ItemState.REMOTE_ONLY
        assert log.statuses().count("Scanning local folder...") == scans_before
        assert log.errors() == []

    def test_fetch_disabled_while_in_flight(self, library_env, server):
        server.add("c.mp4")
        lib = started(make_coordinator(server, library_env.library_dir))

        server.transfer_gate = threading.Event()
        lib.select(0)
        assert lib.fetch_selected()
        assert not lib.can_fetch()
        assert not lib.fetch_selected()

        server.transfer_gate.set()
        drain(lib)
        assert len(server.fetch_calls) == 1
        assert lib.states["c.mp4"] == ItemState.BOTH

    def test_server_file_name_stays_in_folder(self, library_env, server):
        outside = library_env.tmp / "absolute.mp3"
        server.add("../escaped.mp3")
        server.add(str(outside))
        lib = started(make_coordinator(server, library_env.library_dir))

        for name in ("../escaped.mp3", str(outside)):
            lib.select(index_of(lib, name))
            assert lib.fetch_selected()
            drain(lib)

        assert [dest for _, dest in server.fetch_calls] == [
            library_env.library_dir / "escaped.mp3",
            library_env.library_dir / "absolute.mp3",
        ]
        assert not (library_env.tmp / "escaped.mp3").exists()
        assert not outside.exists()
        assert (library_env.library_dir / "escaped.mp3").exists()


class TestPush:
    """Tests for push_selected()."""

    def test_push_then_reload_gives_both(self, library_env, server):
        library_env.make_files({"mine.mp4": 12})
        lib = started(make_coordinator(server, library_env.library_dir))
        log = EventLog().attach(lib)

        lib.select(0)
        assert lib.can_push()
        assert lib.push_selected()
        drain(lib)

        assert server.push_calls == [(library_env.library_dir / "mine.mp4", None)]
        assert lib.states["mine.mp4"] == ItemState.BOTH
        assert log.busy() == [(True, "Uploading to cloud..."), (False, "Upload complete")]
        assert lib.selected_row.name == "mine.mp4"

    def test_push_refused_when_already_remote(self, library_env, server):
        library_env.make_files({"a.mp4": 1})
        server.add("a.mp4")
        lib = started(make_coordinator(server, library_env.library_dir))
        lib.select(0)
        assert not lib.can_push()
        assert not lib.push_selected()

    def test_push_missing_file(self, library_env, server):
        path = library_env.make_files({"gone.mp4": 1})[0]
        lib = started(make_coordinator(server, library_env.library_dir))
        log = EventLog().attach(lib)
        lib.select(0)
        path.unlink()

        assert not lib.can_push()
        assert not lib.push_selected()
        assert log.errors() == [f"Local file not found: {path}"]
        assert server.push_calls == []

    def test_push_during_remote_load_reloads_again(self, library_env, server):
        library_env.make_files({"mine.mp4": 1})
        lib = started(make_coordinator(server, library_env.library_dir))
        calls_before = server.list_calls

        server.list_gate = threading.Event()
        lib.refresh_remote()
        lib.select(0)
        lib.push_selected()

        # Let the upload land while the listing is still held
        for _ in range(200):
            lib.dispatcher.wait_and_process(0.02)
            if not lib.busy:
                break
        server.list_gate.set()
        drain(lib)

        assert server.list_calls == calls_before + 2
        assert lib.states["mine.mp4"] == ItemState.BOTH

    def test_push_disabled_while_in_flight(self, library_env, server):
        library_env.make_files({"mine.mp4": 1})
        lib = started(make_coordinator(server, library_env.library_dir))

        server.transfer_gate = threading.Event()
        lib.select(0)
        assert lib.push_selected()
        assert not lib.can_push()
        assert not lib.push_selected()

        server.transfer_gate.set()
        drain(lib)
        assert len(server.push_calls) == 1
        assert lib.states["mine.mp4"] == ItemState.BOTH

    def test_directory_is_not_pushable(self, library_env, server):
        folder = library_env.library_dir / "clip.mp4"
        folder.mkdir()
        item = LocalItem(
            name="clip.mp4",
            path=folder,
            size=0,
            mime_type="video/mp4",
            extension="mp4",
            timestamp=None,
        )
        lib = started(make_coordinator(server, library_env.library_dir, lister=lambda _: [item]))
        log = EventLog().attach(lib)
        lib.select(0)

        assert not lib.can_push()
        assert not lib.push_selected()
        assert log.errors() == [f"Local file not found: {folder}"]
        assert server.push_calls == []


class TestDelete:
    """Tests for delete_selected()."""

    def test_delete_item_on_both_sides(self, library_env, server):
        library_env.make_files({"a.mp4": 1, "b.mp4": 1})
        server.add("b.mp4")
        lib = started(make_coordinator(server, library_env.library_dir))
        lib.select(index_of(lib, "b.mp4"))

        assert lib.can_delete()
        assert lib.delete_selected()
        # Applied at once: the remote copy takes over the selection
        assert lib.selected_row.name == "b.mp4"
        assert lib.selected_row.is_virtual
        drain(lib)

        assert not (library_env.library_dir / "b.mp4").exists()
        assert lib.states["b.mp4"] == ItemState.REMOTE_ONLY
        assert lib.selected_row.key == "b.mp4"
        assert lib.selected_row.is_virtual

    def test_delete_local_only_selects_previous(self, library_env, server):
        library_env.make_files({"a.mp4": 1, "b.mp4": 1})
        lib = started(make_coordinator(server, library_env.library_dir))
        lib.select(1)
        keep = lib.rows[0].name

        assert lib.delete_selected()
        drain(lib)

        assert row_names(lib) == [keep]
        assert lib.selected_index == 0

    def test_cannot_delete_virtual_row(self, library_env, server):
        server.add("c.mp4")
        lib = started(make_coordinator(server, library_env.library_dir))
        lib.select(0)
        assert not lib.can_delete()
        assert not lib.delete_selected()

    def test_already_gone(self, library_env, server):
        path = library_env.make_files({"a.mp4": 1})[0]
        lib = started(make_coordinator(server, library_env.library_dir))
        log = EventLog().attach(lib)
        lib.select(0)
        path.unlink()

        assert not lib.delete_selected()
        drain(lib)
        assert log.errors()[0].startswith("Could not delete")
        assert lib.rows == []


class TestViewAndFilters:
    """Tests for view mode and filter changes."""

    def test_octet_stream_mp3_under_audio(self, library_env, server):
        server.add("track.mp3", mime_type="application/octet-stream")
        server.add("clip.mp4", mime_type="video/mp4")
        lib = started(make_coordinator(server, library_env.library_dir))

        lib.set_kind(MediaKind.AUDIO)
        assert row_names(lib) == ["track.mp3"]
        lib.set_kind(MediaKind.VIDEO)
        assert row_names(lib) == ["clip.mp4"]

    def test_view_modes(self, library_env, server):
        library_env.make_files({"a.mp4": 1, "b.mp4": 1})
        server.add("b.mp4")
        server.add("c.mp4")
        lib = started(make_coordinator(server, library_env.library_dir))

        lib.set_view_mode(ViewMode.LOCAL)
        assert sorted(row_names(lib)) == ["a.mp4", "b.mp4"]
        lib.set_view_mode(ViewMode.REMOTE)
        assert row_names(lib) == ["b.mp4", "c.mp4"]
        lib.set_view_mode(ViewMode.ALL)
        names = row_names(lib)
        assert sorted(names) == ["a.mp4", "b.mp4", "c.mp4"]
        assert len(names) == len(set(names))

    def test_selection_survives_view_switch(self, library_env, server):
        library_env.make_files({"a.mp4": 1, "b.mp4": 1})
        server.add("b.mp4")
        lib = started(make_coordinator(server, library_env.library_dir))
        lib.select(index_of(lib, "b.mp4"))

        lib.set_view_mode(ViewMode.REMOTE)
        assert lib.selected_row.name == "b.mp4"
        assert lib.selected_row.is_virtual

    def test_this_week(self, library_env, server):
        library_env.make_files({"fresh.mp4": 1})
        server.add("c.mp4")
        now = datetime.now()

        lib = started(make_coordinator(
            server, library_env.library_dir, filters=ViewFilters(this_week=True), now=now,
        ))
        assert row_names(lib) == ["fresh.mp4"]

        later = started(make_coordinator(
            server, library_env.library_dir, filters=ViewFilters(this_week=True),
            now=now + timedelta(days=30),
        ))
        assert row_names(later) == []


class TestPredicates:
    """Tests for can_open() and describe_selected()."""

    def test_can_open(self, library_env, server):
        library_env.make_files({"a.mp4": 1})
        server.add("c.mp4")
        lib = started(make_coordinator(server, library_env.library_dir))

        lib.select(index_of(lib, "a.mp4"))
        assert lib.can_open()
        lib.select(index_of(lib, "c.mp4"))
        assert not lib.can_open()

    def test_nothing_selected(self, server):
        lib = started(make_coordinator(server, None))
        assert lib.selected_row is None
        assert not lib.can_delete()
        assert not lib.can_fetch()
        assert not lib.can_push()
        assert not lib.can_open()
        assert lib.describe_selected() == []

    def test_describe_selected(self, library_env, server):
        server.add("c.mp4", owner_id=4)
        server.nicknames[4] = "dana"
        lib = started(make_coordinator(server, library_env.library_dir))
        lib.select(0)
        pairs = dict(lib.describe_selected())
        assert pairs["Name"] == "c.mp4"
        assert pairs["Uploader"] == "dana"

    def test_unsubscribe(self, server):
        lib = make_coordinator(server, None)
        seen = []
        unsubscribe = lib.subscribe(LibraryEvent.ROWS_CHANGED, seen.append)
        unsubscribe()
        started(lib)
        assert seen == []
