#!/usr/bin/env python3
"""
CleanStream - Mirror a local media library against the CleanStream server.

Terminal host for the library coordinator: lists local and cloud media side
by side, and fetches, pushes or deletes the selected item.
"""

import argparse
import os
import shlex
import sys
from functools import partial
from pathlib import Path

from cleanstream import __version__
from cleanstream.config import UserSettings
from cleanstream.core.logging import install_tee, debug_log
from cleanstream.core.paths import (
    get_settings_path,
    get_log_dir,
    get_default_library_path,
)
from cleanstream.library import (
    Dispatcher,
    ItemState,
    LibraryCoordinator,
    LibraryEvent,
    MediaKind,
    ViewFilters,
    ViewMode,
    scan_local_items,
)
from cleanstream.remote import MediaClient, MediaClientConfig, MediaTransfer
from cleanstream.ui.primitives import clear_screen
from cleanstream.ui.widgets import display

# ============================================================================
# Configuration
# ============================================================================

# Bearer token for the media server; signing in is handled elsewhere
TOKEN_ENV = "CLEANSTREAM_TOKEN"

# Seconds to wait for background results after each command
DRAIN_TIMEOUT = 0.3


def _get_token() -> str | None:
    return os.environ.get(TOKEN_ENV) or None


# ============================================================================
# Main Application
# ============================================================================


class MirrorApp:
    """Main application controller."""

    def __init__(self, settings: UserSettings, library_dir: Path | None = None):
        self.settings = settings

        base_url = settings.api_base_url
        self.client = MediaClient(MediaClientConfig(base_url=base_url), auth_token=_get_token)
        self.transfer = MediaTransfer(base_url, auth_token=_get_token)

        folder = library_dir or settings.get_library_path()
        self.dispatcher = Dispatcher()
        self.library = LibraryCoordinator(
            self.dispatcher,
            lister=partial(scan_local_items, recursive=settings.recursive_scan),
            remote_lister=self.client.list_media,
            fetcher=self.transfer.download,
            pusher=self.transfer.upload,
            nickname_lookup=self.client.get_nickname,
            library_dir=folder,
            view_mode=ViewMode(settings.view_mode),
            filters=ViewFilters(
                kind=MediaKind(settings.kind_filter),
                this_week=settings.this_week_only,
            ),
        )

        self.library.subscribe(LibraryEvent.STATUS_CHANGED, self._on_status)
        self.library.subscribe(LibraryEvent.BUSY_CHANGED, display.busy)
        self.library.subscribe(LibraryEvent.ERROR, display.error)
        self.library.subscribe(LibraryEvent.ROW_UPDATED, display.row_updated)
        self._last_status = ""

    def _on_status(self, message: str):
        # Busy messages are printed by the busy handler
        if message != self._last_status and message != self.library.busy_message:
            display.status(message)
        self._last_status = message

    # =========================================================================
    # Commands
    # =========================================================================

    def show_rows(self):
        lib = self.library
        display.view_line(
            lib.view_mode.value,
            lib.filters.kind.value,
            lib.filters.this_week,
            lib.counts(),
        )
        display.rows(lib.rows, lib.states, lib.selected_index)

    def handle_select(self, arg: str):
        try:
            index = int(arg) - 1
        except ValueError:
            display.warning(f"Not a row number: {arg}")
            return
        if self.library.select(index):
            display.selection(self.library.selected_index, self.library.selected_row)
        else:
            display.warning(f"No row {arg}")

    def handle_view(self, arg: str):
        try:
            self.settings.set_view_mode(arg)
        except ValueError as e:
            display.warning(str(e))
            return
        self.settings.save()
        self.library.set_view_mode(ViewMode(arg))
        self.show_rows()

    def handle_kind(self, arg: str):
        try:
            self.settings.set_kind_filter(arg)
        except ValueError as e:
            display.warning(str(e))
            return
        self.settings.save()
        self.library.set_kind(MediaKind(arg))
        self.show_rows()

    def handle_week(self):
        enabled = self.settings.toggle_this_week()
        self.settings.save()
        self.library.set_this_week(enabled)
        self.show_rows()

    def handle_folder(self, arg: str):
        if not arg:
            display.warning("Usage: folder PATH")
            return
        folder = Path(arg).expanduser().resolve()
        if not folder.is_dir():
            display.warning(f"Not a folder: {folder}")
            return
        self.settings.set_library_path(folder)
        self.settings.save()
        self.library.set_library_dir(folder)

    def handle_fetch(self):
        if not self.library.can_fetch():
            display.warning("Select a cloud-only item to download.")
            return
        self.library.fetch_selected()

    def handle_push(self):
        lib = self.library
        if lib.state_of(lib.selected_row) != ItemState.LOCAL_ONLY:
            display.warning("Select a local-only item to upload.")
            return
        lib.push_selected()

    def handle_delete(self):
        if not self.library.can_delete():
            display.warning("Select an item with a local file to delete.")
            return
        row = self.library.selected_row
        answer = input(f"  Delete {row.path}? [y/N] ").strip().lower()
        if answer == "y":
            if self.library.delete_selected():
                print("  File deleted.")

    def handle_cancel(self):
        count = self.library.cancel_transfers()
        print(f"  Cancelling {count} transfer(s)." if count else "  Nothing to cancel.")

    def dispatch(self, line: str) -> bool:
        """Run one command line. Returns False to quit."""
        try:
            parts = shlex.split(line)
        except ValueError as e:
            display.warning(str(e))
            return True
        if not parts:
            return True

        cmd, args = parts[0].lower(), parts[1:]
        arg = args[0] if args else ""
        debug_log(f"COMMAND | {line}")

        if cmd in ("quit", "exit", "q"):
            return False
        elif cmd in ("list", "ls"):
            self.show_rows()
        elif cmd == "select":
            self.handle_select(arg)
        elif cmd == "view":
            self.handle_view(arg)
        elif cmd == "kind":
            self.handle_kind(arg)
        elif cmd == "week":
            self.handle_week()
        elif cmd == "folder":
            self.handle_folder(arg)
        elif cmd == "scan":
            self.library.refresh_local()
        elif cmd == "reload":
            if not self.library.refresh_remote():
                display.warning("Cloud library is already loading.")
        elif cmd == "fetch":
            self.handle_fetch()
        elif cmd == "push":
            self.handle_push()
        elif cmd == "cancel":
            self.handle_cancel()
        elif cmd == "delete":
            self.handle_delete()
        elif cmd == "info":
            display.details(self.library.describe_selected())
        elif cmd in ("help", "?"):
            display.help_text()
        else:
            display.warning(f"Unknown command: {cmd} (try 'help')")
        return True

    def run(self):
        """Main application loop."""
        clear_screen()
        display.header(__version__, self.settings.library_dir, self.settings.api_base_url)
        if _get_token() is None:
            display.warning(f"{TOKEN_ENV} is not set; the server will reject requests.")

        self.library.start()
        self.dispatcher.run_until_idle(timeout=15.0)
        self.show_rows()

        try:
            while True:
                self.dispatcher.process_pending()
                try:
                    line = input("> ")
                except EOFError:
                    break
                if not self.dispatch(line):
                    break
                self.dispatcher.wait_and_process(DRAIN_TIMEOUT)
        finally:
            self.library.shutdown()
            print("\nGoodbye!")


def main():
    """Entry point."""
    parser = argparse.ArgumentParser(
        description="CleanStream - Mirror a local media library against the CleanStream server"
    )
    parser.add_argument("--library", type=Path, help="Library folder (saved to settings)")
    parser.add_argument("--server", help="Media server base URL (saved to settings)")
    parser.add_argument("--recursive", action="store_true", help="Scan subfolders too")
    args = parser.parse_args()

    # Always log to .cleanstream/logs/YYYY-MM-DD.log
    install_tee(get_log_dir(), version=__version__)

    settings = UserSettings.load(get_settings_path())
    if args.library:
        settings.set_library_path(args.library.expanduser().resolve())
    elif settings.is_new and settings.library_dir is None:
        default = get_default_library_path()
        default.mkdir(exist_ok=True)
        settings.set_library_path(default)
    if args.server:
        settings.api_base_url = args.server
    if args.recursive:
        settings.recursive_scan = True
    settings.save()

    app = MirrorApp(settings)
    app.run()


if __name__ == "__main__":
    try:
        main()
    except KeyboardInterrupt:
        print("\n\nCancelled by user.")
        sys.exit(0)
