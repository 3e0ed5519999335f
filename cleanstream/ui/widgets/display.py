"""
Centralized display functions for formatted output.

Any output with color codes or complex formatting belongs here.
Plain text prints can be inlined at the call site.

Usage:
    from cleanstream.ui.widgets import display
    display.rows(coordinator.rows, coordinator.states, coordinator.selected_index)
"""

from typing import Optional, Sequence

from ..primitives import Colors, fit, get_terminal_width
from ...core.formatting import format_size, format_timestamp
from ...library.models import ItemState, Row

_c = Colors

# Badge per state, shown before each row name
_BADGES = {
    ItemState.LOCAL_ONLY: (_c.MUTED, "L "),
    ItemState.REMOTE_ONLY: (_c.CYAN, " R"),
    ItemState.BOTH: (_c.GREEN, "LR"),
}


# === Session ===

def header(version: str, folder: Optional[str], server: str):
    print()
    print(f"  {_c.BOLD}{_c.INDIGO}CleanStream{_c.RESET} {_c.DIM}v{version}{_c.RESET}")
    print(f"  {_c.DIM}Library:{_c.RESET} {folder or _c.RED + 'not configured' + _c.RESET}")
    print(f"  {_c.DIM}Server:{_c.RESET}  {server}")
    print()


def view_line(view_mode: str, kind: str, this_week: bool, counts: dict[ItemState, int]):
    week = f" {_c.PINK}this week{_c.RESET}" if this_week else ""
    print(
        f"  {_c.DIM}view{_c.RESET} {view_mode}  {_c.DIM}kind{_c.RESET} {kind}{week}  "
        f"{_c.DIM}|{_c.RESET} {counts.get(ItemState.LOCAL_ONLY, 0)} local, "
        f"{counts.get(ItemState.REMOTE_ONLY, 0)} remote, "
        f"{counts.get(ItemState.BOTH, 0)} both"
    )


def help_text():
    print()
    print(f"  {_c.HOTKEY}list{_c.RESET}            show rows")
    print(f"  {_c.HOTKEY}select N{_c.RESET}        select row N")
    print(f"  {_c.HOTKEY}view MODE{_c.RESET}       all | local | remote")
    print(f"  {_c.HOTKEY}kind KIND{_c.RESET}       all | audio | video")
    print(f"  {_c.HOTKEY}week{_c.RESET}            toggle this-week filter")
    print(f"  {_c.HOTKEY}folder PATH{_c.RESET}     switch library folder")
    print(f"  {_c.HOTKEY}scan{_c.RESET}            rescan library folder")
    print(f"  {_c.HOTKEY}reload{_c.RESET}          reload cloud library")
    print(f"  {_c.HOTKEY}fetch{_c.RESET} / {_c.HOTKEY}push{_c.RESET}    download / upload selected")
    print(f"  {_c.HOTKEY}cancel{_c.RESET}          cancel transfers")
    print(f"  {_c.HOTKEY}delete{_c.RESET}          delete selected local file")
    print(f"  {_c.HOTKEY}info{_c.RESET}            details of selected row")
    print(f"  {_c.HOTKEY}quit{_c.RESET}")
    print()


# === Rows ===

def row_line(
    index: int,
    total: int,
    row: Row,
    state: Optional[ItemState],
    selected: bool,
    width: int = 80,
) -> str:
    """One list line: "[3/40] > LR name   12.0 MB  2026-10-19 14:02  nick"."""
    color, badge = _BADGES.get(state, (_c.DIM, "  "))
    marker = f"{_c.PINK}>{_c.RESET}" if selected else " "
    size = format_size(row.size) if row.size is not None else ""
    date = format_timestamp(row.timestamp)
    nick = row.nickname or ""

    prefix = f"[{index + 1}/{total}]"
    # prefix, marker, badge, size, date, nick columns plus separators
    name_width = max(10, width - len(prefix) - 2 - 3 - 11 - 17 - 14 - 6)
    name_color = _c.VIRTUAL if row.is_virtual else ""

    return (
        f"  {prefix} {marker} {color}{badge}{_c.RESET} "
        f"{name_color}{fit(row.name, name_width)}{_c.RESET} "
        f"{_c.DIM}{size:>10}  {date:<16} {fit(nick, 14)}{_c.RESET}"
    )


def rows(all_rows: Sequence[Row], states: dict[str, ItemState], selected_index: int):
    if not all_rows:
        print(f"  {_c.DIM}(no items){_c.RESET}")
        return
    width = get_terminal_width()
    total = len(all_rows)
    for i, row in enumerate(all_rows):
        state = states.get(row.key) if row.key is not None else None
        print(row_line(i, total, row, state, i == selected_index, width))


def row_updated(index: int, row: Row):
    if row.nickname:
        print(f"  {_c.DIM}#{index + 1} uploaded by {row.nickname}{_c.RESET}")


def details(pairs: Sequence[tuple[str, str]]):
    if not pairs:
        print(f"  {_c.DIM}Nothing selected.{_c.RESET}")
        return
    label_width = max(len(label) for label, _ in pairs)
    print()
    for label, value in pairs:
        print(f"  {_c.DIM}{label.ljust(label_width)}{_c.RESET}  {value}")
    print()


def selection(index: int, row: Optional[Row]):
    if row is None:
        print(f"  {_c.DIM}No selection{_c.RESET}")
    else:
        print(f"  {_c.DIM}Selected{_c.RESET} #{index + 1} {row.name}")


# === Status ===

def status(message: str):
    print(f"  {_c.DIM}{message}{_c.RESET}")


def busy(is_busy: bool, message: str):
    color = _c.CYAN if is_busy else _c.GREEN
    if not is_busy and ("failed" in message or "cancelled" in message):
        color = _c.RED
    print(f"  {color}{message}{_c.RESET}")


def error(message: str):
    print(f"\n  {_c.RED}Error:{_c.RESET} {message}\n")


def warning(message: str):
    print(f"  {_c.DIM}Warning: {message}{_c.RESET}")
