"""
Selection tracking across view rebuilds.

Before every rebuild the selected row's key and index are captured; afterward
the same logical item is re-selected wherever it landed. If it is gone, the
old position is clamped into the new row count.
"""

from dataclasses import dataclass
from typing import Optional, Sequence

from .models import Row


@dataclass(frozen=True)
class SelectionSnapshot:
    """Selected key and index captured just before a rebuild."""
    key: Optional[str]
    index: int


def find_key(rows: Sequence[Row], key: Optional[str]) -> int:
    """Index of the first row with this key, or -1."""
    if key is None:
        return -1
    for i, row in enumerate(rows):
        if row.key == key:
            return i
    return -1


def _clamp(index: int, count: int) -> int:
    return max(0, min(index, count - 1))


class SelectionTracker:
    """Owns the selected index into the current row list."""

    def __init__(self):
        self.selected_index: int = -1

    def selected_row(self, rows: Sequence[Row]) -> Optional[Row]:
        if 0 <= self.selected_index < len(rows):
            return rows[self.selected_index]
        return None

    def select(self, index: int, rows: Sequence[Row]) -> bool:
        """Select a row by index; out-of-range clears. Returns True if a row is selected."""
        if 0 <= index < len(rows):
            self.selected_index = index
            return True
        self.selected_index = -1
        return False

    def clear(self):
        self.selected_index = -1

    def capture(self, rows: Sequence[Row]) -> SelectionSnapshot:
        row = self.selected_row(rows)
        return SelectionSnapshot(
            key=row.key if row is not None else None,
            index=self.selected_index,
        )

    def restore(self, snapshot: Optional[SelectionSnapshot], rows: Sequence[Row]) -> int:
        """
        Re-apply a snapshot to freshly built rows.

        1. Same key anywhere in the new rows wins (the item may have moved or
           changed state, e.g. REMOTE_ONLY -> BOTH).
        2. Otherwise the previous index, clamped into range.
        3. No rows: selection cleared.

        Returns:
            The new selected index (-1 when cleared).
        """
        if snapshot is None or not rows:
            self.selected_index = -1
            return self.selected_index

        same = find_key(rows, snapshot.key)
        if same >= 0:
            self.selected_index = same
        else:
            self.selected_index = _clamp(snapshot.index, len(rows))
        return self.selected_index

    def restore_after_delete(self, key: Optional[str], old_index: int, rows: Sequence[Row]) -> int:
        """
        Restore after deleting the row at old_index.

        The item may survive as a remote row (BOTH -> REMOTE_ONLY); otherwise
        the row before the deleted one is selected.
        """
        if not rows:
            self.selected_index = -1
            return self.selected_index

        same = find_key(rows, key)
        if same >= 0:
            self.selected_index = same
        else:
            self.selected_index = _clamp(old_index - 1, len(rows))
        return self.selected_index

    def select_key(self, key: Optional[str], rows: Sequence[Row]) -> bool:
        """Select the row with this key if present. Leaves selection alone otherwise."""
        idx = find_key(rows, key)
        if idx < 0:
            return False
        self.selected_index = idx
        return True
