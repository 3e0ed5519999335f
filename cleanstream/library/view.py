"""
View building: project the reconciled inventories into ordered rows.

LOCAL shows local files, REMOTE shows everything on the server, ALL shows
local files plus remote-only items. An item present on both sides appears
once in ALL, through its local row.
"""

from datetime import datetime
from enum import Enum
from typing import Optional, Sequence

from ..core.formatting import format_path, format_size, format_timestamp
from .filters import ViewFilters, matches_filters
from .models import ItemState, LocalItem, LocalRow, RemoteItem, Row, VirtualRow
from .reconcile import index_remote_by_key


class ViewMode(Enum):
    LOCAL = "local"
    REMOTE = "remote"
    ALL = "all"


def build_rows(
    local_items: Sequence[LocalItem],
    remote_items: Sequence[RemoteItem],
    states: dict[str, ItemState],
    view_mode: ViewMode,
    filters: ViewFilters,
    now: Optional[datetime] = None,
) -> list[Row]:
    """
    Build the ordered row list for a view mode and filters.

    Local rows come first in inventory order, then virtual rows in remote
    inventory order. Remote items missing from the state map count as
    REMOTE_ONLY; remote items without a key are skipped.

    Args:
        local_items: Current local inventory
        remote_items: Current remote inventory
        states: Map from reconcile.recompute() over the same inventories
        view_mode: Which side(s) to show
        filters: Kind and recency filters
        now: Reference time for the week filter (defaults to now)

    Returns:
        Fresh Row objects; nothing is shared with a previous build.
    """
    rows: list[Row] = []
    # Keys already emitted; the first item per key wins on either side
    seen: set[str] = set()

    if view_mode in (ViewMode.LOCAL, ViewMode.ALL):
        remote_by_key = index_remote_by_key(remote_items)
        for item in local_items:
            if item.key is not None and item.key in seen:
                continue
            remote = remote_by_key.get(item.key) if item.key is not None else None
            row = LocalRow(
                item,
                owner_id=remote.owner_id if remote else None,
                media_id=remote.media_id if remote else None,
            )
            if matches_filters(row, filters, now):
                if item.key is not None:
                    seen.add(item.key)
                rows.append(row)

    if view_mode in (ViewMode.REMOTE, ViewMode.ALL):
        if view_mode == ViewMode.REMOTE:
            wanted = (ItemState.REMOTE_ONLY, ItemState.BOTH)
        else:
            wanted = (ItemState.REMOTE_ONLY,)

        for item in remote_items:
            key = item.key
            if key is None or key in seen:
                continue
            state = states.get(key, ItemState.REMOTE_ONLY)
            if state not in wanted:
                continue
            row = VirtualRow(item)
            if matches_filters(row, filters, now):
                seen.add(key)
                rows.append(row)

    return rows


def describe_row(row: Optional[Row]) -> list[tuple[str, str]]:
    """Property/value pairs for the metadata panel. Empty for no row."""
    if row is None:
        return []
    return [
        ("Name", row.name or ""),
        ("Path", format_path(row.path)),
        ("Size", format_size(row.size) if row.size is not None else ""),
        ("MIME", row.mime_type or ""),
        ("Extension", row.extension or ""),
        ("Date", format_timestamp(row.timestamp)),
        ("Uploader", row.nickname or ""),
    ]
