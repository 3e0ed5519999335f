"""
Reconciliation of the local and remote inventories.

Classifies every logical item (by normalized key) as LOCAL_ONLY, REMOTE_ONLY
or BOTH. The map is always rebuilt from the full inventories; callers replace
their copy wholesale and never patch it, so deletions on either side can't
leave stale entries behind.
"""

from collections import Counter
from typing import Iterable, Optional

from .models import ItemState, LocalItem, RemoteItem


def recompute(
    local_items: Iterable[LocalItem],
    remote_items: Iterable[RemoteItem],
) -> dict[str, ItemState]:
    """
    Build the key -> ItemState map from both inventories.

    Items whose name normalizes to no key are skipped.

    Args:
        local_items: Current local inventory
        remote_items: Current remote inventory

    Returns:
        New map; the caller's previous map is invalid after this.
    """
    states: dict[str, ItemState] = {}

    for item in local_items:
        key = item.key
        if key is None:
            continue
        states[key] = ItemState.LOCAL_ONLY

    for item in remote_items:
        key = item.key
        if key is None:
            continue
        current = states.get(key)
        if current is None:
            states[key] = ItemState.REMOTE_ONLY
        elif current == ItemState.LOCAL_ONLY:
            states[key] = ItemState.BOTH
        # BOTH stays BOTH; REMOTE_ONLY duplicates stay REMOTE_ONLY

    return states


def state_of(states: dict[str, ItemState], key: Optional[str]) -> Optional[ItemState]:
    """Look up a key's state; None for absent keys."""
    if key is None:
        return None
    return states.get(key)


def count_states(states: dict[str, ItemState]) -> dict[ItemState, int]:
    """Count keys per state (every state present, zero if unused)."""
    counts = Counter(states.values())
    return {state: counts.get(state, 0) for state in ItemState}


def index_remote_by_key(remote_items: Iterable[RemoteItem]) -> dict[str, RemoteItem]:
    """First remote item per key, in inventory order."""
    index: dict[str, RemoteItem] = {}
    for item in remote_items:
        key = item.key
        if key is not None and key not in index:
            index[key] = item
    return index
