"""
Library reconciliation and live view for CleanStream.

Matches the local library folder against the server listing, builds the
filtered row list, keeps selection stable across refreshes, and supervises
transfers and nickname lookups.
"""

from .models import ItemState, LocalItem, RemoteItem, LocalRow, VirtualRow, Row
from .reconcile import recompute, state_of, count_states, index_remote_by_key
from .filters import MediaKind, ViewFilters, is_audio, is_video, in_current_week
from .view import ViewMode, build_rows, describe_row
from .selection import SelectionSnapshot, SelectionTracker
from .dispatch import Dispatcher
from .nicknames import NicknameResolver, UNKNOWN_NICKNAME
from .scanner import scan_local_items, guess_mime_type
from .transfers import TransferKind, TransferHandle, TransferSupervisor
from .coordinator import LibraryCoordinator, LibraryEvent, scan_summary

__all__ = [
    # Model
    "ItemState",
    "LocalItem",
    "RemoteItem",
    "LocalRow",
    "VirtualRow",
    "Row",
    # Reconciliation
    "recompute",
    "state_of",
    "count_states",
    "index_remote_by_key",
    # View
    "MediaKind",
    "ViewFilters",
    "is_audio",
    "is_video",
    "in_current_week",
    "ViewMode",
    "build_rows",
    "describe_row",
    "SelectionSnapshot",
    "SelectionTracker",
    # Background work
    "Dispatcher",
    "NicknameResolver",
    "UNKNOWN_NICKNAME",
    "scan_local_items",
    "guess_mime_type",
    "TransferKind",
    "TransferHandle",
    "TransferSupervisor",
    # Coordinator
    "LibraryCoordinator",
    "LibraryEvent",
    "scan_summary",
]
