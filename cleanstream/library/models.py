"""
Library data model for CleanStream.

LocalItem and RemoteItem are produced by the directory lister and the remote
listing call and are never mutated. Rows are what the view builder emits: a
LocalRow wraps a file on disk, a VirtualRow stands in for a remote item that
has no local copy.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Optional, Union

from ..core.formatting import normalize_key, split_extension


class ItemState(Enum):
    """Where a logical item (by key) currently exists."""
    LOCAL_ONLY = "local_only"
    REMOTE_ONLY = "remote_only"
    BOTH = "both"


@dataclass(frozen=True)
class LocalItem:
    """A media file found in the local library folder."""
    name: str
    path: Path
    size: int
    mime_type: str
    extension: Optional[str]
    timestamp: Optional[datetime]
    source_url: Optional[str] = None

    @property
    def key(self) -> Optional[str]:
        return normalize_key(self.name)


@dataclass(frozen=True)
class RemoteItem:
    """A media record stored on the server."""
    media_id: int
    owner_id: Optional[int]
    file_name: str
    mime_type: Optional[str]
    storage_ref: Optional[str] = None
    source_url: Optional[str] = None

    @property
    def key(self) -> Optional[str]:
        return normalize_key(self.file_name)

    @classmethod
    def from_api(cls, data: dict) -> "RemoteItem":
        """Build from a /api/files JSON record."""
        owner = data.get("userId")
        return cls(
            media_id=int(data["id"]),
            owner_id=int(owner) if owner is not None else None,
            file_name=data.get("mediaFileName") or "",
            mime_type=data.get("mediaMimeType"),
            storage_ref=data.get("blobNameGuid"),
            source_url=data.get("downloadedFromUrl"),
        )


@dataclass(eq=False)
class LocalRow:
    """View row backed by a file on disk.

    When the item also exists remotely, owner_id/media_id point at the remote
    counterpart so the row can show who uploaded it.
    """
    item: LocalItem
    owner_id: Optional[int] = None
    media_id: Optional[int] = None
    nickname: Optional[str] = field(default=None)

    is_virtual = False

    @property
    def key(self) -> Optional[str]:
        return self.item.key

    @property
    def name(self) -> str:
        return self.item.name

    @property
    def path(self) -> Optional[Path]:
        return self.item.path

    @property
    def size(self) -> Optional[int]:
        return self.item.size

    @property
    def mime_type(self) -> Optional[str]:
        return self.item.mime_type

    @property
    def extension(self) -> Optional[str]:
        return self.item.extension

    @property
    def timestamp(self) -> Optional[datetime]:
        return self.item.timestamp

    @property
    def source_url(self) -> Optional[str]:
        return self.item.source_url


@dataclass(eq=False)
class VirtualRow:
    """View row for a remote item with no local file (yet)."""
    item: RemoteItem
    nickname: Optional[str] = field(default=None)

    is_virtual = True

    @property
    def key(self) -> Optional[str]:
        return self.item.key

    @property
    def name(self) -> str:
        return self.item.file_name

    @property
    def path(self) -> Optional[Path]:
        return None

    @property
    def size(self) -> Optional[int]:
        return None

    @property
    def mime_type(self) -> Optional[str]:
        return self.item.mime_type

    @property
    def extension(self) -> Optional[str]:
        return split_extension(self.item.file_name)

    @property
    def timestamp(self) -> Optional[datetime]:
        return None

    @property
    def source_url(self) -> Optional[str]:
        return self.item.source_url

    @property
    def owner_id(self) -> Optional[int]:
        return self.item.owner_id

    @property
    def media_id(self) -> int:
        return self.item.media_id


Row = Union[LocalRow, VirtualRow]
