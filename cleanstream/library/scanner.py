"""
Local library folder scanning.

Produces the LocalItem inventory the coordinator reconciles against the
server listing.
"""

import mimetypes
import os
from datetime import datetime
from pathlib import Path
from typing import Optional

from ..core.constants import (
    AUDIO_EXTENSIONS,
    GENERIC_MIME,
    IMAGE_EXTENSIONS,
    MIME_FALLBACK,
    TEMP_EXTENSIONS,
    VIDEO_EXTENSIONS,
)
from ..core.formatting import split_extension
from ..core.logging import debug_log
from .models import LocalItem

# Families that get a generic "<family>/*" type when the exact type is unknown
_FAMILIES = (
    ("video", VIDEO_EXTENSIONS),
    ("audio", AUDIO_EXTENSIONS),
    ("image", IMAGE_EXTENSIONS),
)


def guess_mime_type(file_name: str) -> str:
    """
    Best-effort MIME type for a file name.

    Order: platform registry, built-in fallback table, then the family of
    the extension, then application/octet-stream.
    """
    guessed, _ = mimetypes.guess_type(file_name, strict=False)
    if guessed:
        return guessed

    ext = split_extension(file_name)
    if ext:
        ext = ext.lower()
        if ext in MIME_FALLBACK:
            return MIME_FALLBACK[ext]
        for family, extensions in _FAMILIES:
            if ext in extensions:
                return f"{family}/*"

    return GENERIC_MIME


def _timestamp(st: os.stat_result) -> datetime:
    """Creation time when the platform reports it, else modification time."""
    birth = getattr(st, "st_birthtime", None)
    if birth:
        return datetime.fromtimestamp(birth)
    return datetime.fromtimestamp(st.st_mtime)


def _is_skipped(name: str) -> bool:
    if name.startswith("."):
        return True
    ext = split_extension(name)
    return ext is not None and ext.lower() in TEMP_EXTENSIONS


def _to_item(path: Path) -> Optional[LocalItem]:
    try:
        st = path.stat()
    except OSError as e:
        debug_log(f"SCAN_SKIP | {path} | {e}")
        return None

    return LocalItem(
        name=path.name,
        path=path.absolute(),
        size=st.st_size,
        mime_type=guess_mime_type(path.name),
        extension=split_extension(path.name),
        timestamp=_timestamp(st),
    )


def scan_local_items(folder: Optional[Path], recursive: bool = False) -> list[LocalItem]:
    """
    List media files in the library folder, newest first.

    Only regular files are included. Hidden files and files still being
    written by a downloader (.part, .crdownload, ...) are skipped, as are
    entries that can't be read.

    Args:
        folder: Library folder; None, missing or not a directory yields []
        recursive: Also descend into (non-hidden) subfolders

    Returns:
        LocalItems sorted by timestamp, newest first
    """
    if folder is None or not folder.is_dir():
        return []

    items: list[LocalItem] = []
    pending = [folder]

    while pending:
        current = pending.pop()
        try:
            entries = list(os.scandir(current))
        except OSError as e:
            debug_log(f"SCAN_DIR_FAIL | {current} | {e}")
            continue

        for entry in entries:
            if _is_skipped(entry.name):
                continue
            try:
                if entry.is_dir(follow_symlinks=False):
                    if recursive:
                        pending.append(Path(entry.path))
                    continue
                if not entry.is_file():
                    continue
            except OSError:
                continue

            item = _to_item(Path(entry.path))
            if item is not None:
                items.append(item)

    items.sort(key=lambda i: i.timestamp or datetime.min, reverse=True)
    return items
