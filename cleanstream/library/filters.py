"""
View filters: media kind and current-week recency.

Kind is decided from the declared MIME type first. When that is inconclusive
(missing, or a generic container like application/octet-stream) the extension
allow-lists decide.
"""

from dataclasses import dataclass
from datetime import date, datetime, timedelta
from enum import Enum
from typing import Optional

from ..core.constants import AUDIO_EXTENSIONS, VIDEO_EXTENSIONS
from .models import Row


class MediaKind(Enum):
    ALL = "all"
    AUDIO = "audio"
    VIDEO = "video"


@dataclass(frozen=True)
class ViewFilters:
    """User filters applied by the view builder."""
    kind: MediaKind = MediaKind.ALL
    this_week: bool = False


def _norm(value: Optional[str]) -> str:
    return (value or "").strip().lower()


def _clean_extension(extension: Optional[str]) -> str:
    return _norm(extension).lstrip(".")


def is_audio(mime_type: Optional[str], extension: Optional[str]) -> bool:
    mt = _norm(mime_type)
    if mt.startswith("audio/"):
        return True
    if mt.startswith("video/"):
        return False
    return _clean_extension(extension) in AUDIO_EXTENSIONS


def is_video(mime_type: Optional[str], extension: Optional[str]) -> bool:
    mt = _norm(mime_type)
    if mt.startswith("video/"):
        return True
    if mt.startswith("audio/"):
        return False
    return _clean_extension(extension) in VIDEO_EXTENSIONS


def matches_kind(row: Row, kind: MediaKind) -> bool:
    """Check a row against the kind filter.

    Exclusive filters reject rows that look like both kinds.
    """
    if kind == MediaKind.ALL:
        return True
    audio = is_audio(row.mime_type, row.extension)
    video = is_video(row.mime_type, row.extension)
    if kind == MediaKind.AUDIO:
        return audio and not video
    return video and not audio


def current_week_bounds(today: date) -> tuple[date, date]:
    """Monday and Sunday of the calendar week containing today."""
    monday = today - timedelta(days=today.weekday())
    return monday, monday + timedelta(days=6)


def in_current_week(timestamp: Optional[datetime], now: Optional[datetime] = None) -> bool:
    """True if timestamp falls between Monday 00:00 and Sunday 23:59:59 of this week.

    Both timestamp and now are naive local times. A missing timestamp never matches.
    """
    if timestamp is None:
        return False
    today = (now or datetime.now()).date()
    monday, sunday = current_week_bounds(today)
    return monday <= timestamp.date() <= sunday


def matches_filters(row: Row, filters: ViewFilters, now: Optional[datetime] = None) -> bool:
    if not matches_kind(row, filters.kind):
        return False
    if filters.this_week and not in_current_week(row.timestamp, now):
        return False
    return True
