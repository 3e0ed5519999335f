"""
Shared constants for CleanStream.
"""

# Extension allow-lists used when the MIME type does not settle the media kind
AUDIO_EXTENSIONS = frozenset({"mp3", "m4a", "aac", "wav", "flac", "ogg", "opus"})
VIDEO_EXTENSIONS = frozenset({"mp4", "mkv", "avi", "mov", "webm", "flv"})
IMAGE_EXTENSIONS = frozenset({"jpg", "jpeg", "png", "gif", "webp"})

# Files still being written by a downloader
TEMP_EXTENSIONS = frozenset({"part", "crdownload", "ytdl", "tmp"})

# Suffix for in-progress fetches; the scanner skips these
PARTIAL_SUFFIX = ".part"

GENERIC_MIME = "application/octet-stream"

# MIME types by extension, used when the platform registry has no answer
MIME_FALLBACK = {
    "mp4": "video/mp4",
    "mkv": "video/x-matroska",
    "webm": "video/webm",
    "avi": "video/x-msvideo",
    "mov": "video/quicktime",
    "flv": "video/x-flv",
    "m4a": "audio/mp4",
    "mp3": "audio/mpeg",
    "wav": "audio/wav",
    "flac": "audio/flac",
    "aac": "audio/aac",
    "ogg": "audio/ogg",
    "opus": "audio/opus",
    "jpg": "image/jpeg",
    "jpeg": "image/jpeg",
    "png": "image/png",
    "gif": "image/gif",
    "webp": "image/webp",
    "pdf": "application/pdf",
    "zip": "application/zip",
    "rar": "application/vnd.rar",
    "7z": "application/x-7z-compressed",
    "txt": "text/plain",
    "srt": "application/x-subrip",
    "ass": "text/plain",
    "csv": "text/csv",
}

# Blob container the media server stores uploads in
DEFAULT_CONTAINER = "dimedianetblobs"
