"""
Formatting and identity utilities for CleanStream.
"""

import unicodedata
from datetime import datetime
from pathlib import Path
from typing import Optional


# ============================================================================
# Identity
# ============================================================================

def normalize_key(name: Optional[str]) -> Optional[str]:
    """Normalize a display name into the key used to match local and remote items.

    - NFC normalization (macOS reports NFD, the server stores NFC)
    - Surrounding whitespace trimmed
    - Case-folded

    Returns None for None or blank names. Items without a key are never
    reconciled, matched or shown as duplicates.
    """
    if name is None:
        return None
    key = unicodedata.normalize("NFC", name).strip().casefold()
    return key or None


def split_extension(file_name: Optional[str]) -> Optional[str]:
    """Extension without the dot, or None.

    Dotfiles (".hidden") and trailing dots ("name.") have no extension.
    """
    if not file_name:
        return None
    i = file_name.rfind(".")
    if i <= 0 or i == len(file_name) - 1:
        return None
    return file_name[i + 1:]


# ============================================================================
# Filename sanitization
# ============================================================================

# Characters that can't appear in a single path component
ILLEGAL_CHAR_MAP = {
    "<": "-",
    ">": "-",
    ":": " -",
    '"': "'",
    "\\": "-",
    "/": "-",
    "|": "-",
    "?": "",
    "*": "",
}

# Control characters (0x00-0x1F) and DEL (0x7F)
CONTROL_CHARS = set(chr(i) for i in range(32)) | {chr(127)}

# Windows reserved device names (case-insensitive)
WINDOWS_RESERVED_NAMES = {
    "CON", "PRN", "AUX", "NUL",
    "COM1", "COM2", "COM3", "COM4", "COM5", "COM6", "COM7", "COM8", "COM9",
    "LPT1", "LPT2", "LPT3", "LPT4", "LPT5", "LPT6", "LPT7", "LPT8", "LPT9",
}


def sanitize_filename(filename: str) -> str:
    """
    Turn a server-supplied name into a single safe file name.

    Separators and other illegal characters are replaced, control characters
    become _, trailing dots and spaces are stripped (which also empties "."
    and ".."), and reserved device names get a _ prefix. Never returns an
    empty string.
    """
    if not filename:
        return "_"

    filename = unicodedata.normalize("NFC", filename)

    result = []
    for char in filename:
        if char in ILLEGAL_CHAR_MAP:
            result.append(ILLEGAL_CHAR_MAP[char])
        elif char in CONTROL_CHARS:
            result.append("_")
        else:
            result.append(char)
    filename = "".join(result).rstrip(". ")

    name_upper = filename.upper()
    base_name = name_upper.split(".")[0] if "." in name_upper else name_upper
    if base_name in WINDOWS_RESERVED_NAMES:
        filename = "_" + filename

    return filename or "_"


# ============================================================================
# Display formatting
# ============================================================================

def format_size(size_bytes: int) -> str:
    """Format bytes as human readable string."""
    for unit in ["B", "KB", "MB", "GB", "TB"]:
        if size_bytes < 1024:
            return f"{size_bytes:.1f} {unit}"
        size_bytes /= 1024
    return f"{size_bytes:.1f} PB"


def format_timestamp(ts: Optional[datetime]) -> str:
    """Format a local timestamp for lists and the metadata panel."""
    if ts is None:
        return ""
    return ts.strftime("%Y-%m-%d %H:%M")


def format_path(path: Optional[Path]) -> str:
    return str(path) if path is not None else ""
