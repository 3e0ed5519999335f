"""
Core utilities for CleanStream.

Shared constants, paths, logging, and formatting.
"""

from .constants import (
    AUDIO_EXTENSIONS,
    VIDEO_EXTENSIONS,
    TEMP_EXTENSIONS,
    MIME_FALLBACK,
    GENERIC_MIME,
)

from .paths import (
    get_app_dir,
    get_data_dir,
    get_settings_path,
    get_log_dir,
    get_default_library_path,
)

from .formatting import (
    normalize_key,
    split_extension,
    sanitize_filename,
    format_size,
    format_timestamp,
)

__all__ = [
    # Constants
    "AUDIO_EXTENSIONS",
    "VIDEO_EXTENSIONS",
    "TEMP_EXTENSIONS",
    "MIME_FALLBACK",
    "GENERIC_MIME",
    # Paths
    "get_app_dir",
    "get_data_dir",
    "get_settings_path",
    "get_log_dir",
    "get_default_library_path",
    # Formatting
    "normalize_key",
    "split_extension",
    "sanitize_filename",
    "format_size",
    "format_timestamp",
]
