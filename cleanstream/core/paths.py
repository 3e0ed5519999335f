"""
Centralized path management for CleanStream.

All app data is stored in a .cleanstream/ folder next to the app, which keeps
the install portable.

Directory structure:
    path/to/mirror.py
    path/to/.cleanstream/
        settings.json   - User preferences (library folder, filters, server)
        logs/           - Session logs
    path/to/Library/    - Default local media folder
"""

import os
import sys
from pathlib import Path

import certifi


def get_certifi_ssl_context() -> str:
    """Get path to certifi CA bundle, handling PyInstaller bundles."""
    if getattr(sys, "frozen", False):
        # PyInstaller bundles certifi's cacert.pem
        return str(Path(sys._MEIPASS) / "certifi" / "cacert.pem")
    return certifi.where()


# Directory name for app data (hidden on Unix)
DATA_DIR_NAME = ".cleanstream"

# Default folder name for the local media library
LIBRARY_FOLDER_NAME = "Library"


def get_app_dir() -> Path:
    """
    Get the directory where the app is located.

    CLEANSTREAM_ROOT overrides the location (used by tests and portable installs).
    For frozen (PyInstaller): directory containing the executable.
    For development: repo root (parent of cleanstream/).
    """
    root = os.environ.get("CLEANSTREAM_ROOT")
    if root:
        return Path(root)
    if getattr(sys, "frozen", False):
        return Path(sys.executable).parent
    return Path(__file__).parent.parent.parent


def get_data_dir() -> Path:
    """Get the .cleanstream/ data directory, creating it if needed."""
    data_dir = get_app_dir() / DATA_DIR_NAME
    data_dir.mkdir(exist_ok=True)
    return data_dir


def get_settings_path() -> Path:
    """Get path to user settings file."""
    return get_data_dir() / "settings.json"


def get_log_dir() -> Path:
    """Get the session log directory, creating it if needed."""
    log_dir = get_data_dir() / "logs"
    log_dir.mkdir(exist_ok=True)
    return log_dir


def get_default_library_path() -> Path:
    """Get the default local library folder."""
    return get_app_dir() / LIBRARY_FOLDER_NAME

