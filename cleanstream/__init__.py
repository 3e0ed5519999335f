"""
CleanStream - Mirror a local media library against the CleanStream server.

Import from submodules directly:
    from cleanstream.config import UserSettings
    from cleanstream.remote import MediaClient, MediaTransfer
    from cleanstream.library import LibraryCoordinator, Dispatcher
"""


def _get_version():
    """Read version from VERSION file."""
    from pathlib import Path
    from .core.paths import get_app_dir
    # Source checkout first, then next to the app (frozen builds)
    for base in [Path(__file__).parent.parent, get_app_dir()]:
        version_file = base / "VERSION"
        if version_file.exists():
            return version_file.read_text().strip()
    return "0.0.0"


__version__ = _get_version()
