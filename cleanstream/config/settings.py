"""
User settings management for CleanStream.

Manages .cleanstream/settings.json - user preferences that persist across runs.
"""

import json
from pathlib import Path

VIEW_MODES = ("all", "local", "remote")
KIND_FILTERS = ("all", "audio", "video")

DEFAULT_API_BASE_URL = "https://dimedianetapi9.azurewebsites.net"


class UserSettings:
    """
    Manages .cleanstream/settings.json - user preferences that persist across runs.

    Stores:
    - Library folder (where local media lives and fetches land)
    - Media server base URL
    - View mode and filters, restored on the next start
    """

    def __init__(self, path: Path):
        self.path = path
        # Local library folder; None until the user configures one
        self.library_dir: str | None = None
        self.api_base_url: str = DEFAULT_API_BASE_URL
        # "all", "local" or "remote"
        self.view_mode: str = "all"
        # "all", "audio" or "video"
        self.kind_filter: str = "all"
        self.this_week_only: bool = False
        # Scan subfolders of the library folder too
        self.recursive_scan: bool = False
        self._is_new: bool = False

    @classmethod
    def load(cls, path: Path) -> "UserSettings":
        """Load user settings from file."""
        settings = cls(path)

        if path.exists():
            try:
                with open(path) as f:
                    data = json.load(f)

                settings.library_dir = data.get("library_dir") or None
                settings.api_base_url = data.get("api_base_url", DEFAULT_API_BASE_URL)
                settings.view_mode = data.get("view_mode", "all")
                settings.kind_filter = data.get("kind_filter", "all")
                settings.this_week_only = data.get("this_week_only", False)
                settings.recursive_scan = data.get("recursive_scan", False)
            except (json.JSONDecodeError, IOError):
                settings._is_new = True
        else:
            settings._is_new = True

        # Unknown values from older or hand-edited files fall back to defaults
        if settings.view_mode not in VIEW_MODES:
            settings.view_mode = "all"
        if settings.kind_filter not in KIND_FILTERS:
            settings.kind_filter = "all"

        return settings

    def save(self):
        """Save user settings to file."""
        data = {
            "library_dir": self.library_dir,
            "api_base_url": self.api_base_url,
            "view_mode": self.view_mode,
            "kind_filter": self.kind_filter,
            "this_week_only": self.this_week_only,
            "recursive_scan": self.recursive_scan,
        }
        with open(self.path, "w") as f:
            json.dump(data, f, indent=2)

    @property
    def is_new(self) -> bool:
        """True when no readable settings file existed."""
        return self._is_new

    def get_library_path(self) -> Path | None:
        """Configured library folder as a Path, or None."""
        if not self.library_dir or not self.library_dir.strip():
            return None
        return Path(self.library_dir).expanduser()

    def set_library_path(self, path: Path | None):
        self.library_dir = str(path) if path is not None else None

    def set_view_mode(self, mode: str):
        if mode not in VIEW_MODES:
            raise ValueError(f"Unknown view mode: {mode}")
        self.view_mode = mode

    def set_kind_filter(self, kind: str):
        if kind not in KIND_FILTERS:
            raise ValueError(f"Unknown kind filter: {kind}")
        self.kind_filter = kind

    def toggle_this_week(self) -> bool:
        """Toggle the current-week filter. Returns the new state."""
        self.this_week_only = not self.this_week_only
        return self.this_week_only
