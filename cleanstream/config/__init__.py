"""
Configuration management for CleanStream.

Config files:
- .cleanstream/settings.json: User preferences (library folder, server, filters)
"""

from .settings import UserSettings, VIEW_MODES, KIND_FILTERS

__all__ = [
    "UserSettings",
    "VIEW_MODES",
    "KIND_FILTERS",
]
