"""
Terminal primitives: colors and terminal control.
"""

from .colors import Colors
from .terminal import strip_ansi, clear_screen, get_terminal_width, fit

__all__ = [
    "Colors",
    "strip_ansi",
    "clear_screen",
    "get_terminal_width",
    "fit",
]
