"""
User interface module.

Organized into layers:
- primitives/: Terminal I/O (colors, terminal control)
- widgets/: Output pieces (row listing, details, status lines)
"""

from .primitives import Colors, strip_ansi, clear_screen, get_terminal_width, fit
from .widgets import display

__all__ = [
    "Colors",
    "strip_ansi",
    "clear_screen",
    "get_terminal_width",
    "fit",
    "display",
]
