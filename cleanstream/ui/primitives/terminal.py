"""
Terminal utilities for CleanStream.

Handles terminal size, clearing, and ANSI-aware text fitting.
"""

import os
import re
import sys

ANSI_PATTERN = re.compile(r'\x1b\[[0-9;]*m')


def strip_ansi(text: str) -> str:
    """Remove ANSI escape codes from text."""
    return ANSI_PATTERN.sub('', text)


def clear_screen():
    """Clear the terminal screen using ANSI escape codes."""
    # Use sys.__stdout__ to bypass any wrappers (like TeeOutput)
    out = sys.__stdout__ if sys.__stdout__ else sys.stdout
    out.write("\033[H\033[2J\033[3J")
    out.flush()


def get_terminal_width() -> int:
    """Get terminal width, with fallback."""
    try:
        return os.get_terminal_size().columns
    except OSError:
        return 80


def fit(text: str, width: int) -> str:
    """Truncate or pad plain text to exactly width columns."""
    if width <= 0:
        return ""
    if len(text) > width:
        if width == 1:
            return text[:1]
        return text[:width - 1] + "…"
    return text.ljust(width)
