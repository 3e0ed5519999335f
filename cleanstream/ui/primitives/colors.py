"""
Shared color definitions for terminal output.
"""


class Colors:
    RESET = "\x1b[0m"
    BOLD = "\x1b[1m"
    DIM = "\x1b[2m"
    INDIGO = "\x1b[38;2;99;102;241m"
    PINK = "\x1b[38;2;244;114;182m"
    HOTKEY = "\x1b[38;2;167;139;250m"
    MUTED = "\x1b[38;2;148;163;184m"
    # Remote-only rows: dimmer than MUTED, the file isn't on disk
    VIRTUAL = "\x1b[38;2;100;110;125m"
    RED = "\x1b[38;2;239;68;68m"
    GREEN = "\x1b[38;2;34;197;94m"
    CYAN = "\x1b[38;2;34;211;238m"
