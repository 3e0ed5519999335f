"""
Logging utilities for CleanStream.
"""

import re
import sys
from datetime import datetime
from pathlib import Path


class TeeOutput:
    """Write to both stdout and a log file, filtering out UI noise."""

    # Patterns to skip in log file (prompts, separators, list chrome)
    _SKIP_PATTERNS = [
        r'[╭│╰├╮╯┤─┬┴]',      # Box drawing characters (list frames)
        r'^\s*$',              # Blank lines
        r'^\s*>\s*$',          # Bare command prompt
        r'^\s*\[\d+/\d+\]\s',  # Row listing lines ([3/40] name ...)
    ]

    def __init__(self, log_path: Path, version: str = None):
        self.terminal = sys.stdout
        self.log_file = open(log_path, "a", encoding="utf-8")
        self._skip_regex = re.compile('|'.join(self._SKIP_PATTERNS))
        self._line_buffer = ""
        # Write session header with version
        self.log_file.write(f"\n{'='*60}\n")
        version_str = f" v{version}" if version else ""
        self.log_file.write(f"Session started: {datetime.now().isoformat()}{version_str}\n")
        self.log_file.write(f"{'='*60}\n\n")
        self.log_file.flush()

    def write(self, message):
        self.terminal.write(message)

        # Strip ANSI escape codes
        clean = re.sub(r'\x1b\[[0-9;]*[mKHJ]', '', message)

        # Buffer partial lines (for \r carriage return handling)
        self._line_buffer += clean

        while '\n' in self._line_buffer:
            line, self._line_buffer = self._line_buffer.split('\n', 1)
            if not self._skip_regex.search(line):
                stripped = line.rstrip()
                if stripped and not stripped.startswith('\r'):
                    timestamp = datetime.now().strftime("[%H:%M:%S]")
                    self.log_file.write(f"{timestamp} {stripped}\n")

        # Handle \r (carriage return) - only keep the last version
        if '\r' in self._line_buffer:
            self._line_buffer = self._line_buffer.rsplit('\r', 1)[-1]

        self.log_file.flush()

    def flush(self):
        self.terminal.flush()
        self.log_file.flush()

    def close(self):
        if self._line_buffer.strip() and not self._skip_regex.search(self._line_buffer):
            timestamp = datetime.now().strftime("[%H:%M:%S]")
            self.log_file.write(f"{timestamp} {self._line_buffer.rstrip()}\n")
        self.log_file.close()

    def log_only(self, message: str):
        """Write a message only to the log file, not to terminal."""
        timestamp = datetime.now().strftime("[%H:%M:%S]")
        self.log_file.write(f"{timestamp} {message}\n")
        self.log_file.flush()


def install_tee(log_dir: Path, version: str = None) -> TeeOutput:
    """Route stdout through a TeeOutput writing to today's log file."""
    log_path = log_dir / f"{datetime.now().strftime('%Y-%m-%d')}.log"
    tee = TeeOutput(log_path, version=version)
    sys.stdout = tee
    return tee


def debug_log(message: str):
    """Log a debug message to file only (not shown to user)."""
    if hasattr(sys.stdout, 'log_only'):
        sys.stdout.log_only(message)
    # If not using TeeOutput (e.g., tests), silently ignore
