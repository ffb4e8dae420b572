"""
Progress reporting for gitqueue commands.

Job results go to stdout (often captured by a CI step), so everything meant
for a human reading the log goes to stderr through a ProgressReporter.
Set GITQUEUE_PROGRESS=1 or 0 to force it on or off.
"""

import os
import sys
from typing import Optional

RESET = '\033[0m'
STYLES = {
    'error': ('\033[31m', 'ERROR: '),
    'warning': ('\033[33m', 'WARNING: '),
    'success': ('\033[32m', '✓ '),
    'info': ('', ''),
}


def _env_enabled() -> Optional[bool]:
    value = os.environ.get('GITQUEUE_PROGRESS')
    if value == '1':
        return True
    if value == '0':
        return False
    return None


class ProgressReporter:
    """Writes human-oriented messages about queue operations to stderr."""

    def __init__(self, enabled: Optional[bool] = None, use_colors: Optional[bool] = None):
        """
        Args:
            enabled: Show info/success messages. None = only when stderr is a terminal
            use_colors: Use ANSI colors. None = terminal without NO_COLOR
        """
        self.enabled = sys.stderr.isatty() if enabled is None else enabled
        if use_colors is None:
            use_colors = sys.stderr.isatty() and 'NO_COLOR' not in os.environ
        self.use_colors = use_colors

    def _write(self, style: str, message: str) -> None:
        color, prefix = STYLES[style]
        text = f"{prefix}{message}"
        if self.use_colors and color:
            text = f"{color}{text}{RESET}"
        print(text, file=sys.stderr, flush=True)

    def __call__(self, message: str, force: bool = False) -> None:
        if force or self.enabled:
            self._write('info', message)

    def success(self, message: str) -> None:
        if self.enabled:
            self._write('success', message)

    def warning(self, message: str) -> None:
        if self.enabled:
            self._write('warning', message)

    def error(self, message: str) -> None:
        # Errors are shown even when progress is off
        self._write('error', message)


_progress: Optional[ProgressReporter] = None


def get_progress(enabled: Optional[bool] = None) -> ProgressReporter:
    """
    Get the shared progress reporter.

    Args:
        enabled: Override auto-detection for this and later calls
    """
    global _progress
    if enabled is None:
        enabled = _env_enabled()
    if _progress is None or enabled is not None:
        _progress = ProgressReporter(enabled)
    return _progress
