from __future__ import annotations

import time
from datetime import datetime


def elapsed_ms(started: float) -> int:
    """Milliseconds since ``started``, a value from time.monotonic()."""
    return int((time.monotonic() - started) * 1000)


def fmt_mtime(timestamp: float | None) -> str:
    """Format a file modification time in local time; handle None gracefully."""
    if timestamp is None:
        return "Unknown"
    try:
        return datetime.fromtimestamp(timestamp).strftime("%Y-%m-%d %H:%M")
    except (OverflowError, OSError, ValueError):
        return "Unknown"
