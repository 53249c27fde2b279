"""Common utility functions used across the backup tools."""

import time


def format_bytes(b: int) -> str:
    """Format bytes into human-readable size string.

    Examples:
        512 KB, 1.5 MB, 2.34 GB
    """
    if b < 1024 * 1024:
        return f"{b / 1024:.0f} KB"
    if b < 1024 * 1024 * 1024:
        return f"{b / (1024 * 1024):.1f} MB"
    return f"{b / (1024 * 1024 * 1024):.2f} GB"


def now_nanos() -> int:
    """Current wall-clock time as integer nanoseconds since the epoch."""
    return time.time_ns()
