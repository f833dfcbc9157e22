"""
Helper functions for formatting data into human-readable strings.
"""

import math

SIZE_UNITS = ["B", "KB", "MB", "GB", "TB", "PB"]


def format_size(bytes_size: int | None, missing: str = "n/a") -> str:
    """
    Formats bytes into a human-readable size string (e.g., '1.5 KB', '145 MB').

    Values below ten units keep one decimal place, larger values are rounded to
    an integer. Whole bytes are never shown with a fraction.
    """
    if bytes_size is None:
        return missing
    if bytes_size <= 0:
        return "0 B"
    size = float(bytes_size)
    i = 0
    while size >= 1024 and i < len(SIZE_UNITS) - 1:
        size /= 1024
        i += 1
    if i == 0:
        return f"{bytes_size} B"
    if size < 10:
        return f"{size:.1f} {SIZE_UNITS[i]}"
    return f"{round(size)} {SIZE_UNITS[i]}"


def format_percent(percent: float) -> str:
    """Whole percent, rounded down so an unfinished download never reads 100%."""
    return f"{math.floor(percent)}%"


def short_label(uri: str, length: int = 12) -> str:
    """Shortens a magnet link or file path into a tab label."""
    return uri.strip()[:length]
