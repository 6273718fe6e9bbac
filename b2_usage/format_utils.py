from __future__ import annotations
"""Helpers for formatting byte sizes, counts and durations."""

SIZE_UNITS = ("B", "KB", "MB", "GB", "TB")
SIZE_STEP = 1024


def format_decimal(value: float, precision: int = 2) -> str:
    """Round ``value`` and drop trailing zeros, e.g. ``1.50`` -> ``"1.5"``."""
    text = f"{round(value, precision):.{precision}f}"
    if "." in text:
        text = text.rstrip("0").rstrip(".")
    return "0" if text in ("", "-0") else text


def format_bytes(size_bytes: int, precision: int = 2) -> str:
    """Return a 1024-based human readable size clamped to terabytes."""
    power = 0
    if size_bytes > 0:
        while power < len(SIZE_UNITS) - 1 and size_bytes >= SIZE_STEP ** (power + 1):
            power += 1
    return f"{format_decimal(size_bytes / SIZE_STEP ** power, precision)} {SIZE_UNITS[power]}"


def format_count(count: int) -> str:
    return f"{count:,}"
