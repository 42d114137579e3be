from __future__ import annotations

UNITS = ["B", "KB", "MB", "GB", "TB", "PB"]


def format_bytes(size: int) -> str:
    """Whole-unit size, rounded down: ``524288000`` -> ``"500 MB"``."""
    if size <= 0:
        return "0 B"
    value = size
    unit = 0
    while value >= 1024 and unit < len(UNITS) - 1:
        value //= 1024
        unit += 1
    return f"{value} {UNITS[unit]}"


def format_duration(seconds: float) -> str:
    return f"{int(seconds)}s"
