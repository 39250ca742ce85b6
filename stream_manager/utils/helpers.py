"""
Helper functions for the stream manager.

This module contains utility functions used throughout the application.
"""

import re

# Go-style duration components, e.g. "1h30m", "90s", "1.5m", "250ms"
_DURATION_PART = re.compile(r"(\d+(?:\.\d*)?|\.\d+)(h|ms|m|s)")
_DURATION_UNITS = {"h": 3600.0, "m": 60.0, "s": 1.0, "ms": 0.001}


def format_number(value: float) -> str:
    """
    Format a number for an FFmpeg argument without trailing zeros.

    Args:
        value: Number to format

    Returns:
        Formatted number (e.g., "90", "1.5")
    """
    if float(value).is_integer():
        return str(int(value))
    return f"{value:.6f}".rstrip("0").rstrip(".")


def format_duration(seconds: float) -> str:
    """
    Format duration as HH:MM:SS.

    Args:
        seconds: Duration in seconds

    Returns:
        Formatted duration string (e.g., "01:30:45")
    """
    hours = int(seconds // 3600)
    minutes = int((seconds % 3600) // 60)
    secs = int(seconds % 60)
    return f"{hours:02d}:{minutes:02d}:{secs:02d}"


def parse_time_to_seconds(time_str: str) -> float:
    """
    Parse time string to seconds.

    Supports formats:
    - HH:MM:SS.mmm
    - MM:SS.mmm
    - SS.mmm
    - duration strings such as 1h2m3.5s or 250ms

    Args:
        time_str: Time string to parse

    Returns:
        Time in seconds

    Raises:
        ValueError: If the string is not a recognised time format
    """
    text = time_str.strip()
    if not text:
        return 0.0

    if text[-1].isalpha():
        pos = 0
        total = 0.0
        for match in _DURATION_PART.finditer(text):
            if match.start() != pos:
                break
            total += float(match.group(1)) * _DURATION_UNITS[match.group(2)]
            pos = match.end()
        if pos != len(text):
            raise ValueError(f"invalid duration: {time_str}")
        return total

    parts = text.split(":")
    if len(parts) == 3:
        hours, minutes, seconds = parts
        return float(hours) * 3600 + float(minutes) * 60 + float(seconds)
    elif len(parts) == 2:
        minutes, seconds = parts
        return float(minutes) * 60 + float(seconds)
    elif len(parts) == 1:
        return float(parts[0])
    raise ValueError(f"invalid time: {time_str}")


def truncate_head(text: str, limit: int, keep: int | None = None) -> str:
    """
    Shorten text from the front, keeping its tail.

    Args:
        text: Text to shorten
        limit: Maximum length before truncation applies
        keep: Number of trailing characters to keep (defaults to limit)

    Returns:
        Text unchanged when short enough, else "..." followed by its tail
    """
    if len(text) <= limit:
        return text
    return "..." + text[-(keep if keep is not None else limit) :]
