"""Formatting utilities for display"""

from pathlib import Path
from typing import Union


def format_duration_ms(milliseconds: Union[int, float]) -> str:
    """Format a duration given in milliseconds

    Examples:
        >>> format_duration_ms(250)
        '250ms'
        >>> format_duration_ms(65000)
        '1m 5s'
    """
    if milliseconds < 0:
        return "Invalid duration"

    seconds = milliseconds / 1000
    if seconds < 1:
        return f"{milliseconds:.0f}ms"
    elif seconds < 60:
        return f"{seconds:.1f}s"
    minutes = int(seconds // 60)
    secs = int(seconds % 60)
    return f"{minutes}m {secs}s"


def format_path(path: Union[str, Path], home: Path = None, max_length: int = 60) -> str:
    """Format path for display, shortening the home prefix and truncating

    Args:
        path: Path to format
        home: Home directory to replace with ``~``
        max_length: Maximum length

    Returns:
        Formatted path string
    """
    text = str(path)
    if home is not None:
        home_text = str(home)
        if text == home_text or text.startswith(home_text + "/"):
            text = "~" + text[len(home_text):]

    if len(text) <= max_length:
        return text

    # Keep beginning and end
    keep_start = max_length // 2 - 2
    keep_end = max_length - keep_start - 3
    return f"{text[:keep_start]}...{text[-keep_end:]}"


def pluralize(count: int, singular: str, plural: str = None) -> str:
    """Pluralize a word based on count

    Args:
        count: Number of items
        singular: Singular form
        plural: Plural form (optional, will add 's' if not provided)

    Returns:
        Pluralized string with count
    """
    if plural is None:
        plural = singular + 's'

    word = singular if count == 1 else plural
    return f"{count} {word}"
