"""Label normalisation and text formatting."""

import re

_WHITESPACE = re.compile(r"\s+")


def normalize_label(label: str) -> str:
    """Lower-case and collapse whitespace in an interest/category/tag label."""
    return _WHITESPACE.sub(" ", label.strip().lower())


def format_distance(meters: float | None) -> str:
    """Format a distance for logs and payloads (whole meters)."""
    if meters is None:
        return "N/A"
    if meters >= 1000:
        return f"{meters / 1000:.1f}km"
    return f"{round(meters)}m"


def truncate(text: str, max_length: int = 1024) -> str:
    """Truncate text to max_length, adding ellipsis if needed."""
    if len(text) <= max_length:
        return text
    return text[: max_length - 3] + "..."
