"""
duration.py — ``H:MM:SS`` parsing and ``HH:MM:SS`` display formatting.

Hubstaff reports the time tracked today as ``"3:50:18"``: hours are not
padded and not bounded, minutes and seconds are two-digit fields.
"""
from __future__ import annotations

from datetime import timedelta

from core.errors import InvalidDuration


def parse_duration(text: str) -> timedelta:
    """Parse ``H:MM:SS`` into a timedelta.

    Raises:
        InvalidDuration: if *text* does not have exactly three colon-separated
            fields or any field is not a non-negative integer.
    """
    if not isinstance(text, str):
        raise InvalidDuration(f"expected a string, got {type(text).__name__}")
    parts = text.split(":")
    if len(parts) != 3:
        raise InvalidDuration(f"invalid duration format: {text!r}")
    # str.isdigit() also rejects signs and blanks
    if not all(p.isascii() and p.isdigit() for p in parts):
        raise InvalidDuration(f"non-numeric duration field in {text!r}")
    hours, minutes, seconds = (int(p) for p in parts)
    try:
        return timedelta(hours=hours, minutes=minutes, seconds=seconds)
    except OverflowError as exc:
        raise InvalidDuration(f"duration out of range: {text!r}") from exc


def format_duration(d: timedelta) -> str:
    """Format *d* as ``HH:MM:SS`` (hours at least two digits, unbounded)."""
    total = max(0, int(d.total_seconds()))
    hours, rest = divmod(total, 3600)
    minutes, seconds = divmod(rest, 60)
    return f"{hours:02d}:{minutes:02d}:{seconds:02d}"
