"""Parsing and formatting helpers for clock strings, durations and sizes."""

from typing import Optional

_MB = 1024 * 1024
_GB = 1024 * 1024 * 1024


def parse_clock(text: Optional[str]) -> float:
    """Parse a clock string into seconds.

    Accepts ``m:ss`` (minutes may exceed two digits, seconds may carry a
    fraction) as well as ffmpeg's ``hh:mm:ss.ff``. Each colon-separated part
    is folded as ``acc * 60 + part``, so ``"12:03.5"`` is 723.5 and
    ``"0:09"`` is 9. An empty string is 0.

    Raises:
        ValueError: if a part is not numeric or negative.
    """
    if text is None:
        return 0.0
    text = str(text).strip()
    if not text:
        return 0.0

    total = 0.0
    for part in text.split(":"):
        part = part.strip()
        if not part:
            raise ValueError(f"Invalid clock value: {text!r}")
        value = float(part)
        if value < 0 or value != value:
            raise ValueError(f"Invalid clock value: {text!r}")
        total = total * 60 + value
    return total


def format_duration(seconds: float) -> str:
    """Format seconds as ``m:ss`` with whole seconds (``125.7`` -> ``2:05``)."""
    if not seconds or seconds < 0:
        seconds = 0
    mins = int(seconds // 60)
    secs = int(seconds % 60)
    return f"{mins}:{secs:02d}"


def format_size(size_bytes: int) -> str:
    """Format a byte count in MB below 1 GiB, GB above."""
    if size_bytes < _GB:
        return f"{size_bytes / _MB:.2f}MB"
    return f"{size_bytes / _GB:.2f}GB"
