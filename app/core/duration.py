"""
Duration string parsing for token lifetimes.

Accepts strings such as "1h", "7d", "1d 2h 30m", "1d2h3m" or "500ms".
Units are matched longest first, so "500ms" is half a second and never
500 minutes. A bare integer string is taken as milliseconds.
"""

import re

UNIT_MILLISECONDS = {
    "d": 24 * 60 * 60 * 1000,
    "h": 60 * 60 * 1000,
    "m": 60 * 1000,
    "s": 1000,
    "ms": 1,
}

# "ms" must come before "m" in the alternation
_DURATION_PART = re.compile(r"(\d+)\s*(ms|d|h|m|s)")
_DURATION_FULL = re.compile(r"^\s*(?:\d+\s*(?:ms|d|h|m|s)\s*)+$")


def parse_duration(value: str) -> int:
    """
    Parse a duration string and return it in milliseconds.

    Raises:
        ValueError: If the string is empty or contains anything but
            number/unit pairs (or a single bare integer).
    """
    if value is None:
        raise ValueError("duration is required")

    text = str(value).strip()
    if not text:
        raise ValueError("duration is empty")

    if text.isdigit():
        return int(text)

    if not _DURATION_FULL.match(text):
        raise ValueError(f"invalid duration: {value!r}")

    return sum(
        int(amount) * UNIT_MILLISECONDS[unit]
        for amount, unit in _DURATION_PART.findall(text)
    )


def duration_seconds(value: str) -> int:
    """Parse a duration string into whole seconds (at least 1 for positive durations)."""
    milliseconds = parse_duration(value)
    if milliseconds <= 0:
        return 0
    return max(milliseconds // 1000, 1)
