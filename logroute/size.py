"""
Suffixed number parsing for configuration values.

Simple, focused module for converting strings such as "100K" or "10M" into
integers. The multiplier is chosen by the caller: 1000 for line and record
counts, 1024 for byte sizes.

Example Usage:
    >>> parse_suffix("10K", 1000)
    10000

    >>> parse_suffix("2M", 1024)
    2097152

    >>> parse_suffix("abc", 1024)
    0
"""

import re

# Suffix letter -> power of the multiplier
_SUFFIX_POWERS = {
    "K": 1,
    "M": 2,
    "G": 3,
}

_PATTERN = re.compile(r"^([+-]?\d+)([KMG]?)$", re.IGNORECASE)


def parse_suffix(text: str | None, mult: int) -> int:
    """
    Parse an integer with an optional K/M/G suffix.

    Configuration loading is permissive: malformed input yields zero instead
    of raising.

    Args:
        text: String to parse, e.g. "5", "10k", "2G" (surrounding whitespace ignored)
        mult: Base multiplier; K = mult, M = mult**2, G = mult**3

    Returns:
        Parsed value, or 0 if the string is empty or malformed

    Examples:
        >>> parse_suffix("5", 1000)
        5
        >>> parse_suffix("100k", 1000)
        100000
        >>> parse_suffix("1G", 1024)
        1073741824
        >>> parse_suffix("K", 1000)
        0
    """
    if not isinstance(text, str):
        return 0

    match = _PATTERN.match(text.strip())
    if not match:
        return 0

    number, suffix = match.groups()
    power = _SUFFIX_POWERS.get(suffix.upper(), 0)
    return int(number) * mult**power


__all__ = ["parse_suffix"]
