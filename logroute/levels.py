"""
Log levels and level resolution.

Levels form a fixed total order compared numerically:

    FINEST < FINE < DEBUG < TRACE < INFO < ACCESS < WARNING < ERROR < CRITICAL

DEBUG, INFO, WARNING, ERROR and CRITICAL share their numeric values with the
standard library so records can cross the stdlib bridge unchanged. The other
levels are registered with ``logging.addLevelName`` on import.
"""

from __future__ import annotations

import enum
import logging

from .exceptions import InvalidLogLevelError


class Level(enum.IntEnum):
    """Totally ordered log severity."""

    FINEST = 4
    FINE = 7
    DEBUG = logging.DEBUG
    TRACE = 15
    INFO = logging.INFO
    ACCESS = 25
    WARNING = logging.WARNING
    ERROR = logging.ERROR
    CRITICAL = logging.CRITICAL

    @property
    def short(self) -> str:
        """Four-letter tag used by the %L format token."""
        return SHORT_NAMES[self]

    def __str__(self) -> str:
        return self.name


SHORT_NAMES: dict[Level, str] = {
    Level.FINEST: "FNST",
    Level.FINE: "FINE",
    Level.DEBUG: "DEBG",
    Level.TRACE: "TRAC",
    Level.INFO: "INFO",
    Level.ACCESS: "ACCS",
    Level.WARNING: "WARN",
    Level.ERROR: "EROR",
    Level.CRITICAL: "CRIT",
}

# Lower-case lookup table: full names, short tags and common aliases
LEVEL_NAMES: dict[str, Level] = {lvl.name.lower(): lvl for lvl in Level}
LEVEL_NAMES.update({tag.lower(): lvl for lvl, tag in SHORT_NAMES.items()})
LEVEL_NAMES.update({"warn": Level.WARNING, "err": Level.ERROR})

for _lvl in (Level.FINEST, Level.FINE, Level.TRACE, Level.ACCESS):
    logging.addLevelName(_lvl.value, _lvl.name)


def resolve_level(value: Level | int | str) -> Level:
    """
    Resolve a log level from a Level, numeric value, or name.

    Args:
        value: Level member, its exact numeric value, or a case-insensitive
               name ("info", "WARN", "DEBG", ...)

    Returns:
        Level: The resolved level

    Raises:
        InvalidLogLevelError: If the value does not name a level
    """
    if isinstance(value, Level):
        return value

    if isinstance(value, bool):
        raise InvalidLogLevelError(value)

    if isinstance(value, int):
        try:
            return Level(value)
        except ValueError:
            raise InvalidLogLevelError(value) from None

    if isinstance(value, str):
        text = value.strip()
        if text.isascii() and text.isdigit():
            try:
                return resolve_level(int(text))
            except InvalidLogLevelError:
                raise InvalidLogLevelError(value) from None
        if text.lower() in LEVEL_NAMES:
            return LEVEL_NAMES[text.lower()]

    raise InvalidLogLevelError(value)


def nearest_level(levelno: int) -> Level:
    """Map an arbitrary numeric level to the highest Level not above it."""
    candidates = [lvl for lvl in Level if lvl <= levelno]
    if not candidates:
        return Level.FINEST
    return candidates[-1]
