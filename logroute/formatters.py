"""
Text formatting of log records.

This module provides the format-template renderer used by the console and
file writers, together with the ANSI color table for level tags.

Template tokens:
    %T  time (15:04:05)        %t  short time (15:04)
    %D  date (2006/01/02)      %d  short date (01/02/06)
    %L  level tag (INFO)       %N  full level name (INFO, WARNING, ...)
    %S  source                 %s  short source (last dotted component)
    %M  message                %%  literal percent

Unknown tokens are copied through verbatim.
"""

from __future__ import annotations

from .constants import LogConstants
from .exceptions import FormatterError
from .levels import Level
from .record import Record


class ColorManager:
    """Centralized ANSI color code management."""

    RED = "\x1b[31"
    GREEN = "\x1b[32"
    YELLOW = "\x1b[33"
    MAGENTA = "\x1b[35"
    CYAN = "\x1b[36"

    RESET = LogConstants.RESET

    COLORS: dict[Level, str] = {
        Level.FINEST: "\x1b[38;5;239",
        Level.FINE: "\x1b[38;5;244",
        Level.DEBUG: "\x1b[38;5;32",
        Level.TRACE: "\x1b[38;5;24",
        Level.INFO: CYAN,
        Level.ACCESS: GREEN,
        Level.WARNING: YELLOW,
        Level.ERROR: RED,
        Level.CRITICAL: MAGENTA,
    }

    @staticmethod
    def get_color_for_level(level: Level) -> str | None:
        """Get the color escape sequence for a level, or None."""
        return ColorManager.COLORS.get(level)

    @staticmethod
    def colorize(text: str, level: Level) -> str:
        """Wrap text in the level's color."""
        color = ColorManager.get_color_for_level(level)
        if color is None:
            return text
        return f"{color}m{text}{ColorManager.RESET}"


def _short_source(source: str) -> str:
    """Last dotted component of a source tag ("pkg.mod.func:12" -> "func:12")."""
    return source.rsplit(".", 1)[-1]


_TOKENS = {
    "T": lambda r, lv: r.datetime.strftime("%H:%M:%S"),
    "t": lambda r, lv: r.datetime.strftime("%H:%M"),
    "D": lambda r, lv: r.datetime.strftime("%Y/%m/%d"),
    "d": lambda r, lv: r.datetime.strftime("%m/%d/%y"),
    "L": lambda r, lv: lv,
    "N": lambda r, lv: r.level.name,
    "S": lambda r, lv: r.source,
    "s": lambda r, lv: _short_source(r.source),
    "M": lambda r, lv: r.message,
}


class FormatTemplate:
    """
    Renders records through a %-token template.

    The template is split into literal and token pieces once at construction
    so rendering is a single pass over a short list.
    """

    def __init__(self, template: str, colors: bool = False) -> None:
        """
        Initialize the template.

        Args:
            template: Template string, e.g. "[%D %T] [%L] (%S) %M"
            colors: Whether to color the %L level tag

        Raises:
            FormatterError: If the template is not a string
        """
        if not isinstance(template, str):
            raise FormatterError(f"Format template must be a string, got {template!r}")
        self.template = template
        self.colors = colors
        self._pieces = self._compile(template)

    @staticmethod
    def _compile(template: str) -> list[tuple[bool, str]]:
        """Split template into (is_token, text) pieces."""
        pieces: list[tuple[bool, str]] = []
        literal: list[str] = []
        i = 0
        while i < len(template):
            ch = template[i]
            if ch == "%" and i + 1 < len(template):
                code = template[i + 1]
                if code == "%":
                    literal.append("%")
                elif code in _TOKENS:
                    if literal:
                        pieces.append((False, "".join(literal)))
                        literal = []
                    pieces.append((True, code))
                else:
                    literal.append(ch + code)
                i += 2
                continue
            literal.append(ch)
            i += 1
        if literal:
            pieces.append((False, "".join(literal)))
        return pieces

    def render(self, record: Record) -> str:
        """Render a record to a single string (no trailing newline)."""
        tag = record.level.short
        if self.colors:
            tag = ColorManager.colorize(tag, record.level)

        out = []
        for is_token, text in self._pieces:
            out.append(_TOKENS[text](record, tag) if is_token else text)
        return "".join(out)

    def __repr__(self) -> str:
        return f"FormatTemplate({self.template!r})"
