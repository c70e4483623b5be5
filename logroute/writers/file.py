"""
Rotating text file writer.

Records are rendered through a format template, one per line, and handed to
a RotatingSink so the caller never waits on file I/O (only on a full queue).
"""

from __future__ import annotations

from pathlib import Path

from ..constants import LogConstants
from ..formatters import FormatTemplate
from ..record import Record
from .rotation import RotatingSink, RotationPolicy


class LineEncoder:
    """Encodes records as template-rendered lines; rotation units are lines."""

    def __init__(self, template: FormatTemplate) -> None:
        self.template = template

    def head(self, created: float) -> str:
        return ""

    def foot(self) -> str:
        return ""

    def encode(self, record: Record) -> str:
        return self.template.render(record) + "\n"

    def units(self, text: str) -> int:
        return text.count("\n")


class RotatingFileWriter:
    """
    Writer appending formatted lines to a file with line/size/daily rotation.

    Example:
        >>> writer = RotatingFileWriter("logs/app.log", max_lines=100_000, rotate=True)
        >>> logger.add_filter("file", Level.INFO, writer)
    """

    def __init__(
        self,
        filename: str | Path,
        rotate: bool = False,
        format: str = LogConstants.DEFAULT_FILE_FORMAT,
        max_lines: int = 0,
        max_size: int = 0,
        daily: bool = False,
        encoding: str = "utf-8",
        buffer_size: int = LogConstants.QUEUE_CAPACITY,
    ) -> None:
        """
        Initialize the writer and start its background worker.

        Args:
            filename: Path of the active log file
            rotate: Whether rotation is enabled at all
            format: Format template (see formatters.FormatTemplate)
            max_lines: Rotate before a write that would exceed this many lines (0 = off)
            max_size: Rotate before a write that would exceed this many bytes (0 = off)
            daily: Rotate when a record's day differs from the open file's day
            encoding: File encoding
            buffer_size: Capacity of the queue in front of the worker
        """
        self.template = FormatTemplate(format)
        self.policy = RotationPolicy(
            max_units=max_lines, max_size=max_size, daily=daily, rotate=rotate
        )
        self._sink = RotatingSink(
            filename,
            LineEncoder(self.template),
            self.policy,
            encoding=encoding,
            buffer_size=buffer_size,
        )

    @property
    def path(self) -> Path:
        return self._sink.path

    @property
    def rotations(self) -> int:
        """Number of rotations performed so far."""
        return self._sink.rotations

    @property
    def errors(self) -> int:
        """Number of I/O failures swallowed by the worker."""
        return self._sink.errors

    @property
    def rejected(self) -> int:
        """Number of records dropped because they arrived after close()."""
        return self._sink.rejected

    def accept(self, record: Record) -> None:
        self._sink.accept(record)

    def flush(self, timeout: float | None = None) -> bool:
        """Wait until everything accepted so far is on disk."""
        return self._sink.flush(timeout)

    def close(self, timeout: float | None = None) -> int:
        return self._sink.close(timeout)

    def __repr__(self) -> str:
        return f"RotatingFileWriter({str(self.path)!r}, {self.policy})"
