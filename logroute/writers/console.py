"""
Console writer.

Synchronous and unbuffered: every accepted record is rendered and written to
the stream on the caller's thread.
"""

from __future__ import annotations

import sys
from typing import Any, TextIO

from ..constants import LogConstants
from ..formatters import FormatTemplate
from ..levels import Level, resolve_level
from ..record import Record


def _resolve_stream(stream: Any) -> TextIO:
    """Convert "stdout"/"stderr" names to the current stream objects."""
    if isinstance(stream, str):
        if stream.lower() == "stderr":
            return sys.stderr
        return sys.stdout
    return stream


class ConsoleWriter:
    """
    Writes rendered records to stdout or stderr.

    Records at or above ``split_level`` go to ``error_stream`` when one is set,
    everything else to ``stream``.
    """

    def __init__(
        self,
        stream: TextIO | str | None = None,
        format: str = LogConstants.DEFAULT_CONSOLE_FORMAT,
        colors: bool = False,
        error_stream: TextIO | str | None = None,
        split_level: Level | str | int = Level.ERROR,
    ) -> None:
        """
        Initialize console writer.

        Args:
            stream: Output stream or "stdout"/"stderr" (defaults to stdout)
            format: Format template
            colors: Whether to color the level tag
            error_stream: Optional separate stream for severe records
            split_level: Minimum level routed to error_stream
        """
        self._stream = stream
        self._error_stream = error_stream
        self.split_level = resolve_level(split_level)
        self.template = FormatTemplate(format, colors=colors)

    @property
    def stream(self) -> TextIO:
        # Resolved per write so pytest's capsys and redirected streams are honored
        return _resolve_stream(self._stream if self._stream is not None else "stdout")

    def _target(self, record: Record) -> TextIO:
        if self._error_stream is not None and record.level >= self.split_level:
            return _resolve_stream(self._error_stream)
        return self.stream

    def accept(self, record: Record) -> None:
        target = self._target(record)
        try:
            target.write(self.template.render(record) + "\n")
            target.flush()
        except (OSError, ValueError) as e:
            # ValueError: write to a closed stream
            sys.stderr.write(f"{LogConstants.DIAG_PREFIX} console write failed: {e}\n")

    def close(self) -> int:
        return 0

    def __repr__(self) -> str:
        return f"ConsoleWriter({self.template.template!r})"
