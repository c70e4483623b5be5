"""
Rotating structured file writer.

Each record becomes one self-describing element: an XML ``<record>`` inside a
``<log>`` root, or a JSON object per line. Rotation counts records instead of
lines, with the same size and daily triggers as the text writer.
"""

from __future__ import annotations

import datetime as dt
import json
from pathlib import Path
from typing import Any
from xml.sax.saxutils import escape, quoteattr

from ..constants import LogConstants
from ..exceptions import LogConfigurationError
from ..record import Record
from .rotation import RecordEncoder, RotatingSink, RotationPolicy


def _xml_time(created: float) -> str:
    return dt.datetime.fromtimestamp(created).strftime("%Y/%m/%d %H:%M:%S")


class XMLRecordEncoder:
    """
    Encodes records as ``<record>`` elements.

    The file is wrapped in ``<log created="...">`` ... ``</log>``; the foot is
    written on close and stripped again when an existing file is reused, so the
    file stays well-formed across restarts.
    """

    _TAG = "<record "

    def head(self, created: float) -> str:
        return f"<log created={quoteattr(_xml_time(created))}>\n"

    def foot(self) -> str:
        return "</log>\n"

    def encode(self, record: Record) -> str:
        return (
            f"\t<record level={quoteattr(record.level.short)}>"
            f"<timestamp>{escape(_xml_time(record.created))}</timestamp>"
            f"<source>{escape(record.source)}</source>"
            f"<message>{escape(record.message)}</message>"
            "</record>\n"
        )

    def units(self, text: str) -> int:
        return text.count(self._TAG)


class JSONRecordEncoder:
    """
    Encodes records as one JSON object per line.

    Fields: timestamp, level, source, message, plus any custom fields.
    """

    def __init__(
        self,
        timestamp_format: str = "iso",
        custom_fields: dict[str, Any] | None = None,
        exclude_fields: list[str] | None = None,
    ) -> None:
        """
        Initialize JSON encoder.

        Args:
            timestamp_format: "iso", "unix" (float seconds) or "epoch" (int seconds)
            custom_fields: Constant fields added to every object
            exclude_fields: Standard fields to leave out
        """
        self.timestamp_format = timestamp_format
        self.custom_fields = custom_fields or {}
        self.exclude_fields = set(exclude_fields) if exclude_fields else set()

    def _format_timestamp(self, created: float) -> Any:
        if self.timestamp_format == "unix":
            return created
        if self.timestamp_format == "epoch":
            return int(created)
        return dt.datetime.fromtimestamp(created).isoformat()

    def to_dict(self, record: Record) -> dict[str, Any]:
        """Convert a record to a JSON-serializable dict."""
        data: dict[str, Any] = {
            "timestamp": self._format_timestamp(record.created),
            "level": record.level.name,
            "source": record.source,
            "message": record.message,
        }
        for key in self.exclude_fields:
            data.pop(key, None)
        for key, value in self.custom_fields.items():
            data.setdefault(key, value)
        return data

    def head(self, created: float) -> str:
        return ""

    def foot(self) -> str:
        return ""

    def encode(self, record: Record) -> str:
        return json.dumps(self.to_dict(record), ensure_ascii=False, default=str) + "\n"

    def units(self, text: str) -> int:
        return text.count("\n")


_ENCODERS: dict[str, type] = {
    "xml": XMLRecordEncoder,
    "json": JSONRecordEncoder,
}


class RotatingStructuredFileWriter:
    """
    Writer producing structured (XML or JSON lines) files with rotation.

    Example:
        >>> writer = RotatingStructuredFileWriter("logs/app.xml", max_records=10_000, rotate=True)
    """

    def __init__(
        self,
        filename: str | Path,
        rotate: bool = False,
        encoding_format: str = "xml",
        max_records: int = 0,
        max_size: int = 0,
        daily: bool = False,
        encoding: str = "utf-8",
        buffer_size: int = LogConstants.QUEUE_CAPACITY,
        encoder: RecordEncoder | None = None,
    ) -> None:
        """
        Initialize the writer and start its background worker.

        Args:
            filename: Path of the active file
            rotate: Whether rotation is enabled at all
            encoding_format: "xml" or "json"
            max_records: Rotate before a write that would exceed this many records (0 = off)
            max_size: Rotate before a write that would exceed this many bytes (0 = off)
            daily: Rotate when a record's day differs from the open file's day
            encoding: File encoding
            buffer_size: Capacity of the queue in front of the worker
            encoder: Explicit encoder instance (overrides encoding_format)

        Raises:
            LogConfigurationError: If encoding_format is unknown
        """
        if encoder is None:
            if encoding_format not in _ENCODERS:
                raise LogConfigurationError(
                    f"Unknown structured format: '{encoding_format}'. "
                    f"Supported formats: {', '.join(_ENCODERS)}"
                )
            encoder = _ENCODERS[encoding_format]()
        self.encoder = encoder
        self.policy = RotationPolicy(
            max_units=max_records, max_size=max_size, daily=daily, rotate=rotate
        )
        self._sink = RotatingSink(
            filename, encoder, self.policy, encoding=encoding, buffer_size=buffer_size
        )

    @property
    def path(self) -> Path:
        return self._sink.path

    @property
    def rotations(self) -> int:
        return self._sink.rotations

    @property
    def errors(self) -> int:
        return self._sink.errors

    @property
    def rejected(self) -> int:
        return self._sink.rejected

    def accept(self, record: Record) -> None:
        self._sink.accept(record)

    def flush(self, timeout: float | None = None) -> bool:
        return self._sink.flush(timeout)

    def close(self, timeout: float | None = None) -> int:
        return self._sink.close(timeout)

    def __repr__(self) -> str:
        return f"RotatingStructuredFileWriter({str(self.path)!r}, {self.policy})"
