"""
Immutable log record and caller source detection.
"""

from __future__ import annotations

import datetime as dt
import sys
import time
from dataclasses import dataclass, field

from .levels import Level


@dataclass(frozen=True)
class Record:
    """
    One emitted log event.

    Created once per accepted log call and shared by every accepting writer.
    ``source`` is a component identifier (module, function and line of the
    call site by default), not free text.
    """

    level: Level
    source: str
    message: str
    created: float = field(default_factory=time.time)

    @property
    def datetime(self) -> dt.datetime:
        """Creation time as a local datetime."""
        return dt.datetime.fromtimestamp(self.created)

    @property
    def day(self) -> dt.date:
        """Local calendar day the record was created on."""
        return self.datetime.date()


def caller_source(depth: int = 1) -> str:
    """
    Describe the frame ``depth`` levels above the caller.

    Returns:
        str: "<module>.<function>:<lineno>", or "(unknown)" when the stack is
        shallower than requested
    """
    try:
        frame = sys._getframe(depth + 1)
    except ValueError:
        return "(unknown)"

    module = frame.f_globals.get("__name__", "?")
    return f"{module}.{frame.f_code.co_name}:{frame.f_lineno}"
