"""
Interface for log writers.

This module defines the capability every writer provides. Writers are
independent implementations of this protocol; none of them inherits from
another.
"""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from ..record import Record


@runtime_checkable
class Writer(Protocol):
    """
    Sink that consumes accepted records.

    accept() must never raise for I/O failures: logging must not crash the
    instrumented program. close() releases the writer's resources and returns
    the number of records it had to discard (0 when everything was delivered).
    """

    def accept(self, record: Record) -> None:
        """Consume one record."""
        ...  # pragma: no cover

    def close(self) -> int:
        """Release resources; return the count of discarded records."""
        ...  # pragma: no cover
