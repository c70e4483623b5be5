"""
Rotation policy and the queued, rotating file sink.

The sink decouples callers from file I/O: accept() only enqueues the record,
and one background thread per sink performs rendering, rotation and writes in
submission order. All file state (handle, unit and byte counters, open day)
is owned by that thread.

Rotated files are named ``<stem>.<NNN><suffix>`` where NNN is the lowest unused
index from 001 to 999 (``app.log`` -> ``app.001.log``). Old files are never
deleted.
"""

from __future__ import annotations

import datetime as dt
import queue
import sys
import threading
import time
from dataclasses import dataclass
from pathlib import Path
from typing import IO, Protocol

from ..constants import LogConstants
from ..record import Record


class RecordEncoder(Protocol):
    """Turns records into file text and counts rotation units."""

    def head(self, created: float) -> str:
        """Text written at the top of a fresh file ("" for none)."""
        ...  # pragma: no cover

    def foot(self) -> str:
        """Text written when a file is closed ("" for none)."""
        ...  # pragma: no cover

    def encode(self, record: Record) -> str:
        """Full text for one record, including the trailing newline."""
        ...  # pragma: no cover

    def units(self, text: str) -> int:
        """Number of rotation units (lines, records) contained in text."""
        ...  # pragma: no cover


@dataclass
class FileState:
    """Counters describing the currently open file."""

    units: int = 0
    size: int = 0
    day: dt.date | None = None


@dataclass(frozen=True)
class RotationPolicy:
    """
    Decides when the active file is rolled and what the old file is renamed to.

    Maxima of zero disable the corresponding trigger. Nothing rotates while
    ``rotate`` is False.
    """

    max_units: int = 0
    max_size: int = 0
    daily: bool = False
    rotate: bool = False

    def exceeds(self, state: FileState, add_units: int, add_size: int) -> bool:
        """Check whether appending would push the file past a positive maximum."""
        if self.max_units > 0 and state.units + add_units > self.max_units:
            return True
        if self.max_size > 0 and state.size + add_size > self.max_size:
            return True
        return False

    def needs_rotation(
        self, state: FileState, add_units: int, add_size: int, day: dt.date
    ) -> bool:
        """
        Check whether the file must be rolled before the next write.

        Size and count are checked before the day boundary. An empty file is
        never rolled, so a single oversized record is written on its own.
        """
        if not self.rotate or state.units == 0:
            return False
        if self.exceeds(state, add_units, add_size):
            return True
        return self.daily and day != state.day

    def can_reuse(self, state: FileState, file_day: dt.date, today: dt.date) -> bool:
        """Check whether an existing file may be appended to at startup."""
        if self.max_units > 0 and state.units >= self.max_units:
            return False
        if self.max_size > 0 and state.size >= self.max_size:
            return False
        if self.daily and file_day != today:
            return False
        return True

    @staticmethod
    def backup_path(path: Path) -> Path | None:
        """
        Find the name the active file is renamed to on rotation.

        Returns:
            The lowest unused ``<stem>.<NNN><suffix>`` path, or None when all
            indices up to the limit are taken
        """
        width = LogConstants.ROTATE_INDEX_WIDTH
        for index in range(1, LogConstants.ROTATE_INDEX_LIMIT + 1):
            candidate = path.with_name(f"{path.stem}.{index:0{width}d}{path.suffix}")
            if not candidate.exists():
                return candidate
        return None


class _Flush:
    """Queue marker; the worker sets the event once everything before it is written."""

    def __init__(self) -> None:
        self.done = threading.Event()


_STOP = object()

# Characters read per step when counting an existing file.
_SCAN_CHUNK = 64 * 1024


def _report(message: str) -> None:
    sys.stderr.write(f"{LogConstants.DIAG_PREFIX} {message}\n")


class RotatingSink:
    """
    Bounded queue plus background worker writing records to a rotating file.

    Back-pressure: when the queue is full, accept() blocks the caller until
    the worker frees a slot. Records are written in the exact order accept()
    was called, across all calling threads.

    Thread Safety:
        accept(), flush() and close() may be called from any thread. The file
        handle and counters are only touched by the worker thread (and by the
        constructor before the worker starts).
    """

    def __init__(
        self,
        path: str | Path,
        encoder: RecordEncoder,
        policy: RotationPolicy,
        encoding: str = "utf-8",
        buffer_size: int = LogConstants.QUEUE_CAPACITY,
    ) -> None:
        """
        Open (or reuse) the file and start the worker.

        Args:
            path: Active file path; parent directories are created
            encoder: Record encoder
            policy: Rotation policy
            encoding: File encoding
            buffer_size: Queue capacity

        Raises:
            OSError: If the file cannot be opened at construction
        """
        self.path = Path(path)
        self.encoder = encoder
        self.policy = policy
        self.encoding = encoding

        self.rotations = 0
        self.errors = 0
        self.rejected = 0
        self.discarded = 0

        self._state = FileState()
        self._fd: IO[str] | None = None
        self._foot = encoder.foot().encode(encoding)
        self._foot_size = len(self._foot)

        self._queue: queue.Queue[object] = queue.Queue(maxsize=max(1, buffer_size))
        self._accept_lock = threading.Lock()
        self._closed = False
        self._abort = threading.Event()

        self.path.parent.mkdir(parents=True, exist_ok=True)
        self._open_initial()

        self._thread = threading.Thread(
            target=self._run, name=f"logroute-{self.path.name}", daemon=True
        )
        self._thread.start()

    # ------------------------------------------------------------------
    # Caller side
    # ------------------------------------------------------------------

    @property
    def closed(self) -> bool:
        return self._closed

    def accept(self, record: Record) -> None:
        """Queue a record; blocks while the queue is full. Dropped after close()."""
        with self._accept_lock:
            if self._closed:
                self.rejected += 1
                return
            self._queue.put(record)

    def flush(self, timeout: float | None = None) -> bool:
        """
        Wait until every record accepted so far has been written.

        Returns:
            True if the queue was drained within the timeout
        """
        marker = _Flush()
        with self._accept_lock:
            if self._closed:
                return not self._thread.is_alive()
            self._queue.put(marker)
        return marker.done.wait(timeout)

    def close(self, timeout: float | None = None) -> int:
        """
        Drain the queue, write the file foot and close the file.

        No record accepted before close() is lost unless the drain exceeds
        ``timeout``; then the remaining records are discarded and counted.

        Args:
            timeout: Maximum seconds to wait (default LogConstants.CLOSE_TIMEOUT)

        Returns:
            Number of records discarded
        """
        if timeout is None:
            timeout = LogConstants.CLOSE_TIMEOUT
        deadline = time.monotonic() + timeout

        locked = self._accept_lock.acquire(timeout=timeout)
        try:
            if self._closed:
                return 0
            self._closed = True
        finally:
            if locked:
                self._accept_lock.release()

        stop_queued = True
        try:
            self._queue.put(_STOP, timeout=max(0.0, deadline - time.monotonic()))
        except queue.Full:
            stop_queued = False

        self._thread.join(max(0.0, deadline - time.monotonic()))
        if self._thread.is_alive():
            self._abort.set()
            pending = self._queue.qsize() - (1 if stop_queued else 0)
            self.discarded += max(0, pending)
            _report(
                f"close of {self.path} timed out after {timeout:.1f}s, "
                f"discarding {self.discarded} queued record(s)"
            )
        return self.discarded

    # ------------------------------------------------------------------
    # Worker side
    # ------------------------------------------------------------------

    def _run(self) -> None:
        """Main worker loop - drains the queue until the stop sentinel."""
        try:
            while True:
                try:
                    item = self._queue.get(timeout=0.5)
                except queue.Empty:
                    if self._abort.is_set():
                        break
                    continue

                try:
                    if item is _STOP:
                        break
                    if isinstance(item, _Flush):
                        self._flush_file()
                        item.done.set()
                    elif self._abort.is_set():
                        continue
                    else:
                        self._handle(item)  # type: ignore[arg-type]
                finally:
                    self._queue.task_done()
        finally:
            try:
                self._close_file()
            except OSError as e:
                self.errors += 1
                _report(f"failed to close {self.path}: {e}")

    def _handle(self, record: Record) -> None:
        """Render, rotate if needed, append."""
        try:
            text = self.encoder.encode(record)
            data_size = len(text.encode(self.encoding, errors="replace"))
        except (ValueError, TypeError, OverflowError) as e:
            self.errors += 1
            _report(f"failed to encode record for {self.path}: {e}")
            return

        add_units = self.encoder.units(text)
        day = record.day

        try:
            if self.policy.needs_rotation(
                self._state, add_units, data_size + self._foot_size, day
            ):
                self._rotate(day)
            elif self._state.units == 0:
                self._state.day = day
        except OSError as e:
            self.errors += 1
            _report(f"failed to rotate {self.path}: {e}")

        try:
            self._write(text, add_units, data_size)
        except OSError as e:
            self.errors += 1
            _report(f"failed to write {self.path}: {e}")

    def _write(self, text: str, units: int, size: int) -> None:
        if self._fd is None:
            self._open(dt.date.today())
        assert self._fd is not None
        self._fd.write(text)
        self._state.units += units
        self._state.size += size
        if self._queue.empty():
            self._fd.flush()

    def _flush_file(self) -> None:
        if self._fd is None:
            return
        try:
            self._fd.flush()
        except OSError as e:
            self.errors += 1
            _report(f"failed to flush {self.path}: {e}")

    def _rotate(self, day: dt.date) -> None:
        """Close the active file, rename it to the next backup name, reopen."""
        self._close_file()
        try:
            target = self.policy.backup_path(self.path)
            if target is None:
                raise OSError(
                    f"no free rotation index up to {LogConstants.ROTATE_INDEX_LIMIT}"
                )
            if self.path.exists():
                self.path.rename(target)
                self.rotations += 1
        finally:
            self._open(day)

    # ------------------------------------------------------------------
    # File handling
    # ------------------------------------------------------------------

    def _open_initial(self) -> None:
        """Reuse an existing file when the policy allows, else roll it out."""
        today = dt.date.today()
        if self.policy.rotate and self._existing_size() > 0:
            state = self._scan()
            file_day = dt.date.fromtimestamp(self.path.stat().st_mtime)
            if not self.policy.can_reuse(state, file_day, today):
                target = self.policy.backup_path(self.path)
                if target is not None:
                    self.path.rename(target)
                    self.rotations += 1
        self._open(today)

    def _existing_size(self) -> int:
        try:
            return self.path.stat().st_size
        except FileNotFoundError:
            return 0

    def _has_foot(self) -> bool:
        """Check the file's tail for the encoder foot."""
        if not self._foot:
            return False
        size = self._existing_size()
        if size < len(self._foot):
            return False
        with open(self.path, "rb") as fh:
            fh.seek(size - len(self._foot))
            return fh.read() == self._foot

    def _strip_foot(self) -> None:
        """Cut a trailing foot so appended records land inside the document."""
        if self._has_foot():
            with open(self.path, "r+b") as fh:
                fh.truncate(self._existing_size() - len(self._foot))

    def _scan(self) -> FileState:
        """Count units and bytes of the existing file, leaving it untouched."""
        units = 0
        with open(self.path, encoding=self.encoding, errors="replace", newline="") as fh:
            for chunk in iter(lambda: fh.readline(_SCAN_CHUNK), ""):
                units += self.encoder.units(chunk)

        size = self._existing_size()
        if self._has_foot():
            units -= self.encoder.units(self._foot.decode(self.encoding))
            size -= len(self._foot)
        return FileState(units=max(0, units), size=size)

    def _open(self, day: dt.date) -> None:
        """Open the active file for append; counters reflect its contents."""
        state = FileState(day=day)
        if self._existing_size() > 0:
            self._strip_foot()
            if self.policy.rotate:
                scanned = self._scan()
                state.units, state.size = scanned.units, scanned.size
            else:
                state.size = self._existing_size()

        self._fd = open(self.path, "a", encoding=self.encoding, errors="replace")
        self._state = state

        if state.size == 0:
            head = self.encoder.head(time.time())
            if head:
                self._fd.write(head)
                self._state.size += len(head.encode(self.encoding))

    def _close_file(self) -> None:
        """Write the foot and close the active file."""
        fd, self._fd = self._fd, None
        if fd is None:
            return
        try:
            foot = self.encoder.foot()
            if foot:
                fd.write(foot)
        finally:
            fd.close()
