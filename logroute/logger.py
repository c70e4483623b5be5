"""
Filters and the dispatching Logger.

A Logger owns a set of named filters. Every log call is checked against each
filter's threshold and exclude patterns, and the resulting record is handed to
the writer of every accepting filter. Messages are built lazily: format
arguments are applied and closures are called only once some filter accepts
the record, and at most once per call.
"""

from __future__ import annotations

import contextlib
import inspect
import sys
import threading
import traceback
from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass
from pathlib import Path
from types import MappingProxyType, TracebackType
from typing import TYPE_CHECKING, Any

from .constants import LogConstants
from .exceptions import LoggedError
from .levels import Level, resolve_level
from .record import Record, caller_source
from .writers.console import ConsoleWriter
from .writers.interface import Writer

if TYPE_CHECKING:
    from .config import WriterFactory


@dataclass(frozen=True)
class Filter:
    """
    Threshold, exclude patterns and writer under one name.

    A record is accepted iff its level is at least ``threshold`` and its source
    does not start with any of the ``excludes`` prefixes.
    """

    name: str
    threshold: Level
    writer: Writer
    excludes: tuple[str, ...] = ()

    def __post_init__(self) -> None:
        object.__setattr__(self, "threshold", resolve_level(self.threshold))
        patterns = tuple(p.strip() for p in self.excludes if p and p.strip())
        object.__setattr__(self, "excludes", patterns)

    def excludes_source(self, source: str) -> bool:
        """Check whether any exclude pattern matches the source tag."""
        return any(source.startswith(pattern) for pattern in self.excludes)

    def accepts(self, level: Level, source: str) -> bool:
        """Check whether a record with this level and source passes the filter."""
        return level >= self.threshold and not self.excludes_source(source)


def _print_style(arg0: Any, args: tuple) -> str:
    return " ".join(str(a) for a in (arg0, *args))


def _format(fmt: str, args: tuple) -> str:
    """Apply %-style args; on a mismatch the args are appended print-style."""
    if not args:
        return fmt
    try:
        return fmt % args
    except (TypeError, ValueError):
        return _print_style(fmt, args)


def _is_closure(arg0: Any) -> bool:
    return callable(arg0) and not isinstance(arg0, type)


def _wants_argument(fn: Callable[..., str]) -> bool:
    """True if fn takes at least one required positional argument."""
    try:
        sig = inspect.signature(fn)
    except (TypeError, ValueError):
        return True
    for param in sig.parameters.values():
        if param.kind is inspect.Parameter.VAR_POSITIONAL:
            return True
        if (
            param.kind
            in (inspect.Parameter.POSITIONAL_ONLY, inspect.Parameter.POSITIONAL_OR_KEYWORD)
            and param.default is inspect.Parameter.empty
        ):
            return True
    return False


def _call_closure(fn: Callable[..., Any], args: tuple) -> str:
    """Call a message closure, passing args only to closures that take them."""
    if _wants_argument(fn):
        return str(fn(*args))
    return str(fn())


def _frame_source(tb: TracebackType | None) -> str:
    """Source tag of the innermost traceback frame (where the exception was raised)."""
    if tb is None:
        return "(unknown)"
    while tb.tb_next is not None:
        tb = tb.tb_next
    frame = tb.tb_frame
    module = frame.f_globals.get("__name__", "?")
    return f"{module}.{frame.f_code.co_name}:{tb.tb_lineno}"


class Logger:
    """
    Named collection of filters; the dispatch fan-out point.

    The filter mapping is replaced copy-on-write under a lock, and every log
    call works on the snapshot it read first, so configuration changes can
    race with logging from other threads.

    Example:
        >>> lg = Logger()
        >>> lg.add_filter("stdout", Level.INFO, ConsoleWriter())
        >>> lg.info("listening on %s:%d", host, port)
        >>> raise lg.error("bad request: %r", payload)
    """

    def __init__(self, filters: Iterable[Filter] | None = None) -> None:
        self._lock = threading.RLock()
        self._filters: Mapping[str, Filter] = MappingProxyType(
            {f.name: f for f in filters or ()}
        )

    @classmethod
    def with_console(cls, level: Level | str | int = Level.DEBUG, **kwargs: Any) -> Logger:
        """
        Create a logger with a single console filter named "stdout".

        Args:
            level: Console threshold
            **kwargs: ConsoleWriter options
        """
        lg = cls()
        lg.add_filter("stdout", level, ConsoleWriter(**kwargs))
        return lg

    # ------------------------------------------------------------------
    # Filter management
    # ------------------------------------------------------------------

    @property
    def filters(self) -> Mapping[str, Filter]:
        """Read-only snapshot of the current filters."""
        return self._filters

    def __len__(self) -> int:
        return len(self._filters)

    def __contains__(self, name: object) -> bool:
        return name in self._filters

    def add_filter(
        self,
        name: str,
        threshold: Level | str | int,
        writer: Writer,
        excludes: Iterable[str] = (),
    ) -> Filter:
        """
        Insert or replace the filter under ``name``.

        A replaced filter's writer is closed unless the new filter reuses it.

        Returns:
            The installed Filter
        """
        flt = Filter(name, threshold, writer, tuple(excludes))  # type: ignore[arg-type]
        with self._lock:
            current = dict(self._filters)
            old = current.get(name)
            current[name] = flt
            self._filters = MappingProxyType(current)

        if old is not None and old.writer is not writer:
            self._close_writer(old.writer)
        return flt

    def replace_filters(self, filters: Iterable[Filter]) -> int:
        """
        Swap in a complete set of filters and close the previous writers.

        Later entries win on name collision.

        Returns:
            Number of records the previous writers discarded on close
        """
        new = {f.name: f for f in filters}
        with self._lock:
            old, self._filters = self._filters, MappingProxyType(new)

        keep = {id(f.writer) for f in new.values()}
        return self._close_all(f for f in old.values() if id(f.writer) not in keep)

    def load_configuration(
        self,
        path: str | Path,
        section: str = LogConstants.DEFAULT_SECTION,
        base_dir: str | Path | None = None,
        factory: WriterFactory | None = None,
    ) -> None:
        """
        Replace all filters with the ones defined in a configuration file.

        The file type is chosen by suffix (.yaml/.yml, .xml, .json). The file
        is fully validated before the current filters are touched.

        Args:
            path: Configuration file
            section: Top-level key holding the filters in YAML files
            base_dir: Directory relative filenames resolve against
            factory: Writer factory (defaults to the built-in types)

        Raises:
            LogConfigurationError: If the file is missing or invalid
        """
        from .config import build_filters, load_config_file

        specs = load_config_file(path, section=section, factory=factory)
        self.close()
        self.replace_filters(build_filters(specs, base_dir=base_dir, factory=factory))

    def setup_file_log(
        self,
        cfg: Mapping[str, Any],
        base_dir: str | Path | None = None,
    ) -> Filter:
        """
        Install a single rotating file filter named "file".

        Args:
            cfg: Mapping with level, filename and optional format, maxlines,
                 maxsize, excludes (comma-separated); daily and rotate are on

        Raises:
            LogConfigurationError: If level or filename is missing or invalid
        """
        from .config import build_filters, file_log_spec

        (flt,) = build_filters([file_log_spec(cfg)], base_dir=base_dir)
        return self.add_filter(flt.name, flt.threshold, flt.writer, flt.excludes)

    # ------------------------------------------------------------------
    # Core dispatch
    # ------------------------------------------------------------------

    def _dispatch(self, level: Level, source: str, render: Callable[[], str]) -> bool:
        """Build one record for all accepting filters; return False if none accepts."""
        targets = [f for f in self._filters.values() if f.accepts(level, source)]
        if not targets:
            return False

        record = Record(level=level, source=source, message=render())
        for flt in targets:
            try:
                flt.writer.accept(record)
            except Exception as e:
                sys.stderr.write(
                    f"CRITICAL: writer {flt.name!r} failed - unable to log "
                    f"{record.message[:80]!r}: {e}\n"
                )
        return True

    def is_enabled(self, level: Level | str | int) -> bool:
        """True iff some filter's threshold is at or below ``level``."""
        lvl = resolve_level(level)
        return any(lvl >= f.threshold for f in self._filters.values())

    def log(self, level: Level | str | int, source: str, message: str) -> None:
        """Send a message with an explicit source tag."""
        self._dispatch(resolve_level(level), source, lambda: message)

    def logf(
        self, level: Level | str | int, fmt: str, *args: Any, stacklevel: int = 1
    ) -> None:
        """
        Send a %-formatted message; formatting happens once, only if accepted.

        The source tag is the caller's module, function and line. Arguments
        that do not fit the format are appended, space-separated.
        """
        lvl = resolve_level(level)
        if not self.is_enabled(lvl):
            return
        self._dispatch(lvl, caller_source(stacklevel), lambda: _format(fmt, args))

    def log_with(
        self, level: Level | str | int, closure: Callable[[], str], stacklevel: int = 1
    ) -> None:
        """
        Send the message produced by ``closure``.

        The closure runs at most once, and never when no filter would accept
        the record. Exceptions raised by the closure propagate.
        """
        lvl = resolve_level(level)
        if not self.is_enabled(lvl):
            return
        self._dispatch(lvl, caller_source(stacklevel), lambda: str(closure()))

    logc = log_with

    # ------------------------------------------------------------------
    # Convenience layer
    # ------------------------------------------------------------------

    def _emit(self, level: Level, arg0: Any, args: tuple, stacklevel: int) -> None:
        """Dispatch on the shape of the first argument."""
        if not self.is_enabled(level):
            return
        source = caller_source(stacklevel)
        if isinstance(arg0, str):
            self._dispatch(level, source, lambda: _format(arg0, args))
        elif _is_closure(arg0):
            self._dispatch(level, source, lambda: _call_closure(arg0, args))
        else:
            self._dispatch(level, source, lambda: _print_style(arg0, args))

    def _emit_error(
        self, level: Level, arg0: Any, args: tuple, stacklevel: int, stack: bool = False
    ) -> LoggedError:
        """Render once, dispatch, and return the message as an error value."""
        if isinstance(arg0, str):
            message = _format(arg0, args)
        elif _is_closure(arg0):
            message = _call_closure(arg0, args)
        else:
            message = _print_style(arg0, args)

        if self.is_enabled(level):
            text = message
            if stack:
                frame = sys._getframe(stacklevel)
                text = f"{message}\n{''.join(traceback.format_stack(frame)).rstrip()}"
            self._dispatch(level, caller_source(stacklevel), lambda: text)
        return LoggedError(level, message)

    def finest(self, arg0: Any, *args: Any, stacklevel: int = 1) -> None:
        """Log at FINEST (see debug() for argument handling)."""
        self._emit(Level.FINEST, arg0, args, stacklevel + 1)

    def fine(self, arg0: Any, *args: Any, stacklevel: int = 1) -> None:
        """Log at FINE (see debug() for argument handling)."""
        self._emit(Level.FINE, arg0, args, stacklevel + 1)

    def debug(self, arg0: Any, *args: Any, stacklevel: int = 1) -> None:
        """
        Log at DEBUG.

        - A string first argument is a %-format for the remaining arguments;
          arguments that do not fit are appended, space-separated.
        - A callable supplies the message; it runs at most once and only if
          the record will be written. Callables taking arguments receive the
          remaining arguments.
        - Anything else: all arguments are str()-ed and joined by spaces.
        """
        self._emit(Level.DEBUG, arg0, args, stacklevel + 1)

    def trace(self, arg0: Any, *args: Any, stacklevel: int = 1) -> None:
        """Log at TRACE (see debug() for argument handling)."""
        self._emit(Level.TRACE, arg0, args, stacklevel + 1)

    def info(self, arg0: Any, *args: Any, stacklevel: int = 1) -> None:
        """Log at INFO (see debug() for argument handling)."""
        self._emit(Level.INFO, arg0, args, stacklevel + 1)

    def access(self, arg0: Any, *args: Any, stacklevel: int = 1) -> None:
        """Log at ACCESS (see debug() for argument handling)."""
        self._emit(Level.ACCESS, arg0, args, stacklevel + 1)

    def warn(self, arg0: Any, *args: Any, stacklevel: int = 1) -> LoggedError:
        """
        Log at WARNING and return the message as a LoggedError.

        A closure first argument runs exactly once, since the error needs the text.
        """
        return self._emit_error(Level.WARNING, arg0, args, stacklevel + 1)

    warning = warn

    def error(self, arg0: Any, *args: Any, stacklevel: int = 1) -> LoggedError:
        """Log at ERROR and return the message as a LoggedError."""
        return self._emit_error(Level.ERROR, arg0, args, stacklevel + 1)

    def critical(self, arg0: Any, *args: Any, stacklevel: int = 1) -> LoggedError:
        """
        Log at CRITICAL with the caller's stack appended.

        The returned LoggedError carries the message without the stack.
        """
        return self._emit_error(Level.CRITICAL, arg0, args, stacklevel + 1, stack=True)

    def is_finest_enabled(self) -> bool:
        return self.is_enabled(Level.FINEST)

    def is_fine_enabled(self) -> bool:
        return self.is_enabled(Level.FINE)

    def is_debug_enabled(self) -> bool:
        return self.is_enabled(Level.DEBUG)

    def is_trace_enabled(self) -> bool:
        return self.is_enabled(Level.TRACE)

    def is_info_enabled(self) -> bool:
        return self.is_enabled(Level.INFO)

    def is_warn_enabled(self) -> bool:
        return self.is_enabled(Level.WARNING)

    def is_error_enabled(self) -> bool:
        return self.is_enabled(Level.ERROR)

    def recover(
        self,
        message: str | Callable[..., str] | None = None,
        *args: Any,
        reraise: bool = False,
    ) -> Recover:
        """
        Scope that logs an escaping exception at CRITICAL.

        Usable as a context manager or decorator:

            with lg.recover("job %s failed", job_id):
                run(job_id)

            @lg.recover(lambda exc: f"handler crashed: {exc}")
            def handle(event): ...

        Args:
            message: Format string (the exception is appended as a last
                     argument), zero-argument callable, or callable taking the
                     exception. Defaults to the exception's repr.
            *args: Format arguments
            reraise: Re-raise after logging instead of suppressing
        """
        return Recover(self, message, args, reraise)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    @staticmethod
    def _close_writer(writer: Writer) -> int:
        try:
            return int(writer.close() or 0)
        except Exception as e:
            sys.stderr.write(f"{LogConstants.DIAG_PREFIX} failed to close {writer!r}: {e}\n")
            return 0

    def _close_all(self, filters: Iterable[Filter]) -> int:
        discarded = 0
        seen: set[int] = set()
        for flt in filters:
            if id(flt.writer) in seen:
                continue
            seen.add(id(flt.writer))
            discarded += self._close_writer(flt.writer)

        if discarded:
            sys.stderr.write(
                f"{LogConstants.DIAG_PREFIX} {discarded} record(s) discarded at shutdown\n"
            )
        return discarded

    def close(self) -> int:
        """
        Close every writer once and remove all filters.

        Safe to call repeatedly and on a logger without filters.

        Returns:
            Number of records writers had to discard while shutting down
        """
        with self._lock:
            old, self._filters = self._filters, MappingProxyType({})
        return self._close_all(old.values())

    def __enter__(self) -> Logger:
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

    def __repr__(self) -> str:
        return f"Logger(filters={list(self._filters)!r})"


class Recover(contextlib.ContextDecorator):
    """Context manager / decorator returned by Logger.recover()."""

    def __init__(
        self,
        logger: Logger,
        message: str | Callable[..., str] | None,
        args: tuple,
        reraise: bool,
    ) -> None:
        self._logger = logger
        self._message = message
        self._args = args
        self._reraise = reraise
        self.error: LoggedError | None = None

    def _build_message(self, exc: Exception) -> str:
        message = self._message
        if message is None:
            return repr(exc)
        if isinstance(message, str):
            return f"{_format(message, self._args)}\n{exc}"
        if _wants_argument(message):
            return str(message(exc, *self._args))
        return str(message())

    def __enter__(self) -> Recover:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> bool:
        if exc is None or not isinstance(exc, Exception):
            return False

        message = self._build_message(exc)
        detail = "".join(traceback.format_exception(type(exc), exc, tb)).rstrip()
        self._logger._dispatch(
            Level.CRITICAL, _frame_source(tb), lambda: f"{message}\n{detail}"
        )
        self.error = LoggedError(Level.CRITICAL, message)
        return not self._reraise
