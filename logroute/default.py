"""
Process-wide default logger and module-level wrappers.

The default Logger is created on the first get_logger() call (or the first
module-level log call). Creation looks for a configuration file named
logroute.yaml, logroute.yml, logroute.xml or logroute.json, in this order of
places:

    1. the current working directory
    2. the directory of the running program
    3. the "conf" directory next to the running program

The first file found is loaded; an invalid file raises LogConfigurationError.
Without a file the logger gets a single console filter at DEBUG.
"""

from __future__ import annotations

import sys
import threading
from collections.abc import Callable
from pathlib import Path
from typing import Any, NoReturn

from .config import program_dir
from .constants import LogConstants
from .exceptions import LogCrash, LoggedError
from .levels import Level
from .logger import Filter, Logger, Recover
from .writers.interface import Writer

_logger: Logger | None = None
_lock = threading.Lock()


def find_default_config() -> Path | None:
    """Return the first default configuration file found, or None."""
    prog = program_dir()
    for directory in (Path.cwd(), prog, prog / "conf"):
        for name in LogConstants.DEFAULT_CONFIG_NAMES:
            candidate = directory / name
            if candidate.is_file():
                return candidate
    return None


def _create_default() -> Logger:
    path = find_default_config()
    if path is None:
        return Logger.with_console(Level.DEBUG)
    lg = Logger()
    lg.load_configuration(path)
    return lg


def get_logger() -> Logger:
    """
    Get the process-wide Logger, creating it on first use.

    Thread-safe lazy initialization.
    """
    global _logger
    if _logger is None:
        with _lock:
            if _logger is None:
                _logger = _create_default()
    return _logger


def set_logger(logger: Logger) -> Logger | None:
    """
    Replace the process-wide Logger.

    Returns:
        The previous instance (not closed), or None
    """
    global _logger
    with _lock:
        previous, _logger = _logger, logger
    return previous


def reset_logger() -> None:
    """Close and forget the process-wide Logger (for tests)."""
    global _logger
    with _lock:
        previous, _logger = _logger, None
    if previous is not None:
        previous.close()


def _join(args: tuple) -> str:
    return " ".join(str(a) for a in args)


# Wrappers forwarding to the default logger


def add_filter(
    name: str, threshold: Level | str | int, writer: Writer, excludes: tuple[str, ...] = ()
) -> Filter:
    return get_logger().add_filter(name, threshold, writer, excludes)


def load_configuration(path: str | Path, **kwargs: Any) -> None:
    get_logger().load_configuration(path, **kwargs)


def close() -> int:
    return get_logger().close()


def log(level: Level | str | int, source: str, message: str) -> None:
    get_logger().log(level, source, message)


def logf(level: Level | str | int, fmt: str, *args: Any) -> None:
    get_logger().logf(level, fmt, *args, stacklevel=2)


def log_with(level: Level | str | int, closure: Callable[[], str]) -> None:
    get_logger().log_with(level, closure, stacklevel=2)


def is_enabled(level: Level | str | int) -> bool:
    return get_logger().is_enabled(level)


def finest(arg0: Any, *args: Any) -> None:
    get_logger().finest(arg0, *args, stacklevel=2)


def fine(arg0: Any, *args: Any) -> None:
    get_logger().fine(arg0, *args, stacklevel=2)


def debug(arg0: Any, *args: Any) -> None:
    get_logger().debug(arg0, *args, stacklevel=2)


def trace(arg0: Any, *args: Any) -> None:
    get_logger().trace(arg0, *args, stacklevel=2)


def info(arg0: Any, *args: Any) -> None:
    get_logger().info(arg0, *args, stacklevel=2)


def access(arg0: Any, *args: Any) -> None:
    get_logger().access(arg0, *args, stacklevel=2)


def warn(arg0: Any, *args: Any) -> LoggedError:
    return get_logger().warn(arg0, *args, stacklevel=2)


def error(arg0: Any, *args: Any) -> LoggedError:
    return get_logger().error(arg0, *args, stacklevel=2)


def critical(arg0: Any, *args: Any) -> LoggedError:
    return get_logger().critical(arg0, *args, stacklevel=2)


def recover(
    message: str | Callable[..., str] | None = None, *args: Any, reraise: bool = False
) -> Recover:
    return get_logger().recover(message, *args, reraise=reraise)


# Compatibility with print-style and log-and-die code


def stdout(*args: Any) -> None:
    """Log the space-joined arguments at INFO."""
    if args:
        get_logger().log_with(Level.INFO, lambda: _join(args), stacklevel=2)


def stdoutf(fmt: str, *args: Any) -> None:
    get_logger().logf(Level.INFO, fmt, *args, stacklevel=2)


def stderr(*args: Any) -> None:
    """Log the space-joined arguments at ERROR."""
    if args:
        get_logger().log_with(Level.ERROR, lambda: _join(args), stacklevel=2)


def stderrf(fmt: str, *args: Any) -> None:
    get_logger().logf(Level.ERROR, fmt, *args, stacklevel=2)


def crash(*args: Any) -> NoReturn:
    """Log the arguments at CRITICAL, close all writers and raise LogCrash."""
    message = _join(args)
    lg = get_logger()
    if args:
        lg.log_with(Level.CRITICAL, lambda: message, stacklevel=2)
    lg.close()
    raise LogCrash(message)


def crashf(fmt: str, *args: Any) -> NoReturn:
    """Log a formatted message at CRITICAL, close all writers and raise LogCrash."""
    message = fmt % args if args else fmt
    lg = get_logger()
    lg.log_with(Level.CRITICAL, lambda: message, stacklevel=2)
    lg.close()
    raise LogCrash(message)


def exit(*args: Any) -> NoReturn:
    """Log the arguments at ERROR, close all writers and exit with status 0."""
    lg = get_logger()
    if args:
        lg.log_with(Level.ERROR, lambda: _join(args), stacklevel=2)
    lg.close()
    sys.exit(0)


def exitf(fmt: str, *args: Any) -> NoReturn:
    """Log a formatted message at ERROR, close all writers and exit with status 0."""
    lg = get_logger()
    lg.logf(Level.ERROR, fmt, *args, stacklevel=2)
    lg.close()
    sys.exit(0)
