"""
Leveled, filter-routed logging with rotating file writers.

A Logger holds named filters; each filter pairs a minimum level and optional
source exclude prefixes with a writer. Every log call is fanned out to the
writers of all accepting filters:

- ConsoleWriter: synchronous stdout/stderr output with optional colors
- RotatingFileWriter: formatted text lines with line/size/daily rotation
- RotatingStructuredFileWriter: XML or JSON-lines records with rotation
- SocketWriter: JSON records over UDP or TCP

Filters are configured in code (Logger.add_filter) or from YAML, XML or JSON
files (Logger.load_configuration), optionally hot-reloaded with
LogConfigWatcher.

Quick start:
    >>> import logroute
    >>> logroute.info("serving on port %d", 8080)
    >>> raise logroute.error("cannot open %s", path)
"""

from .bridge import RouteHandler, capture_stdlib
from .config import (
    FilterSpec,
    WriterFactory,
    WriterType,
    build_filters,
    file_log_spec,
    load_config_file,
    load_filter_specs,
    load_json,
    load_xml,
    load_yaml,
    setup_file_log,
)
from .constants import LogConstants
from .default import (
    access,
    add_filter,
    close,
    crash,
    crashf,
    critical,
    debug,
    error,
    exit,
    exitf,
    fine,
    finest,
    get_logger,
    info,
    is_enabled,
    load_configuration,
    log,
    log_with,
    logf,
    recover,
    reset_logger,
    set_logger,
    stderr,
    stderrf,
    stdout,
    stdoutf,
    trace,
    warn,
)
from .exceptions import (
    FormatterError,
    InvalidLogLevelError,
    LogConfigurationError,
    LogConfigWarning,
    LogCrash,
    LogError,
    LoggedError,
)
from .formatters import ColorManager, FormatTemplate
from .levels import Level, nearest_level, resolve_level
from .logger import Filter, Logger, Recover
from .record import Record
from .size import parse_suffix
from .watcher import LogConfigWatcher
from .writers import (
    ConsoleWriter,
    JSONRecordEncoder,
    RotatingFileWriter,
    RotatingStructuredFileWriter,
    SocketWriter,
    Writer,
    XMLRecordEncoder,
)

__version__ = "0.3.0"

__all__ = [
    # Core
    "Level",
    "Record",
    "Filter",
    "Logger",
    "Recover",
    "resolve_level",
    "nearest_level",
    # Writers
    "Writer",
    "ConsoleWriter",
    "RotatingFileWriter",
    "RotatingStructuredFileWriter",
    "SocketWriter",
    "XMLRecordEncoder",
    "JSONRecordEncoder",
    "FormatTemplate",
    "ColorManager",
    # Configuration
    "LogConstants",
    "FilterSpec",
    "WriterFactory",
    "WriterType",
    "build_filters",
    "file_log_spec",
    "load_config_file",
    "load_filter_specs",
    "load_json",
    "load_xml",
    "load_yaml",
    "setup_file_log",
    "parse_suffix",
    "LogConfigWatcher",
    # stdlib bridge
    "RouteHandler",
    "capture_stdlib",
    # Exceptions
    "LogError",
    "InvalidLogLevelError",
    "LogConfigurationError",
    "FormatterError",
    "LoggedError",
    "LogCrash",
    "LogConfigWarning",
    # Default logger
    "get_logger",
    "set_logger",
    "reset_logger",
    "add_filter",
    "load_configuration",
    "close",
    "log",
    "logf",
    "log_with",
    "is_enabled",
    "finest",
    "fine",
    "debug",
    "trace",
    "info",
    "access",
    "warn",
    "error",
    "critical",
    "recover",
    "stdout",
    "stdoutf",
    "stderr",
    "stderrf",
    "crash",
    "crashf",
    "exit",
    "exitf",
]
