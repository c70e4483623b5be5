"""
Constants and configuration values for the logging system.

This module contains all the constant values used throughout the logging system,
including format templates, queue and shutdown limits, and rotation naming rules.
"""


class LogConstants:
    """Constants for the logging system."""

    # Default format templates (see formatters.FormatTemplate for tokens)
    DEFAULT_FILE_FORMAT: str = "[%D %T] [%L] (%S) %M"
    DEFAULT_CONSOLE_FORMAT: str = "[%T %D] [%L] (%S) %M"

    # Capacity of the queue between callers and a rotating writer's worker
    QUEUE_CAPACITY: int = 512

    # Maximum seconds close() waits for a worker to drain its queue
    CLOSE_TIMEOUT: float = 5.0

    # Rotated file naming: <stem>.<index><suffix>, index zero-padded
    ROTATE_INDEX_WIDTH: int = 3
    ROTATE_INDEX_LIMIT: int = 999

    # Multipliers for suffixed numeric properties
    LINES_MULTIPLIER: int = 1000
    BYTES_MULTIPLIER: int = 1024

    # Socket writer defaults
    DEFAULT_SOCKET_PROTOCOL: str = "udp"
    SOCKET_PROTOCOLS: tuple[str, ...] = ("udp", "tcp")

    # Configuration file names probed by the default logger, in order
    DEFAULT_CONFIG_NAMES: tuple[str, ...] = (
        "logroute.yaml",
        "logroute.yml",
        "logroute.xml",
        "logroute.json",
    )

    # Config section holding filter definitions in YAML files
    DEFAULT_SECTION: str = "logging"

    # ANSI escape sequences
    RESET: str = "\x1b[0m"

    # Prefix for the library's own diagnostics on stderr
    DIAG_PREFIX: str = "logroute:"
