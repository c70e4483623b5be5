"""
Custom exceptions for the logging system.

This module defines the exception hierarchy used throughout the logging system
for better error handling and debugging.
"""

from typing import Any


class LogError(Exception):
    """Base exception for logging-related errors."""

    pass


class InvalidLogLevelError(LogError):
    """Raised when an invalid log level is specified."""

    def __init__(self, level: Any) -> None:
        self.level = level
        super().__init__(f"Invalid log level: {level}")


class LogConfigurationError(LogError):
    """Raised when there's an error in logger configuration."""

    pass


class FormatterError(LogError):
    """Raised when there's an error in log formatting."""

    pass


class LoggedError(LogError):
    """
    Error value returned by Logger.warn(), error() and critical().

    The message has already been dispatched at ``level`` when the caller gets
    this object, so ``raise lg.error("bad input %r", x)`` logs and raises in one
    expression.
    """

    def __init__(self, level: Any, message: str) -> None:
        self.level = level
        self.message = message
        super().__init__(message)


class LogCrash(LogError):
    """Raised by crash() after the message has been logged and writers closed."""

    pass


class LogConfigWarning(UserWarning):
    """Issued for configuration problems that are not fatal (unknown properties)."""

    pass
