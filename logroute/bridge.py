"""
Bridge from the standard library's logging module into a Logger.

Libraries that log through ``logging.getLogger(__name__)`` can be routed
through logroute filters by installing a RouteHandler. The stdlib logger name
becomes the record's source tag, so exclude prefixes apply to it directly.
"""

from __future__ import annotations

import logging

from .levels import Level, nearest_level, resolve_level
from .logger import Logger


class RouteHandler(logging.Handler):
    """
    logging.Handler that forwards records to a Logger.

    Usage:
        handler = RouteHandler(get_logger())
        logging.getLogger("urllib3").addHandler(handler)
    """

    def __init__(self, logger: Logger, level: int = logging.NOTSET) -> None:
        """
        Initialize the handler.

        Args:
            logger: Logger receiving the records
            level: Handler threshold (stdlib semantics)
        """
        super().__init__(level)
        self.logger = logger

    def emit(self, record: logging.LogRecord) -> None:
        """
        Map the record to the nearest level at or below it and dispatch.

        Args:
            record: Log record to emit
        """
        try:
            level = nearest_level(record.levelno)
            if not self.logger.is_enabled(level):
                return
            self.logger.log(level, record.name, self.format(record))
        except Exception:
            self.handleError(record)


def capture_stdlib(
    logger: Logger, level: Level | str | int = Level.INFO
) -> RouteHandler:
    """
    Route everything reaching the root stdlib logger into ``logger``.

    Args:
        logger: Logger receiving the records
        level: Root logger level to set

    Returns:
        The installed handler (remove it with logging.getLogger().removeHandler)
    """
    handler = RouteHandler(logger)
    root = logging.getLogger()
    root.addHandler(handler)
    root.setLevel(resolve_level(level).value)
    return handler
