"""
Logging utilities for mcpmux.
"""

import logging
from typing import Dict, List, Optional

from rich.console import Console
from rich.logging import RichHandler

LOG_FILE_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"

_loggers: Dict[str, logging.Logger] = {}
_console = Console(stderr=True)
_log_level = logging.INFO
_log_handlers: List[logging.Handler] = [RichHandler(console=_console, rich_tracebacks=True)]


def _attach(logger: logging.Logger) -> None:
    logger.handlers = list(_log_handlers)
    logger.setLevel(_log_level)


def configure_logging(level: int = logging.INFO, add_file_handler: Optional[str] = None) -> None:
    """
    Set the level of every mcpmux logger and optionally mirror it to a file.

    Args:
        level: Logging level.
        add_file_handler: If provided, also log to this file.
    """
    global _log_level, _log_handlers

    for handler in _log_handlers[1:]:
        handler.close()

    _log_level = level
    _log_handlers = _log_handlers[:1]
    if add_file_handler:
        file_handler = logging.FileHandler(add_file_handler)
        file_handler.setFormatter(logging.Formatter(LOG_FILE_FORMAT))
        _log_handlers.append(file_handler)

    for logger in _loggers.values():
        _attach(logger)


def level_from_name(name: str) -> int:
    """Map a level name such as 'debug' or 'WARNING' to its logging constant."""
    level = logging.getLevelName(name.upper())
    return level if isinstance(level, int) else logging.INFO


class PatchedLogger(logging.Logger):
    """
    A logger that supports the 'data' parameter.
    """

    def _log(self, level, msg, args, exc_info=None, extra=None, stack_info=False,
             stacklevel=1, data=None):
        if data is not None:
            if args:
                msg = msg % args
                args = ()
            msg = f"{msg} {data}"

        super()._log(level, msg, args, exc_info, extra, stack_info, stacklevel)


logging.setLoggerClass(PatchedLogger)


def get_logger(name: str) -> logging.Logger:
    """Return the cached logger for ``name``, wired to the current handlers."""
    logger = _loggers.get(name)
    if logger is None:
        logger = _loggers[name] = logging.getLogger(name)
        _attach(logger)
    return logger
