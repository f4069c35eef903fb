"""Centralized logging configuration for liveprof.

All modules log through ``get_logger(__name__)`` so that records end up under
the ``liveprof`` logger hierarchy. Diagnostics may carry structured context
via ``extra={"context": {...}}``; :class:`ContextFormatter` renders it as a
trailing JSON field.
"""

import json
import logging
import sys
from pathlib import Path
from typing import Optional, Union

ROOT_LOGGER_NAME = "liveprof"

DEFAULT_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

# Tab-separated layout of the standalone profiler log file
FILE_FORMAT = "%(asctime)s\t%(levelname)s\t%(message)s"
FILE_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

# Flag to track if we've already set up the root logger
_ROOT_LOGGER_CONFIGURED = False


class ContextFormatter(logging.Formatter):
    """Formatter that appends the record's ``context`` mapping as JSON."""

    def format(self, record: logging.LogRecord) -> str:
        message = super().format(record)
        context = getattr(record, "context", None)
        if context:
            message += "\t" + json.dumps(context, default=str, sort_keys=True)
        return message


def setup_root_logger(
    level: int = logging.INFO,
    format_string: Optional[str] = None,
    handler: Optional[logging.Handler] = None,
) -> None:
    """Set up the root liveprof logger with a single handler.

    This should only be called once to avoid duplicate handlers.

    Args:
        level: Logging level (default: INFO).
        format_string: Custom format string (optional).
        handler: Custom handler (optional, defaults to a stderr StreamHandler).
    """
    global _ROOT_LOGGER_CONFIGURED

    if _ROOT_LOGGER_CONFIGURED:
        return

    root_logger = logging.getLogger(ROOT_LOGGER_NAME)
    root_logger.setLevel(level)
    root_logger.handlers.clear()

    if format_string is None:
        format_string = DEFAULT_FORMAT

    # The host program owns stdout; diagnostics go to stderr
    if handler is None:
        handler = logging.StreamHandler(sys.stderr)

    handler.setFormatter(ContextFormatter(format_string))
    root_logger.addHandler(handler)

    # Let logs propagate to root logger so pytest can capture them
    root_logger.propagate = True

    _ROOT_LOGGER_CONFIGURED = True


def get_logger(name: str) -> logging.Logger:
    """Get a logger with liveprof's standard configuration.

    Args:
        name: Logger name (typically __name__ from calling module).

    Returns:
        Logger inheriting handlers from the root ``liveprof`` logger.
    """
    setup_root_logger()

    logger = logging.getLogger(name)
    logger.setLevel(logging.NOTSET)  # Inherit from parent
    return logger


def setup_file_logging(
    path: Union[str, Path], level: int = logging.WARNING
) -> logging.Handler:
    """Append liveprof diagnostics to a tab-separated log file.

    Each line reads ``date<TAB>LEVEL<TAB>message[<TAB>json context]``.

    Args:
        path: Log file path. Parent directories must exist.
        level: Minimum level written to the file.

    Returns:
        The attached handler, so callers can detach it later.
    """
    setup_root_logger()

    handler = logging.FileHandler(str(path), mode="a", encoding="utf-8")
    handler.setLevel(level)
    handler.setFormatter(ContextFormatter(FILE_FORMAT, datefmt=FILE_DATE_FORMAT))
    logging.getLogger(ROOT_LOGGER_NAME).addHandler(handler)
    return handler


def set_global_log_level(level: int) -> None:
    """Set the log level for all liveprof loggers.

    Args:
        level: Logging level (e.g., logging.DEBUG, logging.INFO).
    """
    setup_root_logger()

    root_logger = logging.getLogger(ROOT_LOGGER_NAME)
    root_logger.setLevel(level)

    for handler in root_logger.handlers:
        if isinstance(handler, logging.FileHandler):
            continue
        handler.setLevel(level)


def enable_debug_logging() -> None:
    """Enable debug logging for the entire package."""
    set_global_log_level(logging.DEBUG)


def disable_debug_logging() -> None:
    """Disable debug logging, set to INFO level."""
    set_global_log_level(logging.INFO)


def reset_logging() -> None:
    """Reset logging configuration (mainly for testing)."""
    global _ROOT_LOGGER_CONFIGURED
    _ROOT_LOGGER_CONFIGURED = False

    root_logger = logging.getLogger(ROOT_LOGGER_NAME)
    for handler in list(root_logger.handlers):
        root_logger.removeHandler(handler)
        handler.close()
    root_logger.setLevel(logging.NOTSET)


# Initialize the root logger when the module is imported
setup_root_logger()
