"""
Logging setup for the harvester.

Every module logs through :func:`get_logger`, which places its logger under
the ``oaiharvest`` namespace. Records go to stderr so that documents
written to stdout stay machine readable.
"""

import logging
import sys
from types import TracebackType
from typing import Dict, Optional


ROOT_LOGGER_NAME = "oaiharvest"

_RESET = "\033[0m"

# ANSI escape sequence per level
LEVEL_COLORS: Dict[int, str] = {
    logging.DEBUG: "\033[2m\033[36m",
    logging.INFO: "\033[32m",
    logging.WARNING: "\033[33m",
    logging.ERROR: "\033[31m",
    logging.CRITICAL: "\033[1m\033[41m\033[37m",
}

CONSOLE_FORMAT = "[%(levelname)s] %(message)s"
DEBUG_CONSOLE_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
FILE_FORMAT = "%(asctime)s [%(levelname)s] %(name)s:%(lineno)d - %(message)s"


class ColoredFormatter(logging.Formatter):
    """Formatter that colors the level name of terminal output."""

    def __init__(self, fmt: Optional[str] = None, datefmt: Optional[str] = None, use_colors: bool = True):
        super().__init__(fmt, datefmt)
        self.use_colors = use_colors

    def format(self, record: logging.LogRecord) -> str:
        color = LEVEL_COLORS.get(record.levelno) if self.use_colors else None
        if color is None:
            return super().format(record)

        # the record is shared with other handlers; restore the plain name
        levelname = record.levelname
        record.levelname = f"{color}{levelname}{_RESET}"
        try:
            return super().format(record)
        finally:
            record.levelname = levelname


def setup_logging(level: str = "INFO", log_file: Optional[str] = None) -> None:
    """
    Install the console handler, and a file handler if ``log_file`` is set.

    Calling it again replaces the handlers of a previous call.

    Example:
        >>> setup_logging(level="DEBUG", log_file="harvest.log")
        >>> get_logger(__name__).info("Harvest of %s started", url)
    """
    numeric_level = getattr(logging, level.upper(), logging.INFO)

    harvest_logger = logging.getLogger(ROOT_LOGGER_NAME)
    harvest_logger.setLevel(numeric_level)
    for handler in list(harvest_logger.handlers):
        harvest_logger.removeHandler(handler)
        handler.close()

    console = logging.StreamHandler(sys.stderr)
    console.setLevel(numeric_level)
    if numeric_level <= logging.DEBUG:
        console.setFormatter(ColoredFormatter(DEBUG_CONSOLE_FORMAT, datefmt="%H:%M:%S"))
    else:
        console.setFormatter(ColoredFormatter(CONSOLE_FORMAT))
    harvest_logger.addHandler(console)

    if log_file:
        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setLevel(numeric_level)
        file_handler.setFormatter(ColoredFormatter(FILE_FORMAT, use_colors=False))
        harvest_logger.addHandler(file_handler)

    # connection pool chatter drowns the per-page harvest messages
    logging.getLogger("urllib3").setLevel(logging.WARNING)
    logging.getLogger("requests").setLevel(logging.WARNING)


def get_logger(name: str) -> logging.Logger:
    """Logger for ``name``, placed under the ``oaiharvest`` namespace."""
    if not name.startswith(ROOT_LOGGER_NAME):
        name = f"{ROOT_LOGGER_NAME}.{name}"
    return logging.getLogger(name)


def format_exception_summary(
    error: BaseException,
    *,
    max_length: int = 180,
) -> str:
    """
    One-line ``ExceptionName: message`` summary, trimmed to ``max_length``.

    Used wherever a failure is logged and then recovered from, e.g. a record
    that cannot be transformed or a repository that cannot be reached.
    """
    exception_name = error.__class__.__name__
    detail = " ".join(str(error).split())
    summary = f"{exception_name}: {detail}" if detail else exception_name
    if max_length > 3 and len(summary) > max_length:
        return summary[: max_length - 3].rstrip() + "..."
    return summary


def exception_exc_info(
    error: BaseException,
) -> tuple[type[BaseException], BaseException, Optional[TracebackType]]:
    """``exc_info`` tuple for logging an exception outside its handler."""
    return (type(error), error, error.__traceback__)


def resolve_level(
    verbose: bool = False,
    log_level: Optional[str] = None,
    default: str = "INFO",
) -> str:
    """
    Pick the effective level name.

    An explicit ``log_level`` wins over ``verbose``, which wins over
    ``default`` (typically the ``log_level`` of the harvest configuration).
    """
    if log_level:
        return log_level.upper()
    if verbose:
        return "DEBUG"
    return (default or "INFO").upper()


def configure_logging_from_args(verbose: bool = False, log_level: Optional[str] = None,
                                log_file: Optional[str] = None, default_level: str = "INFO") -> None:
    """
    Configure logging from command-line options.

    Args:
        verbose: If True, log at DEBUG level
        log_level: Explicit level (overrides verbose)
        log_file: Optional file for log output
        default_level: Level used when neither option is given
    """
    setup_logging(level=resolve_level(verbose, log_level, default_level), log_file=log_file)
