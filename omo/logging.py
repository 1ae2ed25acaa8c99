"""
Logging configuration for OMO Switch.

Everything logs under the ``omo`` namespace. Console output goes to stderr
so command output on stdout stays clean; an optional log file receives the
uncolored, more detailed format.
"""

import logging
import sys
from typing import Optional

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")

_RESET = "\033[0m"
LEVEL_COLORS = {
    logging.DEBUG: "\033[2m\033[36m",
    logging.INFO: "\033[32m",
    logging.WARNING: "\033[33m",
    logging.ERROR: "\033[31m",
    logging.CRITICAL: "\033[1m\033[41m\033[37m",
}

# Transport and event-loop loggers that are chatty below WARNING
QUIET_LOGGERS = ("urllib3", "requests", "asyncio")


class ColoredFormatter(logging.Formatter):
    """Formatter that colors the level name of each record."""

    def __init__(self, fmt: Optional[str] = None, datefmt: Optional[str] = None, use_colors: bool = True):
        super().__init__(fmt, datefmt)
        self.use_colors = use_colors

    def format(self, record: logging.LogRecord) -> str:
        color = LEVEL_COLORS.get(record.levelno) if self.use_colors else None
        if color is None:
            return super().format(record)
        # other handlers share the record and must see the plain level name
        colored = logging.makeLogRecord(record.__dict__)
        colored.levelname = f"{color}{record.levelname}{_RESET}"
        return super().format(colored)


def setup_logging(level: str = "INFO", log_file: Optional[str] = None) -> None:
    """
    Configure the ``omo`` logger hierarchy.

    Calling it again replaces the previous handlers, so the level can be
    raised or lowered once the settings file has been read.

    Args:
        level: Log level name
        log_file: Optional file path for log output

    Example:
        >>> setup_logging(level="DEBUG")
        >>> get_logger(__name__).info("Preload started")
    """
    numeric_level = getattr(logging, level.upper(), logging.INFO)

    omo_logger = logging.getLogger("omo")
    omo_logger.setLevel(numeric_level)
    omo_logger.handlers.clear()

    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setLevel(numeric_level)
    if numeric_level <= logging.DEBUG:
        console_handler.setFormatter(ColoredFormatter(
            "%(asctime)s [%(levelname)s] %(name)s: %(message)s", datefmt="%H:%M:%S",
        ))
    else:
        console_handler.setFormatter(ColoredFormatter("[%(levelname)s] %(message)s"))
    omo_logger.addHandler(console_handler)

    if log_file:
        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setLevel(numeric_level)
        file_handler.setFormatter(ColoredFormatter(
            "%(asctime)s [%(levelname)s] %(name)s:%(lineno)d - %(message)s", use_colors=False,
        ))
        omo_logger.addHandler(file_handler)

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def get_logger(name: str) -> logging.Logger:
    """Return a logger under the ``omo`` namespace."""
    if not name.startswith("omo"):
        name = f"omo.{name}"
    return logging.getLogger(name)


def format_exception_summary(error: BaseException, *, max_length: int = 180) -> str:
    """
    One-line summary of a failure for log lines and terminal output.

    Backend failures are prefixed with the command that failed, e.g.
    ``BackendError[load_preset]: Preset not found: x``.
    """
    label = error.__class__.__name__
    command = getattr(error, "command", None)
    if command:
        label = f"{label}[{command}]"
    detail = " ".join(str(error or "").split())
    summary = f"{label}: {detail}" if detail else label
    if max_length > 3 and len(summary) > max_length:
        return summary[: max_length - 3].rstrip() + "..."
    return summary


def resolve_log_level(
    verbose: bool = False,
    log_level: Optional[str] = None,
    default_level: str = "INFO",
) -> str:
    """An explicit ``--log-level`` wins, then ``--verbose``, then the settings file."""
    if log_level:
        return log_level.upper()
    if verbose:
        return "DEBUG"
    return (default_level or "INFO").upper()


def configure_logging_from_args(
    verbose: bool = False,
    log_level: Optional[str] = None,
    log_file: Optional[str] = None,
    default_level: str = "INFO",
) -> None:
    """
    Configure logging from CLI flags.

    Args:
        verbose: If True, log at DEBUG
        log_level: Explicit log level (overrides verbose)
        log_file: Optional file for log output
        default_level: Level used when neither flag is given
    """
    setup_logging(level=resolve_log_level(verbose, log_level, default_level), log_file=log_file)
